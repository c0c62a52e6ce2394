"""Event layer: detect session-ending events from structured flags or known phrases."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from app.agent.events.event_types import LogEvent, TerminalOutcome

MatchMode = Literal["exact", "prefix", "contains"]


@dataclass(frozen=True)
class CompletionRule:
    """Message phrase that marks the end of a job."""

    phrase: str
    outcome: TerminalOutcome
    match: MatchMode = "exact"
    context: str | None = None

    def matches(self, event: LogEvent) -> bool:
        if self.context is not None and event.context != self.context:
            return False
        message = event.message.strip()
        if self.match == "exact":
            return message == self.phrase
        if self.match == "prefix":
            return message.startswith(self.phrase)
        return self.phrase in message


DEFAULT_COMPLETION_RULES: tuple[CompletionRule, ...] = (
    CompletionRule("Workflow complete", "success", context="workflow"),
    CompletionRule("Workflow failed", "failure", match="prefix"),
    CompletionRule("Max retries exceeded", "failure", match="prefix"),
    CompletionRule("Agent failed", "failure", match="prefix"),
)


def detect_outcome(
    event: LogEvent,
    rules: tuple[CompletionRule, ...] = DEFAULT_COMPLETION_RULES,
) -> TerminalOutcome | None:
    """Return the terminal outcome carried by the event, if any."""
    if event.terminal is not None:
        return event.terminal
    for rule in rules:
        if rule.matches(event):
            return rule.outcome
    return None
