"""ReAct runtime: model tool-loop that explores the call sandbox and submits a structured summary."""

from __future__ import annotations

import json
from typing import Any, NoReturn

from pydantic import ValidationError

from app.agent.context.context_builder import BuiltContext
from app.agent.events.event_logger import EventLogger
from app.agent.runtime.loop_guard import FailureCounter, LoopGuard
from app.agent.tools.builtin.summary_tool import SummaryTool
from app.agent.tools.registry import ToolExecutionResult, ToolRegistry
from app.infra.llm.openai_compatible_client import ModelToolCall, OpenAICompatibleClient
from app.infra.observability.logger import get_logger
from app.protocol.gong import GongWebhook
from app.protocol.messages import AgentOutput

logger = get_logger(__name__)

AGENT_TOOLS: list[str] = ["execute_command", "submit_summary"]

# Transcript sentences are rendered as `> [mm:ss] text` quote lines.
_CONCERN_PATTERN = "^> .*(concern|worried|risk|expensive|budget|security|compliance|competitor|price|pricing)"
_COMMITMENT_PATTERN = "^> .*(follow up|follow-up|will send|will bring|will own|schedule|next step|next week)"
_FORCE_SUBMIT = {"type": "function", "function": {"name": "submit_summary"}}


class AgentFailedError(RuntimeError):
    """Raised when the model provider fails or never produces a summary."""


class MaxRetriesExceededError(RuntimeError):
    """Raised when consecutive sandbox command failures exceed the configured limit."""


def _short(text: str | None, *, limit: int = 120) -> str:
    if not isinstance(text, str):
        return ""
    compact = " ".join(text.split())
    if len(compact) <= limit:
        return compact
    return f"{compact[: max(1, limit - 3)].rstrip()}..."


class ReactRuntime:
    """Run the summary agent for one call inside an already-populated sandbox."""

    def __init__(
        self,
        *,
        tool_registry: ToolRegistry,
        llm_client: OpenAICompatibleClient,
        summary_tool: SummaryTool,
        max_steps: int,
        max_command_failures: int,
        company_name: str,
    ) -> None:
        self._tool_registry = tool_registry
        self._llm_client = llm_client
        self._summary_tool = summary_tool
        self._max_steps = max(2, max_steps)
        self._max_command_failures = max_command_failures
        self._company_name = company_name

    def run(
        self,
        *,
        context: BuiltContext,
        webhook: GongWebhook,
        transcript_path: str,
        events: EventLogger,
    ) -> AgentOutput:
        agent_events = events.bind("agent")
        if not self._llm_client.enabled:
            agent_events.info("No LLM configured, running rule-based analysis")
            return self._run_rule_based(webhook=webhook, transcript_path=transcript_path, events=agent_events)
        agent_events.info("Starting agent", {"model": self._llm_client.model, "maxSteps": self._max_steps})
        return self._run_model_loop(context=context, events=agent_events)

    def _run_model_loop(self, *, context: BuiltContext, events: EventLogger) -> AgentOutput:
        messages: list[dict[str, Any]] = list(context.messages)
        tools = self._tool_registry.tool_definitions(allowed_tools=AGENT_TOOLS)
        guard = LoopGuard(self._max_steps)
        failures = FailureCounter(self._max_command_failures)

        # Model -> tools -> observations -> next turn, until submit_summary.
        while not guard.exhausted:
            step = guard.next()
            events.info("Planning next action...", {"step": step})
            response, error_message = self._llm_client.chat_completion(messages=messages, tools=tools)
            if response is None:
                self._fail(events, error_message or "empty model response")
            logger.info(
                "agent.step step=%s tool_calls=%s has_text=%s",
                step,
                len(response.tool_calls),
                bool(response.text),
            )
            messages.append(response.as_assistant_message())

            if not response.tool_calls:
                if response.text:
                    events.info(_short(response.text, limit=500))
                messages.append(
                    {
                        "role": "user",
                        "content": "Continue exploring with execute_command, or call submit_summary when ready.",
                    }
                )
                continue

            for call in response.tool_calls:
                result = self._execute(call)
                messages.append(
                    {
                        "role": "tool",
                        "tool_call_id": call.call_id,
                        "content": json.dumps(result.output, ensure_ascii=False),
                    }
                )
                if result.terminal:
                    events.info("Generating structured output...")
                    return AgentOutput.model_validate(result.output)
                if result.tool_name == "execute_command" and failures.record(ok=result.status == "completed"):
                    events.error(
                        f"Max retries exceeded: {failures.streak} consecutive command failures",
                        {"lastError": _short(result.error_message, limit=200)},
                        terminal="failure",
                    )
                    raise MaxRetriesExceededError(
                        f"{failures.streak} consecutive command failures (limit {self._max_command_failures})"
                    )

        events.info("Generating structured output...")
        return self._force_submit(messages=messages, tools=tools, events=events)

    def _force_submit(
        self,
        *,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
        events: EventLogger,
    ) -> AgentOutput:
        """Step budget is spent: require one final submit_summary call."""
        response, error_message = self._llm_client.chat_completion(
            messages=messages,
            tools=tools,
            tool_choice=_FORCE_SUBMIT,
        )
        if response is None:
            self._fail(events, error_message or "empty model response")
        for call in response.tool_calls:
            if call.name != "submit_summary":
                continue
            result = self._execute(call)
            if result.terminal:
                return AgentOutput.model_validate(result.output)
            self._fail(events, f"invalid summary: {_short(result.error_message, limit=200)}")
        if response.text:
            try:
                return AgentOutput.model_validate_json(response.text)
            except ValidationError:
                logger.warning("agent.final_text_not_structured preview=%s", _short(response.text))
        self._fail(events, "model did not submit a summary")

    def _execute(self, call: ModelToolCall) -> ToolExecutionResult:
        logger.info(
            "tool.call tool=%s call_id=%s args=%s",
            call.name,
            call.call_id,
            _short(json.dumps(call.arguments, ensure_ascii=False), limit=220),
        )
        return self._tool_registry.execute(
            call_id=call.call_id,
            tool_name=call.name,
            raw_arguments=call.arguments,
            allowed_tools=AGENT_TOOLS,
        )

    def _run_rule_based(
        self,
        *,
        webhook: GongWebhook,
        transcript_path: str,
        events: EventLogger,
    ) -> AgentOutput:
        self._run_command("ls", ["-R", "."])
        concerns = self._grep_lines(_CONCERN_PATTERN, transcript_path)
        commitments = self._grep_lines(_COMMITMENT_PATTERN, transcript_path)
        events.info(
            "Analysis findings",
            {"concerns": len(concerns), "commitments": len(commitments)},
        )
        events.info("Generating structured output...")
        return self._summary_tool.summarize(
            webhook=webhook,
            concerns=concerns,
            commitments=commitments,
            company_name=self._company_name,
        )

    def _grep_lines(self, pattern: str, path: str) -> list[str]:
        result = self._run_command("grep", ["-i", "-h", "-E", pattern, path])
        # grep exits 1 when nothing matched.
        if result.status != "completed":
            return []
        stdout = str(result.output.get("stdout") or "")
        return [line for line in stdout.splitlines() if line.strip() and line != "(no output)"]

    def _run_command(self, command: str, args: list[str]) -> ToolExecutionResult:
        return self._tool_registry.execute(
            call_id=f"rule_{command}",
            tool_name="execute_command",
            raw_arguments={"command": command, "args": args},
            allowed_tools=["execute_command"],
        )

    def _fail(self, events: EventLogger, reason: str) -> NoReturn:
        events.error(f"Agent failed: {reason}", terminal="failure")
        raise AgentFailedError(reason)
