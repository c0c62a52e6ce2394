"""Event layer: producer-side facade that publishes progress events and mirrors them to logging."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from app.agent.events.event_types import LogEvent, LogLevel, TerminalOutcome
from app.agent.events.log_bus import LogBus
from app.infra.observability.logger import PROGRESS_LOGGER, get_logger

logger = get_logger(PROGRESS_LOGGER)

_LEVELS: dict[str, int] = {
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


@dataclass
class _RunState:
    terminal: TerminalOutcome | None = None


class EventLogger:
    """Publish LogEvents for one producing subsystem (`context` tag).

    Loggers derived with `bind()` share run state, so the producer can tell
    whether any context of the run already published its terminal event.
    """

    def __init__(self, bus: LogBus, context: str, *, _state: _RunState | None = None) -> None:
        self._bus = bus
        self._context = context
        self._state = _state or _RunState()

    @property
    def context(self) -> str:
        return self._context

    @property
    def terminal(self) -> TerminalOutcome | None:
        """Outcome of the first terminal event published by this run, if any."""
        return self._state.terminal

    def bind(self, context: str) -> "EventLogger":
        """Return a logger for another context on the same bus and run."""
        return EventLogger(self._bus, context, _state=self._state)

    def log(
        self,
        level: LogLevel,
        message: str,
        data: dict[str, Any] | None = None,
        *,
        terminal: TerminalOutcome | None = None,
    ) -> LogEvent:
        event = LogEvent(
            context=self._context,
            level=level,
            message=message,
            data=data,
            terminal=terminal,
        )
        if terminal is not None and self._state.terminal is None:
            self._state.terminal = terminal
        logger.log(_LEVELS[level], "[%s] %s", self._context, message)
        self._bus.publish(event)
        return event

    def info(self, message: str, data: dict[str, Any] | None = None, **kwargs: Any) -> LogEvent:
        return self.log("info", message, data, **kwargs)

    def warn(self, message: str, data: dict[str, Any] | None = None, **kwargs: Any) -> LogEvent:
        return self.log("warn", message, data, **kwargs)

    def error(self, message: str, data: dict[str, Any] | None = None, **kwargs: Any) -> LogEvent:
        return self.log("error", message, data, **kwargs)
