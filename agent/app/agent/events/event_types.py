"""Event layer: immutable progress events broadcast by LogBus and streamed over SSE."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, JsonValue

LogLevel = Literal["info", "warn", "error"]
TerminalOutcome = Literal["success", "failure"]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class LogEvent(BaseModel):
    """One progress record emitted by the background job.

    `terminal` is set by producers on their final event so sessions can end
    without relying on message wording.
    """

    model_config = ConfigDict(frozen=True)

    time: datetime = Field(default_factory=utc_now)
    context: str
    level: LogLevel = "info"
    message: str
    data: dict[str, JsonValue] | None = None
    terminal: TerminalOutcome | None = None

    def to_record(self) -> dict[str, Any]:
        """Serialize to a wire record, omitting absent optional fields."""
        record = self.model_dump(mode="json")
        if record.get("data") is None:
            record.pop("data", None)
        if record.get("terminal") is None:
            record.pop("terminal", None)
        return record
