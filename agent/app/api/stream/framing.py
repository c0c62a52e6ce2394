"""Stream API layer: serialize LogEvents into SSE frames for structured or terminal clients."""

from __future__ import annotations

import json
from enum import Enum
from typing import Literal

from app.agent.events.event_types import LogEvent

EndReason = Literal["completed", "failed", "timeout", "error", "disconnect"]

SSE_HEADERS: dict[str, str] = {
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


class StreamFormat(str, Enum):
    STRUCTURED = "json"
    TEXT = "text"


def resolve_format(*, requested: str | None, user_agent: str | None) -> StreamFormat:
    """Pick the rendering mode: explicit query wins, then curl-like clients get text."""
    if requested:
        normalized = requested.strip().lower()
        if normalized in {"text", "plain"}:
            return StreamFormat.TEXT
        if normalized in {"json", "structured"}:
            return StreamFormat.STRUCTURED
    if user_agent and "curl" in user_agent.lower():
        return StreamFormat.TEXT
    return StreamFormat.STRUCTURED


def format_frame(payload: str, *, event: str | None = None) -> str:
    # One `data:` line per source line keeps blank lines out of the frame body.
    lines = payload.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    head = f"event: {event}\n" if event else ""
    body = "".join(f"data: {line}\n" for line in lines)
    return f"{head}{body}\n"


def parse_frames(raw: str) -> list[dict[str, str]]:
    """Split an SSE byte stream (already decoded) into frames; used by clients and tests."""
    frames: list[dict[str, str]] = []
    for block in raw.replace("\r\n", "\n").split("\n\n"):
        if not block.strip():
            continue
        event_name = "message"
        data_lines: list[str] = []
        for line in block.split("\n"):
            if line.startswith("event: "):
                event_name = line[len("event: "):]
            elif line.startswith("data: "):
                data_lines.append(line[len("data: "):])
            elif line.startswith("data:"):
                data_lines.append(line[len("data:"):])
        frames.append({"event": event_name, "data": "\n".join(data_lines)})
    return frames


class FrameEncoder:
    """Render LogEvents and the end-of-stream sentinel for one client format."""

    def __init__(self, stream_format: StreamFormat = StreamFormat.STRUCTURED) -> None:
        self._format = stream_format

    @property
    def format(self) -> StreamFormat:
        return self._format

    def encode(self, event: LogEvent) -> str:
        if self._format is StreamFormat.TEXT:
            return format_frame(self.render_line(event))
        return format_frame(json.dumps(event.to_record(), ensure_ascii=False, separators=(",", ":")))

    def render_line(self, event: LogEvent) -> str:
        clock = event.time.astimezone().strftime("%H:%M:%S")
        line = f"[{clock}] [{event.context}] {event.message}"
        if event.data:
            line += " " + json.dumps(event.data, ensure_ascii=False)
        return line

    def end_frame(self, reason: EndReason) -> str:
        marker = "[TIMEOUT]" if reason == "timeout" else "[DONE]"
        if self._format is StreamFormat.STRUCTURED:
            marker = json.dumps(marker)
        return format_frame(marker, event="end")
