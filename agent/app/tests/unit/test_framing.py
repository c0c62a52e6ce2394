"""Unit tests for SSE framing and format selection."""

from __future__ import annotations

import json
from datetime import datetime, timezone

from app.agent.events.event_types import LogEvent
from app.api.stream.framing import (
    FrameEncoder,
    StreamFormat,
    format_frame,
    parse_frames,
    resolve_format,
)


def _event(**overrides) -> LogEvent:
    payload = {
        "time": datetime(2025, 10, 3, 17, 4, 5, tzinfo=timezone.utc),
        "context": "sandbox",
        "message": "Sandbox created",
    }
    payload.update(overrides)
    return LogEvent(**payload)


def test_resolve_format_prefers_query_then_user_agent() -> None:
    assert resolve_format(requested="text", user_agent="Mozilla/5.0") is StreamFormat.TEXT
    assert resolve_format(requested="json", user_agent="curl/8.4.0") is StreamFormat.STRUCTURED
    assert resolve_format(requested=None, user_agent="curl/8.4.0") is StreamFormat.TEXT
    assert resolve_format(requested=None, user_agent=None) is StreamFormat.STRUCTURED


def test_multiline_payload_never_contains_blank_line() -> None:
    frame = format_frame("line one\n\nline three\r\nline four")

    body = frame[:-2]
    assert "\n\n" not in body
    assert frame.endswith("\n\n")
    assert body.count("data: ") == 4


def test_structured_encoding_omits_absent_fields() -> None:
    frame = FrameEncoder(StreamFormat.STRUCTURED).encode(_event())
    record = json.loads(parse_frames(frame)[0]["data"])

    assert record == {
        "time": "2025-10-03T17:04:05Z",
        "context": "sandbox",
        "level": "info",
        "message": "Sandbox created",
    }


def test_structured_encoding_keeps_data_and_terminal() -> None:
    frame = FrameEncoder().encode(
        _event(context="workflow", message="Workflow complete", data={"callId": "c1"}, terminal="success")
    )
    record = json.loads(parse_frames(frame)[0]["data"])

    assert record["data"] == {"callId": "c1"}
    assert record["terminal"] == "success"


def test_text_encoding_renders_one_readable_line() -> None:
    encoder = FrameEncoder(StreamFormat.TEXT)
    event = _event(context="bash", message="$ ls", data={"exitCode": 0})
    data = parse_frames(encoder.encode(event))[0]["data"]

    clock = event.time.astimezone().strftime("%H:%M:%S")
    assert data == f'[{clock}] [bash] $ ls {{"exitCode": 0}}'


def test_multiline_message_round_trips_through_parser() -> None:
    frame = FrameEncoder(StreamFormat.TEXT).encode(_event(context="bash-output", message="a\nb"))
    frames = parse_frames(frame)

    assert len(frames) == 1
    assert frames[0]["data"].endswith("a\nb")


def test_end_frames() -> None:
    structured = FrameEncoder(StreamFormat.STRUCTURED)
    text = FrameEncoder(StreamFormat.TEXT)

    assert structured.end_frame("completed") == 'event: end\ndata: "[DONE]"\n\n'
    assert structured.end_frame("timeout") == 'event: end\ndata: "[TIMEOUT]"\n\n'
    assert text.end_frame("disconnect") == "event: end\ndata: [DONE]\n\n"
    assert text.end_frame("timeout") == "event: end\ndata: [TIMEOUT]\n\n"
