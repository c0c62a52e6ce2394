"""Unit tests for the StreamSession state machine (async code driven with asyncio.run)."""

from __future__ import annotations

import asyncio
import json
import threading

from app.agent.events.event_types import LogEvent
from app.agent.events.log_bus import LogBus
from app.api.stream.framing import FrameEncoder, StreamFormat, parse_frames
from app.api.stream.session import SessionStatus, StreamSession


def _session(bus: LogBus, *, timeout: float = 5.0, replay: bool = False, fmt=StreamFormat.STRUCTURED) -> StreamSession:
    return StreamSession(
        bus=bus,
        encoder=FrameEncoder(fmt),
        timeout_seconds=timeout,
        replay_history=replay,
    )


async def _collect(session: StreamSession, start=None) -> list[dict[str, str]]:
    chunks = [frame async for frame in session.frames(start)]
    return parse_frames("".join(chunks))


def _messages(frames: list[dict[str, str]]) -> list[str]:
    return [json.loads(frame["data"])["message"] for frame in frames if frame["event"] == "message"]


def test_events_stream_until_workflow_complete(bus: LogBus) -> None:
    session = _session(bus)

    def start() -> None:
        bus.publish(LogEvent(context="sandbox", message="Sandbox created"))
        bus.publish(LogEvent(context="agent", message="Planning next action..."))
        bus.publish(LogEvent(context="workflow", message="Workflow complete"))

    frames = asyncio.run(_collect(session, start))

    assert _messages(frames) == ["Sandbox created", "Planning next action...", "Workflow complete"]
    assert frames[-1] == {"event": "end", "data": '"[DONE]"'}
    assert session.end_reason == "completed"
    assert session.end_frames_written == 1
    assert session.transitions == [SessionStatus.ACTIVE, SessionStatus.DRAINING, SessionStatus.CLOSED]
    assert bus.subscriber_count == 0


def test_events_after_completion_are_not_forwarded(bus: LogBus) -> None:
    session = _session(bus)

    def start() -> None:
        bus.publish(LogEvent(context="workflow", message="Workflow complete"))
        bus.publish(LogEvent(context="slack", message="late event"))

    frames = asyncio.run(_collect(session, start))

    assert _messages(frames) == ["Workflow complete"]
    assert [frame["event"] for frame in frames].count("end") == 1


def test_failure_phrase_ends_session_as_failed(bus: LogBus) -> None:
    session = _session(bus)

    def start() -> None:
        bus.publish(LogEvent(context="agent", level="error", message="Max retries exceeded: 4 consecutive command failures"))

    frames = asyncio.run(_collect(session, start))

    assert session.end_reason == "failed"
    assert frames[-1]["event"] == "end"


def test_replay_history_then_live_events(bus: LogBus) -> None:
    bus.publish(LogEvent(context="workflow", message="Workflow started"))
    bus.publish(LogEvent(context="sandbox", message="Sandbox created"))
    session = _session(bus, replay=True)

    def start() -> None:
        bus.publish(LogEvent(context="workflow", message="Workflow complete", terminal="success"))

    frames = asyncio.run(_collect(session, start))

    assert _messages(frames) == ["Workflow started", "Sandbox created", "Workflow complete"]
    assert session.end_reason == "completed"


def test_replayed_terminal_event_does_not_end_session(bus: LogBus) -> None:
    bus.publish(LogEvent(context="workflow", message="Workflow complete", terminal="success"))
    session = _session(bus, timeout=0.05, replay=True)

    frames = asyncio.run(_collect(session))

    assert _messages(frames) == ["Workflow complete"]
    assert frames[-1] == {"event": "end", "data": '"[TIMEOUT]"'}
    assert session.end_reason == "timeout"


def test_timeout_writes_timeout_end_frame(bus: LogBus) -> None:
    session = _session(bus, timeout=0.05, fmt=StreamFormat.TEXT)

    frames = asyncio.run(_collect(session))

    assert frames == [{"event": "end", "data": "[TIMEOUT]"}]
    assert session.end_reason == "timeout"
    assert bus.subscriber_count == 0


def test_producer_error_reports_failure_and_ends_with_error(bus: LogBus) -> None:
    session = _session(bus)
    seen: list[LogEvent] = []
    bus.subscribe(seen.append)

    def start() -> None:
        raise ValueError("Invalid webhook payload: callData: Field required")

    frames = asyncio.run(_collect(session, start))

    assert _messages(frames) == ["Workflow failed: Invalid webhook payload: callData: Field required"]
    assert json.loads(frames[0]["data"])["data"] == {"error": "ValueError"}
    assert frames[-1] == {"event": "end", "data": '"[DONE]"'}
    assert session.end_reason == "error"
    assert session.end_frames_written == 1
    assert seen == []
    assert bus.snapshot() == []


def test_producer_error_does_not_end_other_sessions(bus: LogBus) -> None:
    viewer = _session(bus, replay=True)
    broken = _session(bus)

    def start() -> None:
        raise ValueError("cannot start job")

    async def scenario() -> tuple[list[dict[str, str]], list[dict[str, str]]]:
        viewer_task = asyncio.ensure_future(_collect(viewer))
        await asyncio.sleep(0)
        bus.publish(LogEvent(context="workflow", message="Workflow started"))
        broken_frames = await _collect(broken, start)
        assert viewer.end_reason is None
        assert viewer.status is SessionStatus.ACTIVE
        bus.publish(LogEvent(context="workflow", message="Workflow complete", terminal="success"))
        return await viewer_task, broken_frames

    viewer_frames, broken_frames = asyncio.run(scenario())

    assert _messages(broken_frames) == ["Workflow failed: cannot start job"]
    assert broken.end_reason == "error"
    assert _messages(viewer_frames) == ["Workflow started", "Workflow complete"]
    assert viewer.end_reason == "completed"
    assert [event.message for event in bus.snapshot()] == ["Workflow started", "Workflow complete"]


def test_client_disconnect_releases_subscription(bus: LogBus) -> None:
    session = _session(bus)

    async def scenario() -> str:
        frames = session.frames(lambda: bus.publish(LogEvent(context="agent", message="Planning next action...")))
        first = await frames.__anext__()
        await frames.aclose()
        return first

    first = asyncio.run(scenario())

    assert _messages(parse_frames(first)) == ["Planning next action..."]
    assert session.end_reason == "disconnect"
    assert session.status is SessionStatus.CLOSED
    assert session.end_frames_written == 1
    assert bus.subscriber_count == 0


def test_events_from_worker_thread_keep_order(bus: LogBus) -> None:
    session = _session(bus)

    def start() -> None:
        def work() -> None:
            for index in range(20):
                bus.publish(LogEvent(context="bash-output", message=f"line {index}"))
            bus.publish(LogEvent(context="workflow", message="Workflow complete"))

        threading.Thread(target=work).start()

    frames = asyncio.run(_collect(session, start))

    assert _messages(frames) == [f"line {index}" for index in range(20)] + ["Workflow complete"]
    assert frames[-1]["event"] == "end"


def test_concurrent_drains_write_exactly_one_end_frame(bus: LogBus) -> None:
    session = _session(bus)

    async def scenario() -> tuple[list[bool], list[dict[str, str]]]:
        frames = session.frames()
        collector = asyncio.ensure_future(_drain_frames(frames))
        await asyncio.sleep(0)
        results = await asyncio.gather(
            *(asyncio.to_thread(session.drain, "completed") for _ in range(8)),
            asyncio.to_thread(session.drain, "timeout"),
        )
        return list(results), await collector

    results, frames = asyncio.run(scenario())

    assert results.count(True) == 1
    assert session.end_frames_written == 1
    assert [frame["event"] for frame in frames] == ["end"]


async def _drain_frames(frames) -> list[dict[str, str]]:
    return parse_frames("".join([frame async for frame in frames]))


def test_open_is_idempotent(bus: LogBus) -> None:
    session = _session(bus, timeout=0.05)

    async def scenario() -> None:
        session.open()
        session.open()
        assert bus.subscriber_count == 1
        await asyncio.sleep(0.1)

    asyncio.run(scenario())

    assert session.end_reason == "timeout"
    assert bus.subscriber_count == 0
