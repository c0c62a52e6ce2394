"""Stream API layer: per-client state machine bridging LogBus to one SSE response."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable
from enum import Enum
from threading import Lock
from uuid import uuid4

from app.agent.events.completion import DEFAULT_COMPLETION_RULES, CompletionRule, detect_outcome
from app.agent.events.event_types import LogEvent
from app.agent.events.log_bus import LogBus, Subscription
from app.api.stream.framing import EndReason, FrameEncoder
from app.infra.observability.logger import get_logger

logger = get_logger(__name__)


class SessionStatus(str, Enum):
    ACTIVE = "active"
    DRAINING = "draining"
    CLOSED = "closed"


class StreamSession:
    """Own one bus subscription, one timeout timer and one outbound frame queue.

    Lifecycle is `active -> draining -> closed`. Draining is entered by the
    first of: a terminal event, the timeout, a producer error during setup, or
    client disconnect. `drain()` is guarded so exactly one end frame is written.
    Bus callbacks may run on worker threads; every write to the outbound queue
    goes through `call_soon_threadsafe` so frame order is preserved.
    """

    def __init__(
        self,
        *,
        bus: LogBus,
        encoder: FrameEncoder,
        timeout_seconds: float,
        replay_history: bool = False,
        completion_rules: tuple[CompletionRule, ...] = DEFAULT_COMPLETION_RULES,
        session_id: str | None = None,
    ) -> None:
        self.session_id = session_id or f"st_{uuid4().hex[:12]}"
        self._bus = bus
        self._encoder = encoder
        self._timeout_seconds = max(0.0, timeout_seconds)
        self._replay_history = replay_history
        self._completion_rules = completion_rules

        self._guard = Lock()
        self._status = SessionStatus.ACTIVE
        self._transitions: list[SessionStatus] = [SessionStatus.ACTIVE]
        self._end_reason: EndReason | None = None
        self._end_frames_written = 0
        self._opened = False

        self._loop: asyncio.AbstractEventLoop | None = None
        self._outbox: asyncio.Queue[str | None] | None = None
        self._subscription: Subscription | None = None
        self._timer: asyncio.TimerHandle | None = None

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def transitions(self) -> list[SessionStatus]:
        return list(self._transitions)

    @property
    def end_reason(self) -> EndReason | None:
        return self._end_reason

    @property
    def end_frames_written(self) -> int:
        return self._end_frames_written

    def open(self, start: Callable[[], object] | None = None) -> None:
        """Subscribe, replay history, arm the timer, then run `start`.

        Must be called on the event loop that will consume `frames()`.
        Subscribing happens before `start` so the job cannot publish into a gap.
        """
        if self._opened:
            return
        self._opened = True
        self._loop = asyncio.get_running_loop()
        self._outbox = asyncio.Queue()

        if self._replay_history:
            self._subscription, history = self._bus.subscribe_with_snapshot(self._on_event)
            for event in history:
                self._outbox.put_nowait(self._encoder.encode(event))
        else:
            self._subscription = self._bus.subscribe(self._on_event)
            history = []
        self._timer = self._loop.call_later(self._timeout_seconds, self._on_timeout)
        logger.info(
            "stream.session.open session_id=%s format=%s replay=%s timeout_s=%s",
            self.session_id,
            self._encoder.format.value,
            len(history),
            self._timeout_seconds,
        )

        if start is None:
            return
        try:
            start()
        except Exception as exc:
            self.fail(exc)

    def fail(self, exc: BaseException) -> None:
        """Report a producer error raised before any job events, then drain.

        The explanation goes to this session's client only. Other sessions on
        the bus keep following whatever job is actually running.
        """
        logger.warning(
            "stream.session.producer_error session_id=%s error=%s",
            self.session_id,
            exc,
        )
        event = LogEvent(
            context="workflow",
            level="error",
            message=f"Workflow failed: {exc}",
            data={"error": type(exc).__name__},
            terminal="failure",
        )
        with self._guard:
            if self._status is SessionStatus.ACTIVE:
                self._post(self._encoder.encode(event))
        self.drain("error")

    async def frames(self, start: Callable[[], object] | None = None) -> AsyncIterator[str]:
        """Yield encoded frames until the session closes; the last one is the end frame."""
        self.open(start)
        assert self._outbox is not None
        try:
            while True:
                frame = await self._outbox.get()
                if frame is None:
                    break
                yield frame
        finally:
            # No-op unless the consumer went away before the end frame.
            self.drain("disconnect")

    def drain(self, reason: EndReason) -> bool:
        """Write the end frame and release resources; only the first call has effect."""
        with self._guard:
            if self._status is not SessionStatus.ACTIVE:
                return False
            self._status = SessionStatus.DRAINING
            self._transitions.append(SessionStatus.DRAINING)
            self._end_reason = reason
            self._post(self._encoder.end_frame(reason))
            self._end_frames_written += 1

        self._release()
        self._post(None)

        with self._guard:
            self._status = SessionStatus.CLOSED
            self._transitions.append(SessionStatus.CLOSED)
        logger.info(
            "stream.session.closed session_id=%s reason=%s",
            self.session_id,
            reason,
        )
        return True

    def _on_event(self, event: LogEvent) -> None:
        with self._guard:
            if self._status is not SessionStatus.ACTIVE:
                return
            self._post(self._encoder.encode(event))
        outcome = detect_outcome(event, self._completion_rules)
        if outcome == "success":
            self.drain("completed")
        elif outcome == "failure":
            self.drain("failed")

    def _on_timeout(self) -> None:
        logger.warning(
            "stream.session.timeout session_id=%s timeout_s=%s",
            self.session_id,
            self._timeout_seconds,
        )
        self.drain("timeout")

    def _release(self) -> None:
        if self._subscription is not None:
            self._bus.unsubscribe(self._subscription)
            self._subscription = None
        timer, self._timer = self._timer, None
        if timer is not None and self._loop is not None:
            self._call_in_loop(timer.cancel)

    def _post(self, frame: str | None) -> None:
        if self._outbox is None:
            return
        self._call_in_loop(self._outbox.put_nowait, frame)

    def _call_in_loop(self, callback: Callable[..., object], *args: object) -> None:
        assert self._loop is not None
        try:
            self._loop.call_soon_threadsafe(callback, *args)
        except RuntimeError:
            # Loop already closed: the transport is gone with it.
            logger.debug("stream.session.loop_closed session_id=%s", self.session_id)
