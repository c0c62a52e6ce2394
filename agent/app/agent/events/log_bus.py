"""Event layer: in-process publish/subscribe bus with a bounded history window."""

from __future__ import annotations

from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from itertools import count
from threading import RLock

from app.agent.events.event_types import LogEvent
from app.infra.observability.logger import get_logger

logger = get_logger(__name__)

Subscriber = Callable[[LogEvent], None]

MIN_CAPACITY = 10


@dataclass(frozen=True)
class Subscription:
    """Opaque handle returned by LogBus.subscribe."""

    id: int


class LogBus:
    """Fan out published events to subscribers in one total order.

    All operations share one reentrant lock, and delivery happens while it is
    held. A callback may therefore unsubscribe itself (or others) from the
    delivery path, and concurrent publishers cannot interleave deliveries.
    """

    def __init__(self, capacity: int = 200) -> None:
        if capacity < MIN_CAPACITY:
            logger.warning(
                "log_bus.capacity_clamped requested=%s capacity=%s",
                capacity,
                MIN_CAPACITY,
            )
        self._capacity = max(MIN_CAPACITY, capacity)
        self._history: deque[LogEvent] = deque(maxlen=self._capacity)
        self._subscribers: dict[int, Subscriber] = {}
        self._ids = count(1)
        self._lock = RLock()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def publish(self, event: LogEvent) -> None:
        """Record the event and deliver it to every current subscriber."""
        with self._lock:
            self._history.append(event)
            for sub_id, callback in list(self._subscribers.items()):
                # Skip handles removed earlier in this same delivery pass.
                if sub_id not in self._subscribers:
                    continue
                try:
                    callback(event)
                except Exception:
                    logger.exception(
                        "log_bus.delivery_failed subscriber=%s context=%s",
                        sub_id,
                        event.context,
                    )

    def subscribe(self, callback: Subscriber) -> Subscription:
        with self._lock:
            handle = Subscription(id=next(self._ids))
            self._subscribers[handle.id] = callback
            return handle

    def subscribe_with_snapshot(self, callback: Subscriber) -> tuple[Subscription, list[LogEvent]]:
        """Subscribe and copy history atomically: replay + live has no gap or duplicate."""
        with self._lock:
            return self.subscribe(callback), list(self._history)

    def unsubscribe(self, handle: Subscription) -> None:
        with self._lock:
            self._subscribers.pop(handle.id, None)

    def snapshot(self) -> list[LogEvent]:
        """Return buffered events, oldest first."""
        with self._lock:
            return list(self._history)

    def clear(self) -> None:
        with self._lock:
            self._history.clear()
