"""Loop guard for the bounded agent tool loop."""

from __future__ import annotations


class LoopGuard:
    """Track loop progression and enforce max step limits."""

    def __init__(self, max_steps: int) -> None:
        self._max_steps = max(1, max_steps)
        self._step = 0

    def next(self) -> int:
        if self._step >= self._max_steps:
            raise RuntimeError("max_steps_reached")
        self._step += 1
        return self._step

    @property
    def exhausted(self) -> bool:
        return self._step >= self._max_steps


class FailureCounter:
    """Count consecutive failures; any success resets the streak."""

    def __init__(self, limit: int) -> None:
        self._limit = max(0, limit)
        self._streak = 0

    @property
    def streak(self) -> int:
        return self._streak

    def record(self, *, ok: bool) -> bool:
        """Record one attempt; return True once the streak exceeds the limit."""
        self._streak = 0 if ok else self._streak + 1
        return self._streak > self._limit
