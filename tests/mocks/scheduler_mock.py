"""Manually driven repeating scheduler."""

from __future__ import annotations

import itertools
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable


class ManualScheduler:
    """RepeatingSchedulerProtocol double: callbacks run only when the test says so."""

    def __init__(self) -> None:
        """Initialize with no registrations."""
        self.callbacks: dict[int, tuple[Callable[[], Any], float]] = {}
        self.cancelled: list[int] = []
        self._ids = itertools.count(1)

    def schedule_repeating(self, callback: Callable[[], Any], interval: float) -> int:
        """Register a callback and return its handle."""
        handle = next(self._ids)
        self.callbacks[handle] = (callback, interval)
        return handle

    def cancel(self, handle: int) -> None:
        """Unregister a callback."""
        if self.callbacks.pop(handle, None) is not None:
            self.cancelled.append(handle)

    def intervals(self) -> list[float]:
        """Return the intervals of the active registrations."""
        return [interval for _, interval in self.callbacks.values()]

    def run_once(self) -> int:
        """Invoke every active callback once; return how many ran."""
        active = list(self.callbacks.items())
        for handle, (callback, _) in active:
            if handle in self.callbacks:
                callback()
        return len(active)

    def run_until_idle(self, max_rounds: int = 10_000) -> int:
        """Keep invoking callbacks until none are registered; return rounds run."""
        rounds = 0
        while self.callbacks and rounds < max_rounds:
            self.run_once()
            rounds += 1
        return rounds
