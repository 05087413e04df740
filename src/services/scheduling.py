"""Cooperative repeating timer on the asyncio event loop.

Each registration re-arms itself with ``loop.call_later`` only after the
callback returns, so two invocations of the same callback never overlap
and slow ticks stretch the interval instead of piling up.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable


class AsyncioRepeatingScheduler:
    """RepeatingSchedulerProtocol implementation using ``loop.call_later``."""

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop | None = None,
        error_logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the scheduler.

        Args:
            loop: Event loop to schedule on; the running loop when omitted
            error_logger: Logger for callbacks that raise

        """
        self._loop = loop
        self.error_logger = error_logger or logging.getLogger("error_logger")
        self._handles: dict[int, asyncio.TimerHandle] = {}
        self._ids = itertools.count(1)

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        """Event loop used for timers."""
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    @property
    def active_count(self) -> int:
        """Number of callbacks still registered."""
        return len(self._handles)

    def schedule_repeating(self, callback: Callable[[], Any], interval: float) -> int:
        """Invoke ``callback`` every ``interval`` seconds until cancelled.

        A callback that raises is logged and unregistered.

        Returns:
            Handle for ``cancel``.

        """
        handle_id = next(self._ids)
        delay = max(interval, 0.0)

        def _run() -> None:
            if handle_id not in self._handles:
                return
            try:
                callback()
            except Exception:
                self.error_logger.exception("Repeating callback %s failed; unscheduled", handle_id)
                self._handles.pop(handle_id, None)
                return
            if handle_id in self._handles:
                self._handles[handle_id] = self.loop.call_later(delay, _run)

        self._handles[handle_id] = self.loop.call_later(delay, _run)
        return handle_id

    def cancel(self, handle: int) -> None:
        """Stop invoking the callback registered under ``handle``; unknown handles are ignored."""
        timer = self._handles.pop(handle, None)
        if timer is not None:
            timer.cancel()

    def cancel_all(self) -> None:
        """Cancel every registered callback."""
        for handle in list(self._handles):
            self.cancel(handle)
