"""Clock abstraction driving the preview slideshow.

``AsyncioClock`` runs on the event loop's monotonic timer. Tests substitute a
clock that only moves when advanced.
"""

import asyncio
import logging
from typing import Callable, Optional, Protocol

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...

    @property
    def cancelled(self) -> bool: ...


class Clock(Protocol):
    def now(self) -> float:
        """Monotonic time in seconds."""

    def schedule_interval(self, period: float, callback: Callable[[], None]) -> TimerHandle:
        """Call ``callback`` every ``period`` seconds until the handle is cancelled."""


class _IntervalHandle:
    def __init__(self):
        self._cancelled = False
        self._timer: Optional[asyncio.TimerHandle] = None

    def cancel(self) -> None:
        self._cancelled = True
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class AsyncioClock:
    """Interval timer on the running event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop or asyncio.get_running_loop()

    def now(self) -> float:
        return self.loop.time()

    def schedule_interval(self, period: float, callback: Callable[[], None]) -> _IntervalHandle:
        if period <= 0:
            raise ValueError("Interval period must be positive")

        handle = _IntervalHandle()
        loop = self.loop

        def tick():
            if handle.cancelled:
                return
            # Re-arm first so a callback that cancels wins
            handle._timer = loop.call_later(period, tick)
            try:
                callback()
            except Exception as e:
                logger.error(f"Clock callback failed: {e}")

        handle._timer = loop.call_later(period, tick)
        return handle
