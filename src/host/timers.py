"""Timer hosts - setInterval / setTimeout equivalents for the guard engine.

The engine never sleeps on its own. It asks a timer host to call it back,
which keeps ticks strictly sequential: a repeating timer is re-armed only
after its callback has returned.
"""

import asyncio
import heapq
import itertools
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Protocol

logger = logging.getLogger(__name__)


class TimerHost(Protocol):
    """Protocol for the page's timer API."""

    def now(self) -> float:
        """Milliseconds on a monotonic clock."""
        ...

    def set_interval(self, callback: Callable[[], None], interval_ms: float) -> int:
        """Call ``callback`` every ``interval_ms`` until cleared."""
        ...

    def set_timeout(self, callback: Callable[[], None], delay_ms: float) -> int:
        """Call ``callback`` once after ``delay_ms``."""
        ...

    def clear(self, timer_id: Optional[int]) -> None:
        """Cancel a timer. Unknown or None ids are ignored."""
        ...


@dataclass(order=True)
class _ScheduledTimer:
    due: float
    seq: int
    timer_id: int = field(compare=False)
    callback: Callable[[], None] = field(compare=False)
    interval: Optional[float] = field(default=None, compare=False)


class VirtualTimers:
    """Manual clock for simulations and tests.

    Time only moves through ``advance``/``sleep``. Due timers fire in
    (due time, creation order) order.
    """

    def __init__(self, start_ms: float = 0.0):
        self._now = start_ms
        self._queue: List[_ScheduledTimer] = []
        self._active: Dict[int, _ScheduledTimer] = {}
        self._ids = itertools.count(1)
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    def sleep(self, ms: float) -> None:
        """Move the clock without firing timers (time spent inside a callback)."""
        self._now += ms

    def set_interval(self, callback: Callable[[], None], interval_ms: float) -> int:
        return self._schedule(callback, interval_ms, repeat=True)

    def set_timeout(self, callback: Callable[[], None], delay_ms: float) -> int:
        return self._schedule(callback, delay_ms, repeat=False)

    def clear(self, timer_id: Optional[int]) -> None:
        if timer_id is None:
            return
        self._active.pop(timer_id, None)

    def pending(self) -> int:
        """Number of armed timers."""
        return len(self._active)

    def is_active(self, timer_id: Optional[int]) -> bool:
        return timer_id is not None and timer_id in self._active

    def advance(self, ms: float) -> int:
        """Advance the clock by ``ms`` firing every timer that falls due.

        Returns:
            Number of callbacks fired
        """
        target = self._now + ms
        fired = 0

        while self._queue and self._queue[0].due <= target:
            timer = heapq.heappop(self._queue)
            if self._active.get(timer.timer_id) is not timer:
                continue

            self._now = max(self._now, timer.due)
            if timer.interval is None:
                del self._active[timer.timer_id]

            timer.callback()
            fired += 1

            # Re-arm from the time the callback returned
            if timer.interval is not None and self._active.get(timer.timer_id) is timer:
                self._push(timer.timer_id, timer.callback, max(timer.interval, 1.0), timer.interval)

        self._now = max(self._now, target)
        return fired

    def _schedule(self, callback: Callable[[], None], delay_ms: float, repeat: bool) -> int:
        timer_id = next(self._ids)
        delay = max(float(delay_ms), 0.0)
        self._push(timer_id, callback, max(delay, 1.0) if repeat else delay, delay if repeat else None)
        return timer_id

    def _push(
        self,
        timer_id: int,
        callback: Callable[[], None],
        delay: float,
        interval: Optional[float],
    ) -> None:
        timer = _ScheduledTimer(
            due=self._now + delay,
            seq=next(self._seq),
            timer_id=timer_id,
            callback=callback,
            interval=interval,
        )
        self._active[timer_id] = timer
        heapq.heappush(self._queue, timer)


class AsyncioTimers:
    """Timer host backed by a running asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop
        self._handles: Dict[int, asyncio.TimerHandle] = {}
        self._ids = itertools.count(1)

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> float:
        return time.monotonic() * 1000.0

    def set_interval(self, callback: Callable[[], None], interval_ms: float) -> int:
        timer_id = next(self._ids)
        delay = max(float(interval_ms), 1.0) / 1000.0

        def _fire() -> None:
            if timer_id not in self._handles:
                return
            try:
                callback()
            except Exception:
                logger.exception("[Timers] Interval callback failed")
            if timer_id in self._handles:
                self._handles[timer_id] = self.loop.call_later(delay, _fire)

        self._handles[timer_id] = self.loop.call_later(delay, _fire)
        return timer_id

    def set_timeout(self, callback: Callable[[], None], delay_ms: float) -> int:
        timer_id = next(self._ids)

        def _fire() -> None:
            if self._handles.pop(timer_id, None) is None:
                return
            callback()

        self._handles[timer_id] = self.loop.call_later(max(float(delay_ms), 0.0) / 1000.0, _fire)
        return timer_id

    def clear(self, timer_id: Optional[int]) -> None:
        if timer_id is None:
            return
        handle = self._handles.pop(timer_id, None)
        if handle is not None:
            handle.cancel()

    def pending(self) -> int:
        return len(self._handles)
