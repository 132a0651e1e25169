"""Cancellable callback scheduling used by throttling, redraw batching and animation."""

from __future__ import annotations

import heapq
import itertools
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol


class FrameScheduler(Protocol):
    """Deferred-callback source.

    ``now()`` reports seconds on a monotonic clock; delays are given in
    milliseconds. ``cancel`` must accept handles that already fired.
    """

    def now(self) -> float: ...

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> Any: ...

    def cancel(self, handle: Any) -> None: ...


@dataclass(order=True)
class _Timer:
    due: float
    seq: int
    callback: Callable[[], None] = field(compare=False)
    cancelled: bool = field(default=False, compare=False)


class ManualScheduler:
    """Virtual-time scheduler. Nothing fires until :meth:`advance` is called."""

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self._queue: list[_Timer] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> _Timer:
        timer = _Timer(self._now + max(delay_ms, 0.0) / 1000.0, next(self._seq), callback)
        heapq.heappush(self._queue, timer)
        return timer

    def cancel(self, handle: Any) -> None:
        if isinstance(handle, _Timer):
            handle.cancelled = True

    @property
    def pending(self) -> int:
        return sum(1 for timer in self._queue if not timer.cancelled)

    def advance(self, delay_ms: float) -> int:
        """Move the clock forward, firing due callbacks in order. Returns the number fired."""

        target = self._now + max(delay_ms, 0.0) / 1000.0
        fired = 0
        while self._queue and self._queue[0].due <= target:
            timer = heapq.heappop(self._queue)
            if timer.cancelled:
                continue
            self._now = max(self._now, timer.due)
            timer.cancelled = True
            timer.callback()
            fired += 1
        self._now = target
        return fired

    def run_until_idle(self, limit: int = 10_000) -> int:
        """Fire everything queued, including callbacks scheduled while running."""

        fired = 0
        while fired < limit:
            live = [timer for timer in self._queue if not timer.cancelled]
            if not live:
                break
            self._now = max(self._now, min(live).due)
            fired += self.advance(0)
        return fired


__all__ = ["FrameScheduler", "ManualScheduler"]
