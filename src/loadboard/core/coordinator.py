"""Gate incoming snapshots, append accepted ones, and publish a version counter.

A :class:`FeedCoordinator` owns the series buffers for one feed. It is the
only writer: renderers and locators read the buffers and compare
:attr:`FeedCoordinator.version` to notice new data.

Coalescing rule: when a snapshot arrives inside the throttle window it becomes
the pending snapshot (replacing any older pending one) and a trailing flush is
scheduled for the end of the window. If a fresh snapshot arrives after the
window has elapsed and the flush has not run yet, the fresh snapshot is applied
and the pending one is dropped, so the newest data always wins.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import datetime
from typing import Any

from .buffer import SeriesBuffer
from .reducer import Reduction, SnapshotReducer
from .scheduling import FrameScheduler

logger = logging.getLogger(__name__)

Listener = Callable[[], None]


class RedrawBatcher:
    """Collapse many redraw requests into one callback per dispatch."""

    def __init__(self, scheduler: FrameScheduler | None = None) -> None:
        self._scheduler = scheduler
        self._listeners: list[Listener] = []
        self._handle: Any = None
        self._requested = False
        self.dispatches = 0

    def connect(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def disconnect(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    @property
    def pending(self) -> bool:
        return self._requested

    def request(self) -> None:
        if self._requested:
            return
        self._requested = True
        if self._scheduler is None:
            self.dispatch()
            return
        self._handle = self._scheduler.call_later(0, self.dispatch)

    def cancel(self) -> None:
        if self._handle is not None and self._scheduler is not None:
            self._scheduler.cancel(self._handle)
        self._handle = None
        self._requested = False

    def dispatch(self) -> None:
        if not self._requested:
            return
        self._requested = False
        self._handle = None
        self.dispatches += 1
        for listener in list(self._listeners):
            listener()


class FeedCoordinator:
    def __init__(
        self,
        reducer: SnapshotReducer,
        *,
        capacity: int = 120,
        throttle_ms: float = 500.0,
        epsilon: float = 0.1,
        scheduler: FrameScheduler | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self.reducer = reducer
        self.capacity = capacity
        self.throttle_ms = float(throttle_ms)
        self.epsilon = float(epsilon)
        self._scheduler = scheduler
        if clock is not None:
            self._clock = clock
        elif scheduler is not None:
            self._clock = scheduler.now
        else:
            self._clock = time.monotonic
        self.buffers: dict[str, SeriesBuffer] = {
            group.key: SeriesBuffer(capacity) for group in reducer.groups
        }
        self.version = 0
        self.latest_raw: Any = None
        self.latest_summary: Any = None
        self.redraw = RedrawBatcher(scheduler)
        self._clear_listeners: list[Listener] = []
        self._pending: tuple[Any, datetime] | None = None
        self._flush_handle: Any = None
        self._last_applied: float | None = None

    @property
    def feed(self) -> str:
        return self.reducer.feed

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    def buffer(self, group_key: str) -> SeriesBuffer:
        return self.buffers[group_key]

    def on_clear(self, listener: Listener) -> None:
        self._clear_listeners.append(listener)

    def accept(
        self,
        raw: Any,
        *,
        now: float | None = None,
        received_at: datetime | None = None,
    ) -> bool:
        """Offer one raw snapshot. Returns ``True`` when it was appended."""

        moment = self._clock() if now is None else now
        stamp = received_at or datetime.now()
        if self._within_window(moment):
            self._pending = (raw, stamp)
            self._schedule_flush(moment)
            logger.debug("%s snapshot throttled; held as pending", self.feed)
            return False
        if self._pending is not None:
            logger.debug("%s pending snapshot superseded by a fresh one", self.feed)
        self._drop_pending()
        return self._apply(raw, stamp, moment)

    def flush(self, now: float | None = None) -> bool:
        """Apply the pending snapshot, if any. Used as the trailing edge of the throttle."""

        self._flush_handle = None
        if self._pending is None:
            return False
        raw, stamp = self._pending
        self._pending = None
        return self._apply(raw, stamp, self._clock() if now is None else now)

    def clear(self) -> None:
        for buf in self.buffers.values():
            buf.clear()
        self.latest_raw = None
        self.latest_summary = None
        self._drop_pending()
        self._last_applied = None
        self.reducer.reset()
        self.version += 1
        logger.info("%s history cleared (version %d)", self.feed, self.version)
        for listener in list(self._clear_listeners):
            listener()
        self.redraw.request()

    def _within_window(self, moment: float) -> bool:
        if self._last_applied is None:
            return False
        return (moment - self._last_applied) * 1000.0 < self.throttle_ms

    def _schedule_flush(self, moment: float) -> None:
        if self._scheduler is None or self._flush_handle is not None:
            return
        assert self._last_applied is not None
        remaining = self.throttle_ms - (moment - self._last_applied) * 1000.0
        self._flush_handle = self._scheduler.call_later(max(remaining, 0.0), self.flush)

    def _drop_pending(self) -> None:
        self._pending = None
        if self._flush_handle is not None and self._scheduler is not None:
            self._scheduler.cancel(self._flush_handle)
        self._flush_handle = None

    def _significant(self, reduction: Reduction) -> bool:
        primary = self.reducer.primary
        if primary is None or reduction.primary is None:
            return True
        last = self.buffers[primary[0]].latest()
        if last is None:
            return True
        return abs(reduction.primary - last.value(primary[1])) >= self.epsilon

    def _apply(self, raw: Any, stamp: datetime, moment: float) -> bool:
        reduction = self.reducer.reduce(raw, stamp)
        if not self._significant(reduction):
            logger.debug("%s snapshot below significance threshold; dropped", self.feed)
            return False
        for key, sample in reduction.samples.items():
            buf = self.buffers.get(key)
            if buf is not None:
                buf.append(sample)
        self.latest_raw = raw
        self.latest_summary = reduction.summary
        self._last_applied = moment
        self.version += 1
        self.redraw.request()
        return True


__all__ = ["FeedCoordinator", "RedrawBatcher"]
