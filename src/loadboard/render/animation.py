"""Eased reveal animation driven by a cancellable scheduler handle."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from ..core.scheduling import FrameScheduler, ManualScheduler

logger = logging.getLogger(__name__)

DURATION_MS = 800.0
FRAME_MS = 16.0


def ease_out_cubic(t: float) -> float:
    t = min(max(t, 0.0), 1.0)
    return 1.0 - (1.0 - t) ** 3


class ChartAnimator:
    """Calls ``on_frame(progress)`` until progress reaches 1.

    Only one reveal runs at a time: :meth:`start` cancels the previous handle
    before scheduling, so a stale callback can never fire into a newer reveal.
    """

    def __init__(
        self,
        scheduler: FrameScheduler,
        duration_ms: float = DURATION_MS,
        frame_ms: float = FRAME_MS,
    ) -> None:
        self.scheduler = scheduler
        self.duration_ms = duration_ms
        self.frame_ms = frame_ms
        self._handle: Any = None
        self._started_at = 0.0
        self._on_frame: Callable[[float], None] | None = None
        self._on_done: Callable[[], None] | None = None
        self.frames = 0
        self._generation = 0

    @property
    def running(self) -> bool:
        return self._handle is not None

    def start(self, on_frame: Callable[[float], None], on_done: Callable[[], None] | None = None) -> None:
        self.cancel()
        self._on_frame = on_frame
        self._on_done = on_done
        self._started_at = self.scheduler.now()
        self.frames = 0
        self._generation += 1
        self._handle = self.scheduler.call_later(0, self._tick)

    def cancel(self) -> bool:
        """Stop the running reveal. Returns ``True`` if one was interrupted."""

        if self._handle is None:
            return False
        self.scheduler.cancel(self._handle)
        self._handle = None
        self._on_frame = None
        self._on_done = None
        self._generation += 1
        logger.debug("Animation cancelled after %d frames", self.frames)
        return True

    def _tick(self) -> None:
        on_frame = self._on_frame
        if on_frame is None:
            return
        generation = self._generation
        elapsed = (self.scheduler.now() - self._started_at) * 1000.0
        t = min(elapsed / self.duration_ms, 1.0) if self.duration_ms > 0 else 1.0
        self.frames += 1
        on_frame(ease_out_cubic(t))
        if self._generation != generation:
            return
        if t < 1.0:
            self._handle = self.scheduler.call_later(self.frame_ms, self._tick)
            return
        on_done = self._on_done
        self._handle = None
        self._on_frame = None
        self._on_done = None
        if on_done is not None:
            on_done()


__all__ = ["ChartAnimator", "DURATION_MS", "FRAME_MS", "FrameScheduler", "ManualScheduler", "ease_out_cubic"]
