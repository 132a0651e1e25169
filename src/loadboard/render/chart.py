"""One chart: a channel group bound to its buffer, renderer, animator and locator."""

from __future__ import annotations

import logging
from collections.abc import Callable, Hashable
from typing import Any

from ..core.buffer import SeriesBuffer
from ..core.channels import ChannelGroup
from ..core.coordinator import FeedCoordinator
from ..core.scheduling import FrameScheduler
from .animation import DURATION_MS, FRAME_MS, ChartAnimator
from .interaction import PointLocator, Tooltip
from .renderer import INCREMENTAL_THRESHOLD, LIGHT_THEME, ChartRenderer, ChartTheme, PaintMode
from .scales import DEFAULT_MARGIN, Margin
from .surface import Surface

logger = logging.getLogger(__name__)

ANIMATED_REASONS = frozenset({"first", "domain"})


class ChartView:
    """Mode-selection policy for one chart.

    A ``FULL`` paint is revealed with the eased animation on first paint and
    when the scale domain moves; other full repaints are instant. Small
    trickles of new samples use ``INCREMENTAL``.

    ``version`` is the owning coordinator's counter. A refresh with an
    unchanged version and a clean renderer paints nothing. New data arriving
    mid-reveal abandons the reveal and repaints at rest. Without a
    coordinator the buffer's own counters stand in for the version.
    """

    def __init__(
        self,
        group: ChannelGroup,
        buffer: SeriesBuffer,
        scheduler: FrameScheduler,
        *,
        version: Callable[[], int] | None = None,
        animate: bool = True,
        animation_ms: float = DURATION_MS,
        frame_interval_ms: float = FRAME_MS,
        incremental_threshold: int = INCREMENTAL_THRESHOLD,
        slots: int | None = None,
        margin: Margin = DEFAULT_MARGIN,
        theme: ChartTheme = LIGHT_THEME,
    ) -> None:
        self.group = group
        self.animate = animate
        self.renderer = ChartRenderer(
            group,
            buffer,
            margin=margin,
            theme=theme,
            slots=slots if slots is not None else buffer.capacity,
            incremental_threshold=incremental_threshold,
        )
        self.animator = ChartAnimator(scheduler, animation_ms, frame_interval_ms)
        self.locator = PointLocator(self.renderer)
        self.last_mode: PaintMode | None = None
        self._version = version
        self._seen: Hashable = None
        self._painted: list[Callable[[], None]] = []

    @classmethod
    def for_feed(
        cls, coordinator: FeedCoordinator, group: ChannelGroup, scheduler: FrameScheduler, **options: Any
    ) -> ChartView:
        """A view over ``coordinator``'s buffer for ``group``, synchronised on its version."""

        return cls(group, coordinator.buffer(group.key), scheduler, version=lambda: coordinator.version, **options)

    @property
    def buffer(self) -> SeriesBuffer:
        return self.renderer.buffer

    @property
    def has_data(self) -> bool:
        return self.renderer.last_scales is not None

    def current_version(self) -> Hashable:
        if self._version is not None:
            return self._version()
        buf = self.buffer
        return (buf.appended, buf.evicted, len(buf))

    def on_painted(self, listener: Callable[[], None]) -> None:
        self._painted.append(listener)

    def attach(self, surface: Surface, width: float, height: float, device_pixel_ratio: float = 1.0) -> None:
        self.renderer.attach(surface, width, height, device_pixel_ratio)

    def resize(self, width: float, height: float, device_pixel_ratio: float = 1.0) -> None:
        if self.animator.cancel():
            self.renderer.invalidate()
        self.renderer.resize(width, height, device_pixel_ratio)
        self.refresh()

    def reset(self) -> None:
        """Drop paint state after the history was cleared."""

        self.animator.cancel()
        self.renderer.reset()
        self.locator.leave()

    def refresh(self) -> PaintMode | None:
        """Bring the surface up to date with the buffer. Returns the mode used."""

        if self.renderer.surface is None:
            return None
        version = self.current_version()
        abandoned = False
        if self.animator.running:
            if version == self._seen:
                return None
            self.animator.cancel()
            self.renderer.invalidate()
            abandoned = True
            logger.debug("%s reveal abandoned for new data", self.group.key)
        elif version == self._seen and not self.renderer.dirty:
            return None
        self._seen = version
        mode = self.renderer.select_mode()
        if mode is None:
            return None
        if mode is PaintMode.INCREMENTAL:
            if not self.renderer.paint(1.0, PaintMode.INCREMENTAL):
                mode = PaintMode.FULL
                self.renderer.paint(1.0, PaintMode.FULL)
            self._notify()
        elif self._reveals() and not abandoned:
            self.animator.start(self._frame, self.refresh)
        else:
            self.renderer.paint(1.0, PaintMode.FULL)
            self._notify()
        self.last_mode = mode
        logger.debug("%s refreshed with %s (%s)", self.group.key, mode, self.renderer.last_reason)
        return mode

    def hover(self, x: float, y: float) -> Tooltip | None:
        return self.locator.hover(x, y)

    def leave(self) -> None:
        self.locator.leave()

    def _reveals(self) -> bool:
        return self.animate and self.renderer.last_reason in ANIMATED_REASONS and len(self.buffer) >= 2

    def _frame(self, progress: float) -> None:
        self.renderer.paint(progress, PaintMode.FULL)
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._painted):
            listener()


__all__ = ["ChartView"]
