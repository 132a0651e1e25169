"""Paint one channel group onto a persistent surface.

Two paint modes share the renderer's state:

``FULL``
    Clear, draw grid and axes, then draw every series up to the reveal
    progress.
``INCREMENTAL``
    Draw only the segment from the last drawn sample to the newest one on top
    of the existing raster. Requires a previous non-empty paint over the same
    scale domain; otherwise nothing is drawn and the renderer marks itself
    dirty so the next selection is ``FULL``.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import StrEnum

import numpy as np

from ..core.buffer import SeriesBuffer
from ..core.channels import ChannelGroup, SeriesKind, SeriesSpec
from .curves import TENSION, area_path, line_path
from .scales import DEFAULT_MARGIN, ChartScales, Margin, build_scales
from .surface import Fill, Stroke, Surface

logger = logging.getLogger(__name__)

INCREMENTAL_THRESHOLD = 5
GRID_COLUMNS = 8
X_LABELS = 6
Y_TICKS = 6
CONTEXT_POINTS = 2
GRADIENT_FLOOR_ALPHA = 0x10 / 255


class PaintMode(StrEnum):
    FULL = "full"
    INCREMENTAL = "incremental"


@dataclass(frozen=True)
class ChartTheme:
    grid: str = "#f0f0f0"
    axis: str = "#374151"
    text: str = "#374151"
    font_size: float = 12.0
    line_width: float = 2.0
    area_stroke_alpha: float = 0.8
    point_radius: float = 3.0
    halo_radius: float = 6.0
    halo_alpha: float = 0.3


LIGHT_THEME = ChartTheme()
DARK_THEME = ChartTheme(grid="#1f2937", axis="#9ca3af", text="#d1d5db")


def format_tick(value: float) -> str:
    if value == int(value):
        return str(int(value))
    return f"{value:.6g}"


class ChartRenderer:
    def __init__(
        self,
        group: ChannelGroup,
        buffer: SeriesBuffer,
        *,
        margin: Margin = DEFAULT_MARGIN,
        theme: ChartTheme = LIGHT_THEME,
        slots: int | None = None,
        incremental_threshold: int = INCREMENTAL_THRESHOLD,
        tension: float = TENSION,
    ) -> None:
        self.group = group
        self.buffer = buffer
        self.margin = margin
        self.theme = theme
        self.slots = slots
        self.incremental_threshold = incremental_threshold
        self.tension = tension
        self.surface: Surface | None = None
        self.width = 0.0
        self.height = 0.0
        self.drawn_count = 0
        self.dirty = True
        self.last_reason = "first"
        self.last_scales: ChartScales | None = None
        self._drawn_domain: tuple | None = None
        self._drawn_evicted = 0
        self._drawn_appended = 0

    def attach(
        self, surface: Surface, width: float, height: float, device_pixel_ratio: float = 1.0
    ) -> None:
        self.surface = surface
        self.resize(width, height, device_pixel_ratio)

    def resize(self, width: float, height: float, device_pixel_ratio: float = 1.0) -> None:
        self.width = float(width)
        self.height = float(height)
        if self.surface is not None:
            self.surface.resize(self.width, self.height, device_pixel_ratio)
        self.invalidate()

    def invalidate(self) -> None:
        self.dirty = True

    def reset(self) -> None:
        """Forget everything painted so far (history cleared)."""

        self.drawn_count = 0
        self.last_scales = None
        self._drawn_domain = None
        self._drawn_evicted = 0
        self._drawn_appended = 0
        self.dirty = True

    def scales(self) -> ChartScales | None:
        return build_scales(
            self.group, self.buffer.snapshot(), self.width, self.height, self.margin, self.slots
        )

    def select_mode(self, scales: ChartScales | None = None) -> PaintMode | None:
        """Pick the paint mode for the buffer's current contents, or ``None`` if up to date."""

        n = len(self.buffer)
        if self.dirty or self.drawn_count == 0:
            if n == 0 and not self.dirty:
                return None
            self.last_reason = "dirty" if self.dirty and self.drawn_count else "first"
            return PaintMode.FULL
        if self.buffer.appended < self._drawn_appended or n < self.drawn_count:
            self.last_reason = "shrunk"
            return PaintMode.FULL
        if self.buffer.evicted != self._drawn_evicted:
            self.last_reason = "evicted"
            return PaintMode.FULL
        scales = scales if scales is not None else self.scales()
        if scales is None or scales.domain_key != self._drawn_domain:
            self.last_reason = "domain"
            return PaintMode.FULL
        delta = n - self.drawn_count
        if delta == 0:
            return None
        if delta > self.incremental_threshold:
            self.last_reason = "batch"
            return PaintMode.FULL
        self.last_reason = "append"
        return PaintMode.INCREMENTAL

    def paint(self, progress: float = 1.0, mode: PaintMode = PaintMode.FULL) -> bool:
        """Paint in ``mode``. Returns ``True`` if anything was drawn."""

        if self.surface is None:
            return False
        scales = self.scales()
        if mode is PaintMode.INCREMENTAL:
            return self._paint_incremental(scales)
        return self._paint_full(scales, progress)

    # ------------------------------------------------------------------
    # FULL

    def _paint_full(self, scales: ChartScales | None, progress: float) -> bool:
        surface = self.surface
        assert surface is not None
        surface.clear()
        self.last_scales = scales
        self._drawn_evicted = self.buffer.evicted
        self._drawn_appended = self.buffer.appended
        if scales is None:
            self.drawn_count = 0
            self._drawn_domain = None
            self.dirty = False
            return False
        self._draw_grid(scales)
        self._draw_axes(scales)
        n = scales.count
        visible = n if progress >= 1.0 else int(math.floor(n * max(progress, 0.0)))
        if visible >= 2:
            for spec in self.group.series:
                self._draw_series(spec, scales, 0, visible)
        self.drawn_count = visible
        self._drawn_domain = scales.domain_key
        # a partial reveal leaves the raster incomplete
        self.dirty = visible < n
        return True

    def _draw_grid(self, scales: ChartScales) -> None:
        surface = self.surface
        assert surface is not None
        m = scales.margin
        stroke = Stroke(self.theme.grid, 1.0)
        every = max(1, math.ceil(scales.count / GRID_COLUMNS))
        for i in range(0, scales.count, every):
            x = m.left + float(scales.positions[i])
            surface.draw_line(x, m.top, x, m.top + scales.inner_height, stroke)
        for tick in scales.y.ticks(Y_TICKS):
            y = m.top + float(scales.y(tick))
            surface.draw_line(m.left, y, m.left + scales.inner_width, y, stroke)

    def _draw_axes(self, scales: ChartScales) -> None:
        surface = self.surface
        assert surface is not None
        m = scales.margin
        theme = self.theme
        stroke = Stroke(theme.axis, 1.0)
        bottom = m.top + scales.inner_height
        surface.draw_line(m.left, bottom, m.left + scales.inner_width, bottom, stroke)
        every = max(1, math.ceil(scales.count / X_LABELS))
        for i in range(0, scales.count, every):
            surface.draw_text(
                m.left + float(scales.positions[i]),
                bottom + 10,
                scales.labels[i],
                theme.text,
                align="center",
                baseline="top",
                size=theme.font_size,
            )
        surface.draw_line(m.left, m.top, m.left, bottom, stroke)
        for tick in scales.y.ticks(Y_TICKS):
            surface.draw_text(
                m.left - 10,
                m.top + float(scales.y(tick)),
                format_tick(tick),
                theme.text,
                align="right",
                baseline="middle",
                size=theme.font_size,
            )

    # ------------------------------------------------------------------
    # INCREMENTAL

    def _paint_incremental(self, scales: ChartScales | None) -> bool:
        n = len(self.buffer)
        if (
            self.dirty
            or self.drawn_count < 2
            or scales is None
            or scales.domain_key != self._drawn_domain
            or self.buffer.evicted != self._drawn_evicted
            or n <= self.drawn_count
        ):
            logger.debug("Incremental paint precondition failed for %s", self.group.key)
            self.dirty = True
            return False
        first = self.drawn_count - 1
        for spec in self.group.series:
            self._draw_series(spec, scales, first, n)
        self.last_scales = scales
        self.drawn_count = n
        self._drawn_appended = self.buffer.appended
        return True

    # ------------------------------------------------------------------
    # series

    def _draw_series(self, spec: SeriesSpec, scales: ChartScales, first: int, end: int) -> None:
        """Draw samples ``first .. end-1`` of one series; earlier points shape the curve only."""

        surface = self.surface
        assert surface is not None
        m = scales.margin
        lo = max(0, first - CONTEXT_POINTS)
        xs = m.left + scales.positions[lo:end]
        y0, y1 = scales.stacks[spec.key]
        tops = m.top + np.asarray(scales.y(y1[lo:end]), dtype=float)
        start = first - lo
        if len(xs) - start < 2:
            return
        if spec.kind is SeriesKind.AREA:
            bottoms = m.top + np.asarray(scales.y(y0[lo:end]), dtype=float)
            fill = Fill(
                spec.color,
                alpha=self.group.opacity,
                alpha_to=GRADIENT_FLOOR_ALPHA,
                top=m.top,
                bottom=m.top + scales.inner_height,
            )
            surface.fill_path(area_path(xs, tops, bottoms, start, self.tension), fill)
            stroke = Stroke(spec.color, self.theme.line_width, self.theme.area_stroke_alpha)
            surface.stroke_path(line_path(xs, tops, start, self.tension), stroke)
            return
        surface.stroke_path(
            line_path(xs, tops, start, self.tension), Stroke(spec.color, self.theme.line_width)
        )
        if self.group.show_points:
            # skip the joint point already drawn by the previous paint
            from_index = start + 1 if first > 0 else start
            for x, y in zip(xs[from_index:], tops[from_index:]):
                surface.draw_circle(float(x), float(y), self.theme.halo_radius, spec.color, self.theme.halo_alpha)
                surface.draw_circle(float(x), float(y), self.theme.point_radius, spec.color)


__all__ = [
    "ChartRenderer",
    "ChartTheme",
    "DARK_THEME",
    "INCREMENTAL_THRESHOLD",
    "LIGHT_THEME",
    "PaintMode",
    "format_tick",
]
