"""Pointer-to-sample mapping and tooltip state."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .renderer import ChartRenderer

TOOLTIP_OFFSET = 10.0


@dataclass(frozen=True)
class TooltipRow:
    name: str
    value: float
    color: str


@dataclass(frozen=True)
class Tooltip:
    index: int
    label: str
    rows: tuple[TooltipRow, ...]
    anchor: tuple[float, float]


class PointLocator:
    """Resolve pointer positions against the renderer's last painted scales."""

    def __init__(self, renderer: ChartRenderer) -> None:
        self.renderer = renderer
        self.tooltip: Tooltip | None = None

    def locate(self, pointer_x: float) -> int | None:
        """Index of the drawn sample nearest to ``pointer_x``; samples a reveal has not reached are skipped."""

        scales = self.renderer.last_scales
        if scales is None:
            return None
        drawn = scales.positions[: self.renderer.drawn_count]
        if drawn.size == 0:
            return None
        relative = pointer_x - scales.margin.left
        # argmin returns the first minimum, so ties resolve to the earlier sample
        return int(np.argmin(np.abs(drawn - relative)))

    def hover(self, pointer_x: float, pointer_y: float) -> Tooltip | None:
        index = self.locate(pointer_x)
        scales = self.renderer.last_scales
        if index is None or scales is None:
            self.tooltip = None
            return None
        sample = scales.samples[index]
        rows = tuple(
            TooltipRow(spec.label, sample.value(spec.key), spec.color)
            for spec in self.renderer.group.series
        )
        self.tooltip = Tooltip(
            index=index,
            label=scales.labels[index],
            rows=rows,
            anchor=(pointer_x + TOOLTIP_OFFSET, pointer_y - TOOLTIP_OFFSET),
        )
        return self.tooltip

    def leave(self) -> None:
        self.tooltip = None


__all__ = ["PointLocator", "Tooltip", "TooltipRow"]
