"""Coordinate mappings for one channel group's visible window.

Horizontal positions come either from sample ordinals (:class:`PointScale`,
d3 ``scalePoint`` geometry) or from parsed timestamps (:class:`TimeScale`).
A group picks one mode for its lifetime; the nearest-point lookup relies on
that. Vertical positions come from a :class:`LinearScale` whose domain is
derived from the raw values, or from the cumulative stack tops for stacked
groups.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

import numpy as np

from ..core.buffer import Sample
from ..core.channels import ChannelGroup, XMode

logger = logging.getLogger(__name__)

HEADROOM = 1.1
POINT_PADDING = 0.1

_E10 = math.sqrt(50)
_E5 = math.sqrt(10)
_E2 = math.sqrt(2)


@dataclass(frozen=True)
class Margin:
    top: float = 20.0
    right: float = 30.0
    bottom: float = 40.0
    left: float = 50.0


DEFAULT_MARGIN = Margin()


def _js_round(value: float) -> int:
    return math.floor(value + 0.5)


def _tick_spec(start: float, stop: float, count: float) -> tuple[int, int, float]:
    step = (stop - start) / max(0.0, count)
    power = math.floor(math.log10(step))
    error = step / 10**power
    factor = 10 if error >= _E10 else 5 if error >= _E5 else 2 if error >= _E2 else 1
    if power < 0:
        inc = 10 ** (-power) / factor
        i1 = _js_round(start * inc)
        i2 = _js_round(stop * inc)
        if i1 / inc < start:
            i1 += 1
        if i2 / inc > stop:
            i2 -= 1
        inc = -inc
    else:
        inc = 10**power * factor
        i1 = _js_round(start / inc)
        i2 = _js_round(stop / inc)
        if i1 * inc < start:
            i1 += 1
        if i2 * inc > stop:
            i2 -= 1
    if i2 < i1 and 0.5 <= count < 2:
        return _tick_spec(start, stop, count * 2)
    return i1, i2, inc


def ticks(start: float, stop: float, count: int) -> list[float]:
    """Round tick values covering ``[start, stop]``, as d3's ``ticks``."""

    if count <= 0 or not (math.isfinite(start) and math.isfinite(stop)):
        return []
    if start == stop:
        return [start]
    reverse = stop < start
    lo, hi = (stop, start) if reverse else (start, stop)
    i1, i2, inc = _tick_spec(lo, hi, count)
    if i2 < i1:
        return []
    if inc < 0:
        values = [(i1 + i) / -inc for i in range(i2 - i1 + 1)]
    else:
        values = [(i1 + i) * inc for i in range(i2 - i1 + 1)]
    return values[::-1] if reverse else values


class LinearScale:
    def __init__(self, domain: tuple[float, float], range_: tuple[float, float]) -> None:
        lo, hi = domain
        if hi == lo:
            hi = lo + 1.0
        self.domain = (float(lo), float(hi))
        self.range = (float(range_[0]), float(range_[1]))

    def __call__(self, value):  # float or ndarray
        (d0, d1), (r0, r1) = self.domain, self.range
        return r0 + (np.asarray(value, dtype=float) - d0) * (r1 - r0) / (d1 - d0)

    def invert(self, pixel: float) -> float:
        (d0, d1), (r0, r1) = self.domain, self.range
        if r1 == r0:
            return d0
        return d0 + (pixel - r0) * (d1 - d0) / (r1 - r0)

    def ticks(self, count: int = 10) -> list[float]:
        return ticks(self.domain[0], self.domain[1], count)


class PointScale:
    """Evenly spaced positions for ``count`` ordinals.

    ``slots`` fixes the number of positions the range is divided into, so that
    appending to a buffer that has not reached capacity leaves earlier points
    where they were.
    """

    def __init__(
        self,
        count: int,
        range_: tuple[float, float],
        padding: float = POINT_PADDING,
        slots: int | None = None,
    ) -> None:
        self.count = max(int(count), 0)
        self.slots = max(self.count, int(slots or 0))
        self.padding = padding
        self.range = (float(range_[0]), float(range_[1]))
        r0, r1 = self.range
        self.step = (r1 - r0) / max(1.0, self.slots - 1 + 2 * padding)
        self.start = r0 + (r1 - r0 - self.step * (self.slots - 1)) * 0.5

    @property
    def key(self) -> tuple:
        return ("index", self.slots, self.range)

    def position(self, index: int) -> float:
        return self.start + self.step * index

    def positions(self) -> np.ndarray:
        return self.start + self.step * np.arange(self.count, dtype=float)


class TimeScale:
    def __init__(self, stamps: Sequence[datetime], range_: tuple[float, float]) -> None:
        self.stamps = tuple(stamps)
        self.range = (float(range_[0]), float(range_[1]))
        self.first = self.stamps[0] if self.stamps else None
        self.last = self.stamps[-1] if self.stamps else None

    @property
    def key(self) -> tuple:
        return ("time", self.first, self.last, self.range)

    def __call__(self, stamp: datetime) -> float:
        r0, r1 = self.range
        if self.first is None or self.last is None or self.first == self.last:
            return (r0 + r1) / 2.0
        span = (self.last - self.first).total_seconds()
        return r0 + (stamp - self.first).total_seconds() / span * (r1 - r0)

    def positions(self) -> np.ndarray:
        return np.array([self(stamp) for stamp in self.stamps], dtype=float)


def stack_values(
    group: ChannelGroup, samples: Sequence[Sample]
) -> dict[str, tuple[np.ndarray, np.ndarray]]:
    """Per-series ``(y0, y1)`` arrays. Unstacked series sit on zero."""

    running = np.zeros(len(samples), dtype=float)
    stacks: dict[str, tuple[np.ndarray, np.ndarray]] = {}
    for spec in group.series:
        values = np.array([sample.value(spec.key) for sample in samples], dtype=float)
        if group.stacked:
            lower = running.copy()
            running = running + values
            stacks[spec.key] = (lower, running.copy())
        else:
            stacks[spec.key] = (np.zeros_like(values), values)
    return stacks


def value_domain(group: ChannelGroup, stacks: dict[str, tuple[np.ndarray, np.ndarray]]) -> tuple[float, float] | None:
    tops = [y1[np.isfinite(y1)] for _, y1 in stacks.values()]
    finite = np.concatenate(tops) if tops else np.array([], dtype=float)
    if finite.size == 0:
        return None
    vmax = float(finite.max())
    if group.stacked:
        lo, hi = 0.0, vmax * HEADROOM
    else:
        lo, hi = min(0.0, float(finite.min())), vmax * HEADROOM
        hi = max(hi, max(vmax, 0.0))
    if hi <= lo:
        hi = lo + 1.0
    return lo, hi


@dataclass(frozen=True)
class ChartScales:
    x: PointScale | TimeScale
    y: LinearScale
    positions: np.ndarray
    stacks: dict[str, tuple[np.ndarray, np.ndarray]]
    labels: tuple[str, ...]
    samples: tuple[Sample, ...]
    margin: Margin
    inner_width: float
    inner_height: float

    @property
    def count(self) -> int:
        return len(self.labels)

    @property
    def domain_key(self) -> tuple:
        return (self.x.key, self.y.domain)


def build_scales(
    group: ChannelGroup,
    samples: Sequence[Sample],
    width: float,
    height: float,
    margin: Margin = DEFAULT_MARGIN,
    slots: int | None = None,
) -> ChartScales | None:
    """Scales for the visible window, or ``None`` when there is nothing to draw."""

    inner_width = width - margin.left - margin.right
    inner_height = height - margin.top - margin.bottom
    if len(samples) < 2 or not group.series or inner_width <= 0 or inner_height <= 0:
        return None
    stacks = stack_values(group, samples)
    domain = value_domain(group, stacks)
    if domain is None:
        logger.debug("No finite values for %s; nothing to scale", group.key)
        return None
    x: PointScale | TimeScale
    if group.x_mode is XMode.TIME:
        x = TimeScale([sample.timestamp for sample in samples], (0.0, inner_width))
    else:
        x = PointScale(len(samples), (0.0, inner_width), slots=slots)
    return ChartScales(
        x=x,
        y=LinearScale(domain, (inner_height, 0.0)),
        positions=x.positions(),
        stacks=stacks,
        labels=tuple(sample.label for sample in samples),
        samples=tuple(samples),
        margin=margin,
        inner_width=inner_width,
        inner_height=inner_height,
    )


__all__ = [
    "ChartScales",
    "DEFAULT_MARGIN",
    "LinearScale",
    "Margin",
    "PointScale",
    "TimeScale",
    "build_scales",
    "stack_values",
    "ticks",
    "value_domain",
]
