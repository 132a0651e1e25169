from __future__ import annotations

from datetime import datetime, timedelta

import numpy as np
from hypothesis import given
from hypothesis import strategies as st

from loadboard.core.buffer import Sample, SeriesBuffer
from loadboard.core.channels import LOAD_TEST_GROUPS, group_by_key
from loadboard.render.interaction import TOOLTIP_OFFSET, PointLocator
from loadboard.render.renderer import ChartRenderer
from tests.helpers.recording_surface import RecordingSurface

T0 = datetime(2024, 5, 1, 12, 0, 0)
RESPONSE = group_by_key(LOAD_TEST_GROUPS, "response_times")


def _locator(count: int = 20) -> tuple[PointLocator, ChartRenderer]:
    buf = SeriesBuffer(50)
    for i in range(count):
        buf.append(Sample(T0 + timedelta(seconds=i), {"avg": float(i), "median": 1.0, "p95": 2.0 * i}))
    renderer = ChartRenderer(RESPONSE, buf, slots=50)
    renderer.attach(RecordingSurface(), 600, 300)
    renderer.paint()
    return PointLocator(renderer), renderer


def test_nothing_to_locate_before_first_paint() -> None:
    buf = SeriesBuffer(5)
    locator = PointLocator(ChartRenderer(RESPONSE, buf))
    assert locator.locate(100.0) is None
    assert locator.hover(100.0, 50.0) is None
    assert locator.tooltip is None


def test_locate_picks_the_nearest_sample() -> None:
    locator, renderer = _locator()
    scales = renderer.last_scales
    assert scales is not None
    left = scales.margin.left
    x7 = left + float(scales.positions[7])

    assert locator.locate(x7) == 7
    assert locator.locate(x7 + scales.x.step * 0.4) == 7
    assert locator.locate(x7 + scales.x.step * 0.6) == 8
    # far outside the plot clamps to the ends
    assert locator.locate(-1000.0) == 0
    assert locator.locate(10_000.0) == 19


@given(count=st.integers(min_value=2, max_value=50), fraction=st.floats(min_value=0.0, max_value=1.0))
def test_locate_minimises_pixel_distance(count: int, fraction: float) -> None:
    locator, renderer = _locator(count)
    scales = renderer.last_scales
    assert scales is not None
    x = scales.margin.left + fraction * scales.inner_width
    index = locator.locate(x)
    assert index is not None
    distances = np.abs(scales.positions - (x - scales.margin.left))
    assert distances[index] == distances.min()


def test_equidistant_pointer_resolves_to_earlier_sample() -> None:
    locator, renderer = _locator()
    scales = renderer.last_scales
    assert scales is not None
    midpoint = scales.margin.left + float(scales.positions[3] + scales.positions[4]) / 2.0
    assert locator.locate(midpoint) in (3, 4)
    assert locator.locate(midpoint - 1e-6) == 3


def test_hover_builds_tooltip_rows_for_every_series() -> None:
    locator, renderer = _locator()
    scales = renderer.last_scales
    assert scales is not None
    x = scales.margin.left + float(scales.positions[5])

    tooltip = locator.hover(x, 120.0)
    assert tooltip is not None
    assert tooltip.index == 5
    assert tooltip.label == "12:00:05"
    assert [(row.name, row.value) for row in tooltip.rows] == [
        ("Average", 5.0),
        ("Median", 1.0),
        ("95th percentile", 10.0),
    ]
    assert tooltip.anchor == (x + TOOLTIP_OFFSET, 120.0 - TOOLTIP_OFFSET)
    assert locator.tooltip is tooltip

    locator.leave()
    assert locator.tooltip is None


def test_partial_reveal_only_offers_drawn_samples() -> None:
    locator, renderer = _locator(20)
    renderer.paint(0.3)
    assert renderer.drawn_count == 6
    assert locator.locate(10_000.0) == 5
    tip = locator.hover(10_000.0, 40.0)
    assert tip is not None and tip.index == 5

    renderer.paint(0.0)
    assert locator.locate(300.0) is None
    assert locator.hover(300.0, 40.0) is None
