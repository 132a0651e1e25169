from __future__ import annotations

from datetime import datetime, timedelta

import numpy as np
import pytest
from hypothesis import assume, given
from hypothesis import strategies as st

from loadboard.core.buffer import Sample
from loadboard.core.channels import HOST_GROUPS, LOAD_TEST_GROUPS, ChannelGroup, SeriesSpec, XMode, group_by_key
from loadboard.render.curves import Path, area_path, cardinal_controls, line_path
from loadboard.render.scales import (
    DEFAULT_MARGIN,
    LinearScale,
    PointScale,
    TimeScale,
    build_scales,
    stack_values,
    ticks,
    value_domain,
)

T0 = datetime(2024, 5, 1, 12, 0, 0)
MEMORY = group_by_key(HOST_GROUPS, "memory")
RESPONSE = group_by_key(LOAD_TEST_GROUPS, "response_times")


def _samples(rows: list[dict[str, float]]) -> list[Sample]:
    return [Sample(T0 + timedelta(seconds=i), row) for i, row in enumerate(rows)]


@pytest.mark.parametrize(
    "start,stop,count,expected",
    [
        (0, 10, 5, [0, 2, 4, 6, 8, 10]),
        (0, 1, 5, [0, 0.2, 0.4, 0.6, 0.8, 1.0]),
        (0, 110, 6, [0, 20, 40, 60, 80, 100]),
        (10, 0, 5, [10, 8, 6, 4, 2, 0]),
        (3, 3, 5, [3]),
    ],
)
def test_ticks_are_round_numbers(start: float, stop: float, count: int, expected: list[float]) -> None:
    assert ticks(start, stop, count) == pytest.approx(expected)


def test_ticks_reject_degenerate_requests() -> None:
    assert ticks(0, 10, 0) == []
    assert ticks(0, float("inf"), 5) == []


def test_linear_scale_maps_and_inverts() -> None:
    scale = LinearScale((0.0, 100.0), (200.0, 0.0))
    assert float(scale(25.0)) == 150.0
    assert scale.invert(150.0) == 25.0
    flat = LinearScale((5.0, 5.0), (0.0, 10.0))
    assert flat.domain == (5.0, 6.0)


def test_point_scale_keeps_positions_stable_while_filling_slots() -> None:
    partial = PointScale(3, (0.0, 100.0), slots=10)
    full = PointScale(10, (0.0, 100.0))
    np.testing.assert_allclose(partial.positions(), full.positions()[:3])
    assert partial.key == full.key
    # padding keeps the outer points off the edges
    assert 0.0 < full.position(0) < full.position(9) < 100.0
    assert full.position(9) - full.position(0) == pytest.approx(full.step * 9)


def test_time_scale_spreads_by_elapsed_seconds() -> None:
    stamps = [T0, T0 + timedelta(seconds=1), T0 + timedelta(seconds=4)]
    scale = TimeScale(stamps, (0.0, 400.0))
    np.testing.assert_allclose(scale.positions(), [0.0, 100.0, 400.0])
    assert TimeScale([T0], (0.0, 400.0))(T0) == 200.0


def test_stacked_group_accumulates_series() -> None:
    samples = _samples([{"used_gb": 4, "available_gb": 4}, {"used_gb": 6, "available_gb": 2}])
    stacks = stack_values(MEMORY, samples)
    lower, upper = stacks["available_gb"]
    np.testing.assert_allclose(lower, [4, 6])
    np.testing.assert_allclose(upper, [8, 8])
    assert value_domain(MEMORY, stacks) == pytest.approx((0.0, 8.8))


_gb = st.floats(min_value=0.0, max_value=1e6, allow_nan=False)


@given(st.lists(st.tuples(_gb, _gb), min_size=1, max_size=30))
def test_stacked_domain_tops_out_at_the_largest_total(rows: list[tuple[float, float]]) -> None:
    assume(max(a + b for a, b in rows) > 1e-6)
    samples = _samples([{"used_gb": a, "available_gb": b} for a, b in rows])
    lo, hi = value_domain(MEMORY, stack_values(MEMORY, samples))
    assert lo == 0.0
    assert hi == pytest.approx(max(a + b for a, b in rows) * 1.1)


def test_unstacked_domain_includes_negatives_and_zero() -> None:
    group = ChannelGroup("g", "G", "", (SeriesSpec("a", "A", "#fff"),))
    stacks = stack_values(group, _samples([{"a": -5}, {"a": 10}]))
    assert value_domain(group, stacks) == pytest.approx((-5.0, 11.0))
    zeros = stack_values(group, _samples([{"a": 0}, {"a": 0}]))
    assert value_domain(group, zeros) == (0.0, 1.0)


def test_build_scales_needs_two_samples_and_room() -> None:
    two = _samples([{"avg": 1}, {"avg": 2}])
    assert build_scales(RESPONSE, two[:1], 400, 300) is None
    assert build_scales(RESPONSE, two, 60, 300) is None

    scales = build_scales(RESPONSE, two, 400, 300, slots=10)
    assert scales is not None
    assert scales.count == 2
    assert scales.inner_width == 400 - DEFAULT_MARGIN.left - DEFAULT_MARGIN.right
    assert scales.labels == ("12:00:00", "12:00:01")
    assert scales.domain_key == (("index", 10, (0.0, scales.inner_width)), scales.y.domain)


def test_time_mode_groups_use_time_scale() -> None:
    group = ChannelGroup("t", "T", "", (SeriesSpec("a", "A", "#fff"),), x_mode=XMode.TIME)
    scales = build_scales(group, _samples([{"a": 1}, {"a": 2}, {"a": 3}]), 400, 300)
    assert scales is not None
    assert isinstance(scales.x, TimeScale)


def test_line_path_passes_through_every_point() -> None:
    xs = np.array([0.0, 10.0, 20.0, 30.0])
    ys = np.array([5.0, 15.0, 5.0, 15.0])
    path = line_path(xs, ys)
    assert [cmd[0] for cmd in path.commands] == ["M", "C", "C", "C"]
    assert path.vertices() == list(zip(xs, ys))

    tail = line_path(xs, ys, start=2)
    assert tail.vertices() == [(20.0, 5.0), (30.0, 15.0)]


def test_collinear_points_keep_controls_on_the_line() -> None:
    xs = np.arange(5, dtype=float)
    controls = cardinal_controls(xs, 2 * xs)
    assert controls.shape == (4, 4)
    np.testing.assert_allclose(controls[:, 1], 2 * controls[:, 0])
    np.testing.assert_allclose(controls[:, 3], 2 * controls[:, 2])
    assert cardinal_controls(xs[:1], xs[:1]).shape == (0, 4)


def test_area_path_closes_back_along_the_baseline() -> None:
    xs = np.array([0.0, 10.0, 20.0, 30.0, 40.0])
    tops = np.array([1.0, 2.0, 3.0, 2.0, 1.0])
    bottoms = np.zeros(5)
    area = area_path(xs, tops, bottoms, start=2)
    kinds = [cmd[0] for cmd in area.commands]
    assert kinds == ["M", "C", "C", "L", "C", "C", "Z"]
    assert area.vertices()[3:] == [(40.0, 0.0), (30.0, 0.0), (20.0, 0.0)]
    assert not area_path(xs, tops, bottoms, start=4)
    assert len(Path().move_to(0, 0).close()) == 2
