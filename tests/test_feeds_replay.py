from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from loadboard.contracts.error import BadInputError
from loadboard.core.coordinator import FeedCoordinator
from loadboard.core.feeds import FeedRouter
from loadboard.core.reducer import HostReducer, LoadTestReducer
from loadboard.core.replay import RunDescriptor, parse_instant, replay_run, synthesize_snapshots


def _stats(avg: float) -> dict[str, Any]:
    return {"stats": [{"name": "Aggregated", "num_requests": 1, "num_failures": 0, "avg_response_time": avg}]}


def _router(keep_history: bool = False) -> tuple[FeedRouter, FeedCoordinator, FeedCoordinator]:
    load = FeedCoordinator(LoadTestReducer(), throttle_ms=0.0, epsilon=0.0)
    host = FeedCoordinator(HostReducer(), throttle_ms=0.0, epsilon=0.0)
    return FeedRouter(load, clear_on_start=(host,), keep_history=keep_history), load, host


def test_stats_update_feeds_load_coordinator() -> None:
    router, load, _ = _router()
    assert router.dispatch({"type": "stats_update", "payload": {"stats": _stats(42)}}) is True
    assert load.buffer("response_times").values("avg") == [42.0]
    # no stats key: handled, nothing appended
    assert router.dispatch({"type": "stats_update", "payload": {}}) is True
    assert len(load.buffer("response_times")) == 1


@pytest.mark.parametrize("message", [None, "text", [1], {"type": "mystery"}, {"payload": {}}, {"type": 5}])
def test_unknown_messages_are_ignored(message: Any) -> None:
    router, load, _ = _router()
    assert router.dispatch(message) is False
    assert load.version == 0


def test_lifecycle_messages_clear_history_and_toggle_running() -> None:
    router, load, host = _router()
    states: list[bool] = []
    router.on_run_state(states.append)
    load.accept(_stats(10), now=0.0)
    host.accept({}, now=0.0)

    router.dispatch({"type": "test_started", "payload": {"testId": 7, "name": "smoke"}})
    assert router.running is True
    assert router.run is not None and (router.run.test_id, router.run.name) == (7, "smoke")
    assert len(load.buffer("response_times")) == 0
    assert len(host.buffer("cpu")) == 0

    router.dispatch({"type": "test_completed", "payload": {}})
    assert router.running is False
    assert router.run is None
    router.dispatch({"type": "test_started", "payload": {"test_id": "abc"}})
    router.dispatch({"type": "test_stopped"})
    assert states == [True, False, True, False]


def test_keep_history_skips_clearing() -> None:
    router, load, _ = _router(keep_history=True)
    load.accept(_stats(10), now=0.0)
    router.dispatch({"type": "test_started", "payload": {}})
    assert len(load.buffer("response_times")) == 1


def test_parse_instant_accepts_iso_and_epoch() -> None:
    assert parse_instant("2024-05-01T12:00:00Z", "t") == datetime(2024, 5, 1, 12, tzinfo=timezone.utc)
    assert parse_instant(1714564800, "t") == datetime(2024, 5, 1, 12, tzinfo=timezone.utc)
    assert parse_instant(1714564800000, "t") == datetime(2024, 5, 1, 12, tzinfo=timezone.utc)
    with pytest.raises(BadInputError):
        parse_instant("yesterday", "t")
    with pytest.raises(BadInputError):
        parse_instant(None, "t")


def test_descriptor_from_mapping_accepts_both_key_styles() -> None:
    snake = RunDescriptor.from_mapping(
        {"start_time": "2024-05-01T12:00:00", "end_time": "2024-05-01T12:10:00", "users": 50,
         "requests_per_second": 12.5, "total_requests": 7500}
    )
    camel = RunDescriptor.from_mapping(
        {"startTime": "2024-05-01T12:00:00", "endTime": "2024-05-01T12:10:00", "user_count": 50,
         "requestsPerSecond": 12.5, "totalRequests": 7500}
    )
    assert snake == camel
    assert snake.duration == timedelta(minutes=10)
    with pytest.raises(BadInputError):
        RunDescriptor.from_mapping(["not", "an", "object"])


def test_descriptor_without_end_uses_default_duration() -> None:
    descriptor = RunDescriptor.from_mapping({"start_time": "2024-05-01T12:00:00"})
    assert descriptor.end_time is None
    assert descriptor.duration == timedelta(seconds=120)


def test_synthesized_run_ends_on_stored_totals() -> None:
    descriptor = RunDescriptor(
        start_time=datetime(2024, 5, 1, 12),
        end_time=datetime(2024, 5, 1, 12, 5),
        users=40,
        requests_per_second=20.0,
        avg_response_time=150.0,
        error_rate=2.0,
        total_requests=6000,
        total_failures=120,
    )
    snapshots = list(synthesize_snapshots(descriptor, steps=20))

    assert len(snapshots) == 20
    stamps = [stamp for stamp, _ in snapshots]
    assert stamps == sorted(stamps)
    assert stamps[-1] == descriptor.end_time
    last = snapshots[-1][1]["stats"][0]
    assert (last["num_requests"], last["num_failures"]) == (6000, 120)
    assert snapshots[-1][1]["state"] == "stopped"
    assert snapshots[-1][1]["user_count"] == 40
    counts = [payload["stats"][0]["num_requests"] for _, payload in snapshots]
    assert counts == sorted(counts)


def test_replay_run_fills_buffers_in_order() -> None:
    descriptor = RunDescriptor(
        start_time=datetime(2024, 5, 1, 12), users=10, avg_response_time=80.0, total_requests=100
    )
    coordinator = FeedCoordinator(LoadTestReducer(), capacity=30, throttle_ms=0.0, epsilon=0.0)
    coordinator.accept(_stats(999), now=0.0)

    applied = replay_run(coordinator, descriptor, steps=30)

    buf = coordinator.buffer("requests")
    assert applied == 30
    assert len(buf) == 30
    assert 999.0 not in coordinator.buffer("response_times").values("avg")
    assert buf.latest() is not None and buf.latest().value("succeeded") == 100.0
