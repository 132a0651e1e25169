from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

from loadboard.core.coordinator import FeedCoordinator, RedrawBatcher
from loadboard.core.reducer import HostReducer, LoadTestReducer
from loadboard.core.scheduling import ManualScheduler

T0 = datetime(2024, 5, 1, 12, 0, 0)


def _stats(avg: float, requests: int = 10) -> dict[str, Any]:
    return {
        "state": "running",
        "user_count": 5,
        "stats": [{"name": "Aggregated", "num_requests": requests, "num_failures": 0, "avg_response_time": avg}],
    }


def _coordinator(scheduler: ManualScheduler, **kwargs: Any) -> FeedCoordinator:
    kwargs.setdefault("throttle_ms", 500.0)
    kwargs.setdefault("epsilon", 0.1)
    return FeedCoordinator(LoadTestReducer(), scheduler=scheduler, **kwargs)


def test_manual_scheduler_orders_and_cancels() -> None:
    scheduler = ManualScheduler()
    fired: list[str] = []
    scheduler.call_later(20, lambda: fired.append("late"))
    early = scheduler.call_later(10, lambda: fired.append("early"))
    doomed = scheduler.call_later(5, lambda: fired.append("doomed"))
    scheduler.cancel(doomed)

    assert scheduler.pending == 2
    assert scheduler.advance(15) == 1
    assert fired == ["early"]
    assert scheduler.now() == 0.015
    scheduler.cancel(early)  # already fired; harmless
    assert scheduler.run_until_idle() == 1
    assert fired == ["early", "late"]
    assert scheduler.pending == 0


def test_throttled_snapshots_keep_only_the_newest_pending() -> None:
    scheduler = ManualScheduler()
    coordinator = _coordinator(scheduler)

    assert coordinator.accept(_stats(100)) is True
    scheduler.advance(100)
    assert coordinator.accept(_stats(150)) is False
    scheduler.advance(100)
    assert coordinator.accept(_stats(170)) is False
    assert coordinator.has_pending
    assert scheduler.pending >= 1

    scheduler.advance(400)
    buf = coordinator.buffer("response_times")
    assert buf.values("avg") == [100.0, 170.0]
    assert not coordinator.has_pending


def test_fresh_snapshot_after_window_supersedes_pending() -> None:
    scheduler = ManualScheduler()
    coordinator = _coordinator(scheduler)
    coordinator.accept(_stats(100), now=0.0)
    coordinator.accept(_stats(120), now=0.1)

    # arrives after the window, before the trailing flush ran
    assert coordinator.accept(_stats(130), now=0.6) is True
    assert not coordinator.has_pending
    scheduler.run_until_idle()
    assert coordinator.buffer("response_times").values("avg") == [100.0, 130.0]


def test_insignificant_change_is_dropped_then_large_change_lands() -> None:
    scheduler = ManualScheduler()
    coordinator = _coordinator(scheduler)

    coordinator.accept(_stats(100.0))
    scheduler.advance(200)
    coordinator.accept(_stats(100.05))
    scheduler.advance(1000)
    assert coordinator.accept(_stats(140.0)) is True

    buf = coordinator.buffer("response_times")
    assert len(buf) == 2
    assert buf.latest() is not None and buf.latest().value("avg") == 140.0


def test_significance_gate_only_applies_to_primary_feed() -> None:
    host = FeedCoordinator(HostReducer(), throttle_ms=0.0, epsilon=10.0)
    assert host.accept({}, now=0.0) is True
    assert host.accept({}, now=1.0) is True
    assert len(host.buffer("cpu")) == 2


def test_every_group_receives_one_sample_per_applied_snapshot() -> None:
    coordinator = FeedCoordinator(LoadTestReducer(), throttle_ms=0.0, epsilon=0.0, capacity=4)
    for i in range(6):
        coordinator.accept(_stats(100 + i * 10), now=float(i), received_at=T0 + timedelta(seconds=i))

    for key, buf in coordinator.buffers.items():
        assert len(buf) == 4, key
        assert buf.evicted == 2
    assert coordinator.version == 6
    assert coordinator.latest_summary.avg_response_time == 150.0


def test_clear_is_idempotent_and_notifies() -> None:
    scheduler = ManualScheduler()
    coordinator = _coordinator(scheduler)
    cleared: list[int] = []
    coordinator.on_clear(lambda: cleared.append(coordinator.version))

    coordinator.accept(_stats(100))
    coordinator.accept(_stats(200))  # throttled, pending
    coordinator.clear()
    coordinator.clear()

    assert all(len(buf) == 0 for buf in coordinator.buffers.values())
    assert not coordinator.has_pending
    assert coordinator.latest_summary is None
    assert len(cleared) == 2
    scheduler.run_until_idle()
    assert len(coordinator.buffer("response_times")) == 0

    # the window restarts: the next snapshot is applied immediately
    assert coordinator.accept(_stats(300)) is True


def test_redraws_are_batched_per_dispatch() -> None:
    scheduler = ManualScheduler()
    coordinator = FeedCoordinator(LoadTestReducer(), scheduler=scheduler, throttle_ms=0.0, epsilon=0.0)
    redraws: list[int] = []
    coordinator.redraw.connect(lambda: redraws.append(coordinator.version))

    for i in range(5):
        coordinator.accept(_stats(100 + i), now=float(i))
    assert redraws == []
    assert coordinator.redraw.pending

    scheduler.advance(0)
    assert redraws == [5]
    assert coordinator.redraw.dispatches == 1


def test_redraw_batcher_without_scheduler_dispatches_inline() -> None:
    batcher = RedrawBatcher()
    calls: list[str] = []
    listener = lambda: calls.append("x")  # noqa: E731
    batcher.connect(listener)
    batcher.request()
    batcher.request()
    assert calls == ["x", "x"]
    batcher.disconnect(listener)
    batcher.request()
    assert batcher.dispatches == 3
    assert calls == ["x", "x"]


def test_redraw_batcher_cancel_drops_request() -> None:
    scheduler = ManualScheduler()
    batcher = RedrawBatcher(scheduler)
    calls: list[str] = []
    batcher.connect(lambda: calls.append("x"))
    batcher.request()
    batcher.cancel()
    scheduler.run_until_idle()
    assert calls == []
    assert not batcher.pending
