"""Run supervisor: drives Locust, records runs and relays live stats."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any

from ..core.reducer import LoadTestReducer, LoadTestSummary
from .hub import PushHub
from .models import CurrentTest, RunRecord, RunStatus, StartTestRequest
from .store import RunHistoryStore
from .upstream import Upstream, UpstreamError

logger = logging.getLogger(__name__)


class RunConflictError(RuntimeError):
    """Start while a run is active, or stop while idle."""


def run_totals(stats: Any) -> dict[str, Any]:
    """Final aggregate figures of a Locust payload, as stored in the history."""

    summary: LoadTestSummary = LoadTestReducer().reduce(stats).summary
    return {
        "requests_per_second": summary.rps,
        "avg_response_time": summary.avg_response_time,
        "error_rate": summary.error_rate,
        "total_requests": summary.total_requests,
        "total_failures": summary.total_failures,
    }


class RunSupervisor:
    def __init__(
        self,
        upstream: Upstream,
        store: RunHistoryStore,
        hub: PushHub,
        *,
        stats_interval: float = 2.0,
    ) -> None:
        self.upstream = upstream
        self.store = store
        self.hub = hub
        self.stats_interval = stats_interval
        self.active: RunRecord | None = None
        self.latest_stats: Any = None
        self._task: asyncio.Task[None] | None = None
        self._lock = asyncio.Lock()

    def current(self) -> CurrentTest:
        return CurrentTest(
            running=self.active is not None,
            test_id=self.active.id if self.active else None,
            stats=self.latest_stats if isinstance(self.latest_stats, dict) else None,
        )

    async def start(self, request: StartTestRequest) -> RunRecord:
        async with self._lock:
            if self.active is not None:
                raise RunConflictError(f"Run {self.active.id} is already active")
            await self.upstream.swarm(request.users, request.spawn_rate, request.host)
            record = self.store.create(request.name, request.users, request.spawn_rate, request.host)
            self.active = record
            self.latest_stats = None
            logger.info("Run %d started: %s (%d users)", record.id, record.name, record.users)
            await self.hub.broadcast(
                "test_started",
                {"testId": record.id, "name": record.name, "start_time": record.start_time},
            )
            self._task = asyncio.create_task(self._poll_stats(record))
            return record

    async def stop(self) -> RunRecord:
        async with self._lock:
            record = self.active
            if record is None:
                raise RunConflictError("No run is active")
            await self.upstream.stop()
            await self._cancel_poll()
            final = self._finish(record, RunStatus.STOPPED)
        await self.hub.broadcast("test_stopped", {"testId": record.id, "status": final.status.value})
        return final

    async def shutdown(self) -> None:
        await self._cancel_poll()

    def _finish(self, record: RunRecord, status: RunStatus) -> RunRecord:
        totals = run_totals(self.latest_stats)
        final = self.store.finalize(record.id, status, totals) or record
        self.active = None
        logger.info("Run %d %s after %d requests", record.id, status.value, totals["total_requests"])
        return final

    async def _cancel_poll(self) -> None:
        task, self._task = self._task, None
        if task is None or task is asyncio.current_task():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _poll_stats(self, record: RunRecord) -> None:
        while self.active is not None and self.active.id == record.id:
            try:
                stats = await self.upstream.locust_stats()
            except UpstreamError as exc:
                logger.warning("Stats poll failed for run %d: %s", record.id, exc)
            else:
                self.latest_stats = stats
                await self.hub.broadcast("stats_update", {"stats": stats})
                if isinstance(stats, dict) and stats.get("state") == "stopped":
                    async with self._lock:
                        if self.active is None or self.active.id != record.id:
                            return
                        self._task = None
                        final = self._finish(record, RunStatus.COMPLETED)
                    await self.hub.broadcast(
                        "test_completed", {"testId": record.id, "status": final.status.value}
                    )
                    return
            await asyncio.sleep(self.stats_interval)


__all__ = ["RunConflictError", "RunSupervisor", "run_totals"]
