"""loadboard backend: Locust/Prometheus proxies, run supervisor, push hub and history."""

from .api import create_app
from .hub import PushHub
from .models import CurrentTest, PushMessage, RunRecord, RunStatus, StartTestRequest, TestStarted, TestStopped
from .runs import RunConflictError, RunSupervisor, run_totals
from .store import RunHistoryStore
from .upstream import Upstream, UpstreamError

__all__ = [
    "create_app",
    "CurrentTest",
    "PushHub",
    "PushMessage",
    "RunConflictError",
    "RunHistoryStore",
    "RunRecord",
    "RunStatus",
    "RunSupervisor",
    "StartTestRequest",
    "TestStarted",
    "TestStopped",
    "Upstream",
    "UpstreamError",
    "run_totals",
]
