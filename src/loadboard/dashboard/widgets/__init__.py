# mypy: ignore-errors
"""Panes shown by the dashboard window."""

from __future__ import annotations

from .chart import ChartWidget, format_tooltip
from .common import QT_IMPORT_ERROR, QTabWidget
from .connection import ConnectionPane
from .history import HistoryPane
from .host import HostPane
from .loadtest import LoadTestPane, SummaryCard
from .run_control import RunControlPane, RunPhase

__all__ = [
    "QT_IMPORT_ERROR",
    "ChartWidget",
    "ConnectionPane",
    "HistoryPane",
    "HostPane",
    "LoadTestPane",
    "QTabWidget",
    "RunControlPane",
    "RunPhase",
    "SummaryCard",
    "format_tooltip",
]
