"""Wiring for the dashboard: coordinators, panes, controller and the main window."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from ..config import AppConfig
from ..core.coordinator import FeedCoordinator
from ..core.reducer import HostReducer, LoadTestReducer, SnapshotReducer
from ..core.scheduling import FrameScheduler
from . import widgets
from .controller import DashboardController
from .widgets.common import QT_IMPORT_ERROR, Qt

WINDOW_TITLE = "loadboard – Load Test Dashboard"
WINDOW_SIZE = (1440, 900)


@dataclass
class DashboardWidgets:
    connection: widgets.ConnectionPane
    run_control: widgets.RunControlPane
    load: widgets.LoadTestPane
    host: widgets.HostPane
    history: widgets.HistoryPane

    def tabs(self) -> list[tuple[str, Any]]:
        return [("Load test", self.load), ("Host resources", self.host), ("History", self.history)]


def _require_qt() -> None:
    if QT_IMPORT_ERROR is not None:  # pragma: no cover - PyQt6 missing
        raise RuntimeError("PyQt6 not available") from QT_IMPORT_ERROR


def build_coordinators(
    config: AppConfig, scheduler: FrameScheduler | None
) -> tuple[FeedCoordinator, FeedCoordinator]:
    """``(load, host)`` coordinators sharing the dashboard's buffer and throttle settings.

    Gating follows each reducer: only the load-test reducer names a primary metric.
    """

    settings = config.dashboard

    def coordinator(reducer: SnapshotReducer) -> FeedCoordinator:
        return FeedCoordinator(
            reducer,
            capacity=settings.capacity,
            throttle_ms=settings.throttle_ms,
            epsilon=settings.epsilon,
            scheduler=scheduler,
        )

    return coordinator(LoadTestReducer()), coordinator(HostReducer())


def build_widgets(
    config: AppConfig,
    load: FeedCoordinator,
    host: FeedCoordinator,
    scheduler: FrameScheduler,
    parent: Any = None,
) -> DashboardWidgets:
    settings, backend = config.dashboard, config.backend
    return DashboardWidgets(
        connection=widgets.ConnectionPane(parent, host=backend.host, port=backend.port),
        run_control=widgets.RunControlPane(parent),
        load=widgets.LoadTestPane(load, scheduler, settings, parent),
        host=widgets.HostPane(host, scheduler, settings, parent),
        history=widgets.HistoryPane(scheduler, settings, parent),
    )


def build_controller(
    panes: DashboardWidgets,
    load: FeedCoordinator,
    host: FeedCoordinator,
    config: AppConfig,
    *,
    push: Any = None,
) -> DashboardController:
    return DashboardController(
        panes.connection,
        panes.load,
        panes.host,
        panes.run_control,
        panes.history,
        load=load,
        host=host,
        settings=config.dashboard,
        push=push,
    )


def build_window(controller: DashboardController, panes: DashboardWidgets) -> Any:
    """Chart panes become tabs; the connection and run-control panes dock on the left."""

    _require_qt()
    from .app import DashboardWindow
    from .layout import create_dock

    window = DashboardWindow()
    window.setObjectName("missionWindow")
    window.setWindowTitle(WINDOW_TITLE)
    window.resize(*WINDOW_SIZE)
    window.set_controller(controller)

    tabs = widgets.QTabWidget(window)  # type: ignore[call-arg]
    tabs.setObjectName("missionTabs")
    for caption, pane in panes.tabs():
        tabs.addTab(pane, caption)  # type: ignore[attr-defined]
    window.setCentralWidget(tabs)  # type: ignore[call-arg]

    left = Qt.DockWidgetArea.LeftDockWidgetArea  # type: ignore[attr-defined]
    for dock in (
        create_dock("Backend", panes.connection, left),
        create_dock("Run Control", panes.run_control, left, closable=False),
    ):
        window.addDockWidget(left, dock)  # type: ignore[attr-defined]
    return window


def build_app(argv: Sequence[str] | None = None) -> Any:
    _require_qt()
    from PyQt6.QtWidgets import QApplication  # type: ignore[import-not-found]

    return QApplication.instance() or QApplication(list(argv) if argv is not None else [])


__all__ = [
    "DashboardWidgets",
    "build_app",
    "build_controller",
    "build_coordinators",
    "build_widgets",
    "build_window",
]
