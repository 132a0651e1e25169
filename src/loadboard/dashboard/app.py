# mypy: ignore-errors

"""Desktop dashboard entry point.

When PyQt6 is unavailable (e.g. headless CI), launching the UI raises a
friendly error instead of an import failure.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional, Sequence, cast

from ..config import DEFAULT_CONFIG, AppConfig
from .builders import build_app as _build_app
from .builders import build_controller, build_coordinators, build_widgets, build_window

if TYPE_CHECKING:
    from .controller import DashboardController

logger = logging.getLogger(__name__)

_QT_IMPORT_ERROR: Optional[Exception] = None

try:  # pragma: no cover - only executed when PyQt6 is installed
    from PyQt6.QtGui import QColor, QPalette  # type: ignore[import-not-found]
    from PyQt6.QtWidgets import QApplication, QMainWindow  # type: ignore[import-not-found]
except Exception as exc:  # pragma: no cover - most environments won't have PyQt6  # noqa: BLE001
    _QT_IMPORT_ERROR = exc
    QApplication = cast(Any, object)
    QMainWindow = cast(Any, object)
    QPalette = cast(Any, object)
    QColor = cast(Any, object)

if _QT_IMPORT_ERROR is None:  # pragma: no cover - only when PyQt6 is present

    class DashboardWindow(QMainWindow):  # type: ignore[misc]
        def __init__(self) -> None:
            super().__init__()
            self._controller: Optional["DashboardController"] = None

        def set_controller(self, controller: "DashboardController") -> None:
            self._controller = controller

        def closeEvent(self, event) -> None:  # type: ignore[override]  # noqa: N802
            if self._controller is not None:
                self._controller.shutdown()
            super().closeEvent(event)

else:  # pragma: no cover - PyQt6 missing
    DashboardWindow = cast(Any, object)


THEME = {
    "window": "#0b0e14",
    "surface": "#141925",
    "raised": "#1b2231",
    "border": "#273044",
    "text": "#d6deeb",
    "muted": "#7f8ba3",
    "accent": "#38bdf8",
    "ok": "#10b981",
    "warn": "#f59e0b",
    "bad": "#f43f5e",
}

# state / statusKind property value -> THEME colour
_STATE_COLOURS = {
    "idle": "muted",
    "starting": "warn",
    "stopping": "warn",
    "running": "ok",
    "connected": "ok",
    "completed": "accent",
    "error": "bad",
}

_BASE_QSS = """
QMainWindow#missionWindow, QWidget#missionPane {{ background-color: {window}; color: {text}; }}
QWidget#missionPane {{ border: 1px solid {border}; border-radius: 10px; }}
QLabel#paneHeading {{ color: {accent}; font-size: 15px; font-weight: 600; }}
QWidget#dockTitleBar {{ background-color: {surface}; border-bottom: 1px solid {border}; }}
QLabel#dockCaption {{ color: {muted}; font-size: 11px; letter-spacing: 2px; }}
QWidget#summaryCard {{ background-color: {raised}; border: 1px solid {border}; border-radius: 8px; }}
QLabel#cardCaption {{ color: {muted}; font-size: 11px; }}
QLabel#cardValue {{ color: {text}; font-size: 20px; font-weight: 600; }}
QTabWidget#missionTabs::pane {{ border: 1px solid {border}; }}
QTabBar::tab {{ background: {surface}; color: {muted}; padding: 6px 14px; }}
QTabBar::tab:selected {{ color: {accent}; border-bottom: 2px solid {accent}; }}
QLineEdit, QSpinBox, QComboBox, QPlainTextEdit#runLog, QTableWidget#historyTable {{
    background-color: {surface}; color: {text}; border: 1px solid {border}; border-radius: 6px;
}}
QPushButton {{ background-color: {raised}; color: {text}; border: 1px solid {border}; border-radius: 6px; padding: 6px 12px; }}
QPushButton:hover {{ border-color: {accent}; }}
QPushButton:disabled {{ color: {muted}; }}
QPushButton#startButton {{ border-color: {ok}; }}
QPushButton#stopButton {{ border-color: {bad}; }}
QLabel#timerLabel {{ color: {accent}; font-family: monospace; }}
"""


def build_stylesheet(theme: dict[str, str] | None = None) -> str:
    """Render the application QSS from a colour mapping (``THEME`` by default)."""

    colours = dict(THEME, **(theme or {}))
    rules = [_BASE_QSS.format(**colours)]
    for value, role in _STATE_COLOURS.items():
        rules.append(f'QLabel[state="{value}"], QLabel[statusKind="{value}"] {{ color: {colours[role]}; }}')
    return "\n".join(rules)


def _require_qt() -> None:
    if _QT_IMPORT_ERROR is not None:
        raise RuntimeError(
            "The loadboard dashboard requires PyQt6. Install with `pip install PyQt6 pyqtgraph`."
        ) from _QT_IMPORT_ERROR


_PALETTE_ROLES = {
    "Window": "window",
    "Base": "surface",
    "AlternateBase": "raised",
    "Button": "raised",
    "ToolTipBase": "raised",
    "WindowText": "text",
    "Text": "text",
    "ButtonText": "text",
    "ToolTipText": "text",
    "Highlight": "accent",
    "HighlightedText": "window",
}


def _apply_theme(app: QApplication, theme: dict[str, str] | None = None) -> None:
    colours = dict(THEME, **(theme or {}))
    app.setStyle("Fusion")
    palette = QPalette()
    for role_name, key in _PALETTE_ROLES.items():
        palette.setColor(getattr(QPalette.ColorRole, role_name), QColor(colours[key]))
    app.setPalette(palette)
    app.setStyleSheet(build_stylesheet(colours))


def _create_window(config: AppConfig, app: QApplication) -> QMainWindow:
    from .push_client import PushClient
    from .surface import QtFrameScheduler

    scheduler = QtFrameScheduler(app)
    load, host = build_coordinators(config, scheduler)
    panes = build_widgets(config, load, host, scheduler)
    push = PushClient(app)
    controller = build_controller(panes, load, host, config, push=push)
    return build_window(controller, panes)


def run_dashboard(argv: Sequence[str] | None = None, config: AppConfig | None = None) -> int:
    """Launch the dashboard UI.

    Returns the Qt exit code. Raises ``RuntimeError`` when PyQt6 is missing.
    """

    _require_qt()
    config = config or DEFAULT_CONFIG
    app = _build_app(argv)
    _apply_theme(app)
    window = _create_window(config, app)
    window.show()
    logger.info("Dashboard started; backend %s:%d", config.backend.host, config.backend.port)
    return app.exec()  # type: ignore[call-arg]


__all__ = ["THEME", "DashboardWindow", "build_stylesheet", "run_dashboard"]
