# mypy: ignore-errors
"""Qt names used by the dashboard widgets, plus small styling helpers.

Every widget module imports Qt through here so that the package still imports
on machines without PyQt6; ``QT_IMPORT_ERROR`` then holds the reason.
"""

from __future__ import annotations

from typing import Any, cast

QT_IMPORT_ERROR: Exception | None = None

try:  # pragma: no cover - only when PyQt6 is present
    from PyQt6.QtCore import QObject, QPoint, Qt, QTimer, pyqtSignal
    from PyQt6.QtGui import QColor, QPainter
    from PyQt6.QtWidgets import (
        QAbstractItemView,
        QCheckBox,
        QComboBox,
        QDockWidget,
        QFormLayout,
        QGraphicsDropShadowEffect,
        QGridLayout,
        QHBoxLayout,
        QHeaderView,
        QLabel,
        QLineEdit,
        QPlainTextEdit,
        QPushButton,
        QSpinBox,
        QTableWidget,
        QTableWidgetItem,
        QTabWidget,
        QToolTip,
        QVBoxLayout,
        QWidget,
    )
except Exception as exc:  # pragma: no cover - headless environments  # noqa: BLE001
    QT_IMPORT_ERROR = exc
    Qt = None  # type: ignore[assignment]
    pyqtSignal = None  # type: ignore[assignment]  # noqa: N816
    # base classes stay subclassable; optional helpers become None
    QObject = QWidget = QDockWidget = QLabel = QLineEdit = QPushButton = cast(Any, object)
    QVBoxLayout = QHBoxLayout = QGridLayout = QPlainTextEdit = cast(Any, object)
    QColor = QPainter = QPoint = cast(Any, object)
    QTimer = QToolTip = QGraphicsDropShadowEffect = QTabWidget = QFormLayout = cast(Any, None)
    QComboBox = QCheckBox = QSpinBox = QTableWidget = QTableWidgetItem = cast(Any, None)
    QHeaderView = QAbstractItemView = cast(Any, None)

CHART_BACKGROUND = "#11141d"
BORDER_COLOR = "#2D2D2D"

try:  # pragma: no cover - optional plotting dependency
    import pyqtgraph as pg  # type: ignore[import-not-found]
except Exception:  # pragma: no cover  # noqa: BLE001
    pg = cast(Any, None)
else:  # pragma: no cover - requires pyqtgraph
    pg.setConfigOptions(background=CHART_BACKGROUND, foreground="#cbd5e1", antialias=True)


def format_number(value: float, unit: str = "", digits: int = 1) -> str:
    """Compact human formatting for summary cards (``12.3k req/s``)."""

    magnitude = abs(value)
    if magnitude >= 1_000_000:
        text = f"{value / 1_000_000:.{digits}f}M"
    elif magnitude >= 10_000:
        text = f"{value / 1_000:.{digits}f}k"
    elif float(value).is_integer():
        text = f"{int(value)}"
    else:
        text = f"{value:.{digits}f}"
    return f"{text} {unit}".strip()


def repolish(widget: Any) -> None:
    """Re-apply the stylesheet after a dynamic property (``state``, ``statusKind``) changed."""

    style = widget.style() if Qt is not None else None
    if style is None:
        return
    style.unpolish(widget)  # type: ignore[attr-defined]
    style.polish(widget)  # type: ignore[attr-defined]


def add_glow(parent: Any, widget: Any, color: str, radius: float = 18) -> None:
    if QGraphicsDropShadowEffect is None:
        return
    effect = QGraphicsDropShadowEffect(parent)
    effect.setOffset(0, 0)
    effect.setBlurRadius(radius)
    effect.setColor(QColor(color))
    widget.setGraphicsEffect(effect)


def style_plot(widget: Any, *, title: str, accent: str, axis_color: str = "#8CA3AF") -> None:
    """Dark frame, accent-coloured title and muted axes for a pyqtgraph PlotWidget."""

    if pg is None or Qt is None:
        return
    widget.setStyleSheet(
        f"border: 1px solid {BORDER_COLOR}; border-radius: 12px; background-color: {CHART_BACKGROUND};"
    )
    plot_item = widget.getPlotItem()
    plot_item.setTitle(f"<span style='color:{accent}; font-size:13px; font-weight:600;'>{title}</span>")
    axis_pen = pg.mkPen(BORDER_COLOR, width=1.1)  # type: ignore[attr-defined]
    for name in ("left", "bottom"):
        axis = plot_item.getAxis(name)
        axis.setPen(axis_pen)
        axis.setTextPen(pg.mkPen(axis_color))  # type: ignore[attr-defined]
    plot_item.getViewBox().setBorder(axis_pen)


__all__ = [
    "BORDER_COLOR",
    "CHART_BACKGROUND",
    "QAbstractItemView",
    "QCheckBox",
    "QColor",
    "QComboBox",
    "QDockWidget",
    "QFormLayout",
    "QGridLayout",
    "QHBoxLayout",
    "QHeaderView",
    "QLabel",
    "QLineEdit",
    "QObject",
    "QPainter",
    "QPlainTextEdit",
    "QPoint",
    "QPushButton",
    "QSpinBox",
    "QT_IMPORT_ERROR",
    "QTabWidget",
    "QTableWidget",
    "QTableWidgetItem",
    "QTimer",
    "QToolTip",
    "QVBoxLayout",
    "QWidget",
    "Qt",
    "add_glow",
    "format_number",
    "pg",
    "pyqtSignal",
    "repolish",
    "style_plot",
]
