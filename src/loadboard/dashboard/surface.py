# mypy: ignore-errors
"""Qt implementations of the drawing surface and frame scheduler."""

from __future__ import annotations

import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, cast

from ..render.curves import Path as CurvePath
from ..render.surface import Fill, Stroke

QT_IMPORT_ERROR: Exception | None = None

try:  # pragma: no cover - only when PyQt6 is present
    from PyQt6.QtCore import QPointF, QRectF, Qt, QTimer
    from PyQt6.QtGui import QBrush, QColor, QFont, QImage, QLinearGradient, QPainter, QPainterPath, QPen
except Exception as exc:  # pragma: no cover - headless environments  # noqa: BLE001
    QT_IMPORT_ERROR = exc
    QPointF = cast(Any, object)
    QRectF = cast(Any, object)
    QTimer = cast(Any, None)
    QBrush = cast(Any, object)
    QColor = cast(Any, object)
    QFont = cast(Any, object)
    QImage = cast(Any, object)
    QLinearGradient = cast(Any, object)
    QPainter = cast(Any, object)
    QPainterPath = cast(Any, object)
    QPen = cast(Any, object)
    Qt = None  # type: ignore[assignment]

_TEXT_BOX = 400.0


def _require_qt() -> None:
    if QT_IMPORT_ERROR is not None:
        raise RuntimeError(
            "The chart surface requires PyQt6. Install with `pip install PyQt6`."
        ) from QT_IMPORT_ERROR


def _color(name: str, alpha: float = 1.0) -> QColor:
    color = QColor(name)
    color.setAlphaF(max(0.0, min(alpha, 1.0)))
    return color


def to_qpainter_path(path: CurvePath) -> QPainterPath:
    qpath = QPainterPath()
    for command in path.commands:
        op = command[0]
        if op == "M":
            qpath.moveTo(command[1], command[2])
        elif op == "L":
            qpath.lineTo(command[1], command[2])
        elif op == "C":
            qpath.cubicTo(*command[1:])
        elif op == "Z":
            qpath.closeSubpath()
    return qpath


class QtRasterSurface:
    """Persistent ``QImage`` raster. Incremental paints draw on top of what is there."""

    def __init__(self, background: str = "#11141d") -> None:
        _require_qt()
        self.background = background
        self.width = 0.0
        self.height = 0.0
        self.device_pixel_ratio = 1.0
        self.image: QImage | None = None

    def resize(self, width: float, height: float, device_pixel_ratio: float = 1.0) -> None:
        self.width = float(width)
        self.height = float(height)
        self.device_pixel_ratio = device_pixel_ratio or 1.0
        pixel_w = max(1, int(round(self.width * self.device_pixel_ratio)))
        pixel_h = max(1, int(round(self.height * self.device_pixel_ratio)))
        self.image = QImage(pixel_w, pixel_h, QImage.Format.Format_ARGB32_Premultiplied)
        # logical coordinates from here on; Qt applies the ratio
        self.image.setDevicePixelRatio(self.device_pixel_ratio)
        self.clear()

    def clear(self) -> None:
        if self.image is not None:
            self.image.fill(QColor(self.background))

    @contextmanager
    def _painter(self) -> Iterator[QPainter | None]:
        if self.image is None:
            yield None
            return
        painter = QPainter(self.image)
        try:
            painter.setRenderHint(QPainter.RenderHint.Antialiasing)
            painter.setRenderHint(QPainter.RenderHint.TextAntialiasing)
            yield painter
        finally:
            painter.end()

    @staticmethod
    def _pen(stroke: Stroke) -> QPen:
        pen = QPen(_color(stroke.color, stroke.alpha), stroke.width)
        pen.setCapStyle(Qt.PenCapStyle.RoundCap)
        pen.setJoinStyle(Qt.PenJoinStyle.RoundJoin)
        return pen

    def stroke_path(self, path: CurvePath, stroke: Stroke) -> None:
        with self._painter() as painter:
            if painter is None:
                return
            painter.setPen(self._pen(stroke))
            painter.setBrush(Qt.BrushStyle.NoBrush)
            painter.drawPath(to_qpainter_path(path))

    def fill_path(self, path: CurvePath, fill: Fill) -> None:
        with self._painter() as painter:
            if painter is None:
                return
            if fill.alpha_to is None:
                brush = QBrush(_color(fill.color, fill.alpha))
            else:
                gradient = QLinearGradient(0.0, fill.top, 0.0, fill.bottom)
                gradient.setColorAt(0.0, _color(fill.color, fill.alpha))
                gradient.setColorAt(1.0, _color(fill.color, fill.alpha_to))
                brush = QBrush(gradient)
            painter.setPen(Qt.PenStyle.NoPen)
            painter.setBrush(brush)
            painter.drawPath(to_qpainter_path(path))

    def draw_line(self, x1: float, y1: float, x2: float, y2: float, stroke: Stroke) -> None:
        with self._painter() as painter:
            if painter is None:
                return
            painter.setPen(self._pen(stroke))
            painter.drawLine(QPointF(x1, y1), QPointF(x2, y2))

    def draw_text(
        self,
        x: float,
        y: float,
        text: str,
        color: str,
        *,
        align: str = "left",
        baseline: str = "top",
        size: float = 12.0,
    ) -> None:
        with self._painter() as painter:
            if painter is None:
                return
            font = QFont("Inter")
            font.setPixelSize(max(1, int(size)))
            painter.setFont(font)
            painter.setPen(_color(color))
            left = {"left": x, "center": x - _TEXT_BOX / 2, "right": x - _TEXT_BOX}.get(align, x)
            top = {"top": y, "middle": y - size, "bottom": y - 2 * size}.get(baseline, y)
            h_flag = {
                "left": Qt.AlignmentFlag.AlignLeft,
                "center": Qt.AlignmentFlag.AlignHCenter,
                "right": Qt.AlignmentFlag.AlignRight,
            }.get(align, Qt.AlignmentFlag.AlignLeft)
            v_flag = {
                "top": Qt.AlignmentFlag.AlignTop,
                "middle": Qt.AlignmentFlag.AlignVCenter,
                "bottom": Qt.AlignmentFlag.AlignBottom,
            }.get(baseline, Qt.AlignmentFlag.AlignTop)
            painter.drawText(QRectF(left, top, _TEXT_BOX, 2 * size), h_flag | v_flag, text)

    def draw_circle(self, cx: float, cy: float, radius: float, color: str, alpha: float = 1.0) -> None:
        with self._painter() as painter:
            if painter is None:
                return
            painter.setPen(Qt.PenStyle.NoPen)
            painter.setBrush(QBrush(_color(color, alpha)))
            painter.drawEllipse(QPointF(cx, cy), radius, radius)

    def save(self, path: str | Path) -> bool:
        if self.image is None:
            return False
        return bool(self.image.save(str(path)))


class QtFrameScheduler:
    """One single-shot ``QTimer`` per handle; cancelled timers are released."""

    def __init__(self, parent: Any = None) -> None:
        _require_qt()
        self._parent = parent
        self._timers: set[Any] = set()

    def now(self) -> float:
        return time.monotonic()

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> Any:
        timer = QTimer(self._parent)
        timer.setSingleShot(True)
        timer.timeout.connect(lambda: self._fire(timer, callback))  # type: ignore[attr-defined]
        self._timers.add(timer)
        timer.start(max(0, int(delay_ms)))
        return timer

    def cancel(self, handle: Any) -> None:
        if handle not in self._timers:
            return
        handle.stop()
        self._timers.discard(handle)
        handle.deleteLater()

    @property
    def pending(self) -> int:
        return len(self._timers)

    def _fire(self, timer: Any, callback: Callable[[], None]) -> None:
        if timer not in self._timers:
            return
        self._timers.discard(timer)
        timer.deleteLater()
        callback()


__all__ = ["QtFrameScheduler", "QtRasterSurface", "to_qpainter_path"]
