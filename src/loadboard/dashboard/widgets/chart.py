"""Chart widget: a persistent raster painted by a ChartView, with hover tooltips."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Optional

from ...core.buffer import SeriesBuffer
from ...core.channels import ChannelGroup
from ...core.scheduling import FrameScheduler
from ...render.chart import ChartView
from ...render.interaction import Tooltip
from ...render.renderer import DARK_THEME
from ..surface import QtRasterSurface
from .common import CHART_BACKGROUND, QColor, QPainter, QPoint, Qt, QToolTip, QWidget

PLACEHOLDER_TEXT = "Waiting for data…"


def format_tooltip(tooltip: Tooltip, unit: str = "") -> str:
    rows = "".join(
        f"<div><span style='color:{row.color}'>●</span> {row.name}: <b>{row.value:g}</b> {unit}</div>"
        for row in tooltip.rows
    )
    return f"<div style='font-weight:600'>{tooltip.label}</div>{rows}"


class ChartWidget(QWidget):  # type: ignore[misc]
    """Hosts one :class:`ChartView`. Repaints blit the raster; drawing happens in the view."""

    def __init__(
        self,
        group: ChannelGroup,
        buffer: SeriesBuffer,
        scheduler: FrameScheduler,
        parent: Optional[QWidget] = None,
        *,
        version: Optional[Callable[[], int]] = None,
        animate: bool = True,
        animation_ms: float = 800.0,
        frame_interval_ms: float = 16.0,
        incremental_threshold: int = 5,
    ) -> None:  # type: ignore[override]
        super().__init__(parent)
        self.setObjectName("chartWidget")
        self.setMinimumSize(320, 220)
        self.setMouseTracking(True)
        self.group = group
        self.surface = QtRasterSurface(CHART_BACKGROUND)
        self.view = ChartView(
            group,
            buffer,
            scheduler,
            version=version,
            animate=animate,
            animation_ms=animation_ms,
            frame_interval_ms=frame_interval_ms,
            incremental_threshold=incremental_threshold,
            theme=DARK_THEME,
        )
        self.view.attach(self.surface, max(self.width(), 1), max(self.height(), 1), self._ratio())
        self.view.on_painted(self.update)

    def _ratio(self) -> float:
        return float(self.devicePixelRatioF()) if Qt is not None else 1.0

    def refresh(self) -> None:
        self.view.refresh()
        self.update()

    def reset(self) -> None:
        self.view.reset()
        if Qt is not None and QToolTip is not None:
            QToolTip.hideText()
        self.update()

    def resizeEvent(self, event: Any) -> None:  # type: ignore[override]  # noqa: N802
        super().resizeEvent(event)
        self.view.resize(self.width(), self.height(), self._ratio())

    def paintEvent(self, event: Any) -> None:  # type: ignore[override]  # noqa: N802
        painter = QPainter(self)
        try:
            image = self.surface.image
            if image is not None:
                painter.drawImage(0, 0, image)
            title_color = QColor("#94a3b8")
            painter.setPen(title_color)
            painter.drawText(8, 14, f"{self.group.title} ({self.group.unit})" if self.group.unit else self.group.title)
            if not self.view.has_data:
                painter.drawText(self.rect(), Qt.AlignmentFlag.AlignCenter, PLACEHOLDER_TEXT)
        finally:
            painter.end()

    def mouseMoveEvent(self, event: Any) -> None:  # type: ignore[override]  # noqa: N802
        position = event.position()
        tooltip = self.view.hover(position.x(), position.y())
        if tooltip is None or QToolTip is None:
            return
        anchor = QPoint(int(tooltip.anchor[0]), int(tooltip.anchor[1]))
        QToolTip.showText(self.mapToGlobal(anchor), format_tooltip(tooltip, self.group.unit), self)

    def leaveEvent(self, event: Any) -> None:  # type: ignore[override]  # noqa: N802
        self.view.leave()
        if QToolTip is not None:
            QToolTip.hideText()
        super().leaveEvent(event)


__all__ = ["ChartWidget", "PLACEHOLDER_TEXT", "format_tooltip"]
