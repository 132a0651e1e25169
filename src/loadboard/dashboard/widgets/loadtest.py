"""Load-test pane: summary cards, one chart per channel group, per-endpoint bars."""

from __future__ import annotations

from typing import Any, Optional

from ...config import DashboardSettings
from ...core.coordinator import FeedCoordinator
from ...core.reducer import LoadTestSummary
from ...core.scheduling import FrameScheduler
from .chart import ChartWidget
from .common import (
    QGridLayout,
    QHBoxLayout,
    QLabel,
    Qt,
    QVBoxLayout,
    QWidget,
    format_number,
    pg,
    repolish,
    style_plot,
)

_CARDS = (
    ("users", "Users", "#8b5cf6"),
    ("rps", "Requests/s", "#10b981"),
    ("avg", "Avg response", "#3b82f6"),
    ("p95", "p95 response", "#f59e0b"),
    ("error_rate", "Error rate", "#ef4444"),
    ("requests", "Requests", "#e2e8f0"),
)


def summary_fields(summary: LoadTestSummary) -> dict[str, str]:
    return {
        "users": format_number(summary.users),
        "rps": format_number(summary.rps, "req/s"),
        "avg": format_number(summary.avg_response_time, "ms", 0),
        "p95": format_number(summary.p95_response_time, "ms", 0),
        "error_rate": f"{summary.error_rate:.1f} %",
        "requests": f"{format_number(summary.total_requests)} ({summary.total_failures} failed)",
    }


class SummaryCard(QWidget):  # type: ignore[misc]
    def __init__(self, title: str, color: str, parent: Optional[QWidget] = None) -> None:  # type: ignore[override]
        super().__init__(parent)
        self.setObjectName("summaryCard")
        layout = QVBoxLayout(self)  # type: ignore[call-arg]
        layout.setContentsMargins(12, 8, 12, 8)
        caption = QLabel(title)  # type: ignore[call-arg]
        caption.setObjectName("cardCaption")
        self.value_label = QLabel("–")  # type: ignore[call-arg]
        self.value_label.setObjectName("cardValue")
        self.value_label.setStyleSheet(f"color: {color};")
        layout.addWidget(caption)
        layout.addWidget(self.value_label)

    def set_value(self, text: str) -> None:
        self.value_label.setText(text)


class LoadTestPane(QWidget):  # type: ignore[misc]
    """Live Locust metrics."""

    def __init__(
        self,
        coordinator: FeedCoordinator,
        scheduler: FrameScheduler,
        settings: DashboardSettings,
        parent: Optional[QWidget] = None,
    ) -> None:  # type: ignore[override]
        super().__init__(parent)
        self.setObjectName("missionPane")
        self.setProperty("paneKind", "metrics")
        self.coordinator = coordinator
        layout = QVBoxLayout(self)  # type: ignore[call-arg]
        layout.setContentsMargins(16, 16, 16, 16)
        layout.setSpacing(12)
        heading = QLabel("Load test")  # type: ignore[call-arg]
        heading.setObjectName("paneHeading")
        layout.addWidget(heading)

        self.state_label = QLabel("Stopped")  # type: ignore[call-arg]
        self.state_label.setObjectName("statusLabel")
        self.state_label.setProperty("state", "idle")
        layout.addWidget(self.state_label)

        cards_row = QHBoxLayout()  # type: ignore[call-arg]
        self.cards: dict[str, SummaryCard] = {}
        for key, title, color in _CARDS:
            card = SummaryCard(title, color, self)
            self.cards[key] = card
            cards_row.addWidget(card)
        layout.addLayout(cards_row)

        grid = QGridLayout()  # type: ignore[call-arg]
        grid.setSpacing(10)
        self.charts: dict[str, ChartWidget] = {}
        for index, group in enumerate(coordinator.reducer.groups):
            chart = ChartWidget(
                group,
                coordinator.buffer(group.key),
                scheduler,
                self,
                version=lambda: coordinator.version,
                animate=settings.animate,
                animation_ms=settings.animation_ms,
                frame_interval_ms=settings.frame_interval_ms,
                incremental_threshold=settings.incremental_threshold,
            )
            self.charts[group.key] = chart
            grid.addWidget(chart, index // 2, index % 2)
        layout.addLayout(grid, 1)

        self._endpoint_plot = None
        self._endpoint_bars = None
        if Qt is not None and pg is not None:
            self._endpoint_plot = pg.PlotWidget(title="Requests per endpoint")  # type: ignore[attr-defined]
            self._endpoint_plot.setObjectName("endpointPlot")
            self._endpoint_plot.showGrid(x=False, y=True, alpha=0.25)  # type: ignore[attr-defined]
            self._endpoint_plot.setLabel("left", "Requests", color="#10b981")  # type: ignore[attr-defined]
            self._endpoint_plot.setMinimumHeight(180)
            style_plot(self._endpoint_plot, title="Requests per endpoint", accent="#10b981")
            layout.addWidget(self._endpoint_plot)

        coordinator.redraw.connect(self.refresh)
        coordinator.on_clear(self.reset)

    def refresh(self) -> None:
        for chart in self.charts.values():
            chart.refresh()
        summary = self.coordinator.latest_summary
        if isinstance(summary, LoadTestSummary):
            self.update_summary(summary)

    def reset(self) -> None:
        for chart in self.charts.values():
            chart.reset()
        for card in self.cards.values():
            card.set_value("–")
        if self._endpoint_plot is not None and self._endpoint_bars is not None:
            self._endpoint_plot.removeItem(self._endpoint_bars)  # type: ignore[attr-defined]
            self._endpoint_bars = None

    def update_summary(self, summary: LoadTestSummary) -> None:
        for key, text in summary_fields(summary).items():
            self.cards[key].set_value(text)
        running = summary.state not in {"stopped", "ready", ""}
        self.state_label.setText(summary.state.capitalize())
        self.state_label.setProperty("state", "running" if running else "idle")
        repolish(self.state_label)
        self._update_endpoints(summary)

    def _update_endpoints(self, summary: LoadTestSummary) -> None:
        if self._endpoint_plot is None or pg is None:
            return
        endpoints = summary.endpoints
        if self._endpoint_bars is not None:
            self._endpoint_plot.removeItem(self._endpoint_bars)  # type: ignore[attr-defined]
            self._endpoint_bars = None
        if not endpoints:
            return
        xs = list(range(len(endpoints)))
        heights = [endpoint.requests for endpoint in endpoints]
        self._endpoint_bars = pg.BarGraphItem(  # type: ignore[attr-defined]
            x=xs,
            height=heights,
            width=0.6,
            brush=pg.mkBrush("#10b981"),
            pen=pg.mkPen("#10b981"),
        )
        self._endpoint_plot.addItem(self._endpoint_bars)  # type: ignore[attr-defined]
        axis: Any = self._endpoint_plot.getPlotItem().getAxis("bottom")  # type: ignore[attr-defined]
        axis.setTicks([[(x, f"{e.method} {e.name}".strip()) for x, e in zip(xs, endpoints)]])


__all__ = ["LoadTestPane", "SummaryCard", "summary_fields"]
