"""Host-resource pane fed by node-exporter queries."""

from __future__ import annotations

from typing import Optional

from ...config import DashboardSettings
from ...core.coordinator import FeedCoordinator
from ...core.reducer import HostSummary
from ...core.scheduling import FrameScheduler
from .chart import ChartWidget
from .common import QCheckBox, QGridLayout, QHBoxLayout, QLabel, QPushButton, QVBoxLayout, QWidget
from .loadtest import SummaryCard

_CARDS = (
    ("targets", "Targets up", "#22c55e"),
    ("cpu", "CPU", "#3b82f6"),
    ("memory", "Memory", "#ef4444"),
    ("load", "Load (1/5/15)", "#f59e0b"),
    ("network", "Network rx/tx", "#06b6d4"),
    ("disk", "Disk r/w", "#0ea5e9"),
)


def host_fields(summary: HostSummary) -> dict[str, str]:
    memory = summary.memory
    return {
        "targets": str(summary.up_targets),
        "cpu": f"{summary.cpu:.1f} %",
        "memory": f"{memory.used:.1f}/{memory.total:.1f} GB ({memory.percentage:.1f} %)",
        "load": f"{summary.load1:.2f} / {summary.load5:.2f} / {summary.load15:.2f}",
        "network": f"{summary.rx_mb_s:.1f} / {summary.tx_mb_s:.1f} MB/s",
        "disk": f"{summary.read_mb_s:.1f} / {summary.write_mb_s:.1f} MB/s",
    }


def filesystem_lines(summary: HostSummary) -> str:
    if not summary.filesystems:
        return "No filesystems reported"
    return "\n".join(
        f"{fs.mountpoint} ({fs.device}): {fs.used:.1f}/{fs.total:.1f} GB, {fs.percentage:.1f} %"
        for fs in summary.filesystems
    )


class HostPane(QWidget):  # type: ignore[misc]
    """System metrics with manual refresh and an auto-refresh toggle."""

    def __init__(
        self,
        coordinator: FeedCoordinator,
        scheduler: FrameScheduler,
        settings: DashboardSettings,
        parent: Optional[QWidget] = None,
    ) -> None:  # type: ignore[override]
        super().__init__(parent)
        self.setObjectName("missionPane")
        self.setProperty("paneKind", "host")
        self.coordinator = coordinator
        layout = QVBoxLayout(self)  # type: ignore[call-arg]
        layout.setContentsMargins(16, 16, 16, 16)
        layout.setSpacing(12)

        header = QHBoxLayout()  # type: ignore[call-arg]
        heading = QLabel("Host resources")  # type: ignore[call-arg]
        heading.setObjectName("paneHeading")
        header.addWidget(heading)
        header.addStretch()  # type: ignore[attr-defined]
        self.auto_refresh = QCheckBox("Auto refresh")  # type: ignore[call-arg]
        self.auto_refresh.setChecked(False)
        self.refresh_button = QPushButton("Refresh now")  # type: ignore[call-arg]
        header.addWidget(self.auto_refresh)
        header.addWidget(self.refresh_button)
        layout.addLayout(header)

        self.updated_label = QLabel("Never updated")  # type: ignore[call-arg]
        self.updated_label.setObjectName("histStatusLabel")
        layout.addWidget(self.updated_label)

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

        self.filesystems_label = QLabel(filesystem_lines(HostSummary()))  # type: ignore[call-arg]
        self.filesystems_label.setObjectName("filesystemsLabel")
        layout.addWidget(self.filesystems_label)

        coordinator.redraw.connect(self.refresh)
        coordinator.on_clear(self.reset)

    def set_auto_refresh(self, enabled: bool) -> None:
        if self.auto_refresh.isChecked() != enabled:
            self.auto_refresh.setChecked(enabled)

    def refresh(self) -> None:
        for chart in self.charts.values():
            chart.refresh()
        summary = self.coordinator.latest_summary
        if isinstance(summary, HostSummary):
            for key, text in host_fields(summary).items():
                self.cards[key].set_value(text)
            self.filesystems_label.setText(filesystem_lines(summary))
            latest = self.coordinator.buffer("cpu").latest()
            if latest is not None:
                self.updated_label.setText(f"Last update: {latest.label}")

    def reset(self) -> None:
        for chart in self.charts.values():
            chart.reset()
        for card in self.cards.values():
            card.set_value("–")


__all__ = ["HostPane", "filesystem_lines", "host_fields"]
