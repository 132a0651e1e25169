"""Run history pane: table of past runs and a replayed chart of the selected one."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence

from ...config import DashboardSettings
from ...core.channels import LOAD_TEST_GROUPS
from ...core.coordinator import FeedCoordinator
from ...core.reducer import LoadTestReducer
from ...core.replay import RunDescriptor, replay_run
from ...core.scheduling import FrameScheduler
from .chart import ChartWidget
from .common import (
    QAbstractItemView,
    QComboBox,
    QHBoxLayout,
    QHeaderView,
    QLabel,
    QPushButton,
    QTableWidget,
    QTableWidgetItem,
    QVBoxLayout,
    QWidget,
)

COLUMNS = (
    ("name", "Name"),
    ("status", "Status"),
    ("start_time", "Started"),
    ("users", "Users"),
    ("requests_per_second", "Req/s"),
    ("avg_response_time", "Avg (ms)"),
    ("error_rate", "Errors (%)"),
    ("total_requests", "Requests"),
)


def cell_text(row: Mapping[str, Any], key: str) -> str:
    value = row.get(key)
    if value is None:
        return "–"
    if isinstance(value, float):
        return f"{value:.1f}"
    if key == "start_time" and isinstance(value, str):
        return value.replace("T", " ")[:19]
    return str(value)


def build_replay_coordinator() -> FeedCoordinator:
    """Replays are offline: every synthetic step is kept, nothing is throttled."""

    return FeedCoordinator(LoadTestReducer(), throttle_ms=0.0, epsilon=0.0)


class HistoryPane(QWidget):  # type: ignore[misc]
    def __init__(
        self,
        scheduler: FrameScheduler,
        settings: DashboardSettings,
        parent: Optional[QWidget] = None,
    ) -> None:  # type: ignore[override]
        super().__init__(parent)
        self.setObjectName("missionPane")
        self.setProperty("paneKind", "history")
        self.runs: List[Dict[str, Any]] = []
        self.replay = build_replay_coordinator()

        layout = QVBoxLayout(self)  # type: ignore[call-arg]
        layout.setContentsMargins(16, 16, 16, 16)
        layout.setSpacing(10)
        heading = QLabel("Run history")  # type: ignore[call-arg]
        heading.setObjectName("paneHeading")
        layout.addWidget(heading)

        self.table = QTableWidget(0, len(COLUMNS))  # type: ignore[call-arg]
        self.table.setObjectName("historyTable")
        self.table.setHorizontalHeaderLabels([title for _, title in COLUMNS])
        self.table.setSelectionBehavior(QAbstractItemView.SelectionBehavior.SelectRows)
        self.table.setSelectionMode(QAbstractItemView.SelectionMode.SingleSelection)
        self.table.setEditTriggers(QAbstractItemView.EditTrigger.NoEditTriggers)
        self.table.horizontalHeader().setSectionResizeMode(QHeaderView.ResizeMode.Stretch)
        layout.addWidget(self.table, 1)

        buttons = QHBoxLayout()  # type: ignore[call-arg]
        self.refresh_button = QPushButton("Refresh")  # type: ignore[call-arg]
        self.replay_button = QPushButton("Replay")  # type: ignore[call-arg]
        self.delete_button = QPushButton("Delete")  # type: ignore[call-arg]
        self.delete_button.setObjectName("stopButton")
        self.group_combo = QComboBox()  # type: ignore[call-arg]
        for group in LOAD_TEST_GROUPS:
            self.group_combo.addItem(group.title, group.key)
        buttons.addWidget(self.refresh_button)
        buttons.addWidget(self.replay_button)
        buttons.addWidget(self.delete_button)
        buttons.addStretch()  # type: ignore[attr-defined]
        buttons.addWidget(QLabel("Chart:"))  # type: ignore[call-arg]
        buttons.addWidget(self.group_combo)
        layout.addLayout(buttons)

        self.status_label = QLabel("No runs loaded")  # type: ignore[call-arg]
        self.status_label.setObjectName("histStatusLabel")
        layout.addWidget(self.status_label)

        self.charts: Dict[str, ChartWidget] = {}
        for group in LOAD_TEST_GROUPS:
            chart = ChartWidget(
                group,
                self.replay.buffer(group.key),
                scheduler,
                self,
                version=self._replay_version,
                animate=settings.animate,
                animation_ms=settings.animation_ms,
                frame_interval_ms=settings.frame_interval_ms,
                incremental_threshold=settings.incremental_threshold,
            )
            chart.setVisible(False)
            self.charts[group.key] = chart
            layout.addWidget(chart, 1)
        self.replay.on_clear(self._reset_charts)
        self.group_combo.currentIndexChanged.connect(self._on_group_changed)  # type: ignore[attr-defined]
        self._on_group_changed(0)

    def current_group(self) -> str:
        return str(self.group_combo.currentData())

    def set_runs(self, runs: Sequence[Mapping[str, Any]]) -> None:
        self.runs = [dict(run) for run in runs]
        self.table.setRowCount(len(self.runs))
        for row_index, run in enumerate(self.runs):
            for col_index, (key, _) in enumerate(COLUMNS):
                self.table.setItem(row_index, col_index, QTableWidgetItem(cell_text(run, key)))
        self.set_status(f"{len(self.runs)} run(s)")

    def selected_run(self) -> Optional[Dict[str, Any]]:
        rows = self.table.selectionModel().selectedRows() if self.table.selectionModel() else []
        if not rows:
            return None
        index = rows[0].row()
        if 0 <= index < len(self.runs):
            return self.runs[index]
        return None

    def set_status(self, text: str) -> None:
        self.status_label.setText(text)

    def show_replay(self, run: Mapping[str, Any]) -> int:
        """Replay ``run`` into the pane's charts; raises ``BadInputError`` on a bad descriptor."""

        descriptor = RunDescriptor.from_mapping(run)
        applied = replay_run(self.replay, descriptor)
        self.charts[self.current_group()].refresh()
        self.set_status(f"Replayed {descriptor.name or 'run'}: {applied} samples")
        return applied

    def _replay_version(self) -> int:
        return self.replay.version

    def _reset_charts(self) -> None:
        for chart in self.charts.values():
            chart.reset()

    def _on_group_changed(self, _index: int) -> None:
        selected = self.current_group()
        for key, chart in self.charts.items():
            chart.setVisible(key == selected)
        if self.replay.version:
            self.charts[selected].refresh()


__all__ = ["COLUMNS", "HistoryPane", "build_replay_coordinator", "cell_text"]
