"""Pane that drives a remote Locust swarm: parameters, start/stop, elapsed time, event log."""

from __future__ import annotations

import time
from enum import Enum
from typing import Any, Dict, NamedTuple, Optional

from .common import (
    QFormLayout,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QPlainTextEdit,
    QPushButton,
    QSpinBox,
    QTimer,
    QVBoxLayout,
    QWidget,
    add_glow,
    repolish,
)

DEFAULT_RUN_NAME = "Load test"
LOG_LINES = 500


class RunPhase(Enum):
    IDLE = "idle"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    COMPLETED = "completed"
    ERROR = "error"


class _PhaseView(NamedTuple):
    caption: str
    can_start: bool
    can_stop: bool
    editable: bool


_PHASES: Dict[RunPhase, _PhaseView] = {
    RunPhase.IDLE: _PhaseView("Idle", True, False, True),
    RunPhase.STARTING: _PhaseView("Starting…", False, False, False),
    RunPhase.RUNNING: _PhaseView("Running…", False, True, False),
    RunPhase.STOPPING: _PhaseView("Stopping…", False, False, False),
    RunPhase.COMPLETED: _PhaseView("Completed", True, False, True),
    RunPhase.ERROR: _PhaseView("Error", True, False, True),
}


def _spin(low: int, high: int, value: int) -> Any:
    box = QSpinBox()  # type: ignore[call-arg]
    box.setRange(low, high)
    box.setValue(value)
    return box


class _Stopwatch:
    """Elapsed-time label refreshed by a QTimer while a run is active."""

    def __init__(self, owner: Any, label: Any, interval_ms: int = 200) -> None:
        self.label = label
        self._since: Optional[float] = None
        self._ticker = QTimer(owner) if QTimer is not None else None
        if self._ticker is not None:
            self._ticker.setInterval(interval_ms)
            self._ticker.timeout.connect(self.refresh)  # type: ignore[attr-defined]
        self._show(0.0)

    @property
    def running(self) -> bool:
        return self._since is not None

    def start(self) -> None:
        self._since = time.monotonic()
        self._show(0.0)
        if self._ticker is not None:
            self._ticker.start()

    def halt(self) -> None:
        if self._ticker is not None:
            self._ticker.stop()
        self.refresh()
        self._since = None

    def refresh(self) -> None:
        if self._since is not None:
            self._show(time.monotonic() - self._since)

    def _show(self, seconds: float) -> None:
        self.label.setText(f"Elapsed: {seconds:.1f}s")


class RunControlPane(QWidget):  # type: ignore[misc]
    def __init__(self, parent: Optional[QWidget] = None) -> None:  # type: ignore[override]
        super().__init__(parent)
        self.setObjectName("missionPane")
        self.setProperty("paneKind", "run")
        column = QVBoxLayout(self)  # type: ignore[call-arg]
        column.setContentsMargins(16, 16, 16, 16)
        column.setSpacing(10)
        title = QLabel("Run Control")  # type: ignore[call-arg]
        title.setObjectName("paneHeading")
        column.addWidget(title)

        self.name_edit = QLineEdit(DEFAULT_RUN_NAME)  # type: ignore[call-arg]
        self.users_spin = _spin(1, 100_000, 10)
        self.spawn_rate_spin = _spin(1, 10_000, 1)
        self.host_edit = QLineEdit("http://localhost:8000")  # type: ignore[call-arg]
        self._inputs = (self.name_edit, self.users_spin, self.spawn_rate_spin, self.host_edit)
        form = QFormLayout()  # type: ignore[call-arg]
        for caption, field in zip(("Name", "Users", "Spawn rate", "Target host"), self._inputs):
            form.addRow(caption, field)
        column.addLayout(form)

        controls = QHBoxLayout()  # type: ignore[call-arg]
        self.start_button = QPushButton("Start test")  # type: ignore[call-arg]
        self.start_button.setObjectName("startButton")
        self.stop_button = QPushButton("Stop")  # type: ignore[call-arg]
        self.stop_button.setObjectName("stopButton")
        controls.addWidget(self.start_button)
        controls.addWidget(self.stop_button)
        column.addLayout(controls)

        status_row = QHBoxLayout()  # type: ignore[call-arg]
        self.status_label = QLabel()  # type: ignore[call-arg]
        self.status_label.setObjectName("statusLabel")
        self.timer_label = QLabel()  # type: ignore[call-arg]
        self.timer_label.setObjectName("timerLabel")
        status_row.addWidget(self.status_label)
        status_row.addStretch()  # type: ignore[attr-defined]
        status_row.addWidget(self.timer_label)
        column.addLayout(status_row)

        self.run_label = QLabel("")  # type: ignore[call-arg]
        self.run_label.setObjectName("histStatusLabel")
        column.addWidget(self.run_label)

        self.log_view = QPlainTextEdit()  # type: ignore[call-arg]
        self.log_view.setObjectName("runLog")
        self.log_view.setReadOnly(True)
        self.log_view.setMaximumBlockCount(LOG_LINES)
        column.addWidget(self.log_view, 1)

        self._stopwatch = _Stopwatch(self, self.timer_label)
        self._phase = RunPhase.IDLE
        self._enter(RunPhase.IDLE)

        add_glow(self, self.start_button, "#10b981")
        add_glow(self, self.stop_button, "#f43f5e")

    @property
    def state(self) -> str:
        return self._phase.value

    def parameters(self) -> Dict[str, Any]:
        """Body for ``POST /api/tests/start``; a blank name falls back to the default."""

        return {
            "name": self.name_edit.text().strip() or DEFAULT_RUN_NAME,
            "users": int(self.users_spin.value()),
            "spawn_rate": int(self.spawn_rate_spin.value()),
            "host": self.host_edit.text().strip(),
        }

    def append_log(self, line: str) -> None:
        self.log_view.appendPlainText(f"[{time.strftime('%H:%M:%S')}] {line}")

    def indicate_starting(self) -> None:
        self._enter(RunPhase.STARTING)

    def indicate_stopping(self) -> None:
        self._enter(RunPhase.STOPPING)

    def set_running(self, running: bool, name: str = "") -> None:
        if running:
            if not self._stopwatch.running:
                self._stopwatch.start()
            self.run_label.setText(f"Run: {name}" if name else "")
            self._enter(RunPhase.RUNNING)
            return
        self._stopwatch.halt()
        if self._phase in (RunPhase.RUNNING, RunPhase.STOPPING):
            self._enter(RunPhase.COMPLETED)
        elif self._phase is not RunPhase.ERROR:
            self._enter(RunPhase.IDLE)

    def mark_error(self, message: str) -> None:
        self._stopwatch.halt()
        self._enter(RunPhase.ERROR)
        self.append_log(message)

    def _enter(self, phase: RunPhase) -> None:
        view = _PHASES[phase]
        self._phase = phase
        self.start_button.setEnabled(view.can_start)
        self.stop_button.setEnabled(view.can_stop)
        for field in self._inputs:
            field.setEnabled(view.editable)
        self.status_label.setText(view.caption)
        self.status_label.setProperty("state", phase.value)
        repolish(self.status_label)


__all__ = ["RunControlPane", "RunPhase"]
