from __future__ import annotations

import json
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

pytestmark = pytest.mark.qt

pytest.importorskip("PyQt6.QtWidgets")
pytest.importorskip("pyqtgraph")

from loadboard.config import AppConfig, DashboardSettings
from loadboard.core import reducer as r
from loadboard.core.coordinator import FeedCoordinator
from loadboard.core.reducer import HostReducer, LoadTestReducer
from loadboard.core.replay import RunDescriptor
from loadboard.core.scheduling import ManualScheduler
from loadboard.dashboard import builders
from loadboard.dashboard.app import THEME, build_stylesheet
from loadboard.dashboard.controller import DashboardController
from loadboard.dashboard.offline import render_run
from loadboard.dashboard.surface import QtFrameScheduler, QtRasterSurface
from loadboard.dashboard.widgets import ConnectionPane, HistoryPane, HostPane, LoadTestPane, RunControlPane
from loadboard.dashboard.widgets.chart import ChartWidget, format_tooltip
from loadboard.dashboard.widgets.common import QDockWidget
from loadboard.dashboard.widgets.history import cell_text
from loadboard.render.interaction import Tooltip, TooltipRow
from loadboard.render.renderer import PaintMode

PNG_MAGIC = b"\x89PNG\r\n\x1a\n"
STILL = DashboardSettings(animate=False, throttle_ms=0.0, epsilon=0.0)


def _pump(app: Any, predicate: Callable[[], bool], timeout: float = 3.0) -> None:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        app.processEvents()
        if predicate():
            return
        time.sleep(0.01)
    raise AssertionError("condition not reached in time")


def _locust(avg: float, state: str = "running") -> dict[str, Any]:
    return {
        "state": state,
        "user_count": 12,
        "total_rps": 8.0,
        "stats": [
            {"name": "/checkout", "method": "POST", "num_requests": 40, "num_failures": 2,
             "current_rps": 4.0, "avg_response_time": avg},
            {"name": "Aggregated", "method": "", "num_requests": 40, "num_failures": 2,
             "current_rps": 8.0, "avg_response_time": avg, "median_response_time": avg,
             "response_time_percentile_0.95": avg * 2},
        ],
    }


def _vector(labels: dict[str, str], value: float) -> dict[str, Any]:
    return {"status": "success", "data": {"resultType": "vector",
                                          "result": [{"metric": labels, "value": [0, str(value)]}]}}


def _coordinators() -> tuple[FeedCoordinator, FeedCoordinator]:
    load = FeedCoordinator(LoadTestReducer(), capacity=20, throttle_ms=0.0, epsilon=0.0)
    host = FeedCoordinator(HostReducer(), capacity=20, throttle_ms=0.0, epsilon=0.0)
    return load, host


class FakeBackend:
    def __init__(self, host: str, port: int) -> None:
        self.endpoint = (host, port)
        self.runs = [{"id": 1, "name": "smoke", "status": "completed",
                      "start_time": "2024-05-01T12:00:00", "end_time": "2024-05-01T12:05:00",
                      "users": 10, "requests_per_second": 5.0, "total_requests": 1500}]

    def websocket_url(self) -> str:
        return "ws://fake/ws"

    def current(self) -> dict[str, Any]:
        return {"running": True, "test_id": 1, "stats": _locust(50.0)}

    def history(self) -> list[dict[str, Any]]:
        return list(self.runs)

    def query(self, expression: str) -> dict[str, Any]:
        return {"status": "success", "data": {"resultType": "vector", "result": []}}


def test_raster_surface_saves_png(qt_app: Any, tmp_path: Path) -> None:
    surface = QtRasterSurface()
    assert surface.image is None
    surface.resize(200, 120, 2.0)
    assert surface.image is not None
    assert surface.image.width() == 400
    surface.clear()
    target = tmp_path / "blank.png"
    assert surface.save(target) is True
    assert target.read_bytes().startswith(PNG_MAGIC)


def test_frame_scheduler_fires_and_cancels(qt_app: Any) -> None:
    scheduler = QtFrameScheduler()
    fired: list[str] = []
    scheduler.call_later(0, lambda: fired.append("a"))
    doomed = scheduler.call_later(0, lambda: fired.append("b"))
    scheduler.cancel(doomed)
    assert scheduler.pending == 1
    _pump(qt_app, lambda: fired == ["a"])
    assert scheduler.pending == 0
    assert scheduler.now() > 0


def test_chart_widget_paints_buffer(qt_app: Any) -> None:
    load, _ = _coordinators()
    group = load.reducer.groups[0]
    chart = ChartWidget(group, load.buffer(group.key), ManualScheduler(), version=lambda: load.version, animate=False)
    chart.resize(480, 260)

    for step in range(3):
        load.accept(_locust(40.0 + step), now=step * 1000.0)
    chart.refresh()
    assert chart.view.has_data
    assert chart.view.last_mode is PaintMode.FULL
    load.accept(_locust(41.0), now=5000.0)
    chart.refresh()
    assert chart.view.last_mode is PaintMode.INCREMENTAL

    chart.reset()
    assert not chart.view.has_data


def test_format_tooltip_lists_rows() -> None:
    tooltip = Tooltip(2, "12:00:05", (TooltipRow("Average", 42.0, "#3b82f6"),), (10.0, 20.0))
    html = format_tooltip(tooltip, "ms")
    assert "12:00:05" in html
    assert "Average: <b>42</b> ms" in html


def test_load_pane_tracks_summary_and_clears(qt_app: Any) -> None:
    load, _ = _coordinators()
    pane = LoadTestPane(load, ManualScheduler(), STILL)
    assert set(pane.charts) == {group.key for group in load.reducer.groups}

    load.accept(_locust(123.0), now=0.0)
    assert pane.state_label.text() == "Running"
    assert pane.cards["users"].value_label.text() == "12"
    assert pane.cards["avg"].value_label.text() == "123 ms"
    assert pane.cards["error_rate"].value_label.text() == "5.0 %"

    load.clear()
    assert pane.cards["avg"].value_label.text() == "–"


def test_host_pane_shows_filesystems_and_update_time(qt_app: Any) -> None:
    _, host = _coordinators()
    pane = HostPane(host, ManualScheduler(), STILL)
    assert pane.filesystems_label.text() == "No filesystems reported"

    fs = {"device": "sda1", "mountpoint": "/"}
    host.accept(
        {
            r.QUERY_FS_SIZE: _vector(fs, 100 * r.BYTES_PER_GB),
            r.QUERY_FS_AVAIL: _vector(fs, 25 * r.BYTES_PER_GB),
            r.QUERY_LOAD1: _vector({}, 0.5),
        },
        now=0.0,
    )
    assert "/ (sda1)" in pane.filesystems_label.text()
    assert "75.0 %" in pane.filesystems_label.text()
    assert pane.updated_label.text().startswith("Last update: ")

    pane.set_auto_refresh(True)
    assert pane.auto_refresh.isChecked()


def test_history_pane_lists_and_replays_runs(qt_app: Any) -> None:
    pane = HistoryPane(ManualScheduler(), STILL)
    runs = [
        {"id": 2, "name": "soak", "status": "completed", "start_time": "2024-05-01T12:00:00",
         "end_time": "2024-05-01T12:10:00", "users": 50, "requests_per_second": 12.5},
        {"id": 1, "name": "broken", "status": "failed"},
    ]
    pane.set_runs(runs)
    assert pane.table.rowCount() == 2
    assert pane.status_label.text() == "2 run(s)"
    assert pane.selected_run() is None

    pane.table.selectRow(0)
    assert pane.selected_run()["id"] == 2
    applied = pane.show_replay(runs[0])
    assert applied == len(pane.replay.buffer("response_times"))
    assert applied > 0
    assert "soak" in pane.status_label.text()


def test_cell_text_formats_values() -> None:
    assert cell_text({"start_time": "2024-05-01T12:00:00.123456"}, "start_time") == "2024-05-01 12:00:00"
    assert cell_text({"error_rate": 2.345}, "error_rate") == "2.3"
    assert cell_text({}, "users") == "–"
    assert cell_text({"users": 5}, "users") == "5"


def test_run_control_state_transitions(qt_app: Any) -> None:
    pane = RunControlPane()
    assert pane.state == "idle"
    pane.name_edit.setText("  ")
    params = pane.parameters()
    assert params["name"] == "Load test"
    assert set(params) == {"name", "users", "spawn_rate", "host"}

    pane.indicate_starting()
    assert pane.state == "starting"
    pane.set_running(True, "smoke")
    assert pane.state == "running"
    assert not pane.start_button.isEnabled()
    assert pane.run_label.text() == "Run: smoke"
    pane.set_running(False)
    assert pane.state == "completed"
    pane.mark_error("boom")
    assert pane.state == "error"
    assert "boom" in pane.log_view.toPlainText()


def test_connection_pane_endpoint(qt_app: Any) -> None:
    pane = ConnectionPane(host="10.0.0.2", port=4000)
    assert pane.endpoint() == ("10.0.0.2", 4000)
    pane.port_edit.setText("http")
    with pytest.raises(ValueError):
        pane.endpoint()
    pane.set_connected(True)
    assert pane.connect_button.text() == "Disconnect"
    pane.set_polling(True, "every 5s")
    assert pane.poll_label.text() == "Host polling: on every 5s"


def test_builders_assemble_window(qt_app: Any) -> None:
    config = AppConfig(dashboard=STILL)
    scheduler = ManualScheduler()
    load, host = builders.build_coordinators(config, scheduler)
    assert load.reducer.primary is not None
    panes = builders.build_widgets(config, load, host, scheduler)
    controller = builders.build_controller(panes, load, host, config)
    window = builders.build_window(controller, panes)
    try:
        assert window.objectName() == "missionWindow"
        assert window.centralWidget().count() == 3
        pinned = window.findChild(QDockWidget, "dock_run_control")
        assert pinned is not None
        assert not pinned.features() & QDockWidget.DockWidgetFeature.DockWidgetClosable
    finally:
        controller.shutdown()
        window.deleteLater()


def _controller(qt_app: Any) -> tuple[DashboardController, builders.DashboardWidgets]:
    config = AppConfig(dashboard=STILL)
    scheduler = ManualScheduler()
    load, host = _coordinators()
    panes = builders.build_widgets(config, load, host, scheduler)
    controller = DashboardController(
        panes.connection,
        panes.load,
        panes.host,
        panes.run_control,
        panes.history,
        load=load,
        host=host,
        settings=config.dashboard,
        client_factory=FakeBackend,
    )
    return controller, panes


def test_controller_routes_push_messages(qt_app: Any) -> None:
    controller, panes = _controller(qt_app)
    controller.router.dispatch({"type": "test_started", "payload": {"testId": 4, "name": "spike"}})
    assert panes.run_control.state == "running"
    assert panes.run_control.run_label.text() == "Run: spike"
    assert panes.host.auto_refresh.isChecked()
    assert not controller.polling  # not connected, nothing to poll

    controller.router.dispatch({"type": "stats_update", "payload": {"stats": _locust(80.0)}})
    assert panes.load.cards["avg"].value_label.text() == "80 ms"

    controller.router.dispatch({"type": "test_completed", "payload": {}})
    assert panes.run_control.state == "completed"
    controller.shutdown()


def test_controller_connect_flow(qt_app: Any) -> None:
    controller, panes = _controller(qt_app)
    panes.connection.port_edit.setText("nope")
    controller._on_connect_clicked()
    assert controller.client is None
    assert "Invalid endpoint" in panes.connection.status_label.text()

    panes.connection.port_edit.setText("3001")
    controller._on_connect_clicked()
    assert controller.client is not None
    assert controller.client.endpoint == ("127.0.0.1", 3001)
    _pump(qt_app, lambda: panes.connection.status_label.text() == "Connected")
    _pump(qt_app, lambda: panes.history.table.rowCount() == 1)
    assert panes.run_control.state == "running"
    assert panes.load.cards["avg"].value_label.text() == "50 ms"

    controller._on_connect_clicked()
    assert controller.client is None
    assert panes.connection.status_label.text() == "Disconnected"
    controller.shutdown()


def test_controller_replays_selected_run(qt_app: Any) -> None:
    controller, panes = _controller(qt_app)
    controller._on_replay()
    assert panes.history.status_label.text() == "Select a run to replay"

    panes.history.set_runs([{"id": 9, "name": "bad"}])
    panes.history.table.selectRow(0)
    controller._on_replay()
    assert panes.history.status_label.text().startswith("Cannot replay:")
    controller.shutdown()


def test_render_run_writes_png(qt_app: Any, tmp_path: Path) -> None:
    descriptor = RunDescriptor.from_mapping(
        {"name": "soak", "start_time": "2024-05-01T12:00:00", "end_time": "2024-05-01T12:05:00",
         "users": 20, "requests_per_second": 10.0, "avg_response_time": 90.0, "total_requests": 3000}
    )
    out = tmp_path / "soak.png"
    assert render_run(descriptor, out, steps=30, width=320, height=200) == 30
    assert out.read_bytes().startswith(PNG_MAGIC)


def test_cli_render_run_reports_success(qt_app: Any, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    from loadboard import cli

    descriptor = tmp_path / "run.json"
    descriptor.write_text(json.dumps({"name": "smoke", "start_time": "2024-05-01T12:00:00"}), encoding="utf-8")
    out = tmp_path / "smoke.png"
    code = cli.main(["render-run", str(descriptor), "--out", str(out), "--group", "throughput", "--steps", "10"])
    assert code == 0
    payload = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
    assert payload == {"ok": True, "command": "render-run", "out": str(out), "samples": 10}
    assert out.exists()


def test_stylesheet_follows_theme_overrides() -> None:
    default = build_stylesheet()
    assert THEME["accent"] in default
    assert 'QLabel[statusKind="error"]' in default
    tinted = build_stylesheet({"accent": "#ff00ff"})
    assert "#ff00ff" in tinted
    assert THEME["accent"] not in tinted
