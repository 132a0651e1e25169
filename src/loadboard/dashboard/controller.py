# mypy: ignore-errors
"""Controller glue between widgets, the backend client and the feed coordinators."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any

from ..config import DashboardSettings
from ..contracts.error import BadInputError
from ..core.coordinator import FeedCoordinator
from ..core.feeds import FeedRouter
from .metrics_client import BackendClient, HttpPoller
from .widgets import ConnectionPane, HistoryPane, HostPane, LoadTestPane, RunControlPane

logger = logging.getLogger(__name__)

try:  # pragma: no cover - only available when PyQt6 is installed
    from PyQt6.QtCore import QObject, pyqtSignal  # type: ignore[import-not-found]
except ImportError:  # pragma: no cover - headless environments
    QObject = None  # type: ignore[assignment]
    pyqtSignal = None  # type: ignore[assignment]  # noqa: N816


if QObject is not None:  # pragma: no cover - requires PyQt6

    class _UiBridge(QObject):  # type: ignore[misc]
        call = pyqtSignal(object)

        def __init__(self) -> None:
            super().__init__()
            self.call.connect(self._dispatch)  # type: ignore[attr-defined]

        def submit(self, func: Callable[..., None], *args, **kwargs) -> None:
            self.call.emit((func, args, kwargs))  # type: ignore[attr-defined]

        def _dispatch(self, payload: object) -> None:
            if not isinstance(payload, tuple):
                return
            func, args, kwargs = payload
            if callable(func):
                func(*args, **kwargs)

else:  # pragma: no cover - PyQt6 missing

    class _UiBridge:
        def submit(self, func: Callable[..., None], *args, **kwargs) -> None:
            func(*args, **kwargs)


class DashboardController:
    def __init__(
        self,
        connection: ConnectionPane,
        load_pane: LoadTestPane,
        host_pane: HostPane,
        run_control: RunControlPane,
        history: HistoryPane | None,
        *,
        load: FeedCoordinator,
        host: FeedCoordinator,
        settings: DashboardSettings,
        push: Any = None,
        client_factory: Callable[[str, int], BackendClient] = BackendClient,
    ) -> None:
        self._connection = connection
        self._load_pane = load_pane
        self._host_pane = host_pane
        self._run_control = run_control
        self._history = history
        self.load = load
        self.host = host
        self._settings = settings
        self._push = push
        self._client_factory = client_factory
        self.client: BackendClient | None = None
        self._poller: HttpPoller | None = None
        self._ui = _UiBridge()
        self.router = FeedRouter(load, clear_on_start=(host,), keep_history=settings.keep_history)
        self.router.on_run_state(self._on_run_state)

        self._connection.connect_button.clicked.connect(self._on_connect_clicked)  # type: ignore[attr-defined]
        self._run_control.start_button.clicked.connect(self._on_run_start)  # type: ignore[attr-defined]
        self._run_control.stop_button.clicked.connect(self._on_run_stop)  # type: ignore[attr-defined]
        self._host_pane.auto_refresh.toggled.connect(self._on_auto_refresh)  # type: ignore[attr-defined]
        self._host_pane.refresh_button.clicked.connect(self._on_refresh_host)  # type: ignore[attr-defined]
        if self._history is not None:
            self._history.refresh_button.clicked.connect(self.refresh_history)  # type: ignore[attr-defined]
            self._history.replay_button.clicked.connect(self._on_replay)  # type: ignore[attr-defined]
            self._history.delete_button.clicked.connect(self._on_delete_run)  # type: ignore[attr-defined]
        if self._push is not None:
            self._push.message.connect(self.router.dispatch)  # type: ignore[attr-defined]
            self._push.status.connect(self._connection.set_status)  # type: ignore[attr-defined]

    @property
    def polling(self) -> bool:
        return self._poller is not None

    def shutdown(self) -> None:
        self._stop_polling()
        if self._push is not None:
            self._push.close()
        for coordinator in (self.load, self.host):
            coordinator.redraw.cancel()

    def _background(
        self,
        work: Callable[[], Any],
        on_done: Callable[[Any], None] | None = None,
        on_error: Callable[[Exception], None] | None = None,
    ) -> None:
        def _run() -> None:
            try:
                result = work()
            except Exception as exc:  # noqa: BLE001
                logger.warning("Backend call failed: %s", exc)
                if on_error is not None:
                    self._ui.submit(on_error, exc)
                return
            if on_done is not None:
                self._ui.submit(on_done, result)

        threading.Thread(target=_run, daemon=True).start()

    # connection

    def _on_connect_clicked(self) -> None:
        if self.client is not None:
            self._disconnect()
            return
        try:
            host, port = self._connection.endpoint()
            client = self._client_factory(host, port)
        except (TypeError, ValueError) as exc:
            self._connection.set_status(f"Invalid endpoint: {exc}", "error")
            return
        self.client = client
        self._connection.set_connected(True)
        self._connection.set_status("Connecting…", "idle")
        if self._push is not None:
            self._push.open(client.websocket_url())
        self._background(client.current, self._apply_current, self._on_backend_error)
        self.refresh_history()

    def _disconnect(self) -> None:
        self._stop_polling()
        if self._push is not None:
            self._push.close()
        self.client = None
        self._connection.set_connected(False)
        self._connection.set_status("Disconnected", "idle")

    def _apply_current(self, current: dict[str, Any]) -> None:
        if self._push is None:
            self._connection.set_status("Connected", "connected")
        if current.get("running") and not self.router.running:
            self.router.running = True
            self._on_run_state(True)
        stats = current.get("stats")
        if stats:
            self.load.accept(stats)

    def _on_backend_error(self, exc: Exception) -> None:
        self._connection.set_status(f"Error: {exc}", "error")

    # run control

    def _on_run_start(self) -> None:
        if self.client is None:
            self._run_control.append_log("Connect to a backend first.")
            return
        params = self._run_control.parameters()
        self._run_control.indicate_starting()
        self._run_control.append_log(f"Starting {params['name']} with {params['users']} users")
        self._background(
            lambda: self.client.start_test(params),
            self._on_started,
            lambda exc: self._run_control.mark_error(f"Failed to start: {exc}"),
        )

    def _on_started(self, response: dict[str, Any]) -> None:
        self._run_control.append_log(f"Run started (id {response.get('test_id', '?')})")
        self._run_control.set_running(True, str(response.get("name") or ""))

    def _on_run_stop(self) -> None:
        if self.client is None:
            return
        self._run_control.indicate_stopping()
        self._run_control.append_log("Stopping run…")
        self._background(
            self.client.stop_test,
            lambda _response: self._run_control.append_log("Stop requested"),
            lambda exc: self._run_control.mark_error(f"Failed to stop: {exc}"),
        )

    def _on_run_state(self, running: bool) -> None:
        name = self.router.run.name if self.router.run else ""
        self._run_control.set_running(running, name)
        self._run_control.append_log("Run is active" if running else "Run finished")
        self._host_pane.set_auto_refresh(running)
        if not running:
            self.refresh_history()

    # host polling

    def _on_auto_refresh(self, enabled: bool) -> None:
        if enabled:
            self._start_polling()
        else:
            self._stop_polling()

    def _start_polling(self) -> None:
        if self._poller is not None or self.client is None:
            return
        poller = HttpPoller(self.client, interval=self._settings.poll_interval)
        poller.on_snapshot = self._handle_host_snapshot
        poller.on_error = self._handle_poll_error
        poller.start()
        self._poller = poller
        self._connection.set_polling(True, f"every {self._settings.poll_interval:g}s")

    def _stop_polling(self) -> None:
        if self._poller is None:
            return
        self._poller.stop()
        self._poller = None
        self._connection.set_polling(False)

    def _on_refresh_host(self) -> None:
        if self.client is None:
            self._connection.set_status("Not connected", "error")
            return
        poller = HttpPoller(self.client, interval=self._settings.poll_interval)
        self._background(poller.poll_once, self.host.accept, self._handle_poll_error_ui)

    def _handle_host_snapshot(self, snapshot: dict[str, Any]) -> None:
        self._ui.submit(self.host.accept, snapshot)

    def _handle_poll_error(self, exc: Exception) -> None:
        self._ui.submit(self._handle_poll_error_ui, exc)

    def _handle_poll_error_ui(self, exc: Exception) -> None:
        self._connection.set_status(f"Host poll failed: {exc}", "error")

    # history

    def refresh_history(self) -> None:
        if self._history is None or self.client is None:
            return
        self._history.set_status("Loading…")
        self._background(
            self.client.history,
            self._history.set_runs,
            lambda exc: self._history.set_status(f"History unavailable: {exc}"),
        )

    def _on_replay(self) -> None:
        if self._history is None:
            return
        run = self._history.selected_run()
        if run is None:
            self._history.set_status("Select a run to replay")
            return
        try:
            self._history.show_replay(run)
        except BadInputError as exc:
            logger.error("Cannot replay run %s: %s", run.get("id"), exc)
            self._history.set_status(f"Cannot replay: {exc}")

    def _on_delete_run(self) -> None:
        if self._history is None or self.client is None:
            return
        run = self._history.selected_run()
        if run is None or run.get("id") is None:
            self._history.set_status("Select a run to delete")
            return
        client = self.client
        self._background(
            lambda: client.delete_run(run["id"]),
            lambda _result: self.refresh_history(),
            lambda exc: self._history.set_status(f"Delete failed: {exc}"),
        )


__all__ = ["DashboardController"]
