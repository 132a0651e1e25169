# mypy: ignore-errors
"""WebSocket client for the backend push channel."""

from __future__ import annotations

import json
import logging
from typing import Any, cast

logger = logging.getLogger(__name__)

QT_IMPORT_ERROR: Exception | None = None

try:  # pragma: no cover - only when PyQt6 is present
    from PyQt6.QtCore import QObject, QTimer, QUrl, pyqtSignal
    from PyQt6.QtWebSockets import QWebSocket
except Exception as exc:  # pragma: no cover - headless environments  # noqa: BLE001
    QT_IMPORT_ERROR = exc
    QObject = cast(Any, object)
    QTimer = cast(Any, None)
    QUrl = cast(Any, None)
    QWebSocket = cast(Any, None)
    pyqtSignal = None  # type: ignore[assignment]  # noqa: N816

RECONNECT_MS = 3000


def parse_message(text: str) -> dict[str, Any] | None:
    """Decode one push frame; anything that is not a ``{type, ...}`` object is ``None``."""

    try:
        data = json.loads(text)
    except (TypeError, ValueError):
        logger.debug("Dropping non-JSON push frame")
        return None
    if not isinstance(data, dict) or not isinstance(data.get("type"), str):
        logger.debug("Dropping push frame without a type")
        return None
    return data


if QT_IMPORT_ERROR is None:  # pragma: no cover - requires PyQt6

    class PushClient(QObject):  # type: ignore[misc]
        """Emits ``message(dict)`` for each frame and ``status(text, kind)`` on state changes."""

        message = pyqtSignal(object)
        status = pyqtSignal(str, str)

        def __init__(self, parent: Any = None, reconnect_ms: int = RECONNECT_MS) -> None:
            super().__init__(parent)
            self._url: str | None = None
            self._closing = False
            self._socket = QWebSocket()
            self._socket.setParent(self)
            self._socket.connected.connect(self._on_connected)
            self._socket.disconnected.connect(self._on_disconnected)
            self._socket.textMessageReceived.connect(self._on_text)
            self._retry = QTimer(self)
            self._retry.setSingleShot(True)
            self._retry.setInterval(reconnect_ms)
            self._retry.timeout.connect(self._open)

        @property
        def active(self) -> bool:
            return self._url is not None and not self._closing

        def open(self, url: str) -> None:
            self._url = url
            self._closing = False
            self._open()

        def close(self) -> None:
            self._closing = True
            self._retry.stop()
            self._socket.close()
            self._url = None

        def _open(self) -> None:
            if self._url is None or self._closing:
                return
            self.status.emit("Connecting…", "idle")
            self._socket.open(QUrl(self._url))

        def _on_connected(self) -> None:
            logger.info("Push channel connected")
            self.status.emit("Connected", "connected")

        def _on_disconnected(self) -> None:
            if self._closing or self._url is None:
                self.status.emit("Disconnected", "idle")
                return
            logger.warning("Push channel lost: %s", self._socket.errorString())
            self.status.emit(f"Disconnected: {self._socket.errorString()}; retrying", "error")
            self._retry.start()

        def _on_text(self, text: str) -> None:
            data = parse_message(text)
            if data is not None:
                self.message.emit(data)

else:  # pragma: no cover - PyQt6 missing

    class PushClient:  # type: ignore[no-redef]
        def __init__(self, *args: Any, **kwargs: Any) -> None:
            raise RuntimeError(
                "The push client requires PyQt6. Install with `pip install PyQt6`."
            ) from QT_IMPORT_ERROR


__all__ = ["PushClient", "parse_message"]
