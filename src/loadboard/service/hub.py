"""Fan-out of push messages to connected dashboards."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import WebSocket

from .models import PushMessage

logger = logging.getLogger(__name__)


class PushHub:
    def __init__(self) -> None:
        self._clients: set[WebSocket] = set()
        self._lock = asyncio.Lock()

    @property
    def client_count(self) -> int:
        return len(self._clients)

    async def register(self, websocket: WebSocket) -> None:
        await websocket.accept()
        async with self._lock:
            self._clients.add(websocket)
        logger.info("Dashboard connected (%d total)", len(self._clients))

    async def unregister(self, websocket: WebSocket) -> None:
        async with self._lock:
            self._clients.discard(websocket)
        logger.info("Dashboard disconnected (%d left)", len(self._clients))

    async def broadcast(self, kind: str, payload: dict[str, Any] | None = None) -> int:
        """Send ``{type, payload}`` to every client; dead sockets are dropped. Returns deliveries."""

        message = PushMessage(type=kind, payload=payload or {}).model_dump(mode="json")
        async with self._lock:
            clients = list(self._clients)
        delivered = 0
        for websocket in clients:
            try:
                await websocket.send_json(message)
            except Exception as exc:  # noqa: BLE001
                logger.debug("Dropping dashboard socket after send failure: %s", exc)
                await self.unregister(websocket)
            else:
                delivered += 1
        return delivered


__all__ = ["PushHub"]
