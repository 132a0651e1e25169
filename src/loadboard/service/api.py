"""FastAPI application for the loadboard backend."""

from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Request, Response, WebSocket, WebSocketDisconnect, status
from fastapi.middleware.cors import CORSMiddleware

from ..config import AUTH_HEADER, TOKEN_ENV_VAR, ServiceSettings
from .hub import PushHub
from .models import CurrentTest, RunRecord, StartTestRequest, TestStarted, TestStopped
from .runs import RunConflictError, RunSupervisor
from .store import RunHistoryStore
from .upstream import Upstream, UpstreamError

logger = logging.getLogger(__name__)


def create_app(
    settings: ServiceSettings | None = None,
    *,
    upstream: Upstream | None = None,
    store: RunHistoryStore | None = None,
    hub: PushHub | None = None,
    token: str | None = None,
) -> FastAPI:
    """Create the backend app. Collaborators default to ones built from ``settings``."""

    settings = settings or ServiceSettings()
    upstream = upstream or Upstream(
        settings.locust_url, settings.prometheus_url, timeout=settings.request_timeout
    )
    store = store or RunHistoryStore(settings.db_path)
    hub = hub or PushHub()
    supervisor = RunSupervisor(upstream, store, hub, stats_interval=settings.stats_interval)
    token_value = token if token is not None else os.getenv(TOKEN_ENV_VAR)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        yield
        await supervisor.shutdown()
        await upstream.aclose()

    app = FastAPI(title="loadboard backend", version="0.1.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=[AUTH_HEADER, "Content-Type"],
    )
    app.state.supervisor = supervisor
    app.state.store = store
    app.state.hub = hub

    def _authorized(headers: Any, query_params: Any) -> bool:
        if not token_value:
            return True
        if headers.get(AUTH_HEADER) == f"Bearer {token_value}":
            return True
        return query_params.get("token") == token_value

    async def require_token(request: Request) -> None:
        if not _authorized(request.headers, request.query_params):
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    auth = [Depends(require_token)]

    @app.get("/healthz", response_model=dict)
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/api/metrics/query", dependencies=auth)
    async def metrics_query(query: str | None = None) -> Any:
        if not query or not query.strip():
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing query parameter")
        try:
            return await upstream.query(query)
        except UpstreamError as exc:
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc

    @app.get("/api/locust/stats", dependencies=auth)
    async def locust_stats() -> Any:
        try:
            return await upstream.locust_stats()
        except UpstreamError as exc:
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc

    @app.post("/api/tests/start", response_model=TestStarted, dependencies=auth)
    async def start_test(request: StartTestRequest) -> TestStarted:
        try:
            record = await supervisor.start(request)
        except RunConflictError as exc:
            logger.error("Start rejected: %s", exc)
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
        except UpstreamError as exc:
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
        return TestStarted(test_id=record.id, name=record.name, start_time=record.start_time)

    @app.post("/api/tests/stop", response_model=TestStopped, dependencies=auth)
    async def stop_test() -> TestStopped:
        try:
            record = await supervisor.stop()
        except RunConflictError as exc:
            logger.error("Stop rejected: %s", exc)
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
        except UpstreamError as exc:
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
        return TestStopped(test_id=record.id, status=record.status, end_time=record.end_time or "")

    @app.get("/api/tests/current", response_model=CurrentTest, dependencies=auth)
    def current_test() -> CurrentTest:
        return supervisor.current()

    @app.get("/api/tests/history", response_model=list[RunRecord], dependencies=auth)
    def history(limit: int = 50) -> list[RunRecord]:
        return store.list(max(1, min(limit, 500)))

    @app.get("/api/tests/history/{run_id}", response_model=RunRecord, dependencies=auth)
    def get_run(run_id: int) -> RunRecord:
        record = store.get(run_id)
        if record is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Run not found")
        return record

    @app.delete(
        "/api/tests/history/{run_id}",
        status_code=status.HTTP_204_NO_CONTENT,
        response_class=Response,
        dependencies=auth,
    )
    def delete_run(run_id: int) -> Response:
        if supervisor.active is not None and supervisor.active.id == run_id:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Run is still active")
        if not store.delete(run_id):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Run not found")
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @app.websocket("/ws")
    async def push_channel(websocket: WebSocket) -> None:
        if not _authorized(websocket.headers, websocket.query_params):
            await websocket.close(code=1008)
            return
        await hub.register(websocket)
        try:
            while True:
                # inbound frames are ignored; receiving detects disconnects
                await websocket.receive_text()
        except WebSocketDisconnect:
            pass
        finally:
            await hub.unregister(websocket)

    return app


__all__ = ["create_app"]
