# mypy: ignore-errors
"""HTTP client for the loadboard backend and the host-resource polling loop."""

from __future__ import annotations

import contextlib
import gzip
import ipaddress
import json
import logging
import os
import threading
from collections.abc import Callable, Sequence
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.parse import quote, urlencode, urljoin, urlparse
from urllib.request import Request, urlopen

from ..config import AUTH_HEADER, TOKEN_ENV_VAR
from ..core.reducer import HOST_QUERIES

logger = logging.getLogger(__name__)


class BackendError(RuntimeError):
    """Raised when the backend answers with an error status or unreadable body."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


def _netloc_host(host: str) -> str:
    """Bare hostname, or an IP literal in URL form (IPv6 gets brackets)."""

    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    if not host:
        raise ValueError("Host must be a non-empty string")
    try:
        address = ipaddress.ip_address(host)
    except ValueError:
        if ":" in host:
            raise ValueError(f"Host should not include a port; got {host!r}") from None
        return host
    return f"[{address.compressed}]" if address.version == 6 else address.compressed


def build_base_url(host: str, port: int) -> str:
    """``http://host:port`` for the backend; rejects schemes, embedded ports and bad port numbers."""

    if not isinstance(port, int):
        raise TypeError("Port must be an integer")
    if not 0 < port < 65536:
        raise ValueError(f"Port must be between 1 and 65535; got {port}")
    if host is None:
        raise ValueError("Host must be provided for the backend connection")
    cleaned = host.strip().rstrip("/")
    if "://" in cleaned:
        raise ValueError(f"Host should not include a scheme; got {host!r}")
    url = f"http://{_netloc_host(cleaned)}:{port}"
    if not urlparse(url).hostname:
        raise ValueError(f"Unusable backend host {host!r}")
    return url


def _decode_body(raw: bytes, encoding: str, path: str) -> Any:
    if encoding.lower() == "gzip":
        raw = gzip.decompress(raw)
    if not raw:
        return None
    try:
        return json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise BackendError(f"Invalid JSON from {path}") from exc


def _http_failure(exc: HTTPError) -> BackendError:
    """Prefer FastAPI's ``{"detail": ...}`` body over the bare status line."""

    detail = None
    with contextlib.suppress(Exception):
        body = json.loads(exc.read().decode("utf-8"))
        detail = body.get("detail") if isinstance(body, dict) else None
    message = f"HTTP {exc.code}: {detail}" if detail else f"HTTP {exc.code}"
    return BackendError(message, status=exc.code)


class BackendClient:
    """Blocking JSON client. Call it from worker threads, never the GUI thread."""

    def __init__(self, host: str, port: int, *, timeout: float = 5.0, token: str | None = None) -> None:
        self.base_url = build_base_url(host, port)
        self.timeout = timeout
        self._token = token if token is not None else os.getenv(TOKEN_ENV_VAR)

    def websocket_url(self) -> str:
        query = "?" + urlencode({"token": self._token}) if self._token else ""
        return self.base_url.replace("http://", "ws://", 1) + "/ws" + query

    def _headers(self, has_body: bool) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if has_body:
            headers["Content-Type"] = "application/json"
        if self._token:
            headers[AUTH_HEADER] = f"Bearer {self._token}"
        return headers

    def _request(self, method: str, path: str, body: Any = None) -> Any:
        if not path.startswith("/"):
            raise ValueError(f"Expected path starting with '/'; got {path!r}")
        data = None if body is None else json.dumps(body).encode("utf-8")
        request = Request(  # noqa: S310  # nosec B310
            urljoin(self.base_url, path), data=data, headers=self._headers(data is not None), method=method
        )
        try:
            with urlopen(request, timeout=self.timeout) as reply:  # noqa: S310  # nosec B310
                raw, encoding = reply.read(), reply.headers.get("Content-Encoding", "")
        except HTTPError as exc:
            raise _http_failure(exc) from exc
        except URLError as exc:
            raise BackendError(f"Backend unreachable: {exc.reason}") from exc
        return _decode_body(raw, encoding, path)

    def health(self) -> Any:
        return self._request("GET", "/healthz")

    def current(self) -> dict[str, Any]:
        payload = self._request("GET", "/api/tests/current")
        return payload if isinstance(payload, dict) else {}

    def start_test(self, params: dict[str, Any]) -> dict[str, Any]:
        return self._request("POST", "/api/tests/start", params) or {}

    def stop_test(self) -> dict[str, Any]:
        return self._request("POST", "/api/tests/stop", {}) or {}

    def history(self) -> list[dict[str, Any]]:
        payload = self._request("GET", "/api/tests/history")
        if isinstance(payload, dict):
            payload = payload.get("runs", [])
        return [item for item in payload or [] if isinstance(item, dict)]

    def get_run(self, run_id: Any) -> dict[str, Any]:
        return self._request("GET", f"/api/tests/history/{quote(str(run_id))}") or {}

    def delete_run(self, run_id: Any) -> None:
        self._request("DELETE", f"/api/tests/history/{quote(str(run_id))}")

    def query(self, expression: str) -> Any:
        return self._request("GET", "/api/metrics/query?" + urlencode({"query": expression}))

    def locust_stats(self) -> Any:
        return self._request("GET", "/api/locust/stats")


class HttpPoller:
    """Fetches every host query on a background thread once per ``interval`` seconds.

    A failing query contributes ``None`` to the snapshot. Only when every query
    fails is the round reported through :attr:`on_error` instead.
    """

    def __init__(
        self,
        client: BackendClient,
        queries: Sequence[str] = HOST_QUERIES,
        interval: float = 5.0,
    ) -> None:
        self.client = client
        self.queries = tuple(queries)
        self.interval = interval
        self._thread: threading.Thread | None = None
        self._stop = threading.Event()
        self.on_snapshot: Callable[[dict[str, Any]], None] | None = None
        self.on_error: Callable[[Exception], None] | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="loadboard-host-poller", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        thread = self._thread
        if thread and thread is not threading.current_thread():
            thread.join(timeout=1.0)
        self._thread = None

    def poll_once(self) -> dict[str, Any]:
        results: dict[str, Any] = {}
        last_error: Exception | None = None
        for expression in self.queries:
            try:
                results[expression] = self.client.query(expression)
            except Exception as exc:  # noqa: BLE001
                logger.debug("Query %s failed: %s", expression, exc)
                results[expression] = None
                last_error = exc
        if self.queries and all(value is None for value in results.values()):
            raise last_error or BackendError("All host queries failed")
        return results

    def _run(self) -> None:
        while not self._stop.is_set():
            try:
                snapshot = self.poll_once()
            except Exception as exc:  # noqa: BLE001
                logger.warning("Host poll failed: %s", exc)
                if self.on_error:
                    self.on_error(exc)
            else:
                if self.on_snapshot and not self._stop.is_set():
                    self.on_snapshot(snapshot)
            self._stop.wait(self.interval)


__all__ = ["BackendClient", "BackendError", "HttpPoller", "build_base_url"]
