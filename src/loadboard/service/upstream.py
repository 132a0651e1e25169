"""Async HTTP access to Locust and Prometheus."""

from __future__ import annotations

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class UpstreamError(RuntimeError):
    """An upstream service was unreachable or answered with an error."""

    def __init__(self, service: str, message: str) -> None:
        super().__init__(f"{service}: {message}")
        self.service = service


class Upstream:
    def __init__(
        self,
        locust_url: str,
        prometheus_url: str,
        *,
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.locust_url = locust_url.rstrip("/")
        self.prometheus_url = prometheus_url.rstrip("/")
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _json(self, service: str, method: str, url: str, **kwargs: Any) -> Any:
        try:
            response = await self._client.request(method, url, **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as exc:
            logger.warning("%s answered %s for %s", service, exc.response.status_code, url)
            raise UpstreamError(service, f"HTTP {exc.response.status_code}") from exc
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("%s request to %s failed: %s", service, url, exc)
            raise UpstreamError(service, str(exc) or type(exc).__name__) from exc

    async def query(self, expression: str) -> Any:
        return await self._json(
            "prometheus", "GET", f"{self.prometheus_url}/api/v1/query", params={"query": expression}
        )

    async def locust_stats(self) -> Any:
        return await self._json("locust", "GET", f"{self.locust_url}/stats/requests")

    async def swarm(self, users: int, spawn_rate: float, host: str = "") -> Any:
        data: dict[str, Any] = {"user_count": users, "spawn_rate": spawn_rate}
        if host:
            data["host"] = host
        return await self._json("locust", "POST", f"{self.locust_url}/swarm", data=data)

    async def stop(self) -> Any:
        return await self._json("locust", "GET", f"{self.locust_url}/stop")


__all__ = ["Upstream", "UpstreamError"]
