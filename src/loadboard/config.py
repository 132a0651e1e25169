"""Typed configuration loader for loadboard."""

from __future__ import annotations

import os
import tomllib
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from .contracts.error import BadInputError

TOKEN_ENV_VAR = "LOADBOARD_TOKEN"
AUTH_HEADER = "Authorization"

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


def _coerce_bool(raw: Any, name: str) -> bool:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, str):
        normalized = raw.strip().lower()
        if normalized in _TRUTHY:
            return True
        if normalized in _FALSY:
            return False
    if isinstance(raw, int):
        return bool(raw)
    raise BadInputError(f"{name} must be boolean")


@dataclass
class DashboardSettings:
    capacity: int = 120
    throttle_ms: float = 500.0
    epsilon: float = 0.1
    animate: bool = True
    animation_ms: float = 800.0
    frame_interval_ms: float = 16.0
    incremental_threshold: int = 5
    poll_interval: float = 5.0
    keep_history: bool = False

    def validate(self) -> None:
        if self.capacity < 2:
            raise BadInputError("dashboard.capacity must be >= 2")
        if self.throttle_ms < 0:
            raise BadInputError("dashboard.throttle_ms must be >= 0")
        if self.epsilon < 0:
            raise BadInputError("dashboard.epsilon must be >= 0")
        if self.animation_ms <= 0:
            raise BadInputError("dashboard.animation_ms must be > 0")
        if self.frame_interval_ms <= 0:
            raise BadInputError("dashboard.frame_interval_ms must be > 0")
        if self.incremental_threshold < 1:
            raise BadInputError("dashboard.incremental_threshold must be >= 1")
        if self.poll_interval <= 0:
            raise BadInputError("dashboard.poll_interval must be > 0")


@dataclass
class BackendEndpoint:
    host: str = "127.0.0.1"
    port: int = 3001

    def validate(self) -> None:
        if not self.host or not self.host.strip():
            raise BadInputError("backend.host must be a non-empty string")
        if "://" in self.host:
            raise BadInputError("backend.host should not include a scheme", hint="Use e.g. 127.0.0.1")
        if not 0 < self.port < 65536:
            raise BadInputError(f"backend.port must be between 1 and 65535; got {self.port}")


@dataclass
class ServiceSettings:
    locust_url: str = "http://localhost:8089"
    prometheus_url: str = "http://localhost:9090"
    db_path: str = "loadtest_history.db"
    stats_interval: float = 2.0
    request_timeout: float = 5.0

    def validate(self) -> None:
        for name in ("locust_url", "prometheus_url"):
            value = getattr(self, name)
            parsed = urlparse(value)
            if parsed.scheme not in {"http", "https"} or not parsed.netloc:
                raise BadInputError(f"service.{name} must be an http(s) URL; got {value!r}")
        if not self.db_path:
            raise BadInputError("service.db_path must be set")
        if self.stats_interval <= 0:
            raise BadInputError("service.stats_interval must be > 0")
        if self.request_timeout <= 0:
            raise BadInputError("service.request_timeout must be > 0")


def _section(cls: type, data: Mapping[str, Any], name: str) -> Any:
    raw = data.get(name, {})
    if not isinstance(raw, dict):
        raise BadInputError(f"[{name}] section must be a table")
    known = {f.name: f for f in fields(cls)}
    unknown = sorted(set(raw) - set(known))
    if unknown:
        raise BadInputError(f"Unknown keys in [{name}]: {', '.join(unknown)}")
    kwargs: dict[str, Any] = {}
    for key, value in raw.items():
        default = getattr(cls(), key)
        try:
            if isinstance(default, bool):
                kwargs[key] = _coerce_bool(value, f"{name}.{key}")
            elif isinstance(default, int):
                kwargs[key] = int(value)
            elif isinstance(default, float):
                kwargs[key] = float(value)
            else:
                kwargs[key] = str(value)
        except (TypeError, ValueError) as exc:
            raise BadInputError(f"{name}.{key} has invalid value {value!r}") from exc
    return cls(**kwargs)


@dataclass
class AppConfig:
    dashboard: DashboardSettings = field(default_factory=DashboardSettings)
    backend: BackendEndpoint = field(default_factory=BackendEndpoint)
    service: ServiceSettings = field(default_factory=ServiceSettings)

    @classmethod
    def load(cls, path: Path | None) -> AppConfig:
        if path is None:
            cfg = cls()
        else:
            try:
                data = tomllib.loads(path.read_text(encoding="utf-8"))
            except FileNotFoundError as exc:
                raise BadInputError(f"Config file not found: {path}") from exc
            except tomllib.TOMLDecodeError as exc:
                raise BadInputError(f"Invalid TOML: {exc}") from exc
            cfg = cls.from_dict(data)
        cfg.apply_env_overrides(os.environ)
        cfg.validate()
        return cfg

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AppConfig:
        return cls(
            dashboard=_section(DashboardSettings, data, "dashboard"),
            backend=_section(BackendEndpoint, data, "backend"),
            service=_section(ServiceSettings, data, "service"),
        )

    def apply_env_overrides(self, env: Mapping[str, str]) -> None:
        def _bool(raw: str) -> bool:
            return _coerce_bool(raw, "LOADBOARD_ANIMATE")

        mapping: dict[str, tuple[Any, str, Callable[[str], Any]]] = {
            "LOADBOARD_CAPACITY": (self.dashboard, "capacity", int),
            "LOADBOARD_THROTTLE_MS": (self.dashboard, "throttle_ms", float),
            "LOADBOARD_EPSILON": (self.dashboard, "epsilon", float),
            "LOADBOARD_ANIMATE": (self.dashboard, "animate", _bool),
            "LOADBOARD_POLL_INTERVAL": (self.dashboard, "poll_interval", float),
            "LOADBOARD_BACKEND_HOST": (self.backend, "host", str),
            "LOADBOARD_BACKEND_PORT": (self.backend, "port", int),
            "LOADBOARD_LOCUST_URL": (self.service, "locust_url", str),
            "LOADBOARD_PROMETHEUS_URL": (self.service, "prometheus_url", str),
            "LOADBOARD_DB_PATH": (self.service, "db_path", str),
            "LOADBOARD_STATS_INTERVAL": (self.service, "stats_interval", float),
        }
        for key, (target, attr, caster) in mapping.items():
            raw_value = env.get(key)
            if raw_value is None:
                continue
            try:
                value = caster(raw_value)
            except (BadInputError, ValueError) as exc:
                raise BadInputError(f"Invalid env override {key}={raw_value!r}") from exc
            setattr(target, attr, value)

    def validate(self) -> None:
        self.dashboard.validate()
        self.backend.validate()
        self.service.validate()


DEFAULT_CONFIG = AppConfig()


def load_app_config(path: str | None) -> AppConfig:
    config_path = Path(path) if path else None
    return AppConfig.load(config_path)


__all__ = [
    "AppConfig",
    "BackendEndpoint",
    "DashboardSettings",
    "ServiceSettings",
    "AUTH_HEADER",
    "DEFAULT_CONFIG",
    "TOKEN_ENV_VAR",
    "load_app_config",
]
