"""Rebuild chart history for a finished run from its stored summary row."""

from __future__ import annotations

import logging
import math
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from ..contracts.error import BadInputError
from .coordinator import FeedCoordinator
from .reducer import AGGREGATE_ROW, as_number

logger = logging.getLogger(__name__)

DEFAULT_STEPS = 60
DEFAULT_STEP_SECONDS = 2.0
RAMP_FRACTION = 0.25


def parse_instant(value: Any, field_name: str) -> datetime:
    """Accept ISO-8601 strings or epoch seconds/milliseconds."""

    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        seconds = value / 1000.0 if value > 1e11 else float(value)
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    if isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(text)
        except ValueError as exc:
            raise BadInputError(f"{field_name} is not an ISO timestamp: {value!r}") from exc
    raise BadInputError(f"{field_name} is missing or not a timestamp")


def _pick(data: Mapping[str, Any], *names: str) -> Any:
    for name in names:
        if data.get(name) is not None:
            return data[name]
    return None


@dataclass(frozen=True)
class RunDescriptor:
    start_time: datetime
    end_time: datetime | None = None
    name: str = ""
    users: int = 0
    requests_per_second: float = 0.0
    avg_response_time: float = 0.0
    error_rate: float = 0.0
    total_requests: int = 0
    total_failures: int = 0

    @classmethod
    def from_mapping(cls, data: Any) -> RunDescriptor:
        if not isinstance(data, Mapping):
            raise BadInputError("Run descriptor must be a JSON object")
        start = parse_instant(_pick(data, "start_time", "startTime"), "start_time")
        end_raw = _pick(data, "end_time", "endTime")
        end = parse_instant(end_raw, "end_time") if end_raw is not None else None
        if end is not None and (end.tzinfo is None) != (start.tzinfo is None):
            end = end.replace(tzinfo=start.tzinfo)
        return cls(
            start_time=start,
            end_time=end,
            name=str(data.get("name") or ""),
            users=int(as_number(_pick(data, "users", "user_count"))),
            requests_per_second=as_number(_pick(data, "requests_per_second", "requestsPerSecond")),
            avg_response_time=as_number(_pick(data, "avg_response_time", "avgResponseTime")),
            error_rate=as_number(_pick(data, "error_rate", "errorRate")),
            total_requests=int(as_number(_pick(data, "total_requests", "totalRequests"))),
            total_failures=int(as_number(_pick(data, "total_failures", "totalFailures"))),
        )

    @property
    def duration(self) -> timedelta:
        if self.end_time is None or self.end_time <= self.start_time:
            return timedelta(seconds=DEFAULT_STEPS * DEFAULT_STEP_SECONDS)
        return self.end_time - self.start_time


def synthesize_snapshots(
    descriptor: RunDescriptor, steps: int = DEFAULT_STEPS
) -> Iterator[tuple[datetime, dict[str, Any]]]:
    """Yield ``(timestamp, locust_payload)`` pairs approximating the run.

    Users ramp up over the first quarter, averages wobble deterministically
    around the stored values, and cumulative counts end exactly on the totals.
    """

    steps = max(int(steps), 2)
    duration = descriptor.duration
    failures_total = min(descriptor.total_failures, descriptor.total_requests)
    for index in range(steps):
        fraction = (index + 1) / steps
        ramp = min(1.0, fraction / RAMP_FRACTION)
        wobble = 1.0 + 0.08 * math.sin(index * 0.9) + 0.03 * math.cos(index * 2.3)
        last = index == steps - 1
        requests = descriptor.total_requests if last else round(descriptor.total_requests * fraction)
        failures = failures_total if last else min(round(failures_total * fraction), requests)
        avg = descriptor.avg_response_time * wobble
        rps = descriptor.requests_per_second * ramp * (2.0 - wobble)
        fail_share = descriptor.error_rate / 100.0 if descriptor.error_rate else 0.0
        aggregate = {
            "name": AGGREGATE_ROW,
            "method": "",
            "num_requests": requests,
            "num_failures": failures,
            "avg_response_time": avg,
            "median_response_time": avg * 0.9,
            "min_response_time": avg * 0.4,
            "max_response_time": avg * 2.5,
            "95%_response_time": avg * 1.6,
            "current_rps": rps,
            "current_fail_per_sec": rps * fail_share,
        }
        payload = {
            "state": "stopped" if last else "running",
            "user_count": round(descriptor.users * ramp),
            "total_rps": rps,
            "fail_ratio": fail_share,
            "stats": [aggregate],
        }
        yield descriptor.start_time + duration * fraction, payload


def replay_run(
    coordinator: FeedCoordinator, descriptor: RunDescriptor, steps: int = DEFAULT_STEPS
) -> int:
    """Push a synthesized run through ``coordinator.accept``. Returns samples appended."""

    coordinator.clear()
    applied = 0
    for stamp, payload in synthesize_snapshots(descriptor, steps):
        if coordinator.accept(payload, now=stamp.timestamp(), received_at=stamp):
            applied += 1
    if coordinator.has_pending and coordinator.flush(now=stamp.timestamp()):
        applied += 1
    logger.info("Replayed run %r: %d samples", descriptor.name or descriptor.start_time, applied)
    return applied


__all__ = ["RunDescriptor", "parse_instant", "replay_run", "synthesize_snapshots"]
