"""Project raw feed snapshots onto fixed, typed channel samples.

Two reducers live here:

* :class:`LoadTestReducer` consumes the Locust ``/stats/requests`` payload and
  derives latency, throughput, request-count, user and error-rate channels from
  the ``Aggregated`` row.
* :class:`HostReducer` consumes a mapping of Prometheus query strings to
  ``/api/v1/query`` envelopes and derives CPU, memory, load, network and disk
  channels.

Reducers never raise on malformed input. Missing rows, empty result sets and
unparsable numbers are replaced by zero (or a zeroed structure) so a single bad
poll cannot take the charts down.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Protocol

from .buffer import Sample
from .channels import HOST_GROUPS, LOAD_TEST_GROUPS, ChannelGroup

logger = logging.getLogger(__name__)

AGGREGATE_ROW = "Aggregated"
BYTES_PER_GB = 1024**3
BYTES_PER_MB = 1024**2

QUERY_UP = 'up{job="node_exporter"}'
QUERY_CPU_RATE = "rate(node_cpu_seconds_total[5m])"
QUERY_MEM_TOTAL = "node_memory_MemTotal_bytes"
QUERY_MEM_AVAILABLE = "node_memory_MemAvailable_bytes"
QUERY_FS_SIZE = "node_filesystem_size_bytes"
QUERY_FS_AVAIL = "node_filesystem_avail_bytes"
QUERY_NET_RX = "node_network_receive_bytes_total"
QUERY_NET_TX = "node_network_transmit_bytes_total"
QUERY_LOAD1 = "node_load1"
QUERY_LOAD5 = "node_load5"
QUERY_LOAD15 = "node_load15"
QUERY_DISK_READ = "node_disk_read_bytes_total"
QUERY_DISK_WRITTEN = "node_disk_written_bytes_total"

HOST_QUERIES: tuple[str, ...] = (
    QUERY_UP,
    QUERY_CPU_RATE,
    QUERY_MEM_TOTAL,
    QUERY_MEM_AVAILABLE,
    QUERY_FS_SIZE,
    QUERY_FS_AVAIL,
    QUERY_NET_RX,
    QUERY_NET_TX,
    QUERY_LOAD1,
    QUERY_LOAD5,
    QUERY_LOAD15,
    QUERY_DISK_READ,
    QUERY_DISK_WRITTEN,
)


def as_number(value: Any) -> float:
    """Coerce JSON scalars (including Prometheus string values) to a finite float."""

    if isinstance(value, bool) or value is None:
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def safe_div(numerator: float, denominator: float) -> float:
    if not denominator or not math.isfinite(denominator):
        return 0.0
    result = numerator / denominator
    return result if math.isfinite(result) else 0.0


def round_half_up(value: float, digits: int = 0) -> float:
    try:
        quantum = Decimal(1).scaleb(-digits)
        return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))
    except (InvalidOperation, ValueError):
        return 0.0


@dataclass(frozen=True)
class Reduction:
    """Result of reducing one raw snapshot: one sample per group plus a summary."""

    samples: Mapping[str, Sample]
    summary: Any
    primary: float | None = None


class SnapshotReducer(Protocol):
    feed: str
    groups: tuple[ChannelGroup, ...]
    primary: tuple[str, str] | None

    def reduce(self, raw: Any, received_at: datetime | None = None) -> Reduction: ...

    def reset(self) -> None: ...


# ----------------------------------------------------------------------
# Load-test feed


@dataclass(frozen=True)
class EndpointStat:
    method: str
    name: str
    requests: int
    failures: int
    rps: float
    avg_response_time: float


@dataclass(frozen=True)
class LoadTestSummary:
    state: str = "stopped"
    users: int = 0
    avg_response_time: float = 0.0
    min_response_time: float = 0.0
    max_response_time: float = 0.0
    median_response_time: float = 0.0
    p95_response_time: float = 0.0
    rps: float = 0.0
    total_rps: float = 0.0
    total_requests: int = 0
    total_failures: int = 0
    error_rate: float = 0.0
    endpoints: tuple[EndpointStat, ...] = ()


def _rows(payload: Mapping[str, Any]) -> list[Mapping[str, Any]]:
    rows = payload.get("stats")
    if not isinstance(rows, Iterable) or isinstance(rows, (str, bytes, Mapping)):
        return []
    return [row for row in rows if isinstance(row, Mapping)]


def _p95(row: Mapping[str, Any], payload: Mapping[str, Any]) -> float:
    for key in ("95%_response_time", "response_time_percentile_0.95"):
        if row.get(key) is not None:
            return as_number(row.get(key))
    percentiles = payload.get("current_response_time_percentiles")
    if isinstance(percentiles, Mapping):
        return as_number(percentiles.get("response_time_percentile_0.95"))
    return 0.0


class LoadTestReducer:
    feed = "load_test"
    groups = LOAD_TEST_GROUPS
    primary: tuple[str, str] | None = ("response_times", "avg")

    def reduce(self, raw: Any, received_at: datetime | None = None) -> Reduction:
        stamp = received_at or datetime.now()
        payload: Mapping[str, Any] = raw if isinstance(raw, Mapping) else {}
        rows = _rows(payload)
        aggregate: Mapping[str, Any] = next(
            (row for row in rows if row.get("name") == AGGREGATE_ROW), {}
        )
        if not aggregate:
            logger.debug("Load-test snapshot has no %r row; using zeros", AGGREGATE_ROW)

        requests = int(as_number(aggregate.get("num_requests")))
        failures = int(as_number(aggregate.get("num_failures")))
        avg = round_half_up(as_number(aggregate.get("avg_response_time")))
        median = round_half_up(as_number(aggregate.get("median_response_time")))
        p95 = round_half_up(_p95(aggregate, payload))
        rps_raw = aggregate.get("current_rps")
        if rps_raw is None:
            rps_raw = payload.get("total_rps")
        rps = round_half_up(as_number(rps_raw), 1)
        failures_per_s = round_half_up(as_number(aggregate.get("current_fail_per_sec")), 1)
        error_rate = round_half_up(safe_div(failures, requests) * 100.0, 1)
        users = int(as_number(payload.get("user_count")))

        samples = {
            "response_times": Sample(stamp, {"avg": avg, "median": median, "p95": p95}),
            "throughput": Sample(stamp, {"rps": rps, "failures_per_s": failures_per_s}),
            "requests": Sample(
                stamp, {"succeeded": float(max(requests - failures, 0)), "failed": float(failures)}
            ),
            "users": Sample(stamp, {"users": float(users)}),
            "error_rate": Sample(stamp, {"error_rate": error_rate}),
        }
        endpoints = tuple(
            EndpointStat(
                method=str(row.get("method") or ""),
                name=str(row.get("name") or ""),
                requests=int(as_number(row.get("num_requests"))),
                failures=int(as_number(row.get("num_failures"))),
                rps=round_half_up(as_number(row.get("current_rps")), 1),
                avg_response_time=round_half_up(as_number(row.get("avg_response_time"))),
            )
            for row in rows
            if row.get("name") != AGGREGATE_ROW
        )
        summary = LoadTestSummary(
            state=str(payload.get("state") or "stopped"),
            users=users,
            avg_response_time=avg,
            min_response_time=round_half_up(as_number(aggregate.get("min_response_time"))),
            max_response_time=round_half_up(as_number(aggregate.get("max_response_time"))),
            median_response_time=median,
            p95_response_time=p95,
            rps=rps,
            total_rps=round_half_up(as_number(payload.get("total_rps")), 1),
            total_requests=requests,
            total_failures=failures,
            error_rate=error_rate,
            endpoints=endpoints,
        )
        return Reduction(samples=samples, summary=summary, primary=avg)

    def reset(self) -> None:
        """Stateless; present for protocol symmetry with :class:`HostReducer`."""


# ----------------------------------------------------------------------
# Host-resource feed


@dataclass(frozen=True)
class MemoryUsage:
    used: float = 0.0
    total: float = 0.0
    percentage: float = 0.0


@dataclass(frozen=True)
class FilesystemUsage:
    device: str
    mountpoint: str
    used: float
    total: float
    percentage: float


@dataclass(frozen=True)
class HostSummary:
    up_targets: int = 0
    cpu: float = 0.0
    memory: MemoryUsage = field(default_factory=MemoryUsage)
    load1: float = 0.0
    load5: float = 0.0
    load15: float = 0.0
    rx_mb_s: float = 0.0
    tx_mb_s: float = 0.0
    read_mb_s: float = 0.0
    write_mb_s: float = 0.0
    filesystems: tuple[FilesystemUsage, ...] = ()


def result_set(envelope: Any) -> list[Mapping[str, Any]]:
    """Return the ``data.result`` vector of a query envelope, or ``[]`` if malformed."""

    if not isinstance(envelope, Mapping):
        return []
    data = envelope.get("data")
    if not isinstance(data, Mapping):
        return []
    result = data.get("result")
    if not isinstance(result, list):
        return []
    entries: list[Mapping[str, Any]] = []
    for entry in result:
        if not isinstance(entry, Mapping):
            continue
        value = entry.get("value")
        if not isinstance(value, (list, tuple)) or len(value) != 2:
            continue
        entries.append(entry)
    return entries


def sample_value(entry: Mapping[str, Any]) -> float:
    return as_number(entry["value"][1])


def _labels(entry: Mapping[str, Any]) -> Mapping[str, Any]:
    labels = entry.get("metric")
    return labels if isinstance(labels, Mapping) else {}


def _first_value(entries: list[Mapping[str, Any]]) -> float:
    return sample_value(entries[0]) if entries else 0.0


def _non_loopback_total(entries: list[Mapping[str, Any]]) -> float:
    return sum(sample_value(entry) for entry in entries if _labels(entry).get("device") != "lo")


class HostReducer:
    feed = "host"
    groups = HOST_GROUPS
    primary: tuple[str, str] | None = None

    def __init__(self) -> None:
        self._counters: dict[str, float] = {}
        self._counter_time: datetime | None = None

    def reset(self) -> None:
        self._counters.clear()
        self._counter_time = None

    def reduce(self, raw: Any, received_at: datetime | None = None) -> Reduction:
        stamp = received_at or datetime.now()
        results: Mapping[str, Any] = raw if isinstance(raw, Mapping) else {}

        def entries(query: str) -> list[Mapping[str, Any]]:
            return result_set(results.get(query))

        cpu = round_half_up(self._cpu_usage(entries(QUERY_CPU_RATE)), 1)
        memory = self._memory(entries(QUERY_MEM_TOTAL), entries(QUERY_MEM_AVAILABLE))
        load1 = round_half_up(_first_value(entries(QUERY_LOAD1)), 2)
        load5 = round_half_up(_first_value(entries(QUERY_LOAD5)), 2)
        load15 = round_half_up(_first_value(entries(QUERY_LOAD15)), 2)
        totals = {
            "rx": _non_loopback_total(entries(QUERY_NET_RX)),
            "tx": _non_loopback_total(entries(QUERY_NET_TX)),
            "read": sum(sample_value(entry) for entry in entries(QUERY_DISK_READ)),
            "write": sum(sample_value(entry) for entry in entries(QUERY_DISK_WRITTEN)),
        }
        rates = self._rates(totals, stamp)
        up_targets = sum(1 for entry in entries(QUERY_UP) if sample_value(entry) >= 1.0)
        filesystems = self._filesystems(entries(QUERY_FS_SIZE), entries(QUERY_FS_AVAIL))

        available_gb = round_half_up(max(memory.total - memory.used, 0.0), 1)
        samples = {
            "cpu": Sample(stamp, {"cpu": cpu}),
            "memory": Sample(stamp, {"used_gb": memory.used, "available_gb": available_gb}),
            "load": Sample(stamp, {"load1": load1, "load5": load5, "load15": load15}),
            "network": Sample(stamp, {"rx_mb_s": rates["rx"], "tx_mb_s": rates["tx"]}),
            "disk_io": Sample(stamp, {"read_mb_s": rates["read"], "write_mb_s": rates["write"]}),
        }
        summary = HostSummary(
            up_targets=up_targets,
            cpu=cpu,
            memory=memory,
            load1=load1,
            load5=load5,
            load15=load15,
            rx_mb_s=rates["rx"],
            tx_mb_s=rates["tx"],
            read_mb_s=rates["read"],
            write_mb_s=rates["write"],
            filesystems=filesystems,
        )
        return Reduction(samples=samples, summary=summary)

    @staticmethod
    def _cpu_usage(entries: list[Mapping[str, Any]]) -> float:
        if not entries:
            return 0.0
        idle = [sample_value(entry) for entry in entries if _labels(entry).get("mode") == "idle"]
        if idle:
            return max(0.0, (1.0 - sum(idle) / len(idle)) * 100.0)
        values = [sample_value(entry) * 100.0 for entry in entries]
        return sum(values) / len(values)

    @staticmethod
    def _memory(
        total_entries: list[Mapping[str, Any]],
        available_entries: list[Mapping[str, Any]],
    ) -> MemoryUsage:
        if not total_entries or not available_entries:
            return MemoryUsage()
        total = _first_value(total_entries)
        available = _first_value(available_entries)
        used = max(total - available, 0.0)
        return MemoryUsage(
            used=round_half_up(used / BYTES_PER_GB, 1),
            total=round_half_up(total / BYTES_PER_GB, 1),
            percentage=round_half_up(safe_div(used, total) * 100.0, 1),
        )

    @staticmethod
    def _filesystems(
        size_entries: list[Mapping[str, Any]],
        avail_entries: list[Mapping[str, Any]],
    ) -> tuple[FilesystemUsage, ...]:
        def key(entry: Mapping[str, Any]) -> tuple[str, str]:
            labels = _labels(entry)
            return (str(labels.get("device") or "unknown"), str(labels.get("mountpoint") or "/"))

        available = {key(entry): sample_value(entry) for entry in avail_entries}
        output: list[FilesystemUsage] = []
        for entry in size_entries:
            size = sample_value(entry)
            if size <= 0:
                continue
            device, mountpoint = key(entry)
            used = max(size - available.get((device, mountpoint), 0.0), 0.0)
            output.append(
                FilesystemUsage(
                    device=device,
                    mountpoint=mountpoint,
                    used=round_half_up(used / BYTES_PER_GB, 1),
                    total=round_half_up(size / BYTES_PER_GB, 1),
                    percentage=round_half_up(safe_div(used, size) * 100.0, 1),
                )
            )
        return tuple(output)

    def _rates(self, totals: dict[str, float], stamp: datetime) -> dict[str, float]:
        previous_time = self._counter_time
        elapsed = (stamp - previous_time).total_seconds() if previous_time is not None else 0.0
        rates: dict[str, float] = {}
        for name, total in totals.items():
            previous = self._counters.get(name)
            delta = total - previous if previous is not None else 0.0
            if delta < 0:
                # counter reset on the exporter side
                delta = 0.0
            rates[name] = round_half_up(safe_div(delta, elapsed) / BYTES_PER_MB, 1)
        self._counters = dict(totals)
        self._counter_time = stamp
        return rates


__all__ = [
    "AGGREGATE_ROW",
    "EndpointStat",
    "FilesystemUsage",
    "HOST_QUERIES",
    "HostReducer",
    "HostSummary",
    "LoadTestReducer",
    "LoadTestSummary",
    "MemoryUsage",
    "Reduction",
    "SnapshotReducer",
    "as_number",
    "result_set",
    "round_half_up",
    "safe_div",
    "sample_value",
]
