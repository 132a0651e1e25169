"""Static channel-group definitions for the load-test and host-resource feeds."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class SeriesKind(StrEnum):
    LINE = "line"
    AREA = "area"


class XMode(StrEnum):
    """Horizontal positioning: sample ordinal or parsed timestamp."""

    INDEX = "index"
    TIME = "time"


@dataclass(frozen=True)
class SeriesSpec:
    key: str
    label: str
    color: str
    kind: SeriesKind = SeriesKind.LINE


@dataclass(frozen=True)
class ChannelGroup:
    """A bundle of series that share one chart and one time axis."""

    key: str
    title: str
    unit: str
    series: tuple[SeriesSpec, ...]
    stacked: bool = False
    show_points: bool = False
    x_mode: XMode = XMode.INDEX
    opacity: float = 0.6

    @property
    def keys(self) -> tuple[str, ...]:
        return tuple(spec.key for spec in self.series)


LOAD_TEST_GROUPS: tuple[ChannelGroup, ...] = (
    ChannelGroup(
        key="response_times",
        title="Response time",
        unit="ms",
        series=(
            SeriesSpec("avg", "Average", "#3b82f6"),
            SeriesSpec("median", "Median", "#10b981"),
            SeriesSpec("p95", "95th percentile", "#f59e0b"),
        ),
        show_points=True,
    ),
    ChannelGroup(
        key="throughput",
        title="Requests per second",
        unit="req/s",
        series=(
            SeriesSpec("rps", "Requests/s", "#10b981", SeriesKind.AREA),
            SeriesSpec("failures_per_s", "Failures/s", "#ef4444", SeriesKind.AREA),
        ),
    ),
    ChannelGroup(
        key="requests",
        title="Cumulative requests",
        unit="requests",
        series=(
            SeriesSpec("succeeded", "Succeeded", "#22c55e", SeriesKind.AREA),
            SeriesSpec("failed", "Failed", "#ef4444", SeriesKind.AREA),
        ),
        stacked=True,
    ),
    ChannelGroup(
        key="users",
        title="Active users",
        unit="users",
        series=(SeriesSpec("users", "Users", "#8b5cf6"),),
    ),
    ChannelGroup(
        key="error_rate",
        title="Error rate",
        unit="%",
        series=(SeriesSpec("error_rate", "Error rate", "#ef4444"),),
    ),
)

HOST_GROUPS: tuple[ChannelGroup, ...] = (
    ChannelGroup(
        key="cpu",
        title="CPU usage",
        unit="%",
        series=(SeriesSpec("cpu", "CPU", "#3b82f6"),),
    ),
    ChannelGroup(
        key="memory",
        title="Memory",
        unit="GB",
        series=(
            SeriesSpec("used_gb", "Used", "#ef4444", SeriesKind.AREA),
            SeriesSpec("available_gb", "Available", "#22c55e", SeriesKind.AREA),
        ),
        stacked=True,
    ),
    ChannelGroup(
        key="load",
        title="Load average",
        unit="",
        series=(
            SeriesSpec("load1", "1 min", "#3b82f6"),
            SeriesSpec("load5", "5 min", "#10b981"),
            SeriesSpec("load15", "15 min", "#f59e0b"),
        ),
    ),
    ChannelGroup(
        key="network",
        title="Network",
        unit="MB/s",
        series=(
            SeriesSpec("rx_mb_s", "Received", "#06b6d4", SeriesKind.AREA),
            SeriesSpec("tx_mb_s", "Transmitted", "#a855f7", SeriesKind.AREA),
        ),
        opacity=0.4,
    ),
    ChannelGroup(
        key="disk_io",
        title="Disk I/O",
        unit="MB/s",
        series=(
            SeriesSpec("read_mb_s", "Read", "#0ea5e9"),
            SeriesSpec("write_mb_s", "Written", "#f97316"),
        ),
    ),
)


def group_by_key(groups: tuple[ChannelGroup, ...], key: str) -> ChannelGroup:
    for group in groups:
        if group.key == key:
            return group
    raise KeyError(key)


__all__ = [
    "ChannelGroup",
    "HOST_GROUPS",
    "LOAD_TEST_GROUPS",
    "SeriesKind",
    "SeriesSpec",
    "XMode",
    "group_by_key",
]
