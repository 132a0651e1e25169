"""Bounded, append-only sample buffers."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import overload

from ..contracts.error import InvariantError

LABEL_FORMAT = "%H:%M:%S"


@dataclass(frozen=True)
class Sample:
    """One derived data point for a channel group."""

    timestamp: datetime
    fields: Mapping[str, float]
    label: str = ""

    def __post_init__(self) -> None:
        # Freeze the field map so a stored sample cannot drift after append.
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))
        if not self.label:
            object.__setattr__(self, "label", self.timestamp.strftime(LABEL_FORMAT))

    def value(self, key: str) -> float:
        return float(self.fields.get(key, 0.0))


@dataclass
class SeriesBuffer:
    """Ring of samples for one channel group.

    Appends go to the tail; once ``capacity`` is exceeded the oldest sample is
    evicted from the head. ``appended`` and ``evicted`` only ever grow (until
    :meth:`clear`), which lets renderers tell a shifted window from a grown one.
    """

    capacity: int
    _samples: deque[Sample] = field(init=False, repr=False)
    appended: int = field(default=0, init=False)
    evicted: int = field(default=0, init=False)

    def __post_init__(self) -> None:
        if self.capacity < 1:
            raise InvariantError(f"SeriesBuffer capacity must be >= 1; got {self.capacity}")
        self._samples = deque()

    def append(self, sample: Sample) -> None:
        self._samples.append(sample)
        self.appended += 1
        while len(self._samples) > self.capacity:
            self._samples.popleft()
            self.evicted += 1

    def clear(self) -> None:
        self._samples.clear()
        self.appended = 0
        self.evicted = 0

    def latest(self) -> Sample | None:
        return self._samples[-1] if self._samples else None

    def snapshot(self) -> tuple[Sample, ...]:
        return tuple(self._samples)

    def values(self, key: str) -> list[float]:
        return [sample.value(key) for sample in self._samples]

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self) -> Iterator[Sample]:
        return iter(self._samples)

    @overload
    def __getitem__(self, index: int) -> Sample: ...

    @overload
    def __getitem__(self, index: slice) -> list[Sample]: ...

    def __getitem__(self, index: int | slice) -> Sample | list[Sample]:
        if isinstance(index, slice):
            return list(self._samples)[index]
        return self._samples[index]


__all__ = ["LABEL_FORMAT", "Sample", "SeriesBuffer"]
