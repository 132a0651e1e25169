"""Drawing-surface protocol the renderer paints onto.

Coordinates are logical pixels. Implementations apply the device pixel ratio
themselves, so the renderer never scales.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from .curves import Path


@dataclass(frozen=True)
class Stroke:
    color: str
    width: float = 1.0
    alpha: float = 1.0


@dataclass(frozen=True)
class Fill:
    """Solid fill, or a vertical gradient when ``alpha_to`` is set."""

    color: str
    alpha: float = 1.0
    alpha_to: float | None = None
    top: float = 0.0
    bottom: float = 0.0


class Surface(Protocol):
    width: float
    height: float

    def resize(self, width: float, height: float, device_pixel_ratio: float = 1.0) -> None: ...

    def clear(self) -> None: ...

    def stroke_path(self, path: Path, stroke: Stroke) -> None: ...

    def fill_path(self, path: Path, fill: Fill) -> None: ...

    def draw_line(self, x1: float, y1: float, x2: float, y2: float, stroke: Stroke) -> None: ...

    def draw_text(
        self,
        x: float,
        y: float,
        text: str,
        color: str,
        *,
        align: str = "left",
        baseline: str = "top",
        size: float = 12.0,
    ) -> None: ...

    def draw_circle(self, cx: float, cy: float, radius: float, color: str, alpha: float = 1.0) -> None: ...


__all__ = ["Fill", "Stroke", "Surface"]
