"""Toolkit-neutral path commands and cardinal-spline smoothing."""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

TENSION = 0.3

Command = tuple  # ("M", x, y) | ("L", x, y) | ("C", c1x, c1y, c2x, c2y, x, y) | ("Z",)


@dataclass
class Path:
    commands: list[Command] = field(default_factory=list)

    def move_to(self, x: float, y: float) -> Path:
        self.commands.append(("M", float(x), float(y)))
        return self

    def line_to(self, x: float, y: float) -> Path:
        self.commands.append(("L", float(x), float(y)))
        return self

    def curve_to(self, c1x: float, c1y: float, c2x: float, c2y: float, x: float, y: float) -> Path:
        self.commands.append(("C", float(c1x), float(c1y), float(c2x), float(c2y), float(x), float(y)))
        return self

    def close(self) -> Path:
        self.commands.append(("Z",))
        return self

    def vertices(self) -> list[tuple[float, float]]:
        """On-curve points in drawing order (control points excluded)."""

        return [(cmd[-2], cmd[-1]) for cmd in self.commands if cmd[0] != "Z"]

    def __len__(self) -> int:
        return len(self.commands)

    def __bool__(self) -> bool:
        return bool(self.commands)


def cardinal_controls(
    xs: np.ndarray, ys: np.ndarray, tension: float = TENSION
) -> np.ndarray:
    """Bezier control points for every segment ``i -> i+1``.

    Returns an ``(n-1, 4)`` array of ``c1x, c1y, c2x, c2y``. End tangents are
    flattened the way d3's ``curveCardinal`` does it.
    """

    n = len(xs)
    if n < 2:
        return np.empty((0, 4))
    k = (1.0 - tension) / 6.0
    pts = np.column_stack([np.asarray(xs, dtype=float), np.asarray(ys, dtype=float)])
    # neighbours with the endpoints mirrored onto the segment's own far end
    before = np.vstack([pts[1:2], pts[:-2]])
    after = np.vstack([pts[2:], pts[-2:-1]])
    c1 = pts[:-1] + k * (pts[1:] - before)
    c2 = pts[1:] + k * (pts[:-1] - after)
    return np.hstack([c1, c2])


def append_curve(
    path: Path,
    xs: np.ndarray,
    ys: np.ndarray,
    start: int = 0,
    stop: int | None = None,
    *,
    tension: float = TENSION,
    move: bool = True,
) -> Path:
    """Append the smoothed polyline through ``xs, ys`` from ``start`` to ``stop``.

    Points outside ``[start, stop]`` only shape the tangents.
    """

    n = len(xs)
    last = n - 1 if stop is None else min(stop, n - 1)
    if n == 0 or start > last:
        return path
    if move:
        path.move_to(xs[start], ys[start])
    else:
        path.line_to(xs[start], ys[start])
    controls = cardinal_controls(xs, ys, tension)
    for i in range(start, last):
        c1x, c1y, c2x, c2y = controls[i]
        path.curve_to(c1x, c1y, c2x, c2y, xs[i + 1], ys[i + 1])
    return path


def line_path(xs: np.ndarray, ys: np.ndarray, start: int = 0, tension: float = TENSION) -> Path:
    return append_curve(Path(), xs, ys, start, tension=tension)


def area_path(
    xs: np.ndarray,
    tops: np.ndarray,
    bottoms: np.ndarray,
    start: int = 0,
    tension: float = TENSION,
) -> Path:
    """Closed region between the smoothed top and bottom boundaries, from ``start`` on."""

    n = len(xs)
    if n - start < 2:
        return Path()
    path = append_curve(Path(), xs, tops, start, tension=tension)
    # walk the baseline backwards; the reversed slice keeps two points of context
    visible = n - start
    limit = min(n, visible + 2)
    append_curve(path, xs[::-1][:limit], bottoms[::-1][:limit], 0, visible - 1, tension=tension, move=False)
    return path.close()


__all__ = ["Path", "TENSION", "append_curve", "area_path", "cardinal_controls", "line_path"]
