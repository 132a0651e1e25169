# mypy: ignore-errors
"""Headless rendering of a historical run to a PNG."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

from ..contracts.error import BadInputError, IOErrorEnvelope
from ..core.channels import LOAD_TEST_GROUPS, group_by_key
from ..core.coordinator import FeedCoordinator
from ..core.reducer import LoadTestReducer
from ..core.replay import DEFAULT_STEPS, RunDescriptor, replay_run
from ..core.scheduling import ManualScheduler
from ..render.chart import ChartView
from ..render.renderer import DARK_THEME

logger = logging.getLogger(__name__)


def _ensure_gui_app() -> Any:
    os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
    try:
        from PyQt6.QtGui import QGuiApplication
    except Exception as exc:  # noqa: BLE001
        raise RuntimeError(
            "render-run requires PyQt6. Install with `pip install PyQt6`."
        ) from exc
    return QGuiApplication.instance() or QGuiApplication([])


def render_run(
    descriptor: RunDescriptor,
    out: Path | str,
    *,
    group_key: str = "response_times",
    width: int = 960,
    height: int = 400,
    steps: int = DEFAULT_STEPS,
) -> int:
    """Replay ``descriptor`` and save the ``group_key`` chart. Returns samples drawn."""

    if width < 100 or height < 100:
        raise BadInputError(f"Image must be at least 100x100; got {width}x{height}")
    try:
        group = group_by_key(LOAD_TEST_GROUPS, group_key)
    except KeyError as exc:
        keys = ", ".join(g.key for g in LOAD_TEST_GROUPS)
        raise BadInputError(f"Unknown chart group {group_key!r}", hint=f"Choose one of: {keys}") from exc

    _app = _ensure_gui_app()  # QFont needs a live QGuiApplication
    from .surface import QtRasterSurface

    steps = max(int(steps), 2)
    scheduler = ManualScheduler()
    coordinator = FeedCoordinator(LoadTestReducer(), capacity=steps, throttle_ms=0.0, epsilon=0.0)
    applied = replay_run(coordinator, descriptor, steps)

    surface = QtRasterSurface()
    view = ChartView.for_feed(
        coordinator,
        group,
        scheduler,
        animate=False,
        slots=steps,
        theme=DARK_THEME,
    )
    view.attach(surface, width, height)
    view.refresh()
    target = Path(out)
    if not surface.save(target):
        raise IOErrorEnvelope(f"Could not write image to {target}")
    logger.info("Rendered %s for %r to %s (%d samples)", group.key, descriptor.name, target, applied)
    return applied


__all__ = ["render_run"]
