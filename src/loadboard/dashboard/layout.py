# mypy: ignore-errors
"""Dock helpers for the dashboard window."""

from __future__ import annotations

from typing import Any

from .widgets.common import QDockWidget, QHBoxLayout, QLabel, Qt, QWidget


def dock_object_name(title: str) -> str:
    """``"Run Control"`` -> ``"dock_run_control"`` (used by saveState/restoreState)."""

    return "dock_" + "_".join(title.lower().split())


def _title_bar(title: str, dock: Any) -> Any:
    bar = QWidget(dock)
    bar.setObjectName("dockTitleBar")
    row = QHBoxLayout(bar)  # type: ignore[call-arg]
    row.setContentsMargins(10, 4, 10, 4)
    caption = QLabel(title.upper(), bar)  # type: ignore[call-arg]
    caption.setObjectName("dockCaption")
    row.addWidget(caption)
    row.addStretch()
    return bar


def create_dock(title: str, widget: Any, area: Any, *, closable: bool = True) -> Any:
    """Wrap ``widget`` in a dock restricted to ``area``; pinned docks drop the close button."""

    dock = QDockWidget(title, widget.parent())  # type: ignore[call-arg]
    dock.setObjectName(dock_object_name(title))
    dock.setWidget(widget)
    if Qt is None:
        return dock
    dock.setAllowedAreas(area)
    dock.setTitleBarWidget(_title_bar(title, dock))
    if not closable:
        dock.setFeatures(dock.features() & ~QDockWidget.DockWidgetFeature.DockWidgetClosable)
    return dock


__all__ = ["create_dock", "dock_object_name"]
