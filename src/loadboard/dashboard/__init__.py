"""Dashboard public exports."""

from __future__ import annotations

from typing import TYPE_CHECKING

__all__ = [
    "build_app",
    "build_controller",
    "build_coordinators",
    "build_widgets",
    "build_window",
    "DashboardController",
    "run_dashboard",
]


def __getattr__(name: str):  # pragma: no cover - thin re-export shim
    if name == "run_dashboard":
        from .app import run_dashboard as func

        return func
    if name in {"build_app", "build_controller", "build_coordinators", "build_widgets", "build_window"}:
        from . import builders

        return getattr(builders, name)
    if name == "DashboardController":
        from .controller import DashboardController as controller_class

        return controller_class
    raise AttributeError(name)


if TYPE_CHECKING:  # pragma: no cover - import-time typing only
    from .app import run_dashboard
    from .builders import build_app, build_controller, build_coordinators, build_widgets, build_window
    from .controller import DashboardController
