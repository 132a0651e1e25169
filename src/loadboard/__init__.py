"""loadboard: live load-test dashboard, backend proxy and chart pipeline."""

from . import config, contracts, core, render

__version__ = "0.1.0"

__all__ = [
    "config",
    "contracts",
    "core",
    "render",
    "__version__",
]
