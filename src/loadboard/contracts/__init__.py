"""Error contracts shared by the dashboard, backend service and CLI."""

from . import error
from .error import *  # noqa: F403

__all__ = list(error.__all__)
