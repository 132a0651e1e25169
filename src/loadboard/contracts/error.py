"""Error taxonomy, exit codes and the JSON error envelope for loadboard.

Every exception a command handler may raise on purpose derives from
:class:`EnvelopeError` and names its own exit code and envelope kind.
``guard_cli`` writes one JSON line to stderr and exits with that code::

    {"error": "BadInput", "detail": "dashboard.capacity must be >= 2"}
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Callable
from dataclasses import dataclass
from enum import IntEnum
from functools import wraps
from typing import Any, ClassVar, NoReturn, TypeVar

logger = logging.getLogger(__name__)
T = TypeVar("T")


class Exit(IntEnum):
    OK = 0
    BAD_INPUT = 2
    INVARIANT = 3
    POLICY = 4
    IO = 5


@dataclass(slots=True)
class ErrorEnvelope:
    error: str
    detail: str
    hint: str | None = None

    def to_json(self) -> str:
        payload = {"error": self.error, "detail": self.detail}
        if self.hint:
            payload["hint"] = self.hint
        return json.dumps(payload, ensure_ascii=False)


def die(code: Exit, envelope: ErrorEnvelope) -> NoReturn:
    sys.stderr.write(envelope.to_json() + "\n")
    try:
        sys.stderr.flush()
    finally:
        sys.exit(int(code))


class EnvelopeError(Exception):
    """Base for failures reported to the operator; carries an optional hint."""

    exit_code: ClassVar[Exit] = Exit.POLICY
    kind: ClassVar[str] = "Policy"

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint

    def envelope(self) -> ErrorEnvelope:
        return ErrorEnvelope(self.kind, str(self), self.hint)


class BadInputError(EnvelopeError):
    """Invalid configuration, CLI arguments or run descriptors."""

    exit_code = Exit.BAD_INPUT
    kind = "BadInput"


class InvariantError(EnvelopeError):
    """A structural invariant (buffer capacity, scale range) was violated."""

    exit_code = Exit.INVARIANT
    kind = "Invariant"


class PolicyError(EnvelopeError):
    """The requested operation is not available here (missing GUI stack, etc.)."""


class IOErrorEnvelope(EnvelopeError):  # noqa: N818 - mirrors Exit.IO
    """Filesystem or upstream transport failure surfaced to the operator."""

    exit_code = Exit.IO
    kind = "IO"


def guard_cli(fn: Callable[..., T]) -> Callable[..., T]:
    """Turn loadboard errors raised by a command into an envelope and exit code."""

    @wraps(fn)
    def _wrapped(*args: Any, **kwargs: Any) -> T:
        try:
            return fn(*args, **kwargs)
        except EnvelopeError as exc:
            logger.debug("%s: %s", exc.kind, exc)
            die(exc.exit_code, exc.envelope())
        except FileNotFoundError as exc:
            die(Exit.IO, ErrorEnvelope("FileNotFound", str(exc)))
        except Exception as exc:  # pragma: no cover - last-resort reporting
            logger.exception("Unhandled command failure")
            die(Exit.POLICY, ErrorEnvelope("Unhandled", f"{type(exc).__name__}: {exc}"))

    return _wrapped


__all__ = [
    "BadInputError",
    "EnvelopeError",
    "ErrorEnvelope",
    "Exit",
    "IOErrorEnvelope",
    "InvariantError",
    "PolicyError",
    "die",
    "guard_cli",
]
