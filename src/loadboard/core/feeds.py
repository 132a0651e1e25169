"""Dispatch push-channel messages to the load-test coordinator and run-state listeners."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from .coordinator import FeedCoordinator

logger = logging.getLogger(__name__)

RunStateListener = Callable[[bool], None]


@dataclass
class RunInfo:
    test_id: Any = None
    name: str = ""


class FeedRouter:
    """Route ``{type, payload}`` messages.

    ``stats_update`` feeds the load-test coordinator. Lifecycle messages toggle
    :attr:`running` and notify listeners, which the dashboard uses to start and
    stop host polling.
    """

    def __init__(
        self,
        load: FeedCoordinator,
        *,
        clear_on_start: tuple[FeedCoordinator, ...] = (),
        keep_history: bool = False,
    ) -> None:
        self.load = load
        self._clear_targets = (load, *clear_on_start)
        self.keep_history = keep_history
        self.running = False
        self.run: RunInfo | None = None
        self._listeners: list[RunStateListener] = []
        self._handlers: dict[str, Callable[[Mapping[str, Any]], None]] = {
            "stats_update": self._on_stats,
            "test_started": self._on_started,
            "test_stopped": self._on_finished,
            "test_completed": self._on_finished,
        }

    def on_run_state(self, listener: RunStateListener) -> None:
        self._listeners.append(listener)

    def dispatch(self, message: Any) -> bool:
        """Handle one decoded message. Returns ``False`` if it was ignored."""

        if not isinstance(message, Mapping):
            logger.debug("Ignoring non-object push message: %r", type(message).__name__)
            return False
        kind = message.get("type")
        handler = self._handlers.get(kind) if isinstance(kind, str) else None
        if handler is None:
            logger.debug("Ignoring push message of type %r", kind)
            return False
        payload = message.get("payload")
        handler(payload if isinstance(payload, Mapping) else {})
        return True

    def _on_stats(self, payload: Mapping[str, Any]) -> None:
        stats = payload.get("stats")
        if stats is None:
            logger.debug("stats_update without stats; ignored")
            return
        self.load.accept(stats)

    def _on_started(self, payload: Mapping[str, Any]) -> None:
        if not self.keep_history:
            for coordinator in self._clear_targets:
                coordinator.clear()
        self.run = RunInfo(
            test_id=payload.get("testId", payload.get("test_id")),
            name=str(payload.get("name") or ""),
        )
        logger.info("Run started: %s", self.run.name or self.run.test_id)
        self._set_running(True)

    def _on_finished(self, payload: Mapping[str, Any]) -> None:
        logger.info("Run finished")
        self.run = None
        self._set_running(False)

    def _set_running(self, running: bool) -> None:
        self.running = running
        for listener in list(self._listeners):
            listener(running)


__all__ = ["FeedRouter", "RunInfo"]
