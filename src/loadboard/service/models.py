"""Pydantic models for the loadboard backend service."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, field_validator


class RunStatus(StrEnum):
    """Lifecycle states of a recorded run."""

    RUNNING = "running"
    STOPPED = "stopped"
    COMPLETED = "completed"
    FAILED = "failed"


class StartTestRequest(BaseModel):
    """Request payload for ``POST /api/tests/start``."""

    name: str = Field(default="Load test", description="Label stored with the run.")
    users: int = Field(default=10, ge=1, description="Peak number of simulated users.")
    spawn_rate: float = Field(default=1.0, gt=0, description="Users started per second.")
    host: str = Field(default="", description="Target host passed to Locust (blank keeps Locust's default).")

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name must not be blank")
        return value


class RunRecord(BaseModel):
    """One row of the run history; doubles as a replay descriptor."""

    id: int
    name: str
    status: RunStatus
    start_time: str
    end_time: str | None = None
    users: int = 0
    spawn_rate: float = 0.0
    host: str = ""
    requests_per_second: float = 0.0
    avg_response_time: float = 0.0
    error_rate: float = 0.0
    total_requests: int = 0
    total_failures: int = 0


class TestStarted(BaseModel):
    __test__ = False

    test_id: int
    name: str
    start_time: str


class TestStopped(BaseModel):
    __test__ = False

    test_id: int
    status: RunStatus
    end_time: str


class CurrentTest(BaseModel):
    running: bool
    test_id: int | None = None
    stats: dict[str, Any] | None = None


class PushMessage(BaseModel):
    """Envelope of every frame sent over ``/ws``."""

    type: str
    payload: dict[str, Any] = Field(default_factory=dict)


__all__ = [
    "CurrentTest",
    "PushMessage",
    "RunRecord",
    "RunStatus",
    "StartTestRequest",
    "TestStarted",
    "TestStopped",
]
