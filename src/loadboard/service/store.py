"""SQLite run history."""

from __future__ import annotations

import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any

from .models import RunRecord, RunStatus

_SCHEMA = """
CREATE TABLE IF NOT EXISTS runs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    status TEXT NOT NULL,
    start_time TEXT NOT NULL,
    end_time TEXT,
    users INTEGER NOT NULL DEFAULT 0,
    spawn_rate REAL NOT NULL DEFAULT 0,
    host TEXT NOT NULL DEFAULT '',
    requests_per_second REAL NOT NULL DEFAULT 0,
    avg_response_time REAL NOT NULL DEFAULT 0,
    error_rate REAL NOT NULL DEFAULT 0,
    total_requests INTEGER NOT NULL DEFAULT 0,
    total_failures INTEGER NOT NULL DEFAULT 0
);
"""

_COLUMNS = tuple(RunRecord.model_fields)


def _now() -> str:
    return datetime.now().isoformat(timespec="seconds")


class RunHistoryStore:
    """Thread-safe store; every call opens its own short-lived connection."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._ensure_schema()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.path)
        conn.row_factory = sqlite3.Row
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        with self._lock, self._connect() as conn:
            conn.execute(_SCHEMA)

    def create(self, name: str, users: int, spawn_rate: float, host: str) -> RunRecord:
        start = _now()
        with self._lock, self._connect() as conn:
            cursor = conn.execute(
                "INSERT INTO runs (name, status, start_time, users, spawn_rate, host) VALUES (?, ?, ?, ?, ?, ?)",
                (name, RunStatus.RUNNING.value, start, users, spawn_rate, host),
            )
            run_id = int(cursor.lastrowid)
        return RunRecord(
            id=run_id,
            name=name,
            status=RunStatus.RUNNING,
            start_time=start,
            users=users,
            spawn_rate=spawn_rate,
            host=host,
        )

    def finalize(self, run_id: int, status: RunStatus, totals: dict[str, Any]) -> RunRecord | None:
        """Close a run with its final aggregate figures. Unknown ids return ``None``."""

        values = (
            status.value,
            _now(),
            float(totals.get("requests_per_second", 0.0)),
            float(totals.get("avg_response_time", 0.0)),
            float(totals.get("error_rate", 0.0)),
            int(totals.get("total_requests", 0)),
            int(totals.get("total_failures", 0)),
            run_id,
        )
        with self._lock, self._connect() as conn:
            conn.execute(
                "UPDATE runs SET status=?, end_time=?, requests_per_second=?, avg_response_time=?, "
                "error_rate=?, total_requests=?, total_failures=? WHERE id=?",
                values,
            )
        return self.get(run_id)

    def get(self, run_id: int) -> RunRecord | None:
        with self._lock, self._connect() as conn:
            row = conn.execute("SELECT * FROM runs WHERE id=?", (run_id,)).fetchone()
        return RunRecord(**{key: row[key] for key in _COLUMNS}) if row else None

    def list(self, limit: int = 50) -> list[RunRecord]:
        with self._lock, self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM runs ORDER BY start_time DESC, id DESC LIMIT ?", (limit,)
            ).fetchall()
        return [RunRecord(**{key: row[key] for key in _COLUMNS}) for row in rows]

    def delete(self, run_id: int) -> bool:
        with self._lock, self._connect() as conn:
            cursor = conn.execute("DELETE FROM runs WHERE id=?", (run_id,))
            return cursor.rowcount > 0


__all__ = ["RunHistoryStore"]
