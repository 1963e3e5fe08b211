"""Minimal SQLite persistence for run counters.

Purpose: let repeated partial runs of the same site continue counting from
the last checkpoint instead of starting from zero. One row per (scope, key);
values are absolute totals, written on every checkpoint.
"""

import sqlite3
import threading
from pathlib import Path
from typing import Dict, Mapping, Union

DB_PATH = Path("data/state.db")

SCHEMA = """
CREATE TABLE IF NOT EXISTS run_stats (
    scope TEXT NOT NULL,
    key TEXT NOT NULL,
    value INTEGER NOT NULL DEFAULT 0,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    PRIMARY KEY (scope, key)
);
"""


class SqliteStatsStore:
    """Stats store backed by a SQLite file (load/save by scope)."""

    def __init__(self, path: Union[str, Path] = DB_PATH):
        self.path = Path(path)
        self._lock = threading.Lock()
        self._initialized = False

    def get_conn(self):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        return sqlite3.connect(self.path)

    def init_db(self):
        with self.get_conn() as conn:
            conn.executescript(SCHEMA)
        self._initialized = True

    def load(self, scope: str) -> Dict[str, int]:
        if not self._initialized:
            self.init_db()
        with self.get_conn() as conn:
            cur = conn.execute("SELECT key, value FROM run_stats WHERE scope=?", (scope,))
            return {key: int(value) for key, value in cur.fetchall()}

    def save(self, scope: str, counters: Mapping[str, int]):
        """Upsert absolute counter values for ``scope`` (idempotent overwrite)."""
        if not counters:
            return
        if not self._initialized:
            self.init_db()
        with self._lock, self.get_conn() as conn:
            conn.executemany(
                """
                INSERT INTO run_stats(scope, key, value) VALUES(?, ?, ?)
                ON CONFLICT(scope, key) DO UPDATE SET value=excluded.value, updated_at=CURRENT_TIMESTAMP
                """,
                [(scope, key, int(value)) for key, value in counters.items()],
            )
            conn.commit()

    def reset(self, scope: str):
        """Forget the counters of ``scope`` (start a fresh accumulation)."""
        if not self._initialized:
            self.init_db()
        with self.get_conn() as conn:
            conn.execute("DELETE FROM run_stats WHERE scope=?", (scope,))
            conn.commit()


class MemoryStatsStore:
    """In-process stats store; survives a simulated restart as long as the object lives."""

    def __init__(self):
        self._data: Dict[str, Dict[str, int]] = {}
        self.saves = 0

    def load(self, scope: str) -> Dict[str, int]:
        return dict(self._data.get(scope, {}))

    def save(self, scope: str, counters: Mapping[str, int]):
        self._data[scope] = {key: int(value) for key, value in counters.items()}
        self.saves += 1

    def reset(self, scope: str):
        self._data.pop(scope, None)
