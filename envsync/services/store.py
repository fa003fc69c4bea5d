# envsync/services/store.py
import sqlite3
import threading
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional

from ..models import ComparisonRecord, EntityType

DEFAULT_BUSY_TIMEOUT_MS = 30000

COLUMNS = ("key", "production_id", "staging_id", "title", "differences", "updated_at", "compared_at", "url")


def utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


class ComparisonStore:
    """Latest comparison result per key for one entity type.

    Writes replace the whole row for a key. Callers never write the same
    key from two threads at once; writes to different keys may overlap.
    """

    def get_all(self) -> list[ComparisonRecord]:
        raise NotImplementedError

    def get_by_key(self, key: str) -> Optional[ComparisonRecord]:
        raise NotImplementedError

    def upsert(self, record: ComparisonRecord) -> ComparisonRecord:
        raise NotImplementedError

    def delete_except(self, keys: Iterable[str]) -> int:
        """Drop every row whose key is not in ``keys``; returns rows removed."""
        raise NotImplementedError

    def clear_all(self):
        raise NotImplementedError


class MemoryComparisonStore(ComparisonStore):
    def __init__(self):
        self._rows: dict[str, ComparisonRecord] = {}
        self._lock = threading.Lock()

    def get_all(self):
        with self._lock:
            return [self._rows[k] for k in sorted(self._rows)]

    def get_by_key(self, key):
        with self._lock:
            return self._rows.get(key)

    def upsert(self, record):
        stored = replace(record, compared_at=utcnow())
        with self._lock:
            self._rows[record.key] = stored
        return stored

    def delete_except(self, keys):
        keep = set(keys)
        with self._lock:
            stale = [k for k in self._rows if k not in keep]
            for k in stale:
                del self._rows[k]
        return len(stale)

    def clear_all(self):
        with self._lock:
            self._rows.clear()


def get_connection(db_path: str | Path, busy_timeout_ms: int = DEFAULT_BUSY_TIMEOUT_MS) -> sqlite3.Connection:
    path = Path(db_path)
    if str(db_path) != ":memory:":
        path.parent.mkdir(parents=True, exist_ok=True)
    connection = sqlite3.connect(str(db_path), check_same_thread=False, timeout=max(1.0, busy_timeout_ms / 1000))
    connection.row_factory = sqlite3.Row
    connection.execute(f"PRAGMA busy_timeout={int(busy_timeout_ms)}")
    return connection


class SqliteComparisonStore(ComparisonStore):
    """One table per entity type (``collections``, ``products``, ``pages``, ``files``)."""

    def __init__(self, db_path: str | Path, entity_type: EntityType, connection: sqlite3.Connection | None = None):
        self.table = entity_type.value
        self._conn = connection or get_connection(db_path)
        self._lock = threading.Lock()
        with self._lock, self._conn:
            self._conn.execute(
                f"""CREATE TABLE IF NOT EXISTS {self.table} (
                    key TEXT PRIMARY KEY,
                    production_id TEXT,
                    staging_id TEXT,
                    title TEXT NOT NULL,
                    differences TEXT,
                    updated_at TEXT NOT NULL,
                    compared_at TEXT NOT NULL,
                    url TEXT
                )"""
            )

    @staticmethod
    def _to_record(row: sqlite3.Row) -> ComparisonRecord:
        return ComparisonRecord(**{c: row[c] for c in COLUMNS})

    def get_all(self):
        with self._lock:
            rows = self._conn.execute(f"SELECT * FROM {self.table} ORDER BY key ASC").fetchall()
        return [self._to_record(r) for r in rows]

    def get_by_key(self, key):
        with self._lock:
            row = self._conn.execute(f"SELECT * FROM {self.table} WHERE key = ?", (key,)).fetchone()
        return self._to_record(row) if row else None

    def upsert(self, record):
        stored = replace(record, compared_at=utcnow())
        values = tuple(getattr(stored, c) for c in COLUMNS)
        with self._lock, self._conn:
            self._conn.execute(
                f"""INSERT INTO {self.table} ({", ".join(COLUMNS)})
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                      production_id = excluded.production_id,
                      staging_id = excluded.staging_id,
                      title = excluded.title,
                      differences = excluded.differences,
                      updated_at = excluded.updated_at,
                      compared_at = excluded.compared_at,
                      url = excluded.url""",
                values,
            )
        return stored

    def delete_except(self, keys):
        keep = set(keys)
        with self._lock, self._conn:
            existing = [r["key"] for r in self._conn.execute(f"SELECT key FROM {self.table}")]
            stale = [k for k in existing if k not in keep]
            self._conn.executemany(f"DELETE FROM {self.table} WHERE key = ?", [(k,) for k in stale])
        return len(stale)

    def clear_all(self):
        with self._lock, self._conn:
            self._conn.execute(f"DELETE FROM {self.table}")
