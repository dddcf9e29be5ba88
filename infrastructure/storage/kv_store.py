"""Durable key-value stores for small JSON documents.

Used by the rate limiter to keep per-client request timestamps across
processes and restarts. Entries carry an expiry; expired entries read as
missing and are purged lazily on write.
"""
from __future__ import annotations

import json
import logging
import sqlite3
import threading
import time
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Tuple

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """Minimal JSON document store contract."""

    def get_json(self, key: str) -> Optional[Dict[str, Any]]:
        ...

    def set_json(self, key: str, value: Dict[str, Any], *, ttl_seconds: Optional[float] = None) -> None:
        ...


class SQLiteKeyValueStore:
    """JSON documents in a single SQLite table, one connection per thread."""

    PURGE_INTERVAL_SECONDS = 300

    def __init__(self, database_path: str, *, table: str = "KeyValueStore") -> None:
        if not table.isidentifier():
            raise ValueError(f"Invalid table name: {table!r}")
        self._database_path = database_path
        self._table = table
        self._local = threading.local()
        self._last_purge = 0.0

        if database_path != ":memory:":
            db_path = Path(database_path)
            if not db_path.parent.exists():
                db_path.parent.mkdir(parents=True, exist_ok=True)
                logger.info("Created key-value store directory: %s", db_path.parent)

        self._create_table()

    def _get_db(self) -> sqlite3.Connection:
        connection: Optional[sqlite3.Connection] = getattr(self._local, "connection", None)
        if connection is None:
            connection = sqlite3.connect(self._database_path, check_same_thread=False)
            connection.execute("PRAGMA journal_mode=WAL")
            self._local.connection = connection
        return connection

    def _create_table(self) -> None:
        db = self._get_db()
        db.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {self._table} (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                expires_at REAL
            )
            """
        )
        db.commit()

    def get_json(self, key: str) -> Optional[Dict[str, Any]]:
        db = self._get_db()
        row = db.execute(
            f"SELECT value, expires_at FROM {self._table} WHERE key = ?",  # nosec B608: table name validated
            (key,),
        ).fetchone()
        if row is None:
            return None

        value, expires_at = row
        if expires_at is not None and expires_at <= time.time():
            return None
        return json.loads(value)

    def set_json(self, key: str, value: Dict[str, Any], *, ttl_seconds: Optional[float] = None) -> None:
        now = time.time()
        expires_at = now + ttl_seconds if ttl_seconds else None
        db = self._get_db()
        db.execute(
            f"INSERT OR REPLACE INTO {self._table} (key, value, expires_at) VALUES (?, ?, ?)",  # nosec B608
            (key, json.dumps(value), expires_at),
        )
        if now - self._last_purge > self.PURGE_INTERVAL_SECONDS:
            cursor = db.execute(
                f"DELETE FROM {self._table} WHERE expires_at IS NOT NULL AND expires_at <= ?",  # nosec B608
                (now,),
            )
            self._last_purge = now
            if cursor.rowcount:
                logger.debug("Key-value store purge: removed %s expired entries", cursor.rowcount)
        db.commit()

    def close(self) -> None:
        connection: Optional[sqlite3.Connection] = getattr(self._local, "connection", None)
        if connection is not None:
            connection.close()
            delattr(self._local, "connection")


class InMemoryKeyValueStore:
    """Process-local store for development and tests."""

    def __init__(self) -> None:
        self._data: Dict[str, Tuple[str, Optional[float]]] = {}
        self._lock = threading.RLock()

    def get_json(self, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            entry = self._data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and expires_at <= time.time():
            return None
        return json.loads(value)

    def set_json(self, key: str, value: Dict[str, Any], *, ttl_seconds: Optional[float] = None) -> None:
        expires_at = time.time() + ttl_seconds if ttl_seconds else None
        with self._lock:
            self._data[key] = (json.dumps(value), expires_at)

    def close(self) -> None:
        with self._lock:
            self._data.clear()
