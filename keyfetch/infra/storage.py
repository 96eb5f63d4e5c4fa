"""SQLite connection management for document and provenance tables."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from threading import Lock, RLock
from typing import Dict, Iterator


class SQLiteManager:
    """Manage SQLite connections with basic schema guarantees.

    Connections are cached per resolved path and each one has a single lock.
    Every component sharing a database file goes through :meth:`session`,
    so the document store and the provenance reporter never interleave
    statements on the same connection.
    """

    def __init__(self) -> None:
        self._connections: Dict[Path, sqlite3.Connection] = {}
        self._locks: Dict[Path, RLock] = {}
        self._lock = Lock()

    def connect(self, path: Path) -> sqlite3.Connection:
        conn, _ = self._open(path)
        return conn

    @contextmanager
    def session(self, path: Path) -> Iterator[sqlite3.Connection]:
        """Hold the connection lock for ``path`` while the block runs."""

        conn, lock = self._open(path)
        with lock:
            yield conn

    def _open(self, path: Path) -> tuple[sqlite3.Connection, RLock]:
        key = path.resolve()
        with self._lock:
            if key not in self._connections:
                key.parent.mkdir(parents=True, exist_ok=True)
                conn = sqlite3.connect(key, check_same_thread=False)
                conn.row_factory = sqlite3.Row
                self._ensure_schema(conn)
                self._connections[key] = conn
                self._locks[key] = RLock()
            return self._connections[key], self._locks[key]

    def _ensure_schema(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS documents (
                bucket TEXT NOT NULL,
                id TEXT NOT NULL,
                kind TEXT NOT NULL,
                content BLOB NOT NULL,
                cas INTEGER NOT NULL,
                expiry INTEGER NOT NULL DEFAULT 0,
                PRIMARY KEY (bucket, id)
            )
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS provenance_events (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                event_kind TEXT NOT NULL,
                record_uuid TEXT NOT NULL,
                location TEXT NOT NULL,
                attributes TEXT NOT NULL,
                timestamp TEXT NOT NULL
            )
            """
        )
        conn.commit()

    def reset(self, path: Path) -> None:
        key = path.resolve()
        with self._lock:
            conn = self._connections.pop(key, None)
            self._locks.pop(key, None)
        if conn is not None:
            conn.close()
        if key.exists():
            key.unlink()

    def close_all(self) -> None:
        with self._lock:
            connections = list(self._connections.values())
            self._connections.clear()
            self._locks.clear()
        for conn in connections:
            conn.close()


__all__ = ["SQLiteManager"]
