"""Export routed records to SQLite tables."""

from __future__ import annotations

import json
import re
import sqlite3
from pathlib import Path

from ..records import Record
from .base import BaseExporter


def open_output_db(path: Path) -> sqlite3.Connection:
    path.parent.mkdir(parents=True, exist_ok=True)
    return sqlite3.connect(path, check_same_thread=False)


class SQLiteExporter(BaseExporter):
    """Persist records as JSON blobs, one table per channel.

    All channels of a run share one connection; the router owns it.
    """

    def __init__(self, conn: sqlite3.Connection, table: str = "records", owns_connection: bool = False) -> None:
        if not re.fullmatch(r"[A-Za-z_][A-Za-z0-9_]*", table):
            raise ValueError(f"Invalid table name: {table!r}")
        self.conn = conn
        self.table = table
        self._owns_connection = owns_connection
        self.conn.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {self.table} (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                uuid TEXT NOT NULL,
                payload TEXT NOT NULL
            )
            """
        )
        self.conn.commit()

    @classmethod
    def open(cls, path: Path, table: str = "records") -> "SQLiteExporter":
        """Standalone exporter with a connection of its own."""

        return cls(open_output_db(path), table, owns_connection=True)

    def export(self, record: Record) -> None:
        self.conn.execute(
            f"INSERT INTO {self.table}(uuid, payload) VALUES (?, ?)",
            (record.uuid, json.dumps(record.to_dict(), ensure_ascii=False)),
        )

    def flush(self) -> None:
        self.conn.commit()

    def close(self) -> None:
        self.conn.commit()
        if self._owns_connection:
            self.conn.close()


__all__ = ["SQLiteExporter", "open_output_db"]
