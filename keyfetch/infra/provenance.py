"""Provenance reporting for records created by a fetch."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

import structlog

from .storage import SQLiteManager

if TYPE_CHECKING:
    from ..engine.records import Record

RECEIVE = "RECEIVE"


class ProvenanceReporter(Protocol):
    def report(self, event_kind: str, record: Record, location: str) -> None:
        ...

    def receive(self, record: Record, transit_uri: str) -> None:
        ...


class _ReceiveMixin:
    def receive(self, record: Record, transit_uri: str) -> None:
        self.report(RECEIVE, record, transit_uri)  # type: ignore[attr-defined]


class LoggingProvenanceReporter(_ReceiveMixin):
    """Emit provenance events as structured log lines."""

    def __init__(self, logger: structlog.BoundLogger | None = None) -> None:
        self.logger = logger or structlog.get_logger("keyfetch.provenance")

    def report(self, event_kind: str, record: Record, location: str) -> None:
        self.logger.info(
            "provenance_event",
            event_kind=event_kind,
            record_uuid=record.uuid,
            location=location,
            size=record.size,
        )


class SQLiteProvenanceReporter(_ReceiveMixin):
    """Append provenance events to the ``provenance_events`` table."""

    def __init__(self, manager: SQLiteManager, db_path: Path) -> None:
        self.manager = manager
        self.db_path = db_path
        self.manager.connect(db_path)

    def report(self, event_kind: str, record: Record, location: str) -> None:
        timestamp = datetime.now(timezone.utc).isoformat(timespec="seconds")
        with self.manager.session(self.db_path) as conn:
            conn.execute(
                "INSERT INTO provenance_events(event_kind, record_uuid, location, attributes, timestamp) "
                "VALUES (?, ?, ?, ?, ?)",
                (
                    event_kind,
                    record.uuid,
                    location,
                    json.dumps(dict(record.attributes), ensure_ascii=False, sort_keys=True),
                    timestamp,
                ),
            )
            conn.commit()

    def events(self, limit: int = 20) -> list[dict]:
        with self.manager.session(self.db_path) as conn:
            rows = conn.execute(
                "SELECT event_kind, record_uuid, location, attributes, timestamp "
                "FROM provenance_events ORDER BY id DESC LIMIT ?",
                (limit,),
            ).fetchall()
        return [
            {
                "event_kind": row["event_kind"],
                "record_uuid": row["record_uuid"],
                "location": row["location"],
                "attributes": json.loads(row["attributes"]),
                "timestamp": row["timestamp"],
            }
            for row in rows
        ]


__all__ = [
    "LoggingProvenanceReporter",
    "ProvenanceReporter",
    "RECEIVE",
    "SQLiteProvenanceReporter",
]
