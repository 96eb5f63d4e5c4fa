"""Dispatch routed records to the exporter of their channel."""

from __future__ import annotations

from pathlib import Path
from threading import Lock
from typing import Callable, Iterable, Mapping, Sequence

from pymongo import MongoClient

from ...config import OutputConfig
from ..records import Relationship, Transfer
from .base import BaseExporter
from .file_exporter import FileExporter
from .mongo_exporter import MongoExporter
from .sqlite_exporter import SQLiteExporter, open_output_db


class ChannelRouter:
    """Own one exporter per channel and serialise writes across workers.

    ``on_close`` callbacks run after every exporter is closed; the router uses
    them to release resources its exporters share.
    """

    def __init__(
        self,
        exporters: Mapping[Relationship, BaseExporter],
        on_close: Sequence[Callable[[], None]] = (),
    ) -> None:
        self.exporters = dict(exporters)
        self._on_close = list(on_close)
        self._lock = Lock()
        self.counts: dict[Relationship, int] = {rel: 0 for rel in Relationship}

    @classmethod
    def from_config(
        cls,
        output: OutputConfig,
        job_name: str,
        outputs_dir: Path,
        run_tag: str,
    ) -> "ChannelRouter":
        if output.format == "json":
            return cls(
                {rel: FileExporter(outputs_dir, job_name, rel.value, run_tag=run_tag) for rel in Relationship}
            )
        if output.format == "sqlite":
            conn = open_output_db(outputs_dir / f"{job_name}.db")
            return cls({rel: SQLiteExporter(conn, table=rel.value) for rel in Relationship}, on_close=[conn.close])
        if output.format == "mongodb":
            client = MongoClient(output.uri)
            return cls(
                {
                    rel: MongoExporter(output.uri, output.database, f"{job_name}.{rel.value}", client=client)
                    for rel in Relationship
                },
                on_close=[client.close],
            )
        raise ValueError(f"Unsupported output format: {output.format}")

    def route(self, transfers: Iterable[Transfer]) -> None:
        with self._lock:
            for transfer in transfers:
                exporter = self.exporters.get(transfer.relationship)
                if exporter is None:
                    raise KeyError(f"No exporter configured for channel {transfer.relationship.value}")
                exporter.export(transfer.record)
                self.counts[transfer.relationship] += 1

    def flush(self) -> None:
        with self._lock:
            for exporter in self.exporters.values():
                exporter.flush()

    def close(self) -> None:
        with self._lock:
            for exporter in self.exporters.values():
                exporter.flush()
                exporter.close()
            for callback in self._on_close:
                callback()
            self._on_close.clear()


__all__ = ["ChannelRouter"]
