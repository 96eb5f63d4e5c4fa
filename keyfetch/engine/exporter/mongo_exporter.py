"""MongoDB exporter implementation."""

from __future__ import annotations

from pymongo import MongoClient

from ..records import Record
from .base import BaseExporter


class MongoExporter(BaseExporter):
    """Write records into a MongoDB collection."""

    def __init__(self, uri: str, database: str, collection: str, client: MongoClient | None = None) -> None:
        self._owns_client = client is None
        self.client = client if client is not None else MongoClient(uri)
        self.collection = self.client[database][collection]

    def export(self, record: Record) -> None:
        self.collection.insert_one(record.to_dict())

    def flush(self) -> None:
        # MongoDB writes are immediate in default write concern
        return

    def close(self) -> None:
        if self._owns_client:
            self.client.close()


__all__ = ["MongoExporter"]
