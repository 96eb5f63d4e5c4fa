"""Document store SPI and backends."""

from __future__ import annotations

from pathlib import Path

from ..config import StoreBackend, StoreConfig
from ..infra.storage import SQLiteManager
from .base import DocumentStore, StoredDocument
from .memory import InMemoryDocumentStore
from .mongo_store import MongoDocumentStore
from .sqlite_store import SQLiteDocumentStore


def build_store(
    config: StoreConfig,
    bucket: str,
    storage: SQLiteManager | None = None,
    base_dir: Path | None = None,
) -> DocumentStore:
    """Instantiate the backend described by ``config`` for ``bucket``."""

    if config.backend is StoreBackend.MEMORY:
        return InMemoryDocumentStore(bucket)
    if config.backend is StoreBackend.SQLITE:
        path = config.path
        if base_dir is not None and not path.is_absolute():
            path = (base_dir / path).resolve()
        return SQLiteDocumentStore(storage or SQLiteManager(), path, bucket)
    if config.backend is StoreBackend.MONGODB:
        return MongoDocumentStore(config.uri, config.database, bucket)
    raise ValueError(f"Unknown store backend: {config.backend}")


__all__ = [
    "DocumentStore",
    "InMemoryDocumentStore",
    "MongoDocumentStore",
    "SQLiteDocumentStore",
    "StoredDocument",
    "build_store",
]
