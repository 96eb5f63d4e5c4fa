"""Documents kept in a SQLite table, one row per (bucket, id)."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Any

from ..errors import DocumentNotFoundError, DocumentTranscodingError, StoreConnectionError
from ..infra.storage import SQLiteManager
from .base import DocumentStore, StoredDocument, stored_document


class SQLiteDocumentStore(DocumentStore):
    """Read documents from the ``documents`` table managed by :class:`SQLiteManager`."""

    scheme = "sqlite"

    def __init__(self, manager: SQLiteManager, path: Path, bucket: str = "default") -> None:
        super().__init__(bucket)
        self.manager = manager
        self.path = path
        try:
            self.manager.connect(path)
        except sqlite3.Error as exc:
            raise StoreConnectionError(f"Cannot open SQLite store {path}: {exc}") from exc

    def upsert_json(self, doc_id: str, content: str, expiry: int = 0) -> int:
        return self._upsert(doc_id, "json", content.encode("utf-8"), expiry)

    def upsert_binary(self, doc_id: str, content: bytes, expiry: int = 0) -> int:
        return self._upsert(doc_id, "binary", bytes(content), expiry)

    def get_json(self, doc_id: str) -> StoredDocument[str]:
        kind, content, cas, expiry = self._lookup(doc_id)
        if kind != "json":
            raise DocumentTranscodingError(f"Document {doc_id!r} is stored as {kind}, not JSON")
        try:
            text = content.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DocumentTranscodingError(f"Document {doc_id!r} is not valid UTF-8") from exc
        return stored_document(doc_id, text, cas, expiry)

    def get_binary(self, doc_id: str) -> StoredDocument[bytes]:
        _, content, cas, expiry = self._lookup(doc_id)
        return stored_document(doc_id, content, cas, expiry)

    def _upsert(self, doc_id: str, kind: str, content: bytes, expiry: int) -> int:
        try:
            with self.manager.session(self.path) as conn:
                row = conn.execute(
                    "SELECT cas FROM documents WHERE bucket = ? AND id = ?", (self.bucket, doc_id)
                ).fetchone()
                cas = (row["cas"] + 1) if row else 1
                conn.execute(
                    "INSERT OR REPLACE INTO documents(bucket, id, kind, content, cas, expiry) "
                    "VALUES (?, ?, ?, ?, ?, ?)",
                    (self.bucket, doc_id, kind, sqlite3.Binary(content), cas, expiry),
                )
                conn.commit()
        except sqlite3.Error as exc:
            raise StoreConnectionError(f"Writing {doc_id!r} to {self.path} failed: {exc}") from exc
        return cas

    def _lookup(self, doc_id: str) -> tuple[str, bytes, Any, Any]:
        try:
            with self.manager.session(self.path) as conn:
                row = conn.execute(
                    "SELECT kind, content, cas, expiry FROM documents WHERE bucket = ? AND id = ?",
                    (self.bucket, doc_id),
                ).fetchone()
        except sqlite3.Error as exc:
            raise StoreConnectionError(f"Reading {doc_id!r} from {self.path} failed: {exc}") from exc
        if row is None:
            raise DocumentNotFoundError(doc_id, self.bucket)
        content = row["content"]
        if isinstance(content, str):
            content = content.encode("utf-8")
        return row["kind"], bytes(content), row["cas"], row["expiry"]


__all__ = ["SQLiteDocumentStore"]
