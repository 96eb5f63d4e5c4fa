"""Thread-safe in-process document store."""

from __future__ import annotations

from itertools import count
from threading import Lock
from typing import Dict

from ..errors import DocumentNotFoundError, DocumentTranscodingError
from .base import DocumentStore, StoredDocument

_JSON = "json"
_BINARY = "binary"


class InMemoryDocumentStore(DocumentStore):
    """Keep documents in a dict; every write bumps the CAS."""

    scheme = "memory"

    def __init__(self, bucket: str = "default") -> None:
        super().__init__(bucket)
        self._lock = Lock()
        self._docs: Dict[str, tuple[str, bytes, int, int]] = {}
        self._cas = count(1)

    def upsert_json(self, doc_id: str, content: str, expiry: int = 0) -> int:
        return self._upsert(doc_id, _JSON, content.encode("utf-8"), expiry)

    def upsert_binary(self, doc_id: str, content: bytes, expiry: int = 0) -> int:
        return self._upsert(doc_id, _BINARY, bytes(content), expiry)

    def remove(self, doc_id: str) -> None:
        with self._lock:
            if self._docs.pop(doc_id, None) is None:
                raise DocumentNotFoundError(doc_id, self.bucket)

    def get_json(self, doc_id: str) -> StoredDocument[str]:
        kind, content, cas, expiry = self._lookup(doc_id)
        if kind != _JSON:
            raise DocumentTranscodingError(f"Document {doc_id!r} is stored as {kind}, not JSON")
        return StoredDocument(content.decode("utf-8"), cas, expiry)

    def get_binary(self, doc_id: str) -> StoredDocument[bytes]:
        _, content, cas, expiry = self._lookup(doc_id)
        return StoredDocument(content, cas, expiry)

    def __len__(self) -> int:
        with self._lock:
            return len(self._docs)

    def _upsert(self, doc_id: str, kind: str, content: bytes, expiry: int) -> int:
        with self._lock:
            cas = next(self._cas)
            self._docs[doc_id] = (kind, content, cas, expiry)
        return cas

    def _lookup(self, doc_id: str) -> tuple[str, bytes, int, int]:
        with self._lock:
            entry = self._docs.get(doc_id)
        if entry is None:
            raise DocumentNotFoundError(doc_id, self.bucket)
        return entry


__all__ = ["InMemoryDocumentStore"]
