"""MongoDB backed document store; one collection per bucket."""

from __future__ import annotations

from typing import Any

from pymongo import MongoClient
from pymongo.errors import PyMongoError

from ..errors import DocumentNotFoundError, DocumentTranscodingError, StoreConnectionError
from .base import DocumentStore, StoredDocument, stored_document


class MongoDocumentStore(DocumentStore):
    """Documents are stored as ``{_id, content, cas, expiry}``.

    ``content`` is a string for JSON documents and bytes for binary ones.
    ``cas`` is required; a missing ``expiry`` means the document never expires.
    """

    scheme = "mongodb"

    def __init__(
        self,
        uri: str,
        database: str,
        bucket: str = "default",
        client: MongoClient | None = None,
    ) -> None:
        super().__init__(bucket)
        self._owns_client = client is None
        self.client = client if client is not None else MongoClient(uri)
        self.collection = self.client[database][bucket]

    def get_json(self, doc_id: str) -> StoredDocument[str]:
        doc = self._find(doc_id)
        content = doc.get("content")
        if not isinstance(content, str):
            raise DocumentTranscodingError(f"Document {doc_id!r} is not stored as JSON text")
        return stored_document(doc_id, content, doc.get("cas"), doc.get("expiry", 0))

    def get_binary(self, doc_id: str) -> StoredDocument[bytes]:
        doc = self._find(doc_id)
        content = doc.get("content")
        if isinstance(content, str):
            payload = content.encode("utf-8")
        elif isinstance(content, (bytes, bytearray)):
            payload = bytes(content)
        else:
            raise DocumentTranscodingError(f"Document {doc_id!r} has no binary content")
        return stored_document(doc_id, payload, doc.get("cas"), doc.get("expiry", 0))

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def _find(self, doc_id: str) -> dict[str, Any]:
        try:
            doc = self.collection.find_one({"_id": doc_id})
        except PyMongoError as exc:
            raise StoreConnectionError(f"Reading {doc_id!r} from MongoDB failed: {exc}") from exc
        if doc is None:
            raise DocumentNotFoundError(doc_id, self.bucket)
        return doc


__all__ = ["MongoDocumentStore"]
