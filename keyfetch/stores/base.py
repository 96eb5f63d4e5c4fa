"""Document store SPI."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from ..errors import DocumentTranscodingError

ContentT = TypeVar("ContentT", str, bytes)

MAX_CAS = 2**64 - 1
MAX_EXPIRY = 2**32 - 1


@dataclass(frozen=True, slots=True)
class StoredDocument(Generic[ContentT]):
    """Document content together with its store-assigned metadata."""

    content: ContentT
    cas: int
    expiry: int = 0

    def __post_init__(self) -> None:
        if not 0 <= self.cas <= MAX_CAS:
            raise ValueError(f"CAS out of range: {self.cas}")
        if not 0 <= self.expiry <= MAX_EXPIRY:
            raise ValueError(f"Expiry out of range: {self.expiry}")


def _checked_int(doc_id: str, field: str, value: Any, upper: int) -> int:
    # bool is an int subclass but never a valid cas or expiry
    if isinstance(value, bool) or not isinstance(value, int):
        raise DocumentTranscodingError(f"Document {doc_id!r} has a non-integer {field}: {value!r}")
    if not 0 <= value <= upper:
        raise DocumentTranscodingError(f"Document {doc_id!r} has {field} out of range: {value}")
    return value


def stored_document(doc_id: str, content: ContentT, cas: Any, expiry: Any = 0) -> StoredDocument[ContentT]:
    """Build a :class:`StoredDocument` from raw backend metadata.

    Backends call this instead of the constructor so that a malformed ``cas``
    or ``expiry`` surfaces as :class:`~keyfetch.errors.DocumentTranscodingError`.
    """

    return StoredDocument(
        content,
        _checked_int(doc_id, "cas", cas, MAX_CAS),
        _checked_int(doc_id, "expiry", expiry, MAX_EXPIRY),
    )


class DocumentStore(ABC):
    """Read-by-id contract every backend implements.

    Implementations raise :class:`~keyfetch.errors.DocumentNotFoundError` for
    a missing id and another :class:`~keyfetch.errors.DocumentStoreError` for
    any other failure. They must be safe to call from several threads.
    """

    scheme: str = "kv"

    def __init__(self, bucket: str) -> None:
        self.bucket = bucket

    @abstractmethod
    def get_json(self, doc_id: str) -> StoredDocument[str]:
        """Return the raw JSON text stored under ``doc_id``."""

    @abstractmethod
    def get_binary(self, doc_id: str) -> StoredDocument[bytes]:
        """Return the raw bytes stored under ``doc_id``."""

    def transit_uri(self, cluster: str) -> str:
        return f"{self.scheme}://{cluster}/{self.bucket}"

    def close(self) -> None:
        return


__all__ = ["DocumentStore", "MAX_CAS", "MAX_EXPIRY", "StoredDocument", "stored_document"]
