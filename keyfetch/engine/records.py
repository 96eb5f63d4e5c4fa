"""Records flowing through a fetch invocation and the channels they are routed to."""

from __future__ import annotations

import base64
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Mapping
from uuid import uuid4

if TYPE_CHECKING:
    from .fetcher import FetchResult

ATTR_CLUSTER = "cluster"
ATTR_BUCKET = "bucket"
ATTR_DOC_ID = "doc.id"
ATTR_DOC_CAS = "doc.cas"
ATTR_DOC_EXPIRY = "doc.expiry"
ATTR_EXCEPTION = "exception"
ATTR_ERROR_MESSAGE = "error.message"


class Relationship(str, Enum):
    """Output channels of a fetch invocation."""

    SUCCESS = "success"
    ORIGINAL = "original"
    RETRY = "retry"
    FAILURE = "failure"


def _freeze(attributes: Mapping[str, str] | None) -> Mapping[str, str]:
    return MappingProxyType({str(k): str(v) for k, v in (attributes or {}).items()})


@dataclass(frozen=True, slots=True)
class Record:
    """Byte payload plus string attributes.

    Records are immutable: ``with_attributes`` returns a copy that keeps the
    same ``uuid`` so a record can be followed across channels.
    """

    payload: bytes = b""
    attributes: Mapping[str, str] = field(default_factory=dict)
    uuid: str = field(default_factory=lambda: uuid4().hex)

    def __post_init__(self) -> None:
        object.__setattr__(self, "payload", bytes(self.payload))
        object.__setattr__(self, "attributes", _freeze(self.attributes))

    @classmethod
    def create(cls, payload: bytes | str = b"", attributes: Mapping[str, str] | None = None) -> "Record":
        if isinstance(payload, str):
            payload = payload.encode("utf-8")
        return cls(payload=payload, attributes=dict(attributes or {}))

    @property
    def size(self) -> int:
        return len(self.payload)

    def with_attributes(self, updates: Mapping[str, str]) -> "Record":
        merged = dict(self.attributes)
        merged.update(updates)
        return replace(self, attributes=merged)

    def text(self) -> str:
        """Decode the payload as strict UTF-8."""

        return self.payload.decode("utf-8")

    def to_dict(self) -> dict[str, object]:
        try:
            payload: str = self.text()
            encoding = "utf-8"
        except UnicodeDecodeError:
            payload = base64.b64encode(self.payload).decode("ascii")
            encoding = "base64"
        return {
            "uuid": self.uuid,
            "attributes": dict(self.attributes),
            "payload": payload,
            "payload_encoding": encoding,
        }

    def __str__(self) -> str:
        return f"Record[uuid={self.uuid}, size={self.size}]"


@dataclass(frozen=True, slots=True)
class Transfer:
    """A record handed to one output channel."""

    relationship: Relationship
    record: Record


@dataclass(frozen=True, slots=True)
class FetchOutcome:
    """Everything a completed invocation produced."""

    doc_id: str
    result: "FetchResult"
    transfers: tuple[Transfer, ...] = ()

    def records_for(self, relationship: Relationship) -> list[Record]:
        return [t.record for t in self.transfers if t.relationship is relationship]


__all__ = [
    "ATTR_BUCKET",
    "ATTR_CLUSTER",
    "ATTR_DOC_CAS",
    "ATTR_DOC_EXPIRY",
    "ATTR_DOC_ID",
    "ATTR_ERROR_MESSAGE",
    "ATTR_EXCEPTION",
    "FetchOutcome",
    "Record",
    "Relationship",
    "Transfer",
]
