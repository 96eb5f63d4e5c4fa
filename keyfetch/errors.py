"""Exception hierarchy shared by the fetcher, stores and orchestrator."""

from __future__ import annotations


class KeyFetchError(Exception):
    """Base class for every error raised by keyfetch."""


class ConfigurationFault(KeyFetchError):
    """The document id could not be resolved for an invocation.

    Fatal to the invocation: nothing is transferred and the caller decides
    whether and when to run it again.
    """


class ExpressionError(ConfigurationFault):
    """An attribute expression is malformed or cannot be evaluated."""


class DocumentStoreError(KeyFetchError):
    """Any failure reported by a document store client."""


class DocumentNotFoundError(DocumentStoreError):
    """The requested document id does not exist in the bucket."""

    def __init__(self, doc_id: str, location: str | None = None) -> None:
        self.doc_id = doc_id
        self.location = location
        where = f" in {location}" if location else ""
        super().__init__(f"Document {doc_id!r} does not exist{where}")


class StoreConnectionError(DocumentStoreError):
    """The store could not be reached or the driver failed mid-request."""


class DocumentTranscodingError(DocumentStoreError):
    """A stored document cannot be decoded as the requested document type."""


def qualified_name(exc_type: type[BaseException]) -> str:
    return f"{exc_type.__module__}.{exc_type.__qualname__}"


__all__ = [
    "ConfigurationFault",
    "DocumentNotFoundError",
    "DocumentStoreError",
    "DocumentTranscodingError",
    "ExpressionError",
    "KeyFetchError",
    "StoreConnectionError",
    "qualified_name",
]
