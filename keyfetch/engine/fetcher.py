"""Fetch one document by id and route the outcome."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Union

import structlog
from typing_extensions import assert_never

from ..config import DocumentType, FetchConfig
from ..errors import (
    ConfigurationFault,
    DocumentNotFoundError,
    DocumentStoreError,
    qualified_name,
)
from ..stores.base import DocumentStore
from .expression import AttributeResolver, ExpressionEvaluator
from .records import (
    ATTR_BUCKET,
    ATTR_CLUSTER,
    ATTR_DOC_CAS,
    ATTR_DOC_EXPIRY,
    ATTR_DOC_ID,
    ATTR_ERROR_MESSAGE,
    ATTR_EXCEPTION,
    FetchOutcome,
    Record,
    Relationship,
    Transfer,
)

if TYPE_CHECKING:
    from ..infra.provenance import ProvenanceReporter


@dataclass(frozen=True, slots=True)
class Found:
    content: bytes
    cas: int
    expiry: int


@dataclass(frozen=True, slots=True)
class NotFound:
    error: DocumentNotFoundError


@dataclass(frozen=True, slots=True)
class StoreError:
    cause: DocumentStoreError


FetchResult = Union[Found, NotFound, StoreError]


class KeyFetcher:
    """Resolve a document id, read it from the store and decide where records go.

    One call to :meth:`fetch` is one invocation. The fetcher keeps no state
    between invocations, so a single instance can serve a whole worker pool as
    long as the store client is thread-safe.
    """

    def __init__(
        self,
        config: FetchConfig,
        store: DocumentStore,
        provenance: ProvenanceReporter,
        resolver: AttributeResolver | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.config = config
        self.store = store
        self.provenance = provenance
        self.resolver = resolver or ExpressionEvaluator()
        self.logger = logger or structlog.get_logger("keyfetch.fetcher")

    @property
    def transit_uri(self) -> str:
        return self.store.transit_uri(self.config.cluster_service)

    # ------------------------------------------------------------------
    def resolve_document_id(self, record: Record | None) -> str:
        """Return the id to read, or raise :class:`ConfigurationFault`."""

        expression = self.config.document_id_expression
        if expression:
            attributes = record.attributes if record is not None else None
            try:
                doc_id = self.resolver.evaluate(expression, attributes)
            except ConfigurationFault:
                raise
            except Exception as exc:  # noqa: BLE001
                raise ConfigurationFault(self._id_error(record)) from exc
        else:
            if record is None:
                raise ConfigurationFault(self._id_error(record))
            try:
                doc_id = record.text()
            except UnicodeDecodeError as exc:
                raise ConfigurationFault(self._id_error(record)) from exc
        if not doc_id:
            raise ConfigurationFault(self._id_error(record))
        return doc_id

    def read(self, doc_id: str) -> FetchResult:
        """Perform the typed read and classify what the store reported."""

        document_type = self.config.document_type
        try:
            if document_type is DocumentType.JSON:
                doc = self.store.get_json(doc_id)
                content = doc.content.encode("utf-8")
            elif document_type is DocumentType.BINARY:
                doc = self.store.get_binary(doc_id)
                content = bytes(doc.content)
            else:
                assert_never(document_type)
        except DocumentNotFoundError as exc:
            return NotFound(exc)
        except DocumentStoreError as exc:
            return StoreError(exc)
        return Found(content=content, cas=doc.cas, expiry=doc.expiry)

    def fetch(self, record: Record | None = None) -> FetchOutcome:
        """Run one invocation for ``record`` (``None`` when timer-triggered)."""

        doc_id = self.resolve_document_id(record)
        result = self.read(doc_id)
        transfers: list[Transfer] = []

        if isinstance(result, Found):
            if record is not None:
                transfers.append(Transfer(Relationship.ORIGINAL, record))
            out = Record.create(
                result.content,
                {
                    ATTR_CLUSTER: self.config.cluster_service,
                    ATTR_BUCKET: self.config.bucket_name,
                    ATTR_DOC_ID: doc_id,
                    ATTR_DOC_CAS: str(result.cas),
                    ATTR_DOC_EXPIRY: str(result.expiry),
                },
            )
            self.provenance.receive(out, self.transit_uri)
            transfers.append(Transfer(Relationship.SUCCESS, out))
        elif isinstance(result, NotFound):
            self.logger.warning("document_not_found", doc_id=doc_id, location=self.transit_uri)
            if record is not None:
                flagged = record.with_attributes(
                    {ATTR_EXCEPTION: qualified_name(type(result.error))}
                )
                transfers.append(Transfer(Relationship.FAILURE, flagged))
        elif isinstance(result, StoreError):
            message = (
                f"Getting document {doc_id} from {self.transit_uri} using {record} "
                f"failed due to {result.cause!r}"
            )
            self.logger.error(
                "document_fetch_failed",
                doc_id=doc_id,
                location=self.transit_uri,
                error=str(result.cause),
                error_type=qualified_name(type(result.cause)),
            )
            if record is not None:
                transfers.append(
                    Transfer(Relationship.RETRY, record.with_attributes({ATTR_ERROR_MESSAGE: message}))
                )
        else:
            assert_never(result)

        return FetchOutcome(doc_id=doc_id, result=result, transfers=tuple(transfers))

    def _id_error(self, record: Record | None) -> str:
        return (
            "Please check 'document_id_expression' setting. "
            f"Couldn't get document id from {record}"
        )


__all__ = ["FetchResult", "Found", "KeyFetcher", "NotFound", "StoreError"]
