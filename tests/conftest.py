"""Shared fixtures: stub stores, recording collaborators and config builders."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Iterable

import pytest

from keyfetch.config import (
    ConfigLocator,
    ConfigRepository,
    DocumentType,
    FetchConfig,
    JobConfig,
    StoreConfig,
)
from keyfetch.engine import KeyFetcher, Record
from keyfetch.errors import DocumentNotFoundError
from keyfetch.stores import DocumentStore, StoredDocument


class StubStore(DocumentStore):
    """Serve canned documents and count calls per decoding strategy."""

    scheme = "stub"

    def __init__(
        self,
        docs: dict[str, StoredDocument] | None = None,
        error: Exception | None = None,
        bucket: str = "users",
    ) -> None:
        super().__init__(bucket)
        self.docs = dict(docs or {})
        self.error = error
        self.calls: list[tuple[str, str]] = []

    def _lookup(self, kind: str, doc_id: str) -> StoredDocument:
        self.calls.append((kind, doc_id))
        if self.error is not None:
            raise self.error
        if doc_id not in self.docs:
            raise DocumentNotFoundError(doc_id, self.bucket)
        return self.docs[doc_id]

    def get_json(self, doc_id: str) -> StoredDocument[str]:
        return self._lookup("json", doc_id)

    def get_binary(self, doc_id: str) -> StoredDocument[bytes]:
        return self._lookup("binary", doc_id)


class RecordingProvenance:
    def __init__(self) -> None:
        self.events: list[tuple[str, Record, str]] = []

    def report(self, event_kind: str, record: Record, location: str) -> None:
        self.events.append((event_kind, record, location))

    def receive(self, record: Record, transit_uri: str) -> None:
        self.report("RECEIVE", record, transit_uri)


class RecordingLogger:
    def __init__(self) -> None:
        self.entries: list[tuple[str, str, dict[str, Any]]] = []

    def _log(self, level: str, event: str, **kw: Any) -> None:
        self.entries.append((level, event, kw))

    def debug(self, event: str, **kw: Any) -> None:
        self._log("debug", event, **kw)

    def info(self, event: str, **kw: Any) -> None:
        self._log("info", event, **kw)

    def warning(self, event: str, **kw: Any) -> None:
        self._log("warning", event, **kw)

    def error(self, event: str, **kw: Any) -> None:
        self._log("error", event, **kw)

    def levels(self) -> list[str]:
        return [level for level, _, _ in self.entries]


class ExplodingStore(StubStore):
    def _lookup(self, kind: str, doc_id: str) -> StoredDocument:
        self.calls.append((kind, doc_id))
        raise RuntimeError("bug in store adapter")


@pytest.fixture
def provenance() -> RecordingProvenance:
    return RecordingProvenance()


@pytest.fixture
def recording_logger() -> RecordingLogger:
    return RecordingLogger()


@pytest.fixture
def fetch_config() -> Callable[..., FetchConfig]:
    def _builder(**overrides: Any) -> FetchConfig:
        base: dict[str, Any] = {
            "cluster_service": "cluster-a",
            "bucket_name": "users",
            "document_type": DocumentType.JSON,
            "document_id_expression": "",
        }
        base.update(overrides)
        return FetchConfig(**base)

    return _builder


@pytest.fixture
def make_fetcher(
    fetch_config, provenance: RecordingProvenance, recording_logger: RecordingLogger
) -> Callable[..., KeyFetcher]:
    def _builder(store: DocumentStore, **overrides: Any) -> KeyFetcher:
        return KeyFetcher(
            fetch_config(**overrides), store, provenance, logger=recording_logger
        )

    return _builder


@pytest.fixture
def sample_job_config() -> Callable[..., JobConfig]:
    def _builder(**overrides: Any) -> JobConfig:
        base: dict[str, Any] = {
            "job_name": "users",
            "fetch": FetchConfig(cluster_service="cluster-a", bucket_name="users"),
            "store": StoreConfig(),
        }
        base.update(overrides)
        return JobConfig(**base)

    return _builder


@pytest.fixture
def temp_config_repository(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterable[ConfigRepository]:
    monkeypatch.setenv("KEYFETCH_HOME", str(tmp_path))
    locator = ConfigLocator(project_root=tmp_path)
    repository = ConfigRepository(locator)
    yield repository


@pytest.fixture
def stub_store() -> type[StubStore]:
    return StubStore


@pytest.fixture
def exploding_store() -> type[ExplodingStore]:
    return ExplodingStore
