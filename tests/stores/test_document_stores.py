from __future__ import annotations

import pytest
from pymongo.errors import ServerSelectionTimeoutError

from keyfetch.config import StoreBackend, StoreConfig
from keyfetch.engine import Record, Relationship, StoreError
from keyfetch.errors import (
    DocumentNotFoundError,
    DocumentTranscodingError,
    StoreConnectionError,
)
from keyfetch.infra import SQLiteManager
from keyfetch.stores import (
    InMemoryDocumentStore,
    MongoDocumentStore,
    SQLiteDocumentStore,
    StoredDocument,
    build_store,
)


def test_memory_store_roundtrip_and_cas() -> None:
    store = InMemoryDocumentStore("users")
    first = store.upsert_json("u1", '{"a":1}')
    second = store.upsert_json("u1", '{"a":2}', expiry=30)
    assert second > first
    doc = store.get_json("u1")
    assert doc == StoredDocument('{"a":2}', second, 30)
    assert store.get_binary("u1").content == b'{"a":2}'
    store.remove("u1")
    with pytest.raises(DocumentNotFoundError):
        store.get_json("u1")
    with pytest.raises(DocumentNotFoundError):
        store.remove("u1")


def test_memory_store_refuses_json_read_of_binary() -> None:
    store = InMemoryDocumentStore()
    store.upsert_binary("b", b"\x00")
    with pytest.raises(DocumentTranscodingError):
        store.get_json("b")


def test_stored_document_range_checks() -> None:
    with pytest.raises(ValueError):
        StoredDocument("{}", -1)
    with pytest.raises(ValueError):
        StoredDocument("{}", 1, 2**32)


def test_sqlite_store_buckets_are_isolated(tmp_path) -> None:
    manager = SQLiteManager()
    path = tmp_path / "docs.db"
    users = SQLiteDocumentStore(manager, path, "users")
    orders = SQLiteDocumentStore(manager, path, "orders")
    cas = users.upsert_json("k", '{"who":"me"}', expiry=10)
    orders.upsert_binary("k", b"\x01\x02")

    assert users.get_json("k") == StoredDocument('{"who":"me"}', cas, 10)
    assert orders.get_binary("k").content == b"\x01\x02"
    with pytest.raises(DocumentTranscodingError):
        orders.get_json("k")
    with pytest.raises(DocumentNotFoundError):
        users.get_json("missing")
    assert users.upsert_json("k", "{}") == cas + 1
    manager.close_all()


def test_sqlite_store_wraps_driver_errors(tmp_path) -> None:
    manager = SQLiteManager()
    store = SQLiteDocumentStore(manager, tmp_path / "docs.db", "users")
    manager.connect(tmp_path / "docs.db").execute("DROP TABLE documents")
    with pytest.raises(StoreConnectionError):
        store.get_json("k")


class _StubCollection:
    def __init__(self, docs=None, error=None) -> None:
        self.docs = docs or {}
        self.error = error

    def find_one(self, query):
        if self.error is not None:
            raise self.error
        return self.docs.get(query["_id"])


class _StubClient:
    def __init__(self, collection: _StubCollection) -> None:
        self.collection = collection
        self.closed = False

    def __getitem__(self, name):
        return {"users": self.collection}

    def close(self) -> None:
        self.closed = True


def test_mongo_store_reads_documents() -> None:
    collection = _StubCollection(
        {
            "u1": {"_id": "u1", "content": '{"a":1}', "cas": 9, "expiry": 0},
            "b1": {"_id": "b1", "content": b"\x00\xff", "cas": 3, "expiry": 100},
        }
    )
    client = _StubClient(collection)
    store = MongoDocumentStore("mongodb://unused", "kv", "users", client=client)

    assert store.get_json("u1") == StoredDocument('{"a":1}', 9, 0)
    assert store.get_binary("b1") == StoredDocument(b"\x00\xff", 3, 100)
    assert store.get_binary("u1").content == b'{"a":1}'
    with pytest.raises(DocumentTranscodingError):
        store.get_json("b1")
    with pytest.raises(DocumentNotFoundError):
        store.get_json("nope")
    store.close()
    assert client.closed is False
    assert store.transit_uri("cluster-a") == "mongodb://cluster-a/users"


def test_mongo_store_wraps_driver_errors() -> None:
    collection = _StubCollection(error=ServerSelectionTimeoutError("no servers"))
    store = MongoDocumentStore("mongodb://unused", "kv", "users", client=_StubClient(collection))
    with pytest.raises(StoreConnectionError):
        store.get_json("u1")


def test_build_store_resolves_relative_sqlite_path(tmp_path) -> None:
    config = StoreConfig(backend=StoreBackend.SQLITE, path="data/docs.db")
    store = build_store(config, "users", storage=SQLiteManager(), base_dir=tmp_path)
    assert isinstance(store, SQLiteDocumentStore)
    assert store.path == (tmp_path / "data" / "docs.db").resolve()
    assert store.bucket == "users"
    assert isinstance(build_store(StoreConfig(), "users"), InMemoryDocumentStore)


@pytest.mark.parametrize(
    "metadata",
    [
        {"cas": None},
        {},
        {"cas": "7"},
        {"cas": True},
        {"cas": 2**64},
        {"cas": 1, "expiry": -1},
        {"cas": 1, "expiry": 2**32},
    ],
)
def test_mongo_store_rejects_malformed_metadata(metadata) -> None:
    collection = _StubCollection({"k": {"_id": "k", "content": "{}", **metadata}})
    store = MongoDocumentStore("mongodb://unused", "kv", "users", client=_StubClient(collection))
    with pytest.raises(DocumentTranscodingError):
        store.get_json("k")
    with pytest.raises(DocumentTranscodingError):
        store.get_binary("k")


def test_mongo_store_defaults_missing_expiry() -> None:
    collection = _StubCollection({"k": {"_id": "k", "content": "{}", "cas": 4}})
    store = MongoDocumentStore("mongodb://unused", "kv", "users", client=_StubClient(collection))
    assert store.get_json("k") == StoredDocument("{}", 4, 0)


def test_malformed_mongo_document_is_routed_to_retry(make_fetcher) -> None:
    collection = _StubCollection({"k": {"_id": "k", "content": "{}", "cas": None}})
    store = MongoDocumentStore("mongodb://unused", "kv", "users", client=_StubClient(collection))
    incoming = Record.create("k")

    outcome = make_fetcher(store).fetch(incoming)

    assert isinstance(outcome.result, StoreError)
    assert isinstance(outcome.result.cause, DocumentTranscodingError)
    [transfer] = outcome.transfers
    assert transfer.relationship is Relationship.RETRY
    assert transfer.record.uuid == incoming.uuid


def test_sqlite_store_rejects_non_integer_cas(tmp_path) -> None:
    manager = SQLiteManager()
    path = tmp_path / "docs.db"
    store = SQLiteDocumentStore(manager, path, "users")
    conn = manager.connect(path)
    conn.execute(
        "INSERT INTO documents(bucket, id, kind, content, cas) VALUES ('users', 'k', 'json', x'7b7d', 'seven')"
    )
    conn.commit()
    with pytest.raises(DocumentTranscodingError):
        store.get_json("k")
    manager.close_all()


def test_sqlite_manager_session_reuses_connection_for_same_file(tmp_path) -> None:
    manager = SQLiteManager()
    path = tmp_path / "shared.db"
    with manager.session(path) as first:
        with manager.session(tmp_path / "." / "shared.db") as second:
            assert first is second
    assert manager.connect(path) is first
    manager.close_all()
