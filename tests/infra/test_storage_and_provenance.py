from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

from keyfetch.engine import Record
from keyfetch.infra import LoggingProvenanceReporter, SQLiteManager, SQLiteProvenanceReporter
from keyfetch.stores import SQLiteDocumentStore


def test_sqlite_manager_initialises_schema(tmp_path) -> None:
    manager = SQLiteManager()
    conn = manager.connect(tmp_path / "kv.db")
    documents = {row["name"] for row in conn.execute("PRAGMA table_info(documents)").fetchall()}
    events = {row["name"] for row in conn.execute("PRAGMA table_info(provenance_events)").fetchall()}
    assert {"bucket", "id", "kind", "content", "cas", "expiry"} <= documents
    assert {"event_kind", "record_uuid", "location", "attributes", "timestamp"} <= events
    manager.close_all()


def test_sqlite_manager_reset(tmp_path) -> None:
    manager = SQLiteManager()
    path = tmp_path / "kv.db"
    conn = manager.connect(path)
    conn.execute(
        "INSERT INTO documents(bucket, id, kind, content, cas) VALUES ('b', 'k', 'json', x'7b7d', 1)"
    )
    conn.commit()
    manager.reset(path)
    assert not path.exists()
    conn = manager.connect(path)
    assert conn.execute("SELECT count(*) FROM documents").fetchone()[0] == 0
    manager.close_all()


def test_sqlite_provenance_reporter_records_receive(tmp_path) -> None:
    reporter = SQLiteProvenanceReporter(SQLiteManager(), tmp_path / "prov.db")
    record = Record.create("{}", {"doc.id": "k"})
    reporter.receive(record, "memory://c/b")
    [event] = reporter.events()
    assert event["event_kind"] == "RECEIVE"
    assert event["record_uuid"] == record.uuid
    assert event["location"] == "memory://c/b"
    assert event["attributes"] == {"doc.id": "k"}


def test_logging_provenance_reporter_emits_event() -> None:
    calls = []

    class Logger:
        def info(self, event, **kw):
            calls.append((event, kw))

    record = Record.create("abc")
    LoggingProvenanceReporter(Logger()).receive(record, "memory://c/b")
    assert calls == [
        (
            "provenance_event",
            {"event_kind": "RECEIVE", "record_uuid": record.uuid, "location": "memory://c/b", "size": 3},
        )
    ]


def test_store_and_provenance_share_connection_across_threads(tmp_path) -> None:
    manager = SQLiteManager()
    path = tmp_path / "shared.db"
    store = SQLiteDocumentStore(manager, path, "users")
    reporter = SQLiteProvenanceReporter(manager, path)

    def work(index: int) -> None:
        store.upsert_json(f"k{index}", "{}")
        reporter.receive(Record.create("{}", {"doc.id": f"k{index}"}), "sqlite://c/users")
        store.get_json(f"k{index}")

    with ThreadPoolExecutor(max_workers=8) as executor:
        list(executor.map(work, range(40)))

    assert len(reporter.events(limit=100)) == 40
    with manager.session(path) as conn:
        assert conn.execute("SELECT count(*) FROM documents").fetchone()[0] == 40
    manager.close_all()
