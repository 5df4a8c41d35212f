"""
Tests for the persistence backends, the fallback chain and the writer.
"""

import os
import threading
import time

import pytest

from casetrack.services.case_store import CaseStore
from casetrack.services.persistence import (
    CASES_COLLECTION,
    CollectionStore,
    FallbackCollectionStore,
    LocalCollectionStore,
    PersistenceError,
    PersistenceWriter,
    PostgresCollectionStore,
    build_collection_store,
)

USER = "clerk@example.org"
RECORDS = [{"id": "c1", "name": "Theft case"}]


class BrokenStore(CollectionStore):
    name = "broken"

    def __init__(self):
        self.calls = 0

    def load(self, collection, user_key):
        self.calls += 1
        raise PersistenceError("backend offline")

    def save(self, collection, user_key, records):
        self.calls += 1
        raise PersistenceError("backend offline")


class FlakyStore(CollectionStore):
    """In-memory remote that can be switched off and on"""

    name = "remote"

    def __init__(self, written_at=None):
        self.failing = False
        self.data = {}
        self.written_at = written_at

    def load_versioned(self, collection, user_key):
        if self.failing:
            raise PersistenceError("remote offline")
        return list(self.data.get((collection, user_key), [])), self.written_at

    def load(self, collection, user_key):
        return self.load_versioned(collection, user_key)[0]

    def save(self, collection, user_key, records):
        if self.failing:
            raise PersistenceError("remote offline")
        self.data[(collection, user_key)] = list(records)
        self.written_at = time.time()


class FailingDatabase:
    def execute_query(self, query, params=None, fetch_one=False, fetch_all=True):
        raise RuntimeError("connection refused")


class RecordingDatabase:
    def __init__(self):
        self.queries = []

    def execute_query(self, query, params=None, fetch_one=False, fetch_all=True):
        self.queries.append((query, params))
        if fetch_one:
            return {"payload": RECORDS}
        return None


def test_local_store_round_trip(tmp_path):
    store = LocalCollectionStore(str(tmp_path))
    assert store.load(CASES_COLLECTION, USER) == []
    store.save(CASES_COLLECTION, USER, RECORDS)
    assert store.load(CASES_COLLECTION, USER) == RECORDS


def test_local_store_rejects_corrupt_file(tmp_path):
    store = LocalCollectionStore(str(tmp_path))
    path = store._path(CASES_COLLECTION, USER)
    with open(path, "w", encoding="utf-8") as fh:
        fh.write("{not json")
    with pytest.raises(PersistenceError):
        store.load(CASES_COLLECTION, USER)


def test_local_store_key_is_filesystem_safe(tmp_path):
    store = LocalCollectionStore(str(tmp_path))
    path = store._path(CASES_COLLECTION, "../escape/user")
    assert path.startswith(str(tmp_path))
    assert "/" not in path[len(str(tmp_path)) + 1:]


def test_fallback_uses_next_backend_on_failure(tmp_path):
    broken = BrokenStore()
    local = LocalCollectionStore(str(tmp_path))
    store = FallbackCollectionStore([broken, local])

    assert store.save(CASES_COLLECTION, USER, RECORDS) == "local"
    assert store.load(CASES_COLLECTION, USER) == RECORDS
    # the load goes straight to the backend that took the write
    assert broken.calls == 1


def test_fallback_never_raises_when_everything_fails():
    store = FallbackCollectionStore([BrokenStore(), BrokenStore()])
    assert store.save(CASES_COLLECTION, USER, RECORDS) is None
    assert store.load(CASES_COLLECTION, USER) == []


def test_write_made_during_remote_outage_survives_recovery(tmp_path, evaluator):
    remote = FlakyStore()
    writer = PersistenceWriter(
        FallbackCollectionStore([remote, LocalCollectionStore(str(tmp_path))]), async_mode=False
    )
    store = CaseStore.load(writer, USER, evaluator)

    store.add({"name": "A"})
    remote.failing = True
    store.add({"name": "B"})
    remote.failing = False

    reloaded = CaseStore.load(writer, USER, evaluator)
    assert [c.name for c in reloaded.all()] == ["A", "B"]


def test_next_write_after_recovery_heals_the_remote(tmp_path, evaluator):
    remote = FlakyStore()
    writer = PersistenceWriter(
        FallbackCollectionStore([remote, LocalCollectionStore(str(tmp_path))]), async_mode=False
    )
    store = CaseStore.load(writer, USER, evaluator)

    remote.failing = True
    store.add({"name": "A"})
    remote.failing = False
    store.add({"name": "B"})

    assert [r["name"] for r in remote.data[(CASES_COLLECTION, USER)]] == ["A", "B"]


def test_fresh_process_prefers_newest_copy(tmp_path):
    local = LocalCollectionStore(str(tmp_path))
    local.save(CASES_COLLECTION, USER, RECORDS)
    remote = FlakyStore(written_at=time.time() - 3600)
    remote.data[(CASES_COLLECTION, USER)] = []

    store = FallbackCollectionStore([remote, local])
    assert store.load(CASES_COLLECTION, USER) == RECORDS


def test_fresh_process_keeps_backend_order_for_newer_primary(tmp_path):
    local = LocalCollectionStore(str(tmp_path))
    local.save(CASES_COLLECTION, USER, RECORDS)
    path = local._path(CASES_COLLECTION, USER)
    stale = time.time() - 3600
    os.utime(path, (stale, stale))
    remote = FlakyStore(written_at=time.time())
    remote.data[(CASES_COLLECTION, USER)] = [{"id": "c2", "name": "Fraud case"}]

    store = FallbackCollectionStore([remote, local])
    assert store.load(CASES_COLLECTION, USER) == [{"id": "c2", "name": "Fraud case"}]


def test_fallback_requires_a_backend():
    with pytest.raises(ValueError):
        FallbackCollectionStore([])


def test_postgres_store_wraps_database_errors():
    store = PostgresCollectionStore(FailingDatabase())
    with pytest.raises(PersistenceError):
        store.load(CASES_COLLECTION, USER)
    with pytest.raises(PersistenceError):
        store.save(CASES_COLLECTION, USER, RECORDS)


def test_postgres_store_upserts_whole_collection():
    db = RecordingDatabase()
    store = PostgresCollectionStore(db)
    store.save(CASES_COLLECTION, USER, RECORDS)
    assert store.load(CASES_COLLECTION, USER) == RECORDS

    insert, params = db.queries[0]
    assert "ON CONFLICT (user_key, collection)" in insert
    assert params[:2] == (USER, CASES_COLLECTION)


def test_async_writer_flush(tmp_path):
    local = LocalCollectionStore(str(tmp_path))
    writer = PersistenceWriter(FallbackCollectionStore([local]), async_mode=True)
    try:
        for i in range(5):
            writer.persist(CASES_COLLECTION, USER, [{"id": str(i)}])
        writer.flush(timeout=5)
        assert local.load(CASES_COLLECTION, USER) == [{"id": "4"}]
    finally:
        writer.shutdown()


def test_async_writer_accepts_writes_from_many_threads(tmp_path):
    local = LocalCollectionStore(str(tmp_path))
    writer = PersistenceWriter(FallbackCollectionStore([local]), async_mode=True)
    threads = [
        threading.Thread(target=writer.persist, args=(CASES_COLLECTION, f"user{i}", [{"id": str(i)}]))
        for i in range(8)
    ]
    try:
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        writer.flush(timeout=5)
        assert writer.pending_count() == 0
        for i in range(8):
            assert local.load(CASES_COLLECTION, f"user{i}") == [{"id": str(i)}]
    finally:
        writer.shutdown()


def test_build_collection_store_order(tmp_path):
    store = build_collection_store(["postgres", "local"], str(tmp_path), RecordingDatabase())
    assert store.backend_names == ["postgres", "local"]


def test_build_collection_store_skips_postgres_without_connection(tmp_path):
    store = build_collection_store(["postgres"], str(tmp_path))
    assert store.backend_names == ["local"]


def test_build_collection_store_rejects_unknown_backend(tmp_path):
    with pytest.raises(ValueError):
        build_collection_store(["redis"], str(tmp_path))
