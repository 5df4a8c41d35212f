"""
Persistence port for entity collections.

Each collection (cases, reports) is stored whole under a key made of the
collection name and the owning user's key. Writes replace the entire
collection; reads return it or an empty list.

Two interchangeable backends are provided, PostgreSQL and a local JSON
key-value directory, combined by ``FallbackCollectionStore`` which tries them
in a fixed order. ``PersistenceWriter`` pushes writes off the caller's path:
the in-memory stores are the source of truth for the session and never wait
for, or roll back on, a write.
"""

import json
import os
import re
import tempfile
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any, Dict, List, Optional, Sequence, Tuple

from psycopg2.extras import Json

from casetrack.utils.logging_config import get_logger, log_persistence_event

CASES_COLLECTION = "legalCases"
REPORTS_COLLECTION = "legalReports"

Records = List[Dict[str, Any]]
VersionedRecords = Tuple[Records, Optional[float]]


def collection_key(collection: str, user_key: str) -> str:
    return f"{collection}_{user_key}"


class PersistenceError(Exception):
    """Raised by a backend when a read or write cannot be completed"""


class CollectionStore:
    """Interface every persistence backend implements."""

    name = "abstract"

    def load(self, collection: str, user_key: str) -> Records:
        raise NotImplementedError

    def save(self, collection: str, user_key: str, records: Records) -> None:
        raise NotImplementedError

    def load_versioned(self, collection: str, user_key: str) -> VersionedRecords:
        """Records plus the epoch time of their last write, None when unknown"""
        return self.load(collection, user_key), None


class LocalCollectionStore(CollectionStore):
    """Key-value store on the local filesystem, one JSON file per key"""

    name = "local"
    _UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.@-]")

    def __init__(self, storage_dir: str):
        self.storage_dir = storage_dir

    def _path(self, collection: str, user_key: str) -> str:
        key = self._UNSAFE_CHARS.sub("_", collection_key(collection, user_key))
        return os.path.join(self.storage_dir, f"{key}.json")

    def load(self, collection: str, user_key: str) -> Records:
        path = self._path(collection, user_key)
        if not os.path.exists(path):
            return []
        try:
            with open(path, encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, ValueError) as e:
            raise PersistenceError(f"Cannot read {path}: {e}") from e
        return data if isinstance(data, list) else []

    def save(self, collection: str, user_key: str, records: Records) -> None:
        path = self._path(collection, user_key)
        try:
            os.makedirs(self.storage_dir, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.storage_dir, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(records, fh, ensure_ascii=False)
            os.replace(tmp_path, path)
        except OSError as e:
            raise PersistenceError(f"Cannot write {path}: {e}") from e

    def load_versioned(self, collection: str, user_key: str) -> VersionedRecords:
        records = self.load(collection, user_key)
        try:
            written_at = os.path.getmtime(self._path(collection, user_key))
        except OSError:
            written_at = None
        return records, written_at


class PostgresCollectionStore(CollectionStore):
    """Remote backend: one JSONB row per collection key"""

    name = "postgres"

    def __init__(self, db_connection):
        self.db = db_connection

    def load(self, collection: str, user_key: str) -> Records:
        return self.load_versioned(collection, user_key)[0]

    def load_versioned(self, collection: str, user_key: str) -> VersionedRecords:
        query = "SELECT payload, written_at FROM entity_collections WHERE user_key = %s AND collection = %s"
        try:
            row = self.db.execute_query(query, (user_key, collection), fetch_one=True)
        except Exception as e:
            raise PersistenceError(str(e)) from e
        if not row:
            return [], None
        payload = row["payload"]
        written_at = row.get("written_at")
        return (payload if isinstance(payload, list) else []), (float(written_at) if written_at else None)

    def save(self, collection: str, user_key: str, records: Records) -> None:
        # written_at is the application clock, comparable with local file mtimes
        query = """
        INSERT INTO entity_collections (user_key, collection, payload, written_at, updated_at)
        VALUES (%s, %s, %s, %s, CURRENT_TIMESTAMP)
        ON CONFLICT (user_key, collection)
        DO UPDATE SET payload = EXCLUDED.payload, written_at = EXCLUDED.written_at, updated_at = CURRENT_TIMESTAMP
        """
        try:
            self.db.execute_query(query, (user_key, collection, Json(records), time.time()), fetch_all=False)
        except Exception as e:
            raise PersistenceError(str(e)) from e


class FallbackCollectionStore(CollectionStore):
    """
    Ordered fallback over several backends.

    ``save`` writes to the first backend that accepts the write. ``load``
    returns the most recently written copy: the backend that took this
    process's last write for the key when it answers, otherwise the copy with
    the newest write time among the backends that answer. A write that fell
    back while the primary was down is therefore never shadowed by the
    primary's older copy once it recovers. Failures are logged, never raised.
    """

    name = "fallback"

    def __init__(self, backends: Sequence[CollectionStore]):
        if not backends:
            raise ValueError("At least one persistence backend is required")
        self.backends = list(backends)
        self.logger = get_logger("persistence")
        self._last_write: Dict[str, int] = {}
        self._lock = threading.Lock()

    @property
    def backend_names(self) -> List[str]:
        return [b.name for b in self.backends]

    def _try_load(self, index: int, collection: str, user_key: str) -> Optional[VersionedRecords]:
        backend = self.backends[index]
        try:
            return backend.load_versioned(collection, user_key)
        except Exception as e:
            self.logger.error(
                "Collection load failed, trying next backend",
                extra={
                    "event": "collection_load_failed",
                    "backend": backend.name,
                    "collection": collection,
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
            )
            return None

    def load(self, collection: str, user_key: str) -> Records:
        with self._lock:
            last_write = self._last_write.get(collection_key(collection, user_key))

        if last_write is not None:
            answer = self._try_load(last_write, collection, user_key)
            if answer is not None:
                log_persistence_event(
                    "load", collection, backend=self.backends[last_write].name, count=len(answer[0])
                )
                return answer[0]

        answers = []
        for index in range(len(self.backends)):
            if index == last_write:
                continue
            answer = self._try_load(index, collection, user_key)
            if answer is not None:
                answers.append((index, answer[0], answer[1]))

        if not answers:
            self.logger.error(
                "No persistence backend could load the collection",
                extra={"event": "collection_load_exhausted", "collection": collection},
            )
            return []

        # Newest stamped copy wins; with no stamps, backend order decides
        stamped = [a for a in answers if a[2] is not None]
        index, records, _ = max(stamped, key=lambda a: a[2]) if stamped else answers[0]
        if index != answers[0][0]:
            self.logger.warning(
                "Newer copy found on a fallback backend",
                extra={
                    "event": "collection_load_newer_fallback",
                    "backend": self.backends[index].name,
                    "collection": collection,
                },
            )
        log_persistence_event("load", collection, backend=self.backends[index].name, count=len(records))
        return records

    def save(self, collection: str, user_key: str, records: Records) -> Optional[str]:
        for index, backend in enumerate(self.backends):
            try:
                backend.save(collection, user_key, records)
            except Exception as e:
                self.logger.error(
                    "Collection save failed, trying next backend",
                    extra={
                        "event": "collection_save_failed",
                        "backend": backend.name,
                        "collection": collection,
                        "error": str(e),
                        "error_type": type(e).__name__,
                    },
                )
                continue
            with self._lock:
                self._last_write[collection_key(collection, user_key)] = index
            log_persistence_event("save", collection, backend=backend.name, count=len(records))
            return backend.name

        self.logger.error(
            "No persistence backend accepted the write",
            extra={"event": "collection_save_exhausted", "collection": collection, "count": len(records)},
        )
        return None


class PersistenceWriter:
    """
    Fire-and-forget writer in front of a ``FallbackCollectionStore``.

    In async mode writes run on a single worker thread so they land in the
    order they were issued. Synchronous mode runs them inline.
    """

    def __init__(self, store: FallbackCollectionStore, async_mode: bool = True):
        self.store = store
        self.async_mode = async_mode
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="persist") if async_mode else None
        self._pending: List[Future] = []
        self._lock = threading.Lock()

    def load(self, collection: str, user_key: str) -> Records:
        return self.store.load(collection, user_key)

    def persist(self, collection: str, user_key: str, records: Records) -> None:
        if self._executor is None:
            self.store.save(collection, user_key, records)
            return
        with self._lock:
            self._pending = [f for f in self._pending if not f.done()]
            self._pending.append(self._executor.submit(self.store.save, collection, user_key, records))

    def pending_count(self) -> int:
        with self._lock:
            return sum(1 for f in self._pending if not f.done())

    def flush(self, timeout: Optional[float] = None) -> None:
        """Block until every write issued so far has completed"""
        with self._lock:
            pending = list(self._pending)
        if pending:
            wait(pending, timeout=timeout)
        with self._lock:
            self._pending = [f for f in self._pending if not f.done()]

    def shutdown(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)


def build_collection_store(backend_names: Sequence[str], storage_dir: str, db_connection=None):
    """Build the ordered fallback store from configured backend names."""
    backends: List[CollectionStore] = []
    for name in backend_names:
        if name == "postgres":
            if db_connection is None:
                get_logger("persistence").warning(
                    "PostgreSQL backend requested without a database connection, skipping",
                    extra={"event": "backend_skipped", "backend": name},
                )
                continue
            backends.append(PostgresCollectionStore(db_connection))
        elif name == "local":
            backends.append(LocalCollectionStore(storage_dir))
        else:
            raise ValueError(f"Unknown persistence backend: {name}")

    if not backends:
        backends.append(LocalCollectionStore(storage_dir))
    return FallbackCollectionStore(backends)
