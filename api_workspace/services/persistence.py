"""
Persistence adapters and the background write queue.

The workspace is saved as one JSON document under a single storage key.
Adapters implement a small key/value contract; the worker serializes writes
on a background thread so in-memory mutations never wait on storage, and a
newer snapshot always supersedes an unwritten older one.
"""

import hashlib
import logging
import threading
from abc import ABC, abstractmethod

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..models.storage import StorageEntry

logger = logging.getLogger(__name__)

# Written by remove() in place of deleting the entry
EMPTY_DOCUMENT = "{}"


class PersistenceAdapter(ABC):
    """Interface for durable key/value blob storage."""

    @abstractmethod
    def read(self, key: str) -> str | None:
        """Return the stored document, or None if absent."""

    @abstractmethod
    def write(self, key: str, data: str) -> bool:
        """Store a document; return False on failure."""

    @abstractmethod
    def remove(self, key: str) -> bool:
        """Remove a document; return False on failure."""


class MemoryStorageAdapter(PersistenceAdapter):
    """Process-local adapter for tests and throwaway sessions."""

    def __init__(self, initial: dict[str, str] | None = None):
        self.entries: dict[str, str] = dict(initial or {})
        self.write_count = 0

    def read(self, key: str) -> str | None:
        return self.entries.get(key)

    def write(self, key: str, data: str) -> bool:
        self.entries[key] = data
        self.write_count += 1
        return True

    def remove(self, key: str) -> bool:
        self.entries.pop(key, None)
        return True


class SqlAlchemyStorageAdapter(PersistenceAdapter):
    """
    SQLite-backed adapter storing each key as a row of ``storage_entries``.

    Errors are logged and reported as a failed read/write; they never
    propagate to the caller.
    """

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def read(self, key: str) -> str | None:
        session: Session = self.session_factory()
        try:
            entry = session.get(StorageEntry, key)
            return entry.value if entry is not None else None
        except SQLAlchemyError:
            logger.exception("Failed to read storage key %s", key)
            return None
        finally:
            session.close()

    def write(self, key: str, data: str) -> bool:
        session: Session = self.session_factory()
        try:
            entry = session.get(StorageEntry, key)
            if entry is None:
                session.add(StorageEntry(key=key, value=data))
            else:
                entry.value = data
            session.commit()
            return True
        except SQLAlchemyError:
            session.rollback()
            logger.exception("Failed to write storage key %s", key)
            return False
        finally:
            session.close()

    def remove(self, key: str) -> bool:
        return self.write(key, EMPTY_DOCUMENT)


class PersistenceWorker:
    """
    Background writer with a single pending slot.

    ``submit`` returns immediately. If a document is still waiting when a
    new one arrives, the older one is dropped (last write wins). A document
    whose hash equals the last successfully written one is skipped.
    """

    def __init__(self, adapter: PersistenceAdapter, key: str):
        self.adapter = adapter
        self.key = key
        self._condition = threading.Condition()
        self._pending: str | None = None
        self._busy = False
        self._closed = False
        self._last_hash: str | None = None
        self._thread = threading.Thread(target=self._run, name="workspace-persistence", daemon=True)
        self._thread.start()

    def submit(self, document: str) -> None:
        with self._condition:
            if self._closed:
                logger.warning("Persistence worker closed; dropping write for %s", self.key)
                return
            self._pending = document
            self._condition.notify_all()

    def flush(self, timeout: float | None = 5.0) -> bool:
        """Block until every submitted document has been handled. Returns False on timeout."""
        with self._condition:
            return self._condition.wait_for(
                lambda: self._pending is None and not self._busy, timeout=timeout
            )

    def close(self, timeout: float | None = 5.0) -> None:
        """Flush outstanding writes and stop the worker thread."""
        self.flush(timeout)
        with self._condition:
            self._closed = True
            self._condition.notify_all()
        self._thread.join(timeout)

    def _run(self) -> None:
        while True:
            with self._condition:
                self._condition.wait_for(lambda: self._pending is not None or self._closed)
                if self._pending is None and self._closed:
                    return
                document, self._pending = self._pending, None
                self._busy = True
            try:
                self._write(document)
            finally:
                with self._condition:
                    self._busy = False
                    self._condition.notify_all()

    def _write(self, document: str) -> None:
        digest = hashlib.sha256(document.encode("utf-8")).hexdigest()
        if digest == self._last_hash:
            return
        try:
            ok = self.adapter.write(self.key, document)
        except Exception:
            logger.exception("Persistence adapter raised while writing %s", self.key)
            return
        if ok:
            self._last_hash = digest
        else:
            logger.error("Persistence write failed for %s; in-memory state is kept", self.key)
