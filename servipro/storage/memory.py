"""
In-memory document store.

Thread-safe: every operation runs under one store-wide re-entrant lock,
which makes each primitive atomic with respect to the others. TTL is
checked against an injectable clock so tests can fast-forward time.
"""

import logging
import threading
import uuid
from typing import Callable, Dict, Iterable, List, Optional

from ..errors import DuplicateKeyError
from .base import Clock, Collection, Document, DocumentStore, Query, TTLIndex, utcnow

logger = logging.getLogger(__name__)


def _matches(document: Document, query: Query) -> bool:
    return all(document.get(key) == value for key, value in query.items())


class MemoryCollection(Collection):
    """List-backed collection sharing its owner's lock and clock."""

    def __init__(
        self,
        name: str,
        lock: threading.RLock,
        clock: Clock,
        on_change: Optional[Callable[[], None]] = None,
        unique: Iterable[str] = (),
        ttl: Optional[TTLIndex] = None,
        documents: Optional[List[Document]] = None
    ):
        super().__init__(name, unique=unique, ttl=ttl)
        self._lock = lock
        self._clock = clock
        self._on_change = on_change
        self._docs: List[Document] = list(documents or [])

    # Internal helpers (caller holds the lock)

    def _expired(self, document: Document) -> bool:
        if self.ttl is None:
            return False
        stamp = document.get(self.ttl.field)
        return stamp is not None and stamp <= self.ttl.cutoff(self._clock())

    def _purge_locked(self) -> int:
        if self.ttl is None:
            return 0
        before = len(self._docs)
        self._docs = [d for d in self._docs if not self._expired(d)]
        return before - len(self._docs)

    def _index_of(self, query: Query) -> Optional[int]:
        for i, document in enumerate(self._docs):
            if _matches(document, query):
                return i
        return None

    def _check_unique(self, document: Document, skip: Optional[int] = None):
        for field in self.unique:
            value = document.get(field)
            if value is None:
                continue
            for i, other in enumerate(self._docs):
                if i != skip and other.get(field) == value:
                    raise DuplicateKeyError(self.name, field, value)

    def _changed(self):
        if self._on_change:
            self._on_change()

    def _prepare(self) -> None:
        if self._purge_locked():
            self._changed()

    # Collection API

    def find_one(self, query: Query) -> Optional[Document]:
        with self._lock:
            self._prepare()
            index = self._index_of(query)
            return dict(self._docs[index]) if index is not None else None

    def insert_one(self, document: Document) -> Document:
        with self._lock:
            self._prepare()
            self._check_unique(document)
            stored = dict(document)
            stored.setdefault("_id", uuid.uuid4().hex)
            self._docs.append(stored)
            self._changed()
            return dict(stored)

    def replace_one(self, query: Query, document: Document, upsert: bool = False) -> bool:
        with self._lock:
            self._prepare()
            index = self._index_of(query)
            if index is None:
                if not upsert:
                    return False
                self.insert_one(document)
                return True
            self._check_unique(document, skip=index)
            stored = dict(document)
            stored["_id"] = self._docs[index].get("_id", uuid.uuid4().hex)
            self._docs[index] = stored
            self._changed()
            return True

    def update_one(self, query: Query, fields: Document) -> Optional[Document]:
        with self._lock:
            self._prepare()
            index = self._index_of(query)
            if index is None:
                return None
            updated = {**self._docs[index], **fields}
            self._check_unique(updated, skip=index)
            self._docs[index] = updated
            self._changed()
            return dict(updated)

    def delete_one(self, query: Query) -> bool:
        return self.find_one_and_delete(query) is not None

    def find_one_and_delete(self, query: Query) -> Optional[Document]:
        with self._lock:
            self._prepare()
            index = self._index_of(query)
            if index is None:
                return None
            removed = self._docs.pop(index)
            self._changed()
            return removed

    def count(self, query: Optional[Query] = None) -> int:
        with self._lock:
            self._prepare()
            return sum(1 for d in self._docs if _matches(d, query or {}))

    def purge_expired(self) -> int:
        with self._lock:
            removed = self._purge_locked()
            if removed:
                self._changed()
            return removed

    def dump(self) -> List[Document]:
        """Snapshot of every stored document, expired ones included."""
        with self._lock:
            return [dict(d) for d in self._docs]


class MemoryStore(DocumentStore):
    """
    Process-local store.

    Usage:
        store = MemoryStore()
        users = store.collection("users", unique=["phone"])
    """

    def __init__(self, clock: Optional[Clock] = None):
        self._lock = threading.RLock()
        self._clock = clock or utcnow
        self._collections: Dict[str, MemoryCollection] = {}

    def _initial_documents(self, name: str) -> List[Document]:
        return []

    def _on_change(self):
        pass

    def collection(
        self,
        name: str,
        unique: Iterable[str] = (),
        ttl: Optional[TTLIndex] = None
    ) -> MemoryCollection:
        with self._lock:
            existing = self._collections.get(name)
            if existing is not None:
                return existing

            collection = MemoryCollection(
                name,
                lock=self._lock,
                clock=self._clock,
                on_change=self._on_change,
                unique=unique,
                ttl=ttl,
                documents=self._initial_documents(name)
            )
            self._collections[name] = collection
            logger.debug(f"Collection ready: {name} (unique={list(unique)}, ttl={ttl})")
            return collection

    def ping(self) -> bool:
        return True

    def purge_expired(self) -> int:
        with self._lock:
            removed = sum(c.purge_expired() for c in self._collections.values())
        if removed:
            logger.info(f"Purged {removed} expired documents")
        return removed
