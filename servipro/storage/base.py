"""
Document storage contract.

The authentication stores only need a handful of single-document
primitives, each atomic on its own:

- find_one / insert_one / update_one / delete_one
- replace_one(upsert=True): insert-or-replace keyed by the query
- find_one_and_delete: read and remove in one step (single-use consumption)

Collections may declare unique fields and a TTL on a datetime field.
Expired documents are never returned, whether or not the backend has
physically removed them yet.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

Document = Dict[str, Any]
Query = Dict[str, Any]
Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TTLIndex:
    """Documents expire `seconds` after the datetime stored in `field`."""
    field: str
    seconds: int

    def cutoff(self, now: datetime) -> datetime:
        """Documents whose field is at or before this instant are expired."""
        return now - timedelta(seconds=self.seconds)


class Collection(ABC):
    """A named set of documents with optional unique fields and TTL."""

    def __init__(
        self,
        name: str,
        unique: Iterable[str] = (),
        ttl: Optional[TTLIndex] = None
    ):
        self.name = name
        self.unique: Tuple[str, ...] = tuple(unique)
        self.ttl = ttl

    @abstractmethod
    def find_one(self, query: Query) -> Optional[Document]:
        """Return the first live document matching every key of query."""

    @abstractmethod
    def insert_one(self, document: Document) -> Document:
        """
        Insert a document.

        Raises:
            DuplicateKeyError: If a unique field collides
        """

    @abstractmethod
    def replace_one(self, query: Query, document: Document, upsert: bool = False) -> bool:
        """
        Replace the document matching query.

        With upsert=True the document is inserted when nothing matches.

        Returns:
            True if a document was replaced or inserted
        """

    @abstractmethod
    def update_one(self, query: Query, fields: Document) -> Optional[Document]:
        """Set fields on the matching document and return it, or None."""

    @abstractmethod
    def delete_one(self, query: Query) -> bool:
        """Delete the matching document. Returns True if one was deleted."""

    @abstractmethod
    def find_one_and_delete(self, query: Query) -> Optional[Document]:
        """Atomically remove and return the matching document."""

    @abstractmethod
    def count(self, query: Optional[Query] = None) -> int:
        """Number of live documents matching query."""

    def purge_expired(self) -> int:
        """Physically remove expired documents. Returns how many were removed."""
        return 0


class DocumentStore(ABC):
    """Factory and lifecycle owner for collections."""

    @abstractmethod
    def collection(
        self,
        name: str,
        unique: Iterable[str] = (),
        ttl: Optional[TTLIndex] = None
    ) -> Collection:
        """Get (creating if needed) a collection with the given constraints."""

    @abstractmethod
    def ping(self) -> bool:
        """Check that the backend is reachable."""

    def purge_expired(self) -> int:
        """Purge expired documents in every collection."""
        return 0

    def close(self):
        """Release backend resources."""
