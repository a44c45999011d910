"""
MongoDB document store.

- Connection with retry and exponential backoff
- Unique indexes for unique fields
- TTL indexes for automatic cleanup; reads also filter on the TTL field so
  a document is unusable the instant it expires, not when the TTL monitor
  gets to it
"""

import logging
import time
from typing import Dict, Iterable, Optional

from pymongo import MongoClient, ReturnDocument
from pymongo.errors import (
    ConnectionFailure,
    DuplicateKeyError as MongoDuplicateKeyError,
    PyMongoError,
    ServerSelectionTimeoutError,
)

from ..errors import DuplicateKeyError, StorageError
from .base import Clock, Collection, Document, DocumentStore, Query, TTLIndex, utcnow

logger = logging.getLogger(__name__)

NO_ID = {"_id": False}


def _duplicate_field(error: MongoDuplicateKeyError, unique: Iterable[str]) -> str:
    details = getattr(error, "details", None) or {}
    key_pattern = details.get("keyPattern") or {}
    for field in key_pattern:
        return field
    fields = list(unique)
    return fields[0] if fields else "_id"


class MongoCollection(Collection):
    """Wraps a pymongo collection behind the storage contract."""

    def __init__(
        self,
        raw_collection,
        clock: Clock,
        unique: Iterable[str] = (),
        ttl: Optional[TTLIndex] = None
    ):
        super().__init__(raw_collection.name, unique=unique, ttl=ttl)
        self._raw = raw_collection
        self._clock = clock

    def ensure_indexes(self):
        """Create unique and TTL indexes. Idempotent."""
        for field in self.unique:
            self._raw.create_index(field, unique=True, name=f"{field}_unique")
            logger.debug(f"Created unique index on {self.name}.{field}")

        if self.ttl is not None:
            self._raw.create_index(
                self.ttl.field,
                expireAfterSeconds=self.ttl.seconds,
                name=f"{self.ttl.field}_ttl"
            )
            logger.debug(
                f"Created TTL index on {self.name}.{self.ttl.field} ({self.ttl.seconds}s)"
            )

    def _live(self, query: Query) -> Query:
        if self.ttl is None:
            return dict(query)
        return {**query, self.ttl.field: {"$gt": self.ttl.cutoff(self._clock())}}

    def _duplicate(self, error: MongoDuplicateKeyError, document: Document) -> DuplicateKeyError:
        field = _duplicate_field(error, self.unique)
        return DuplicateKeyError(self.name, field, document.get(field))

    def find_one(self, query: Query) -> Optional[Document]:
        try:
            return self._raw.find_one(self._live(query), projection=NO_ID)
        except PyMongoError as e:
            raise StorageError(f"find_one failed on {self.name}: {e}") from e

    def insert_one(self, document: Document) -> Document:
        stored = dict(document)
        try:
            self._raw.insert_one(stored)
        except MongoDuplicateKeyError as e:
            raise self._duplicate(e, document) from e
        except PyMongoError as e:
            raise StorageError(f"insert_one failed on {self.name}: {e}") from e
        return dict(document)

    def replace_one(self, query: Query, document: Document, upsert: bool = False) -> bool:
        # Not TTL-filtered: an expired leftover for the same key is replaced in place.
        try:
            result = self._raw.replace_one(query, dict(document), upsert=upsert)
        except MongoDuplicateKeyError as e:
            raise self._duplicate(e, document) from e
        except PyMongoError as e:
            raise StorageError(f"replace_one failed on {self.name}: {e}") from e
        return bool(result.matched_count or result.upserted_id is not None)

    def update_one(self, query: Query, fields: Document) -> Optional[Document]:
        try:
            return self._raw.find_one_and_update(
                self._live(query),
                {"$set": fields},
                projection=NO_ID,
                return_document=ReturnDocument.AFTER
            )
        except MongoDuplicateKeyError as e:
            raise self._duplicate(e, fields) from e
        except PyMongoError as e:
            raise StorageError(f"update_one failed on {self.name}: {e}") from e

    def delete_one(self, query: Query) -> bool:
        try:
            result = self._raw.delete_one(self._live(query))
        except PyMongoError as e:
            raise StorageError(f"delete_one failed on {self.name}: {e}") from e
        return result.deleted_count > 0

    def find_one_and_delete(self, query: Query) -> Optional[Document]:
        try:
            return self._raw.find_one_and_delete(self._live(query), projection=NO_ID)
        except PyMongoError as e:
            raise StorageError(f"find_one_and_delete failed on {self.name}: {e}") from e

    def count(self, query: Optional[Query] = None) -> int:
        try:
            return self._raw.count_documents(self._live(query or {}))
        except PyMongoError as e:
            raise StorageError(f"count failed on {self.name}: {e}") from e


class MongoStore(DocumentStore):
    """MongoDB-backed store; the server's TTL monitor does the purging."""

    def __init__(
        self,
        uri: str,
        db_name: str = "servipro",
        clock: Optional[Clock] = None,
        client: Optional[MongoClient] = None
    ):
        """
        Initialize the store.

        Args:
            uri: MongoDB connection URI
            db_name: Database name
            clock: Optional clock for read-side TTL filtering
            client: Pre-built client (skips connecting)
        """
        self.uri = uri
        self.db_name = db_name
        self._clock = clock or utcnow
        self._client = client
        self._collections: Dict[str, MongoCollection] = {}

        if self._client is None:
            self._client = self._connect()
        self._database = self._client[db_name]

    def _connect(self, max_retries: int = 3, retry_delay: float = 2.0) -> MongoClient:
        for attempt in range(1, max_retries + 1):
            try:
                logger.info(f"Connecting to MongoDB (attempt {attempt}/{max_retries})")
                client = MongoClient(
                    self.uri,
                    tz_aware=True,
                    serverSelectionTimeoutMS=5000,
                    connectTimeoutMS=10000,
                    socketTimeoutMS=45000,
                    retryWrites=True,
                    retryReads=True,
                )
                client.admin.command("ping")
                logger.info(f"Connected to MongoDB: {self.db_name}")
                return client
            except (ConnectionFailure, ServerSelectionTimeoutError) as e:
                logger.error(f"Failed to connect to MongoDB (attempt {attempt}/{max_retries}): {e}")
                if attempt < max_retries:
                    logger.info(f"Retrying in {retry_delay} seconds...")
                    time.sleep(retry_delay)
                    retry_delay *= 2
                else:
                    logger.critical("Failed to connect to MongoDB after all retries")
                    raise StorageError("Could not establish MongoDB connection") from e

    def collection(
        self,
        name: str,
        unique: Iterable[str] = (),
        ttl: Optional[TTLIndex] = None
    ) -> MongoCollection:
        existing = self._collections.get(name)
        if existing is not None:
            return existing

        collection = MongoCollection(self._database[name], self._clock, unique=unique, ttl=ttl)
        try:
            collection.ensure_indexes()
        except PyMongoError as e:
            raise StorageError(f"Could not create indexes on {name}: {e}") from e
        self._collections[name] = collection
        return collection

    def ping(self) -> bool:
        try:
            self._client.admin.command("ping")
            return True
        except PyMongoError as e:
            logger.error(f"Database health check failed: {e}")
            return False

    def close(self):
        if self._client is not None:
            logger.info("Closing MongoDB connection")
            self._client.close()
