"""
Persistence layer.

Generic document storage with TTL and unique constraints, used by the
verification, session and user stores.
"""

from typing import Optional

from ..config import StorageConfig
from .base import Clock, Collection, DocumentStore, TTLIndex, utcnow
from .json_file import JsonFileStore
from .memory import MemoryStore
from .mongo import MongoStore

__all__ = [
    "Clock",
    "Collection",
    "DocumentStore",
    "TTLIndex",
    "utcnow",
    "MemoryStore",
    "JsonFileStore",
    "MongoStore",
    "create_store",
]


def create_store(config: StorageConfig, clock: Optional[Clock] = None) -> DocumentStore:
    """
    Build the configured backend.

    Args:
        config: Storage configuration
        clock: Optional clock for TTL checks

    Returns:
        A connected DocumentStore
    """
    if config.backend == "memory":
        return MemoryStore(clock=clock)
    if config.backend == "json":
        return JsonFileStore(file_path=config.data_file, clock=clock)
    return MongoStore(config.mongodb_uri, db_name=config.mongodb_db_name, clock=clock)
