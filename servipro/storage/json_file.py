"""
JSON file document store.

Keeps every collection in memory and rewrites one JSON file after each
change. Good for development and single-process deployments; use MongoDB
when several processes share the data.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from .base import Clock, Document
from .memory import MemoryStore

logger = logging.getLogger(__name__)

DEFAULT_DATA_FILE = Path(__file__).parent.parent.parent / "data" / "servipro.json"

_DATE_KEY = "$date"


def _encode(value: Any) -> Any:
    if isinstance(value, datetime):
        return {_DATE_KEY: value.isoformat()}
    if isinstance(value, dict):
        return {k: _encode(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_encode(v) for v in value]
    return value


def _decode(value: Any) -> Any:
    if isinstance(value, dict):
        if set(value) == {_DATE_KEY}:
            return datetime.fromisoformat(value[_DATE_KEY])
        return {k: _decode(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_decode(v) for v in value]
    return value


class JsonFileStore(MemoryStore):
    """
    File-backed store.

    File layout: {"<collection>": [<document>, ...], ...}; datetimes are
    written as {"$date": "<iso-8601>"}.
    """

    def __init__(self, file_path: Optional[Path] = None, clock: Optional[Clock] = None):
        """
        Initialize the store.

        Args:
            file_path: Path to the JSON file (default: data/servipro.json)
            clock: Optional clock for TTL checks
        """
        super().__init__(clock=clock)
        self.file_path = Path(file_path) if file_path else DEFAULT_DATA_FILE
        self._raw: Dict[str, List[Document]] = {}
        self._ensure_file()
        self._load_all()

    def _ensure_file(self):
        """Ensure the storage file and directory exist."""
        self.file_path.parent.mkdir(parents=True, exist_ok=True)
        if not self.file_path.exists():
            self.file_path.write_text("{}", encoding="utf-8")

    def _load_all(self):
        try:
            data = json.loads(self.file_path.read_text(encoding="utf-8") or "{}")
        except json.JSONDecodeError as e:
            logger.error(f"Corrupt data file {self.file_path}: {e}")
            raise
        self._raw = {name: _decode(docs) for name, docs in data.items()}
        logger.info(
            f"Loaded {sum(len(d) for d in self._raw.values())} documents from {self.file_path}"
        )

    def _initial_documents(self, name: str) -> List[Document]:
        return self._raw.pop(name, [])

    def _on_change(self):
        self._save_all()

    def _save_all(self):
        """Rewrite the whole file. Caller holds the store lock."""
        data: Dict[str, List[Document]] = {name: docs for name, docs in self._raw.items()}
        for name, collection in self._collections.items():
            data[name] = collection.dump()

        tmp_path = self.file_path.with_suffix(self.file_path.suffix + ".tmp")
        tmp_path.write_text(
            json.dumps(_encode(data), indent=2, ensure_ascii=False),
            encoding="utf-8"
        )
        tmp_path.replace(self.file_path)
