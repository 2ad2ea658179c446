"""
Durable slots for the session principal, the directory and the ledger.

Values are JSON-compatible payloads (dicts, lists, strings, numbers);
the owners of each slot handle conversion to and from domain models.
"""

import json
import logging
import os
import tempfile
import threading
from enum import Enum
from pathlib import Path
from typing import Any, Protocol

from leave_approval.observability import trace_span

logger = logging.getLogger(__name__)


class StoreKey(str, Enum):
    SESSION = "currentUser"
    DIRECTORY = "users"
    LEDGER = "leaves"


class Store(Protocol):
    def load(self, key: StoreKey) -> Any | None: ...

    def save(self, key: StoreKey, value: Any) -> None: ...


class InMemoryStore:
    """Process-local store, used by default and in tests."""

    def __init__(self):
        self._slots: dict[str, str] = {}

    def load(self, key: StoreKey) -> Any | None:
        raw = self._slots.get(StoreKey(key).value)
        return json.loads(raw) if raw is not None else None

    def save(self, key: StoreKey, value: Any) -> None:
        # Serialized on write so later mutation of `value` cannot leak in
        self._slots[StoreKey(key).value] = json.dumps(value)


class JsonFileStore:
    """
    All slots in a single JSON document on disk.

    Writes replace the file atomically. A missing file loads as empty;
    a corrupt one is logged and also loads as empty.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open(encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error reading store {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.error(f"Ignoring store {self.path}: top level is not an object")
            return {}
        return data

    def load(self, key: StoreKey) -> Any | None:
        key = StoreKey(key)
        with self._lock, trace_span("store_load", key=key.value):
            return self._read().get(key.value)

    def save(self, key: StoreKey, value: Any) -> None:
        key = StoreKey(key)
        with self._lock, trace_span("store_save", key=key.value):
            data = self._read()
            data[key.value] = value

            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(data, fh, indent=2)
                os.replace(tmp_name, self.path)
            except Exception:
                os.unlink(tmp_name)
                raise


def build_store(path: str | None) -> Store:
    """File-backed store when a path is configured, in-memory otherwise."""
    if path:
        logger.info(f"Using JSON file store at {path}")
        return JsonFileStore(path)
    logger.info("Using in-memory store")
    return InMemoryStore()
