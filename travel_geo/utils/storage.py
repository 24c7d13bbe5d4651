"""
Key-Value Storage
=================

Small persistence layer for device-local state such as arrival radius
learning data. Callers only see get/set/delete on byte blobs, so the same
engine runs against memory (tests), a directory of files, or anything else
implementing KeyValueStore.

Classes:
    KeyValueStore: Abstract byte-blob store interface
    MemoryStore: Thread-safe in-memory dict store
    FileStore: One JSON file per key inside a directory

Functions:
    create_learning_store: FileStore rooted at the configured learning data directory

Author: Travel Geo Engine Team
"""

import os
import re
import logging
import tempfile
import threading
from abc import ABC, abstractmethod
from typing import Dict, Optional

from config import config


class KeyValueStore(ABC):
    """Interface for byte-blob persistence keyed by string"""

    @abstractmethod
    def get(self, key: str) -> Optional[bytes]:
        """Return stored bytes or None when the key is absent"""

    @abstractmethod
    def set(self, key: str, value: bytes) -> None:
        """Store bytes under key, replacing any previous value"""

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove key; True if something was removed"""


class MemoryStore(KeyValueStore):
    """In-memory store, mainly for tests and ephemeral sessions"""

    def __init__(self, initial: Optional[Dict[str, bytes]] = None):
        self._lock = threading.RLock()
        self._data: Dict[str, bytes] = dict(initial or {})

    def get(self, key: str) -> Optional[bytes]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: bytes) -> None:
        if not isinstance(value, (bytes, bytearray)):
            raise TypeError(f"MemoryStore values must be bytes, got {type(value).__name__}")
        with self._lock:
            self._data[key] = bytes(value)

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._data.pop(key, None) is not None

    def keys(self):
        with self._lock:
            return list(self._data.keys())


class FileStore(KeyValueStore):
    """
    Directory-backed store writing one <key>.json file per key

    Writes go to a temporary file in the same directory and are moved into
    place with os.replace, so a crash never leaves a half-written blob.
    """

    def __init__(self, directory: str):
        self.logger = logging.getLogger(__name__)
        self.directory = directory
        os.makedirs(self.directory, exist_ok=True)
        self.logger.debug(f"File store ready at {self.directory}")

    def _path_for(self, key: str) -> str:
        safe_key = re.sub(r"[^A-Za-z0-9_.-]", "_", key)
        return os.path.join(self.directory, f"{safe_key}.json")

    def get(self, key: str) -> Optional[bytes]:
        path = self._path_for(key)
        if not os.path.exists(path):
            return None
        with open(path, "rb") as f:
            return f.read()

    def set(self, key: str, value: bytes) -> None:
        path = self._path_for(key)
        fd, tmp_path = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(value)
            os.replace(tmp_path, path)
        except Exception:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def delete(self, key: str) -> bool:
        path = self._path_for(key)
        if os.path.exists(path):
            os.remove(path)
            return True
        return False


def create_learning_store(directory: Optional[str] = None) -> FileStore:
    """FileStore for arrival learning data, under LEARNING_DATA_DIR by default"""
    return FileStore(directory or config.LEARNING_DATA_DIR)
