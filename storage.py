"""
Key/value persistence for dashboard settings (status config, filters, rates).
"""

import os
import copy
import json
import logging
import tempfile
import threading
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class MemoryStorage:
    """In-process storage. Used for tests and sessions without a state dir.

    Values are copied in and out so callers never share state with the store.
    """

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = copy.deepcopy(dict(initial or {}))

    def get(self, key: str, default: Any = None) -> Any:
        return copy.deepcopy(self._data.get(key, default))

    def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self):
        return list(self._data.keys())


class JsonFileStorage(MemoryStorage):
    """
    Storage backed by a single JSON document on disk.

    The whole document is rewritten on every change (temp file + rename) so
    a crash never leaves a half-written file behind.
    """

    def __init__(self, path: str):
        self.path = path
        self._lock = threading.Lock()
        super().__init__(self._read())

    def _read(self) -> Dict[str, Any]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable state file %s: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring state file %s: expected an object", self.path)
            return {}
        return data

    def _write(self) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._data, f, indent=2, default=str)
            os.replace(tmp_path, self.path)
        except Exception:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            super().set(key, value)
            self._write()

    def remove(self, key: str) -> None:
        with self._lock:
            super().remove(key)
            self._write()
