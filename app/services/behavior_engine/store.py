"""
Key-value persistence used by the behavior engine.

The engine only needs get/set over a handful of JSON-compatible keys,
so any backend that satisfies KeyValueStore can be plugged in.
"""

import copy
import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Protocol, Union

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """Minimal storage contract. Missing keys are simply absent from get()."""

    def get(self, keys: Iterable[str]) -> Dict[str, Any]:
        ...

    def set(self, values: Dict[str, Any]) -> None:
        ...


class InMemoryStore:
    """Process-local store. Values are deep-copied on the way in and out."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = copy.deepcopy(initial) if initial else {}
        self._lock = threading.Lock()

    def get(self, keys: Iterable[str]) -> Dict[str, Any]:
        with self._lock:
            return {key: copy.deepcopy(self._data[key]) for key in keys if key in self._data}

    def set(self, values: Dict[str, Any]) -> None:
        with self._lock:
            self._data.update(copy.deepcopy(values))


class JsonFileStore:
    """
    Store persisted as a single JSON document.

    Every set() rewrites the file through a temp file + os.replace so a
    crash mid-write never leaves a truncated document behind.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock = threading.Lock()
        self._data = self._load()
        logger.info(f"JsonFileStore opened at {self.path} ({len(self._data)} keys)")

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to load store from {self.path}: {e}")
            logger.warning("Starting with an empty store. Fix or delete the file to resolve.")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Store file {self.path} does not hold an object, ignoring it")
            return {}
        return data

    def get(self, keys: Iterable[str]) -> Dict[str, Any]:
        with self._lock:
            return {key: copy.deepcopy(self._data[key]) for key in keys if key in self._data}

    def set(self, values: Dict[str, Any]) -> None:
        with self._lock:
            self._data.update(copy.deepcopy(values))
            self._flush()

    def _flush(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(self._data, f)
            os.replace(temp_path, self.path)
        except Exception:
            if temp_path.exists():
                temp_path.unlink()
            raise
        logger.debug(f"Store flushed to {self.path}")
