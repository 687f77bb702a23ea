"""Persisted key-value stores.

Only the ``get``/``set``/``remove`` contract matters to the rest of the
library. Individual ``set`` calls are durable and atomic; there are no
multi-key transactions.
"""

from __future__ import annotations

import contextlib
import copy
import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Protocol

from pypassive.exceptions import StoreError

_logger = logging.getLogger(__name__)

_MISSING = object()


class KeyValueStore(Protocol):
    """Structural interface for persisted preferences."""

    def get(self, key: str, default: Any = None) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...

    def remove(self, key: str) -> None: ...

    def __contains__(self, key: object) -> bool: ...


class MemoryKeyValueStore:
    """In-memory store; state is lost when the process exits."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = copy.deepcopy(initial) if initial else {}
        self._lock = threading.Lock()

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            if key not in self._data:
                return default
            return copy.deepcopy(self._data[key])

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = copy.deepcopy(value)

    def remove(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._data

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            return copy.deepcopy(self._data)


class JsonFileKeyValueStore:
    """Store backed by a single JSON object on disk.

    Every ``set`` rewrites the file through a temporary sibling and
    ``os.replace`` so a crash never leaves a half-written file behind.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()
        self._data: dict[str, Any] = self._load()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            text = self._path.read_text(encoding="utf-8")
        except OSError as exc:
            raise StoreError(f"Cannot read {self._path}: {exc}") from exc
        if not text.strip():
            return {}
        try:
            loaded = json.loads(text)
        except json.JSONDecodeError as exc:
            raise StoreError(f"{self._path} is not valid JSON") from exc
        if not isinstance(loaded, dict):
            raise StoreError(f"{self._path} does not hold a JSON object")
        return loaded

    def _flush(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self._path.name}.", dir=self._path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(self._data, handle, separators=(",", ":"), sort_keys=True)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self._path)
        except (OSError, TypeError, ValueError) as exc:
            with contextlib.suppress(OSError):
                os.unlink(tmp_name)
            raise StoreError(f"Cannot write {self._path}: {exc}") from exc

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            if key not in self._data:
                return default
            return copy.deepcopy(self._data[key])

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            previous = self._data.get(key, _MISSING)
            self._data[key] = copy.deepcopy(value)
            try:
                self._flush()
            except StoreError:
                if previous is _MISSING:
                    self._data.pop(key, None)
                else:
                    self._data[key] = previous
                raise
        _logger.debug("Stored key %s in %s", key, self._path)

    def remove(self, key: str) -> None:
        with self._lock:
            if key not in self._data:
                return
            previous = self._data.pop(key)
            try:
                self._flush()
            except StoreError:
                self._data[key] = previous
                raise

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._data
