"""Operator preferences shared by every planning session in the process."""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any, Protocol

from ..config import settings
from .filesystem import FileStorage

LAST_STORE_KEY = "last_selected_store"

logger = logging.getLogger(__name__)


class PreferencesStore(Protocol):
    def get(self, key: str, default: Any = None) -> Any:
        ...

    def set(self, key: str, value: Any) -> None:
        ...


class InMemoryPreferences:
    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._values: dict[str, Any] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._values.get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._values[key] = value


class FilePreferences:
    """Preferences kept in a small JSON document under the data root."""

    def __init__(self, path: Path | None = None, storage: FileStorage | None = None) -> None:
        target = path or settings.preferences_file
        self.storage = storage or FileStorage(root=target.parent)
        self.path = self.storage.path_for(target)
        self._lock = threading.Lock()

    def _load(self) -> dict[str, Any]:
        try:
            data = self.storage.read_json(self.path, default={})
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable preferences file {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._load().get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            data = self._load()
            data[key] = value
            self.storage.write_json(self.path, data)
