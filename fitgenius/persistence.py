"""Fail-soft key/value snapshot persistence.

Every value the engine owns is mirrored under its own key. Reads fall back to a
default and writes are best-effort: a failure is logged and the caller carries on
with its in-memory value, which stays the source of truth.
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
from typing import Any, Dict, Optional, Protocol, TypeVar

from pydantic import TypeAdapter

logger = logging.getLogger(__name__)

T = TypeVar("T")

PROFILE_KEY = "fitgenius_profile"
PLAN_KEY = "fitgenius_plan"
COMPLETED_DAYS_KEY = "fitgenius_completed"
COMPLETED_EXERCISES_KEY = "fitgenius_completed_exercises"
PROGRESS_KEY = "fitgenius_progress"
WORKOUT_LOGS_KEY = "fitgenius_workout_logs"
VISUALS_KEY = "fitgenius_visuals"

_SAFE_KEY_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, text: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryKeyValueStore:
    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self.data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, text: str) -> None:
        self.data[key] = text

    def remove(self, key: str) -> None:
        self.data.pop(key, None)


class FileKeyValueStore:
    """Device-local store: one ``<key>.json`` file per key inside a directory."""

    def __init__(self, directory: str) -> None:
        self.directory = directory
        os.makedirs(self.directory, exist_ok=True)

    def _path(self, key: str) -> str:
        if not _SAFE_KEY_RE.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return os.path.join(self.directory, f"{key}.json")

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not os.path.exists(path):
            return None
        with open(path, "r", encoding="utf-8") as f:
            return f.read()

    def set(self, key: str, text: str) -> None:
        path = self._path(key)
        # Write to a sibling temp file first so a crash never leaves half a snapshot
        fd, tmp = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
            os.replace(tmp, path)
        except BaseException:
            if os.path.exists(tmp):
                os.remove(tmp)
            raise

    def remove(self, key: str) -> None:
        path = self._path(key)
        if os.path.exists(path):
            os.remove(path)


class PersistenceLayer:
    def __init__(self, store: Optional[KeyValueStore]) -> None:
        self.store = store

    def load(self, key: str, default: T, type_: Any) -> T:
        """Read and validate the value under ``key``; return ``default`` on any problem."""
        if self.store is None:
            return default
        try:
            raw = self.store.get(key)
        except Exception as e:
            logger.warning("Failed to read %s from storage: %s", key, e)
            return default
        if raw is None or raw.strip() == "":
            return default
        try:
            return TypeAdapter(type_).validate_json(raw)
        except Exception as e:
            logger.warning("Discarding unreadable snapshot for %s: %s", key, e)
            return default

    def save(self, key: str, value: Any, type_: Any) -> bool:
        if self.store is None:
            return False
        try:
            text = TypeAdapter(type_).dump_json(value).decode("utf-8")
            self.store.set(key, text)
        except Exception as e:
            logger.warning("Failed to persist %s (keeping in-memory value): %s", key, e)
            return False
        return True

    def clear(self, key: str) -> None:
        if self.store is None:
            return
        try:
            self.store.remove(key)
        except Exception as e:
            logger.warning("Failed to clear %s from storage: %s", key, e)
