"""Draft storage for auto-saved form snapshots.

Entries are stored as ``{"saved_at": <ISO-8601 UTC>, "data": {...}}``. A
draft older than the staleness window is discarded on load.
"""

import json
import logging
import re
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_MAX_AGE = timedelta(hours=24)

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _wrap(data: dict[str, Any]) -> dict[str, Any]:
    return {"saved_at": _now().isoformat(), "data": data}


def _unwrap(entry: Any, max_age: timedelta) -> dict[str, Any] | None:
    """Return the stored data if the entry is well-formed and fresh."""
    if not isinstance(entry, dict) or not isinstance(entry.get("data"), dict):
        return None
    try:
        saved_at = datetime.fromisoformat(entry["saved_at"])
    except (KeyError, TypeError, ValueError):
        return None
    if saved_at.tzinfo is None:
        saved_at = saved_at.replace(tzinfo=timezone.utc)
    if _now() - saved_at > max_age:
        return None
    return entry["data"]


class AutoSaveStore(ABC):
    """Durable key-value sink for draft snapshots."""

    @abstractmethod
    def save(self, key: str, data: dict[str, Any]) -> None:
        """Persist ``data`` under ``key``, replacing any previous draft."""
        pass

    @abstractmethod
    def load(self, key: str, max_age: timedelta = DEFAULT_MAX_AGE) -> dict[str, Any] | None:
        """Return the fresh draft under ``key``, deleting it if stale."""
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove the draft under ``key``."""
        pass


class MemoryAutoSaveStore(AutoSaveStore):
    """In-process store, mostly for tests and short-lived hosts."""

    def __init__(self) -> None:
        self.entries: dict[str, dict[str, Any]] = {}

    def save(self, key: str, data: dict[str, Any]) -> None:
        self.entries[key] = _wrap(json.loads(json.dumps(data, default=str)))

    def load(self, key: str, max_age: timedelta = DEFAULT_MAX_AGE) -> dict[str, Any] | None:
        entry = self.entries.get(key)
        if entry is None:
            return None
        data = _unwrap(entry, max_age)
        if data is None:
            logger.info(f"Discarding stale or unreadable draft '{key}'")
            self.entries.pop(key, None)
        return data

    def delete(self, key: str) -> bool:
        return self.entries.pop(key, None) is not None


class FileAutoSaveStore(AutoSaveStore):
    """Store writing one JSON file per key under ``directory``."""

    def __init__(self, directory: Path | str):
        self.directory = Path(directory).expanduser()
        self.directory.mkdir(parents=True, exist_ok=True)

    def path_for(self, key: str) -> Path:
        return self.directory / f"{_UNSAFE_KEY_CHARS.sub('_', key)}.json"

    def save(self, key: str, data: dict[str, Any]) -> None:
        path = self.path_for(key)
        tmp_path = path.with_suffix(".json.tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(_wrap(data), f, indent=2, default=str)
        tmp_path.replace(path)

    def load(self, key: str, max_age: timedelta = DEFAULT_MAX_AGE) -> dict[str, Any] | None:
        path = self.path_for(key)
        if not path.exists():
            return None
        try:
            with open(path, encoding="utf-8") as f:
                entry = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Could not read draft '{key}': {e}")
            entry = None
        data = _unwrap(entry, max_age)
        if data is None:
            logger.info(f"Discarding stale or unreadable draft '{key}'")
            path.unlink(missing_ok=True)
        return data

    def delete(self, key: str) -> bool:
        path = self.path_for(key)
        if not path.exists():
            return False
        path.unlink()
        return True
