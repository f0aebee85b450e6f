"""Bounded memo of validation outcomes.

Keys embed every input that can change an outcome, so the cache is never
invalidated on edits; it is only cleared when its session resets.
"""

import json
import logging
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_MAX_ENTRIES = 100


def _normalize(value: Any) -> Any:
    # Sets have no stable iteration order and JSON needs string keys
    if isinstance(value, dict):
        return {
            key if isinstance(key, str) else f"{type(key).__name__}:{key!r}": _normalize(item)
            for key, item in value.items()
        }
    if isinstance(value, (set, frozenset)):
        return sorted((_normalize(item) for item in value), key=repr)
    if isinstance(value, (list, tuple)):
        return [_normalize(item) for item in value]
    return value


def _serialize(value: Any) -> str:
    try:
        return json.dumps(_normalize(value), sort_keys=True, default=str, separators=(",", ":"))
    except (TypeError, ValueError):
        logger.debug("Falling back to repr for cache key of %s", type(value).__name__)
        return repr(value)


def make_cache_key(scope: str, value: Any, related: dict[str, Any] | None = None) -> str:
    """Build a deterministic cache key.

    Args:
        scope: Validation scope, usually the field name
        value: Value being validated
        related: Values of every other field the scope's rules read

    Returns:
        Stable string key
    """
    return f"{scope}:{_serialize(value)}:{_serialize(related or {})}"


class ValidationCache:
    """
    Insertion-ordered cache of validation outcomes.

    When a write pushes the entry count above ``max_entries``, the oldest
    half of the entries is dropped in one pass.
    """

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES):
        if max_entries < 2:
            raise ValueError("max_entries must be at least 2")
        self.max_entries = max_entries
        self._entries: dict[str, Any] = {}
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Any | None:
        """Return the cached outcome for ``key`` or None."""
        if key in self._entries:
            self.hits += 1
            return self._entries[key]
        self.misses += 1
        return None

    def set(self, key: str, outcome: Any) -> None:
        """Store an outcome, trimming the oldest half when over capacity."""
        self._entries[key] = outcome
        if len(self._entries) > self.max_entries:
            self._trim()

    def clear(self) -> None:
        """Drop every entry."""
        self._entries.clear()
        self.hits = 0
        self.misses = 0

    @property
    def size(self) -> int:
        return len(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def _trim(self) -> None:
        remove = len(self._entries) - self.max_entries // 2
        for key in list(self._entries)[:remove]:
            del self._entries[key]
        logger.debug(f"Validation cache trimmed by {remove} entries")

    def stats(self) -> dict[str, int]:
        """Hit/miss counters and current size."""
        return {"size": self.size, "hits": self.hits, "misses": self.misses}
