"""Read-only form snapshot for formgate."""

import re
from collections.abc import Iterator, Mapping
from copy import deepcopy
from typing import Any

_PATH_TOKEN = re.compile(r"([^.\[\]]+)|\[(\d+)\]")


def split_path(path: str) -> list[str | int]:
    """Split a dot/bracket property path into keys and list indices.

    Args:
        path: Property path such as ``impact.payroll`` or ``items[0].name``

    Returns:
        List of string keys and integer indices
    """
    parts: list[str | int] = []
    for key, index in _PATH_TOKEN.findall(path):
        parts.append(int(index) if index else key)
    return parts


def resolve_path(data: Any, path: str) -> Any:
    """Resolve a property path, raising KeyError/IndexError/TypeError if absent."""
    current = data
    for part in split_path(path):
        if isinstance(part, int):
            current = current[part]
        elif isinstance(current, Mapping):
            current = current[part]
        else:
            raise TypeError(f"Cannot resolve '{part}' on {type(current).__name__}")
    return current


def assign_path(data: dict[str, Any], path: str, value: Any) -> None:
    """Set a value at a dotted path, creating intermediate dictionaries.

    A top-level key that already contains dots is assigned directly.
    """
    if path in data or "." not in path:
        data[path] = value
        return
    parts = path.split(".")
    target = data
    for part in parts[:-1]:
        nested = target.get(part)
        if not isinstance(nested, dict):
            nested = {}
            target[part] = nested
        target = nested
    target[parts[-1]] = value


class FormSnapshot(Mapping[str, Any]):
    """
    Immutable view of the current value of every form field.

    The wrapped data is deep-copied on construction and on export, so neither
    validators nor presentation code can mutate the session's canonical data
    through a snapshot.
    """

    def __init__(self, data: Mapping[str, Any] | None = None):
        self._data: dict[str, Any] = deepcopy(dict(data or {}))

    def get_property(self, path: str) -> Any:
        """
        Get a value using dot/bracket notation.

        Args:
            path: Field name or nested path (e.g. "impact_assessment.payroll")

        Returns:
            The value, or None if not found
        """
        if path in self._data:
            return self._data[path]
        try:
            return resolve_path(self._data, path)
        except (KeyError, IndexError, TypeError):
            return None

    def get(self, key: str, default: Any = None) -> Any:
        value = self.get_property(key)
        return default if value is None else value

    def has_property(self, path: str) -> bool:
        """Check if a field or nested path exists."""
        if path in self._data:
            return True
        try:
            resolve_path(self._data, path)
            return True
        except (KeyError, IndexError, TypeError):
            return False

    def subset(self, fields: set[str] | list[str]) -> dict[str, Any]:
        """Return the values of ``fields`` keyed by field name."""
        return {name: self.get_property(name) for name in sorted(fields)}

    def with_overrides(self, overrides: Mapping[str, Any]) -> "FormSnapshot":
        """Return a new snapshot with per-call overrides applied."""
        data = deepcopy(self._data)
        for path, value in overrides.items():
            assign_path(data, path, deepcopy(value))
        return FormSnapshot(data)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return deepcopy(self._data)

    def __getitem__(self, key: str) -> Any:
        if not self.has_property(key):
            raise KeyError(key)
        return self.get_property(key)

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.has_property(key)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, FormSnapshot):
            return self._data == other._data
        if isinstance(other, Mapping):
            return self._data == dict(other)
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"FormSnapshot({self._data!r})"
