"""
Key-value collaborator for stateful plugins.

Plugins keep their state behind a KeyValueStore of string keys and string
values. Each plugin owns its own store; the bundled implementation lives in
memory, and a persistent engine only has to implement the four methods.
"""

from abc import ABC, abstractmethod


class KeyValueStore(ABC):
    """Opaque get/set/delete storage used by plugins."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the value for ``key``, or None if unset."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Create or overwrite ``key``."""

    @abstractmethod
    def delete(self, key: str) -> str | None:
        """Remove ``key`` and return the value it held (None if unset)."""

    @abstractmethod
    def items(self, prefix: str = "") -> list[tuple[str, str]]:
        """All ``(key, value)`` pairs whose key starts with ``prefix``, sorted by key."""


class MemoryKeyValueStore(KeyValueStore):
    """Dict-backed store. Contents are lost when the process exits."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> str | None:
        return self._data.pop(key, None)

    def items(self, prefix: str = "") -> list[tuple[str, str]]:
        return sorted((k, v) for k, v in self._data.items() if k.startswith(prefix))
