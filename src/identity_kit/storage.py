"""Identity state storage for Identity Kit.

A small key-value contract for persisting credential state, such as the
refresh token, across process restarts.
"""

from __future__ import annotations

import threading
from typing import Protocol, runtime_checkable


@runtime_checkable
class IdentityStorage(Protocol):
    """Key-value store for identity state. Setting ``None`` removes the key."""

    def get(self, key: str) -> str | None:
        """Get the value stored for ``key``."""
        ...

    def set(self, key: str, value: str | None) -> None:
        """Store ``value`` for ``key``, or remove it when ``value`` is None."""
        ...


class InMemoryIdentityStorage:
    """Thread-safe, process-local identity storage."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._values.get(key)

    def set(self, key: str, value: str | None) -> None:
        with self._lock:
            if value is None:
                self._values.pop(key, None)
            else:
                self._values[key] = value

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._values

    def __len__(self) -> int:
        with self._lock:
            return len(self._values)
