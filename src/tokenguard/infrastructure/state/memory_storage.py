"""In-memory implementation of the token storage port."""

from __future__ import annotations

from collections.abc import Iterator
from threading import Lock

from tokenguard.application.ports.token_storage import OrderedTokenStoragePort


class InMemoryTokenStorage(OrderedTokenStoragePort):
    """Keeps tokens in insertion order for the lifetime of the process."""

    def __init__(self) -> None:
        self._tokens: dict[str, str] = {}
        self._lock = Lock()

    def get(self, name: str) -> str | None:
        with self._lock:
            return self._tokens.get(name)

    def set(self, name: str, value: str) -> None:
        with self._lock:
            self._tokens[name] = value

    def pop(self, name: str) -> str | None:
        with self._lock:
            return self._tokens.pop(name, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._tokens)

    def __iter__(self) -> Iterator[str]:
        with self._lock:
            snapshot = list(self._tokens)
        return iter(snapshot)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._tokens


__all__ = ["InMemoryTokenStorage"]
