"""Ports describing where outstanding tokens live."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Protocol, runtime_checkable


@runtime_checkable
class TokenStoragePort(Protocol):
    """Key/value store holding outstanding token names and values."""

    def get(self, name: str) -> str | None:
        """Return the value stored under ``name``, if any."""

    def set(self, name: str, value: str) -> None:
        """Insert or overwrite ``name``."""

    def pop(self, name: str) -> str | None:
        """Remove ``name`` and return its value in a single step."""

    def __len__(self) -> int:
        """Return the number of outstanding tokens."""


@runtime_checkable
class OrderedTokenStoragePort(TokenStoragePort, Protocol):
    """Storage that can also enumerate names oldest-first.

    Ordered traversal is what the storage limiter and the persistent-mode
    "last issued token" lookup rely on; stores without it still work for
    issuing and validating tokens.
    """

    def __iter__(self) -> Iterator[str]:
        """Yield token names in insertion order."""


__all__ = ["TokenStoragePort", "OrderedTokenStoragePort"]
