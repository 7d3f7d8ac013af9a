"""Token storage adapters over caller-owned mappings."""

from __future__ import annotations

from collections.abc import Iterator, MutableMapping
from typing import Any

from tokenguard.application.ports.token_storage import OrderedTokenStoragePort


class MappingTokenStorage(OrderedTokenStoragePort):
    """Adapts an externally supplied mutable mapping.

    The mapping stays owned by the caller; ordering follows whatever the
    mapping itself preserves (plain dicts keep insertion order).
    """

    def __init__(self, mapping: MutableMapping[str, str]) -> None:
        self._mapping = mapping

    def get(self, name: str) -> str | None:
        return self._mapping.get(name)

    def set(self, name: str, value: str) -> None:
        self._mapping[name] = value

    def pop(self, name: str) -> str | None:
        return self._mapping.pop(name, None)

    def __len__(self) -> int:
        return len(self._mapping)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._mapping))


class SessionTokenStorage(OrderedTokenStoragePort):
    """Stores tokens in a named region of a request session.

    The region is looked up again on every call, so a session that was
    cleared or replaced between calls gets a fresh, empty region instead of
    writes landing in a detached dict.
    """

    def __init__(self, session: MutableMapping[str, Any], key: str) -> None:
        self._session = session
        self._key = key

    @property
    def key(self) -> str:
        return self._key

    def _region(self) -> dict[str, str]:
        region = self._session.get(self._key)
        if not isinstance(region, dict):
            region = {}
            self._session[self._key] = region
        return region

    def get(self, name: str) -> str | None:
        return self._region().get(name)

    def set(self, name: str, value: str) -> None:
        self._region()[name] = value

    def pop(self, name: str) -> str | None:
        return self._region().pop(name, None)

    def __len__(self) -> int:
        return len(self._region())

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._region()))


__all__ = ["MappingTokenStorage", "SessionTokenStorage"]
