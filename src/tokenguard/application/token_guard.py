"""CSRF token guard: issues, validates and expires per-session form tokens."""

from __future__ import annotations

import hmac
import logging
from collections.abc import Iterable, MutableMapping
from typing import TYPE_CHECKING, Any

from tokenguard.application.ports.request import SubmittedRequestPort
from tokenguard.application.ports.token_storage import OrderedTokenStoragePort, TokenStoragePort
from tokenguard.application.token_generator import DEFAULT_STRENGTH, TokenGenerator
from tokenguard.domain.key_pair import KeyPair, name_field, value_field
from tokenguard.infrastructure.state.mapping_storage import SessionTokenStorage
from tokenguard.infrastructure.state.memory_storage import InMemoryTokenStorage

if TYPE_CHECKING:
    from tokenguard.config.guard import TokenGuardSettings

logger = logging.getLogger("tokenguard.guard")

SAFE_METHODS: frozenset[str] = frozenset({"GET", "HEAD", "OPTIONS", "TRACE"})


def _constant_time_equals(expected: str, presented: str) -> bool:
    return hmac.compare_digest(expected.encode("utf-8"), presented.encode("utf-8"))


class TokenGuard:
    """Guards state-changing requests with session-bound CSRF tokens.

    A guard lives for one request. Outstanding tokens live only in the
    storage it is handed (or the session region / private store it attaches
    to), so several guards over the same storage see the same tokens.

    A negative ``storage_limit`` selects persistent mode: tokens survive
    validation and are never evicted. Zero or more makes tokens single-use;
    a positive limit also caps the number kept in storage, oldest first.
    """

    def __init__(
        self,
        prefix: str = "csrf",
        storage: TokenStoragePort | None = None,
        storage_limit: int = -1,
        *,
        session: MutableMapping[str, Any] | None = None,
        strength: int = DEFAULT_STRENGTH,
        safe_methods: Iterable[str] = SAFE_METHODS,
        generator: TokenGenerator | None = None,
    ) -> None:
        trimmed = prefix.rstrip("_")
        if not trimmed:
            raise ValueError("prefix must contain characters other than '_'")
        self._prefix = trimmed
        self._storage = storage
        self._session = session
        self._storage_limit = int(storage_limit)
        self._generator = generator or TokenGenerator(strength)
        self._safe_methods = frozenset(method.upper() for method in safe_methods)
        self._key_pair: KeyPair | None = None
        self._unordered_warned = False
        self.ensure_storage()

    @classmethod
    def from_settings(
        cls,
        settings: TokenGuardSettings,
        *,
        storage: TokenStoragePort | None = None,
        session: MutableMapping[str, Any] | None = None,
    ) -> TokenGuard:
        return cls(
            settings.prefix,
            storage,
            settings.storage_limit,
            session=session,
            strength=settings.strength,
            safe_methods=settings.safe_methods,
        )

    @property
    def prefix(self) -> str:
        return self._prefix

    @property
    def strength(self) -> int:
        return self._generator.strength

    @property
    def storage_limit(self) -> int:
        return self._storage_limit

    @storage_limit.setter
    def storage_limit(self, value: int) -> None:
        self._storage_limit = int(value)

    @property
    def is_persistent(self) -> bool:
        return self._storage_limit < 0

    @property
    def current_key_pair(self) -> KeyPair | None:
        return self._key_pair

    @property
    def storage(self) -> TokenStoragePort:
        return self.ensure_storage()

    def ensure_storage(self) -> TokenStoragePort:
        """Attach the backing store, creating it on first use."""
        if self._storage is None:
            if self._session is not None:
                self._storage = SessionTokenStorage(self._session, self._prefix)
            else:
                self._storage = InMemoryTokenStorage()
        return self._storage

    def get_token(self) -> KeyPair:
        """Return the pair to embed in the next outgoing form."""
        if self._key_pair is not None:
            return self._key_pair
        if self.is_persistent:
            last = self._last_stored_pair()
            if last is not None:
                self._key_pair = last
                return last
        return self.generate_token()

    def generate_token(self) -> KeyPair:
        """Issue a fresh token, store it and make it the current pair.

        The storage limit is applied right away, so issuing past the limit
        pushes out the oldest outstanding tokens.
        """
        storage = self.ensure_storage()
        name = self._generator.new_name(self._prefix)
        value = self._generator.new_value()
        storage.set(name, value)
        pair = KeyPair(prefix=self._prefix, name=name, value=value)
        self._key_pair = pair
        logger.debug(
            "csrf token issued",
            extra={"data": {"prefix": self._prefix, "name": name, "outstanding": len(storage)}},
        )
        self.enforce_storage_limit()
        return pair

    def load_last_token(self) -> bool:
        """Reuse the most recently stored token as the current pair."""
        last = self._last_stored_pair()
        if last is None:
            return False
        self._key_pair = last
        return True

    def _last_stored_pair(self) -> KeyPair | None:
        storage = self.ensure_storage()
        if len(storage) < 1 or not isinstance(storage, OrderedTokenStoragePort):
            return None
        last_name: str | None = None
        for last_name in storage:
            continue
        if last_name is None:
            return None
        value = storage.get(last_name)
        if value is None:
            return None
        return KeyPair(prefix=self._prefix, name=last_name, value=value)

    def validate(self, request: SubmittedRequestPort) -> bool:
        """Check the token submitted with ``request``.

        Safe methods always pass. On failure a replacement token is issued
        so the caller can re-render the form. The storage limit is enforced
        on every call regardless of the outcome.
        """
        self.ensure_storage()
        result = True

        method = request.method.upper()
        reason = ""
        if method not in self._safe_methods:
            name = request.form.get(name_field(self._prefix))
            value = request.form.get(value_field(self._prefix))
            if not name or not value:
                reason = "missing"
                result = False
            elif not self.validate_token(name, value):
                reason = "mismatch"
                result = False
            if not result:
                logger.warning(
                    "csrf token rejected",
                    extra={"data": {"prefix": self._prefix, "method": method, "reason": reason}},
                )
                self.generate_token()

        self.enforce_storage_limit()
        return result

    def validate_token(self, name: str, value: str) -> bool:
        """Compare ``value`` with the token stored as ``name``.

        Single-use tokens are consumed whatever the outcome; persistent tokens
        are only dropped when the comparison fails.
        """
        storage = self.ensure_storage()
        if self.is_persistent:
            stored = storage.get(name)
            result = stored is not None and _constant_time_equals(stored, value)
            if not result:
                storage.pop(name)
        else:
            stored = storage.pop(name)
            result = stored is not None and _constant_time_equals(stored, value)

        if not (self.is_persistent and result):
            self._forget_key_pair(name)
        return result

    def enforce_storage_limit(self) -> int:
        """Evict the oldest tokens until storage fits ``storage_limit``.

        Returns the number of evicted tokens.
        """
        # zero keeps tokens single-use without bounding storage
        if self._storage_limit < 1:
            return 0

        storage = self.ensure_storage()
        if not isinstance(storage, OrderedTokenStoragePort):
            if not self._unordered_warned:
                self._unordered_warned = True
                logger.warning(
                    "csrf storage limit not enforced; storage cannot be iterated",
                    extra={
                        "data": {
                            "prefix": self._prefix,
                            "storage": type(storage).__name__,
                            "storage_limit": self._storage_limit,
                        }
                    },
                )
            return 0

        evicted = 0
        while len(storage) > self._storage_limit:
            oldest = next(iter(storage), None)
            if oldest is None:
                break
            storage.pop(oldest)
            self._forget_key_pair(oldest)
            evicted += 1

        if evicted:
            logger.debug(
                "csrf tokens evicted",
                extra={
                    "data": {
                        "prefix": self._prefix,
                        "evicted": evicted,
                        "storage_limit": self._storage_limit,
                    }
                },
            )
        return evicted

    def _forget_key_pair(self, name: str) -> None:
        if self._key_pair is not None and self._key_pair.name == name:
            self._key_pair = None


__all__ = ["SAFE_METHODS", "TokenGuard"]
