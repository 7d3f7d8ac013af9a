"""Token name and value generation."""

from __future__ import annotations

import secrets
import time
from threading import Lock

from tokenguard.errors import RandomnessUnavailableError

DEFAULT_STRENGTH = 16


class _MonotonicStamp:
    """Process-wide microsecond stamp that never repeats."""

    def __init__(self) -> None:
        self._last = 0
        self._lock = Lock()

    def next(self) -> int:
        with self._lock:
            stamp = max(time.time_ns() // 1000, self._last + 1)
            self._last = stamp
            return stamp


_STAMP = _MonotonicStamp()


class TokenGenerator:
    """Produces unique token names and CSPRNG-backed token values."""

    def __init__(self, strength: int = DEFAULT_STRENGTH) -> None:
        if strength < 1:
            raise ValueError("strength must be at least one byte")
        self._strength = strength

    @property
    def strength(self) -> int:
        return self._strength

    def new_name(self, prefix: str) -> str:
        """Return ``prefix`` followed by a hex stamp unique within this process."""
        return f"{prefix}{_STAMP.next():x}"

    def new_value(self) -> str:
        """Return ``strength`` random bytes, hex encoded."""
        try:
            return secrets.token_hex(self._strength)
        except (NotImplementedError, OSError) as exc:
            raise RandomnessUnavailableError("secure random source unavailable") from exc


__all__ = ["DEFAULT_STRENGTH", "TokenGenerator"]
