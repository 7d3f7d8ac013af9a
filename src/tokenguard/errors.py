"""Domain-specific exceptions raised by the token guard."""

from __future__ import annotations


class TokenGuardError(Exception):
    """Base class for token guard failures."""


class RandomnessUnavailableError(TokenGuardError):
    """Raised when the operating system CSPRNG cannot produce token bytes."""


__all__ = ["TokenGuardError", "RandomnessUnavailableError"]
