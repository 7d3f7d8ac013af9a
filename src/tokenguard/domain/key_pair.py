"""Issued token identity and its labeled form fields."""

from __future__ import annotations

from dataclasses import dataclass


def name_field(prefix: str) -> str:
    return f"{prefix}_name"


def value_field(prefix: str) -> str:
    return f"{prefix}_value"


@dataclass(frozen=True, slots=True)
class KeyPair:
    """A single outstanding token as embedded into an outgoing form."""

    prefix: str
    name: str
    value: str

    @property
    def name_field(self) -> str:
        return name_field(self.prefix)

    @property
    def value_field(self) -> str:
        return value_field(self.prefix)

    def as_fields(self) -> dict[str, str]:
        """Return the pair keyed by the form field names the guard reads back."""
        return {
            self.name_field: self.name,
            self.value_field: self.value,
        }

    def __repr__(self) -> str:
        # token values never appear in reprs
        return f"KeyPair(prefix={self.prefix!r}, name={self.name!r}, value='***')"


__all__ = ["KeyPair", "name_field", "value_field"]
