"""Token guard configuration."""

from __future__ import annotations

import json
from typing import Annotated, Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from tokenguard.application.token_generator import DEFAULT_STRENGTH

DEFAULT_PREFIX = "csrf"
DEFAULT_STORAGE_LIMIT = -1
DEFAULT_SAFE_METHODS: tuple[str, ...] = ("GET", "HEAD", "OPTIONS", "TRACE")


class TokenGuardSettings(BaseSettings):
    """Namespace, capacity and strength of issued CSRF tokens."""

    model_config = SettingsConfigDict(
        env_prefix="",
        extra="ignore",
        case_sensitive=False,
        frozen=True,
        env_file=".env",
        env_file_encoding="utf-8",
        populate_by_name=True,
    )

    prefix: str = Field(default=DEFAULT_PREFIX, alias="CSRF_PREFIX", min_length=1)
    storage_limit: int = Field(
        default=DEFAULT_STORAGE_LIMIT,
        alias="CSRF_STORAGE_LIMIT",
        description=(
            "Negative keeps tokens reusable; zero or more makes tokens single-use; "
            "a positive value also bounds storage."
        ),
    )
    strength: int = Field(default=DEFAULT_STRENGTH, alias="CSRF_STRENGTH", ge=1)
    safe_methods: Annotated[tuple[str, ...], NoDecode] = Field(
        default=DEFAULT_SAFE_METHODS,
        alias="CSRF_SAFE_METHODS",
        description="HTTP methods that are never validated, comma separated or a JSON list.",
    )

    @field_validator("prefix")
    @classmethod
    def _trim_prefix(cls, value: str) -> str:
        trimmed = value.rstrip("_")
        if not trimmed:
            raise ValueError("prefix must contain characters other than '_'")
        return trimmed

    @field_validator("safe_methods", mode="before")
    @classmethod
    def _split_methods(cls, value: Any) -> Any:
        if not isinstance(value, str):
            return value
        if value.lstrip().startswith("["):
            return json.loads(value)
        return value.split(",")

    @field_validator("safe_methods")
    @classmethod
    def _normalize_methods(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(method.strip().upper() for method in value if method.strip())


def load_token_guard_settings() -> TokenGuardSettings:
    return TokenGuardSettings()


__all__ = [
    "DEFAULT_PREFIX",
    "DEFAULT_SAFE_METHODS",
    "DEFAULT_STORAGE_LIMIT",
    "TokenGuardSettings",
    "load_token_guard_settings",
]
