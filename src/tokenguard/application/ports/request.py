"""Port describing the request data the guard reads."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Protocol


class SubmittedRequestPort(Protocol):
    """Inbound request exposing its HTTP method and decoded form body."""

    @property
    def method(self) -> str:
        ...

    @property
    def form(self) -> Mapping[str, str]:
        ...


__all__ = ["SubmittedRequestPort"]
