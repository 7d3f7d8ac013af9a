"""Framework-neutral view of an inbound request."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class FormSubmission:
    """HTTP method plus the decoded form fields of a submitted request."""

    method: str
    form: Mapping[str, str] = field(default_factory=dict)


__all__ = ["FormSubmission"]
