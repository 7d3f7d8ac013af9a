from __future__ import annotations

import pytest

_GUARD_ENV = ("CSRF_PREFIX", "CSRF_STORAGE_LIMIT", "CSRF_STRENGTH", "CSRF_SAFE_METHODS")


@pytest.fixture(autouse=True)
def clear_guard_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in _GUARD_ENV:
        monkeypatch.delenv(key, raising=False)
