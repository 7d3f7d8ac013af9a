"""FastAPI wiring for session-backed CSRF guards."""

from __future__ import annotations

import logging
from collections.abc import Collection

from fastapi import HTTPException, Request

from tokenguard.application.token_guard import TokenGuard
from tokenguard.config.guard import TokenGuardSettings, load_token_guard_settings
from tokenguard.domain.submission import FormSubmission

logger = logging.getLogger("tokenguard.http")

_FORM_CONTENT_TYPES: tuple[str, ...] = (
    "application/x-www-form-urlencoded",
    "multipart/form-data",
)


async def read_form_submission(request: Request, *, safe_methods: Collection[str]) -> FormSubmission:
    """Return the method and string form fields of ``request``.

    The body is only parsed for methods that will be validated.
    """
    method = request.method.upper()
    if method in safe_methods:
        return FormSubmission(method=method)

    content_type = request.headers.get("content-type", "")
    if not content_type.startswith(_FORM_CONTENT_TYPES):
        return FormSubmission(method=method)

    form = await request.form()
    fields = {key: value for key, value in form.items() if isinstance(value, str)}
    return FormSubmission(method=method, form=fields)


class TokenGuardDependency:
    """``Depends`` target that validates the request and yields its guard.

    The guard is built over ``request.session``, so a session middleware
    must be installed. With ``enforce`` set, a failed check becomes a 403;
    otherwise the outcome is left on ``request.state.csrf_valid`` for the
    route to act on.
    """

    def __init__(self, settings: TokenGuardSettings | None = None, *, enforce: bool = True) -> None:
        self._settings = settings
        self._enforce = enforce

    @property
    def settings(self) -> TokenGuardSettings:
        if self._settings is None:
            self._settings = load_token_guard_settings()
        return self._settings

    async def __call__(self, request: Request) -> TokenGuard:
        settings = self.settings
        guard = TokenGuard.from_settings(settings, session=request.session)
        submission = await read_form_submission(request, safe_methods=settings.safe_methods)
        valid = guard.validate(submission)
        request.state.csrf_valid = valid
        if not valid and self._enforce:
            logger.info(
                "csrf check failed",
                extra={"data": {"method": submission.method, "path": request.url.path}},
            )
            raise HTTPException(status_code=403, detail="invalid csrf token")
        return guard


__all__ = ["TokenGuardDependency", "read_form_submission"]
