"""Optional site-wide password gate.

The access cookie stores a SHA-256 digest of the password, never the
password itself.
"""

from __future__ import annotations

import hashlib
import secrets
from urllib.parse import quote

from fastapi.responses import RedirectResponse
from starlette.requests import Request
from starlette.responses import Response

SITE_ACCESS_COOKIE_NAME = "site_access_granted"
SITE_ACCESS_PATH = "/site-access"
COOKIE_MAX_AGE_SECONDS = 60 * 60 * 24 * 30


def hash_site_password(password: str) -> str:
    """SHA-256 hex digest stored in the access cookie."""
    return hashlib.sha256(password.encode()).hexdigest()


def password_matches(submitted: str, password: str) -> bool:
    return secrets.compare_digest(submitted.encode(), password.encode())


def has_site_access(request: Request, password: str) -> bool:
    cookie = request.cookies.get(SITE_ACCESS_COOKIE_NAME)
    if not cookie:
        return False
    return secrets.compare_digest(
        cookie.encode(), hash_site_password(password).encode()
    )


def grant_site_access(response: Response, password: str, *, secure: bool) -> None:
    response.set_cookie(
        SITE_ACCESS_COOKIE_NAME,
        hash_site_password(password),
        max_age=COOKIE_MAX_AGE_SECONDS,
        path="/",
        secure=secure,
        httponly=True,
        samesite="strict",
    )


def site_gate_redirect(request: Request) -> RedirectResponse:
    """Send the caller to the unlock page, remembering where they were going."""
    target = request.url.path
    if request.url.query:
        target = f"{target}?{request.url.query}"
    return RedirectResponse(
        url=f"{SITE_ACCESS_PATH}?next={quote(target, safe='')}",
        status_code=307,
    )
