"""CSRF protection via the double-submit cookie pattern.

The token lives in a cookie readable by client-side script, which must
echo it in the ``x-csrf-token`` header on state-changing requests. A
third-party page cannot read the cookie, so it cannot forge the header.
"""

from __future__ import annotations

import re
import secrets
from dataclasses import dataclass

from fastapi.responses import JSONResponse
from starlette.requests import Request
from starlette.responses import Response

from invitegen.errors import CSRFValidationError

CSRF_COOKIE_NAME = "csrf-token"
CSRF_HEADER_NAME = "x-csrf-token"
TOKEN_BYTES = 32
COOKIE_MAX_AGE_SECONDS = 60 * 60 * 24

SAFE_METHODS: frozenset[str] = frozenset({"GET", "HEAD", "OPTIONS"})

_TOKEN_RE = re.compile(rf"^[0-9a-f]{{{TOKEN_BYTES * 2}}}$")


@dataclass(frozen=True)
class CSRFValidation:
    valid: bool
    error: str | None = None


def generate_csrf_token() -> str:
    """64 hex chars from a CSPRNG."""
    return secrets.token_hex(TOKEN_BYTES)


def is_well_formed(token: str | None) -> bool:
    return token is not None and _TOKEN_RE.match(token) is not None


def tokens_match(cookie_token: str, header_token: str) -> bool:
    """Constant-time comparison.

    Lengths are compared first; token length is not secret.
    """
    if len(cookie_token) != len(header_token):
        return False
    return secrets.compare_digest(
        cookie_token.encode("utf-8"), header_token.encode("utf-8")
    )


def validate_csrf_token(request: Request) -> CSRFValidation:
    """Check the double-submit pair on a request.

    Safe methods always pass. For unsafe methods the cookie and the header
    must both be present and equal.
    """
    if request.method.upper() in SAFE_METHODS:
        return CSRFValidation(valid=True)

    cookie_token = request.cookies.get(CSRF_COOKIE_NAME)
    if not cookie_token:
        return CSRFValidation(valid=False, error="Missing CSRF cookie")

    header_token = request.headers.get(CSRF_HEADER_NAME)
    if not header_token:
        return CSRFValidation(valid=False, error="Missing CSRF header")

    if not tokens_match(cookie_token, header_token):
        return CSRFValidation(valid=False, error="CSRF token mismatch")

    return CSRFValidation(valid=True)


def enforce_csrf(request: Request) -> None:
    """Raise :class:`CSRFValidationError` when the pair does not check out."""
    validation = validate_csrf_token(request)
    if not validation.valid:
        raise CSRFValidationError(validation.error or "CSRF validation failed")


def get_or_create_csrf_token(request: Request) -> tuple[str, bool]:
    """Return (token, is_new) for this request.

    A well-formed cookie token is reused. Otherwise a token is minted once
    and kept on ``request.state``, so the middleware and the token endpoint
    hand out the same value within one request.
    """
    minted: str | None = getattr(request.state, "csrf_token", None)
    if minted is not None:
        return minted, True

    existing = request.cookies.get(CSRF_COOKIE_NAME)
    if is_well_formed(existing):
        return existing, False  # type: ignore[return-value]

    token = generate_csrf_token()
    request.state.csrf_token = token
    return token, True


def set_csrf_cookie(response: Response, token: str, *, secure: bool) -> None:
    # Not httponly: client script must read it to echo the header.
    response.set_cookie(
        CSRF_COOKIE_NAME,
        token,
        max_age=COOKIE_MAX_AGE_SECONDS,
        path="/",
        secure=secure,
        httponly=False,
        samesite="strict",
    )


def csrf_error_response(message: str) -> JSONResponse:
    return JSONResponse(
        status_code=403,
        content={
            "success": False,
            "error": {"code": CSRFValidationError.code, "message": message},
        },
    )
