"""CSRF token endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Request

from invitegen.api.schemas import CSRFTokenResponse
from invitegen.security.csrf import get_or_create_csrf_token

router = APIRouter(tags=["auth"])


@router.get("/auth/csrf")
async def get_csrf_token(request: Request) -> CSRFTokenResponse:
    """Return the caller's CSRF token.

    A token minted for this request is shared with the admission
    middleware, which sets the matching cookie on the way out.
    """
    token, _is_new = get_or_create_csrf_token(request)
    return CSRFTokenResponse(csrf_token=token)
