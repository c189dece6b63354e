"""Request/response schemas for the API layer."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ErrorDetail(BaseModel):
    code: str = Field(description="Machine-readable error code, e.g. ``RATE_LIMITED``.")
    message: str = Field(description="Human-readable explanation.")


class ErrorResponse(BaseModel):
    """Body shared by every rejection the admission layer produces.

    Example::

        {"success": false, "error": {"code": "RATE_LIMITED", "message": "..."}}
    """

    success: bool = False
    error: ErrorDetail


class CSRFTokenResponse(BaseModel):
    """Response for ``GET /api/auth/csrf``.

    The same token is set in the ``csrf-token`` cookie when it was minted
    for this request. Clients echo it in the ``X-CSRF-Token`` header.
    """

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    csrf_token: str = Field(alias="csrfToken")


class SiteAccessRequest(BaseModel):
    """Request body for ``POST /api/site-access``."""

    password: str = Field(..., min_length=1, max_length=256)


class SiteAccessResponse(BaseModel):
    success: bool = True


class HealthResponse(BaseModel):
    status: str
    rate_limit_keys: int = Field(
        description="Rate-limit records currently held by this instance."
    )
