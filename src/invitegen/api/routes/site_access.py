"""Site-wide password gate unlock endpoint."""

from __future__ import annotations

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, Response

from invitegen.api.deps import get_app_settings
from invitegen.api.schemas import (
    ErrorResponse,
    SiteAccessRequest,
    SiteAccessResponse,
)
from invitegen.config import Settings
from invitegen.errors import InvalidSitePasswordError
from invitegen.security.site_access import grant_site_access, password_matches

logger = structlog.get_logger()

router = APIRouter(tags=["site-access"])

SettingsDep = Annotated[Settings, Depends(get_app_settings)]


@router.post("/site-access", responses={401: {"model": ErrorResponse}})
async def unlock_site(
    body: SiteAccessRequest,
    response: Response,
    settings: SettingsDep,
) -> SiteAccessResponse:
    """Exchange the site password for an access cookie.

    Always succeeds when no password is configured.

    Raises:
        InvalidSitePasswordError: password does not match (rendered as 401).
    """
    if settings.site_password is None or not settings.site_gate_enabled:
        return SiteAccessResponse()

    password = settings.site_password.get_secret_value()
    if not password_matches(body.password, password):
        logger.info("site_access_denied")
        raise InvalidSitePasswordError("Invalid password")

    grant_site_access(response, password, secure=settings.is_prod)
    logger.info("site_access_granted")
    return SiteAccessResponse()
