"""FastAPI dependency injection."""

from __future__ import annotations

from typing import cast

from fastapi import Request

from invitegen.config import Settings
from invitegen.security.rate_limiter import FixedWindowRateLimiter

__all__ = ["get_app_settings", "get_rate_limiter"]


async def get_app_settings(request: Request) -> Settings:
    """Settings the application was built with (see ``create_app``)."""
    return cast(Settings, request.app.state.settings)


async def get_rate_limiter(request: Request) -> FixedWindowRateLimiter:
    """Limiter shared by the admission middleware and the cleanup task."""
    return cast(FixedWindowRateLimiter, request.app.state.rate_limiter)
