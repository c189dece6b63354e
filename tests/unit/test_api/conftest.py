"""Fixtures for API-level tests.

Each test builds its own app around a limiter driven by the fake clock,
with a handful of stand-in business routes behind the admission layer.
"""

from collections.abc import AsyncGenerator, Callable
from typing import Any

import pytest
from fastapi import FastAPI, Response
from httpx import ASGITransport, AsyncClient

from invitegen.api.app import create_app
from invitegen.config import Settings
from invitegen.security.policies import RATE_LIMIT_POLICIES
from invitegen.security.rate_limiter import FixedWindowRateLimiter, RateLimitConfig

AppFactory = Callable[..., FastAPI]

SMALL_POLICIES: dict[str, RateLimitConfig] = {
    **RATE_LIMIT_POLICIES,
    "api": RateLimitConfig(limit=3, window_ms=60_000, message="Slow down."),
}


def _add_business_routes(app: FastAPI) -> None:
    @app.get("/api/invitations")
    async def _list_invitations(response: Response) -> dict[str, Any]:
        response.headers["X-Powered-By"] = "Next.js"
        return {"items": []}

    @app.post("/api/invitations")
    async def _create_invitation() -> dict[str, bool]:
        return {"created": True}

    @app.post("/api/invitations/{invitation_id}")
    async def _update_invitation(invitation_id: str) -> dict[str, str]:
        return {"invitation_id": invitation_id}

    @app.post("/api/auth/login")
    async def _login() -> dict[str, bool]:
        return {"success": True}

    @app.post("/api/rsvp/{invitation_id}")
    async def _rsvp(invitation_id: str) -> dict[str, str]:
        return {"invitation_id": invitation_id}

    @app.post("/api/webhooks/stripe")
    async def _stripe_webhook() -> dict[str, bool]:
        return {"received": True}

    @app.get("/dashboard")
    async def _dashboard() -> dict[str, str]:
        return {"page": "dashboard"}

    @app.get("/_next/static/chunk.js")
    async def _chunk() -> dict[str, str]:
        return {"asset": "chunk"}

    @app.get("/images/logo.png")
    async def _logo() -> dict[str, str]:
        return {"asset": "logo"}


@pytest.fixture()
def build_app(
    limiter: FixedWindowRateLimiter, test_settings: Settings
) -> AppFactory:
    """Factory: ``build_app(**settings_overrides, policies=...)``."""

    def _build(
        policies: dict[str, RateLimitConfig] | None = SMALL_POLICIES,
        **overrides: Any,
    ) -> FastAPI:
        app_settings = test_settings.model_copy(update=overrides)
        app = create_app(app_settings, limiter=limiter, policies=policies)
        _add_business_routes(app)
        return app

    return _build


@pytest.fixture()
async def client(build_app: AppFactory) -> AsyncGenerator[AsyncClient]:
    async with AsyncClient(
        transport=ASGITransport(app=build_app()),
        base_url="http://test",
    ) as ac:
        yield ac
