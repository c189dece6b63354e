"""Tests for GET /api/auth/csrf."""

from http.cookies import SimpleCookie

from httpx import ASGITransport, AsyncClient

from invitegen.security.csrf import CSRF_COOKIE_NAME
from invitegen.security.policies import RATE_LIMIT_POLICIES

TOKEN = "ab" * 32


def _cookie_value(response, name: str) -> str | None:
    jar: SimpleCookie = SimpleCookie()
    for header in response.headers.get_list("set-cookie"):
        jar.load(header)
    return jar[name].value if name in jar else None


class TestCSRFTokenEndpoint:
    async def test_mints_token_matching_cookie(self, client) -> None:
        """Body token and cookie token are the same value."""
        response = await client.get("/api/auth/csrf")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert len(body["csrfToken"]) == 64
        assert _cookie_value(response, CSRF_COOKIE_NAME) == body["csrfToken"]

    async def test_returns_existing_cookie_token(self, client) -> None:
        response = await client.get(
            "/api/auth/csrf", headers={"Cookie": f"{CSRF_COOKIE_NAME}={TOKEN}"}
        )

        assert response.json()["csrfToken"] == TOKEN
        assert _cookie_value(response, CSRF_COOKIE_NAME) is None

    async def test_malformed_cookie_is_rotated(self, client) -> None:
        response = await client.get(
            "/api/auth/csrf", headers={"Cookie": f"{CSRF_COOKIE_NAME}=tampered"}
        )

        token = response.json()["csrfToken"]
        assert token != "tampered"
        assert _cookie_value(response, CSRF_COOKIE_NAME) == token

    async def test_token_round_trip_unlocks_mutation(self, client) -> None:
        token = (await client.get("/api/auth/csrf")).json()["csrfToken"]

        response = await client.post(
            "/api/invitations",
            headers={
                "X-CSRF-Token": token,
                "Cookie": f"{CSRF_COOKIE_NAME}={token}",
            },
        )
        assert response.status_code == 200

    async def test_token_fetches_do_not_spend_login_budget(self, build_app) -> None:
        app = build_app(policies=RATE_LIMIT_POLICIES)
        headers = {"X-Forwarded-For": "9.9.9.9"}
        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://test"
        ) as client:
            for _ in range(6):
                response = await client.get("/api/auth/csrf", headers=headers)
                assert response.status_code == 200
            assert response.headers["X-RateLimit-Limit"] == "100"

            response = await client.post("/api/auth/login", headers=headers)
        assert response.status_code == 200
        assert response.headers["X-RateLimit-Limit"] == "5"
        assert response.headers["X-RateLimit-Remaining"] == "4"
