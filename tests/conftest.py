"""Shared pytest fixtures."""

from collections.abc import Callable

import pytest
from starlette.requests import Request

from invitegen.config import Environment, Settings
from invitegen.security.rate_limiter import FixedWindowRateLimiter

BASE_TIME_MS = 1_700_000_000_000


class FakeClock:
    """Manually advanced millisecond clock."""

    def __init__(self, start: int = BASE_TIME_MS) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


RequestFactory = Callable[..., Request]


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def limiter(clock: FakeClock) -> FixedWindowRateLimiter:
    return FixedWindowRateLimiter(clock=clock)


@pytest.fixture()
def test_settings() -> Settings:
    return Settings(environment=Environment.TESTING, _env_file=None)  # type: ignore[call-arg]


@pytest.fixture()
def make_request() -> RequestFactory:
    """Build a bare Starlette Request from headers, method and cookies."""

    def _make(
        *,
        method: str = "GET",
        path: str = "/api/test",
        headers: dict[str, str] | None = None,
        cookies: dict[str, str] | None = None,
    ) -> Request:
        raw_headers = [
            (name.lower().encode("latin-1"), value.encode("latin-1"))
            for name, value in (headers or {}).items()
        ]
        if cookies:
            cookie_header = "; ".join(f"{k}={v}" for k, v in cookies.items())
            raw_headers.append((b"cookie", cookie_header.encode("latin-1")))
        return Request(
            scope={
                "type": "http",
                "method": method,
                "path": path,
                "query_string": b"",
                "headers": raw_headers,
            }
        )

    return _make
