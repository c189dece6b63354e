"""HTTP middleware: request logging and the admission gate."""

from __future__ import annotations

import re
import time

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from invitegen.config import Settings
from invitegen.errors import CSRFValidationError, RateLimitExceededError
from invitegen.security.csrf import (
    SAFE_METHODS,
    csrf_error_response,
    enforce_csrf,
    get_or_create_csrf_token,
    set_csrf_cookie,
)
from invitegen.security.exemptions import Bypass, ExemptionTable
from invitegen.security.headers import apply_security_headers
from invitegen.security.policies import (
    RATE_LIMIT_POLICIES,
    is_api_path,
    resolve_policy,
)
from invitegen.security.rate_limiter import (
    FixedWindowRateLimiter,
    RateLimitConfig,
    RateLimitResult,
    apply_rate_limit_headers,
    get_client_ip,
    rate_limit_response,
)
from invitegen.security.site_access import has_site_access, site_gate_redirect

logger = structlog.get_logger()

STATIC_ASSET_RE = re.compile(
    r"^/(?:_next/static|_next/image|favicon\.ico)(?:/|$)"
    r"|\.(?:svg|png|jpe?g|gif|webp|ico)$",
    re.IGNORECASE,
)


def is_static_asset(path: str) -> bool:
    """Asset paths skip admission entirely; nothing under ``/api`` is one."""
    if is_api_path(path):
        return False
    return STATIC_ASSET_RE.search(path) is not None


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log HTTP requests with method, path, status code, client and latency."""

    SKIP_PATHS: frozenset[str] = frozenset(
        {"/health", "/docs", "/openapi.json", "/redoc"}
    )

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.SKIP_PATHS or is_static_asset(request.url.path):
            return await call_next(request)

        start = time.perf_counter()
        response = await call_next(request)
        latency_ms = int((time.perf_counter() - start) * 1000)

        logger.info(
            "http_request",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            client_ip=get_client_ip(request),
            latency_ms=latency_ms,
        )
        return response


class AdmissionMiddleware(BaseHTTPMiddleware):
    """Single interception point in front of every route.

    Order per request:
        1. Static assets pass through untouched.
        2. Site password gate (redirect when locked).
        3. Rate limit, API paths only (429).
        4. CSRF double-submit check, API paths and unsafe methods only (403).
        5. Route handler, then CSRF cookie issuance, rate-limit headers and
           security headers on the way out.

    The limiter is owned by the caller and injected, so tests and a future
    shared backend can supply their own store.
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        limiter: FixedWindowRateLimiter,
        settings: Settings,
        exemptions: ExemptionTable | None = None,
        policies: dict[str, RateLimitConfig] | None = None,
    ) -> None:
        super().__init__(app)
        self.limiter = limiter
        self.settings = settings
        self.exemptions = exemptions or ExemptionTable()
        self.policies = policies or RATE_LIMIT_POLICIES

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if is_static_asset(path):
            return await call_next(request)

        if self._site_locked(request):
            logger.info("site_gate_redirect", path=path)
            return apply_security_headers(site_gate_redirect(request))

        try:
            rate_result = self._enforce_rate_limit(request)
            self._enforce_csrf(request)
        except RateLimitExceededError as exc:
            return apply_security_headers(
                rate_limit_response(exc.result, exc.message, now=self.limiter.now())
            )
        except CSRFValidationError as exc:
            logger.warning(
                "csrf_rejected",
                path=path,
                method=request.method,
                client_ip=get_client_ip(request),
                reason=str(exc),
            )
            return apply_security_headers(csrf_error_response(str(exc)))

        token, is_new = get_or_create_csrf_token(request)
        response = await call_next(request)

        if is_new:
            set_csrf_cookie(response, token, secure=self.settings.is_prod)
        if rate_result is not None:
            apply_rate_limit_headers(response, rate_result)
        return apply_security_headers(response)

    def _site_locked(self, request: Request) -> bool:
        password = self.settings.site_password
        if password is None or not password.get_secret_value():
            return False
        if self.exemptions.bypasses(request.url.path, Bypass.SITE_GATE):
            return False
        return not has_site_access(request, password.get_secret_value())

    def _enforce_rate_limit(self, request: Request) -> RateLimitResult | None:
        """Count the request against its route policy.

        Returns:
            The admitted result, or None when no limit applies.

        Raises:
            RateLimitExceededError: budget for the window is spent.
        """
        path = request.url.path
        if not self.settings.rate_limit_enabled or not is_api_path(path):
            return None
        if self.exemptions.bypasses(path, Bypass.RATE_LIMIT):
            return None

        route_prefix, config = resolve_policy(path, self.policies)
        result = self.limiter.check(request, config)
        if not result.success:
            logger.warning(
                "rate_limited",
                path=path,
                route_prefix=route_prefix,
                client_ip=get_client_ip(request),
                limit=result.limit,
                reset_time=result.reset_time,
            )
            raise RateLimitExceededError(result, config.message)
        return result

    def _enforce_csrf(self, request: Request) -> None:
        path = request.url.path
        if not self.settings.csrf_enabled or not is_api_path(path):
            return
        if request.method.upper() in SAFE_METHODS:
            return
        if self.exemptions.bypasses(path, Bypass.CSRF):
            return
        enforce_csrf(request)
