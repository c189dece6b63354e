"""Request admission: rate limiting, CSRF, site gate and security headers."""

from invitegen.security.csrf import validate_csrf_token
from invitegen.security.exemptions import Bypass, ExemptionTable
from invitegen.security.rate_limiter import (
    FixedWindowRateLimiter,
    InMemoryRateLimitStore,
    RateLimitConfig,
    RateLimitResult,
    get_client_ip,
    rate_limit_response,
)

__all__ = [
    "Bypass",
    "ExemptionTable",
    "FixedWindowRateLimiter",
    "InMemoryRateLimitStore",
    "RateLimitConfig",
    "RateLimitResult",
    "get_client_ip",
    "rate_limit_response",
    "validate_csrf_token",
]
