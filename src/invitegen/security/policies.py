"""Named rate-limit presets and the API route table that selects them.

Every policy is a plain :class:`RateLimitConfig` fed to the same
fixed-window limiter; there is no per-category algorithm.
"""

from __future__ import annotations

from dataclasses import replace

from invitegen.security.rate_limiter import RateLimitConfig, prefixed_key

MINUTE_MS = 60 * 1000

API_PREFIX = "/api"

RATE_LIMIT_POLICIES: dict[str, RateLimitConfig] = {
    "auth": RateLimitConfig(
        limit=5,
        window_ms=15 * MINUTE_MS,
        message="Too many authentication attempts. Please try again in 15 minutes.",
    ),
    "api": RateLimitConfig(
        limit=100,
        window_ms=MINUTE_MS,
        message="API rate limit exceeded. Please slow down your requests.",
    ),
    "ai": RateLimitConfig(
        limit=10,
        window_ms=MINUTE_MS,
        message="AI generation rate limit exceeded. Please try again in a minute.",
    ),
    "rsvp": RateLimitConfig(
        limit=10,
        window_ms=MINUTE_MS,
        message="Too many RSVP submissions. Please try again later.",
    ),
    "public_view": RateLimitConfig(
        limit=60,
        window_ms=MINUTE_MS,
        message="Too many invitation views. Please try again in a minute.",
    ),
    "upload": RateLimitConfig(
        limit=20,
        window_ms=MINUTE_MS,
        message="Upload rate limit exceeded. Please try again in a minute.",
    ),
}

# (path prefix, policy name). Longest matching prefix wins. The auth budget
# covers credential endpoints only; token fetches under /api/auth stay on "api".
POLICY_ROUTES: tuple[tuple[str, str], ...] = (
    ("/api/auth/login", "auth"),
    ("/api/auth/signup", "auth"),
    ("/api/auth/forgot-password", "auth"),
    ("/api/auth/reset-password", "auth"),
    ("/api/site-access", "auth"),
    ("/api/ai", "ai"),
    ("/api/rsvp", "rsvp"),
    ("/api/public", "public_view"),
    ("/api/upload", "upload"),
)


def matches_prefix(path: str, prefix: str) -> bool:
    """Prefix match on a path-segment boundary.

    ``/api/rsvp`` matches ``/api/rsvp`` and ``/api/rsvp/abc`` but not
    ``/api/rsvpx``.
    """
    prefix = prefix.rstrip("/")
    return path == prefix or path.startswith(prefix + "/")


def is_api_path(path: str) -> bool:
    return matches_prefix(path, API_PREFIX)


def resolve_policy(
    path: str,
    policies: dict[str, RateLimitConfig] = RATE_LIMIT_POLICIES,
) -> tuple[str, RateLimitConfig]:
    """Pick the policy for an API path.

    Returns:
        (route_prefix, config). The config's key generator salts the
        client IP with the route prefix, so each prefix has its own bucket.
    """
    route_prefix, policy_name = API_PREFIX, "api"
    for prefix, name in POLICY_ROUTES:
        if matches_prefix(path, prefix) and len(prefix) > len(route_prefix):
            route_prefix, policy_name = prefix, name

    config = replace(policies[policy_name], key_generator=prefixed_key(route_prefix))
    return route_prefix, config
