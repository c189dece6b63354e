"""Domain-specific exceptions for the admission layer."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from invitegen.security.rate_limiter import RateLimitResult


class RateLimitExceededError(Exception):
    """Caller spent its budget for the current window."""

    code = "RATE_LIMITED"

    def __init__(self, result: RateLimitResult, message: str | None = None) -> None:
        self.result = result
        self.message = message
        super().__init__(message or f"Rate limit of {result.limit} exceeded")


class CSRFValidationError(Exception):
    """Cookie token and header token are missing or do not match."""

    code = "CSRF_VALIDATION_FAILED"


class InvalidSitePasswordError(Exception):
    """Submitted site-access password does not match the configured one."""

    code = "INVALID_PASSWORD"
