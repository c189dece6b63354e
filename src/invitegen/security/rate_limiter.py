"""In-memory fixed-window rate limiter.

Single-instance only: every replica keeps its own counters, so N replicas
admit up to ``limit * N`` requests per window. For multi-instance
deployments implement :class:`RateLimitStore` on top of Redis and pass it
to :class:`FixedWindowRateLimiter`.
"""

from __future__ import annotations

import math
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from threading import Lock
from typing import Protocol

from fastapi.responses import JSONResponse
from starlette.requests import Request
from starlette.responses import Response

from invitegen.errors import RateLimitExceededError

DEFAULT_MESSAGE = "Too many requests. Please try again later."
UNKNOWN_CLIENT = "unknown"

KeyGenerator = Callable[[Request], str]
Clock = Callable[[], int]


def now_ms() -> int:
    """Wall clock in milliseconds since the epoch."""
    return int(time.time() * 1000)


@dataclass
class RateLimitRecord:
    key: str
    count: int
    window_start: int
    window_ms: int

    @property
    def reset_time(self) -> int:
        return self.window_start + self.window_ms

    def is_expired(self, now: int) -> bool:
        return now - self.window_start > self.window_ms


@dataclass(frozen=True)
class RateLimitConfig:
    """Budget for one limiter.

    Attributes:
        limit: Max requests per window.
        window_ms: Window length in milliseconds.
        key_generator: Derives the bucket key from a request. Defaults to
            the client IP. A constant key pools every caller into one bucket.
        message: Client-facing text used when the budget is exhausted.
    """

    limit: int
    window_ms: int
    key_generator: KeyGenerator | None = None
    message: str | None = None


@dataclass(frozen=True)
class RateLimitResult:
    success: bool
    limit: int
    remaining: int
    reset_time: int


class RateLimitStore(Protocol):
    """Counter storage behind :class:`FixedWindowRateLimiter`."""

    def hit(self, key: str, window_ms: int, now: int) -> RateLimitRecord: ...

    def expired_keys(self, now: int) -> list[str]: ...

    def remove(self, keys: Iterable[str], now: int) -> int: ...

    def __len__(self) -> int: ...


class InMemoryRateLimitStore:
    """Dict-backed store.

    Guarded by a Lock because the cleanup sweep runs in a worker thread
    while requests are served on the event loop.
    """

    def __init__(self) -> None:
        self._records: dict[str, RateLimitRecord] = {}
        self._lock = Lock()

    def hit(self, key: str, window_ms: int, now: int) -> RateLimitRecord:
        """Count one request for ``key`` and return a snapshot of its record.

        Opens a fresh window when there is no record or the current one
        has expired. The count keeps growing past any limit.
        """
        with self._lock:
            record = self._records.get(key)
            if record is None or record.is_expired(now):
                record = RateLimitRecord(
                    key=key, count=1, window_start=now, window_ms=window_ms
                )
                self._records[key] = record
            else:
                record.count += 1
            return RateLimitRecord(
                key=record.key,
                count=record.count,
                window_start=record.window_start,
                window_ms=record.window_ms,
            )

    def expired_keys(self, now: int) -> list[str]:
        """Keys whose window has lapsed at ``now``.

        Only the snapshot copy holds the lock; expiry is judged outside it,
        so a large sweep does not stall concurrent :meth:`hit` calls. A
        record's window never changes in place (renewal swaps the record),
        which keeps the unlocked read consistent.
        """
        with self._lock:
            snapshot = list(self._records.items())
        return [key for key, record in snapshot if record.is_expired(now)]

    def remove(self, keys: Iterable[str], now: int) -> int:
        """Delete the given keys if they are still expired at ``now``.

        A key renewed by a request since :meth:`expired_keys` ran is kept.
        """
        removed = 0
        with self._lock:
            for key in keys:
                record = self._records.get(key)
                if record is not None and record.is_expired(now):
                    del self._records[key]
                    removed += 1
        return removed

    def get(self, key: str) -> RateLimitRecord | None:
        with self._lock:
            return self._records.get(key)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        return len(self._records)


def get_client_ip(request: Request) -> str:
    """Client identity from proxy headers.

    First entry of ``x-forwarded-for``, then ``x-real-ip``, then
    ``"unknown"``.
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    return UNKNOWN_CLIENT


def prefixed_key(prefix: str) -> KeyGenerator:
    """Key generator salting the client IP with a route prefix."""

    def _key(request: Request) -> str:
        return f"{get_client_ip(request)}:{prefix}"

    return _key


class FixedWindowRateLimiter:
    """Admit or reject requests against a per-key budget.

    Args:
        store: Counter storage. A fresh in-memory store when omitted.
        clock: Returns "now" in ms since the epoch. Tests inject a fake.
    """

    def __init__(
        self,
        store: RateLimitStore | None = None,
        clock: Clock = now_ms,
    ) -> None:
        self.store: RateLimitStore = (
            store if store is not None else InMemoryRateLimitStore()
        )
        self._clock = clock

    def now(self) -> int:
        return self._clock()

    def check(self, request: Request, config: RateLimitConfig) -> RateLimitResult:
        """Count this request and decide whether it is admitted."""
        key_generator = config.key_generator or get_client_ip
        return self.check_key(key_generator(request), config)

    def check_key(self, key: str, config: RateLimitConfig) -> RateLimitResult:
        record = self.store.hit(key, config.window_ms, self.now())

        if record.count > config.limit:
            return RateLimitResult(
                success=False,
                limit=config.limit,
                remaining=0,
                reset_time=record.reset_time,
            )
        return RateLimitResult(
            success=True,
            limit=config.limit,
            remaining=config.limit - record.count,
            reset_time=record.reset_time,
        )

    def cleanup(self, now: int | None = None, batch_size: int = 500) -> int:
        """Remove expired records. Call periodically.

        Expired keys are collected first, then deleted in batches so the
        store lock is released between batches.

        Returns:
            Number of keys cleaned up.
        """
        now = self.now() if now is None else now
        expired = self.store.expired_keys(now)
        cleaned = 0
        for start in range(0, len(expired), batch_size):
            cleaned += self.store.remove(expired[start : start + batch_size], now)
        return cleaned


def retry_after_seconds(result: RateLimitResult, now: int) -> int:
    return max(1, math.ceil((result.reset_time - now) / 1000))


def apply_rate_limit_headers(response: Response, result: RateLimitResult) -> None:
    """Expose the caller's budget on an admitted response."""
    response.headers["X-RateLimit-Limit"] = str(result.limit)
    response.headers["X-RateLimit-Remaining"] = str(result.remaining)
    response.headers["X-RateLimit-Reset"] = str(result.reset_time)


def rate_limit_response(
    result: RateLimitResult,
    message: str | None = None,
    now: int | None = None,
) -> JSONResponse:
    """429 response for a rejected request.

    ``Retry-After`` is the number of seconds until the window resets,
    never less than 1.
    """
    retry_after = retry_after_seconds(result, now_ms() if now is None else now)
    response = JSONResponse(
        status_code=429,
        content={
            "success": False,
            "error": {
                "code": RateLimitExceededError.code,
                "message": message or DEFAULT_MESSAGE,
                "retryAfter": retry_after,
            },
        },
    )
    apply_rate_limit_headers(response, result)
    response.headers["Retry-After"] = str(retry_after)
    return response
