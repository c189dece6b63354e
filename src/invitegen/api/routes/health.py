"""Liveness endpoint."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from invitegen.api.deps import get_rate_limiter
from invitegen.api.schemas import HealthResponse
from invitegen.security.rate_limiter import FixedWindowRateLimiter

router = APIRouter(tags=["health"])

LimiterDep = Annotated[FixedWindowRateLimiter, Depends(get_rate_limiter)]


@router.get("/health")
@router.get("/api/health")
async def health(limiter: LimiterDep) -> HealthResponse:
    return HealthResponse(status="ok", rate_limit_keys=len(limiter.store))
