"""FastAPI application with lifespan management."""

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager, suppress

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from invitegen.api.middleware import AdmissionMiddleware, RequestLoggingMiddleware
from invitegen.api.routes.auth import router as auth_router
from invitegen.api.routes.health import router as health_router
from invitegen.api.routes.site_access import router as site_access_router
from invitegen.api.schemas import ErrorDetail, ErrorResponse
from invitegen.config import Settings, settings
from invitegen.errors import InvalidSitePasswordError
from invitegen.logging_config import configure_logging
from invitegen.security.exemptions import ExemptionTable
from invitegen.security.rate_limiter import FixedWindowRateLimiter, RateLimitConfig

logger = structlog.get_logger()


async def _cleanup_loop(limiter: FixedWindowRateLimiter, interval: float) -> None:
    """Periodic sweep of expired rate limit records."""
    while True:
        await asyncio.sleep(interval)
        try:
            cleaned = await asyncio.to_thread(limiter.cleanup)
            if cleaned:
                logger.debug("rate_limiter_cleanup", keys_removed=cleaned)
        except Exception:
            logger.exception("rate_limiter_cleanup_error")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Manage application startup and shutdown.

    Startup:
        - Configure logging.
        - Start the rate limiter cleanup task.
    Shutdown:
        - Cancel the cleanup task.
    """
    app_settings: Settings = app.state.settings
    configure_logging(
        environment=str(app_settings.environment),
        log_level=app_settings.log_level,
    )

    cleanup_task = asyncio.create_task(
        _cleanup_loop(
            app.state.rate_limiter,
            app_settings.rate_limit_cleanup_interval_seconds,
        )
    )
    logger.info(
        "app_started",
        environment=str(app_settings.environment),
        site_gate=app_settings.site_gate_enabled,
    )
    yield

    cleanup_task.cancel()
    with suppress(asyncio.CancelledError):
        await cleanup_task
    logger.info("app_stopped")


async def site_password_error_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    body = ErrorResponse(
        error=ErrorDetail(code=InvalidSitePasswordError.code, message=str(exc))
    )
    return JSONResponse(status_code=401, content=body.model_dump())


async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Catch-all handler for unhandled exceptions."""
    logger.error("unhandled_exception", exc_info=exc, path=request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": {"code": "INTERNAL_ERROR", "message": "Internal server error"},
        },
    )


def create_app(
    app_settings: Settings | None = None,
    limiter: FixedWindowRateLimiter | None = None,
    exemptions: ExemptionTable | None = None,
    policies: dict[str, RateLimitConfig] | None = None,
) -> FastAPI:
    """Build the application around an explicitly owned limiter.

    Each call gets its own rate-limit store unless ``limiter`` is passed,
    so tests never share counters.
    """
    app_settings = app_settings or settings
    limiter = limiter or FixedWindowRateLimiter()

    app = FastAPI(
        title="InviteGenerator Edge",
        description="Request admission layer: rate limiting, CSRF, site gate",
        version="0.1.0",
        lifespan=lifespan,
        debug=app_settings.is_dev,
    )
    app.state.settings = app_settings
    app.state.rate_limiter = limiter

    # Added innermost first: CORS wraps logging, which wraps admission.
    app.add_middleware(
        AdmissionMiddleware,
        limiter=limiter,
        settings=app_settings,
        exemptions=exemptions,
        policies=policies,
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_allowed_origins,
        allow_credentials=app_settings.cors_allow_credentials,
        allow_methods=app_settings.cors_allowed_methods,
        allow_headers=app_settings.cors_allowed_headers,
    )

    app.add_exception_handler(InvalidSitePasswordError, site_password_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(health_router)
    app.include_router(auth_router, prefix="/api")
    app.include_router(site_access_router, prefix="/api")
    return app


app = create_app()


def main() -> None:
    """Serve the module-level app with uvicorn (``invitegen-edge`` script)."""
    uvicorn.run(
        "invitegen.api.app:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        proxy_headers=True,
    )
