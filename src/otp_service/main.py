"""FastAPI application entry point."""

import asyncio
import contextlib
import logging
import time
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from otp_service.api.rate_limit import (
    FixedWindowRateLimiter,
    RateLimitExceededError,
    rate_limit_headers,
)
from otp_service.api.router import router as otp_router
from otp_service.channels.registry import build_channels
from otp_service.config import Settings, settings
from otp_service.core.errors import (
    ChallengeExpiredError,
    ChallengeNotFoundError,
    DeliveryFailedError,
    InvalidCodeError,
    InvalidIdentifierError,
    OTPError,
    OTPInternalError,
    TooManyAttemptsError,
)
from otp_service.core.service import OTPService, UnknownChannelError

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)

logger = logging.getLogger(__name__)

# HTTP status for each core error; anything unlisted is a 500.
_STATUS_BY_ERROR: dict[type[OTPError], int] = {
    ChallengeNotFoundError: 404,
    ChallengeExpiredError: 410,
    TooManyAttemptsError: 429,
    InvalidCodeError: 400,
    DeliveryFailedError: 502,
    OTPInternalError: 500,
}


def _error_body(error: str, message: str, **extra) -> dict:
    return {"success": False, "error": error, "message": message, **extra}


async def otp_error_handler(request: Request, exc: OTPError) -> JSONResponse:
    status_code = _STATUS_BY_ERROR.get(type(exc), 500)
    return JSONResponse(
        status_code=status_code,
        content=_error_body(exc.code, str(exc), **exc.extra()),
    )


async def invalid_identifier_handler(
    request: Request, exc: InvalidIdentifierError
) -> JSONResponse:
    return JSONResponse(status_code=422, content=_error_body(exc.code, str(exc)))


async def unknown_channel_handler(request: Request, exc: UnknownChannelError) -> JSONResponse:
    return JSONResponse(status_code=404, content=_error_body("unknown_channel", str(exc)))


async def rate_limit_handler(request: Request, exc: RateLimitExceededError) -> JSONResponse:
    return JSONResponse(
        status_code=429,
        content=_error_body("rate_limited", str(exc), retry_after=exc.retry_after),
        headers={"Retry-After": str(exc.retry_after), **rate_limit_headers(exc.info)},
    )


async def not_found_handler(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=404, content=_error_body("endpoint_not_found", "Endpoint not found")
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500, content=_error_body("internal_error", "Internal server error")
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle hook."""
    service: OTPService = app.state.otp_service
    logger.info("Starting %s …", app.title)
    sweep_task = app.state.sweep_task = asyncio.create_task(
        service.sweeper.run_periodically(service.config.cleanup_interval_seconds)
    )
    yield
    logger.info("Shutting down %s …", app.title)
    sweep_task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await sweep_task
    await service.close()


def create_app(service: OTPService | None = None, app_settings: Settings | None = None) -> FastAPI:
    """Build the application; tests pass their own *service* and settings."""
    app_settings = app_settings or settings

    app = FastAPI(
        title=app_settings.app_name,
        description="One-time passcode issuance and verification for phone and email",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.settings = app_settings
    app.state.started_at = time.monotonic()
    app.state.otp_service = service or OTPService(
        channels=build_channels(app_settings),
        config=app_settings.otp_config(),
    )
    app.state.send_limiter = FixedWindowRateLimiter(
        app_settings.send_rate_limit, app_settings.rate_limit_window_seconds
    )
    app.state.verify_limiter = FixedWindowRateLimiter(
        app_settings.verify_rate_limit, app_settings.rate_limit_window_seconds
    )

    app.add_exception_handler(404, not_found_handler)
    app.add_exception_handler(OTPError, otp_error_handler)
    app.add_exception_handler(InvalidIdentifierError, invalid_identifier_handler)
    app.add_exception_handler(UnknownChannelError, unknown_channel_handler)
    app.add_exception_handler(RateLimitExceededError, rate_limit_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(otp_router)

    @app.get("/health")
    async def health_check():
        """Simple liveness probe."""
        return {
            "status": "healthy",
            "app": app_settings.app_name,
            "timestamp": datetime.now(UTC).isoformat(),
            "uptime": round(time.monotonic() - app.state.started_at, 3),
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("otp_service.main:app", host="127.0.0.1", port=8000)
