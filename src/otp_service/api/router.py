"""OTP API router.

Endpoints
---------
POST /api/otp/{channel}/send        → issue and deliver a new code (sms | email)
POST /api/otp/{channel}/resend      → same as send; previous code is invalidated
POST /api/otp/verify                → validate a code
GET  /api/otp/status/{identifier}   → pending-challenge status
GET  /api/service-status            → channels, pending count, tuning
POST /api/test-sms, /api/test-email → send a test message, no challenge issued
GET  /api/debug                     → pending-challenge metadata (debug only)
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from enum import Enum

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from otp_service.api.rate_limit import send_limit, verify_limit
from otp_service.core.service import OTPService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["otp"])


def get_otp_service(request: Request) -> OTPService:
    """The service instance owned by the running application."""
    return request.app.state.otp_service


# ── Response / request models ────────────────────────────

class ChannelName(str, Enum):
    sms = "sms"
    email = "email"


class OTPSendRequest(BaseModel):
    identifier: str = Field(..., min_length=1, description="Phone number or email address")


class OTPSendResponse(BaseModel):
    success: bool
    identifier: str
    expires_in_seconds: int
    channel: str


class OTPVerifyRequest(BaseModel):
    identifier: str = Field(..., min_length=1)
    otp: str = Field(..., min_length=1)


class OTPVerifyResponse(BaseModel):
    success: bool
    verified: bool


class OTPStatusResponse(BaseModel):
    exists: bool
    expires_in_seconds: int | None = None
    attempts_remaining: int | None = None


# ── Endpoints ────────────────────────────────────────────

@router.post(
    "/otp/{channel}/send",
    response_model=OTPSendResponse,
    dependencies=[Depends(send_limit)],
)
async def send_otp(
    channel: ChannelName,
    body: OTPSendRequest,
    service: OTPService = Depends(get_otp_service),
):
    """Generate an OTP and deliver it over *channel*."""
    result = await service.send_otp(body.identifier, channel.value)
    return OTPSendResponse(
        success=result.success,
        identifier=result.identifier,
        expires_in_seconds=result.expires_in_seconds,
        channel=result.channel,
    )


@router.post(
    "/otp/{channel}/resend",
    response_model=OTPSendResponse,
    dependencies=[Depends(send_limit)],
)
async def resend_otp(
    channel: ChannelName,
    body: OTPSendRequest,
    service: OTPService = Depends(get_otp_service),
):
    """Issue a fresh OTP, replacing any pending one, and deliver it."""
    result = await service.resend_otp(body.identifier, channel.value)
    return OTPSendResponse(
        success=result.success,
        identifier=result.identifier,
        expires_in_seconds=result.expires_in_seconds,
        channel=result.channel,
    )


@router.post(
    "/otp/verify",
    response_model=OTPVerifyResponse,
    dependencies=[Depends(verify_limit)],
)
async def verify_otp(body: OTPVerifyRequest, service: OTPService = Depends(get_otp_service)):
    """Validate an OTP; failures are rendered by the OTP error handler."""
    result = service.verify_otp(body.identifier, body.otp)
    return OTPVerifyResponse(success=result.success, verified=result.verified)


@router.get("/otp/status/{identifier}", response_model=OTPStatusResponse)
async def otp_status(identifier: str, service: OTPService = Depends(get_otp_service)):
    status = service.get_status(identifier)
    return OTPStatusResponse(
        exists=status.exists,
        expires_in_seconds=status.expires_in_seconds,
        attempts_remaining=status.attempts_remaining,
    )


@router.get("/service-status")
async def service_status(service: OTPService = Depends(get_otp_service)) -> dict:
    return {
        "success": True,
        "status": service.service_status(),
        "timestamp": datetime.now(UTC).isoformat(),
    }


@router.post("/test-sms")
async def test_sms(body: OTPSendRequest, service: OTPService = Depends(get_otp_service)) -> dict:
    """Send a test message through the SMS channel; no challenge is issued."""
    return await service.test_channel(ChannelName.sms.value, body.identifier)


@router.post("/test-email")
async def test_email(body: OTPSendRequest, service: OTPService = Depends(get_otp_service)) -> dict:
    """Send a test message through the email channel; no challenge is issued."""
    return await service.test_channel(ChannelName.email.value, body.identifier)


@router.get("/debug")
async def debug_info(request: Request, service: OTPService = Depends(get_otp_service)) -> dict:
    """Pending-challenge metadata; only served when ``DEBUG`` is enabled."""
    if not request.app.state.settings.debug:
        raise HTTPException(status_code=404)
    return service.debug_info()
