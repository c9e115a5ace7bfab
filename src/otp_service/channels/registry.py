"""Channel registry — picks a real or console transport per channel name."""

from __future__ import annotations

import logging

from otp_service.channels.base import DeliveryChannel
from otp_service.channels.console import ConsoleChannel
from otp_service.channels.email_channel import EmailChannel
from otp_service.channels.sms_channel import SmsChannel
from otp_service.config import Settings

logger = logging.getLogger(__name__)


def build_channels(settings: Settings) -> dict[str, DeliveryChannel]:
    """Return ``{"sms": ..., "email": ...}`` for the given settings.

    A channel whose transport is not configured falls back to
    :class:`ConsoleChannel`, which only logs the code.
    """
    channels: dict[str, DeliveryChannel] = {}

    if settings.sms_gateway_url:
        channels["sms"] = SmsChannel(settings)
    else:
        logger.warning("SMS_GATEWAY_URL not set — SMS OTPs will be logged only")
        channels["sms"] = ConsoleChannel("sms")

    if settings.smtp_host:
        channels["email"] = EmailChannel(settings)
    else:
        logger.warning("SMTP_HOST not set — email OTPs will be logged only")
        channels["email"] = ConsoleChannel("email")

    return channels
