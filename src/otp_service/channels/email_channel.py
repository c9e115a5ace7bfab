"""Email channel — sends passcodes via async SMTP."""

from __future__ import annotations

import logging
from email.message import EmailMessage

import aiosmtplib

from otp_service.channels.base import DeliveryChannel
from otp_service.config import Settings

logger = logging.getLogger(__name__)


class EmailChannel(DeliveryChannel):
    """Sends OTP emails using the configured SMTP server."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    @property
    def name(self) -> str:
        return "email"

    def build_message(self, to_email: str, code: str) -> EmailMessage:
        """Compose the verification email for *to_email*."""
        app_name = self._settings.app_name
        minutes = self._settings.otp_ttl_seconds // 60
        body = (
            "Hello,\n\n"
            f"Your {app_name} verification code is: {code}\n\n"
            f"This code expires in {minutes} minutes and can only be used once.\n\n"
            "If you did not request this code, you can ignore this email.\n\n"
            "Best regards,\n"
            f"The {app_name} Team"
        )

        msg = EmailMessage()
        msg["Subject"] = f"Your verification code — {app_name}"
        msg["From"] = self._settings.email_from
        msg["To"] = to_email
        msg.set_content(body)
        return msg

    async def send(self, identifier: str, code: str) -> bool:
        msg = self.build_message(identifier, code)

        logger.info("Sending OTP email to %s", identifier)
        try:
            await aiosmtplib.send(
                msg,
                hostname=self._settings.smtp_host,
                port=self._settings.smtp_port,
                username=self._settings.smtp_username or None,
                password=self._settings.smtp_password or None,
                start_tls=True,
            )
        except aiosmtplib.SMTPException as exc:
            logger.error("OTP email to %s failed: %s", identifier, exc)
            return False

        logger.info("OTP email sent to %s", identifier)
        return True
