"""SMS channel — async HTTP client for a bearer-token SMS gateway.

The gateway is expected to accept ``POST {sms_gateway_url}`` with a JSON
body ``{"to", "from", "message"}`` and answer 2xx once the message has
been queued for delivery.
"""

from __future__ import annotations

import logging

import httpx

from otp_service.channels.base import DeliveryChannel
from otp_service.config import Settings

logger = logging.getLogger(__name__)


class SmsChannel(DeliveryChannel):
    """Sends OTP text messages through the configured HTTP gateway."""

    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None) -> None:
        self._settings = settings
        self._url = settings.sms_gateway_url
        self._client = client or httpx.AsyncClient(timeout=settings.otp_delivery_timeout_seconds)

    @property
    def name(self) -> str:
        return "sms"

    def build_text(self, code: str) -> str:
        minutes = self._settings.otp_ttl_seconds // 60
        return (
            f"Your {self._settings.app_name} verification code is {code}. "
            f"It expires in {minutes} minutes. Do not share it with anyone."
        )

    async def send(self, identifier: str, code: str) -> bool:
        headers = {
            "Authorization": f"Bearer {self._settings.sms_api_token}",
            "Content-Type": "application/json",
        }
        payload = {
            "to": identifier,
            "from": self._settings.sms_sender_id,
            "message": self.build_text(code),
        }

        try:
            resp = await self._client.post(self._url, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            logger.error("SMS gateway request error for %s: %s", identifier, exc)
            return False

        if resp.is_success:
            logger.info("OTP SMS sent to %s", identifier)
            return True

        logger.error(
            "SMS gateway rejected message to %s: %s %s",
            identifier,
            resp.status_code,
            resp.text,
        )
        return False

    async def close(self) -> None:
        await self._client.aclose()
