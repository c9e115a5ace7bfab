"""Console channel — logs passcodes instead of delivering them (development)."""

from __future__ import annotations

import logging

from otp_service.channels.base import DeliveryChannel

logger = logging.getLogger(__name__)


class ConsoleChannel(DeliveryChannel):
    """Stands in for a real transport that has not been configured."""

    def __init__(self, name: str = "console") -> None:
        self._name = name
        self.sent: list[tuple[str, str]] = []

    @property
    def name(self) -> str:
        return self._name

    async def send(self, identifier: str, code: str) -> bool:
        self.sent.append((identifier, code))
        logger.warning("%s transport not configured — OTP for %s: %s", self._name, identifier, code)
        return True

    @property
    def last_code(self) -> str | None:
        """Most recent code handed to this channel, if any."""
        return self.sent[-1][1] if self.sent else None
