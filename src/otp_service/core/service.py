"""OTP service — the facade exposed to the HTTP layer.

Owns one :class:`ChallengeStore` and wires the dispatch coordinator,
verification engine and cleanup sweeper around it. Construct one per
process at startup and drop it at shutdown.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from otp_service.channels.base import DeliveryChannel
from otp_service.core.dispatch import DispatchCoordinator
from otp_service.core.identifiers import normalize_email, normalize_identifier, normalize_phone
from otp_service.core.models import (
    Clock,
    DispatchResult,
    OTPConfig,
    StatusResult,
    VerifyResult,
    resolve_now,
    utc_now,
)
from otp_service.core.store import ChallengeStore
from otp_service.core.sweeper import CleanupSweeper
from otp_service.core.verification import VerificationEngine

logger = logging.getLogger(__name__)

_NORMALIZERS = {"sms": normalize_phone, "email": normalize_email}

# Sent by /api/test-{sms,email}; never stored as a challenge.
TEST_CODE = "000000"


class UnknownChannelError(LookupError):
    """No delivery channel is registered under the requested name."""


class OTPService:
    """Send, resend, verify and inspect OTPs for phone / email identifiers."""

    def __init__(
        self,
        channels: Mapping[str, DeliveryChannel],
        config: OTPConfig | None = None,
        store: ChallengeStore | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self.config = config or OTPConfig()
        self.store = store if store is not None else ChallengeStore()
        self.channels = dict(channels)
        self._clock = clock
        self.dispatcher = DispatchCoordinator(self.store, self.config, clock)
        self.verifier = VerificationEngine(self.store, clock)
        self.sweeper = CleanupSweeper(self.store, clock)

    # ── Delivery ─────────────────────────────────────────

    def _channel(self, name: str) -> DeliveryChannel:
        try:
            return self.channels[name]
        except KeyError:
            raise UnknownChannelError(f"Unknown delivery channel: {name!r}") from None

    def _normalize(self, identifier: str, channel_name: str) -> str:
        normalizer = _NORMALIZERS.get(channel_name, normalize_identifier)
        return normalizer(identifier)

    async def send_otp(
        self, identifier: str, channel_name: str, now: datetime | None = None
    ) -> DispatchResult:
        """Issue a new code for *identifier* and deliver it via *channel_name*."""
        channel = self._channel(channel_name)
        return await self.dispatcher.send(self._normalize(identifier, channel_name), channel, now)

    async def resend_otp(
        self, identifier: str, channel_name: str, now: datetime | None = None
    ) -> DispatchResult:
        """Same as :meth:`send_otp`; the previous code stops working immediately."""
        channel = self._channel(channel_name)
        return await self.dispatcher.resend(self._normalize(identifier, channel_name), channel, now)

    async def test_channel(self, channel_name: str, identifier: str) -> dict[str, Any]:
        """Push a fixed test code through a channel without issuing a challenge."""
        channel = self._channel(channel_name)
        identifier = self._normalize(identifier, channel_name)
        try:
            delivered = await asyncio.wait_for(
                channel.send(identifier, TEST_CODE),
                timeout=self.config.delivery_timeout_seconds,
            )
        except TimeoutError:
            logger.error("Test delivery via %s timed out for %s", channel_name, identifier)
            delivered = False
        logger.info("Test delivery via %s to %s: %s", channel_name, identifier, delivered)
        return {
            "success": bool(delivered),
            "channel": channel.name,
            "identifier": identifier,
            "transport": type(channel).__name__,
        }

    # ── Verification ─────────────────────────────────────

    def verify_otp(self, identifier: str, code: str, now: datetime | None = None) -> VerifyResult:
        return self.verifier.verify(normalize_identifier(identifier), code.strip(), now)

    def get_status(self, identifier: str, now: datetime | None = None) -> StatusResult:
        """Report whether a verifiable challenge is pending for *identifier*.

        An expired challenge that has not been swept yet is reported as
        absent; this call never mutates the store.
        """
        identifier = normalize_identifier(identifier)
        now = resolve_now(now, self._clock)
        challenge = self.store.get(identifier)
        if challenge is None or challenge.is_expired(now):
            return StatusResult(identifier=identifier, exists=False)
        return StatusResult(
            identifier=identifier,
            exists=True,
            expires_in_seconds=challenge.expires_in(now),
            attempts_remaining=challenge.attempts_remaining,
        )

    # ── Housekeeping ─────────────────────────────────────

    def cleanup_expired(self, now: datetime | None = None) -> None:
        self.sweeper.run(now)

    def service_status(self) -> dict[str, Any]:
        """Summary for monitoring: channels, pending challenges and tuning."""
        return {
            "channels": {name: type(ch).__name__ for name, ch in self.channels.items()},
            "pending_challenges": len(self.store),
            "config": {
                "code_length": self.config.code_length,
                "ttl_seconds": self.config.ttl_seconds,
                "max_attempts": self.config.max_attempts,
                "cleanup_interval_seconds": self.config.cleanup_interval_seconds,
            },
        }

    def debug_info(self, now: datetime | None = None) -> dict[str, Any]:
        """Pending-challenge metadata for development; codes are never included."""
        now = resolve_now(now, self._clock)
        challenges = [
            {
                "identifier": identifier,
                "attempts": challenge.attempts,
                "attempts_remaining": challenge.attempts_remaining,
                "expires_in_seconds": challenge.expires_in(now),
                "expired": challenge.is_expired(now),
            }
            for identifier, challenge in sorted(self.store.snapshot().items())
        ]
        return {
            "pending_challenges": len(challenges),
            "challenges": challenges,
            "timestamp": now.isoformat(),
        }

    async def close(self) -> None:
        for channel in self.channels.values():
            await channel.close()
        logger.info("OTP service closed (%d pending challenges discarded)", len(self.store))
