"""Dispatch coordinator — issues a challenge and hands the code to a channel."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from otp_service.channels.base import DeliveryChannel
from otp_service.core.codes import generate_code
from otp_service.core.errors import DeliveryFailedError
from otp_service.core.models import (
    Challenge,
    Clock,
    DispatchResult,
    OTPConfig,
    resolve_now,
    utc_now,
)
from otp_service.core.store import ChallengeStore

logger = logging.getLogger(__name__)


class DispatchCoordinator:
    """Generates a code, stores the challenge, then delegates delivery.

    The store write happens before delivery and is never rolled back: if
    the channel fails the challenge stays pending and usable, and a resend
    is the recovery path.
    """

    def __init__(
        self, store: ChallengeStore, config: OTPConfig, clock: Clock = utc_now
    ) -> None:
        self._store = store
        self._config = config
        self._clock = clock

    def issue(self, identifier: str, now: datetime | None = None) -> Challenge:
        """Create and store a fresh challenge, replacing any pending one."""
        now = resolve_now(now, self._clock)
        challenge = Challenge(
            identifier=identifier,
            code=generate_code(self._config.code_length),
            created_at=now,
            expires_at=now + self._config.ttl,
            attempts=0,
            max_attempts=self._config.max_attempts,
        )
        self._store.put(identifier, challenge)
        logger.info("OTP issued for %s (expires %s)", identifier, challenge.expires_at.isoformat())
        return challenge

    async def send(
        self, identifier: str, channel: DeliveryChannel, now: datetime | None = None
    ) -> DispatchResult:
        """Issue a challenge for *identifier* and deliver it over *channel*.

        Raises :class:`DeliveryFailedError` if the channel reports failure,
        raises, or exceeds ``delivery_timeout_seconds``.
        """
        now = resolve_now(now, self._clock)
        challenge = self.issue(identifier, now)
        expires_in = challenge.expires_in(now)

        try:
            delivered = await asyncio.wait_for(
                channel.send(identifier, challenge.code),
                timeout=self._config.delivery_timeout_seconds,
            )
        except TimeoutError as exc:
            logger.error("OTP delivery via %s timed out for %s", channel.name, identifier)
            raise DeliveryFailedError(
                identifier, channel.name, expires_in, reason="timed out"
            ) from exc
        except Exception as exc:
            logger.exception("OTP delivery via %s raised for %s", channel.name, identifier)
            raise DeliveryFailedError(
                identifier, channel.name, expires_in, reason=type(exc).__name__
            ) from exc

        if not delivered:
            logger.error("OTP delivery via %s rejected for %s", channel.name, identifier)
            raise DeliveryFailedError(identifier, channel.name, expires_in)

        logger.info("OTP sent via %s to %s", channel.name, identifier)
        return DispatchResult(
            identifier=identifier, expires_in_seconds=expires_in, channel=channel.name
        )

    async def resend(
        self, identifier: str, channel: DeliveryChannel, now: datetime | None = None
    ) -> DispatchResult:
        """Alias of :meth:`send`; a resend is simply a fresh issue."""
        return await self.send(identifier, channel, now)
