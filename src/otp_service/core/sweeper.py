"""Cleanup sweeper — purges expired challenges on a fixed interval."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime

from otp_service.core.models import Clock, resolve_now, utc_now
from otp_service.core.store import ChallengeStore

logger = logging.getLogger(__name__)


class CleanupSweeper:
    """Evicts challenges whose ``expires_at`` has passed.

    Safe to run alongside in-flight send/verify calls: each deletion
    happens under the store lock and re-checks expiry, so a challenge that
    was replaced after listing is left alone.
    """

    def __init__(self, store: ChallengeStore, clock: Clock = utc_now) -> None:
        self._store = store
        self._clock = clock

    def run(self, now: datetime | None = None) -> None:
        now = resolve_now(now, self._clock)
        removed = 0
        for identifier in self._store.list_expired(now):
            with self._store.lock:
                challenge = self._store.get(identifier)
                if challenge is None or challenge.expires_at > now:
                    continue
                self._store.delete(identifier)
                removed += 1
        if removed:
            logger.info("Expired OTPs cleaned up: %d removed", removed)
        else:
            logger.debug("Expired OTP sweep: nothing to remove")

    async def run_periodically(
        self,
        interval_seconds: float,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Call :meth:`run` every *interval_seconds* until cancelled."""
        logger.info("Cleanup sweeper started (every %ss)", interval_seconds)
        try:
            while True:
                await sleep(interval_seconds)
                try:
                    self.run()
                except Exception:
                    logger.exception("Cleanup sweep failed")
        finally:
            logger.info("Cleanup sweeper stopped")
