"""Verification engine — checks a submitted code against the stored challenge."""

from __future__ import annotations

import logging
import secrets
from dataclasses import replace
from datetime import datetime

from otp_service.core.errors import (
    ChallengeExpiredError,
    ChallengeNotFoundError,
    InvalidCodeError,
    OTPInternalError,
    TooManyAttemptsError,
)
from otp_service.core.models import Clock, VerifyResult, resolve_now, utc_now
from otp_service.core.store import ChallengeStore

logger = logging.getLogger(__name__)


class VerificationEngine:
    """Validates codes and applies expiry, lockout and single-use rules.

    Checks run in a fixed order under the store lock:

    1. no challenge → :class:`ChallengeNotFoundError`
    2. past ``expires_at`` → challenge deleted, :class:`ChallengeExpiredError`
    3. attempts exhausted → :class:`TooManyAttemptsError` (kept until expiry)
    4. matching code → challenge deleted, :class:`VerifyResult`
    5. otherwise → attempt recorded, :class:`InvalidCodeError`
    """

    def __init__(self, store: ChallengeStore, clock: Clock = utc_now) -> None:
        self._store = store
        self._clock = clock

    def verify(
        self, identifier: str, submitted_code: str, now: datetime | None = None
    ) -> VerifyResult:
        now = resolve_now(now, self._clock)

        with self._store.lock:
            challenge = self._store.get(identifier)
            if challenge is None:
                raise ChallengeNotFoundError(identifier)

            if challenge.identifier != identifier or challenge.attempts > challenge.max_attempts:
                logger.error("Corrupt challenge stored under %s: %r", identifier, challenge)
                raise OTPInternalError(identifier)

            if challenge.is_expired(now):
                self._store.delete(identifier)
                logger.info("OTP expired for %s", identifier)
                raise ChallengeExpiredError(identifier)

            if challenge.is_locked:
                logger.info("OTP locked out for %s", identifier)
                raise TooManyAttemptsError(identifier)

            if secrets.compare_digest(submitted_code.encode(), challenge.code.encode()):
                # Consume the OTP on successful verification
                self._store.delete(identifier)
                logger.info("OTP verified for %s", identifier)
                return VerifyResult(identifier=identifier)

            updated = replace(challenge, attempts=challenge.attempts + 1)
            self._store.put(identifier, updated)

        logger.info(
            "Invalid OTP for %s (%d/%d attempts)",
            identifier,
            updated.attempts,
            updated.max_attempts,
        )
        raise InvalidCodeError(identifier, attempts_remaining=updated.attempts_remaining)
