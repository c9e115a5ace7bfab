"""In-memory challenge store keyed by identifier."""

from __future__ import annotations

import logging
import threading
from datetime import datetime

from otp_service.core.models import Challenge

logger = logging.getLogger(__name__)


class ChallengeStore:
    """Process-wide map of ``identifier → Challenge``.

    Holds at most one challenge per identifier. Every method takes
    :attr:`lock`, a re-entrant lock, so callers that need an atomic
    read-modify-write (verification, sweeping) can hold it across several
    calls::

        with store.lock:
            challenge = store.get(identifier)
            ...
            store.put(identifier, challenge)
    """

    def __init__(self) -> None:
        self._challenges: dict[str, Challenge] = {}
        self.lock = threading.RLock()

    def put(self, identifier: str, challenge: Challenge) -> None:
        """Insert or overwrite the challenge for *identifier*."""
        with self.lock:
            replaced = identifier in self._challenges
            self._challenges[identifier] = challenge
        if replaced:
            logger.debug("Replaced pending challenge for %s", identifier)

    def get(self, identifier: str) -> Challenge | None:
        with self.lock:
            return self._challenges.get(identifier)

    def delete(self, identifier: str) -> None:
        """Remove the challenge for *identifier*; no-op if absent."""
        with self.lock:
            self._challenges.pop(identifier, None)

    def list_expired(self, now: datetime) -> list[str]:
        """Identifiers whose challenge has ``expires_at <= now``."""
        with self.lock:
            return [
                identifier
                for identifier, challenge in self._challenges.items()
                if challenge.expires_at <= now
            ]

    def snapshot(self) -> dict[str, Challenge]:
        """Shallow copy of the current entries (for monitoring and tests)."""
        with self.lock:
            return dict(self._challenges)

    def __len__(self) -> int:
        with self.lock:
            return len(self._challenges)

    def __contains__(self, identifier: object) -> bool:
        with self.lock:
            return identifier in self._challenges
