"""Value objects shared by the OTP core."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Default clock: timezone-aware current time in UTC."""
    return datetime.now(UTC)


def resolve_now(now: datetime | None, clock: Clock) -> datetime:
    """Return *now*, or the clock's time if omitted; naive datetimes are rejected."""
    now = now or clock()
    if now.tzinfo is None or now.utcoffset() is None:
        raise ValueError(f"now must be timezone-aware, got naive {now.isoformat()}")
    return now


@dataclass(frozen=True)
class OTPConfig:
    """Recognised lifecycle settings, passed into the core at construction."""

    code_length: int = 6
    ttl_seconds: int = 600
    max_attempts: int = 3
    cleanup_interval_seconds: int = 300
    delivery_timeout_seconds: float = 10.0

    def __post_init__(self) -> None:
        if self.code_length < 1:
            raise ValueError("code_length must be positive")
        if self.ttl_seconds < 1:
            raise ValueError("ttl_seconds must be positive")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be positive")
        if self.cleanup_interval_seconds < 1:
            raise ValueError("cleanup_interval_seconds must be positive")

    @property
    def ttl(self) -> timedelta:
        return timedelta(seconds=self.ttl_seconds)


@dataclass
class Challenge:
    """One issued, not-yet-resolved passcode for an identifier."""

    identifier: str
    code: str = field(repr=False)
    created_at: datetime
    expires_at: datetime
    attempts: int = 0
    max_attempts: int = 3

    def is_expired(self, now: datetime) -> bool:
        """A challenge stops being verifiable once ``now`` passes ``expires_at``."""
        return now > self.expires_at

    @property
    def is_locked(self) -> bool:
        return self.attempts >= self.max_attempts

    @property
    def attempts_remaining(self) -> int:
        return max(0, self.max_attempts - self.attempts)

    def expires_in(self, now: datetime) -> int:
        """Whole seconds left before expiry (never negative)."""
        return max(0, int((self.expires_at - now).total_seconds()))


@dataclass(frozen=True)
class DispatchResult:
    """Outcome of a successful send / resend."""

    identifier: str
    expires_in_seconds: int
    channel: str
    success: bool = True


@dataclass(frozen=True)
class VerifyResult:
    """Outcome of a successful verification."""

    identifier: str
    verified: bool = True
    success: bool = True


@dataclass(frozen=True)
class StatusResult:
    """Read-only view of the pending challenge for an identifier."""

    identifier: str
    exists: bool
    expires_in_seconds: int | None = None
    attempts_remaining: int | None = None
