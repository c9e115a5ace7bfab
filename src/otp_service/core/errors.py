"""Error taxonomy for the OTP core.

Every domain error carries a stable machine-readable ``code`` which the
HTTP layer copies into the ``error`` field of its response body.
"""

from __future__ import annotations

from typing import Any


class OTPError(Exception):
    """Base class for all errors raised by the OTP core."""

    code = "otp_error"

    def __init__(self, identifier: str, message: str | None = None) -> None:
        self.identifier = identifier
        super().__init__(message or self.default_message())

    def default_message(self) -> str:
        return "OTP operation failed"

    def extra(self) -> dict[str, Any]:
        """Additional fields exposed to callers alongside ``code``."""
        return {}


class ChallengeNotFoundError(OTPError):
    """No pending challenge: never sent, already used, or already swept."""

    code = "not_found"

    def default_message(self) -> str:
        return "No pending OTP for this identifier. Please request a new code."


class ChallengeExpiredError(OTPError):
    code = "expired"

    def default_message(self) -> str:
        return "OTP has expired. Please request a new code."


class TooManyAttemptsError(OTPError):
    code = "too_many_attempts"

    def default_message(self) -> str:
        return "Too many failed attempts. Please wait for the code to expire and request a new one."


class InvalidCodeError(OTPError):
    code = "invalid_code"

    def __init__(self, identifier: str, attempts_remaining: int) -> None:
        self.attempts_remaining = attempts_remaining
        super().__init__(identifier)

    def default_message(self) -> str:
        return f"Invalid OTP. {self.attempts_remaining} attempt(s) remaining."

    def extra(self) -> dict[str, Any]:
        return {"attempts_remaining": self.attempts_remaining}


class DeliveryFailedError(OTPError):
    """The delivery channel failed; the issued challenge stays valid."""

    code = "delivery_failed"

    def __init__(
        self, identifier: str, channel: str, expires_in_seconds: int, reason: str = ""
    ) -> None:
        self.channel = channel
        self.expires_in_seconds = expires_in_seconds
        self.reason = reason
        super().__init__(identifier)

    def default_message(self) -> str:
        msg = f"Failed to deliver OTP via {self.channel}"
        return f"{msg}: {self.reason}" if self.reason else msg

    def extra(self) -> dict[str, Any]:
        return {
            "identifier": self.identifier,
            "expires_in_seconds": self.expires_in_seconds,
        }


class OTPInternalError(OTPError):
    """A core invariant was violated; never caused by client input."""

    code = "internal_error"

    def default_message(self) -> str:
        return "Internal OTP store error"


class InvalidIdentifierError(ValueError):
    """The supplied phone number or email address is malformed."""

    code = "invalid_identifier"
