"""Identifier normalisation for phone numbers and email addresses."""

from __future__ import annotations

import re

from otp_service.core.errors import InvalidIdentifierError

_PHONE_SEPARATORS = re.compile(r"[\s\-().]")
_PHONE_RE = re.compile(r"^\+?\d{7,15}$")
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def normalize_phone(raw: str) -> str:
    """Strip common separators: ``"+254 700-111 222"`` → ``"+254700111222"``."""
    phone = _PHONE_SEPARATORS.sub("", raw or "")
    if not _PHONE_RE.match(phone):
        raise InvalidIdentifierError(f"Invalid phone number: {raw!r}")
    return phone


def normalize_email(raw: str) -> str:
    email = (raw or "").strip().lower()
    if not _EMAIL_RE.match(email):
        raise InvalidIdentifierError(f"Invalid email address: {raw!r}")
    return email


def normalize_identifier(raw: str) -> str:
    """Normalise *raw* as an email if it contains ``@``, else as a phone number."""
    if "@" in (raw or ""):
        return normalize_email(raw)
    return normalize_phone(raw)
