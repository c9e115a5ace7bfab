"""Tests for the VerificationEngine — expiry, lockout and single-use rules."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from datetime import datetime, timedelta

import pytest
from conftest import T0

from otp_service.core.errors import (
    ChallengeExpiredError,
    ChallengeNotFoundError,
    InvalidCodeError,
    OTPInternalError,
    TooManyAttemptsError,
)
from otp_service.core.models import Challenge
from otp_service.core.store import ChallengeStore
from otp_service.core.verification import VerificationEngine

PHONE = "254700111222"
CODE = "482913"


@pytest.fixture
def seeded_store() -> ChallengeStore:
    store = ChallengeStore()
    store.put(
        PHONE,
        Challenge(
            identifier=PHONE,
            code=CODE,
            created_at=T0,
            expires_at=T0 + timedelta(seconds=600),
            max_attempts=3,
        ),
    )
    return store


@pytest.fixture
def engine(seeded_store, clock) -> VerificationEngine:
    return VerificationEngine(seeded_store, clock)


# ──────────────────────────────────────────────────────────
# Happy path and single use
# ──────────────────────────────────────────────────────────
def test_correct_code_verifies_and_consumes(engine, seeded_store):
    result = engine.verify(PHONE, CODE)
    assert result.verified is True
    assert result.success is True
    assert PHONE not in seeded_store


def test_code_cannot_be_replayed(engine):
    engine.verify(PHONE, CODE)
    with pytest.raises(ChallengeNotFoundError):
        engine.verify(PHONE, CODE)


def test_unknown_identifier_is_not_found(engine):
    with pytest.raises(ChallengeNotFoundError) as exc_info:
        engine.verify("+15550000000", CODE)
    assert exc_info.value.code == "not_found"


# ──────────────────────────────────────────────────────────
# Expiry
# ──────────────────────────────────────────────────────────
def test_expired_challenge_is_rejected_and_evicted(engine, seeded_store):
    with pytest.raises(ChallengeExpiredError):
        engine.verify(PHONE, CODE, now=T0 + timedelta(seconds=601))
    assert PHONE not in seeded_store


def test_still_valid_at_exact_expiry(engine):
    assert engine.verify(PHONE, CODE, now=T0 + timedelta(seconds=600)).verified


def test_expiry_checked_before_lockout(engine, seeded_store):
    locked = replace(seeded_store.get(PHONE), attempts=3)
    seeded_store.put(PHONE, locked)
    with pytest.raises(ChallengeExpiredError):
        engine.verify(PHONE, CODE, now=T0 + timedelta(seconds=700))


# ──────────────────────────────────────────────────────────
# Wrong codes and lockout
# ──────────────────────────────────────────────────────────
def test_wrong_code_counts_attempt(engine, seeded_store):
    with pytest.raises(InvalidCodeError) as exc_info:
        engine.verify(PHONE, "000000")
    assert exc_info.value.attempts_remaining == 2
    assert exc_info.value.extra() == {"attempts_remaining": 2}
    assert seeded_store.get(PHONE).attempts == 1


def test_lockout_after_max_attempts_even_with_correct_code(engine, seeded_store):
    for remaining in (2, 1, 0):
        with pytest.raises(InvalidCodeError) as exc_info:
            engine.verify(PHONE, "000000")
        assert exc_info.value.attempts_remaining == remaining

    with pytest.raises(TooManyAttemptsError):
        engine.verify(PHONE, CODE)

    # Locked challenges stay until they expire
    challenge = seeded_store.get(PHONE)
    assert challenge is not None
    assert challenge.attempts == 3


def test_lockout_does_not_increment_attempts(engine, seeded_store):
    seeded_store.put(PHONE, replace(seeded_store.get(PHONE), attempts=3))
    for _ in range(5):
        with pytest.raises(TooManyAttemptsError):
            engine.verify(PHONE, "000000")
    assert seeded_store.get(PHONE).attempts == 3


# ──────────────────────────────────────────────────────────
# Concrete scenario
# ──────────────────────────────────────────────────────────
def test_wrong_then_right_guess(engine, seeded_store):
    assert len(seeded_store) == 1
    assert seeded_store.get(PHONE).attempts == 0

    with pytest.raises(InvalidCodeError) as exc_info:
        engine.verify(PHONE, "000000")
    assert exc_info.value.attempts_remaining == 2
    assert seeded_store.get(PHONE).attempts == 1

    assert engine.verify(PHONE, CODE).verified
    assert len(seeded_store) == 0


# ──────────────────────────────────────────────────────────
# Corruption and concurrency
# ──────────────────────────────────────────────────────────
def test_corrupt_challenge_raises_internal_error(engine, seeded_store):
    seeded_store.put(PHONE, replace(seeded_store.get(PHONE), attempts=7))
    with pytest.raises(OTPInternalError) as exc_info:
        engine.verify(PHONE, CODE)
    assert exc_info.value.code == "internal_error"


def test_mismatched_identifier_raises_internal_error(engine, seeded_store):
    seeded_store.put("someone@example.com", seeded_store.get(PHONE))
    with pytest.raises(OTPInternalError):
        engine.verify("someone@example.com", CODE)


def _outcome(engine: VerificationEngine, code: str) -> str:
    try:
        engine.verify(PHONE, code)
    except (ChallengeNotFoundError, InvalidCodeError, TooManyAttemptsError) as exc:
        return exc.code
    return "verified"


def test_concurrent_correct_guesses_succeed_once(engine):
    with ThreadPoolExecutor(max_workers=8) as pool:
        outcomes = list(pool.map(lambda _: _outcome(engine, CODE), range(16)))
    assert outcomes.count("verified") == 1
    assert outcomes.count("not_found") == 15


def test_concurrent_wrong_guesses_never_lose_increments(engine, seeded_store):
    with ThreadPoolExecutor(max_workers=8) as pool:
        outcomes = list(pool.map(lambda _: _outcome(engine, "000000"), range(12)))
    assert outcomes.count("invalid_code") == 3
    assert outcomes.count("too_many_attempts") == 9
    assert seeded_store.get(PHONE).attempts == 3


# ──────────────────────────────────────────────────────────
# Naive timestamps
# ──────────────────────────────────────────────────────────
def test_naive_now_is_rejected_without_counting(engine, seeded_store):
    with pytest.raises(ValueError, match="timezone-aware"):
        engine.verify(PHONE, "000000", now=datetime(2026, 1, 1, 12, 5))
    assert seeded_store.get(PHONE).attempts == 0


def test_naive_clock_is_rejected(seeded_store):
    engine = VerificationEngine(seeded_store, clock=lambda: datetime(2026, 1, 1, 12, 5))
    with pytest.raises(ValueError, match="timezone-aware"):
        engine.verify(PHONE, CODE)
    assert PHONE in seeded_store
