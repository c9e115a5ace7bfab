"""Tests for the DispatchCoordinator — issuing, delivering and resending."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta

import pytest
from conftest import T0, FailingChannel

from otp_service.channels.base import DeliveryChannel
from otp_service.channels.console import ConsoleChannel
from otp_service.core.dispatch import DispatchCoordinator
from otp_service.core.errors import DeliveryFailedError, InvalidCodeError
from otp_service.core.models import OTPConfig
from otp_service.core.verification import VerificationEngine

PHONE = "254700111222"


class SlowChannel(DeliveryChannel):
    @property
    def name(self) -> str:
        return "sms"

    async def send(self, identifier: str, code: str) -> bool:
        await asyncio.sleep(5)
        return True


class BrokenChannel(DeliveryChannel):
    @property
    def name(self) -> str:
        return "email"

    async def send(self, identifier: str, code: str) -> bool:
        raise ConnectionError("provider unreachable")


@pytest.fixture
def coordinator(store, config, clock) -> DispatchCoordinator:
    return DispatchCoordinator(store, config, clock)


# ──────────────────────────────────────────────────────────
# Send
# ──────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_send_stores_challenge_and_delivers(coordinator, store):
    channel = ConsoleChannel("sms")

    result = await coordinator.send(PHONE, channel)

    assert result.success is True
    assert result.identifier == PHONE
    assert result.expires_in_seconds == 600
    assert result.channel == "sms"

    challenge = store.get(PHONE)
    assert challenge.attempts == 0
    assert challenge.max_attempts == 3
    assert challenge.created_at == T0
    assert challenge.expires_at == T0 + timedelta(seconds=600)
    assert channel.sent == [(PHONE, challenge.code)]
    assert len(challenge.code) == 6 and challenge.code.isdigit()


@pytest.mark.asyncio
async def test_resend_replaces_previous_code(coordinator, store, clock):
    channel = ConsoleChannel("sms")
    await coordinator.send(PHONE, channel)
    first = store.get(PHONE)

    clock.advance(1)
    await coordinator.resend(PHONE, channel)
    second = store.get(PHONE)

    assert len(store) == 1
    assert second.created_at == T0 + timedelta(seconds=1)
    assert second.attempts == 0
    assert [code for _, code in channel.sent] == [first.code, second.code]

    if first.code != second.code:
        with pytest.raises(InvalidCodeError):
            VerificationEngine(store, clock).verify(PHONE, first.code)


@pytest.mark.asyncio
async def test_resend_resets_attempts(coordinator, store, clock):
    channel = ConsoleChannel("sms")
    await coordinator.send(PHONE, channel)
    engine = VerificationEngine(store, clock)
    with pytest.raises(InvalidCodeError):
        engine.verify(PHONE, "not-a-code")

    await coordinator.resend(PHONE, channel)
    assert store.get(PHONE).attempts == 0


# ──────────────────────────────────────────────────────────
# Delivery failures keep the challenge
# ──────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_rejected_delivery_keeps_challenge(coordinator, store):
    channel = FailingChannel()

    with pytest.raises(DeliveryFailedError) as exc_info:
        await coordinator.send(PHONE, channel)

    assert exc_info.value.code == "delivery_failed"
    assert exc_info.value.extra() == {"identifier": PHONE, "expires_in_seconds": 600}
    assert channel.calls == 1
    assert PHONE in store


@pytest.mark.asyncio
async def test_raising_channel_is_reported(coordinator, store):
    with pytest.raises(DeliveryFailedError) as exc_info:
        await coordinator.send("a@example.com", BrokenChannel())
    assert "ConnectionError" in str(exc_info.value)
    assert isinstance(exc_info.value.__cause__, ConnectionError)
    assert "a@example.com" in store


@pytest.mark.asyncio
async def test_slow_channel_times_out(store, clock):
    coordinator = DispatchCoordinator(
        store, OTPConfig(delivery_timeout_seconds=0.05), clock
    )
    with pytest.raises(DeliveryFailedError) as exc_info:
        await coordinator.send(PHONE, SlowChannel())
    assert exc_info.value.reason == "timed out"
    assert PHONE in store


@pytest.mark.asyncio
async def test_naive_now_is_rejected_before_delivery(coordinator, store):
    channel = ConsoleChannel("sms")
    with pytest.raises(ValueError, match="timezone-aware"):
        await coordinator.send(PHONE, channel, now=datetime(2026, 1, 1, 12, 0))
    assert channel.sent == []
    assert PHONE not in store
