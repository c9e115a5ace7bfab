"""Shared test fixtures."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from otp_service.channels.base import DeliveryChannel
from otp_service.channels.console import ConsoleChannel
from otp_service.core.models import OTPConfig
from otp_service.core.service import OTPService
from otp_service.core.store import ChallengeStore

T0 = datetime(2026, 1, 1, 12, 0, 0, tzinfo=UTC)


class FakeClock:
    """Deterministic clock that only moves when told to."""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class FailingChannel(DeliveryChannel):
    """Channel whose provider always rejects the message."""

    def __init__(self, name: str = "sms") -> None:
        self._name = name
        self.calls = 0

    @property
    def name(self) -> str:
        return self._name

    async def send(self, identifier: str, code: str) -> bool:
        self.calls += 1
        return False


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def config() -> OTPConfig:
    return OTPConfig(delivery_timeout_seconds=0.5)


@pytest.fixture
def store() -> ChallengeStore:
    return ChallengeStore()


@pytest.fixture
def channels() -> dict[str, ConsoleChannel]:
    return {"sms": ConsoleChannel("sms"), "email": ConsoleChannel("email")}


@pytest.fixture
def service(channels, config, store, clock) -> OTPService:
    return OTPService(channels=channels, config=config, store=store, clock=clock)
