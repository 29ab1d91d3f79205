"""
Shared fixtures for OTP engine tests.
"""

from typing import List
from unittest.mock import AsyncMock, MagicMock

import pytest

from totem_otp.config import (
    DIGITS,
    UPPERCASE,
    AgingPolicy,
    DeliveryAgentConfig,
    GenerationSpec,
    Schema,
    TotemOTPConfiguration,
)
from totem_otp.interfaces import DeliveryAgent, OTPStorage, ValidationReceiptGenerator
from totem_otp.models import OTPTarget, OTPValue, StoredOTP, TargetType

NOW_MS = 1_700_000_000_000


class FakeClock:
    """Settable epoch-millisecond clock."""

    def __init__(self, now: int = NOW_MS):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class RecordingDeliveryAgent(DeliveryAgent):
    """Delivery agent that remembers what it sent."""

    def __init__(self):
        self.sent: List[OTPValue] = []

    async def send_message_to_audience(self, otp: OTPValue) -> str:
        self.sent.append(otp)
        return f"receipt-{len(self.sent)}"


def make_schema(match=None, otp_length=6, success_validate_count=1) -> Schema:
    return Schema(
        match=match,
        otp=GenerationSpec(charset=[DIGITS], length=otp_length),
        reference=GenerationSpec(charset=[UPPERCASE + DIGITS], length=8),
        aging=AgingPolicy(
            success_validate_count=success_validate_count,
            purge_from_db_in=1_800_000,
            can_resend_in=120_000,
            expires_in=300_000,
        ),
    )


def make_storage(blocked_ms: int = 0, supports_mark_as_sent: bool = True) -> MagicMock:
    storage = MagicMock(spec=OTPStorage)
    storage.supports_mark_as_sent = supports_mark_as_sent
    storage.mark_requested = AsyncMock(return_value=blocked_ms)
    storage.unmark_requested = AsyncMock(return_value=None)
    storage.store = AsyncMock(return_value=None)
    storage.fetch_and_used = AsyncMock(return_value=None)
    storage.mark_as_sent = AsyncMock(return_value=None)
    return storage


def make_record(target: OTPTarget, used: int = 1) -> StoredOTP:
    return StoredOTP(
        target=target,
        value="123456",
        reference="REF12345",
        expires_at_ms=NOW_MS + 300_000,
        resend_allowed_at_ms=NOW_MS + 120_000,
        used=used,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def email_target():
    return OTPTarget(type=TargetType.EMAIL, value="test@example.com")


@pytest.fixture
def storage():
    return make_storage()


@pytest.fixture
def delivery_agent():
    agent = MagicMock(spec=DeliveryAgent)
    agent.send_message_to_audience = AsyncMock(return_value="receipt-123")
    return agent


@pytest.fixture
def receipt_generator():
    generator = MagicMock(spec=ValidationReceiptGenerator)
    generator.create_validation_receipt = AsyncMock(return_value="receipt-token-123")
    generator.validate_receipt = AsyncMock()
    return generator


@pytest.fixture
def configuration(storage, delivery_agent):
    return TotemOTPConfiguration(
        storage=MagicMock(return_value=storage),
        schemas=[make_schema()],
        delivery_agents=[DeliveryAgentConfig(agent=lambda: delivery_agent)],
    )
