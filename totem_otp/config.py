"""
OTP Configuration
=================
Schemas, delivery agent lists and environment settings.

Configuration is loaded once and treated as immutable for the lifetime
of the engine.
"""

import os
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from .errors import InvalidConfigError
from .interfaces import DeliveryAgent, OTPStorage, ValidationReceiptGenerator
from .models import OTPTarget

TargetPredicate = Callable[[OTPTarget], bool]

DIGITS = "0123456789"
UPPERCASE = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"


@dataclass(frozen=True)
class GenerationSpec:
    """Charset fragments and length for a generated value."""
    charset: Sequence[str]
    length: int

    def validate(self) -> None:
        if not self.charset or not "".join(self.charset):
            raise InvalidConfigError("Charset cannot be empty")
        if self.length <= 0:
            raise InvalidConfigError("Length must be greater than 0")


@dataclass(frozen=True)
class AgingPolicy:
    """OTP lifecycle timing. All durations are milliseconds."""
    success_validate_count: int = 1
    purge_from_db_in: int = 30 * 60 * 1000
    can_resend_in: int = 2 * 60 * 1000
    expires_in: int = 5 * 60 * 1000

    def validate(self) -> None:
        if self.success_validate_count < 1:
            raise InvalidConfigError("success_validate_count must be at least 1")
        for name in ("purge_from_db_in", "can_resend_in", "expires_in"):
            if getattr(self, name) < 0:
                raise InvalidConfigError(f"{name} cannot be negative")


@dataclass(frozen=True)
class Schema:
    """
    OTP generation and aging rules for the targets it matches.

    A schema without ``match`` accepts every target.
    """
    otp: GenerationSpec
    reference: GenerationSpec
    aging: AgingPolicy = field(default_factory=AgingPolicy)
    match: Optional[TargetPredicate] = None

    def matches(self, target: OTPTarget) -> bool:
        return self.match is None or bool(self.match(target))

    def validate(self) -> None:
        self.otp.validate()
        self.reference.validate()
        self.aging.validate()


@dataclass(frozen=True)
class DeliveryAgentConfig:
    """A delivery agent factory and the targets it serves."""
    agent: Callable[[], DeliveryAgent]
    match: Optional[TargetPredicate] = None

    def matches(self, target: OTPTarget) -> bool:
        return self.match is None or bool(self.match(target))


@dataclass(frozen=True)
class TotemOTPConfiguration:
    """Everything the OTP engine needs. Lists are scanned in order, first match wins."""
    storage: Callable[[], OTPStorage]
    schemas: List[Schema]
    delivery_agents: List[DeliveryAgentConfig]
    validation_receipt: Optional[Callable[[], ValidationReceiptGenerator]] = None

    def __post_init__(self):
        for schema in self.schemas:
            schema.validate()


def _env(name: str, default: str) -> Callable[[], str]:
    return lambda: os.environ.get(name, default)


@dataclass
class Settings:
    """
    Environment settings for wiring the bundled capabilities.

    Fields default to environment variables read when the instance is
    created; explicit arguments take precedence. Consumed by the
    ``from_settings`` constructors of ``RedisOTPStorage``,
    ``JWTValidationReceiptGenerator`` and ``WebhookDeliveryAgent``.
    """
    redis_url: str = field(default_factory=_env("TOTEM_OTP_REDIS_URL", "redis://localhost:6379/0"))
    key_prefix: str = field(default_factory=_env("TOTEM_OTP_KEY_PREFIX", "totem-otp"))
    receipt_secret: str = field(default_factory=_env("TOTEM_OTP_RECEIPT_SECRET", ""))
    receipt_issuer: str = field(default_factory=_env("TOTEM_OTP_RECEIPT_ISSUER", "totem-otp"))
    receipt_audience: str = field(default_factory=_env("TOTEM_OTP_RECEIPT_AUDIENCE", "totem-otp-client"))
    receipt_ttl_ms: int = field(
        default_factory=lambda: int(os.environ.get("TOTEM_OTP_RECEIPT_TTL_MS", "3600000"))
    )
    webhook_timeout: float = field(
        default_factory=lambda: float(os.environ.get("TOTEM_OTP_WEBHOOK_TIMEOUT", "30.0"))
    )
