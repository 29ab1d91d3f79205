"""
OTP Models
==========
Data models for delivery targets, issued OTPs and validation receipts.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class TargetType(str, Enum):
    """OTP delivery target kinds."""
    MSISDN = "msisdn"
    EMAIL = "email"


@dataclass(frozen=True)
class OTPTarget:
    """
    Where an OTP is delivered.

    ``value`` is expected in canonical form: E.164 for msisdn, a valid address
    for email. See ``totem_otp.targets`` for helpers that build one.
    """
    type: TargetType
    value: str
    unique_identifier: Optional[str] = None

    def __post_init__(self):
        # Accept plain strings from config or JSON
        if not isinstance(self.type, TargetType):
            object.__setattr__(self, "type", TargetType(self.type))

    @property
    def recipient_key(self) -> str:
        """Identity used for resend blocking."""
        if self.unique_identifier:
            return self.unique_identifier
        return f"{self.type.value}|{self.value}"

    @property
    def subject(self) -> str:
        return f"{self.type.value}:{self.value}"

    def to_dict(self) -> Dict[str, Any]:
        data = {"type": self.type.value, "value": self.value}
        if self.unique_identifier:
            data["unique_identifier"] = self.unique_identifier
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OTPTarget":
        return cls(
            type=TargetType(data["type"]),
            value=data["value"],
            unique_identifier=data.get("unique_identifier"),
        )


@dataclass
class OTPValue:
    """An issued OTP, as stored and handed to the delivery agent."""
    target: OTPTarget
    value: str
    reference: str
    expires_at_ms: int
    resend_allowed_at_ms: int


@dataclass
class StoredOTP(OTPValue):
    """An OTP read back from storage along with its usage state."""
    used: int = 0
    receipt_id: Optional[str] = None


@dataclass
class ValidationReceipt:
    """Decoded proof that a target completed OTP validation."""
    target: OTPTarget
    purpose: List[str] = field(default_factory=list)
    expires_at_ms: int = 0

    def is_expired(self, now_ms: int) -> bool:
        return self.expires_at_ms <= now_ms

    def allows(self, purpose: str) -> bool:
        return purpose in self.purpose
