"""
Capability Interfaces
=====================
Abstract base classes for the storage, delivery and receipt capabilities
the OTP engine is composed from.
"""

from abc import ABC, abstractmethod
from typing import Optional, Sequence

from .models import OTPValue, StoredOTP, ValidationReceipt


class OTPStorage(ABC):
    """
    Persistent OTP storage.

    ``mark_requested`` and ``fetch_and_used`` must be atomic at the storage
    layer: the engine holds no locks and issues no compare-and-swap itself.
    """

    supports_mark_as_sent: bool = False

    @abstractmethod
    async def mark_requested(self, recipient_key: str, blocked_for_ms: int) -> int:
        """
        Block the recipient from receiving another OTP.

        Args:
            recipient_key: Unique recipient address key
            blocked_for_ms: How long the block lasts if this call goes through

        Returns:
            0 when the recipient was open, otherwise the remaining block TTL in ms
        """

    @abstractmethod
    async def unmark_requested(self, recipient_key: str) -> None:
        """Lift a block imposed by ``mark_requested`` (rollback)."""

    @abstractmethod
    async def store(self, otp: OTPValue, deletable_at_ms: int) -> None:
        """
        Persist an OTP before it is delivered.

        Args:
            otp: The issued OTP
            deletable_at_ms: Epoch ms after which the record may be purged
        """

    @abstractmethod
    async def fetch_and_used(self, reference: str, value: str) -> Optional[StoredOTP]:
        """
        Atomically read the record for ``(reference, value)`` and increment its use count.

        Returns:
            The record with the incremented ``used`` count, or None if no record
            was stored under exactly this pair
        """

    async def mark_as_sent(self, reference: str, value: str, receipt_id: str) -> None:
        """Record the delivery receipt id. Only called when ``supports_mark_as_sent`` is set."""
        raise NotImplementedError(f"{type(self).__name__} does not track delivery receipts")


class DeliveryAgent(ABC):
    """Delivers a rendered OTP to its target."""

    @abstractmethod
    async def send_message_to_audience(self, otp: OTPValue) -> str:
        """
        Deliver the OTP.

        Returns:
            Opaque delivery receipt id
        """


class ValidationReceiptGenerator(ABC):
    """Issues and verifies signed, purpose-scoped validation receipts."""

    @abstractmethod
    async def create_validation_receipt(self, otp: OTPValue, purpose: Sequence[str]) -> str:
        """Create a tamper-evident token bound to ``otp.reference``."""

    @abstractmethod
    async def validate_receipt(self, reference: str, receipt: str) -> ValidationReceipt:
        """
        Verify a token and decode it.

        Must fail closed (raise) on any structural, signature, issuer,
        audience or reference mismatch.
        """
