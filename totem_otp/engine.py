"""
OTP Engine
==========
Request, validate and receipt flows over pluggable storage, delivery
and receipt capabilities.
"""

import time
from typing import Callable, Optional, Sequence, Union

import structlog

from .config import Schema, TotemOTPConfiguration
from .errors import (
    NoReceiptGeneratorError,
    OTPMismatchedError,
    OTPUsedError,
    ResendBlockedError,
    ValidationReceiptExpiredError,
    ValidationReceiptInvalidError,
    ValidationReceiptPurposeMismatchError,
)
from .generator import generate_otp_and_reference
from .interfaces import OTPStorage, ValidationReceiptGenerator
from .matcher import match_delivery_agent, match_schema
from .models import OTPTarget, OTPValue, ValidationReceipt

logger = structlog.get_logger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


class TotemOTP:
    """
    OTP lifecycle engine.

    Holds no locks: concurrent requests for one recipient race on
    ``OTPStorage.mark_requested`` and concurrent validations race on
    ``OTPStorage.fetch_and_used``. Nothing is retried here.
    """

    def __init__(
        self,
        configuration: TotemOTPConfiguration,
        clock: Optional[Callable[[], int]] = None,
    ):
        """
        Args:
            configuration: Schemas, delivery agents and capability factories
            clock: Returns current epoch milliseconds (defaults to wall clock)
        """
        self.configuration = configuration
        self._clock = clock or _now_ms
        self._storage: Optional[OTPStorage] = None
        self._receipt_generator: Optional[ValidationReceiptGenerator] = None

    @property
    def storage(self) -> OTPStorage:
        """Storage capability, built on first use and reused afterwards."""
        if self._storage is None:
            self._storage = self.configuration.storage()
        return self._storage

    @property
    def receipt_generator(self) -> ValidationReceiptGenerator:
        if self._receipt_generator is None:
            factory = self.configuration.validation_receipt
            if factory is None:
                raise NoReceiptGeneratorError()
            self._receipt_generator = factory()
        return self._receipt_generator

    def match_schema(self, target: OTPTarget) -> Schema:
        return match_schema(target, self.configuration.schemas)

    async def request(self, target: OTPTarget) -> OTPValue:
        """
        Issue and deliver a new OTP.

        Args:
            target: Delivery target

        Returns:
            The OTP as stored and delivered

        Raises:
            NoSchemaMatchedError: No schema accepts the target
            NoDeliveryAgentMatchedError: No delivery agent accepts the target
            ResendBlockedError: Recipient is still inside its resend window
        """
        schema = self.match_schema(target)
        agent = match_delivery_agent(target, self.configuration.delivery_agents)

        now = self._clock()
        otp, reference = generate_otp_and_reference(schema.otp, schema.reference)
        otp_value = OTPValue(
            target=target,
            value=otp,
            reference=reference,
            expires_at_ms=now + schema.aging.expires_in,
            resend_allowed_at_ms=now + schema.aging.can_resend_in,
        )

        recipient_key = target.recipient_key
        storage = self.storage
        ttl_ms = await storage.mark_requested(recipient_key, schema.aging.can_resend_in)
        if ttl_ms:
            logger.warning(
                "OTP resend blocked",
                target_type=target.type.value,
                ttl_ms=ttl_ms,
            )
            raise ResendBlockedError(ttl_ms)

        try:
            await storage.store(otp_value, now + schema.aging.purge_from_db_in)
            receipt_id = await agent.send_message_to_audience(otp_value)
            if storage.supports_mark_as_sent:
                await storage.mark_as_sent(reference, otp, receipt_id)
        except BaseException as e:
            # Includes cancellation: the block must not outlive a failed request
            logger.warning(
                "OTP request failed, releasing recipient block",
                reference=reference,
                error=repr(e),
            )
            try:
                await storage.unmark_requested(recipient_key)
            except Exception:
                logger.exception("Failed to release recipient block", reference=reference)
            raise

        logger.info(
            "OTP issued",
            reference=reference,
            target_type=target.type.value,
            expires_in=schema.aging.expires_in,
        )
        return otp_value

    async def validate(
        self,
        reference: str,
        otp_value: str,
        purpose: Optional[Sequence[str]] = None,
    ) -> Union[int, str]:
        """
        Validate an OTP against its reference.

        Every call consumes one use, including calls that end up over the limit.

        Args:
            reference: Reference returned by ``request``
            otp_value: OTP presented by the recipient
            purpose: When given, return a validation receipt scoped to these purposes

        Returns:
            The use count (1 on first success), or a receipt token if ``purpose`` is given

        Raises:
            OTPMismatchedError: Unknown reference or wrong value
            OTPUsedError: Validation limit exceeded
            NoReceiptGeneratorError: ``purpose`` given but no receipt generator configured
        """
        record = await self.storage.fetch_and_used(reference, otp_value)
        if record is None:
            logger.warning("OTP mismatched", reference=reference)
            raise OTPMismatchedError()

        # Re-resolved from live config, not stored with the record
        allowed = self.match_schema(record.target).aging.success_validate_count
        if record.used > allowed:
            logger.warning("OTP used too many times", reference=reference, used=record.used)
            raise OTPUsedError(record.used)

        logger.info("OTP validated", reference=reference, used=record.used)

        if purpose is None:
            return record.used

        # A bare string is one purpose, not a sequence of characters
        purposes = [purpose] if isinstance(purpose, str) else list(purpose)
        return await self.receipt_generator.create_validation_receipt(record, purposes)

    async def validate_receipt(
        self,
        reference: str,
        receipt: str,
        purpose: str,
    ) -> ValidationReceipt:
        """
        Verify a validation receipt for a given purpose.

        Raises:
            NoReceiptGeneratorError: No receipt generator configured
            ValidationReceiptInvalidError: Token failed verification
            ValidationReceiptExpiredError: Token is past its expiry
            ValidationReceiptPurposeMismatchError: Token not issued for ``purpose``
        """
        generator = self.receipt_generator
        try:
            result = await generator.validate_receipt(reference, receipt)
        except Exception as e:
            logger.warning("Validation receipt rejected", reference=reference, error=str(e))
            raise ValidationReceiptInvalidError(str(e)) from e

        if result.is_expired(self._clock()):
            raise ValidationReceiptExpiredError(result.expires_at_ms)

        if not result.allows(purpose):
            raise ValidationReceiptPurposeMismatchError(purpose)

        return result
