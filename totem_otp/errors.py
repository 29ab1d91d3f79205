"""
OTP Errors
==========
Exception taxonomy raised by the OTP engine and its capabilities.

Every error carries a stable ``code`` (safe to return to clients) and a
suggested HTTP-equivalent ``status_code`` for services that surface them.
"""

from typing import Optional


class TotemOTPError(Exception):
    """Base exception for all OTP engine errors."""

    code: str = "OTP_ERROR"
    status_code: int = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ConfigurationError(TotemOTPError):
    """Raised when configuration cannot serve the current call."""
    pass


class InvalidConfigError(ConfigurationError):
    """Raised for a bad generator spec or aging policy."""

    code = "INVALID_CONFIG"


class NoSchemaMatchedError(ConfigurationError):
    """No configured schema accepts the target."""

    code = "NO_SCHEMA_MATCHED"
    status_code = 400

    def __init__(self, message: str = "No schema matched the target"):
        super().__init__(message)


class NoDeliveryAgentMatchedError(ConfigurationError):
    """No configured delivery agent accepts the target."""

    code = "NO_DELIVERY_AGENT_MATCHED"
    status_code = 400

    def __init__(self, message: str = "No delivery agent matched the target"):
        super().__init__(message)


class NoReceiptGeneratorError(ConfigurationError):
    """A validation receipt was requested but no generator is configured."""

    code = "NO_RECEIPT_GENERATOR"

    def __init__(self, message: str = "No validation receipt generator configured"):
        super().__init__(message)


class ResendBlockedError(TotemOTPError):
    """The recipient already has an outstanding OTP within the resend window."""

    code = "RESEND_BLOCKED"
    status_code = 429

    def __init__(self, ttl_ms: int):
        self.ttl_ms = ttl_ms
        super().__init__(f"Resend is being blocked for {ttl_ms}ms")


class OTPMismatchedError(TotemOTPError):
    """
    Wrong OTP value or unknown reference.

    Both cases share this one error so callers cannot probe which references exist.
    """

    code = "OTP_MISMATCHED"
    status_code = 400

    def __init__(self, message: str = "OTP value does not match"):
        super().__init__(message)


class OTPUsedError(TotemOTPError):
    """The OTP has been validated more times than its schema allows."""

    code = "OTP_USED"
    status_code = 400

    def __init__(self, used_count: int):
        self.used_count = used_count
        super().__init__(f"OTP has been used too many times: {used_count}")


class ValidationReceiptError(TotemOTPError):
    """Base exception for rejected validation receipts."""

    status_code = 400


class ValidationReceiptInvalidError(ValidationReceiptError):
    """The receipt failed verification (signature, issuer, audience or reference)."""

    code = "RECEIPT_INVALID"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Validation receipt error: {reason}")


class ValidationReceiptExpiredError(ValidationReceiptError):
    """The receipt is authentic but past its expiry."""

    code = "RECEIPT_EXPIRED"

    def __init__(self, expires_at_ms: Optional[int] = None):
        self.expires_at_ms = expires_at_ms
        super().__init__("Validation receipt has expired")


class ValidationReceiptPurposeMismatchError(ValidationReceiptError):
    """The receipt was not issued for the requested purpose."""

    code = "RECEIPT_PURPOSE_MISMATCH"

    def __init__(self, purpose: str):
        self.purpose = purpose
        super().__init__(f"Validation receipt was not issued for purpose '{purpose}'")


class DeliveryFailedError(TotemOTPError):
    """The delivery transport could not hand the OTP over."""

    code = "DELIVERY_FAILED"
    status_code = 502

    def __init__(self, message: str = "OTP delivery failed", status: Optional[int] = None):
        self.status = status
        super().__init__(message)


class InvalidTargetError(TotemOTPError):
    """A target value is not in canonical email or E.164 form."""

    code = "INVALID_TARGET"
    status_code = 400
