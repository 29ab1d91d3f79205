"""
Totem OTP
=========
One-time passcode lifecycle engine with pluggable storage, delivery
and validation receipts.
"""

__version__ = "0.1.0"

# Engine
from totem_otp.engine import TotemOTP

# Configuration
from totem_otp.config import (
    AgingPolicy,
    DeliveryAgentConfig,
    GenerationSpec,
    Schema,
    Settings,
    TotemOTPConfiguration,
)

# Models
from totem_otp.models import (
    OTPTarget,
    OTPValue,
    StoredOTP,
    TargetType,
    ValidationReceipt,
)

# Capabilities
from totem_otp.interfaces import (
    DeliveryAgent,
    OTPStorage,
    ValidationReceiptGenerator,
)

# Generator / Matcher
from totem_otp.generator import generate_otp_and_reference, generate_random_string
from totem_otp.matcher import match_delivery_agent, match_schema

# Targets
from totem_otp.targets import email_target, msisdn_target

# Errors
from totem_otp.errors import (
    TotemOTPError,
    ConfigurationError,
    InvalidConfigError,
    NoSchemaMatchedError,
    NoDeliveryAgentMatchedError,
    NoReceiptGeneratorError,
    ResendBlockedError,
    OTPMismatchedError,
    OTPUsedError,
    ValidationReceiptError,
    ValidationReceiptInvalidError,
    ValidationReceiptExpiredError,
    ValidationReceiptPurposeMismatchError,
    DeliveryFailedError,
    InvalidTargetError,
)

# Logging
from totem_otp.logging_setup import setup_logging

__all__ = [
    # Engine
    "TotemOTP",
    # Configuration
    "AgingPolicy",
    "DeliveryAgentConfig",
    "GenerationSpec",
    "Schema",
    "Settings",
    "TotemOTPConfiguration",
    # Models
    "OTPTarget",
    "OTPValue",
    "StoredOTP",
    "TargetType",
    "ValidationReceipt",
    # Capabilities
    "DeliveryAgent",
    "OTPStorage",
    "ValidationReceiptGenerator",
    # Generator / Matcher
    "generate_otp_and_reference",
    "generate_random_string",
    "match_delivery_agent",
    "match_schema",
    # Targets
    "email_target",
    "msisdn_target",
    # Errors
    "TotemOTPError",
    "ConfigurationError",
    "InvalidConfigError",
    "NoSchemaMatchedError",
    "NoDeliveryAgentMatchedError",
    "NoReceiptGeneratorError",
    "ResendBlockedError",
    "OTPMismatchedError",
    "OTPUsedError",
    "ValidationReceiptError",
    "ValidationReceiptInvalidError",
    "ValidationReceiptExpiredError",
    "ValidationReceiptPurposeMismatchError",
    "DeliveryFailedError",
    "InvalidTargetError",
    # Logging
    "setup_logging",
]
