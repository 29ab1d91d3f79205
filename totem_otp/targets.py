"""
Target Utilities
================
Build canonical email and MSISDN delivery targets.
"""

import re
from typing import Optional

from .errors import InvalidTargetError
from .models import OTPTarget, TargetType

E164_PATTERN = re.compile(r"^\+[1-9]\d{1,14}$")
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def validate_e164(phone: str) -> bool:
    """Validate E.164 phone number format."""
    return bool(E164_PATTERN.match(phone))


def normalize_phone(phone: str, default_country: str = "1") -> str:
    """
    Normalize a phone number to E.164 format.

    Args:
        phone: Raw phone number
        default_country: Default country code (without +)

    Returns:
        E.164 formatted number
    """
    digits = re.sub(r"\D", "", phone)

    if phone.strip().startswith("+"):
        return f"+{digits}"

    # 10 digits: national number without country code
    if len(digits) == 10:
        return f"+{default_country}{digits}"

    return f"+{digits}"


def msisdn_target(
    phone: str,
    unique_identifier: Optional[str] = None,
    default_country: str = "1",
) -> OTPTarget:
    """Build an MSISDN target, raising InvalidTargetError unless it normalizes to E.164."""
    normalized = normalize_phone(phone, default_country)
    if not validate_e164(normalized):
        raise InvalidTargetError(f"Not a valid E.164 number: {phone!r}")
    return OTPTarget(TargetType.MSISDN, normalized, unique_identifier)


def email_target(address: str, unique_identifier: Optional[str] = None) -> OTPTarget:
    """Build an email target with a lower-cased domain."""
    address = address.strip()
    if not EMAIL_PATTERN.match(address):
        raise InvalidTargetError(f"Not a valid email address: {address!r}")
    local, domain = address.rsplit("@", 1)
    return OTPTarget(TargetType.EMAIL, f"{local}@{domain.lower()}", unique_identifier)
