"""
OTP Generator
=============
Random OTP and reference values drawn from configured charsets.
"""

import secrets
from typing import Sequence, Tuple

from .config import GenerationSpec
from .errors import InvalidConfigError


def generate_random_string(charset: Sequence[str], length: int) -> str:
    """
    Generate a random string.

    All charset fragments are joined into one alphabet and each character
    is drawn from it independently.

    Args:
        charset: Ordered non-empty string fragments, e.g. ["0123456789"]
        length: Number of characters

    Returns:
        Random string of exactly ``length`` characters

    Raises:
        InvalidConfigError: If the charset is empty or length is not positive
    """
    if not charset:
        raise InvalidConfigError("Charset cannot be empty")

    if length <= 0:
        raise InvalidConfigError("Length must be greater than 0")

    alphabet = "".join(charset)
    if not alphabet:
        raise InvalidConfigError("Combined charset cannot be empty")

    return "".join(secrets.choice(alphabet) for _ in range(length))


def generate_value(spec: GenerationSpec) -> str:
    return generate_random_string(spec.charset, spec.length)


def generate_otp_and_reference(
    otp_spec: GenerationSpec,
    reference_spec: GenerationSpec,
) -> Tuple[str, str]:
    """
    Generate an OTP value and its reference independently.

    Returns:
        Tuple of (otp, reference)
    """
    return generate_value(otp_spec), generate_value(reference_spec)
