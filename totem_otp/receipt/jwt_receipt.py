"""
JWT Validation Receipts
=======================
HS256-signed, purpose-scoped proofs of successful OTP validation.
"""

import time
from typing import Callable, Optional, Sequence

import jwt
import structlog

from ..config import Settings
from ..errors import InvalidConfigError
from ..interfaces import ValidationReceiptGenerator
from ..models import OTPTarget, OTPValue, ValidationReceipt

logger = structlog.get_logger(__name__)

ALGORITHM = "HS256"
REQUIRED_CLAIMS = ["exp", "iat", "iss", "aud", "sub", "ref"]


class JWTValidationReceiptGenerator(ValidationReceiptGenerator):
    """
    Issues validation receipts as JWTs.

    The token carries the target, purposes and OTP reference. Expiry is
    reported back to the caller rather than enforced here so that an expired
    but authentic receipt can be told apart from a forged one.
    """

    def __init__(
        self,
        shared_secret: str,
        expiration_time_ms: int = 60 * 60 * 1000,
        issuer: str = "totem-otp",
        audience: str = "totem-otp-client",
        clock: Optional[Callable[[], int]] = None,
    ):
        """
        Args:
            shared_secret: HMAC secret for signing and verifying
            expiration_time_ms: Receipt lifetime
            issuer: ``iss`` claim
            audience: ``aud`` claim
            clock: Returns current epoch milliseconds (defaults to wall clock)
        """
        if not shared_secret:
            raise InvalidConfigError("Receipt shared secret cannot be empty")
        self.shared_secret = shared_secret
        self.expiration_time_ms = expiration_time_ms
        self.issuer = issuer
        self.audience = audience
        self._clock = clock or (lambda: int(time.time() * 1000))

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], int]] = None,
    ) -> "JWTValidationReceiptGenerator":
        settings = settings or Settings()
        return cls(
            shared_secret=settings.receipt_secret,
            expiration_time_ms=settings.receipt_ttl_ms,
            issuer=settings.receipt_issuer,
            audience=settings.receipt_audience,
            clock=clock,
        )

    async def create_validation_receipt(self, otp: OTPValue, purpose: Sequence[str]) -> str:
        now_ms = self._clock()
        payload = {
            "target": otp.target.to_dict(),
            "purpose": list(purpose),
            "ref": otp.reference,
            "iat": now_ms // 1000,
            "exp": (now_ms + self.expiration_time_ms) // 1000,
            "iss": self.issuer,
            "aud": self.audience,
            "sub": otp.target.subject,
        }
        return jwt.encode(payload, self.shared_secret, algorithm=ALGORITHM)

    async def validate_receipt(self, reference: str, receipt: str) -> ValidationReceipt:
        try:
            payload = jwt.decode(
                receipt,
                self.shared_secret,
                algorithms=[ALGORITHM],
                issuer=self.issuer,
                audience=self.audience,
                options={"require": REQUIRED_CLAIMS, "verify_exp": False, "verify_iat": False},
            )
        except jwt.InvalidTokenError as e:
            raise ValueError(f"Invalid JWT receipt: {e}") from e

        if payload.get("ref") != reference:
            logger.warning("Receipt reference mismatch", reference=reference)
            raise ValueError("Invalid JWT receipt: reference does not match")

        try:
            target = OTPTarget.from_dict(payload["target"])
            purpose = [str(p) for p in payload["purpose"]]
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Invalid JWT receipt: malformed claims ({e})") from e

        return ValidationReceipt(
            target=target,
            purpose=purpose,
            expires_at_ms=int(payload["exp"]) * 1000,
        )
