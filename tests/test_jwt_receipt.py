"""
Tests for JWT validation receipts.
"""

import jwt
import pytest

from totem_otp.config import Settings
from totem_otp.errors import InvalidConfigError
from totem_otp.models import OTPTarget, OTPValue, TargetType
from totem_otp.receipt import JWTValidationReceiptGenerator

from conftest import NOW_MS

SECRET = "test-secret-key-32-characters-long-for-security"


@pytest.fixture
def generator(clock):
    return JWTValidationReceiptGenerator(
        shared_secret=SECRET,
        expiration_time_ms=60 * 60 * 1000,
        issuer="test-issuer",
        audience="test-audience",
        clock=clock,
    )


@pytest.fixture
def otp(email_target):
    return OTPValue(
        target=email_target,
        value="123456",
        reference="REF123",
        expires_at_ms=NOW_MS + 300_000,
        resend_allowed_at_ms=NOW_MS + 120_000,
    )


def decode_unverified(token):
    return jwt.decode(token, options={"verify_signature": False})


class TestCreateReceipt:
    """Tests for create_validation_receipt."""

    @pytest.mark.asyncio
    async def test_claims(self, generator, otp):
        token = await generator.create_validation_receipt(otp, ["login", "transfer"])

        claims = decode_unverified(token)
        assert token.count(".") == 2
        assert claims["target"] == {"type": "email", "value": "test@example.com"}
        assert claims["purpose"] == ["login", "transfer"]
        assert claims["ref"] == "REF123"
        assert claims["iss"] == "test-issuer"
        assert claims["aud"] == "test-audience"
        assert claims["sub"] == "email:test@example.com"
        assert claims["iat"] == NOW_MS // 1000
        assert claims["exp"] == (NOW_MS + 3_600_000) // 1000

    @pytest.mark.asyncio
    async def test_msisdn_subject(self, generator, otp):
        otp.target = OTPTarget(TargetType.MSISDN, "+1234567890")

        claims = decode_unverified(await generator.create_validation_receipt(otp, ["login"]))

        assert claims["sub"] == "msisdn:+1234567890"

    def test_empty_secret_rejected(self):
        with pytest.raises(InvalidConfigError):
            JWTValidationReceiptGenerator(shared_secret="")


class TestValidateReceipt:
    """Tests for validate_receipt."""

    @pytest.mark.asyncio
    async def test_round_trip(self, generator, otp, email_target):
        token = await generator.create_validation_receipt(otp, ["login"])

        receipt = await generator.validate_receipt("REF123", token)

        assert receipt.target == email_target
        assert receipt.purpose == ["login"]
        assert receipt.expires_at_ms == NOW_MS + 3_600_000

    @pytest.mark.asyncio
    async def test_unique_identifier_preserved(self, generator, otp):
        otp.target = OTPTarget(TargetType.EMAIL, "test@example.com", "user-123")
        token = await generator.create_validation_receipt(otp, ["login"])

        receipt = await generator.validate_receipt("REF123", token)

        assert receipt.target.unique_identifier == "user-123"

    @pytest.mark.asyncio
    async def test_expired_token_still_decodes(self, generator, otp, clock):
        """Expiry is left to the engine so it can report it distinctly."""
        token = await generator.create_validation_receipt(otp, ["login"])
        clock.advance(2 * 3_600_000)

        receipt = await generator.validate_receipt("REF123", token)

        assert receipt.is_expired(clock())

    @pytest.mark.asyncio
    async def test_reference_mismatch(self, generator, otp):
        token = await generator.create_validation_receipt(otp, ["login"])

        with pytest.raises(ValueError, match="reference"):
            await generator.validate_receipt("OTHER", token)

    @pytest.mark.asyncio
    async def test_tampered_signature(self, generator, otp):
        token = await generator.create_validation_receipt(otp, ["login"])
        header, payload, signature = token.split(".")
        middle = len(signature) // 2
        flipped = "A" if signature[middle] != "A" else "B"
        tampered = ".".join([header, payload, signature[:middle] + flipped + signature[middle + 1:]])

        with pytest.raises(ValueError, match="Invalid JWT receipt"):
            await generator.validate_receipt("REF123", tampered)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "overrides",
        [
            {"shared_secret": "another-secret-key-32-characters-long-value"},
            {"issuer": "someone-else"},
            {"audience": "another-client"},
        ],
    )
    async def test_foreign_tokens_rejected(self, generator, otp, clock, overrides):
        options = {
            "shared_secret": SECRET,
            "issuer": "test-issuer",
            "audience": "test-audience",
            "clock": clock,
        }
        options.update(overrides)
        foreign = JWTValidationReceiptGenerator(**options)
        token = await foreign.create_validation_receipt(otp, ["login"])

        with pytest.raises(ValueError):
            await generator.validate_receipt("REF123", token)

    @pytest.mark.asyncio
    async def test_missing_reference_claim(self, generator):
        token = jwt.encode(
            {
                "target": {"type": "email", "value": "test@example.com"},
                "purpose": ["login"],
                "iat": NOW_MS // 1000,
                "exp": NOW_MS // 1000 + 60,
                "iss": "test-issuer",
                "aud": "test-audience",
                "sub": "email:test@example.com",
            },
            SECRET,
            algorithm="HS256",
        )

        with pytest.raises(ValueError):
            await generator.validate_receipt("REF123", token)

    @pytest.mark.asyncio
    async def test_garbage_token(self, generator):
        with pytest.raises(ValueError):
            await generator.validate_receipt("REF123", "not-a-jwt")


class TestFromSettings:
    """Tests for building the generator from settings."""

    @pytest.mark.asyncio
    async def test_claims_follow_settings(self, clock, otp):
        settings = Settings(
            receipt_secret=SECRET,
            receipt_issuer="settings-issuer",
            receipt_audience="settings-audience",
            receipt_ttl_ms=120_000,
        )
        generator = JWTValidationReceiptGenerator.from_settings(settings, clock=clock)

        claims = decode_unverified(await generator.create_validation_receipt(otp, ["login"]))

        assert claims["iss"] == "settings-issuer"
        assert claims["aud"] == "settings-audience"
        assert claims["exp"] == (NOW_MS + 120_000) // 1000

    def test_missing_secret_in_environment(self, monkeypatch):
        monkeypatch.delenv("TOTEM_OTP_RECEIPT_SECRET", raising=False)

        with pytest.raises(InvalidConfigError):
            JWTValidationReceiptGenerator.from_settings()
