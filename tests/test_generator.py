"""
Tests for OTP and reference generation.
"""

import re

import pytest

from totem_otp.config import DIGITS, UPPERCASE, GenerationSpec
from totem_otp.errors import InvalidConfigError
from totem_otp.generator import generate_otp_and_reference, generate_random_string


class TestGenerateRandomString:
    """Tests for generate_random_string."""

    @pytest.mark.parametrize("length", [1, 4, 6, 32])
    def test_exact_length(self, length):
        """Output should have exactly the requested length."""
        assert len(generate_random_string([DIGITS], length)) == length

    def test_characters_come_from_all_fragments(self):
        """Every character should come from the union of fragments."""
        fragments = ["abc", "XYZ", "789"]
        alphabet = set("".join(fragments))

        for _ in range(50):
            value = generate_random_string(fragments, 20)
            assert set(value) <= alphabet

    def test_uses_every_fragment(self):
        """Characters from later fragments should be drawn too."""
        seen = set()
        for _ in range(200):
            seen.update(generate_random_string(["a", "b"], 10))
        assert seen == {"a", "b"}

    def test_single_character_alphabet(self):
        assert generate_random_string(["7"], 5) == "77777"

    def test_empty_charset_fails(self):
        with pytest.raises(InvalidConfigError):
            generate_random_string([], 6)

    def test_all_empty_fragments_fail(self):
        with pytest.raises(InvalidConfigError):
            generate_random_string(["", ""], 6)

    @pytest.mark.parametrize("length", [0, -1])
    def test_non_positive_length_fails(self, length):
        with pytest.raises(InvalidConfigError):
            generate_random_string([DIGITS], length)


class TestGenerateOTPAndReference:
    """Tests for generate_otp_and_reference."""

    def test_generates_both_values(self):
        otp, reference = generate_otp_and_reference(
            GenerationSpec(charset=[DIGITS], length=6),
            GenerationSpec(charset=[UPPERCASE, DIGITS], length=8),
        )

        assert re.fullmatch(r"[0-9]{6}", otp)
        assert re.fullmatch(r"[A-Z0-9]{8}", reference)

    def test_invalid_reference_spec_fails(self):
        with pytest.raises(InvalidConfigError):
            generate_otp_and_reference(
                GenerationSpec(charset=[DIGITS], length=6),
                GenerationSpec(charset=[], length=8),
            )
