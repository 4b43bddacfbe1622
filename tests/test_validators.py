"""
==============================================================================
ISBN Validator Tests
==============================================================================
"""

import pytest

from app.utils.validators import ISBNValidator


class TestISBNValidator:
    """Tests for ISBN normalization and validation."""

    @pytest.fixture
    def validator(self) -> ISBNValidator:
        return ISBNValidator()

    def test_hyphenated_isbn13_is_normalized(self, validator):
        assert validator.validate("978-0-89279-079-6") == (True, "9780892790796", None)

    def test_lowercase_check_character_is_uppercased(self, validator):
        is_valid, isbn, error = validator.validate("0-8044-2957-x")
        assert is_valid is True
        assert isbn == "080442957X"
        assert error is None

    def test_spaces_and_prefix_are_filler(self, validator):
        is_valid, isbn, _ = validator.validate("ISBN 0 261 10334 2")
        assert is_valid is True
        # The I, S, B, N letters are filler; only digits and X survive
        assert isbn == "0261103342"

    def test_wrong_length_is_rejected(self, validator):
        is_valid, isbn, error = validator.validate("12345")
        assert is_valid is False
        assert isbn is None
        assert "got 5" in error

    @pytest.mark.parametrize("text", [None, "", "   ", "no digits here"])
    def test_empty_input_is_rejected(self, validator, text):
        is_valid, isbn, error = validator.validate(text)
        assert is_valid is False
        assert isbn is None
        assert error == "ISBN contains no digits"

    def test_checksum_is_not_verified(self, validator):
        assert validator.is_valid("9780000000000") is True

    def test_eleven_characters_rejected(self, validator):
        assert validator.is_valid("12345678901") is False
