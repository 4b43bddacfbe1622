"""
==============================================================================
Validation Utilities Module
==============================================================================

Validation classes for identifiers entering the catalog.

This module implements:
- ISBNValidator: Normalizes and validates ISBN-shaped identifiers

Validation Rules for ISBNs:
--------------------------
- Every character that is not a digit or 'X' (any case) is stripped
- 'x' is upper-cased
- The remaining string must be exactly 10 or 13 characters long

The same validator gates barcode results, OCR results, manual entry
and the metadata lookup endpoint.

==============================================================================
"""

from __future__ import annotations

import re
from typing import Optional, Tuple


class ISBNValidator:
    """
    Validator for ISBN identifiers.

    Example:
        >>> validator = ISBNValidator()
        >>> is_valid, isbn, error = validator.validate("978-0-89279-079-6")
        >>> print(isbn)
        '9780892790796'
        >>> validator.is_valid("12345")
        False
    """

    # Everything except digits and X is filler
    FILLER = re.compile(r"[^0-9X]", re.IGNORECASE)

    VALID_LENGTHS = (10, 13)

    def normalize(self, text: Optional[str]) -> str:
        """Strip filler characters and upper-case the check character."""
        if not text:
            return ""
        return self.FILLER.sub("", text).upper()

    def validate(self, text: Optional[str]) -> Tuple[bool, Optional[str], Optional[str]]:
        """
        Validate and normalize a candidate identifier.

        Args:
            text: Raw candidate text

        Returns:
            Tuple of (is_valid, identifier, error_message)
            - If valid: (True, "9780892790796", None)
            - If invalid: (False, None, "Error description")
        """
        normalized = self.normalize(text)

        if not normalized:
            return False, None, "ISBN contains no digits"

        if len(normalized) not in self.VALID_LENGTHS:
            return False, None, (
                f"ISBN must have 10 or 13 characters, got {len(normalized)}"
            )

        return True, normalized, None

    def is_valid(self, text: Optional[str]) -> bool:
        """Quick validation check."""
        is_valid, _, _ = self.validate(text)
        return is_valid
