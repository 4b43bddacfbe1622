"""
==============================================================================
Utilities Package
==============================================================================

Utility classes for the application.

Modules:
--------
- validators: ISBN normalization and validation

==============================================================================
"""

from .validators import ISBNValidator

__all__ = [
    "ISBNValidator",
]
