"""
==============================================================================
Catalog Package - Book Records
==============================================================================

Book record models and their flat-file store.

Classes:
--------
- Book / BookCreate: Pydantic models for records
- CoverStyle: Allowed cover styles
- BookStore: JSON file repository

==============================================================================
"""

from .models import Book, BookCreate, CoverStyle
from .store import BookStore, StorageError

__all__ = [
    "Book",
    "BookCreate",
    "CoverStyle",
    "BookStore",
    "StorageError",
]
