"""
==============================================================================
Schemas Package - Pydantic Models
==============================================================================

Request and response schemas using Pydantic for validation.

This package provides:
- Common: Shared response schemas
- Book: Book listing, search and statistics schemas
- Scan: Manual entry, image and camera scan schemas

==============================================================================
"""

from .common import MessageResponse
from .book import SearchField, BookListResponse, AuthorSuggestion, CatalogStats
from .scan import (
    ManualEntryRequest,
    ImageScanRequest,
    CameraScanRequest,
    BookMetadataResponse,
)

__all__ = [
    # Common
    "MessageResponse",
    # Book
    "SearchField",
    "BookListResponse",
    "AuthorSuggestion",
    "CatalogStats",
    # Scan
    "ManualEntryRequest",
    "ImageScanRequest",
    "CameraScanRequest",
    "BookMetadataResponse",
]
