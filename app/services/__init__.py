"""
==============================================================================
Services Package - Business Logic Layer
==============================================================================

Service classes implementing the catalog's business logic.

This package provides:
- BookService: Book listing, search, creation and deletion
- IsbnLookupService: ISBN metadata proxy (Open Library, Google Books)
- ScanService: Camera, still-image and manual ISBN acquisition

Architecture Pattern: Service Layer
----------------------------------

    ┌─────────────────┐
    │   API Router    │
    └────────┬────────┘
             │
    ┌────────▼────────┐
    │    Service      │  ← Business Logic
    └────────┬────────┘
             │
    ┌────────▼────────┐
    │ Store / Scanner │  ← JSON file, camera, recognizers
    └─────────────────┘

==============================================================================
"""

from .book_service import BookService
from .isbn_lookup_service import (
    BookMetadata,
    GoogleBooksProvider,
    IsbnLookupService,
    MetadataProvider,
    OpenLibraryProvider,
    ProviderError,
)
from .scan_service import ScanService

__all__ = [
    "BookService",
    "BookMetadata",
    "GoogleBooksProvider",
    "IsbnLookupService",
    "MetadataProvider",
    "OpenLibraryProvider",
    "ProviderError",
    "ScanService",
]
