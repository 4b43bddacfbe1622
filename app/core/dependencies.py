"""
==============================================================================
FastAPI Dependencies Module
==============================================================================

Dependency providers for the catalog's services.

Dependency Hierarchy:
--------------------
                    ┌─────────────────┐
                    │  get_settings() │
                    └────────┬────────┘
                             │
        ┌────────────────────┼────────────────────┐
        │                    │                    │
┌───────▼───────┐   ┌───────▼────────┐   ┌───────▼───────┐
│get_book_store │   │get_isbn_lookup │   │get_scan_svc   │
└───────┬───────┘   └────────────────┘   └───────────────┘
        │
┌───────▼───────┐
│get_book_svc   │
└───────────────┘

Tests swap any of these through app.dependency_overrides.

==============================================================================
"""

from __future__ import annotations

import logging
from functools import lru_cache

from fastapi import Depends

from app.catalog import BookStore
from app.config import get_settings
from app.services import BookService, IsbnLookupService, ScanService


# Module logger
logger = logging.getLogger(__name__)


@lru_cache()
def get_book_store() -> BookStore:
    """Shared book store backed by the configured JSON file."""
    settings = get_settings()
    logger.info(f"📚 Using book store at {settings.books_path}")
    return BookStore(settings.books_path)


def get_book_service(store: BookStore = Depends(get_book_store)) -> BookService:
    return BookService(store)


def get_isbn_lookup_service() -> IsbnLookupService:
    return IsbnLookupService(get_settings())


@lru_cache()
def get_scan_service() -> ScanService:
    """Shared scan service; owns the local camera controller."""
    return ScanService(get_settings())
