"""
==============================================================================
API v1 Endpoints
==============================================================================

Version 1 of the REST API.

Routers:
--------
- health: Health check endpoints
- books: Book catalog
- isbn: ISBN metadata lookup
- scan: Manual entry, still-image and camera scanning

==============================================================================
"""

from . import health, books, isbn, scan

__all__ = ["health", "books", "isbn", "scan"]
