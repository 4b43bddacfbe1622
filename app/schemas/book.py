"""
==============================================================================
Book Schemas Module
==============================================================================

Request and response schemas for the book endpoints.

==============================================================================
"""

import enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class SearchField(str, enum.Enum):
    """Which fields a search term is matched against."""

    ALL = "all"
    TITLE = "title"
    AUTHOR = "author"


class BookListResponse(BaseModel):
    """List of books response."""
    success: bool = Field(default=True)
    total: int = Field(ge=0)
    books: List[dict]


class AuthorSuggestion(BaseModel):
    """Autocomplete result for the author field."""
    success: bool = Field(default=True)
    prefix: str
    suggestion: Optional[str] = None


class CatalogStats(BaseModel):
    """Catalog statistics."""
    total_books: int = Field(ge=0)
    unique_authors: int = Field(ge=0)
    cover_styles: Dict[str, int]
