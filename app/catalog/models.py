"""
==============================================================================
Book Models Module
==============================================================================

Pydantic models for book records.

Records are stored with camelCase keys (coverStyle, dateAdded) so that
existing books.json files keep loading.

==============================================================================
"""

import enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CoverStyle(str, enum.Enum):
    """Physical binding of a book."""

    HARDBACK = "Hardback"
    SOFTBACK = "Softback"
    PAPERBACK = "Paperback"
    MASS_MARKET_PAPERBACK = "Mass Market Paperback"
    LEATHER_BOUND = "Leather Bound"
    BOARD_BOOK = "Board Book"


class BookCreate(BaseModel):
    """Fields supplied by the client when adding a book."""

    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(..., min_length=1, max_length=500, description="Book title")
    author: str = Field(..., min_length=1, max_length=300, description="Author name(s)")
    cover_style: CoverStyle = Field(..., alias="coverStyle", description="Cover style")
    isbn: Optional[str] = Field(default=None, max_length=32, description="ISBN-10 or ISBN-13")

    @field_validator("title", "author")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Field cannot be blank")
        return v

    @field_validator("isbn")
    @classmethod
    def blank_isbn_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip()


class Book(BookCreate):
    """
    Stored book record.

    Attributes:
        id: Opaque string identifier
        title: Book title
        author: Author name(s)
        cover_style: Physical binding
        date_added: ISO-8601 timestamp of creation
        isbn: Normalized ISBN, if known
    """

    id: str = Field(..., min_length=1, description="Record identifier")
    date_added: str = Field(..., alias="dateAdded", description="ISO-8601 creation time")

    def to_record(self) -> dict:
        """Serialize with storage (camelCase) keys."""
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)
