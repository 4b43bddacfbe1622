"""
==============================================================================
ISBN Lookup Endpoints
==============================================================================

Metadata proxy: resolves an ISBN to title and author.

==============================================================================
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.core.dependencies import get_isbn_lookup_service
from app.schemas.scan import BookMetadataResponse
from app.services import IsbnLookupService


router = APIRouter(prefix="/isbn", tags=["ISBN"])


@router.get("")
async def lookup_isbn(
    isbn: Optional[str] = Query(None, max_length=32),
    service: IsbnLookupService = Depends(get_isbn_lookup_service)
):
    """
    Look up book metadata for an ISBN.

    Tries Open Library first, then Google Books.
    """
    metadata = await service.lookup(isbn)
    return BookMetadataResponse(**metadata.to_dict()).model_dump()
