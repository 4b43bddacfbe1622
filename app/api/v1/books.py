"""
==============================================================================
Book Catalog Endpoints
==============================================================================

Endpoints for listing, searching, adding and deleting books.

==============================================================================
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from app.catalog import BookCreate
from app.core.dependencies import get_book_service
from app.schemas import AuthorSuggestion, BookListResponse, MessageResponse, SearchField
from app.services import BookService


router = APIRouter(prefix="/books", tags=["Books"])


class BookController:
    """Controller for book catalog operations."""

    def __init__(self, service: BookService):
        self._service = service

    def list_books(self, query: Optional[str], search_by: SearchField) -> dict:
        """List books, newest first, optionally filtered."""
        books = self._service.list_books(query, search_by)
        response = BookListResponse(
            total=len(books),
            books=[b.to_record() for b in books]
        )

        return {
            **response.model_dump(),
            "query": query,
            "search_by": search_by.value
        }

    def create_book(self, data: BookCreate) -> dict:
        """Add a book to the catalog."""
        book = self._service.create_book(data)
        return {
            "success": True,
            "message": "Book added",
            "book": book.to_record()
        }

    def delete_book(self, book_id: Optional[str]) -> dict:
        """Remove a book from the catalog."""
        self._service.delete_book(book_id)
        response = MessageResponse(message="Book deleted")
        return {**response.model_dump(), "id": book_id}

    def get_authors(self) -> dict:
        """Get unique authors."""
        authors = self._service.unique_authors()
        return {
            "success": True,
            "total": len(authors),
            "authors": authors
        }

    def suggest_author(self, prefix: str) -> dict:
        """Complete a partially typed author."""
        suggestion = AuthorSuggestion(
            prefix=prefix,
            suggestion=self._service.suggest_author(prefix)
        )
        return suggestion.model_dump()

    def get_stats(self) -> dict:
        """Get catalog statistics."""
        return {
            "success": True,
            "stats": self._service.get_stats()
        }


@router.get("")
async def list_books(
    q: Optional[str] = Query(None, max_length=200),
    search_by: SearchField = Query(SearchField.ALL),
    service: BookService = Depends(get_book_service)
):
    """List books with optional search."""
    controller = BookController(service)
    return controller.list_books(q, search_by)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_book(
    data: BookCreate,
    service: BookService = Depends(get_book_service)
):
    """Add a new book."""
    controller = BookController(service)
    return controller.create_book(data)


@router.delete("")
async def delete_book_by_query(
    id: Optional[str] = Query(None),
    service: BookService = Depends(get_book_service)
):
    """Delete a book by ?id= query parameter."""
    controller = BookController(service)
    return controller.delete_book(id)


@router.get("/authors")
async def get_authors(service: BookService = Depends(get_book_service)):
    """Get the sorted list of unique authors."""
    controller = BookController(service)
    return controller.get_authors()


@router.get("/authors/suggest")
async def suggest_author(
    prefix: str = Query("", max_length=200),
    service: BookService = Depends(get_book_service)
):
    """Suggest an author completion for a prefix."""
    controller = BookController(service)
    return controller.suggest_author(prefix)


@router.get("/stats")
async def get_book_stats(service: BookService = Depends(get_book_service)):
    """Get catalog statistics."""
    controller = BookController(service)
    return controller.get_stats()


@router.delete("/{book_id}")
async def delete_book(
    book_id: str,
    service: BookService = Depends(get_book_service)
):
    """Delete a book by id."""
    controller = BookController(service)
    return controller.delete_book(book_id)
