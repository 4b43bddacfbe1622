"""
==============================================================================
Book Service Module
==============================================================================

Business rules for the personal book catalog.

This module implements:
- BookService: Listing, searching, adding and deleting books
- Author autocomplete and unique author listing
- Catalog statistics

Search Rules:
------------
- Matching is a case-insensitive substring test
- search_by=all matches title, author or cover style
- search_by=title / author matches only that field

==============================================================================
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import List, Optional

from app.catalog import Book, BookCreate, BookStore, StorageError
from app.core import exceptions
from app.schemas.book import CatalogStats, SearchField
from app.utils.validators import ISBNValidator


# Module logger
logger = logging.getLogger(__name__)


class BookService:
    """
    Book catalog service.

    Attributes:
        _store: BookStore used for persistence
        _validator: ISBNValidator for submitted ISBNs

    Example:
        >>> service = BookService(store)
        >>> service.list_books("tolkien", SearchField.AUTHOR)
        >>> service.suggest_author("J.R")
        'J.R.R. Tolkien'
    """

    def __init__(self, store: BookStore, validator: Optional[ISBNValidator] = None) -> None:
        """
        Initialize book service.

        Args:
            store: Book repository
            validator: ISBN validator (a new one if None)
        """
        self._store = store
        self._validator = validator or ISBNValidator()

    # =========================================================================
    # QUERIES
    # =========================================================================

    def _all_books(self) -> List[Book]:
        try:
            return self._store.list_books()
        except StorageError as e:
            raise exceptions.storage_error(str(e)) from e

    @staticmethod
    def matches(book: Book, term: str, search_by: SearchField = SearchField.ALL) -> bool:
        """
        Check whether a book matches a lowercase search term.

        Args:
            book: Book to test
            term: Lowercased search term
            search_by: Field selection

        Returns:
            True if the book matches
        """
        if search_by == SearchField.TITLE:
            return term in book.title.lower()

        if search_by == SearchField.AUTHOR:
            return term in book.author.lower()

        return (
            term in book.title.lower()
            or term in book.author.lower()
            or term in book.cover_style.value.lower()
        )

    def list_books(
        self,
        query: Optional[str] = None,
        search_by: SearchField = SearchField.ALL
    ) -> List[Book]:
        """
        List books, optionally filtered.

        Args:
            query: Search term (empty means no filter)
            search_by: Which fields to search

        Returns:
            Matching books, newest first
        """
        books = self._all_books()

        if not query:
            return books

        term = query.lower()
        return [b for b in books if self.matches(b, term, search_by)]

    def unique_authors(self) -> List[str]:
        """Sorted list of distinct author strings."""
        return sorted({b.author for b in self._all_books()})

    def suggest_author(self, prefix: str) -> Optional[str]:
        """
        Complete a partially typed author name.

        Returns the first known author starting with the prefix
        (case-insensitive) that is not already equal to it.
        """
        if not prefix:
            return None

        lowered = prefix.lower()
        for author in self.unique_authors():
            candidate = author.lower()
            if candidate.startswith(lowered) and candidate != lowered:
                return author
        return None

    def get_stats(self) -> dict:
        """Catalog statistics."""
        books = self._all_books()
        styles = Counter(b.cover_style.value for b in books)

        return CatalogStats(
            total_books=len(books),
            unique_authors=len({b.author for b in books}),
            cover_styles=dict(styles),
        ).model_dump()

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    def create_book(self, data: BookCreate) -> Book:
        """
        Validate and store a new book.

        Raises:
            AppException: INVALID_ISBN or STORAGE_ERROR
        """
        if data.isbn:
            is_valid, isbn, error = self._validator.validate(data.isbn)
            if not is_valid:
                raise exceptions.invalid_isbn(data.isbn, error)
            data = data.model_copy(update={"isbn": isbn})

        try:
            return self._store.add_book(data)
        except StorageError as e:
            raise exceptions.storage_error(str(e)) from e

    def delete_book(self, book_id: Optional[str]) -> None:
        """
        Delete a book by id.

        Raises:
            AppException: BOOK_ID_REQUIRED, BOOK_NOT_FOUND or STORAGE_ERROR
        """
        if not book_id:
            raise exceptions.book_id_required()

        try:
            removed = self._store.delete_book(book_id)
        except StorageError as e:
            raise exceptions.storage_error(str(e)) from e

        if not removed:
            raise exceptions.book_not_found(book_id)
