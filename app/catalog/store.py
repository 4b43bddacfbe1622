"""
==============================================================================
Book Store Module
==============================================================================

Flat-file persistence for book records.

Features:
---------
- Single JSON array of records, newest first
- Read-modify-write for every mutation
- Process-local lock around writes
- Data directory created on demand

JSON Structure:
--------------
[
  {
    "id": "4f1c...",
    "title": "The Hobbit",
    "author": "J.R.R. Tolkien",
    "coverStyle": "Paperback",
    "dateAdded": "2026-10-18T09:12:44.120000+00:00",
    "isbn": "9780261103344"
  },
  ...
]

==============================================================================
"""

from __future__ import annotations

import json
import logging
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from .models import Book, BookCreate


# Module logger
logger = logging.getLogger(__name__)


class StorageError(Exception):
    """The books file exists but cannot be read or written."""


class BookStore:
    """
    JSON file backed book repository.

    Example:
        >>> store = BookStore(Path("data/books.json"))
        >>> book = store.add_book(BookCreate(title="Dune", author="Frank Herbert",
        ...                                  cover_style="Paperback"))
        >>> store.delete_book(book.id)
        True
    """

    def __init__(self, books_file: Path) -> None:
        """
        Args:
            books_file: Path to books.json
        """
        self._books_file = Path(books_file)
        self._lock = threading.RLock()

    @property
    def path(self) -> Path:
        return self._books_file

    # =========================================================================
    # FILE ACCESS
    # =========================================================================

    def _read(self) -> List[Book]:
        try:
            raw = self._books_file.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except OSError as e:
            logger.error(f"Cannot read {self._books_file}: {e}")
            raise StorageError(str(e)) from e

        if not raw.strip():
            return []

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in {self._books_file}: {e}")
            raise StorageError(f"Invalid JSON: {e}") from e

        if not isinstance(data, list):
            raise StorageError("Books file must contain a JSON array")

        books = []
        for item in data:
            try:
                books.append(Book.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Skipping invalid book record: {e.error_count()} errors")
        return books

    def _write(self, books: List[Book]) -> None:
        try:
            self._books_file.parent.mkdir(parents=True, exist_ok=True)
            payload = json.dumps([b.to_record() for b in books], indent=2, ensure_ascii=False)
            self._books_file.write_text(payload, encoding="utf-8")
        except OSError as e:
            logger.error(f"Cannot write {self._books_file}: {e}")
            raise StorageError(str(e)) from e

    # =========================================================================
    # OPERATIONS
    # =========================================================================

    def ensure_exists(self) -> None:
        """Create an empty books file if none exists yet."""
        with self._lock:
            if not self._books_file.exists():
                self._write([])
                logger.info(f"📚 Created empty book store at {self._books_file}")

    def list_books(self) -> List[Book]:
        """All books, newest first."""
        with self._lock:
            return self._read()

    def get_book(self, book_id: str) -> Optional[Book]:
        """Find one book by id, or None."""
        for book in self.list_books():
            if book.id == book_id:
                return book
        return None

    def add_book(self, data: BookCreate) -> Book:
        """
        Store a new book at the front of the list.

        Args:
            data: Client supplied fields (ISBN already normalized)

        Returns:
            The stored Book with id and date_added assigned
        """
        book = Book(
            id=uuid.uuid4().hex,
            date_added=datetime.now(timezone.utc).isoformat(),
            **data.model_dump(),
        )

        with self._lock:
            books = self._read()
            books.insert(0, book)
            self._write(books)

        logger.info(f"📗 Added book {book.id}: {book.title}")
        return book

    def delete_book(self, book_id: str) -> bool:
        """
        Remove a book by id.

        Returns:
            True if a record was removed
        """
        with self._lock:
            books = self._read()
            remaining = [b for b in books if b.id != book_id]

            if len(remaining) == len(books):
                return False

            self._write(remaining)

        logger.info(f"🗑️ Deleted book {book_id}")
        return True
