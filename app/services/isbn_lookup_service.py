"""
==============================================================================
ISBN Lookup Service Module
==============================================================================

Metadata proxy that resolves an ISBN to a title and author.

Providers are tried in order; the first one with a record wins:

    1. Open Library  (/api/books?bibkeys=ISBN:<isbn>&format=json&jscmd=data)
    2. Google Books  (/volumes?q=isbn:<isbn>)

A provider that answers without a record sends the lookup on to the
next provider. A provider that cannot be reached is logged and skipped.

==============================================================================
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import List, Optional, Sequence

import httpx

from app.config import Settings, get_settings
from app.core import exceptions
from app.utils.validators import ISBNValidator


# Module logger
logger = logging.getLogger(__name__)


@dataclass
class BookMetadata:
    """Title and author found for an ISBN."""
    title: str
    author: str
    isbn: str
    source: str

    def to_dict(self) -> dict:
        return asdict(self)


class ProviderError(Exception):
    """A metadata provider could not answer."""


# =============================================================================
# PROVIDERS
# =============================================================================

class MetadataProvider:
    """Base class for ISBN metadata providers."""

    name = "provider"

    def __init__(self, base_url: str) -> None:
        self._base_url = base_url.rstrip("/")

    async def lookup(self, client: httpx.AsyncClient, isbn: str) -> Optional[BookMetadata]:
        raise NotImplementedError

    async def _get_json(self, client: httpx.AsyncClient, url: str, params: dict):
        """
        GET a JSON object.

        Returns:
            Parsed JSON, or None on 404

        Raises:
            ProviderError: Transport failure, error status, bad JSON or
                a document that is not an object
        """
        try:
            response = await client.get(url, params=params)
        except httpx.HTTPError as e:
            raise ProviderError(f"{self.name} request failed: {e}") from e

        if response.status_code == 404:
            return None

        if response.is_error:
            raise ProviderError(f"{self.name} returned HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError(f"{self.name} returned invalid JSON") from e

        if not isinstance(data, dict):
            raise ProviderError(f"{self.name} returned {type(data).__name__}, expected an object")

        return data


class OpenLibraryProvider(MetadataProvider):
    """Open Library books API."""

    name = "Open Library"

    async def lookup(self, client: httpx.AsyncClient, isbn: str) -> Optional[BookMetadata]:
        bibkey = f"ISBN:{isbn}"
        data = await self._get_json(
            client,
            f"{self._base_url}/api/books",
            {"bibkeys": bibkey, "format": "json", "jscmd": "data"},
        )

        record = (data or {}).get(bibkey)
        if not record:
            return None

        authors = ", ".join(
            a.get("name", "") for a in record.get("authors") or [] if a.get("name")
        )

        return BookMetadata(
            title=record.get("title") or "",
            author=authors,
            isbn=isbn,
            source=self.name,
        )


class GoogleBooksProvider(MetadataProvider):
    """Google Books volumes API."""

    name = "Google Books"

    def __init__(self, base_url: str, api_key: Optional[str] = None) -> None:
        super().__init__(base_url)
        self._api_key = api_key

    async def lookup(self, client: httpx.AsyncClient, isbn: str) -> Optional[BookMetadata]:
        params = {"q": f"isbn:{isbn}"}
        if self._api_key:
            params["key"] = self._api_key

        data = await self._get_json(client, f"{self._base_url}/volumes", params)

        items = (data or {}).get("items") or []
        if not items:
            return None

        info = items[0].get("volumeInfo") or {}

        return BookMetadata(
            title=info.get("title") or "",
            author=", ".join(info.get("authors") or []),
            isbn=isbn,
            source=self.name,
        )


# =============================================================================
# SERVICE
# =============================================================================

class IsbnLookupService:
    """
    Resolves ISBNs through a chain of providers.

    Example:
        >>> service = IsbnLookupService()
        >>> metadata = await service.lookup("978-0-261-10334-4")
        >>> metadata.title
        'The Hobbit'
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        providers: Optional[Sequence[MetadataProvider]] = None,
        validator: Optional[ISBNValidator] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> None:
        """
        Args:
            settings: Application settings (global settings if None)
            providers: Provider chain (Open Library, then Google Books)
            validator: ISBN validator
            transport: Optional httpx transport (tests use MockTransport)
        """
        self._settings = settings or get_settings()
        self._validator = validator or ISBNValidator()
        self._transport = transport
        self._providers: List[MetadataProvider] = list(providers or (
            OpenLibraryProvider(self._settings.open_library_url),
            GoogleBooksProvider(
                self._settings.google_books_url,
                self._settings.google_books_api_key,
            ),
        ))

    async def lookup(self, raw_isbn: Optional[str]) -> BookMetadata:
        """
        Find title and author for an ISBN.

        Raises:
            AppException: ISBN_REQUIRED, INVALID_ISBN, METADATA_NOT_FOUND
                or METADATA_LOOKUP_FAILED
        """
        if not raw_isbn or not raw_isbn.strip():
            raise exceptions.isbn_required()

        is_valid, isbn, error = self._validator.validate(raw_isbn)
        if not is_valid:
            raise exceptions.invalid_isbn(raw_isbn, error)

        answered = 0

        async with httpx.AsyncClient(
            timeout=self._settings.metadata_timeout_seconds,
            follow_redirects=True,
            transport=self._transport,
        ) as client:
            for provider in self._providers:
                try:
                    metadata = await provider.lookup(client, isbn)
                except ProviderError as e:
                    logger.warning(f"⚠️ {e}")
                    continue

                answered += 1

                if metadata is not None:
                    logger.info(f"📖 Book found via {metadata.source}: {metadata.title}")
                    return metadata

                logger.info(f"Book not found in {provider.name} for ISBN: {isbn}")

        if answered == 0:
            raise exceptions.metadata_lookup_failed(isbn)

        raise exceptions.metadata_not_found(isbn)
