"""
Application Exception Handling

Single AppException class for all application errors with FastAPI integration.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


class AppException(Exception):
    """
    Unified application exception for all error scenarios.

    Provides consistent error response format across the entire API.

    Usage:
        raise AppException("Book not found", "BOOK_NOT_FOUND", 404)
        raise AppException("Invalid ISBN", "INVALID_ISBN", 400, {"isbn": "123"})

    Error Codes:
        Books:
            - BOOK_NOT_FOUND (404)
            - BOOK_ID_REQUIRED (400)
            - STORAGE_ERROR (500)

        ISBN:
            - ISBN_REQUIRED (400)
            - INVALID_ISBN (400)
            - METADATA_NOT_FOUND (404)
            - METADATA_LOOKUP_FAILED (502)

        Scanning:
            - INVALID_IMAGE (400)

        General:
            - VALIDATION_ERROR (422)
            - INTERNAL_ERROR (500)
    """

    def __init__(
        self,
        message: str,
        code: str,
        status_code: int = 400,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize application exception.

        Args:
            message: Human-readable error message
            code: Machine-readable error code (e.g., "BOOK_NOT_FOUND")
            status_code: HTTP status code (default: 400)
            details: Additional error context (optional)
        """
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON response."""
        error_dict = {
            "success": False,
            "error": {
                "code": self.code,
                "message": self.message,
                "timestamp": self.timestamp
            }
        }

        if self.details:
            error_dict["error"]["details"] = self.details

        return error_dict


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    FastAPI exception handler for AppException.

    Converts AppException to consistent JSON error response.
    """
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register all exception handlers with FastAPI app.

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(AppException, app_exception_handler)


# ============================================
# CONVENIENCE FACTORY FUNCTIONS
# ============================================

def book_not_found(book_id: Optional[str] = None) -> AppException:
    """Create book not found exception."""
    details = {"book_id": book_id} if book_id else {}
    return AppException("Book not found", "BOOK_NOT_FOUND", 404, details)


def book_id_required() -> AppException:
    """Create missing book id exception."""
    return AppException("Book ID is required", "BOOK_ID_REQUIRED", 400)


def storage_error(reason: str) -> AppException:
    """Create book storage failure exception."""
    return AppException(
        "Failed to access book storage",
        "STORAGE_ERROR",
        500,
        {"reason": reason}
    )


def isbn_required() -> AppException:
    """Create missing ISBN exception."""
    return AppException("ISBN is required", "ISBN_REQUIRED", 400)


def invalid_isbn(isbn: str, reason: str) -> AppException:
    """Create invalid ISBN exception."""
    return AppException(
        f"Invalid ISBN: {reason}",
        "INVALID_ISBN",
        400,
        {"isbn": isbn, "reason": reason}
    )


def metadata_not_found(isbn: str) -> AppException:
    """Create metadata not found exception."""
    return AppException(
        "Book not found",
        "METADATA_NOT_FOUND",
        404,
        {"isbn": isbn}
    )


def metadata_lookup_failed(isbn: str) -> AppException:
    """Create metadata provider failure exception."""
    return AppException(
        "Failed to fetch book data",
        "METADATA_LOOKUP_FAILED",
        502,
        {"isbn": isbn}
    )


def invalid_image(reason: str = "Could not decode image") -> AppException:
    """Create undecodable image exception."""
    return AppException(reason, "INVALID_IMAGE", 400)


def internal_error(message: str = "Internal server error") -> AppException:
    """Create internal server error exception."""
    return AppException(message, "INTERNAL_ERROR", 500)
