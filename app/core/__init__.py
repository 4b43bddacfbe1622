"""
==============================================================================
Core Package
==============================================================================

Core infrastructure for the application.

This package provides:
- AppException with a consistent JSON error body
- Exception factory functions for common error scenarios
- FastAPI dependency providers for stores and services
  (app.core.dependencies, imported directly by the routers)

Usage:
------
    from app.core import exceptions
    raise exceptions.book_not_found(book_id)

==============================================================================
"""

from .exceptions import (
    AppException,
    register_exception_handlers,
)

__all__ = [
    "AppException",
    "register_exception_handlers",
]
