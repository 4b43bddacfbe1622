"""
==============================================================================
WebSocket Package
==============================================================================

Real-time WebSocket handlers for ISBN scanning.

Handlers:
---------
- scanner: Live scanning from browser frames or the server camera,
  with manual entry fallback

==============================================================================
"""

from .scanner import router as scanner_router

__all__ = ["scanner_router"]
