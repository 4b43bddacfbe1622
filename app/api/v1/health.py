"""
==============================================================================
Health Check Endpoints
==============================================================================

System health status endpoints for monitoring and orchestration.

==============================================================================
"""

import pytesseract
from fastapi import APIRouter, Depends

from app.catalog import BookStore, StorageError
from app.core.dependencies import get_book_store, get_scan_service
from app.services import ScanService


router = APIRouter(prefix="/health", tags=["Health"])


class HealthController:
    """Controller for health check operations."""

    def __init__(self, store: BookStore, scan_service: ScanService):
        self._store = store
        self._scan_service = scan_service

    def check_store(self) -> dict:
        """Check the book store can be read."""
        try:
            books = self._store.list_books()
            return {"status": "healthy", "books": len(books)}
        except StorageError:
            return {"status": "unhealthy", "books": 0}

    def check_ocr(self) -> str:
        """Check the tesseract binary is reachable."""
        try:
            pytesseract.get_tesseract_version()
            return "healthy"
        except Exception:
            return "unavailable"

    def check_camera(self) -> str:
        """Report whether the local camera is in use."""
        if self._scan_service.controller.active_session is not None:
            return "busy"
        return "idle"

    def get_health(self) -> dict:
        """Get full health status."""
        store_info = self.check_store()
        ocr_status = self.check_ocr()

        overall = "healthy" if store_info["status"] == "healthy" else "degraded"

        return {
            "status": overall,
            "components": {
                "api": "healthy",
                "store": store_info["status"],
                "ocr": ocr_status,
                "camera": self.check_camera()
            },
            "details": {
                "books_stored": store_info["books"]
            }
        }


@router.get("")
async def health_check(
    store: BookStore = Depends(get_book_store),
    scan_service: ScanService = Depends(get_scan_service)
):
    """
    Health check endpoint.

    Returns system status including API, book store, OCR engine and camera.
    """
    controller = HealthController(store, scan_service)
    return controller.get_health()


@router.get("/ready")
async def readiness_check():
    """Readiness probe for container orchestration."""
    return {"ready": True}


@router.get("/live")
async def liveness_check():
    """Liveness probe for container orchestration."""
    return {"alive": True}
