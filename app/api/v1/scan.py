"""
==============================================================================
Scan Endpoints
==============================================================================

REST entry points to the scanner: manual entry validation, still-image
recognition and server-side camera scans.

Live browser scanning goes through the /ws/scan WebSocket instead.

==============================================================================
"""

import logging

from fastapi import APIRouter, Depends

from app.core import exceptions
from app.core.dependencies import get_scan_service
from app.schemas.scan import CameraScanRequest, ImageScanRequest, ManualEntryRequest
from app.services import ScanService


# Module logger
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/scan", tags=["Scan"])


class ScanController:
    """Controller for scan operations."""

    def __init__(self, service: ScanService):
        self._service = service

    def validate(self, text: str) -> dict:
        """Validate a manual ISBN entry."""
        is_valid, isbn, error = self._service.validate_manual(text)
        return {
            "success": True,
            "valid": is_valid,
            "isbn": isbn,
            "error": error
        }

    async def scan_image(self, image: str) -> dict:
        """Recognize an ISBN in a still image."""
        try:
            result = await self._service.scan_image(image)
        except ValueError as e:
            raise exceptions.invalid_image(str(e))

        return {
            "success": True,
            "found": result is not None,
            "result": result
        }

    async def scan_camera(self, request: CameraScanRequest) -> dict:
        """Run a scan session on the server's camera."""
        outcome = await self._service.scan_camera(
            facing=request.facing,
            timeout=request.timeout_seconds
        )
        logger.info(f"📷 Camera scan finished: {outcome.status.value}")

        return {
            "success": True,
            "outcome": outcome.to_dict()
        }


@router.post("/validate")
async def validate_manual_entry(
    data: ManualEntryRequest,
    service: ScanService = Depends(get_scan_service)
):
    """Validate a manually typed ISBN."""
    controller = ScanController(service)
    return controller.validate(data.text)


@router.post("/image")
async def scan_image(
    data: ImageScanRequest,
    service: ScanService = Depends(get_scan_service)
):
    """Decode a base64 image and look for an ISBN barcode or printed ISBN."""
    controller = ScanController(service)
    return await controller.scan_image(data.image)


@router.post("/camera")
async def scan_camera(
    data: CameraScanRequest = CameraScanRequest(),
    service: ScanService = Depends(get_scan_service)
):
    """
    Scan with the server's local camera.

    Returns the single outcome: accepted, cancelled (timeout) or failed.
    """
    controller = ScanController(service)
    return await controller.scan_camera(data)
