"""
==============================================================================
Scan Schemas Module
==============================================================================

Request schemas for the scanning and ISBN endpoints.

==============================================================================
"""

from typing import Optional

from pydantic import BaseModel, Field

from app.scanner import FacingMode


class ManualEntryRequest(BaseModel):
    """Manually typed ISBN."""
    text: str = Field(..., max_length=64)


class ImageScanRequest(BaseModel):
    """Still image to recognize, base64 encoded (JPEG/PNG)."""
    image: str = Field(..., min_length=1)


class CameraScanRequest(BaseModel):
    """Server-side camera scan options."""
    facing: FacingMode = Field(default=FacingMode.ENVIRONMENT)
    timeout_seconds: Optional[float] = Field(default=None, gt=0, le=600)


class BookMetadataResponse(BaseModel):
    """Metadata found for an ISBN."""
    success: bool = Field(default=True)
    title: str
    author: str
    isbn: str
    source: str
