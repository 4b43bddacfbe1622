"""
==============================================================================
Scanner Models Module
==============================================================================

Value types exchanged inside the scanning core.

==============================================================================
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Dict, Optional


class CandidateSource(str, enum.Enum):
    """Recognition channel that proposed a candidate."""

    BARCODE = "barcode"
    OCR = "ocr"
    MANUAL = "manual"


@dataclass(frozen=True)
class Candidate:
    """
    Unvalidated text proposed by a recognition channel.

    Attributes:
        raw_text: Decoded or recognized text
        source: Channel that produced it
        rect: Bounding box in frame coordinates (barcode only)
    """

    raw_text: str
    source: CandidateSource
    rect: Optional[Dict[str, int]] = None


class ScanStatus(str, enum.Enum):
    """Terminal state of a scan session."""

    ACCEPTED = "accepted"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass(frozen=True)
class ScanOutcome:
    """
    The single result of a scan session.

    Exactly one of the factory methods below is used per session.
    """

    status: ScanStatus
    identifier: Optional[str] = None
    source: Optional[CandidateSource] = None
    reason: Optional[str] = None
    error_code: Optional[str] = None

    @classmethod
    def accepted(cls, identifier: str, source: CandidateSource) -> "ScanOutcome":
        return cls(ScanStatus.ACCEPTED, identifier=identifier, source=source)

    @classmethod
    def cancelled(cls, reason: Optional[str] = None) -> "ScanOutcome":
        return cls(ScanStatus.CANCELLED, reason=reason)

    @classmethod
    def failed(cls, reason: str, error_code: str) -> "ScanOutcome":
        return cls(ScanStatus.FAILED, reason=reason, error_code=error_code)

    def to_dict(self) -> dict:
        """Serialize for JSON responses."""
        return {
            "status": self.status.value,
            "isbn": self.identifier,
            "source": self.source.value if self.source else None,
            "reason": self.reason,
            "error_code": self.error_code,
        }
