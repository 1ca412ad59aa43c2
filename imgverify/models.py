"""Data model for image verification.

Defines the verdict enums, the plain data records exchanged between the
metadata extractor, the classifier and the history store, and the
SQLAlchemy key-value table that holds the persisted history slot.
"""
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum as PyEnum
from typing import Any, Mapping, Optional
import math
import uuid

from sqlalchemy import Integer, String, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column

from imgverify import db


# ============================================================================
# Enums
# ============================================================================

class Completeness(str, PyEnum):
    """How much of the capture metadata was recovered."""
    COMPLETE = "Complete"  # Time, GPS and device all present
    PARTIAL = "Partial"    # At least one, but not all
    MISSING = "Missing"    # None present


class VerificationStatus(str, PyEnum):
    """Outward verdict for a submission."""
    VERIFIED = "Verified"
    SUSPICIOUS = "Suspicious"
    REUSED = "Reused"


class CheckResult(str, PyEnum):
    """Outcome of a single metadata check."""
    PASS = "Pass"
    FAIL = "Fail"


def compute_completeness(has_time: bool, has_gps: bool, has_device: bool) -> Completeness:
    """Collapse the three presence flags into a completeness tier."""
    if has_time and has_gps and has_device:
        return Completeness.COMPLETE
    if has_time or has_gps or has_device:
        return Completeness.PARTIAL
    return Completeness.MISSING


def _finite_or_none(value: Any) -> Optional[float]:
    """Coerce a stored coordinate (number or numeric string) to a finite float."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        result = float(value)
    elif isinstance(value, str):
        try:
            result = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return result if math.isfinite(result) else None


def _str_or_none(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value else None


# ============================================================================
# Records
# ============================================================================

@dataclass(frozen=True)
class GpsCoordinates:
    """Signed decimal-degree pair; either component may be absent."""
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @property
    def is_complete(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def to_dict(self) -> dict:
        return {'latitude': self.latitude, 'longitude': self.longitude}

    @classmethod
    def from_dict(cls, data: Any) -> "GpsCoordinates":
        if not isinstance(data, Mapping):
            return cls()
        return cls(
            latitude=_finite_or_none(data.get('latitude')),
            longitude=_finite_or_none(data.get('longitude')),
        )


@dataclass(frozen=True)
class MetadataResult:
    """
    Normalized capture metadata for one image.

    Completeness is derived from the other fields on every access and is
    never stored, so it cannot drift from the data it summarizes.
    """
    capture_time: Optional[str] = None
    gps: GpsCoordinates = field(default_factory=GpsCoordinates)
    device: Optional[str] = None
    location_name: Optional[str] = None

    @property
    def completeness(self) -> Completeness:
        return compute_completeness(
            self.capture_time is not None,
            self.gps.is_complete,
            self.device is not None,
        )

    def with_location_name(self, location_name: Optional[str]) -> "MetadataResult":
        return replace(self, location_name=location_name)

    def to_dict(self) -> dict:
        return {
            'captureTime': self.capture_time,
            'gps': self.gps.to_dict(),
            'device': self.device,
            'locationName': self.location_name,
            'completeness': self.completeness.value,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "MetadataResult":
        """Rebuild from stored JSON, treating missing or mistyped fields as absent."""
        if not isinstance(data, Mapping):
            return cls()
        return cls(
            capture_time=_str_or_none(data.get('captureTime')),
            gps=GpsCoordinates.from_dict(data.get('gps')),
            device=_str_or_none(data.get('device')),
            location_name=_str_or_none(data.get('locationName')),
        )


@dataclass(frozen=True)
class VerificationResult:
    """Classifier verdict plus the individual checks behind it."""
    status: VerificationStatus
    reason: str
    time_check: CheckResult
    location_check: CheckResult
    reused: bool

    def to_dict(self) -> dict:
        return {
            'status': self.status.value,
            'reason': self.reason,
            'timeCheck': self.time_check.value,
            'locationCheck': self.location_check.value,
            'reused': self.reused,
        }


def utc_timestamp() -> str:
    """Current UTC time as ISO-8601 with millisecond precision and a Z suffix."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec='milliseconds').replace('+00:00', 'Z')


@dataclass(frozen=True)
class HistoryEntry:
    """One past submission. Immutable once created."""
    id: str
    hash: str
    file_name: str
    preview_url: str
    checked_at: str
    status: Optional[VerificationStatus]
    reason: str
    metadata: MetadataResult

    @classmethod
    def create(
        cls,
        content_hash: str,
        file_name: str,
        preview_url: str,
        verification: VerificationResult,
        metadata: MetadataResult,
    ) -> "HistoryEntry":
        return cls(
            id=str(uuid.uuid4()),
            hash=content_hash,
            file_name=file_name,
            preview_url=preview_url,
            checked_at=utc_timestamp(),
            status=verification.status,
            reason=verification.reason,
            metadata=metadata,
        )

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'hash': self.hash,
            'fileName': self.file_name,
            'previewUrl': self.preview_url,
            'checkedAt': self.checked_at,
            'status': self.status.value if self.status is not None else None,
            'reason': self.reason,
            'metadata': self.metadata.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Any) -> Optional["HistoryEntry"]:
        """
        Rebuild an entry from stored JSON.

        Returns None only when the item is not an object. Missing or
        mistyped fields load as absent (an unknown status becomes None,
        a missing hash becomes '' and never matches) so legacy entries
        survive the next save.
        """
        if not isinstance(data, Mapping):
            return None

        content_hash = data.get('hash')
        if not isinstance(content_hash, str):
            content_hash = ''

        try:
            status = VerificationStatus(data.get('status'))
        except (ValueError, TypeError):
            status = None

        checked_at = str(data.get('checkedAt') or '')
        entry_id = data.get('id')
        if not entry_id:
            # Derived from the entry so repeated loads agree on it
            entry_id = uuid.uuid5(uuid.NAMESPACE_OID, f"{content_hash}/{checked_at}")

        return cls(
            id=str(entry_id),
            hash=content_hash,
            file_name=str(data.get('fileName') or ''),
            preview_url=str(data.get('previewUrl') or ''),
            checked_at=checked_at,
            status=status,
            reason=str(data.get('reason') or ''),
            metadata=MetadataResult.from_dict(data.get('metadata')),
        )


# ============================================================================
# Models
# ============================================================================

class Setting(db.Model):
    """Application settings (key-value store). Holds the history slot."""
    __tablename__ = 'settings'

    # Primary key
    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    # Setting key (unique)
    key: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)

    # Setting value (stored as text, can be JSON)
    value: Mapped[str] = mapped_column(Text, nullable=False)

    # Timestamp
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    def __repr__(self):
        return f"<Setting {self.key}: {len(self.value)} chars>"
