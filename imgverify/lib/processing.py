"""
Single submission processing pipeline.

Hashing, metadata decoding and preview generation have no data
dependency on each other, so they run concurrently in a small
ThreadPoolExecutor and are all awaited before classification.
History access stays on the calling thread.
"""
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Optional
import logging

from imgverify.lib.geocoding import (
    ReverseGeocoder, attach_location_name, bounded_call, normalize_device_location,
)
from imgverify.lib.hashing import hash_bytes
from imgverify.lib.history import HistoryStore
from imgverify.lib.metadata import read_metadata
from imgverify.lib.thumbnail import DEFAULT_PREVIEW_SIZE, make_preview_url
from imgverify.lib.verification import classify
from imgverify.models import (
    GpsCoordinates, HistoryEntry, MetadataResult, VerificationResult,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Submission:
    """Everything produced for one verified upload."""
    content_hash: str
    metadata: MetadataResult
    verification: VerificationResult
    entry: HistoryEntry
    history: list
    device_location: Optional[GpsCoordinates] = None

    def to_dict(self) -> dict:
        return {
            'hash': self.content_hash,
            'metadata': self.metadata.to_dict(),
            'verification': self.verification.to_dict(),
            'entry': self.entry.to_dict(),
            'history': [entry.to_dict() for entry in self.history],
            'deviceLocation': self.device_location.to_dict() if self.device_location else None,
        }


def verify_submission(
    data: bytes,
    file_name: str,
    store: HistoryStore,
    geocoder: Optional[ReverseGeocoder] = None,
    device_location: Optional[GpsCoordinates] = None,
    device_locator: Optional[Callable[[], Any]] = None,
    device_timeout: float = 2.0,
    preview_size=DEFAULT_PREVIEW_SIZE,
    exiftool_path: Optional[str] = None,
) -> Submission:
    """
    Verify one image and record it in the history.

    Pipeline steps:
    1. Hash, decode metadata and build the preview concurrently
    2. Attach a place name if a geocoder is available
    3. Classify against the stored history
    4. Prepend a new history entry and persist

    Args:
        data: Raw image bytes (already validated as JPEG/PNG)
        file_name: Original file name, for display
        store: History store to check and update
        geocoder: Optional reverse geocoder
        device_location: Device coordinates the caller already holds
        device_locator: Optional callable returning the device's
            {latitude, longitude}; bounded by device_timeout and only
            consulted when device_location is not given
        device_timeout: Seconds to wait for device_locator
        preview_size: Maximum preview thumbnail size
        exiftool_path: ExifTool executable override

    Returns:
        Submission with the verdict and updated history

    Raises:
        UnreadableImageError: If the bytes cannot be parsed. The history
            is not touched in that case.
    """
    with ThreadPoolExecutor(max_workers=3) as executor:
        hash_future = executor.submit(hash_bytes, data)
        metadata_future = executor.submit(read_metadata, data, exiftool_path)
        preview_future = executor.submit(make_preview_url, data, preview_size)

        content_hash = hash_future.result()
        metadata = metadata_future.result()
        preview_url = preview_future.result()

    metadata = attach_location_name(metadata, geocoder)

    if device_location is None and device_locator is not None:
        device_location = normalize_device_location(bounded_call(device_locator, device_timeout))

    history = store.load()
    verification = classify(metadata, content_hash, history)

    entry = HistoryEntry.create(
        content_hash=content_hash,
        file_name=file_name,
        preview_url=preview_url,
        verification=verification,
        metadata=metadata,
    )
    updated = store.prepend(entry, history)

    logger.info(
        f"Verified {file_name}: {verification.status.value} "
        f"(completeness={metadata.completeness.value}, hash={content_hash[:12]})"
    )

    return Submission(
        content_hash=content_hash,
        metadata=metadata,
        verification=verification,
        entry=entry,
        history=updated,
        device_location=device_location,
    )
