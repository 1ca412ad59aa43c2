"""
Authenticity verdict from normalized metadata and content hash.

Reuse dominates: a hash already in the history is Reused no matter what
the metadata says. Otherwise the image is Verified only when both the
capture time and a full GPS pair are present.
"""
from typing import Iterable

from imgverify.models import (
    CheckResult, HistoryEntry, MetadataResult,
    VerificationResult, VerificationStatus,
)

REASON_REUSED = "This image hash matches a previous submission."
REASON_VERIFIED = "Capture time and GPS location are present."
REASON_SUSPICIOUS = "Missing capture time or GPS location metadata."


def contains_hash(entries: Iterable[HistoryEntry], content_hash: str) -> bool:
    """True if any entry was recorded for the same content hash."""
    return any(entry.hash and entry.hash == content_hash for entry in entries)


def classify(
    metadata: MetadataResult,
    content_hash: str,
    history: Iterable[HistoryEntry],
) -> VerificationResult:
    """
    Classify a submission.

    Args:
        metadata: Normalized metadata for the image
        content_hash: Digest of the image bytes
        history: Previously recorded entries

    Returns:
        VerificationResult; checks are reported even when reused
    """
    reused = contains_hash(history, content_hash)
    time_check = CheckResult.PASS if metadata.capture_time is not None else CheckResult.FAIL
    location_check = CheckResult.PASS if metadata.gps.is_complete else CheckResult.FAIL

    if reused:
        status, reason = VerificationStatus.REUSED, REASON_REUSED
    elif time_check is CheckResult.PASS and location_check is CheckResult.PASS:
        status, reason = VerificationStatus.VERIFIED, REASON_VERIFIED
    else:
        status, reason = VerificationStatus.SUSPICIOUS, REASON_SUSPICIOUS

    return VerificationResult(
        status=status,
        reason=reason,
        time_check=time_check,
        location_check=location_check,
        reused=reused,
    )
