"""
Library modules for image verification.

Metadata normalization, content hashing, classification and the
persisted submission history.
"""
from imgverify.lib.coordinates import normalize_coordinate, parse_coordinate, apply_reference
from imgverify.lib.timestamp import parse_exif_date, format_capture_time
from imgverify.lib.fields import resolve, resolve_first, first_present
from imgverify.lib.metadata import extract_metadata, decode_metadata, read_metadata
from imgverify.lib.hashing import hash_bytes
from imgverify.lib.verification import classify
from imgverify.lib.history import HistoryStore, history_stats
from imgverify.lib.processing import verify_submission, Submission

__all__ = [
    # Coordinate and timestamp normalization
    'normalize_coordinate',
    'parse_coordinate',
    'apply_reference',
    'parse_exif_date',
    'format_capture_time',
    # Field resolution
    'resolve',
    'resolve_first',
    'first_present',
    # Metadata extraction
    'extract_metadata',
    'decode_metadata',
    'read_metadata',
    # Hashing
    'hash_bytes',
    # Classification
    'classify',
    # History
    'HistoryStore',
    'history_stats',
    # Pipeline
    'verify_submission',
    'Submission',
]
