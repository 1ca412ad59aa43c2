"""
EXIF/XMP metadata decoding and normalization.

decode_metadata() wraps PyExifTool and reshapes its grouped output into
a loosely keyed record. extract_metadata() turns such a record (from
ExifTool or any other reader) into a MetadataResult: capture time,
signed GPS pair, device string and completeness tier.
"""
from collections.abc import Mapping
from functools import partial
from pathlib import Path
from typing import Any, NamedTuple, Optional
import logging
import os
import tempfile

import exiftool
from exiftool.exceptions import ExifToolExecuteException

from imgverify.lib.coordinates import (
    LATITUDE_REFS, LONGITUDE_REFS,
    apply_reference, normalize_reference, parse_coordinate,
)
from imgverify.lib.errors import UnreadableImageError
from imgverify.lib.fields import Candidate, first_present, resolve_first
from imgverify.lib.timestamp import format_capture_time, parse_exif_date
from imgverify.models import GpsCoordinates, MetadataResult

logger = logging.getLogger(__name__)

# Path to exiftool executable - use system default or override via environment
EXIFTOOL_PATH = os.environ.get('EXIFTOOL_PATH', 'exiftool')

# Tags to check for capture time, in priority order
DATETIME_TAGS = (
    'DateTimeOriginal',  # Best: original capture time
    'CreateDate',        # When digitized
    'ModifyDate',        # When last edited
)

LATITUDE_CANDIDATES = (
    Candidate('gps', ('latitude', 'Latitude')),
    Candidate(None, ('GPSLatitude', 'latitude', 'Latitude', 'exif:GPSLatitude', 'xmp:GPSLatitude')),
    Candidate('exif', ('GPSLatitude', 'latitude', 'Latitude')),
    Candidate('xmp', ('GPSLatitude', 'latitude', 'Latitude')),
)

LONGITUDE_CANDIDATES = (
    Candidate('gps', ('longitude', 'Longitude')),
    Candidate(None, ('GPSLongitude', 'longitude', 'Longitude', 'exif:GPSLongitude', 'xmp:GPSLongitude')),
    Candidate('exif', ('GPSLongitude', 'longitude', 'Longitude')),
    Candidate('xmp', ('GPSLongitude', 'longitude', 'Longitude')),
)

LATITUDE_REF_CANDIDATES = (
    Candidate(None, ('GPSLatitudeRef', 'exif:GPSLatitudeRef', 'xmp:GPSLatitudeRef')),
    Candidate('exif', ('GPSLatitudeRef',)),
    Candidate('xmp', ('GPSLatitudeRef',)),
    Candidate('gps', ('latitudeRef', 'LatitudeRef')),
)

LONGITUDE_REF_CANDIDATES = (
    Candidate(None, ('GPSLongitudeRef', 'exif:GPSLongitudeRef', 'xmp:GPSLongitudeRef')),
    Candidate('exif', ('GPSLongitudeRef',)),
    Candidate('xmp', ('GPSLongitudeRef',)),
    Candidate('gps', ('longitudeRef', 'LongitudeRef')),
)

MAKE_CANDIDATES = (
    Candidate(None, ('Make', 'make')),
    Candidate('exif', ('Make',)),
)

MODEL_CANDIDATES = (
    Candidate(None, ('Model', 'model')),
    Candidate('exif', ('Model',)),
)

# ExifTool GPS tags copied into the "gps" sub-record, under reader-style names
GPS_SUBRECORD_KEYS = {
    'GPSLatitude': 'latitude',
    'GPSLongitude': 'longitude',
    'GPSLatitudeRef': 'latitudeRef',
    'GPSLongitudeRef': 'longitudeRef',
    'GPSAltitude': 'altitude',
}

# ExifTool groups whose tags are also exposed at the top level
TOP_LEVEL_GROUPS = ('EXIF', 'File', 'PNG', 'JFIF')


class DecodedMetadata(NamedTuple):
    """Raw reader output: the record plus an optional pre-resolved GPS pair."""
    record: dict
    gps: Optional[dict]


# ============================================================================
# Normalization
# ============================================================================

def _pre_resolved(gps: Any, axis: str) -> Any:
    if gps is None:
        return None
    if isinstance(gps, Mapping):
        return gps.get(axis)
    return getattr(gps, axis, None)


def _resolve_capture_time(record: Mapping) -> Optional[str]:
    for tag in DATETIME_TAGS:
        candidates = (
            Candidate(None, (tag,)),
            Candidate('exif', (tag,)),
            Candidate('xmp', (tag,)),
        )
        captured_at = resolve_first(record, candidates, parse_exif_date)
        if captured_at is not None:
            return format_capture_time(captured_at)
    return None


def _resolve_axis(record, gps, axis, candidates, ref_candidates, allowed_refs) -> Optional[float]:
    coordinate = first_present(
        parse_coordinate(_pre_resolved(gps, axis)),
        resolve_first(record, candidates, parse_coordinate),
    )
    ref = resolve_first(record, ref_candidates, partial(normalize_reference, allowed=allowed_refs))
    return apply_reference(coordinate, ref)


def _resolve_text(record: Mapping, candidates) -> str:
    value = resolve_first(record, candidates)
    return str(value).strip() if value is not None else ''


def _resolve_device(record: Mapping) -> Optional[str]:
    make = _resolve_text(record, MAKE_CANDIDATES)
    model = _resolve_text(record, MODEL_CANDIDATES)
    device = f"{make} {model}".strip()
    return device or None


def extract_metadata(record: Any, gps: Any = None) -> MetadataResult:
    """
    Normalize a parsed metadata record.

    Never raises for missing or malformed fields; each one independently
    falls back to None and completeness reflects what was recovered.

    Args:
        record: Loosely keyed mapping, optionally with gps/exif/xmp sub-records
        gps: Optional pre-resolved {latitude, longitude} from the reader

    Returns:
        MetadataResult with location_name unset
    """
    if not isinstance(record, Mapping):
        record = {}

    latitude = _resolve_axis(
        record, gps, 'latitude', LATITUDE_CANDIDATES, LATITUDE_REF_CANDIDATES, LATITUDE_REFS
    )
    longitude = _resolve_axis(
        record, gps, 'longitude', LONGITUDE_CANDIDATES, LONGITUDE_REF_CANDIDATES, LONGITUDE_REFS
    )

    return MetadataResult(
        capture_time=_resolve_capture_time(record),
        gps=GpsCoordinates(latitude=latitude, longitude=longitude),
        device=_resolve_device(record),
    )


# ============================================================================
# ExifTool decoding
# ============================================================================

def build_record(tags: Mapping[str, Any]) -> DecodedMetadata:
    """
    Reshape ExifTool "Group:Tag" output into a reader-style record.

    EXIF/File/PNG/JFIF tags are exposed at the top level by bare name
    (EXIF wins on collisions). EXIF and XMP tags are also kept in "exif"
    and "xmp" sub-records, GPS tags in a "gps" sub-record. The
    Composite GPS position becomes the pre-resolved pair.
    """
    record: dict = {}
    exif: dict = {}
    xmp: dict = {}
    gps: dict = {}
    composite: dict = {}

    for name, value in tags.items():
        group, _, tag = name.rpartition(':')
        if not group:
            continue

        if group == 'EXIF':
            exif[tag] = value
            record[tag] = value
            if tag in GPS_SUBRECORD_KEYS:
                gps[GPS_SUBRECORD_KEYS[tag]] = value
        elif group == 'XMP':
            xmp[tag] = value
        elif group == 'Composite':
            composite[tag] = value
        elif group in TOP_LEVEL_GROUPS:
            record.setdefault(tag, value)

    if exif:
        record['exif'] = exif
    if xmp:
        record['xmp'] = xmp
    if gps:
        record['gps'] = gps

    pair = None
    if 'GPSLatitude' in composite or 'GPSLongitude' in composite:
        pair = {
            'latitude': composite.get('GPSLatitude'),
            'longitude': composite.get('GPSLongitude'),
        }

    return DecodedMetadata(record=record, gps=pair)


def decode_metadata(data: bytes, executable: Optional[str] = None) -> DecodedMetadata:
    """
    Decode embedded metadata from image bytes using ExifTool.

    Only ExifTool failing on the file itself counts as unreadable input.
    A missing executable (FileNotFoundError) or a broken ExifTool
    process propagates unchanged.

    Args:
        data: Raw file bytes
        executable: ExifTool path (defaults to EXIFTOOL_PATH)

    Returns:
        DecodedMetadata for the file

    Raises:
        UnreadableImageError: If ExifTool cannot read the bytes at all
    """
    handle = tempfile.NamedTemporaryFile(prefix='imgverify_', delete=False)
    path = Path(handle.name)
    try:
        with handle:
            handle.write(data)

        with exiftool.ExifToolHelper(executable=executable or EXIFTOOL_PATH) as et:
            metadata_list = et.get_metadata(str(path))
    except ExifToolExecuteException as e:
        raise UnreadableImageError(f"ExifTool could not read file: {e}") from e
    finally:
        path.unlink(missing_ok=True)

    if not metadata_list:
        raise UnreadableImageError("ExifTool returned no metadata")

    tags = metadata_list[0]
    if 'ExifTool:Error' in tags:
        raise UnreadableImageError(f"ExifTool could not read file: {tags['ExifTool:Error']}")

    return build_record(tags)


def read_metadata(data: bytes, executable: Optional[str] = None) -> MetadataResult:
    """Decode and normalize metadata for image bytes."""
    decoded = decode_metadata(data, executable)
    result = extract_metadata(decoded.record, decoded.gps)
    logger.debug(f"Metadata completeness: {result.completeness.value}")
    return result


def pick_gps_fields(record: Mapping) -> dict:
    """Top-level keys that look GPS related."""
    return {
        key: value for key, value in record.items()
        if any(part in key.lower() for part in ('gps', 'latitude', 'longitude'))
    }


def extract_debug_metadata(decoded: DecodedMetadata) -> dict:
    """Raw view of where GPS values were found, for troubleshooting."""
    record = decoded.record

    def section(name):
        value = record.get(name)
        return value if isinstance(value, Mapping) else None

    return {
        'gpsData': decoded.gps,
        'gpsRecord': section('gps'),
        'exifRecord': section('exif'),
        'xmpRecord': section('xmp'),
        'gpsFields': pick_gps_fields(record),
    }
