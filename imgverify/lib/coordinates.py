"""
GPS coordinate normalization.

EXIF and XMP readers hand back coordinates in several shapes:
- plain numbers (already decimal degrees)
- rationals, as {numerator, denominator} mappings or objects with those
  attributes (Fraction, Pillow's IFDRational)
- free text such as "40.7128 N" or 40 deg 42' 46.08" N
- [degrees, minutes, seconds] sequences of numbers or rationals

All shape handling lives in parse_coordinate(). Results are never NaN
or infinite; anything unusable becomes None.
"""
from collections.abc import Mapping
from typing import Any, NamedTuple, Optional
import math
import numbers
import re

# Compass letter standing on its own, so the 'e' in "deg" is not read as East
COMPASS_REGEX = re.compile(r'(?<![A-Za-z])([NSEW])(?![A-Za-z])', re.IGNORECASE)
NUMBER_REGEX = re.compile(r'-?\d+(?:\.\d+)?')

LATITUDE_REFS = frozenset('NS')
LONGITUDE_REFS = frozenset('EW')
NEGATIVE_REFS = frozenset('SW')


class Coordinate(NamedTuple):
    """
    A normalized coordinate value.

    signed is True when the value already carries its hemisphere (parsed
    from a string with a compass letter). Reference tags are only applied
    to unsigned values.
    """
    value: float
    signed: bool = False


def _finite(value: Any) -> Optional[float]:
    try:
        result = float(value)
    except (TypeError, ValueError, OverflowError, ZeroDivisionError):
        return None
    return result if math.isfinite(result) else None


def _is_number(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def _is_ratio(value: Any) -> bool:
    if isinstance(value, Mapping):
        return 'numerator' in value and 'denominator' in value
    return hasattr(value, 'numerator') and hasattr(value, 'denominator')


def _ratio_value(value: Any) -> Optional[float]:
    if isinstance(value, Mapping):
        numerator, denominator = value['numerator'], value['denominator']
    else:
        numerator, denominator = value.numerator, value.denominator

    if not _is_number(numerator) or not _is_number(denominator):
        return None
    if denominator == 0 or _finite(numerator) is None:
        return None
    try:
        return _finite(numerator / denominator)
    except (OverflowError, ZeroDivisionError):
        return None


def _component(value: Any) -> Optional[float]:
    """Single degree/minute/second element of a sequence."""
    if isinstance(value, bool):
        return None
    if _is_number(value):
        return _finite(value)
    if isinstance(value, str):
        return _finite(value.strip())
    if _is_ratio(value):
        return _ratio_value(value)
    return None


def _combine(degrees: float, minutes: float = 0.0, seconds: float = 0.0) -> Optional[float]:
    return _finite(degrees + minutes / 60 + seconds / 3600)


def _parse_coordinate_string(text: str) -> Optional[Coordinate]:
    text = text.strip()
    if not text:
        return None

    values = [_finite(token) for token in NUMBER_REGEX.findall(text)]
    values = [v for v in values if v is not None][:3]
    if not values:
        return None

    value = _combine(*values)
    if value is None:
        return None

    direction = COMPASS_REGEX.search(text)
    if direction is None:
        return Coordinate(value)

    if direction.group(1).upper() in NEGATIVE_REFS:
        value = -abs(value)
    return Coordinate(value, signed=True)


def _parse_dms_sequence(items) -> Optional[Coordinate]:
    degrees = _component(items[0])
    minutes = _component(items[1])
    seconds = _component(items[2]) if len(items) > 2 and items[2] is not None else 0.0
    if degrees is None or minutes is None or seconds is None:
        return None

    value = _combine(degrees, minutes, seconds)
    return Coordinate(value) if value is not None else None


def parse_coordinate(raw: Any) -> Optional[Coordinate]:
    """
    Normalize a raw EXIF/XMP coordinate value.

    Args:
        raw: Number, rational, string, or [deg, min, sec] sequence

    Returns:
        Coordinate with a finite decimal-degree value, or None
    """
    if raw is None or isinstance(raw, bool):
        return None

    if _is_number(raw):
        value = _finite(raw)
        return Coordinate(value) if value is not None else None

    if isinstance(raw, str):
        return _parse_coordinate_string(raw)

    if _is_ratio(raw):
        value = _ratio_value(raw)
        return Coordinate(value) if value is not None else None

    if isinstance(raw, (list, tuple)) and 2 <= len(raw) <= 3:
        return _parse_dms_sequence(raw)

    return None


def normalize_coordinate(raw: Any) -> Optional[float]:
    """Decimal degrees for a raw coordinate value, or None."""
    coordinate = parse_coordinate(raw)
    return coordinate.value if coordinate is not None else None


def normalize_reference(raw: Any, allowed: frozenset = LATITUDE_REFS | LONGITUDE_REFS) -> Optional[str]:
    """
    Reduce a GPS reference tag to a single hemisphere letter.

    Accepts "N", "s", "North", "West" and the like. Returns None for
    anything that does not start with one of the allowed letters.
    """
    if isinstance(raw, bytes):
        raw = raw.decode('ascii', errors='ignore')
    if not isinstance(raw, str):
        return None
    letter = raw.strip().upper()[:1]
    return letter if letter in allowed else None


def apply_reference(coordinate: Optional[Coordinate], ref: Optional[str]) -> Optional[float]:
    """
    Sign a coordinate using its hemisphere reference.

    S/W force a negative value and N/E a positive one. Values that were
    already signed by their own compass letter, or that have no reference,
    are returned unchanged.
    """
    if coordinate is None:
        return None
    if coordinate.signed or ref is None:
        return coordinate.value
    if ref in NEGATIVE_REFS:
        return -abs(coordinate.value)
    return abs(coordinate.value)
