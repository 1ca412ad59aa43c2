"""
First-present lookup over loosely keyed metadata records.

Metadata readers disagree on key casing ("GPSLatitude", "latitude",
"Latitude"), namespacing ("xmp:GPSLatitude") and nesting (top level vs.
a "gps", "exif" or "xmp" sub-record). Each logical field is described
as an ordered list of Candidate(section, keys) pairs and resolved by
resolve_first().

Absence is always None. A value of 0 or 0.0 is present.
"""
from collections.abc import Mapping
from typing import Any, Callable, Iterable, NamedTuple, Optional


class Candidate(NamedTuple):
    """Keys to try inside one section of a record (None = top level)."""
    section: Optional[str]
    keys: tuple


def resolve(record: Any, keys: Iterable[str]) -> Any:
    """
    Return the first key's value that is present and not None.

    Args:
        record: Mapping to search (anything else resolves to None)
        keys: Candidate keys in priority order

    Returns:
        The value, or None if no key holds one
    """
    if not isinstance(record, Mapping):
        return None
    for key in keys:
        if key in record:
            value = record[key]
            if value is not None:
                return value
    return None


def sub_record(record: Any, section: Optional[str]) -> Optional[Mapping]:
    """Return the named sub-record, or the record itself for section None."""
    if not isinstance(record, Mapping):
        return None
    if section is None:
        return record
    nested = record.get(section)
    return nested if isinstance(nested, Mapping) else None


def resolve_first(
    record: Any,
    candidates: Iterable[Candidate],
    convert: Optional[Callable[[Any], Any]] = None,
) -> Any:
    """
    Walk candidates in order and return the first usable value.

    When convert is given, each raw value is passed through it and a
    None result moves on to the next candidate section.
    """
    for candidate in candidates:
        value = resolve(sub_record(record, candidate.section), candidate.keys)
        if value is None:
            continue
        if convert is not None:
            value = convert(value)
        if value is not None:
            return value
    return None


def first_present(*values: Any) -> Any:
    """First argument that is not None."""
    for value in values:
        if value is not None:
            return value
    return None
