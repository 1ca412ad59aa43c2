"""
EXIF timestamp parsing and display formatting.

EXIF stores dates as "YYYY:MM:DD HH:MM:SS", optionally followed by
sub-seconds and a UTC offset. Readers may also hand back native
datetime values.
"""
from datetime import date, datetime, time
from typing import Any, Optional

MONTH_ABBREVIATIONS = (
    'Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun',
    'Jul', 'Aug', 'Sep', 'Oct', 'Nov', 'Dec',
)


def parse_exif_date(raw: Any) -> Optional[datetime]:
    """
    Convert an EXIF date value to a datetime.

    Handles formats like:
    - "2024:01:15 12:00:00" (EXIF format)
    - "2024:01:15 12:00:00.25+02:00" (with sub-seconds and offset)
    - "2024:01:15" (date only, midnight)
    - datetime / date objects

    Args:
        raw: Value read from a date tag

    Returns:
        datetime (naive unless the value carried an offset), or None if
        the value is not a recognizable date
    """
    if isinstance(raw, datetime):
        return raw
    if isinstance(raw, date):
        return datetime.combine(raw, time())
    if not isinstance(raw, str):
        return None

    text = raw.strip()
    if not text:
        return None

    date_part, _, time_part = text.partition(' ')
    iso_like = date_part.replace(':', '-')
    time_part = time_part.strip()
    if time_part:
        iso_like = f"{iso_like}T{time_part}"

    try:
        return datetime.fromisoformat(iso_like)
    except ValueError:
        return None


def format_capture_time(value: datetime) -> str:
    """
    Format a capture time for display, e.g. "14 May 2023, 10:22".

    Month names come from a fixed table so output does not depend on
    the process locale. The wall-clock time is shown as recorded.
    """
    month = MONTH_ABBREVIATIONS[value.month - 1]
    return f"{value.day} {month} {value.year}, {value.hour:02d}:{value.minute:02d}"
