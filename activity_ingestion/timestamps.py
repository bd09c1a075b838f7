"""
Timestamp helpers - tolerant ISO-8601 parsing and UTC formatting.
"""

from datetime import datetime, timezone
from typing import Any, Optional


EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 string, unix seconds or datetime into an aware UTC datetime.

    Returns None when the value cannot be interpreted.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    else:
        text = str(value).strip()
        if not text:
            return None
        if text.isdigit():
            return parse_timestamp(int(text))
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_iso(value: Any) -> str:
    """
    Canonical ISO-8601 UTC string for a timestamp.

    Unparsable text is kept verbatim; a missing value maps to the epoch so
    that the same input always yields the same string.
    """
    dt = parse_timestamp(value)
    if dt is not None:
        return dt.isoformat()
    if value is None or not str(value).strip():
        return EPOCH.isoformat()
    return str(value).strip()


def sort_key(value: Any) -> datetime:
    """Datetime used for ordering; unparsable values sort as the epoch."""
    return parse_timestamp(value) or EPOCH
