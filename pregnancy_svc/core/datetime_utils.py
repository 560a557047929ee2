"""
UTC helpers. Timestamps are stored as ISO 8601 strings with a 'Z' suffix.
"""
from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_utc(dt: datetime) -> datetime:
    """Naive datetimes are taken to be UTC already."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_iso(dt: datetime) -> str:
    """
    e.g. "2024-01-15T05:00:00.123456Z".

    Microseconds are kept so records created in the same second still sort
    in creation order.
    """
    return to_utc(dt).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def format_display_date(dt: datetime) -> str:
    """Short date used in prompt context, e.g. 'Apr 15, 2023'."""
    return to_utc(dt).strftime("%b %d, %Y")
