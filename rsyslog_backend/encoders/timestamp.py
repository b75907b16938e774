"""
Timestamp encoding for the RFC5424 header.
"""

from datetime import datetime, timezone
from typing import Tuple

TimestampFields = Tuple[int, int, int, int, int, int, int]


def encode_timestamp(
    year: int,
    month: int,
    day: int,
    hour: int,
    minute: int,
    second: int,
    millisecond: int
) -> str:
    """
    Format calendar fields as YYYY-MM-DDTHH:MM:SS.mmm.

    No zone suffix is written here; the identity prefix that follows the
    timestamp in the packet starts with "Z".

    Args:
        year: Four digit year
        month: Month 1-12
        day: Day of month
        hour: Hour 0-23
        minute: Minute 0-59
        second: Second 0-60
        millisecond: Millisecond 0-999

    Returns:
        The encoded timestamp string
    """
    return (
        f"{year:04d}-{month:02d}-{day:02d}"
        f"T{hour:02d}:{minute:02d}:{second:02d}.{millisecond:03d}"
    )


def timestamp_fields(created: float) -> TimestampFields:
    """Split an epoch timestamp (e.g. LogRecord.created) into UTC calendar fields."""
    dt = datetime.fromtimestamp(created, tz=timezone.utc)
    return (
        dt.year,
        dt.month,
        dt.day,
        dt.hour,
        dt.minute,
        dt.second,
        dt.microsecond // 1000,
    )
