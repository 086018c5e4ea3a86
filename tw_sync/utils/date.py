"""
Date parsing and formatting utilities.
"""

from datetime import datetime, timezone
from typing import Optional


TASKWARRIOR_FORMAT = '%Y%m%dT%H%M%SZ'


def parse_taskwarrior_date(date_str: Optional[str]) -> Optional[datetime]:
    """
    Parse a Taskwarrior export timestamp into an aware UTC datetime.

    Handles:
    - Taskwarrior's compact form (20240115T143000Z)
    - ISO 8601 (2024-01-15T14:30:00Z, with or without offset)

    Args:
        date_str: Date string to parse

    Returns:
        Parsed datetime or None if invalid
    """
    if not date_str:
        return None

    try:
        return datetime.strptime(date_str, TASKWARRIOR_FORMAT).replace(tzinfo=timezone.utc)
    except ValueError:
        pass

    try:
        parsed = datetime.fromisoformat(date_str.replace('Z', '+00:00'))
    except ValueError:
        return None
    return ensure_aware(parsed).astimezone(timezone.utc)


def format_taskwarrior_date(value: Optional[datetime]) -> Optional[str]:
    """
    Format a datetime the way ``task import`` expects it (UTC, compact).

    Args:
        value: Datetime to format; naive values are taken as UTC

    Returns:
        Formatted string or None
    """
    if value is None:
        return None
    return ensure_aware(value).astimezone(timezone.utc).strftime(TASKWARRIOR_FORMAT)


def ensure_aware(value: datetime) -> datetime:
    """Attach UTC to naive datetimes; aware values are returned unchanged."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def truncate_seconds(value: Optional[datetime]) -> Optional[datetime]:
    """Drop sub-second precision, which neither store keeps."""
    if value is None:
        return None
    return value.replace(microsecond=0)
