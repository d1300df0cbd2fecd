"""
Time utility functions for Ticket Desk.
"""
from datetime import datetime
from typing import Union


def parse_timestamp(timestamp_str: Union[str, datetime]) -> datetime:
    """
    Parse timestamp string into datetime object, or return datetime if already a datetime.

    Handles both ISO format timestamps and timestamps with space instead of 'T'.

    Args:
        timestamp_str: Timestamp string in ISO format (or with space instead of 'T'),
                      or a datetime object

    Returns:
        datetime object

    Raises:
        ValueError: If timestamp_str is None, empty, or cannot be parsed

    Examples:
        >>> parse_timestamp("2024-01-15T12:30:45")
        datetime(2024, 1, 15, 12, 30, 45)

        >>> parse_timestamp("2024-01-15 12:30:45")
        datetime(2024, 1, 15, 12, 30, 45)
    """
    if timestamp_str is None:
        raise ValueError("Invalid timestamp: None")

    if isinstance(timestamp_str, datetime):
        return timestamp_str

    if not isinstance(timestamp_str, str):
        raise ValueError(f"Invalid timestamp: expected string or datetime, got {type(timestamp_str).__name__}")
    if not timestamp_str.strip():
        raise ValueError("Invalid timestamp: empty string")

    return datetime.fromisoformat(timestamp_str.strip().replace(' ', 'T'))


def format_timestamp(timestamp_input: Union[str, datetime, None]) -> str:
    """
    Format a timestamp for table cells (e.g., "2025-11-08 07:28").

    Args:
        timestamp_input: ISO format timestamp string or datetime object

    Returns:
        Formatted timestamp string, or '' if the input is empty or invalid

    Examples:
        >>> format_timestamp("2025-11-08T07:28:40")
        '2025-11-08 07:28'

        >>> format_timestamp(None)
        ''
    """
    try:
        return parse_timestamp(timestamp_input).strftime('%Y-%m-%d %H:%M')
    except (ValueError, AttributeError, TypeError):
        return ""
