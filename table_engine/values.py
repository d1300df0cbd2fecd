"""
Cell value parsing and comparison for the table engine.

Number and date columns compare parsed values; anything that does not parse
is reported as None so callers can degrade (filters treat it as a non-match,
sorting falls back to text comparison).
"""
import math
from datetime import date, datetime, timezone
from typing import Any, Optional


def stringify(value: Any) -> str:
    """Render a raw cell value as text (None becomes an empty string)."""
    if value is None:
        return ''
    return str(value)


def parse_number(value: Any) -> Optional[float]:
    """
    Parse a cell or filter value as a finite number.

    Args:
        value: int/float, or a string holding a number

    Returns:
        The number as float, or None if it cannot be parsed

    Examples:
        >>> parse_number(' 42 ')
        42.0

        >>> parse_number('')
        None

        >>> parse_number('abc')
        None
    """
    # bool is an int subclass; "True" is not a number in a table cell
    if isinstance(value, bool) or value is None:
        return None

    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            number = float(text)
        except (ValueError, OverflowError):
            return None

    if math.isnan(number) or math.isinf(number):
        return None
    return number


def parse_date_ms(value: Any) -> Optional[float]:
    """
    Parse a cell or filter value as a point in time.

    Accepts datetime/date objects and ISO-8601 strings, with either 'T' or a
    space between date and time and an optional trailing 'Z'. Naive values are
    taken as UTC.

    Args:
        value: datetime, date or timestamp string

    Returns:
        Milliseconds since the Unix epoch, or None if it cannot be parsed

    Examples:
        >>> parse_date_ms('1970-01-02')
        86400000.0

        >>> parse_date_ms('1970-01-01 00:00:01')
        1000.0

        >>> parse_date_ms('yesterday')
        None
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, date):
        moment = datetime(value.year, value.month, value.day)
    else:
        text = str(value).strip()
        if not text:
            return None
        if text.endswith(('Z', 'z')):
            text = text[:-1] + '+00:00'
        try:
            moment = datetime.fromisoformat(text.replace(' ', 'T'))
        except ValueError:
            return None

    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.timestamp() * 1000.0


def compare_numbers(left: float, right: float) -> int:
    """Three-way comparison of two parsed numbers."""
    if left < right:
        return -1
    if left > right:
        return 1
    return 0


def compare_text(left: str, right: str) -> int:
    """
    Three-way, case-insensitive text comparison.

    Strings that differ only by case are ordered case-sensitively so the
    result is still a total order.
    """
    left_folded = left.casefold()
    right_folded = right.casefold()
    if left_folded != right_folded:
        return -1 if left_folded < right_folded else 1
    if left != right:
        return -1 if left < right else 1
    return 0
