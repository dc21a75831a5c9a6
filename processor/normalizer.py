"""Date and time normalization for sheet cells."""
import logging
import re
from datetime import date
from typing import Optional

logger = logging.getLogger(__name__)

MONTHS = {
    'jan': 1, 'feb': 2, 'mar': 3, 'apr': 4, 'may': 5, 'jun': 6,
    'jul': 7, 'aug': 8, 'sep': 9, 'oct': 10, 'nov': 11, 'dec': 12
}

DAY_MONTH_PATTERN = re.compile(r'^(\d{1,2})-([A-Za-z]{3})$')
ISO_DATE_PATTERN = re.compile(r'^(\d{4})-(\d{2})-(\d{2})$')
US_DATE_PATTERN = re.compile(r'^(\d{1,2})/(\d{1,2})/(\d{4})$')

TWELVE_HOUR_PATTERN = re.compile(r'^(\d{1,2}):(\d{2})\s*(AM|PM)$', re.IGNORECASE)
HOUR_MINUTE_PATTERN = re.compile(r'^(\d{1,2}):(\d{2})$')
ISO_TIME_PATTERN = re.compile(r'^(\d{2}):(\d{2}):(\d{2})$')
RANGE_PREFIX_PATTERN = re.compile(
    r'^(\d{1,2}(?::\d{2})?)\s*(?:am|pm)?\s*-', re.IGNORECASE
)


def _format_date(year: int, month: int, day: int) -> Optional[str]:
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def parse_date(text: str, assumed_year: int) -> Optional[str]:
    """
    Normalize a date cell to ISO 8601 (YYYY-MM-DD).

    Accepted shapes, in priority order: ``DD-MMM`` (combined with
    ``assumed_year``), ``YYYY-MM-DD`` and US ``MM/DD/YYYY``. Shapes that
    match but name an impossible calendar date are rejected.

    Args:
        text: Raw date cell
        assumed_year: Year applied to ``DD-MMM`` values

    Returns:
        ISO date string or None if the cell cannot be parsed
    """
    if not text:
        return None
    text = text.strip()

    match = DAY_MONTH_PATTERN.match(text)
    if match:
        month = MONTHS.get(match.group(2).lower())
        if month is None:
            return None
        return _format_date(assumed_year, month, int(match.group(1)))

    match = ISO_DATE_PATTERN.match(text)
    if match:
        if _format_date(*(int(part) for part in match.groups())) is None:
            return None
        return text

    match = US_DATE_PATTERN.match(text)
    if match:
        month, day, year = (int(part) for part in match.groups())
        return _format_date(year, month, day)

    return None


def _format_time(hour: int, minute: int, second: int = 0) -> Optional[str]:
    if not (0 <= hour < 24 and 0 <= minute < 60 and 0 <= second < 60):
        return None
    return f"{hour:02d}:{minute:02d}:{second:02d}"


def parse_time(text: str) -> Optional[str]:
    """
    Normalize a time cell to 24-hour ``HH:MM:SS``.

    Handles ``H:MM AM|PM``, bare ``HH:MM``, ``HH:MM:SS`` and range prefixes
    such as ``4pm - 6pm``. For ranges only the start token is kept, and it
    is read as PM whenever "pm" appears anywhere in the cell, so
    ``9-12:30 pm`` becomes 21:00:00.

    Args:
        text: Raw time cell

    Returns:
        Normalized time string or None if the cell cannot be parsed
    """
    if not text:
        return None
    text = text.strip()

    match = TWELVE_HOUR_PATTERN.match(text)
    if match:
        hour = int(match.group(1))
        minute = int(match.group(2))
        if not 1 <= hour <= 12:
            return None
        is_pm = match.group(3).upper() == 'PM'
        if hour == 12:
            hour = 12 if is_pm else 0
        elif is_pm:
            hour += 12
        return _format_time(hour, minute)

    match = HOUR_MINUTE_PATTERN.match(text)
    if match:
        return _format_time(int(match.group(1)), int(match.group(2)))

    match = ISO_TIME_PATTERN.match(text)
    if match:
        if _format_time(*(int(part) for part in match.groups())) is None:
            return None
        return text

    match = RANGE_PREFIX_PATTERN.match(text)
    if match:
        start = match.group(1)
        if ':' not in start:
            start = f"{start}:00"
        meridiem = 'PM' if 'pm' in text.lower() else 'AM'
        logger.debug(f"Extracted range start '{start} {meridiem}' from '{text}'")
        return parse_time(f"{start} {meridiem}")

    return None
