"""Build canonical event and task records from classified sheet rows."""
from typing import Optional

from processor.classifier import REMARKS_COLUMN, TITLE_COLUMN, cell
from processor.models import (
    CanonicalEvent,
    CanonicalTask,
    Priority,
    RawRow,
    SourceRef,
)

STATUS_COLUMN = 3

DEFAULT_TITLE = 'Untitled'
DEFAULT_START_TIME = '09:00:00'
DEFAULT_END_TIME = '10:00:00'
LATEST_END_TIME = '23:59:00'
DEFAULT_LOCATION = 'Campus'

ONLINE_KEYWORDS = ('online', 'zoom')
HIGH_PRIORITY_KEYWORDS = ('urgent', 'important')


def physical_row_number(logical_index: int) -> int:
    """Sheet row number for the 0-based index of a data row (after the header)."""
    return logical_index + 2


def derive_end_time(start_time: str) -> str:
    """
    Synthesize an end time one hour after ``start_time``.

    Events never cross midnight: a start in the 23:00 hour ends at 23:59:00.

    Args:
        start_time: Normalized ``HH:MM:SS`` start time

    Returns:
        Normalized end time
    """
    hour, minute, second = start_time.split(':')
    if int(hour) >= 23:
        return LATEST_END_TIME
    return f"{int(hour) + 1:02d}:{minute}:{second}"


def _notes(row: RawRow) -> Optional[str]:
    status = cell(row, STATUS_COLUMN)
    return f"Status: {status}" if status else None


def to_event(
    row: RawRow,
    parsed_date: str,
    parsed_time: Optional[str],
    source: SourceRef
) -> CanonicalEvent:
    """
    Map a row classified as an event.

    Args:
        row: Raw sheet row
        parsed_date: Normalized date
        parsed_time: Normalized start time, or None to use the 09:00-10:00 slot
        source: Provenance of the row

    Returns:
        CanonicalEvent
    """
    remarks = cell(row, REMARKS_COLUMN)
    is_online = any(keyword in remarks.lower() for keyword in ONLINE_KEYWORDS)

    if parsed_time:
        start_time = parsed_time
        end_time = derive_end_time(parsed_time)
    else:
        start_time = DEFAULT_START_TIME
        end_time = DEFAULT_END_TIME

    return CanonicalEvent(
        title=cell(row, TITLE_COLUMN) or DEFAULT_TITLE,
        description=remarks or None,
        date=parsed_date,
        start_time=start_time,
        end_time=end_time,
        is_online=is_online,
        location=None if is_online else DEFAULT_LOCATION,
        meeting_link=None,
        notes=_notes(row),
        source=source
    )


def to_task(
    row: RawRow,
    parsed_date: str,
    parsed_time: Optional[str],
    source: SourceRef
) -> CanonicalTask:
    """
    Map a row classified as a task.

    Tasks keep the parsed start time as-is and never get an end time.
    """
    remarks = cell(row, REMARKS_COLUMN)
    status = cell(row, STATUS_COLUMN).lower()

    if any(keyword in remarks.lower() for keyword in HIGH_PRIORITY_KEYWORDS):
        priority = Priority.HIGH
    else:
        priority = Priority.MEDIUM

    return CanonicalTask(
        title=cell(row, TITLE_COLUMN) or DEFAULT_TITLE,
        description=remarks or None,
        date=parsed_date,
        start_time=parsed_time,
        end_time=None,
        is_completed='complete' in status or status == 'done',
        priority=priority,
        notes=_notes(row),
        source=source
    )
