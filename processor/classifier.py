"""Keyword classifier deciding whether a sheet row is an event or a task."""
from processor.models import RawRow, RowCategory

HEADER_TITLES = ('name', 'title')
EVENT_TITLE_KEYWORDS = ('lecture', 'class', 'meeting', 'presentation', 'exam', 'quiz')
EVENT_REMARK_KEYWORDS = ('submission', 'lecture')

TITLE_COLUMN = 0
REMARKS_COLUMN = 4


def cell(row: RawRow, index: int) -> str:
    """Return the stripped cell at ``index`` or an empty string."""
    if index < len(row) and row[index] is not None:
        return str(row[index]).strip()
    return ''


def classify(row: RawRow) -> RowCategory:
    """
    Classify a raw row.

    Structural rows (too short, untitled, or repeating the header) are
    skipped. Any event keyword in the title or remarks makes the row an
    event; everything else is a task.

    Args:
        row: Raw sheet row

    Returns:
        RowCategory for the row
    """
    if len(row) < 2:
        return RowCategory.SKIP

    title = cell(row, TITLE_COLUMN).lower()
    if not title or title in HEADER_TITLES:
        return RowCategory.SKIP

    remarks = cell(row, REMARKS_COLUMN).lower()
    if any(keyword in title for keyword in EVENT_TITLE_KEYWORDS):
        return RowCategory.EVENT
    if any(keyword in remarks for keyword in EVENT_REMARK_KEYWORDS):
        return RowCategory.EVENT

    return RowCategory.TASK
