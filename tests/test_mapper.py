"""Unit tests for the record mapper."""
from processor.mapper import derive_end_time, physical_row_number, to_event, to_task
from processor.models import Priority, SourceRef

SOURCE = SourceRef(sheet_id='sheet-abc', row_index=5)


class TestToEvent:
    """Test cases for to_event."""

    def test_parsed_time_gets_one_hour_slot(self):
        row = ["Lecture: Intro", "28-Apr", "10:00 AM", "", "Room 4"]
        event = to_event(row, "2025-04-28", "10:00:00", SOURCE)

        assert event.title == "Lecture: Intro"
        assert event.date == "2025-04-28"
        assert event.start_time == "10:00:00"
        assert event.end_time == "11:00:00"
        assert event.description == "Room 4"
        assert event.is_online is False
        assert event.location == "Campus"
        assert event.meeting_link is None
        assert event.notes is None
        assert event.source == SOURCE
        assert event.user_id is None

    def test_missing_time_uses_default_window(self):
        event = to_event(["Lecture", "28-Apr"], "2025-04-28", None, SOURCE)

        assert event.start_time == "09:00:00"
        assert event.end_time == "10:00:00"
        assert event.description is None

    def test_late_start_clamps_before_midnight(self):
        event = to_event(["Exam", "28-Apr"], "2025-04-28", "23:15:00", SOURCE)

        assert event.start_time == "23:15:00"
        assert event.end_time == "23:59:00"

    def test_online_remarks(self):
        row = ["Meeting", "28-Apr", "", "Scheduled", "Join on Zoom"]
        event = to_event(row, "2025-04-28", None, SOURCE)

        assert event.is_online is True
        assert event.location is None
        assert event.notes == "Status: Scheduled"

    def test_empty_title_defaults(self):
        event = to_event(["", "28-Apr"], "2025-04-28", None, SOURCE)
        assert event.title == "Untitled"


class TestToTask:
    """Test cases for to_task."""

    def test_task_defaults(self):
        task = to_task(["Buy groceries", "29-Apr"], "2025-04-29", None, SOURCE)

        assert task.title == "Buy groceries"
        assert task.start_time is None
        assert task.end_time is None
        assert task.is_completed is False
        assert task.priority == Priority.MEDIUM
        assert task.notes is None
        assert task.source == SOURCE

    def test_parsed_time_kept_without_end_time(self):
        task = to_task(["Call bank", "29-Apr", "4:30 PM"], "2025-04-29", "16:30:00", SOURCE)

        assert task.start_time == "16:30:00"
        assert task.end_time is None

    def test_urgent_remarks_raise_priority(self):
        row = ["Submit assignment", "29-Apr", "", "", "URGENT before noon"]
        assert to_task(row, "2025-04-29", None, SOURCE).priority == Priority.HIGH

    def test_important_remarks_raise_priority(self):
        row = ["Pay rent", "29-Apr", "", "", "important"]
        assert to_task(row, "2025-04-29", None, SOURCE).priority == Priority.HIGH

    def test_completed_status(self):
        row = ["Pay rent", "29-Apr", "", "Completed"]
        task = to_task(row, "2025-04-29", None, SOURCE)

        assert task.is_completed is True
        assert task.notes == "Status: Completed"

    def test_done_status_must_match_exactly(self):
        assert to_task(["A", "1-May", "", "done"], "2025-05-01", None, SOURCE).is_completed
        assert not to_task(["A", "1-May", "", "not done"], "2025-05-01", None, SOURCE).is_completed


def test_derive_end_time_keeps_minutes():
    assert derive_end_time("14:45:00") == "15:45:00"


def test_derive_end_time_never_rolls_over():
    assert derive_end_time("23:00:00") == "23:59:00"


def test_physical_row_number_accounts_for_header():
    assert physical_row_number(0) == 2
    assert physical_row_number(9) == 11
