"""Unit tests for the DynamoDB reconciler."""
from datetime import datetime, timezone
from unittest.mock import Mock

import pytest
from botocore.exceptions import ClientError

from processor.errors import ReconciliationError
from processor.models import (
    CanonicalEvent,
    CanonicalTask,
    Priority,
    RowCategory,
    SourceRef,
    UpsertAction,
)
from storage.reconciler import Reconciler


def make_event(row_index=2, title='Lecture: Intro', notes=None):
    return CanonicalEvent(
        title=title,
        description='Room 4',
        date='2025-04-28',
        start_time='10:00:00',
        end_time='11:00:00',
        is_online=False,
        location='Campus',
        meeting_link=None,
        notes=notes,
        source=SourceRef(sheet_id='sheet-abc', row_index=row_index)
    )


def make_task(row_index=2, title='Submit assignment'):
    return CanonicalTask(
        title=title,
        description='urgent',
        date='2025-04-29',
        start_time=None,
        end_time=None,
        is_completed=False,
        priority=Priority.HIGH,
        notes=None,
        source=SourceRef(sheet_id='sheet-abc', row_index=row_index)
    )


def test_upsert_creates_new_event(reconciler, scan_table):
    result = reconciler.upsert(make_event())

    assert result.action == UpsertAction.CREATED
    items = scan_table('events')
    assert len(items) == 1
    item = items[0]
    assert item['id'] == result.record_id
    assert item['title'] == 'Lecture: Intro'
    assert item['sheet_id'] == 'sheet-abc'
    assert int(item['sheet_row_index']) == 2
    assert item['is_online'] is False
    assert 'user_id' not in item
    assert 'notes' not in item
    assert item['created_at'] == item['updated_at']


def test_upsert_updates_existing_row(reconciler, scan_table):
    created = reconciler.upsert(make_event(notes='Status: Draft'))
    updated = reconciler.upsert(make_event(title='Lecture: Intro (moved)'))

    assert updated.action == UpsertAction.UPDATED
    assert updated.record_id == created.record_id
    items = scan_table('events')
    assert len(items) == 1
    assert items[0]['title'] == 'Lecture: Intro (moved)'
    # Full replace: fields absent from the new record are cleared
    assert 'notes' not in items[0]


def test_update_preserves_created_at(dynamodb, scan_table):
    times = iter([
        datetime(2025, 4, 1, tzinfo=timezone.utc),
        datetime(2025, 4, 2, tzinfo=timezone.utc)
    ])
    reconciler = Reconciler(
        'test-public-events', 'test-public-tasks', dynamodb=dynamodb, clock=lambda: next(times)
    )

    reconciler.upsert(make_event())
    reconciler.upsert(make_event())

    item = scan_table('events')[0]
    assert item['created_at'].startswith('2025-04-01')
    assert item['updated_at'].startswith('2025-04-02')


def test_events_and_tasks_do_not_collide(reconciler, scan_table):
    event_result = reconciler.upsert(make_event(row_index=3))
    task_result = reconciler.upsert(make_task(row_index=3))

    assert event_result.action == UpsertAction.CREATED
    assert task_result.action == UpsertAction.CREATED
    assert len(scan_table('events')) == 1
    tasks = scan_table('tasks')
    assert len(tasks) == 1
    assert tasks[0]['priority'] == 'high'
    assert 'start_time' not in tasks[0]


def test_find_by_source(reconciler):
    result = reconciler.upsert(make_task(row_index=7))

    found = reconciler.find_by_source(RowCategory.TASK, 'sheet-abc', 7)
    assert found['id'] == result.record_id
    assert reconciler.find_by_source(RowCategory.TASK, 'sheet-abc', 8) is None
    assert reconciler.find_by_source(RowCategory.EVENT, 'sheet-abc', 7) is None


def test_write_failure_raises_reconciliation_error(reconciler):
    failing_table = Mock()
    failing_table.query.return_value = {'Items': []}
    failing_table.put_item.side_effect = ClientError(
        {'Error': {'Code': 'ValidationException', 'Message': 'bad item'}},
        'PutItem'
    )
    reconciler.tables[RowCategory.EVENT] = failing_table

    with pytest.raises(ReconciliationError):
        reconciler.upsert(make_event())


def test_lookup_failure_raises_reconciliation_error(reconciler):
    failing_table = Mock()
    failing_table.query.side_effect = ClientError(
        {'Error': {'Code': 'ResourceNotFoundException', 'Message': 'missing'}},
        'Query'
    )
    reconciler.tables[RowCategory.TASK] = failing_table

    with pytest.raises(ReconciliationError):
        reconciler.upsert(make_task())
