"""Create-or-update reconciliation of ingested records in DynamoDB."""
import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, Dict, Optional

import boto3
from boto3.dynamodb.conditions import Key
from botocore.exceptions import ClientError

from processor.errors import ReconciliationError
from processor.models import (
    CanonicalEvent,
    CanonicalRecord,
    CanonicalTask,
    RowCategory,
    UpsertAction,
    UpsertResult,
)

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Reconciler:
    """Upserts canonical records keyed on (sheet_id, sheet_row_index)."""

    SOURCE_INDEX = 'source-index'

    def __init__(
        self,
        events_table_name: str,
        tasks_table_name: str,
        dynamodb=None,
        clock: Callable[[], datetime] = utc_now
    ):
        """
        Initialize table references.

        Events and tasks live in separate tables, so a row index shared by
        an event and a task never collides.

        Args:
            events_table_name: Name of the public events table
            tasks_table_name: Name of the public tasks table
            dynamodb: Optional boto3 DynamoDB resource
            clock: Callable returning the current UTC datetime
        """
        self.dynamodb = dynamodb or boto3.resource('dynamodb')
        self.tables = {
            RowCategory.EVENT: self.dynamodb.Table(events_table_name),
            RowCategory.TASK: self.dynamodb.Table(tasks_table_name)
        }
        self.clock = clock
        logger.info(
            f"Initialized Reconciler for tables: {events_table_name}, {tasks_table_name}"
        )

    def find_by_source(
        self,
        category: RowCategory,
        sheet_id: str,
        row_index: int
    ) -> Optional[Dict]:
        """
        Look up the record ingested from a sheet row.

        Args:
            category: RowCategory.EVENT or RowCategory.TASK
            sheet_id: Spreadsheet identifier
            row_index: Physical sheet row number

        Returns:
            Stored item or None

        Raises:
            ReconciliationError: If the query fails
        """
        table = self.tables[category]
        try:
            response = table.query(
                IndexName=self.SOURCE_INDEX,
                KeyConditionExpression=(
                    Key('sheet_id').eq(sheet_id) & Key('sheet_row_index').eq(row_index)
                )
            )
        except ClientError as e:
            raise ReconciliationError(
                f"Lookup failed for {category.value} row {row_index}: {e}"
            ) from e

        items = response.get('Items', [])
        if len(items) > 1:
            logger.warning(
                f"Found {len(items)} {category.value} records for sheet row "
                f"{row_index}; using the first"
            )
        return items[0] if items else None

    def upsert(self, record: CanonicalRecord) -> UpsertResult:
        """
        Insert the record, or fully replace the one ingested from the same row.

        Args:
            record: CanonicalEvent or CanonicalTask

        Returns:
            UpsertResult with the action taken and record id

        Raises:
            ReconciliationError: If the lookup or write fails
        """
        category = self._category_of(record)
        source = record.source
        existing = self.find_by_source(category, source.sheet_id, source.row_index)
        now = self.clock().isoformat()

        if existing:
            record_id = existing['id']
            created_at = existing.get('created_at', now)
            action = UpsertAction.UPDATED
        else:
            record_id = str(uuid.uuid4())
            created_at = now
            action = UpsertAction.CREATED

        item = self.record_to_item(record)
        item['id'] = record_id
        item['created_at'] = created_at
        item['updated_at'] = now

        try:
            self.tables[category].put_item(Item=item)
        except ClientError as e:
            raise ReconciliationError(
                f"Write failed for {category.value} row {source.row_index}: {e}"
            ) from e

        logger.info(
            f"{action.value.capitalize()} {category.value} {record_id} "
            f"from sheet row {source.row_index}"
        )
        return UpsertResult(action=action, record_id=record_id)

    def _category_of(self, record: CanonicalRecord) -> RowCategory:
        if isinstance(record, CanonicalEvent):
            return RowCategory.EVENT
        if isinstance(record, CanonicalTask):
            return RowCategory.TASK
        raise TypeError(f"Unsupported record type: {type(record).__name__}")

    def record_to_item(self, record: CanonicalRecord) -> dict:
        """
        Convert a canonical record to a DynamoDB item.

        Optional fields are left out when empty so that a replace clears them.

        Args:
            record: CanonicalEvent or CanonicalTask

        Returns:
            DynamoDB item dictionary
        """
        item = {
            'title': record.title,
            'date': record.date,
            'sheet_id': record.source.sheet_id,
            'sheet_row_index': record.source.row_index
        }

        if isinstance(record, CanonicalEvent):
            item['start_time'] = record.start_time
            item['end_time'] = record.end_time
            item['is_online'] = record.is_online
            optional = {
                'description': record.description,
                'location': record.location,
                'meeting_link': record.meeting_link,
                'notes': record.notes,
                'user_id': record.user_id
            }
        else:
            item['is_completed'] = record.is_completed
            item['priority'] = record.priority.value
            optional = {
                'description': record.description,
                'start_time': record.start_time,
                'end_time': record.end_time,
                'notes': record.notes,
                'user_id': record.user_id
            }

        for name, value in optional.items():
            if value is not None:
                item[name] = value

        return item
