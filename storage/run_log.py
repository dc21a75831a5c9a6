"""DynamoDB-backed audit log of ingestion runs."""
import logging
import uuid
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

import boto3
from boto3.dynamodb.conditions import Attr
from botocore.exceptions import ClientError

from processor.models import IngestionRun, RunStatus

logger = logging.getLogger(__name__)


def _from_dynamo(value: Any) -> Any:
    """Convert Decimal numbers returned by boto3 back to int/float."""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {key: _from_dynamo(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_from_dynamo(item) for item in value]
    return value


class RunLogStore:
    """Persists IngestionRun records: one insert at start, one terminal update."""

    SYNC_TYPE = 'sheets_sync'

    def __init__(self, table_name: str, dynamodb=None):
        """
        Initialize the run log table reference.

        Args:
            table_name: Name of the sync log table
            dynamodb: Optional boto3 DynamoDB resource
        """
        self.table_name = table_name
        self.dynamodb = dynamodb or boto3.resource('dynamodb')
        self.table = self.dynamodb.Table(table_name)
        logger.info(f"Initialized RunLogStore for table: {table_name}")

    def create_run(
        self,
        source_id: str,
        started_at: datetime,
        metadata: Optional[Dict[str, Any]] = None
    ) -> IngestionRun:
        """
        Insert a new run in the pending state.

        Args:
            source_id: Spreadsheet identifier
            started_at: Run start time
            metadata: Initial metadata

        Returns:
            The created IngestionRun
        """
        run = IngestionRun(
            id=str(uuid.uuid4()),
            source_id=source_id,
            status=RunStatus.PENDING,
            started_at=started_at.isoformat(),
            sync_type=self.SYNC_TYPE,
            metadata=dict(metadata or {})
        )
        self.table.put_item(
            Item=self._run_to_item(run),
            ConditionExpression=Attr('id').not_exists()
        )
        logger.info(f"Created sync log {run.id} for sheet {source_id}")
        return run

    def complete_run(
        self,
        run_id: str,
        completed_at: datetime,
        items_processed: int,
        items_created: int,
        items_updated: int,
        metadata: Optional[Dict[str, Any]] = None
    ) -> None:
        """Mark a pending run as successful."""
        self._finish_run(
            run_id,
            RunStatus.SUCCESS,
            completed_at,
            items_processed,
            items_created,
            items_updated,
            metadata=metadata
        )

    def fail_run(
        self,
        run_id: str,
        completed_at: datetime,
        error_message: str,
        items_processed: int,
        items_created: int,
        items_updated: int,
        metadata: Optional[Dict[str, Any]] = None
    ) -> None:
        """Mark a pending run as failed, keeping partial counters."""
        self._finish_run(
            run_id,
            RunStatus.FAILED,
            completed_at,
            items_processed,
            items_created,
            items_updated,
            metadata=metadata,
            error_message=error_message
        )

    def _finish_run(
        self,
        run_id: str,
        status: RunStatus,
        completed_at: datetime,
        items_processed: int,
        items_created: int,
        items_updated: int,
        metadata: Optional[Dict[str, Any]] = None,
        error_message: Optional[str] = None
    ) -> None:
        names = {
            '#status': 'status',
            '#completed_at': 'completed_at',
            '#items_processed': 'items_processed',
            '#items_created': 'items_created',
            '#items_updated': 'items_updated'
        }
        values = {
            ':status': status.value,
            ':pending': RunStatus.PENDING.value,
            ':completed_at': completed_at.isoformat(),
            ':items_processed': items_processed,
            ':items_created': items_created,
            ':items_updated': items_updated
        }
        assignments = [
            '#status = :status',
            '#completed_at = :completed_at',
            '#items_processed = :items_processed',
            '#items_created = :items_created',
            '#items_updated = :items_updated'
        ]

        if error_message is not None:
            names['#error_message'] = 'error_message'
            values[':error_message'] = error_message
            assignments.append('#error_message = :error_message')

        # Merge into the existing metadata map key by key
        if metadata:
            names['#metadata'] = 'metadata'
            for position, (key, value) in enumerate(metadata.items()):
                names[f'#m{position}'] = key
                values[f':m{position}'] = value
                assignments.append(f'#metadata.#m{position} = :m{position}')

        try:
            self.table.update_item(
                Key={'id': run_id},
                UpdateExpression='SET ' + ', '.join(assignments),
                ConditionExpression='#status = :pending',
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values
            )
        except ClientError as e:
            logger.error(f"Error finalizing sync log {run_id} as {status.value}: {e}")
            raise

        logger.info(f"Sync log {run_id} marked {status.value}")

    def get_run(self, run_id: str) -> Optional[IngestionRun]:
        """Fetch a run by id."""
        response = self.table.get_item(Key={'id': run_id})
        item = response.get('Item')
        return self._item_to_run(item) if item else None

    def list_recent_runs(self, limit: int = 10) -> List[IngestionRun]:
        """
        Return the most recent runs, newest first.

        Args:
            limit: Maximum number of runs to return

        Returns:
            List of IngestionRun objects
        """
        runs = [self._item_to_run(item) for item in self._scan()]
        runs.sort(key=lambda run: run.started_at, reverse=True)
        return runs[:limit]

    def find_pending_run(
        self,
        source_id: str,
        now: datetime,
        stale_after: timedelta
    ) -> Optional[IngestionRun]:
        """
        Find a pending run for a sheet that is recent enough to block a new one.

        Args:
            source_id: Spreadsheet identifier
            now: Current time
            stale_after: Age after which a pending run no longer counts

        Returns:
            The blocking IngestionRun or None
        """
        filter_expression = (
            Attr('status').eq(RunStatus.PENDING.value) & Attr('source_id').eq(source_id)
        )
        for item in self._scan(FilterExpression=filter_expression):
            run = self._item_to_run(item)
            if now - datetime.fromisoformat(run.started_at) < stale_after:
                return run
            logger.warning(
                f"Ignoring stale pending sync log {run.id} started at {run.started_at}"
            )
        return None

    def _scan(self, **kwargs) -> List[dict]:
        response = self.table.scan(**kwargs)
        items = response.get('Items', [])

        # Handle pagination
        while 'LastEvaluatedKey' in response:
            response = self.table.scan(
                ExclusiveStartKey=response['LastEvaluatedKey'],
                **kwargs
            )
            items.extend(response.get('Items', []))

        return items

    def _run_to_item(self, run: IngestionRun) -> dict:
        item = {
            'id': run.id,
            'source_id': run.source_id,
            'sync_type': run.sync_type,
            'status': run.status.value,
            'started_at': run.started_at,
            'items_processed': run.items_processed,
            'items_created': run.items_created,
            'items_updated': run.items_updated,
            'metadata': run.metadata
        }

        if run.completed_at:
            item['completed_at'] = run.completed_at
        if run.error_message:
            item['error_message'] = run.error_message

        return item

    def _item_to_run(self, item: dict) -> IngestionRun:
        return IngestionRun(
            id=item['id'],
            source_id=item['source_id'],
            status=RunStatus(item['status']),
            started_at=item['started_at'],
            completed_at=item.get('completed_at'),
            items_processed=int(item.get('items_processed', 0)),
            items_created=int(item.get('items_created', 0)),
            items_updated=int(item.get('items_updated', 0)),
            error_message=item.get('error_message'),
            sync_type=item.get('sync_type', self.SYNC_TYPE),
            metadata=_from_dynamo(item.get('metadata', {}))
        )
