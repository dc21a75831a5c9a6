"""Orchestrates one end-to-end sheet ingestion run."""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from processor.classifier import classify
from processor.errors import ReconciliationError, RunInProgressError
from processor.mapper import physical_row_number, to_event, to_task
from processor.models import (
    RawRow,
    RowCategory,
    SourceRef,
    SyncSummary,
    UpsertAction,
)
from processor.normalizer import parse_date, parse_time

logger = logging.getLogger(__name__)

DATE_COLUMN = 1
TIME_COLUMN = 2


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class IngestionContext:
    """
    Everything a run needs, passed in explicitly.

    The reconciler and run log carry the service-level write capability:
    records they write belong to no user.
    """
    sheet_id: str
    range_spec: str
    sheets_client: object
    reconciler: object
    run_log: object
    assumed_year: Optional[int] = None
    stale_run_after: timedelta = field(default_factory=lambda: timedelta(hours=1))
    clock: Callable[[], datetime] = utc_now
    trigger: str = 'manual'


class SheetsSyncOrchestrator:
    """Fetches a sheet and reconciles every row into events and tasks."""

    def __init__(self, context: IngestionContext):
        self.context = context

    def run(self) -> SyncSummary:
        """
        Execute a single ingestion run.

        The run log entry is created as pending and finalized exactly once,
        as success or failed. Rows are processed strictly in sheet order.

        Returns:
            SyncSummary with the final counters

        Raises:
            RunInProgressError: If a recent pending run exists for the sheet
            Exception: Any failure that aborts the run, after it is logged
                as failed
        """
        ctx = self.context
        started_at = ctx.clock()

        blocking = ctx.run_log.find_pending_run(
            ctx.sheet_id, started_at, ctx.stale_run_after
        )
        if blocking:
            raise RunInProgressError(
                f"Sync {blocking.id} for sheet {ctx.sheet_id} is still pending",
                run_id=blocking.id
            )

        run = ctx.run_log.create_run(
            ctx.sheet_id,
            started_at,
            metadata={
                'source_id': ctx.sheet_id,
                'range': ctx.range_spec,
                'trigger': ctx.trigger
            }
        )
        summary = SyncSummary(sync_log_id=run.id)
        logger.info(
            "Sync run started",
            extra={'sync_log_id': run.id, 'sheet_id': ctx.sheet_id, 'trigger': ctx.trigger}
        )

        try:
            rows = ctx.sheets_client.fetch_rows(ctx.sheet_id, ctx.range_spec)
            if len(rows) < 2:
                logger.info("Sheet has no data rows; nothing to ingest")
            else:
                assumed_year = ctx.assumed_year or started_at.year
                for logical_index, row in enumerate(rows[1:]):
                    self._process_row(row, logical_index, assumed_year, summary)
        except Exception as e:
            logger.error(
                f"Sync run {run.id} failed: {e}",
                extra={'error_type': type(e).__name__},
                exc_info=True
            )
            ctx.run_log.fail_run(
                run.id,
                ctx.clock(),
                str(e),
                summary.items_processed,
                summary.items_created,
                summary.items_updated,
                metadata=self._final_metadata(summary)
            )
            raise

        ctx.run_log.complete_run(
            run.id,
            ctx.clock(),
            summary.items_processed,
            summary.items_created,
            summary.items_updated,
            metadata=self._final_metadata(summary)
        )
        logger.info(
            "Sync run completed",
            extra={
                'sync_log_id': run.id,
                'items_processed': summary.items_processed,
                'items_created': summary.items_created,
                'items_updated': summary.items_updated,
                'events_processed': summary.events_processed,
                'tasks_processed': summary.tasks_processed,
                'row_errors': summary.row_errors
            }
        )
        return summary

    def _process_row(
        self,
        row: RawRow,
        logical_index: int,
        assumed_year: int,
        summary: SyncSummary
    ) -> None:
        row_number = physical_row_number(logical_index)

        if self._is_blank(row):
            return

        try:
            category = classify(row)
            if category is RowCategory.SKIP:
                logger.debug(f"Skipping structural row {row_number}")
                return

            date_text = row[DATE_COLUMN] if len(row) > DATE_COLUMN else ''
            parsed_date = parse_date(date_text, assumed_year)
            if parsed_date is None:
                logger.warning(f"Skipping row {row_number}: unparseable date '{date_text}'")
                return

            time_text = row[TIME_COLUMN] if len(row) > TIME_COLUMN else ''
            parsed_time = parse_time(time_text)
            if time_text.strip() and parsed_time is None:
                logger.warning(
                    f"Row {row_number}: unparseable time '{time_text}', using default"
                )

            source = SourceRef(sheet_id=self.context.sheet_id, row_index=row_number)
            if category is RowCategory.EVENT:
                record = to_event(row, parsed_date, parsed_time, source)
            else:
                record = to_task(row, parsed_date, parsed_time, source)
        except Exception as e:
            summary.row_errors += 1
            logger.error(f"Unexpected error on row {row_number}: {e}", exc_info=True)
            return

        try:
            result = self.context.reconciler.upsert(record)
        except ReconciliationError as e:
            logger.error(f"Failed to reconcile row {row_number}: {e}")
        else:
            if result.action is UpsertAction.CREATED:
                summary.items_created += 1
            else:
                summary.items_updated += 1

        summary.items_processed += 1
        if category is RowCategory.EVENT:
            summary.events_processed += 1
        else:
            summary.tasks_processed += 1

    def _is_blank(self, row: RawRow) -> bool:
        """True when the row lacks two populated leading cells."""
        if len(row) < 2:
            return True
        return not all(cell and str(cell).strip() for cell in row[:2])

    def _final_metadata(self, summary: SyncSummary) -> dict:
        return {
            'events_processed': summary.events_processed,
            'tasks_processed': summary.tasks_processed,
            'row_errors': summary.row_errors
        }
