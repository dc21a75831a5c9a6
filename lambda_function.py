"""AWS Lambda handler for the Google Sheets events/tasks sync."""
import json
import logging
import time
import traceback
from datetime import timedelta
from typing import Dict, Any

from config import SyncConfig
from processor.errors import RunInProgressError
from processor.sheets_sync import IngestionContext, SheetsSyncOrchestrator
from sheets.sheets_client import SheetsClient
from storage.reconciler import Reconciler
from storage.run_log import RunLogStore

# Attributes present on every LogRecord; anything else came in via `extra`
_RESERVED_ATTRS = set(vars(logging.makeLogRecord({}))) | {'message', 'asctime'}


# Configure JSON logging
class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON, including any `extra` fields."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        for key, value in vars(record).items():
            if key not in _RESERVED_ATTRS and key not in log_data:
                log_data[key] = value

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def _response(status_code: int, body: Dict[str, Any]) -> Dict[str, Any]:
    return {
        'statusCode': status_code,
        'headers': {'Content-Type': 'application/json'},
        'body': json.dumps(body)
    }


def _error_response(status_code: int, error: Exception) -> Dict[str, Any]:
    return _response(status_code, {
        'error': str(error),
        'details': ''.join(
            traceback.format_exception(type(error), error, error.__traceback__)
        )
    })


def build_context(config: SyncConfig, trigger: str) -> IngestionContext:
    """Wire the collaborators of a run from configuration."""
    return IngestionContext(
        sheet_id=config.sheet_id,
        range_spec=config.sheet_range,
        sheets_client=SheetsClient(
            api_key=config.api_key,
            api_base=config.sheets_api_base,
            timeout=config.timeout_seconds
        ),
        reconciler=Reconciler(config.events_table_name, config.tasks_table_name),
        run_log=RunLogStore(config.sync_log_table_name),
        assumed_year=config.assumed_year,
        stale_run_after=timedelta(seconds=config.stale_run_seconds),
        trigger=trigger
    )


def list_runs(config: SyncConfig, limit: int) -> Dict[str, Any]:
    """Return recent sync logs for the dashboard."""
    runs = RunLogStore(config.sync_log_table_name).list_recent_runs(limit=limit)
    return _response(200, {
        'runs': [
            {
                'id': run.id,
                'status': run.status.value,
                'started_at': run.started_at,
                'completed_at': run.completed_at,
                'items_processed': run.items_processed,
                'items_created': run.items_created,
                'items_updated': run.items_updated,
                'error_message': run.error_message,
                'metadata': run.metadata
            }
            for run in runs
        ]
    })


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler for the sheets sync.

    A payload of ``{"scheduled": true}`` marks a cron-triggered run;
    ``{"action": "list_runs"}`` returns recent sync logs instead of syncing.

    Args:
        event: Invocation payload
        context: Lambda context object

    Returns:
        Response dict with statusCode and JSON body
    """
    event = event or {}
    start_time = time.time()

    try:
        config = SyncConfig.from_env()
    except Exception as e:
        setup_logging()
        logging.getLogger(__name__).error(f"Configuration error: {e}")
        return _error_response(500, e)

    setup_logging(config.log_level)
    logger = logging.getLogger(__name__)

    if event.get('action') == 'list_runs':
        return list_runs(config, int(event.get('limit', 10)))

    trigger = 'scheduled' if event.get('scheduled') else 'manual'
    logger.info(
        "Lambda execution started",
        extra={'sheet_id': config.sheet_id, 'trigger': trigger}
    )

    try:
        orchestrator = SheetsSyncOrchestrator(build_context(config, trigger))
        summary = orchestrator.run()
    except RunInProgressError as e:
        logger.warning(f"Sync refused: {e}")
        return _error_response(409, e)
    except Exception as e:
        duration = time.time() - start_time
        logger.error(
            f"Lambda execution failed: {e}",
            extra={
                'duration_seconds': round(duration, 2),
                'error_type': type(e).__name__
            },
            exc_info=True
        )
        return _error_response(500, e)

    duration = time.time() - start_time
    logger.info(
        "Lambda execution completed successfully",
        extra={
            'duration_seconds': round(duration, 2),
            'sync_log_id': summary.sync_log_id
        }
    )
    return _response(200, summary.to_response())
