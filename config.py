"""Runtime configuration for the sheets sync, read from environment variables."""
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from processor.errors import ConfigurationError
from sheets.sheets_client import SheetsClient


@dataclass
class SyncConfig:
    """Settings for one deployment of the sync."""
    api_key: str
    sheet_id: str
    sheet_range: str = 'Sheet1'
    sheets_api_base: str = SheetsClient.DEFAULT_API_BASE
    events_table_name: str = 'public-events'
    tasks_table_name: str = 'public-tasks'
    sync_log_table_name: str = 'sync-log'
    log_level: str = 'INFO'
    timeout_seconds: int = 30
    assumed_year: Optional[int] = None
    stale_run_seconds: int = 3600

    @classmethod
    def from_env(cls, environ: Mapping[str, str] = None) -> 'SyncConfig':
        """
        Build configuration from environment variables.

        Args:
            environ: Mapping to read from (default: os.environ)

        Returns:
            SyncConfig

        Raises:
            ConfigurationError: If a required variable is missing or a
                numeric variable is malformed
        """
        if environ is None:
            environ = os.environ

        api_key = environ.get('GOOGLE_SHEETS_API_KEY')
        if not api_key:
            raise ConfigurationError('Google Sheets API key not configured')

        sheet_id = environ.get('SHEET_ID')
        if not sheet_id:
            raise ConfigurationError('SHEET_ID not configured')

        assumed_year = environ.get('ASSUMED_YEAR')

        try:
            return cls(
                api_key=api_key,
                sheet_id=sheet_id,
                sheet_range=environ.get('SHEET_RANGE', 'Sheet1'),
                sheets_api_base=environ.get('SHEETS_API_BASE', SheetsClient.DEFAULT_API_BASE),
                events_table_name=environ.get('EVENTS_TABLE_NAME', 'public-events'),
                tasks_table_name=environ.get('TASKS_TABLE_NAME', 'public-tasks'),
                sync_log_table_name=environ.get('SYNC_LOG_TABLE_NAME', 'sync-log'),
                log_level=environ.get('LOG_LEVEL', 'INFO'),
                timeout_seconds=int(environ.get('TIMEOUT_SECONDS', '30')),
                assumed_year=int(assumed_year) if assumed_year else None,
                stale_run_seconds=int(environ.get('STALE_RUN_SECONDS', '3600'))
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid numeric setting: {e}") from e
