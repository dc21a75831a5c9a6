"""Client for the Google Sheets values API."""
import logging
from typing import List
from urllib.parse import quote

import requests

from processor.errors import SheetsFetchError
from processor.models import RawRow

logger = logging.getLogger(__name__)


class SheetsClient:
    """Fetches rectangular cell ranges from a spreadsheet."""

    DEFAULT_API_BASE = "https://sheets.googleapis.com/v4/spreadsheets"

    def __init__(self, api_key: str, api_base: str = DEFAULT_API_BASE, timeout: int = 30):
        """
        Initialize the sheets client.

        Args:
            api_key: Google Sheets API key
            api_base: Base URL of the spreadsheets API
            timeout: HTTP request timeout in seconds (default: 30)
        """
        self.api_key = api_key
        self.api_base = api_base.rstrip('/')
        self.timeout = timeout

    def build_url(self, sheet_id: str, range_spec: str) -> str:
        return f"{self.api_base}/{quote(sheet_id, safe='')}/values/{quote(range_spec, safe='')}"

    def fetch_rows(self, sheet_id: str, range_spec: str) -> List[RawRow]:
        """
        Fetch all rows of a range, header included.

        A single attempt is made; a failed fetch is terminal for the run.

        Args:
            sheet_id: Spreadsheet identifier
            range_spec: A1 range or sheet name (e.g. "Sheet1")

        Returns:
            List of rows, each a list of cell strings. Empty when the
            range has no values.

        Raises:
            SheetsFetchError: On transport errors or non-success responses
        """
        url = self.build_url(sheet_id, range_spec)
        logger.info(f"Fetching range '{range_spec}' from sheet {sheet_id}")

        try:
            response = requests.get(
                url,
                params={'key': self.api_key},
                timeout=self.timeout
            )
        except requests.RequestException as e:
            logger.error(f"Request to sheets API failed: {e}")
            raise SheetsFetchError(f"Failed to fetch sheet: {e}") from e

        if not response.ok:
            logger.error(
                f"Sheets API returned {response.status_code}: {response.text}"
            )
            raise SheetsFetchError(
                f"Failed to fetch sheet: {response.status_code} - {response.text}",
                status_code=response.status_code
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise SheetsFetchError(f"Sheets API returned invalid JSON: {e}") from e

        values = payload.get('values') or []
        rows = [
            ['' if value is None else str(value) for value in row]
            for row in values
        ]
        logger.info(f"Fetched {len(rows)} rows (including header)")
        return rows
