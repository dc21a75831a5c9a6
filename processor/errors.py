"""Exceptions raised by the sheets sync pipeline."""


class SheetsSyncError(Exception):
    """Base class for sync pipeline errors."""


class ConfigurationError(SheetsSyncError):
    """A required setting or credential is missing or invalid."""


class SheetsFetchError(SheetsSyncError):
    """The spreadsheet API returned a non-success response or was unreachable."""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code


class ReconciliationError(SheetsSyncError):
    """Looking up or writing a single record failed."""


class RunInProgressError(SheetsSyncError):
    """Another run for the same sheet is still pending."""

    def __init__(self, message: str, run_id: str = None):
        super().__init__(message)
        self.run_id = run_id
