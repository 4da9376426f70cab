"""Exceptions raised by querycsv."""

from typing import Optional


class QueryCsvError(Exception):
    """Base class for all querycsv errors"""


class ConfigurationError(QueryCsvError, ValueError):
    """An option has a value that cannot be resolved"""


class QueryExecutionError(QueryCsvError, RuntimeError):
    """Connecting, executing the query or fetching rows failed"""


class QueryTimeoutError(QueryExecutionError):
    """The query ran longer than the configured timeout and was interrupted"""

    def __init__(self, timeout_seconds: float, message: Optional[str] = None):
        self.timeout_seconds = timeout_seconds
        super().__init__(message or f"Query timed out after {timeout_seconds} seconds")


class ExportCancelled(QueryCsvError):
    """
    Cancellation was requested while exporting

    The output stream is left as written so far. ``rows_written`` holds the
    number of complete data records that reached it.
    """

    def __init__(self, rows_written: int = 0):
        self.rows_written = rows_written
        super().__init__(f"Export cancelled after {rows_written} rows")
