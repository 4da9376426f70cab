"""
Cooperative cancellation for exports

A CancellationToken is created by the caller and handed to the export. The
export polls it at its check points; nothing is interrupted preemptively.
"""

import threading
from typing import Optional

from querycsv.core.errors import ExportCancelled


class CancellationToken:
    """
    Thread-safe cancellation flag

    Example:
        >>> token = CancellationToken()
        >>> token.cancel()
        >>> token.cancelled
        True
    """

    def __init__(self):
        self._event = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        """Request cancellation. Safe to call from any thread, more than once."""
        self._event.set()

    def raise_if_cancelled(self, rows_written: int = 0) -> None:
        """
        Raise ExportCancelled if cancellation has been requested

        Args:
            rows_written: Data records already written, reported on the exception
        """
        if self._event.is_set():
            raise ExportCancelled(rows_written)


def check_cancelled(token: Optional[CancellationToken], rows_written: int = 0) -> None:
    """Poll an optional token"""
    if token is not None:
        token.raise_if_cancelled(rows_written)
