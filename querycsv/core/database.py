"""
DuckDB query runner - connects, binds named parameters and executes

The runner owns one connection for one export. Queries reference named
parameters as ``$name``; every parameter value is bound as a string, and
DuckDB casts it where the query needs another type.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Dict, Optional, Sequence

from querycsv.core.cursor import DBAPICursor
from querycsv.core.errors import QueryExecutionError, QueryTimeoutError
from querycsv.core.options import SQLParameter

try:
    import duckdb

    DUCKDB_AVAILABLE = True
except ImportError:
    DUCKDB_AVAILABLE = False
    duckdb = None

logger = logging.getLogger(__name__)


def is_duckdb_available() -> bool:
    return DUCKDB_AVAILABLE


class DuckDBCursor(DBAPICursor):
    """
    DB-API cursor over a DuckDB result

    Each fetch counts against the runner's timeout budget. Fetch errors
    are reported as timeouts once the runner has interrupted the query.
    """

    def __init__(self, cursor: Any, runner: "DuckDBQueryRunner", arraysize: int = 1000):
        self.runner = runner
        super().__init__(cursor, arraysize=arraysize, on_close=runner.stop_timer)

    def _fetch(self):
        self.runner.resume_timer()
        try:
            return super()._fetch()
        finally:
            self.runner.pause_timer()

    def translate_error(self, error: Exception) -> Exception:
        if self.runner.timed_out:
            return QueryTimeoutError(self.runner.timeout_seconds)
        return super().translate_error(error)


class DuckDBQueryRunner:
    """
    Executes one query against a DuckDB database

    Example:
        >>> with DuckDBQueryRunner(":memory:", timeout_seconds=30) as runner:
        ...     with runner.execute("SELECT $name AS name", [SQLParameter("name", "x")]) as cursor:
        ...         rows = list(cursor)
    """

    def __init__(self, connection_string: str = ":memory:", timeout_seconds: float = 30):
        if not DUCKDB_AVAILABLE:
            raise ImportError(
                "DuckDB backend requires duckdb library. "
                "Install with: pip install duckdb"
            )
        self.connection_string = connection_string or ":memory:"
        self.timeout_seconds = timeout_seconds
        self.conn = None
        self.timed_out = False
        self._timer: Optional[threading.Timer] = None
        self._running = None
        self._spent = 0.0
        self._resumed_at = 0.0

    def connect(self) -> None:
        """
        Open the connection

        Raises:
            QueryExecutionError: If the database cannot be opened
        """
        if self.conn is not None:
            return
        try:
            self.conn = duckdb.connect(self.connection_string)
        except Exception as e:
            raise QueryExecutionError(
                f"Could not connect to {self.connection_string!r}: {e}"
            ) from e
        logger.debug("Connected to %s", self.connection_string)

    def execute(
        self, sql: str, parameters: Optional[Sequence[SQLParameter]] = None
    ) -> DuckDBCursor:
        """
        Execute a query and return a cursor over its result

        The timeout is a budget for database work: it counts while the query
        executes and while each batch is fetched, not while the caller
        formats or writes rows. It stops when the returned cursor is closed.

        Args:
            sql: Query text
            parameters: Named parameters, bound as strings

        Returns:
            DuckDBCursor positioned before the first row

        Raises:
            QueryExecutionError: On any execution failure
            QueryTimeoutError: If the timeout elapsed while executing
        """
        self.connect()
        bound = self._bind(parameters)

        cursor = self.conn.cursor()
        self._running = cursor
        self._start_timer()
        try:
            if bound:
                cursor.execute(sql, bound)
            else:
                cursor.execute(sql)
            self.pause_timer()
            return DuckDBCursor(cursor, self)
        except QueryExecutionError:
            self.stop_timer()
            cursor.close()
            raise
        except Exception as e:
            self.stop_timer()
            cursor.close()
            if self.timed_out:
                raise QueryTimeoutError(self.timeout_seconds) from e
            raise QueryExecutionError(f"DuckDB execution error: {e}") from e

    @staticmethod
    def _bind(parameters: Optional[Sequence[SQLParameter]]) -> Dict[str, Optional[str]]:
        return {parameter.name: parameter.value for parameter in parameters or []}

    def _start_timer(self) -> None:
        self.timed_out = False
        self._spent = 0.0
        self.resume_timer()

    def resume_timer(self) -> None:
        """Count database time against the timeout again"""
        if not self.timeout_seconds or self.timeout_seconds <= 0 or self._timer is not None:
            return
        remaining = max(self.timeout_seconds - self._spent, 0)
        self._resumed_at = time.monotonic()
        self._timer = threading.Timer(remaining, self._interrupt)
        self._timer.daemon = True
        self._timer.start()

    def pause_timer(self) -> None:
        """Stop counting while the caller consumes rows"""
        if self._timer is None:
            return
        self._timer.cancel()
        self._timer = None
        self._spent += time.monotonic() - self._resumed_at

    def _interrupt(self) -> None:
        self.timed_out = True
        logger.warning("Query exceeded %s seconds, interrupting", self.timeout_seconds)
        if self._running is not None:
            self._running.interrupt()

    def stop_timer(self) -> None:
        self._running = None
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def close(self) -> None:
        """Stop the timeout and close the connection"""
        self.stop_timer()
        if self.conn is not None:
            self.conn.close()
            self.conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
