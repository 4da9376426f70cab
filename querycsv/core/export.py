"""
Export driver - streams one query result into a CSV file

Flow of save_query_to_csv():
1. Resolve options (bad values fail here, before any I/O)
2. Open the output file with the chosen encoding
3. Connect and execute the query
4. Write the header record, then one record per row
5. Flush, and release cursor, connection and file on every exit path

Cancellation is cooperative: the token is polled before anything is opened,
after connecting, after executing, before the header, and before and after
every data record. A cancelled export leaves the records written so far in
the file and raises ExportCancelled.
"""

import asyncio
import logging
import warnings
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, Optional, TextIO, Union

from querycsv.core.cancellation import CancellationToken, check_cancelled
from querycsv.core.cursor import ResultCursor
from querycsv.core.database import DuckDBQueryRunner
from querycsv.core.errors import ExportCancelled
from querycsv.core.formatting import format_value
from querycsv.core.headers import (
    format_header_record,
    sanitize_header,
    select_columns,
    unmatched_names,
)
from querycsv.core.options import (
    ResolvedEncoding,
    SaveQueryToCSVOptions,
    SaveQueryToCSVParameters,
)
from querycsv.core.writer import CsvRecordWriter

logger = logging.getLogger(__name__)

RunnerFactory = Callable[[str, float], DuckDBQueryRunner]


def data_reader_to_csv(
    cursor: ResultCursor,
    writer: CsvRecordWriter,
    options: SaveQueryToCSVOptions,
    cancellation: Optional[CancellationToken] = None,
) -> int:
    """
    Write a cursor's rows as CSV records

    Args:
        cursor: Result cursor, read once
        writer: Record writer configured with delimiter and line break
        options: Formatting options
        cancellation: Optional token polled before and after every record

    Returns:
        Number of data records written (the header is not counted)

    Raises:
        ExportCancelled: If the token was cancelled; records already written stay
    """
    columns = cursor.columns
    include = options.columns_to_include
    sanitize = options.sanitize_column_headers
    selected = select_columns(columns, include, sanitize)

    missing = unmatched_names(columns, include, sanitize)
    if missing:
        warnings.warn(f"Columns not found in result: {', '.join(missing)}", UserWarning)

    logger.debug("Exporting columns %s", [columns[i].name for i in selected])

    check_cancelled(cancellation)
    if options.include_headers_in_output:
        headers = [sanitize_header(columns[i].name, sanitize) for i in selected]
        writer.write_field(format_header_record(headers, writer.delimiter))
        writer.end_record()

    count = 0
    for row in cursor:
        check_cancelled(cancellation, count)
        for i in selected:
            column = columns[i]
            writer.write_field(format_value(row[i], column.type_name, column.kind, options))
        writer.end_record()
        count += 1
        check_cancelled(cancellation, count)

    return count


@contextmanager
def open_output(path: Union[str, Path], encoding: ResolvedEncoding) -> Iterator[TextIO]:
    """
    Open the output file for writing

    Line terminators are written untranslated. Characters the encoding
    cannot represent are replaced with ``?``. A byte order mark is written
    first when the encoding asks for one.
    """
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)

    with out.open("w", encoding=encoding.codec, errors="replace", newline="") as f:
        if encoding.bom:
            f.write("\ufeff")
        yield f


def save_query_to_csv(
    parameters: SaveQueryToCSVParameters,
    options: Optional[SaveQueryToCSVOptions] = None,
    cancellation: Optional[CancellationToken] = None,
    runner_factory: RunnerFactory = DuckDBQueryRunner,
) -> int:
    """
    Execute a query and save its result to a CSV file

    Args:
        parameters: Query, parameters, database and output path
        options: Formatting options (defaults when None)
        cancellation: Optional cancellation token
        runner_factory: Builds the query runner from (connection string, timeout)

    Returns:
        Number of data records written

    Raises:
        ConfigurationError: An option could not be resolved; nothing was opened
        QueryExecutionError: Connecting, executing or fetching failed
        QueryTimeoutError: The query ran past timeout_seconds
        ExportCancelled: Cancellation was requested

    Example:
        >>> save_query_to_csv(
        ...     SaveQueryToCSVParameters(
        ...         query="SELECT * FROM orders WHERE region = $region",
        ...         query_parameters=[SQLParameter("region", "EU")],
        ...         connection_string="shop.duckdb",
        ...         output_file_path="orders.csv",
        ...     ),
        ...     SaveQueryToCSVOptions(field_delimiter="comma"),
        ... )
        42
    """
    options = options or SaveQueryToCSVOptions()
    delimiter, line_break, encoding = options.validate()

    check_cancelled(cancellation)
    logger.info("Exporting query to %s", parameters.output_file_path)

    try:
        with open_output(parameters.output_file_path, encoding) as stream, runner_factory(
            parameters.connection_string, parameters.timeout_seconds
        ) as runner:
            runner.connect()
            check_cancelled(cancellation)

            with runner.execute(parameters.query, parameters.query_parameters) as cursor:
                check_cancelled(cancellation)
                writer = CsvRecordWriter(stream, delimiter, line_break)
                count = data_reader_to_csv(cursor, writer, options, cancellation)
                writer.flush()
    except ExportCancelled as e:
        logger.warning(
            "Export to %s cancelled after %d rows", parameters.output_file_path, e.rows_written
        )
        raise

    logger.info("Wrote %d rows to %s", count, parameters.output_file_path)
    return count


async def save_query_to_csv_async(
    parameters: SaveQueryToCSVParameters,
    options: Optional[SaveQueryToCSVOptions] = None,
    cancellation: Optional[CancellationToken] = None,
    runner_factory: RunnerFactory = DuckDBQueryRunner,
) -> int:
    """
    Run save_query_to_csv() in a worker thread

    Cancelling the awaiting task cancels the token, so the export stops at
    its next check point and releases its resources.
    """
    token = cancellation or CancellationToken()
    try:
        return await asyncio.to_thread(
            save_query_to_csv, parameters, options, token, runner_factory
        )
    except asyncio.CancelledError:
        token.cancel()
        raise
