"""
querycsv - Stream a database query result into a CSV file

This package executes one query and writes its rows as CSV with type-aware
value formatting, column filtering, header sanitization, configurable
delimiters, line breaks and encodings, and cooperative cancellation.
"""

__version__ = "0.1.0"

# Main API
from querycsv.core.cancellation import CancellationToken
from querycsv.core.errors import (
    ConfigurationError,
    ExportCancelled,
    QueryCsvError,
    QueryExecutionError,
    QueryTimeoutError,
)
from querycsv.core.export import data_reader_to_csv, save_query_to_csv, save_query_to_csv_async
from querycsv.core.options import (
    CsvFieldDelimiter,
    CsvLineBreak,
    FileEncoding,
    SaveQueryToCSVOptions,
    SaveQueryToCSVParameters,
    SQLParameter,
)

__all__ = [
    "__version__",
    "save_query_to_csv",
    "save_query_to_csv_async",
    "data_reader_to_csv",
    "CancellationToken",
    "CsvFieldDelimiter",
    "CsvLineBreak",
    "FileEncoding",
    "SaveQueryToCSVOptions",
    "SaveQueryToCSVParameters",
    "SQLParameter",
    "QueryCsvError",
    "ConfigurationError",
    "QueryExecutionError",
    "QueryTimeoutError",
    "ExportCancelled",
]
