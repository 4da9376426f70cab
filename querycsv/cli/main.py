"""
querycsv CLI - Save a SQL query result to a CSV file

Usage:
    querycsv export <sql> -o <file> [options]
    querycsv export -q <sql-file> -o <file> [options]
"""

import logging
import signal
import sys
import time
from typing import Optional, Tuple

import click

from querycsv import __version__
from querycsv.core.cancellation import CancellationToken
from querycsv.core.errors import (
    ConfigurationError,
    ExportCancelled,
    QueryCsvError,
)
from querycsv.core.export import save_query_to_csv
from querycsv.core.options import (
    SaveQueryToCSVOptions,
    SaveQueryToCSVParameters,
    parse_parameter,
)

# Conventional exit status for a run stopped by SIGINT
EXIT_CANCELLED = 130


@click.group()
@click.version_option(version=__version__, prog_name="querycsv")
def cli():
    """
    querycsv - Save SQL query results to CSV files

    Runs one query against a DuckDB database and streams the rows to a
    CSV file with type-aware formatting.
    """


@cli.command()
@click.argument("sql", type=str, required=False)
@click.option(
    "--sql-file",
    "-q",
    type=click.Path(exists=True),
    default=None,
    help="Read SQL query from file",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(),
    required=True,
    help="CSV file to write",
)
@click.option(
    "--database",
    "-d",
    default=":memory:",
    show_default=True,
    help="DuckDB database file",
)
@click.option(
    "--param",
    "-p",
    "params",
    multiple=True,
    help="Named query parameter as name=value, referenced as $name (repeatable)",
)
@click.option(
    "--column",
    "-c",
    "columns",
    multiple=True,
    help="Column to include, exact name (repeatable; default: all columns)",
)
@click.option(
    "--delimiter",
    type=click.Choice(["comma", "semicolon", "pipe"], case_sensitive=False),
    default="semicolon",
    show_default=True,
    help="Field delimiter",
)
@click.option(
    "--line-break",
    type=click.Choice(["crlf", "lf", "cr"], case_sensitive=False),
    default="crlf",
    show_default=True,
    help="Record terminator",
)
@click.option(
    "--encoding",
    type=click.Choice(["utf8", "ansi", "ascii", "unicode", "other"], case_sensitive=False),
    default="utf8",
    show_default=True,
    help="Output file encoding",
)
@click.option(
    "--encoding-name",
    default=None,
    help="Codec name used with --encoding other (e.g. cp1252)",
)
@click.option("--bom", is_flag=True, help="Write a UTF-8 byte order mark")
@click.option("--no-header", is_flag=True, help="Do not write the header record")
@click.option("--no-sanitize", is_flag=True, help="Write column names unchanged")
@click.option("--no-quote-dates", is_flag=True, help="Do not quote date and datetime values")
@click.option(
    "--date-format",
    default="yyyy-MM-dd",
    show_default=True,
    help="Template for DATE columns",
)
@click.option(
    "--datetime-format",
    default="yyyy-MM-dd HH:mm:ss",
    show_default=True,
    help="Template for other temporal columns",
)
@click.option(
    "--timeout",
    type=float,
    default=30,
    show_default=True,
    help="Query timeout in seconds (0 disables)",
)
@click.option(
    "--time",
    "-t",
    "show_time",
    is_flag=True,
    help="Show execution time",
)
@click.option("--verbose", "-v", is_flag=True, help="Log progress to stderr")
def export(
    sql: Optional[str],
    sql_file: Optional[str],
    output: str,
    database: str,
    params: Tuple[str, ...],
    columns: Tuple[str, ...],
    delimiter: str,
    line_break: str,
    encoding: str,
    encoding_name: Optional[str],
    bom: bool,
    no_header: bool,
    no_sanitize: bool,
    no_quote_dates: bool,
    date_format: str,
    datetime_format: str,
    timeout: float,
    show_time: bool,
    verbose: bool,
):
    """
    Execute a query and write its result to a CSV file

    Examples:

        \b
        # Export a table with the default semicolon/CRLF layout
        $ querycsv export "SELECT * FROM orders" -d shop.duckdb -o orders.csv

        \b
        # Named parameters and a column subset
        $ querycsv export "SELECT * FROM orders WHERE region = $region" \\
            -d shop.duckdb -p region=EU -c id -c total -o eu.csv

        \b
        # Comma separated, LF line breaks, unquoted dates
        $ querycsv export -q report.sql -d shop.duckdb -o report.csv \\
            --delimiter comma --line-break lf --no-quote-dates
    """
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    try:
        if sql_file:
            with open(sql_file) as f:
                sql = f.read().strip()
        if not sql:
            raise ConfigurationError("Provide a query as an argument or with --sql-file")

        parameters = SaveQueryToCSVParameters(
            query=sql,
            output_file_path=output,
            connection_string=database,
            query_parameters=[parse_parameter(p) for p in params],
            timeout_seconds=timeout,
        )
        options = SaveQueryToCSVOptions(
            columns_to_include=list(columns),
            field_delimiter=delimiter,
            line_break=line_break,
            file_encoding=encoding,
            enable_bom=bom,
            encoding_in_string=encoding_name,
            include_headers_in_output=not no_header,
            sanitize_column_headers=not no_sanitize,
            add_quotes_to_dates=not no_quote_dates,
            date_format=date_format,
            date_time_format=datetime_format,
        )

        start_time = time.time()
        count = _run_with_interrupt(parameters, options)
        elapsed = time.time() - start_time

        click.echo(f"Wrote {count} rows to {output}", err=True)
        if show_time:
            _print_time(f"Processed {count} rows in {elapsed:.3f}s")

    except ExportCancelled as e:
        click.echo(f"Cancelled after {e.rows_written} rows; {output} is incomplete", err=True)
        sys.exit(EXIT_CANCELLED)
    except ConfigurationError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(2)
    except QueryCsvError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def _run_with_interrupt(
    parameters: SaveQueryToCSVParameters, options: SaveQueryToCSVOptions
) -> int:
    """Run the export with Ctrl+C mapped to the cancellation token"""
    token = CancellationToken()

    def _on_sigint(signum, frame):
        token.cancel()

    installed = False
    try:
        previous = signal.signal(signal.SIGINT, _on_sigint)
        installed = True
    except ValueError:
        # Not on the main thread; Ctrl+C keeps its default behaviour
        previous = None

    try:
        return save_query_to_csv(parameters, options, token)
    finally:
        if installed:
            signal.signal(signal.SIGINT, previous if previous is not None else signal.SIG_DFL)


def _print_time(text: str) -> None:
    try:
        from rich.console import Console

        console = Console(stderr=True)
        console.print(f"[dim]{text}[/dim]")
    except ImportError:
        click.echo(text, err=True)


def main():
    cli()


if __name__ == "__main__":
    main()
