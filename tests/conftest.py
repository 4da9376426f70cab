"""
Pytest configuration and shared fixtures
"""

from datetime import datetime

import pytest

from querycsv.core.cursor import RowsCursor
from querycsv.core.options import SaveQueryToCSVOptions


@pytest.fixture(scope="session")
def anyio_backend():
    """Configure anyio to only use asyncio backend."""
    return "asyncio"


@pytest.fixture
def sample_columns():
    """String, datetime and float columns"""
    return [("col_string", str), ("col_datetime", datetime), ("col_float", float)]


@pytest.fixture
def sample_rows():
    """Two rows with an embedded quote in the text column"""
    return [
        ('Hello"semicolon1', datetime(2018, 12, 31, 11, 22, 33), 3000.212),
        ('Hello"semicolon2', datetime(2018, 12, 31, 11, 22, 34), 3000.212),
    ]


@pytest.fixture
def sample_cursor(sample_columns, sample_rows):
    """In-memory cursor over the sample rows"""
    return RowsCursor(sample_columns, sample_rows)


@pytest.fixture
def options():
    """Options used by most driver tests: semicolon, CRLF, unquoted dates"""
    return SaveQueryToCSVOptions(
        date_format="MM-dd-yyyy",
        date_time_format="MM-dd-yyyy HH:mm:ss",
        add_quotes_to_dates=False,
    )
