"""
Result cursors - forward-only row sources for the exporter

All cursors implement ResultCursor so the export driver can stream any of
them the same way:
1. ``columns`` describes the result before any row is read
2. iterating yields one row at a time as a sequence indexed like ``columns``
3. ``close()`` releases the underlying handle
"""

from itertools import chain
from typing import Any, Callable, Iterable, Iterator, List, Optional, Sequence, Tuple, Union

from querycsv.core.errors import QueryExecutionError
from querycsv.core.types import (
    ColumnDescriptor,
    ValueKind,
    kind_from_dtype,
    kind_from_python_type,
    kind_from_type_name,
    python_type_name,
)

try:
    import pandas as pd

    PANDAS_AVAILABLE = True
except ImportError:
    PANDAS_AVAILABLE = False
    pd = None


ColumnSpec = Union[ColumnDescriptor, str, Tuple[str, Any]]


class ResultCursor:
    """
    Base class for all result cursors

    Cursors are read once. Subclasses must implement ``columns`` and
    ``__iter__``; ``close`` is a no-op unless there is a handle to release.
    """

    @property
    def columns(self) -> List[ColumnDescriptor]:
        """
        Describe the result columns in source order

        Returns:
            One ColumnDescriptor per column
        """
        raise NotImplementedError("Subclasses must implement columns")

    def __iter__(self) -> Iterator[Sequence[Any]]:
        """
        Yield rows one at a time

        Yields:
            Sequence of raw values, None for SQL NULL
        """
        raise NotImplementedError("Subclasses must implement __iter__()")

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


def _describe(entry: ColumnSpec) -> ColumnDescriptor:
    if isinstance(entry, ColumnDescriptor):
        return entry
    if isinstance(entry, str):
        return ColumnDescriptor(entry, None, ValueKind.OTHER)

    name, declared = entry
    if isinstance(declared, type):
        return ColumnDescriptor(name, python_type_name(declared), kind_from_python_type(declared))
    return ColumnDescriptor(name, declared, kind_from_type_name(declared))


class RowsCursor(ResultCursor):
    """
    Cursor over rows already in memory

    Columns may be given as ColumnDescriptor objects, bare names, or
    ``(name, type)`` pairs where type is a Python type or a database type name.

    Example:
        >>> from datetime import datetime
        >>> cursor = RowsCursor(
        ...     [("col_string", str), ("col_datetime", datetime), ("col_float", float)],
        ...     [("Hello", datetime(2018, 12, 31, 11, 22, 33), 3000.212)],
        ... )
    """

    def __init__(self, columns: Sequence[ColumnSpec], rows: Iterable[Sequence[Any]]):
        self._columns = [_describe(entry) for entry in columns]
        self._rows = iter(rows)

    @property
    def columns(self) -> List[ColumnDescriptor]:
        return self._columns

    def __iter__(self) -> Iterator[Sequence[Any]]:
        return self._rows


class DataFrameCursor(ResultCursor):
    """
    Cursor over a pandas DataFrame

    Numeric and datetime64 columns are typed from their dtype. Object
    columns are typed from their first non-null value, so a column of
    ``Decimal`` or ``date`` objects is formatted as such. Missing values
    (NaN, NaT, pd.NA) are yielded as None.
    """

    def __init__(self, df: "pd.DataFrame"):
        if not PANDAS_AVAILABLE:
            raise ImportError(
                "DataFrameCursor requires pandas library. Install with: pip install pandas"
            )
        self.df = df
        self._columns = [self._describe_column(name) for name in df.columns]

    def _describe_column(self, name: Any) -> ColumnDescriptor:
        series = self.df[name]
        dtype = series.dtype

        if str(dtype) != "object":
            kind = kind_from_dtype(dtype)
            type_name = "datetime" if kind is ValueKind.DATETIME else str(dtype)
            return ColumnDescriptor(str(name), type_name, kind)

        non_null = series.dropna()
        if non_null.empty:
            return ColumnDescriptor(str(name), None, ValueKind.TEXT)

        python_type = type(non_null.iloc[0])
        return ColumnDescriptor(
            str(name), python_type_name(python_type), kind_from_python_type(python_type)
        )

    @property
    def columns(self) -> List[ColumnDescriptor]:
        return self._columns

    def __iter__(self) -> Iterator[Sequence[Any]]:
        for row in self.df.itertuples(index=False, name=None):
            yield tuple(_none_if_missing(value) for value in row)


def _none_if_missing(value: Any) -> Any:
    if pd.api.types.is_scalar(value) and pd.isna(value):
        return None
    return value


class DBAPICursor(ResultCursor):
    """
    Cursor over a PEP 249 (DB-API 2.0) cursor

    Column names and type names come from ``cursor.description``. Columns
    whose type name resolves to no known kind (no type code at all, as with
    sqlite3, or engine types such as JSON and ENUM) are typed from the first
    non-null value in the first fetched batch, so string values are still
    escaped and quoted as text.

    Rows are pulled with ``fetchmany(arraysize)`` so the result is never
    fully materialised. Driver errors raised while fetching are re-raised
    as QueryExecutionError.
    """

    def __init__(
        self,
        cursor: Any,
        arraysize: int = 1000,
        on_close: Optional[Callable[[], None]] = None,
    ):
        self.cursor = cursor
        self.arraysize = arraysize
        self._on_close = on_close
        self._first_batch: Optional[List[Sequence[Any]]] = None
        self._closed = False

        description = cursor.description or []
        self._columns = [self._describe_column(entry) for entry in description]

        if any(column.kind is ValueKind.OTHER for column in self._columns):
            self._infer_kinds_from_values()

    @staticmethod
    def _describe_column(entry: Sequence[Any]) -> ColumnDescriptor:
        name = entry[0]
        type_code = entry[1] if len(entry) > 1 else None
        type_name = None if type_code is None else str(type_code)
        return ColumnDescriptor(name, type_name, kind_from_type_name(type_name))

    def _infer_kinds_from_values(self) -> None:
        self._first_batch = self._fetch()
        for index, column in enumerate(self._columns):
            if column.kind is not ValueKind.OTHER:
                continue
            for row in self._first_batch:
                if row[index] is not None:
                    python_type = type(row[index])
                    self._columns[index] = ColumnDescriptor(
                        column.name,
                        column.type_name or python_type_name(python_type),
                        kind_from_python_type(python_type),
                    )
                    break

    def translate_error(self, error: Exception) -> Exception:
        """Map a driver error raised while fetching to a querycsv error"""
        return QueryExecutionError(f"Error fetching rows: {error}")

    def _fetch(self) -> List[Sequence[Any]]:
        try:
            return list(self.cursor.fetchmany(self.arraysize))
        except Exception as e:
            raise self.translate_error(e) from e

    def _batches(self) -> Iterator[List[Sequence[Any]]]:
        while True:
            batch = self._fetch()
            if not batch:
                return
            yield batch

    @property
    def columns(self) -> List[ColumnDescriptor]:
        return self._columns

    def __iter__(self) -> Iterator[Sequence[Any]]:
        batches: Iterable[List[Sequence[Any]]] = self._batches()
        if self._first_batch is not None:
            first, self._first_batch = self._first_batch, None
            if not first:
                return
            batches = chain([first], batches)
        for batch in batches:
            yield from batch

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self.cursor.close()
        finally:
            if self._on_close is not None:
                self._on_close()
