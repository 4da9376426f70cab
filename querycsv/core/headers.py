"""
Header processing - column selection and header name sanitization
"""

import csv
import io
import re
from typing import List, Optional, Sequence

from querycsv.core.types import ColumnDescriptor

# Any character outside [A-Za-z0-9_-], or a leading run of digits/underscores.
# Both alternatives are applied in one pass over the column name.
_HEADER_STRIP = re.compile(r"[^a-zA-Z0-9_-]|^[0-9_]+")

# Both CR and LF are in the terminator, so names holding either get quoted
_HEADER_TERMINATOR = "\r\n"


def select_columns(
    columns: Sequence[ColumnDescriptor],
    include: Optional[Sequence[str]] = None,
    sanitize: bool = False,
) -> List[int]:
    """
    Compute the indexes of the columns to export

    Args:
        columns: Column descriptors in source order
        include: Names to include (exact, case-sensitive). None or empty
                 selects every column. Names that match nothing are ignored.
        sanitize: Also accept a column when a requested name equals its
                  sanitized header, i.e. the name shown in the output

    Returns:
        Selected indexes, always in source column order

    Example:
        >>> cols = [ColumnDescriptor("COL_StrING", None, ValueKind.TEXT),
        ...         ColumnDescriptor("b", None, ValueKind.TEXT)]
        >>> select_columns(cols, ["b", "COL_StrING"])
        [0, 1]
        >>> select_columns(cols, ["col_string"], sanitize=True)
        [0]
    """
    if not include:
        return list(range(len(columns)))

    wanted = set(include)
    return [i for i, column in enumerate(columns) if _matches(column.name, wanted, sanitize)]


def unmatched_names(
    columns: Sequence[ColumnDescriptor], include: Optional[Sequence[str]], sanitize: bool = False
) -> List[str]:
    """Requested names that select no column, in request order"""
    if not include:
        return []
    names = {column.name for column in columns}
    if sanitize:
        names |= {sanitize_header(column.name, True) for column in columns}
    return [name for name in include if name not in names]


def _matches(name: str, wanted: set, sanitize: bool) -> bool:
    if name in wanted:
        return True
    return sanitize and sanitize_header(name, True) in wanted


def sanitize_header(name: str, enabled: bool) -> str:
    """
    Render a column name for the header record

    When enabled, drops every character that is not a letter, digit,
    underscore or hyphen, drops a leading run of digits and underscores,
    then lowercases what is left.

    Examples:
        >>> sanitize_header("123_hello!!! THIS IS 5aNiTiZ3D_MADNESS", True)
        'hellothisis5anitiz3d_madness'
        >>> sanitize_header("COL_StrING", False)
        'COL_StrING'
    """
    if not enabled:
        return name
    return _HEADER_STRIP.sub("", name).lower()


def format_header_record(names: Sequence[str], delimiter: str) -> str:
    """
    Join header names into one record, without the line terminator

    Names holding the delimiter, a double quote, CR or LF are quoted the
    way the csv module quotes them (QUOTE_MINIMAL, embedded quotes
    doubled). Everything else is written unchanged.

    Example:
        >>> format_header_record(["col_string", "a;b"], ";")
        'col_string;"a;b"'
    """
    output = io.StringIO()
    writer = csv.writer(
        output,
        delimiter=delimiter,
        quoting=csv.QUOTE_MINIMAL,
        lineterminator=_HEADER_TERMINATOR,
    )
    writer.writerow(names)
    return output.getvalue()[: -len(_HEADER_TERMINATOR)]
