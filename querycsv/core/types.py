"""Column typing for querycsv.

Every column of a result cursor is described once, before any row is read,
by a ColumnDescriptor carrying its name, the type name reported by the
database and the ValueKind that picks its formatting rule.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional


class ValueKind(Enum):
    """Formatting categories for column values."""

    TEXT = "TEXT"
    DATETIME = "DATETIME"
    FLOAT32 = "FLOAT32"
    FLOAT64 = "FLOAT64"
    DECIMAL = "DECIMAL"
    OTHER = "OTHER"

    def __str__(self) -> str:
        return self.value

    def is_numeric(self) -> bool:
        """Check if kind is one of the fractional numeric kinds."""
        return self in (ValueKind.FLOAT32, ValueKind.FLOAT64, ValueKind.DECIMAL)


@dataclass(frozen=True)
class ColumnDescriptor:
    """Name, declared database type and value kind of one result column."""

    name: str
    type_name: Optional[str]
    kind: ValueKind


_TYPE_NAME_KINDS = {
    # Text
    "VARCHAR": ValueKind.TEXT,
    "NVARCHAR": ValueKind.TEXT,
    "CHAR": ValueKind.TEXT,
    "NCHAR": ValueKind.TEXT,
    "BPCHAR": ValueKind.TEXT,
    "TEXT": ValueKind.TEXT,
    "NTEXT": ValueKind.TEXT,
    "STRING": ValueKind.TEXT,
    "CHARACTER VARYING": ValueKind.TEXT,
    "XML": ValueKind.TEXT,
    "UNIQUEIDENTIFIER": ValueKind.TEXT,
    # Temporal
    "DATE": ValueKind.DATETIME,
    "DATETIME": ValueKind.DATETIME,
    "DATETIME2": ValueKind.DATETIME,
    "SMALLDATETIME": ValueKind.DATETIME,
    "TIMESTAMP": ValueKind.DATETIME,
    "TIMESTAMP_S": ValueKind.DATETIME,
    "TIMESTAMP_MS": ValueKind.DATETIME,
    "TIMESTAMP_NS": ValueKind.DATETIME,
    "TIMESTAMP WITH TIME ZONE": ValueKind.DATETIME,
    "TIMESTAMPTZ": ValueKind.DATETIME,
    "DATETIMEOFFSET": ValueKind.DATETIME,
    # 32-bit float
    "FLOAT": ValueKind.FLOAT32,
    "FLOAT4": ValueKind.FLOAT32,
    "REAL": ValueKind.FLOAT32,
    # 64-bit float
    "DOUBLE": ValueKind.FLOAT64,
    "DOUBLE PRECISION": ValueKind.FLOAT64,
    "FLOAT8": ValueKind.FLOAT64,
    # Arbitrary precision
    "DECIMAL": ValueKind.DECIMAL,
    "NUMERIC": ValueKind.DECIMAL,
    "MONEY": ValueKind.DECIMAL,
    "SMALLMONEY": ValueKind.DECIMAL,
}

_PRECISION_SUFFIX = re.compile(r"\s*\(.*\)\s*$")

# FLOAT(p): 1-24 binary digits is single precision, 25-53 double
_FLOAT_PRECISION = re.compile(r"^FLOAT\s*\(\s*(\d+)\s*\)$", re.IGNORECASE)


def kind_from_type_name(type_name: Optional[str]) -> ValueKind:
    """Resolve a database type name to a ValueKind.

    Matching is case-insensitive and ignores a parenthesised precision,
    so ``DECIMAL(18,3)`` and ``varchar(max)`` resolve like their base names.

    ``FLOAT(p)`` resolves by its precision: up to 24 is FLOAT32, above is
    FLOAT64. A bare ``FLOAT`` is single precision, as in DuckDB; in SQL
    Server and PostgreSQL a bare ``FLOAT`` is double precision, and such
    columns are formatted from 7 significant digits unless the driver
    reports the precision.

    Examples:
        >>> kind_from_type_name("DECIMAL(18,3)")
        <ValueKind.DECIMAL: 'DECIMAL'>
        >>> kind_from_type_name("blob")
        <ValueKind.OTHER: 'OTHER'>
    """
    if not type_name:
        return ValueKind.OTHER
    match = _FLOAT_PRECISION.match(str(type_name).strip())
    if match:
        return ValueKind.FLOAT32 if int(match.group(1)) <= 24 else ValueKind.FLOAT64
    base = _PRECISION_SUFFIX.sub("", str(type_name)).strip().upper()
    return _TYPE_NAME_KINDS.get(base, ValueKind.OTHER)


def kind_from_python_type(python_type: Optional[type]) -> ValueKind:
    """Resolve a Python value type to a ValueKind.

    ``datetime`` is a subclass of ``date`` so both land on DATETIME;
    ``bool`` and ``int`` are not fractional and fall through to OTHER.
    """
    if python_type is None:
        return ValueKind.OTHER
    if issubclass(python_type, str):
        return ValueKind.TEXT
    if issubclass(python_type, (datetime, date)):
        return ValueKind.DATETIME
    if issubclass(python_type, Decimal):
        return ValueKind.DECIMAL
    if issubclass(python_type, float):
        return ValueKind.FLOAT64
    return ValueKind.OTHER


def kind_from_dtype(dtype: Any) -> ValueKind:
    """Resolve a pandas/numpy dtype to a ValueKind."""
    name = str(dtype).lower()
    if name == "float32":
        return ValueKind.FLOAT32
    if name == "float64":
        return ValueKind.FLOAT64
    if name.startswith("datetime64"):
        return ValueKind.DATETIME
    if name in ("object", "string", "str") or name.startswith("string["):
        return ValueKind.TEXT
    return ValueKind.OTHER


def python_type_name(python_type: Optional[type]) -> Optional[str]:
    """Declared type name used for columns that only carry a Python type.

    ``date`` values report ``"date"`` so they pick the date template;
    other temporal types report ``"datetime"``.
    """
    if python_type is None:
        return None
    if issubclass(python_type, date) and not issubclass(python_type, datetime):
        return "date"
    if issubclass(python_type, datetime):
        return "datetime"
    return python_type.__name__
