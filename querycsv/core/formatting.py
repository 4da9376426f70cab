"""
Value formatting - turns one cell into one CSV token

The token is written to the output as-is: text is escaped and quoted here,
dates are rendered with the configured template, fractional numbers use a
fixed eleven-digit style. Formatting never depends on the process locale.
"""

import math
import re
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Context, Decimal
from functools import lru_cache
from typing import Any, List, Optional, Tuple

from querycsv.core.options import SaveQueryToCSVOptions
from querycsv.core.types import ValueKind

_NEWLINES = re.compile(r"\r\n|\r|\n")

_ELEVEN_PLACES = Decimal("1e-11")

# Significant digits the fractional kinds are reduced to before rounding
_SIGNIFICANT_DIGITS = {
    ValueKind.FLOAT32: 7,
    ValueKind.FLOAT64: 15,
}

# Invariant-culture names
_MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]
_DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

# Single-character templates are standard patterns, expanded before rendering
_STANDARD_PATTERNS = {
    "d": "MM/dd/yyyy",
    "D": "dddd, dd MMMM yyyy",
    "f": "dddd, dd MMMM yyyy HH:mm",
    "F": "dddd, dd MMMM yyyy HH:mm:ss",
    "g": "MM/dd/yyyy HH:mm",
    "G": "MM/dd/yyyy HH:mm:ss",
    "m": "MMMM dd",
    "M": "MMMM dd",
    "o": "yyyy'-'MM'-'dd'T'HH':'mm':'ss'.'fffffffK",
    "O": "yyyy'-'MM'-'dd'T'HH':'mm':'ss'.'fffffffK",
    "r": "ddd, dd MMM yyyy HH':'mm':'ss 'GMT'",
    "R": "ddd, dd MMM yyyy HH':'mm':'ss 'GMT'",
    "s": "yyyy'-'MM'-'dd'T'HH':'mm':'ss",
    "t": "HH:mm",
    "T": "HH:mm:ss",
    "u": "yyyy'-'MM'-'dd HH':'mm':'ss'Z'",
    "y": "yyyy MMMM",
    "Y": "yyyy MMMM",
}

_PATTERN_LETTERS = set("dfFghHKmMstyz")

# (kind, value): kind is "lit" for literal text or the repeated pattern letter
Token = Tuple[str, Any]


def format_value(
    value: Any,
    type_name: Optional[str],
    kind: ValueKind,
    options: SaveQueryToCSVOptions,
) -> str:
    """
    Format one database value as a CSV token

    Args:
        value: Raw value, None for SQL NULL
        type_name: Type name the database declared for the column
        kind: Formatting category of the column
        options: Export options (date templates, date quoting)

    Returns:
        Token ready to be written without further quoting

    Examples:
        >>> format_value("line one\\nline two", "VARCHAR", ValueKind.TEXT, SaveQueryToCSVOptions())
        '"line one line two"'
        >>> format_value(None, "DOUBLE", ValueKind.FLOAT64, SaveQueryToCSVOptions())
        ''
    """
    if value is None:
        if kind is ValueKind.TEXT:
            return '""'
        if kind is ValueKind.DATETIME and options.add_quotes_to_dates:
            return '""'
        return ""

    if kind is ValueKind.TEXT:
        return '"' + escape_text(str(value)) + '"'

    if kind is ValueKind.DATETIME:
        if (type_name or "").lower() == "date":
            template = options.date_format
        else:
            template = options.date_time_format
        output = format_datetime(value, template) if isinstance(value, date) else str(value)
        if options.add_quotes_to_dates:
            return '"' + output + '"'
        return output

    if kind.is_numeric():
        return format_number(value, kind)

    return str(value)


def escape_text(text: str) -> str:
    """Backslash-escape double quotes and turn every line break into one space"""
    return _NEWLINES.sub(" ", text.replace('"', '\\"'))


def format_number(value: Any, kind: ValueKind = ValueKind.FLOAT64) -> str:
    """
    Render a fractional number with up to eleven decimals

    Trailing zeros and a trailing decimal point are dropped, midpoints round
    away from zero. FLOAT32 and FLOAT64 values are first reduced to 7 and 15
    significant digits, so a 32-bit 1234.543 prints as ``1234.543`` rather
    than the digits of its binary expansion.

    Examples:
        >>> format_number(3000.212)
        '3000.212'
        >>> format_number(Decimal("1.000000000005"), ValueKind.DECIMAL)
        '1.00000000001'
    """
    if isinstance(value, Decimal):
        number = value
    elif kind is ValueKind.DECIMAL and not isinstance(value, float):
        number = Decimal(str(value))
    else:
        as_float = float(value)
        if math.isnan(as_float):
            return "NaN"
        if math.isinf(as_float):
            return "Infinity" if as_float > 0 else "-Infinity"
        digits = _SIGNIFICANT_DIGITS.get(kind, 15)
        number = Decimal(format(as_float, f".{digits}g"))

    if number.is_nan():
        return "NaN"
    if number.is_infinite():
        return "Infinity" if number > 0 else "-Infinity"

    if number.as_tuple().exponent < -11:
        precision = max(number.adjusted() + 13, 1)
        number = number.quantize(
            _ELEVEN_PLACES, rounding=ROUND_HALF_UP, context=Context(prec=precision)
        )

    if number.is_zero():
        return "0"

    text = format(number, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def format_datetime(value: date, template: str) -> str:
    """
    Render a date or datetime with a .NET-style custom format template

    Names and separators follow the invariant culture: English month and day
    names, ``:`` between time parts, ``/`` between date parts. Plain ``date``
    values render their time parts as midnight.

    Examples:
        >>> format_datetime(datetime(2018, 12, 31, 11, 22, 33), "MM-dd-yyyy HH:mm:ss")
        '12-31-2018 11:22:33'
        >>> format_datetime(date(2018, 12, 31), "dd MMM yyyy")
        '31 Dec 2018'
    """
    if not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)

    parts: List[str] = []
    for letter, arg in _compile_template(template):
        if letter == "lit":
            parts.append(arg)
        elif letter == "F":
            rendered = _render(value, letter, arg)
            if not rendered and parts and parts[-1].endswith("."):
                parts[-1] = parts[-1][:-1]
            parts.append(rendered)
        else:
            parts.append(_render(value, letter, arg))
    return "".join(parts)


@lru_cache(maxsize=64)
def _compile_template(template: str) -> Tuple[Token, ...]:
    if not template:
        template = _STANDARD_PATTERNS["G"]
    elif len(template) == 1 and template in _STANDARD_PATTERNS:
        template = _STANDARD_PATTERNS[template]

    tokens: List[Token] = []
    i = 0
    n = len(template)
    while i < n:
        ch = template[i]
        if ch in ("'", '"'):
            end = template.find(ch, i + 1)
            if end == -1:
                end = n
            tokens.append(("lit", template[i + 1:end]))
            i = end + 1
        elif ch == "\\":
            tokens.append(("lit", template[i + 1:i + 2]))
            i += 2
        elif ch == "%":
            # Single specifier marker; the next letter is read on the next pass
            i += 1
        elif ch in _PATTERN_LETTERS:
            j = i
            while j < n and template[j] == ch:
                j += 1
            tokens.append((ch, j - i))
            i = j
        else:
            tokens.append(("lit", ch))
            i += 1
    return tuple(tokens)


def _render(value: datetime, letter: str, count: int) -> str:
    if letter == "y":
        if count == 1:
            return str(value.year % 100)
        if count == 2:
            return f"{value.year % 100:02d}"
        return str(value.year).zfill(count)
    if letter == "M":
        if count == 1:
            return str(value.month)
        if count == 2:
            return f"{value.month:02d}"
        name = _MONTH_NAMES[value.month - 1]
        return name[:3] if count == 3 else name
    if letter == "d":
        if count == 1:
            return str(value.day)
        if count == 2:
            return f"{value.day:02d}"
        name = _DAY_NAMES[value.weekday()]
        return name[:3] if count == 3 else name
    if letter == "H":
        return f"{value.hour:02d}" if count >= 2 else str(value.hour)
    if letter == "h":
        hour = value.hour % 12 or 12
        return f"{hour:02d}" if count >= 2 else str(hour)
    if letter == "m":
        return f"{value.minute:02d}" if count >= 2 else str(value.minute)
    if letter == "s":
        return f"{value.second:02d}" if count >= 2 else str(value.second)
    if letter in ("f", "F"):
        # Seven digits of 100ns ticks, Python only carries microseconds
        ticks = f"{value.microsecond * 10:07d}"[:min(count, 7)]
        return ticks if letter == "f" else ticks.rstrip("0")
    if letter == "t":
        marker = "AM" if value.hour < 12 else "PM"
        return marker[0] if count == 1 else marker
    if letter == "g":
        return "A.D."
    if letter == "K":
        offset = value.utcoffset()
        if offset is None:
            return ""
        if offset == timedelta(0):
            return "Z"
        return _format_offset(offset, 3)
    if letter == "z":
        offset = value.utcoffset()
        if offset is None:
            offset = value.astimezone().utcoffset()
        return _format_offset(offset, count)
    return ""


def _format_offset(offset: timedelta, count: int) -> str:
    total_minutes = int(offset.total_seconds() // 60)
    sign = "-" if total_minutes < 0 else "+"
    hours, minutes = divmod(abs(total_minutes), 60)
    if count == 1:
        return f"{sign}{hours}"
    if count == 2:
        return f"{sign}{hours:02d}"
    return f"{sign}{hours:02d}:{minutes:02d}"
