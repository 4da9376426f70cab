"""
Export options and query parameters

Enumerated options accept either the enum member or its name as a string
(case-insensitive), so they can come straight from a CLI flag or a config
dict. Resolution to literal characters happens once, in validate(), before
any file or database is touched.
"""

import codecs
import locale
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple, Type, TypeVar, Union

from querycsv.core.errors import ConfigurationError


class CsvFieldDelimiter(Enum):
    """CSV field delimiter options"""

    COMMA = ","
    SEMICOLON = ";"
    PIPE = "|"


class CsvLineBreak(Enum):
    """CSV line break options"""

    CRLF = "\r\n"
    LF = "\n"
    CR = "\r"


class FileEncoding(Enum):
    """Output file encodings"""

    UTF8 = "UTF8"
    ANSI = "ANSI"
    ASCII = "ASCII"
    UNICODE = "UNICODE"
    OTHER = "OTHER"


E = TypeVar("E", bound=Enum)


def _coerce_enum(enum_type: Type[E], value: Union[E, str], label: str) -> E:
    if isinstance(value, enum_type):
        return value
    if isinstance(value, str):
        member = enum_type.__members__.get(value.strip().upper())
        if member is not None:
            return member
    available = ", ".join(name.lower() for name in enum_type.__members__)
    raise ConfigurationError(f"Unknown {label}: {value!r}. Available: {available}")


def resolve_delimiter(value: Union[CsvFieldDelimiter, str]) -> str:
    """
    Resolve a delimiter option to its literal character

    Raises:
        ConfigurationError: If the value is not a known delimiter
    """
    return _coerce_enum(CsvFieldDelimiter, value, "field delimiter").value


def resolve_line_break(value: Union[CsvLineBreak, str]) -> str:
    """
    Resolve a line break option to its literal sequence

    Raises:
        ConfigurationError: If the value is not a known line break
    """
    return _coerce_enum(CsvLineBreak, value, "line break").value


@dataclass(frozen=True)
class ResolvedEncoding:
    """Codec name for open() and whether a byte order mark is written first"""

    codec: str
    bom: bool


def resolve_encoding(
    value: Union[FileEncoding, str],
    enable_bom: bool = False,
    encoding_in_string: Optional[str] = None,
) -> ResolvedEncoding:
    """
    Resolve a file encoding option to a Python codec

    Args:
        value: Encoding choice
        enable_bom: Write a UTF-8 byte order mark (UTF8 only)
        encoding_in_string: Codec name, used when value is OTHER

    Returns:
        ResolvedEncoding

    Raises:
        ConfigurationError: Unknown choice, or an OTHER codec Python cannot find
    """
    choice = _coerce_enum(FileEncoding, value, "file encoding")

    if choice is FileEncoding.UTF8:
        return ResolvedEncoding("utf-8", enable_bom)
    if choice is FileEncoding.ASCII:
        return ResolvedEncoding("ascii", False)
    if choice is FileEncoding.ANSI:
        return ResolvedEncoding(locale.getpreferredencoding(False), False)
    if choice is FileEncoding.UNICODE:
        return ResolvedEncoding("utf-16-le", True)

    if not encoding_in_string:
        raise ConfigurationError("File encoding OTHER requires encoding_in_string")
    try:
        codec = codecs.lookup(encoding_in_string).name
    except LookupError as e:
        raise ConfigurationError(f"Unknown encoding: {encoding_in_string!r}") from e
    return ResolvedEncoding(codec, False)


@dataclass
class SaveQueryToCSVOptions:
    """
    Formatting options for one export

    Attributes:
        columns_to_include: Column names to include; empty includes all
        field_delimiter: Separator between fields
        line_break: Terminator after every record
        file_encoding: Output file encoding
        enable_bom: Write a byte order mark when encoding is UTF8
        encoding_in_string: Codec name used when file_encoding is OTHER
        include_headers_in_output: Write a header record first
        sanitize_column_headers: Strip characters other than [A-Za-z0-9_-],
            leading digits and underscores, and lowercase the rest
        add_quotes_to_dates: Wrap date/datetime values (and their nulls) in quotes
        date_format: Template for DATE columns (.NET custom format tokens)
        date_time_format: Template for every other temporal column
    """

    columns_to_include: List[str] = field(default_factory=list)
    field_delimiter: Union[CsvFieldDelimiter, str] = CsvFieldDelimiter.SEMICOLON
    line_break: Union[CsvLineBreak, str] = CsvLineBreak.CRLF
    file_encoding: Union[FileEncoding, str] = FileEncoding.UTF8
    enable_bom: bool = False
    encoding_in_string: Optional[str] = None
    include_headers_in_output: bool = True
    sanitize_column_headers: bool = True
    add_quotes_to_dates: bool = True
    date_format: str = "yyyy-MM-dd"
    date_time_format: str = "yyyy-MM-dd HH:mm:ss"

    def get_field_delimiter(self) -> str:
        return resolve_delimiter(self.field_delimiter)

    def get_line_break(self) -> str:
        return resolve_line_break(self.line_break)

    def get_encoding(self) -> ResolvedEncoding:
        return resolve_encoding(self.file_encoding, self.enable_bom, self.encoding_in_string)

    def validate(self) -> Tuple[str, str, ResolvedEncoding]:
        """
        Resolve every enumerated option at once

        Returns:
            (delimiter, line break, encoding)

        Raises:
            ConfigurationError: On the first option that cannot be resolved
        """
        return self.get_field_delimiter(), self.get_line_break(), self.get_encoding()


@dataclass
class SQLParameter:
    """Named query parameter; values are always bound as strings"""

    name: str
    value: Optional[str]


@dataclass
class SaveQueryToCSVParameters:
    """
    What to run and where to write it

    Attributes:
        query: SQL text, may reference named parameters as ``$name``
        output_file_path: File the CSV is written to
        connection_string: DuckDB database path, ``:memory:`` for a fresh one
        query_parameters: Named parameters bound before execution
        timeout_seconds: Interrupt the query after this many seconds; 0 disables
    """

    query: str
    output_file_path: str
    connection_string: str = ":memory:"
    query_parameters: List[SQLParameter] = field(default_factory=list)
    timeout_seconds: float = 30


def parse_parameter(text: str) -> SQLParameter:
    """
    Parse a ``name=value`` pair

    Raises:
        ConfigurationError: If there is no ``=`` or the name is empty
    """
    name, sep, value = text.partition("=")
    name = name.strip().lstrip("$:@")
    if not sep or not name:
        raise ConfigurationError(f"Invalid query parameter {text!r}, expected name=value")
    return SQLParameter(name=name, value=value)
