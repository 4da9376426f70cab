"""
Record writer for pre-formatted CSV tokens

Tokens arrive already escaped and quoted by the formatter, so the writer
only places delimiters and line terminators. It never adds quoting of its
own and never writes a terminator that was not asked for.
"""

from typing import Iterable, TextIO


class CsvRecordWriter:
    """
    Writes delimited records to a text stream

    Example:
        >>> import io
        >>> out = io.StringIO()
        >>> writer = CsvRecordWriter(out, ";", "\\r\\n")
        >>> writer.write_record(["a", "b"])
        >>> writer.end_record()
        >>> out.getvalue()
        'a;b\\r\\n'
    """

    def __init__(self, stream: TextIO, delimiter: str, line_terminator: str):
        self.stream = stream
        self.delimiter = delimiter
        self.line_terminator = line_terminator
        self.records_ended = 0
        self._fields_in_record = 0

    def write_field(self, token: str) -> None:
        """Append one token to the current record"""
        if self._fields_in_record:
            self.stream.write(self.delimiter)
        self.stream.write(token)
        self._fields_in_record += 1

    def write_record(self, tokens: Iterable[str]) -> None:
        """Append all tokens to the current record, joined by the delimiter"""
        for token in tokens:
            self.write_field(token)

    def end_record(self) -> None:
        """Terminate the current record with the configured line terminator"""
        self.stream.write(self.line_terminator)
        self._fields_in_record = 0
        self.records_ended += 1

    next_record = end_record

    def flush(self) -> None:
        self.stream.flush()
