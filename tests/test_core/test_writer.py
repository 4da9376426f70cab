"""
Tests for the record writer
"""

import io

from querycsv.core.writer import CsvRecordWriter


class TestCsvRecordWriter:
    """Test delimiter and terminator placement"""

    def test_fields_joined_by_delimiter(self):
        out = io.StringIO()
        writer = CsvRecordWriter(out, "|", "\n")
        writer.write_field("a")
        writer.write_field("b")
        writer.write_field("c")
        writer.end_record()
        assert out.getvalue() == "a|b|c\n"

    def test_one_terminator_per_record_including_last(self):
        out = io.StringIO()
        writer = CsvRecordWriter(out, ";", "\r\n")
        for record in (["h1", "h2"], ["1", "2"], ["3", "4"]):
            writer.write_record(record)
            writer.end_record()
        assert out.getvalue() == "h1;h2\r\n1;2\r\n3;4\r\n"
        assert out.getvalue().count("\r\n") == writer.records_ended == 3

    def test_no_quoting_added(self):
        """Test that tokens are written verbatim"""
        out = io.StringIO()
        writer = CsvRecordWriter(out, ",", "\n")
        writer.write_record(['"a,b"', 'x"y', " padded "])
        writer.next_record()
        assert out.getvalue() == '"a,b",x"y, padded \n'

    def test_empty_record(self):
        out = io.StringIO()
        writer = CsvRecordWriter(out, ";", "\r")
        writer.end_record()
        assert out.getvalue() == "\r"

    def test_delimiter_resets_between_records(self):
        out = io.StringIO()
        writer = CsvRecordWriter(out, ";", "\n")
        writer.write_field("a")
        writer.end_record()
        writer.write_field("b")
        writer.end_record()
        assert out.getvalue() == "a\nb\n"
