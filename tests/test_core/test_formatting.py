"""
Tests for value formatting
"""

import struct
import uuid
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from querycsv.core.formatting import escape_text, format_datetime, format_number, format_value
from querycsv.core.options import SaveQueryToCSVOptions
from querycsv.core.types import ValueKind


def _float32(value):
    """Round a Python float through a 32-bit float"""
    return struct.unpack("f", struct.pack("f", value))[0]


@pytest.fixture
def opts():
    return SaveQueryToCSVOptions()


class TestFormatText:
    """Test text escaping and quoting"""

    def test_basic(self, opts):
        assert format_value("hello, world", None, ValueKind.TEXT, opts) == '"hello, world"'

    def test_quotes_escaped(self, opts):
        assert format_value('hello" world', None, ValueKind.TEXT, opts) == '"hello\\" world"'

    def test_cr(self, opts):
        assert format_value("hello\rworld", None, ValueKind.TEXT, opts) == '"hello world"'

    def test_crlf_is_one_space(self, opts):
        assert format_value("hello\r\nworld", None, ValueKind.TEXT, opts) == '"hello world"'

    def test_lf(self, opts):
        assert format_value("hello\nworld", None, ValueKind.TEXT, opts) == '"hello world"'

    def test_consecutive_breaks(self):
        """Test that each break becomes exactly one space"""
        assert escape_text("a\r\n\r\nb") == "a  b"
        assert escape_text("a\n\rb") == "a  b"
        assert escape_text("a\r\r\nb") == "a  b"

    def test_empty_string(self, opts):
        assert format_value("", "NVARCHAR", ValueKind.TEXT, opts) == '""'

    @pytest.mark.parametrize(
        "text",
        ['"', '\r\n"x"\r', 'a"b\nc"d\re', '\n\n""\r\r'],
    )
    def test_no_raw_line_breaks_and_every_quote_escaped(self, opts, text):
        """Test the shape of any escaped token"""
        token = format_value(text, None, ValueKind.TEXT, opts)
        assert token.startswith('"') and token.endswith('"')
        inner = token[1:-1]
        assert "\r" not in inner and "\n" not in inner
        for i, ch in enumerate(inner):
            if ch == '"':
                assert i > 0 and inner[i - 1] == "\\"

    def test_delimiter_not_escaped(self, opts):
        assert format_value("a;b", None, ValueKind.TEXT, opts) == '"a;b"'


class TestFormatNulls:
    """Test null handling per kind"""

    def test_text_null(self, opts):
        assert format_value(None, "NVARCHAR", ValueKind.TEXT, opts) == '""'

    def test_date_null_quoted(self, opts):
        assert format_value(None, "DATE", ValueKind.DATETIME, opts) == '""'
        assert format_value(None, "DATETIME", ValueKind.DATETIME, opts) == '""'

    def test_date_null_unquoted(self):
        opts = SaveQueryToCSVOptions(add_quotes_to_dates=False)
        assert format_value(None, "DATE", ValueKind.DATETIME, opts) == ""

    @pytest.mark.parametrize(
        "kind", [ValueKind.FLOAT32, ValueKind.FLOAT64, ValueKind.DECIMAL, ValueKind.OTHER]
    )
    def test_other_kinds_empty(self, opts, kind):
        assert format_value(None, "DOUBLE", kind, opts) == ""


class TestFormatDateTime:
    """Test date and datetime formatting"""

    value = datetime(2018, 12, 31, 11, 22, 33)

    def test_date_type_uses_date_format(self):
        opts = SaveQueryToCSVOptions(
            date_format="dd-MM_yyyy",
            date_time_format="dd-MM_yyyy HH:mm:ss",
            add_quotes_to_dates=False,
        )
        assert format_value(self.value, "DAte", ValueKind.DATETIME, opts) == "31-12_2018"
        assert format_value(self.value, "DAteTIME", ValueKind.DATETIME, opts) == "31-12_2018 11:22:33"

    def test_quoted(self):
        opts = SaveQueryToCSVOptions(
            date_format="dd-MM_yyyy",
            date_time_format="dd-MM_yyyy HH:mm:ss",
            add_quotes_to_dates=True,
        )
        assert format_value(self.value, "DAte", ValueKind.DATETIME, opts) == '"31-12_2018"'
        assert (
            format_value(self.value, "DAteTIME", ValueKind.DATETIME, opts)
            == '"31-12_2018 11:22:33"'
        )

    def test_unknown_or_missing_type_uses_datetime_format(self, opts):
        assert format_value(self.value, "TIMESTAMP", ValueKind.DATETIME, opts) == '"2018-12-31 11:22:33"'
        assert format_value(self.value, None, ValueKind.DATETIME, opts) == '"2018-12-31 11:22:33"'

    def test_plain_date_value(self, opts):
        assert format_value(date(2018, 12, 31), "date", ValueKind.DATETIME, opts) == '"2018-12-31"'

    def test_non_temporal_value_in_temporal_column(self, opts):
        assert format_value("2018-12-31", "DATE", ValueKind.DATETIME, opts) == '"2018-12-31"'


class TestDateTimeTemplates:
    """Test the custom date/time template tokens"""

    value = datetime(2018, 12, 31, 11, 22, 33, 123456)

    @pytest.mark.parametrize(
        "template,expected",
        [
            ("MM-dd-yyyy HH:mm:ss", "12-31-2018 11:22:33"),
            ("yyyy-MM-ddTHH:mm:ss.fff", "2018-12-31T11:22:33.123"),
            ("ss.fffffff", "33.1234560"),
            ("ss.FFFFFFF", "33.123456"),
            ("yy", "18"),
            ("M/d/yyyy", "12/31/2018"),
            ("MMM", "Dec"),
            ("MMMM", "December"),
            ("ddd", "Mon"),
            ("dddd, MMMM d", "Monday, December 31"),
            ("hh:mm tt", "11:22 AM"),
            ("h t", "11 A"),
            ("'Year' yyyy", "Year 2018"),
            ('"at" HH', "at 11"),
            ("\\d d", "d 31"),
            ("%d", "31"),
            ("s", "2018-12-31T11:22:33"),
            ("", "12/31/2018 11:22:33"),
        ],
    )
    def test_template(self, template, expected):
        assert format_datetime(self.value, template) == expected

    def test_afternoon_twelve_hour(self):
        assert format_datetime(datetime(2020, 1, 5, 13, 5), "h:mm tt") == "1:05 PM"
        assert format_datetime(datetime(2020, 1, 5, 0, 5), "hh:mm tt") == "12:05 AM"

    def test_single_digit_year_and_day(self):
        assert format_datetime(datetime(2005, 3, 7), "y d M") == "5 7 3"

    def test_zero_fraction_drops_separator(self):
        assert format_datetime(datetime(2018, 1, 1, 0, 0, 5), "ss.FFF") == "05"

    def test_date_renders_midnight(self):
        assert format_datetime(date(2018, 12, 31), "yyyy-MM-dd HH:mm") == "2018-12-31 00:00"

    def test_offsets(self):
        aware = datetime(2018, 12, 31, 11, 22, 33, tzinfo=timezone(timedelta(hours=5, minutes=30)))
        assert format_datetime(aware, "zzz") == "+05:30"
        assert format_datetime(aware, "zz") == "+05"
        assert format_datetime(aware, "K") == "+05:30"

    def test_utc_kind(self):
        aware = datetime(2018, 12, 31, 11, 22, 33, tzinfo=timezone.utc)
        assert format_datetime(aware, "yyyy-MM-ddTHH:mm:ssK") == "2018-12-31T11:22:33Z"

    def test_naive_kind_is_empty(self):
        assert format_datetime(self.value, "HH:mmK") == "11:22"


class TestFormatNumber:
    """Test fractional number formatting"""

    def test_float32(self, opts):
        assert format_value(_float32(1234.543), "FLOAT", ValueKind.FLOAT32, opts) == "1234.543"

    def test_float64(self, opts):
        assert format_value(1234.543, "DOUBLE", ValueKind.FLOAT64, opts) == "1234.543"

    def test_decimal(self, opts):
        assert format_value(Decimal("1234.543"), "DECIMAL", ValueKind.DECIMAL, opts) == "1234.543"

    def test_float32_sample_value(self):
        assert format_number(_float32(3000.212), ValueKind.FLOAT32) == "3000.212"

    def test_whole_number_has_no_point(self):
        assert format_number(3000.0) == "3000"
        assert format_number(Decimal("3000.000"), ValueKind.DECIMAL) == "3000"

    def test_eleven_digits_max(self):
        assert format_number(1 / 3) == "0.33333333333"
        assert format_number(2 / 3) == "0.66666666667"

    def test_binary_noise_hidden(self):
        assert format_number(0.1 + 0.2) == "0.3"

    def test_large_value_without_exponent(self):
        assert format_number(1e20) == "100000000000000000000"

    def test_tiny_value_rounds_to_zero(self):
        assert format_number(1e-12) == "0"
        assert format_number(-1e-12) == "0"

    def test_midpoint_rounds_away_from_zero(self):
        assert format_number(Decimal("0.000000000005"), ValueKind.DECIMAL) == "0.00000000001"
        assert format_number(Decimal("-2.5E-11"), ValueKind.DECIMAL) == "-0.00000000003"

    def test_negative(self):
        assert format_number(-12.5) == "-12.5"

    def test_integer_in_decimal_column(self):
        assert format_number(42, ValueKind.DECIMAL) == "42"

    def test_non_finite(self):
        assert format_number(float("nan")) == "NaN"
        assert format_number(float("inf")) == "Infinity"
        assert format_number(float("-inf")) == "-Infinity"

    def test_never_quoted(self, opts):
        token = format_value(1.5, "DOUBLE", ValueKind.FLOAT64, opts)
        assert '"' not in token


class TestFormatOther:
    """Test the default text conversion"""

    def test_integer(self, opts):
        assert format_value(42, "INTEGER", ValueKind.OTHER, opts) == "42"

    def test_boolean(self, opts):
        assert format_value(True, "BOOLEAN", ValueKind.OTHER, opts) == "True"

    def test_uuid(self, opts):
        value = uuid.UUID("12345678-1234-5678-1234-567812345678")
        assert format_value(value, "UUID", ValueKind.OTHER, opts) == "12345678-1234-5678-1234-567812345678"
