"""Tests for default value classification."""

import pytest

from liteshift.ops.defaults import default_value_text, parse_default_value
from liteshift.ops.literal import Expression, Literal


class TestDefaultValueText:
    """Tests for stripping noise around a default."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("1", "1"),
            ("  1  ", "1"),
            ("1 /* comment */", "1"),
            ("1 -- comment", "1"),
            ("/* c */ null", "null"),
            ("( ( null ) )", "null"),
            ("(2) + (2)", "(2) + (2)"),
            ("'a' /* x */ || 'b'", "'a' /* x */ || 'b'"),
        ],
    )
    def test_strip(self, raw: str, expected: str) -> None:
        """Comments and enclosing parentheses are removed."""
        assert default_value_text(raw) == expected


class TestParseDefaultValue:
    """Tests for parse_default_value."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            (None, None),
            ("null", None),
            ("NULL", None),
            ("2112", 2112),
            ("002112", 2112),
            ("-1", -1),
            ("+5", 5),
            ("0xFF", 255),
            ("0x1f", 31),
            ("true", True),
            ("FALSE", False),
            ("current_date", "CURRENT_DATE"),
            ("Current_Time", "CURRENT_TIME"),
            ("CURRENT_TIMESTAMP /* now */", "CURRENT_TIMESTAMP"),
        ],
    )
    def test_scalars(self, raw: str | None, expected: object) -> None:
        """Keywords and numbers become Python values."""
        result = parse_default_value(raw, "integer")
        assert result == expected
        assert type(result) is type(expected)

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("1.0", 1.0),
            ("1.", 1.0),
            (".5", 0.5),
            ("2.5e3", 2500.0),
            ("-1.25", -1.25),
        ],
    )
    def test_floats(self, raw: str, expected: float) -> None:
        """Numbers written with a fraction or exponent are floats."""
        result = parse_default_value(raw, "float")
        assert result == expected
        assert isinstance(result, float)

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("1", True), ("0", False), ("2", True), ("0.0", False), ("0.5", True)],
    )
    def test_boolean_column(self, raw: str, expected: bool) -> None:
        """Numeric defaults of boolean columns become booleans."""
        assert parse_default_value(raw, "boolean") is expected

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("'abc'", "abc"),
            ("''", ""),
            ("'it''s'", "it's"),
            ("'CURRENT_TIMESTAMP'", "CURRENT_TIMESTAMP"),
            ("'' /* comment */", ""),
            ("'null'", "null"),
            ("'/* not a comment */'", "/* not a comment */"),
        ],
    )
    def test_strings(self, raw: str, expected: str) -> None:
        """String literals are unescaped Literals."""
        result = parse_default_value(raw, "text")
        assert result == expected
        assert isinstance(result, Literal)

    @pytest.mark.parametrize(
        "raw",
        [
            "x'ff'",
            "(2) + (2)",
            "'/*' || '*/'",
            "'--' || 'stuff'",
            "random()",
            "1 + 1",
            "0xZZ",
        ],
    )
    def test_expressions(self, raw: str) -> None:
        """Anything else is an Expression holding the text."""
        result = parse_default_value(raw, "text")
        assert result == raw
        assert isinstance(result, Expression)
