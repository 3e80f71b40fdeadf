"""Classification of column default values read from the SQLite catalog.

``PRAGMA table_info`` reports a default as the SQL text it was declared
with. Depending on the SQLite version that text can include comments that
followed the value in the CREATE statement, so comments around the value
are ignored.
"""

import re
from typing import Any

from liteshift.ops import tokens
from liteshift.ops.literal import Expression, Literal
from liteshift.ops.types import TYPE_BOOLEAN

_STRING_PATTERN = re.compile(r"'((?:[^']|'')*)'", re.DOTALL)
_KEYWORD_PATTERN = re.compile(r"current_(?:date|time(?:stamp)?)", re.IGNORECASE)
_NUMBER_PATTERN = re.compile(
    r"[-+]?(?:\d+(?:\.\d*)?|\.\d+)(?:e[-+]?\d+)?", re.IGNORECASE
)
_HEX_PATTERN = re.compile(r"0x([0-9a-f]+)", re.IGNORECASE)
_BOOLEAN_PATTERN = re.compile(r"true|false", re.IGNORECASE)
_NULL_PATTERN = re.compile(r"null", re.IGNORECASE)


def default_value_text(raw: str) -> str:
    """Return the text of a default value without surrounding noise.

    Leading and trailing whitespace and comments are removed, as are
    parentheses enclosing the whole value.
    """
    toks = tokens.significant(tokens.tokenize(raw))
    while (
        len(toks) >= 2
        and toks[0].is_punct("(")
        and tokens.matching_paren(toks, 0) == len(toks) - 1
    ):
        toks = toks[1:-1]
    if not toks:
        return ""
    return raw[toks[0].start : toks[-1].end]


def parse_default_value(raw: str | None, column_type: Any = None) -> Any:
    """Convert a stored default to a Python value.

    Args:
        raw: Default as reported by ``PRAGMA table_info``.
        column_type: Abstract type of the column; numeric defaults of
            boolean columns become ``bool``.

    Returns:
        None, a bool, an int, a float, a ``Literal`` for string literals,
        an upper-case ``CURRENT_*`` keyword, or an ``Expression`` holding
        any other default verbatim.
    """
    if raw is None:
        return None

    value = default_value_text(raw)
    if not value:
        return None

    if match := _STRING_PATTERN.fullmatch(value):
        return Literal(match.group(1).replace("''", "'"))

    if _KEYWORD_PATTERN.fullmatch(value):
        return value.upper()

    if _NUMBER_PATTERN.fullmatch(value):
        if column_type == TYPE_BOOLEAN:
            return bool(float(value))
        if "." in value or "e" in value.lower():
            return float(value)
        return int(value)

    if match := _HEX_PATTERN.fullmatch(value):
        return int(match.group(1), 16)

    if _BOOLEAN_PATTERN.fullmatch(value):
        return value.lower() == "true"

    if _NULL_PATTERN.fullmatch(value):
        return None

    return Expression(value)
