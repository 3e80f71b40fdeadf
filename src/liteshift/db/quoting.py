"""Identifier quoting for SQLite statements.

Identifiers are delimited with backticks, which SQLite accepts for
compatibility with MySQL. Embedded backticks are doubled.
"""

import re
import string

_DELIMITER = "`"

_ASCII_LOWER = str.maketrans(string.ascii_uppercase, string.ascii_lowercase)

# Last dot-separated segment preceded by at least one character
_QUALIFIED_NAME_PATTERN = re.compile(r"(?P<schema>.+)\.(?P<table>[^.]+)", re.DOTALL)


def quote_identifier(name: str) -> str:
    """Quote a single identifier, doubling embedded delimiters.

    Args:
        name: Column, index, schema or bare table name.

    Returns:
        The delimited identifier; an empty name yields two delimiters.
    """
    escaped = str(name).replace(_DELIMITER, _DELIMITER * 2)
    return f"{_DELIMITER}{escaped}{_DELIMITER}"


def quote_qualified_name(name: str) -> str:
    """Quote a possibly schema-qualified table name.

    Every literal dot separates two independently quoted segments, so
    ``"a.b"`` becomes ``"`a`.`b`"``. Dots inside names are not supported.
    """
    return quote_identifier(name).replace(".", f"{_DELIMITER}.{_DELIMITER}")


def quote_string(value: str) -> str:
    """Quote a string literal for inline use in SQL text."""
    return "'" + str(value).replace("'", "''") + "'"


def unquote_identifier(quoted: str) -> str:
    """Reverse :func:`quote_identifier`."""
    if len(quoted) >= 2 and quoted[0] == quoted[-1] == _DELIMITER:
        return quoted[1:-1].replace(_DELIMITER * 2, _DELIMITER)
    return quoted


def ascii_lower(name: str) -> str:
    """Lower-case the ASCII letters of ``name``, leaving others untouched.

    SQLite's own case-insensitive matching of identifiers is ASCII-only,
    so ``str.lower`` would match names the engine treats as distinct.
    """
    return name.translate(_ASCII_LOWER)


def split_qualified_name(name: str) -> tuple[str, str]:
    """Split ``schema.table`` into its parts.

    The table is the last dot-separated segment; everything before the
    final dot is the schema. A name without a dot (or with only a leading
    dot) has an empty schema.

    Returns:
        Tuple of (schema, table).
    """
    match = _QUALIFIED_NAME_PATTERN.fullmatch(name)
    if match is None:
        return "", name
    return match.group("schema"), match.group("table")
