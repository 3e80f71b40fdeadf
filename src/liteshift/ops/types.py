"""Mapping between abstract column types and SQLite type names.

SQLite derives a column's storage affinity from its declared type text.
Several abstract types map to a native name with an affinity suffix
appended (e.g. ``date_text``) so that SQLite does not give them NUMERIC
affinity; the suffix is stripped again when reading the schema back.
"""

import re
from collections.abc import Collection, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from liteshift.errors import UnsupportedColumnTypeError
from liteshift.ops.literal import Literal

TYPE_BIG_INTEGER = "biginteger"
TYPE_BINARY = "binary"
TYPE_BIT = "bit"
TYPE_BLOB = "blob"
TYPE_BOOLEAN = "boolean"
TYPE_CHAR = "char"
TYPE_CIDR = "cidr"
TYPE_DATE = "date"
TYPE_DATETIME = "datetime"
TYPE_DECIMAL = "decimal"
TYPE_DOUBLE = "double"
TYPE_ENUM = "enum"
TYPE_FILESTREAM = "filestream"
TYPE_FLOAT = "float"
TYPE_GEOMETRY = "geometry"
TYPE_INET = "inet"
TYPE_INTEGER = "integer"
TYPE_INTERVAL = "interval"
TYPE_JSON = "json"
TYPE_JSONB = "jsonb"
TYPE_LINESTRING = "linestring"
TYPE_MACADDR = "macaddr"
TYPE_POINT = "point"
TYPE_POLYGON = "polygon"
TYPE_SET = "set"
TYPE_SMALL_INTEGER = "smallinteger"
TYPE_STRING = "string"
TYPE_TEXT = "text"
TYPE_TIME = "time"
TYPE_TIMESTAMP = "timestamp"
TYPE_UUID = "uuid"
TYPE_VARBINARY = "varbinary"

# Abstract type -> native name, in canonical order
SUPPORTED_TYPES: Mapping[str, str] = MappingProxyType(
    {
        TYPE_BIG_INTEGER: "biginteger",
        TYPE_BINARY: "binary_blob",
        TYPE_BLOB: "blob",
        TYPE_BOOLEAN: "boolean_integer",
        TYPE_CHAR: "char",
        TYPE_DATE: "date_text",
        TYPE_DATETIME: "datetime_text",
        TYPE_DOUBLE: "double",
        TYPE_FLOAT: "float",
        TYPE_INTEGER: "integer",
        TYPE_JSON: "json_text",
        TYPE_JSONB: "jsonb_text",
        TYPE_SMALL_INTEGER: "smallinteger",
        TYPE_STRING: "varchar",
        TYPE_TEXT: "text",
        TYPE_TIME: "time_text",
        TYPE_UUID: "uuid_text",
        TYPE_TIMESTAMP: "timestamp_text",
        TYPE_VARBINARY: "varbinary_blob",
    }
)

# Native spellings found in existing schemas -> abstract type
TYPE_ALIASES: Mapping[str, str] = MappingProxyType(
    {
        "varchar": TYPE_STRING,
        "tinyint": TYPE_SMALL_INTEGER,
        "tinyinteger": TYPE_SMALL_INTEGER,
        "smallint": TYPE_SMALL_INTEGER,
        "int": TYPE_INTEGER,
        "mediumint": TYPE_INTEGER,
        "mediuminteger": TYPE_INTEGER,
        "bigint": TYPE_BIG_INTEGER,
        "tinytext": TYPE_TEXT,
        "mediumtext": TYPE_TEXT,
        "longtext": TYPE_TEXT,
        "tinyblob": TYPE_BLOB,
        "mediumblob": TYPE_BLOB,
        "longblob": TYPE_BLOB,
        "real": TYPE_FLOAT,
    }
)

# Known abstract types SQLite has no safe representation for
UNSUPPORTED_TYPES: frozenset[str] = frozenset(
    {
        TYPE_BIT,
        TYPE_CIDR,
        TYPE_DECIMAL,
        TYPE_ENUM,
        TYPE_FILESTREAM,
        TYPE_GEOMETRY,
        TYPE_INET,
        TYPE_INTERVAL,
        TYPE_LINESTRING,
        TYPE_MACADDR,
        TYPE_POINT,
        TYPE_POLYGON,
        TYPE_SET,
    }
)

# Declared types SQLite lets carry a display width
LIMITABLE_TYPES: frozenset[str] = frozenset(
    {
        "CHAR",
        "CHARACTER",
        "VARCHAR",
        "VARYING CHARACTER",
        "NCHAR",
        "NATIVE CHARACTER",
        "NVARCHAR",
    }
)

_NATIVE_TYPE_PATTERN = re.compile(
    r"(?P<base>[a-z]+)(?P<affinity>_(?:integer|float|text|blob))?"
    r"(?:\((?P<limit>\d+)(?:,(?P<scale>\d+))?\))?",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class NativeType:
    """A native type name with its optional limit."""

    name: str
    limit: int | None = None


@dataclass(frozen=True)
class AbstractType:
    """An abstract type recovered from a native declaration.

    ``name`` is a type tag, a Literal for types passed through unchanged,
    or None for a column declared without a type.
    """

    name: str | None
    limit: int | None = None
    scale: int | None = None


class TypeMapper:
    """Translates between abstract column types and SQLite type names."""

    def __init__(
        self,
        supported: Mapping[str, str] = SUPPORTED_TYPES,
        aliases: Mapping[str, str] = TYPE_ALIASES,
        unsupported: Collection[str] = UNSUPPORTED_TYPES,
    ) -> None:
        self._supported = supported
        self._aliases = aliases
        self._unsupported = unsupported

    def to_native(self, type_: str, limit: int | None = None) -> NativeType:
        """Return the native type for an abstract type.

        Literal types are returned unchanged.

        Raises:
            UnsupportedColumnTypeError: If the type is known but has no
                SQLite representation, or is not known at all.
        """
        if isinstance(type_, Literal):
            return NativeType(type_, limit)

        type_lc = str(type_).lower()
        if type_lc in self._supported:
            return NativeType(self._supported[type_lc], limit)
        if type_lc in self._unsupported:
            raise UnsupportedColumnTypeError(
                f'Column type "{type_}" is not supported by SQLite.'
            )
        raise UnsupportedColumnTypeError(f'Column type "{type_}" is not known by SQLite.')

    def to_abstract(self, native: str | None) -> AbstractType:
        """Return the abstract type for a native type declaration.

        Declarations of the form ``base[_affinity][(limit[,scale])]`` are
        matched against the supported types and aliases; anything else is
        returned as a Literal preserving its original text.
        """
        if native is None:
            # a column may be declared without any type, distinct from ''
            return AbstractType(None)

        match = _NATIVE_TYPE_PATTERN.fullmatch(native)
        if match is None:
            return AbstractType(Literal(native))

        base = match.group("base")
        base_lc = base.lower()
        affinity = match.group("affinity") or ""
        limit = int(match.group("limit")) if match.group("limit") else None
        scale = int(match.group("scale")) if match.group("scale") else None

        if base_lc in self._supported:
            return AbstractType(base_lc, limit, scale)
        if base_lc == "tinyint" and limit == 1:
            # MySQL-style boolean
            return AbstractType(TYPE_BOOLEAN, None, scale)
        if base_lc in self._aliases:
            return AbstractType(self._aliases[base_lc], limit, scale)
        if base_lc in self._unsupported:
            return AbstractType(Literal(base_lc), limit, scale)
        return AbstractType(Literal(base + affinity), limit, scale)

    def column_types(self) -> list[str]:
        """Return the supported abstract types in canonical order."""
        return list(self._supported)

    def is_valid_type(self, type_: Any) -> bool:
        """Return whether a column of this type can be created."""
        if isinstance(type_, Literal):
            return True
        return isinstance(type_, str) and type_ in self._supported

    def is_limitable(self, native_name: str) -> bool:
        """Return whether a native type may be declared with a width."""
        return native_name.upper() in LIMITABLE_TYPES
