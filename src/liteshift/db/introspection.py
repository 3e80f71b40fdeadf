"""Schema introspection for SQLite databases.

Locates tables across the main, temp and attached databases of a
connection and reads their columns, keys and indexes back into the
abstract model.

Name comparisons fold ASCII case only (see ``ascii_lower``).
"""

import logging
import sqlite3
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from liteshift.db.connection import Database, Row
from liteshift.db.quoting import ascii_lower, quote_identifier, split_qualified_name
from liteshift.errors import InvalidArgumentError, MetadataQueryError
from liteshift.ops import tokens
from liteshift.ops.defaults import parse_default_value
from liteshift.ops.model import Column
from liteshift.ops.types import TypeMapper

logger = logging.getLogger(__name__)

# Names under which SQLite exposes the row ID, unless a column shadows them
ROWID_ALIASES = ("_rowid_", "rowid", "oid")

TEMP_SCHEMA = "temp"
MAIN_SCHEMA = "main"


def _lower_all(names: Iterable[str]) -> list[str]:
    return [ascii_lower(name) for name in names]


class NamespaceProbe(Enum):
    """Outcome of looking for a table in one database of the connection."""

    FOUND = "found"
    NOT_FOUND = "not_found"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class SchemaName:
    """A table name split into schema and table parts.

    ``schema`` is empty when the name is unqualified.
    """

    schema: str
    table: str


@dataclass(frozen=True)
class TableResolution:
    """Where a table lives, or the schema it would be created in.

    Attributes:
        schema: Schema the table was found in, else the default schema.
        exists: Whether the table was found.
        table: The table name as stored in the catalog when found,
            otherwise as requested.
    """

    schema: str
    exists: bool
    table: str

    @property
    def qualified_name(self) -> str:
        """Return the quoted ``schema.table`` reference."""
        return qualify(self.schema, self.table)


def qualify(schema: str, table: str) -> str:
    """Return a quoted reference to ``table``, qualified when a schema is given."""
    if schema:
        return f"{quote_identifier(schema)}.{quote_identifier(table)}"
    return quote_identifier(table)


def parse_schema_name(name: str) -> SchemaName:
    """Split a possibly qualified table name into its parts."""
    schema, table = split_qualified_name(name)
    return SchemaName(schema=schema, table=table)


def _catalog(schema: str) -> str:
    if ascii_lower(schema) == TEMP_SCHEMA:
        return "sqlite_temp_master"
    return f"{quote_identifier(schema)}.sqlite_master"


def _query_catalog(db: Database, schema: str, sql: str, params: tuple = ()) -> list[Row]:
    """Run ``sql`` with ``{catalog}`` replaced by the schema's catalog table.

    Raises:
        MetadataQueryError: If the catalog cannot be read, typically because
            the schema is not attached.
    """
    try:
        return db.fetch_all(sql.format(catalog=_catalog(schema)), params)
    except sqlite3.OperationalError as e:
        raise MetadataQueryError(f"Cannot read catalog of schema '{schema}': {e}") from e


def probe_namespace(db: Database, schema: str, table: str) -> tuple[NamespaceProbe, str]:
    """Look for ``table`` in a single schema.

    Returns:
        Tuple of (probe outcome, stored table name). The name is the
        requested one unless the table was found.
    """
    try:
        rows = _query_catalog(
            db,
            schema,
            "SELECT name FROM {catalog} WHERE type = 'table' AND lower(name) = ?",
            (ascii_lower(table),),
        )
    except MetadataQueryError as e:
        logger.debug("%s", e)
        return NamespaceProbe.UNAVAILABLE, table

    wanted = ascii_lower(table)
    for row in rows:
        if ascii_lower(row["name"]) == wanted:
            return NamespaceProbe.FOUND, row["name"]
    return NamespaceProbe.NOT_FOUND, table


def list_schemas(db: Database) -> list[str]:
    """Return the names of the databases attached to the connection."""
    return [row["name"] for row in db.fetch_all("PRAGMA database_list")]


def resolve_table(db: Database, name: str) -> TableResolution:
    """Find the schema holding a table.

    A qualified name is looked up in its schema only. An unqualified name
    is looked up in the temp schema first, then in every other attached
    database in catalog order; if it is not found the default is main.

    Args:
        db: Database to search.
        name: Table name, optionally qualified as ``schema.table``.

    Returns:
        The resolution; schemas that cannot be read count as not found.
    """
    parsed = parse_schema_name(name)
    if parsed.schema:
        candidates = [parsed.schema]
        default = parsed.schema
    else:
        candidates = [TEMP_SCHEMA]
        candidates += [s for s in list_schemas(db) if ascii_lower(s) != TEMP_SCHEMA]
        default = MAIN_SCHEMA

    for schema in candidates:
        outcome, stored = probe_namespace(db, schema, parsed.table)
        if outcome is NamespaceProbe.FOUND:
            return TableResolution(schema=schema, exists=True, table=stored)

    return TableResolution(schema=default, exists=False, table=parsed.table)


def has_table(db: Database, name: str) -> bool:
    """Return whether the table exists in any attached database."""
    return resolve_table(db, name).exists


def list_tables(db: Database, schema: str = MAIN_SCHEMA) -> list[str]:
    """Return the user tables of a schema, sorted by name.

    Excludes SQLite's internal tables (sqlite_*).
    """
    rows = _query_catalog(
        db,
        schema,
        """
        SELECT name FROM {catalog}
        WHERE type = 'table'
        AND name NOT LIKE 'sqlite\\_%' ESCAPE '\\'
        ORDER BY name
        """,
    )
    return [row["name"] for row in rows]


def get_declaring_sql(db: Database, table_name: str) -> str | None:
    """Return the CREATE TABLE statement stored for a table."""
    resolution = resolve_table(db, table_name)
    if not resolution.exists:
        return None
    rows = _query_catalog(
        db,
        resolution.schema,
        "SELECT sql FROM {catalog} WHERE type = 'table' AND name = ?",
        (resolution.table,),
    )
    return rows[0]["sql"] if rows else None


def get_index_definitions(db: Database, table_name: str) -> dict[str, str]:
    """Return the CREATE INDEX statements of a table's explicit indexes.

    Indexes SQLite creates for UNIQUE and PRIMARY KEY constraints have no
    stored statement and are not included.
    """
    resolution = resolve_table(db, table_name)
    if not resolution.exists:
        return {}
    rows = _query_catalog(
        db,
        resolution.schema,
        """
        SELECT name, sql FROM {catalog}
        WHERE type = 'index' AND tbl_name = ? AND sql IS NOT NULL
        ORDER BY name
        """,
        (resolution.table,),
    )
    return {row["name"]: row["sql"] for row in rows}


def _pragma(db: Database, resolution: TableResolution, pragma: str, argument: str) -> list[Row]:
    return db.fetch_all(
        f"PRAGMA {quote_identifier(resolution.schema)}.{pragma}({quote_identifier(argument)})"
    )


def get_table_info(db: Database, table_name: str, pragma: str = "table_info") -> list[Row]:
    """Run a table pragma against the schema holding the table.

    Returns:
        The pragma rows, or an empty list if the table does not exist.
    """
    resolution = resolve_table(db, table_name)
    if not resolution.exists:
        return []
    return _pragma(db, resolution, pragma, resolution.table)


def get_columns(db: Database, table_name: str, mapper: TypeMapper | None = None) -> list[Column]:
    """Read a table's columns into the abstract model.

    Args:
        db: Database to read from.
        table_name: Table name, optionally qualified.
        mapper: Type mapper for native declarations.

    Returns:
        Columns in declaration order.
    """
    mapper = mapper or TypeMapper()
    identity = resolve_identity(db, table_name)

    columns: list[Column] = []
    for row in get_table_info(db, table_name):
        abstract = mapper.to_abstract(row["type"])
        columns.append(
            Column(
                name=row["name"],
                type=abstract.name,
                null=row["notnull"] == 0,
                default=parse_default_value(row["dflt_value"], abstract.name),
                limit=abstract.limit,
                precision=abstract.limit if abstract.scale is not None else None,
                scale=abstract.scale,
                identity=row["name"] == identity,
            )
        )
    return columns


def has_column(db: Database, table_name: str, column_name: str) -> bool:
    """Return whether the table has a column, ignoring ASCII case."""
    wanted = ascii_lower(column_name)
    return any(ascii_lower(row["name"]) == wanted for row in get_table_info(db, table_name))


def get_primary_key(db: Database, table_name: str) -> list[str]:
    """Return the primary key columns in key order."""
    rows = [row for row in get_table_info(db, table_name) if row["pk"] > 0]
    return [row["name"] for row in sorted(rows, key=lambda row: row["pk"])]


def _reject_named_constraint(constraint: str | None) -> None:
    if constraint is not None:
        raise InvalidArgumentError("SQLite does not support named constraints.")


def has_primary_key(
    db: Database,
    table_name: str,
    columns: str | list[str],
    constraint: str | None = None,
) -> bool:
    """Return whether the primary key consists of exactly these columns.

    Order, ASCII case and repeated names are ignored.

    Raises:
        InvalidArgumentError: If a constraint name is given.
    """
    _reject_named_constraint(constraint)
    if isinstance(columns, str):
        columns = [columns]
    return set(_lower_all(columns)) == set(_lower_all(get_primary_key(db, table_name)))


def get_foreign_keys(db: Database, table_name: str) -> dict[int, list[str]]:
    """Return the local columns of each foreign key, keyed by constraint id."""
    foreign_keys: dict[int, list[tuple[int, str]]] = {}
    for row in get_table_info(db, table_name, "foreign_key_list"):
        foreign_keys.setdefault(row["id"], []).append((row["seq"], row["from"]))
    return {
        key_id: [name for _, name in sorted(parts)] for key_id, parts in foreign_keys.items()
    }


def has_foreign_key(
    db: Database,
    table_name: str,
    columns: str | list[str],
    constraint: str | None = None,
) -> bool:
    """Return whether a foreign key is defined over exactly these columns.

    Order, ASCII case and repeated names are ignored.

    Raises:
        InvalidArgumentError: If a constraint name is given.
    """
    _reject_named_constraint(constraint)
    if isinstance(columns, str):
        columns = [columns]
    wanted = set(_lower_all(columns))
    return any(
        set(_lower_all(key_columns)) == wanted
        for key_columns in get_foreign_keys(db, table_name).values()
    )


def get_indexes(db: Database, table_name: str) -> dict[str, list[str]]:
    """Return each index of a table with its columns in index order.

    Expression columns are reported as empty strings.
    """
    resolution = resolve_table(db, table_name)
    if not resolution.exists:
        return {}

    indexes: dict[str, list[str]] = {}
    for index in _pragma(db, resolution, "index_list", resolution.table):
        info = sorted(
            _pragma(db, resolution, "index_info", index["name"]),
            key=lambda row: row["seqno"],
        )
        indexes[index["name"]] = [row["name"] or "" for row in info]
    return indexes


def resolve_index(db: Database, table_name: str, columns: str | list[str]) -> list[str]:
    """Return the names of indexes over exactly these columns in this order.

    Repeated names are significant: ``["a", "a"]`` does not match an index
    on ``a`` alone.
    """
    if isinstance(columns, str):
        columns = [columns]
    wanted = _lower_all(columns)
    return [
        name
        for name, index_columns in get_indexes(db, table_name).items()
        if _lower_all(index_columns) == wanted
    ]


def has_index(db: Database, table_name: str, columns: str | list[str]) -> bool:
    """Return whether an index covers exactly these columns in this order."""
    return bool(resolve_index(db, table_name, columns))


def has_index_by_name(db: Database, table_name: str, index_name: str) -> bool:
    """Return whether the table has an index of this name, ignoring ASCII case."""
    wanted = ascii_lower(index_name)
    return any(ascii_lower(name) == wanted for name in get_indexes(db, table_name))


def declares_without_rowid(create_sql: str) -> bool:
    """Return whether a CREATE TABLE statement declares WITHOUT ROWID.

    Only the table options after the column definitions are examined, so
    the words appearing in names, strings or comments do not count.
    """
    toks = tokens.significant(tokens.tokenize(create_sql))
    open_index = next((i for i, tok in enumerate(toks) if tok.is_punct("(")), None)
    if open_index is None:
        return False
    close_index = tokens.matching_paren(toks, open_index)
    if close_index is None:
        return False

    options = toks[close_index + 1 :]
    return any(
        first.is_keyword("WITHOUT") and second.is_keyword("ROWID")
        for first, second in zip(options, options[1:])
    )


def resolve_identity(db: Database, table_name: str) -> str | None:
    """Return the column aliasing the table's row ID, if any.

    Only a single-column primary key declared with type ``INTEGER``
    becomes an alias for the row ID, and not when the key is declared
    descending (which SQLite backs with a separate index) or when the
    table is a WITHOUT ROWID table.
    """
    resolution = resolve_table(db, table_name)
    if not resolution.exists:
        return None

    free_aliases = list(ROWID_ALIASES)
    candidate: str | None = None
    for row in _pragma(db, resolution, "table_info", resolution.table):
        lowered = ascii_lower(row["name"])
        if lowered in free_aliases:
            free_aliases.remove(lowered)
        if row["pk"] > 1:
            # composite key
            return None
        if row["pk"] == 0:
            continue
        if ascii_lower(row["type"]) != "integer":
            return None
        candidate = row["name"]

    if candidate is None:
        return None

    for index in _pragma(db, resolution, "index_list", resolution.table):
        if index["origin"] == "pk":
            return None

    if free_aliases:
        try:
            db.fetch_value(f"SELECT count({free_aliases[0]}) FROM {resolution.qualified_name}")
        except sqlite3.OperationalError:
            return None
    else:
        sql = get_declaring_sql(db, table_name)
        if sql is not None and declares_without_rowid(sql):
            return None

    return candidate
