"""DDL generation from the abstract schema model.

Each function returns SQL text; nothing here touches a database.
"""

from typing import Any

from liteshift.db.quoting import (
    quote_identifier,
    quote_qualified_name,
    quote_string,
    split_qualified_name,
)
from liteshift.errors import InvalidArgumentError, UnsupportedOperationError
from liteshift.ops.literal import Expression, Literal
from liteshift.ops.model import Column, ForeignKey, Index, Table
from liteshift.ops.types import TYPE_INTEGER, TypeMapper

# Default keywords evaluated by SQLite when a row is inserted
CURRENT_KEYWORDS = ("CURRENT_DATE", "CURRENT_TIME", "CURRENT_TIMESTAMP")

_DEFAULT_MAPPER = TypeMapper()


def default_clause(default: Any) -> str:
    """Return the DEFAULT clause for a column default, or '' for none.

    Raises:
        InvalidArgumentError: If the default is not a representable value.
    """
    if default is None:
        return ""
    if isinstance(default, bool):
        return f" DEFAULT {int(default)}"
    if isinstance(default, (int, float)):
        return f" DEFAULT {default}"
    if isinstance(default, Expression):
        return f" DEFAULT ({default})"
    if isinstance(default, Literal):
        return f" DEFAULT {quote_string(default)}"
    if isinstance(default, str):
        if default.upper() in CURRENT_KEYWORDS:
            return f" DEFAULT {default.upper()}"
        return f" DEFAULT {quote_string(default)}"
    raise InvalidArgumentError(f"Unsupported default value: {default!r}")


def _comment_clause(comment: str) -> str:
    return " /* " + comment.replace("*/", "* /") + " */"


def column_type_sql(column: Column, mapper: TypeMapper = _DEFAULT_MAPPER) -> str:
    """Return the declared type of a column, including any size.

    Raises:
        UnsupportedColumnTypeError: If the column type cannot be mapped.
    """
    if column.type is None:
        return ""

    native = mapper.to_native(column.type, column.limit)
    type_sql = native.name if isinstance(native.name, Literal) else native.name.upper()

    if native.limit is not None and mapper.is_limitable(native.name):
        type_sql += f"({native.limit})"
    elif column.precision is not None and column.scale is not None:
        type_sql += f"({column.precision},{column.scale})"
    return type_sql


def column_definition(column: Column, mapper: TypeMapper = _DEFAULT_MAPPER) -> str:
    """Convert a Column to an SQL column definition.

    Args:
        column: The column definition.
        mapper: Type mapper used for the column type.

    Returns:
        SQL column definition (e.g., "`name` VARCHAR(255) NOT NULL").
    """
    sql = quote_identifier(column.name)
    type_sql = column_type_sql(column, mapper)
    if type_sql:
        sql += f" {type_sql}"

    sql += " NOT NULL" if column.identity or not column.null else " NULL"
    sql += default_clause(column.default)
    if column.identity:
        sql += " PRIMARY KEY AUTOINCREMENT"
    if column.update:
        sql += f" ON UPDATE {column.update}"
    if column.values:
        allowed = ", ".join(quote_string(value) for value in column.values)
        sql += f" CHECK ({quote_identifier(column.name)} IN ({allowed}))"
    if column.comment:
        sql += _comment_clause(column.comment)
    return sql


def _primary_key_columns(table: Table, columns: list[Column]) -> list[str]:
    option = table.options.get("primary_key")
    if option is None:
        return []
    keys = [option] if isinstance(option, str) else list(option)
    identities = {column.name for column in columns if column.identity}
    return [key for key in keys if key not in identities]


def table_columns(table: Table) -> list[Column]:
    """Return the table's columns with the implicit identity column added.

    The ``id`` option adds an integer identity column first, named ``id``
    unless the option gives a name, and is skipped when False or when a
    column of that name is already defined.
    """
    columns = list(table.columns)
    id_option = table.options.get("id", True)
    if id_option is False or id_option is None:
        return columns

    id_name = "id" if id_option is True else str(id_option)
    if not any(column.name == id_name for column in columns):
        columns.insert(0, Column(name=id_name, type=TYPE_INTEGER, identity=True))
    return columns


def create_table_sql(table: Table, mapper: TypeMapper = _DEFAULT_MAPPER) -> str:
    """Return the CREATE TABLE statement for a table.

    Raises:
        UnsupportedOperationError: If the table has a comment.
        UnsupportedColumnTypeError: If a column type cannot be mapped.
    """
    if table.options.get("comment"):
        raise UnsupportedOperationError("SQLite does not have table comments")

    columns = table_columns(table)
    definitions = [column_definition(column, mapper) for column in columns]
    primary_key = _primary_key_columns(table, columns)
    if primary_key:
        keys = ", ".join(quote_identifier(key) for key in primary_key)
        definitions.append(f"PRIMARY KEY ({keys})")

    return f"CREATE TABLE {quote_qualified_name(table.name)} ({', '.join(definitions)})"


def rename_table_sql(table_name: str, new_name: str) -> str:
    """Rename a table; the new name stays in the table's schema."""
    return f"ALTER TABLE {quote_qualified_name(table_name)} RENAME TO {quote_identifier(new_name)}"


def drop_table_sql(table_name: str) -> str:
    return f"DROP TABLE {quote_qualified_name(table_name)}"


def truncate_table_sql(table_name: str) -> str:
    """SQLite has no TRUNCATE; delete every row instead."""
    return f"DELETE FROM {quote_qualified_name(table_name)}"


def add_column_sql(
    table_name: str, column: Column, mapper: TypeMapper = _DEFAULT_MAPPER
) -> str:
    return (
        f"ALTER TABLE {quote_qualified_name(table_name)} "
        f"ADD COLUMN {column_definition(column, mapper)}"
    )


def index_name(table_name: str, columns: list[str]) -> str:
    """Synthesize an index name from the bare table name and its columns."""
    _, table = split_qualified_name(table_name)
    return "_".join([table, *columns, "index"])


def _qualified_index(schema: str, name: str) -> str:
    if schema:
        return f"{quote_identifier(schema)}.{quote_identifier(name)}"
    return quote_identifier(name)


def add_index_sql(table_name: str, index: Index) -> str:
    """Return the CREATE INDEX statement for an index on a table.

    SQLite does not accept a qualified table name after ON, so the schema
    qualifies the index name instead.
    """
    schema, table = split_qualified_name(table_name)
    name = index.name or index_name(table_name, index.columns)
    columns = ", ".join(quote_identifier(column) for column in index.columns)
    unique = "UNIQUE " if index.unique else ""
    return (
        f"CREATE {unique}INDEX {_qualified_index(schema, name)} "
        f"ON {quote_identifier(table)} ({columns})"
    )


def drop_index_sql(schema: str, name: str) -> str:
    return f"DROP INDEX {_qualified_index(schema, name)}"


def foreign_key_clause(foreign_key: ForeignKey) -> str:
    """Return the FOREIGN KEY table constraint for a foreign key."""
    _, referenced = split_qualified_name(foreign_key.referenced_table)
    local = ", ".join(quote_identifier(column) for column in foreign_key.columns)
    remote = ", ".join(quote_identifier(column) for column in foreign_key.referenced_columns)

    sql = ""
    if foreign_key.constraint:
        sql += f"CONSTRAINT {quote_identifier(foreign_key.constraint)} "
    sql += f"FOREIGN KEY ({local}) REFERENCES {quote_identifier(referenced)} ({remote})"
    if foreign_key.on_delete:
        sql += f" ON DELETE {foreign_key.on_delete}"
    if foreign_key.on_update:
        sql += f" ON UPDATE {foreign_key.on_update}"
    return sql
