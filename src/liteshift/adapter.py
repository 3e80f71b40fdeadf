"""SQLite migration adapter.

Single entry point for migration code: reads the schema back into the
abstract model, and creates or alters tables, columns, indexes and keys.
Changes SQLite cannot make with ALTER TABLE are carried out by rebuilding
the table (see ``liteshift.ops.alter``).
"""

import logging
import sqlite3
from typing import Any

from liteshift.config import LiteshiftConfig
from liteshift.db import introspection
from liteshift.db.connection import Database, Row
from liteshift.db.quoting import ascii_lower, quote_identifier, quote_qualified_name
from liteshift.errors import InvalidArgumentError, UnsupportedOperationError
from liteshift.ops import alter, ddl
from liteshift.ops.alter import AlterInstructions
from liteshift.ops.model import Column, ForeignKey, Index, Table
from liteshift.ops.types import AbstractType, NativeType, TypeMapper

logger = logging.getLogger(__name__)

AUTOINDEX_PREFIX = "sqlite_autoindex_"


class SQLiteAdapter:
    """Schema migration operations against one SQLite database.

    Not safe for concurrent use; give each thread its own adapter.
    """

    def __init__(self, db: Database, mapper: TypeMapper | None = None) -> None:
        self.db = db
        self.mapper = mapper or TypeMapper()

    @classmethod
    def from_config(cls, config: LiteshiftConfig | None = None) -> "SQLiteAdapter":
        """Create an adapter for the configured database."""
        return cls(Database.from_config(config or LiteshiftConfig.load()))

    # Connection

    def connect(self) -> None:
        self.db.connect()

    def disconnect(self) -> None:
        self.db.disconnect()

    def execute(self, sql: str, params: tuple = ()) -> None:
        self.db.execute(sql, params)

    def query(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        return self.db.query(sql, params)

    def fetch_all(self, sql: str, params: tuple = ()) -> list[Row]:
        return self.db.fetch_all(sql, params)

    def has_transactions(self) -> bool:
        return self.db.has_transactions()

    def begin_transaction(self) -> None:
        self.db.begin_transaction()

    def commit_transaction(self) -> None:
        self.db.commit_transaction()

    def rollback_transaction(self) -> None:
        self.db.rollback_transaction()

    def database_version_at_least(self, version: str) -> bool:
        return self.db.version_at_least(version)

    def create_database(self, name: str) -> None:
        self.db.create_database(name)

    def has_database(self, name: str) -> bool:
        return self.db.has_database(name)

    def drop_database(self, name: str) -> None:
        self.db.drop_database(name)

    # Quoting and types

    def quote_table_name(self, name: str) -> str:
        return quote_qualified_name(name)

    def quote_column_name(self, name: str) -> str:
        return quote_identifier(name)

    def get_column_types(self) -> list[str]:
        return self.mapper.column_types()

    def get_sql_type(self, type_: str, limit: int | None = None) -> NativeType:
        return self.mapper.to_native(type_, limit)

    def get_abstract_type(self, native: str | None) -> AbstractType:
        return self.mapper.to_abstract(native)

    def is_valid_column_type(self, column: Column | Any) -> bool:
        """Return whether a column (or a bare type) can be created."""
        type_ = column.type if isinstance(column, Column) else column
        return self.mapper.is_valid_type(type_)

    # Introspection

    def has_table(self, table_name: str) -> bool:
        return introspection.has_table(self.db, table_name)

    def list_tables(self, schema: str = introspection.MAIN_SCHEMA) -> list[str]:
        return introspection.list_tables(self.db, schema)

    def get_columns(self, table_name: str) -> list[Column]:
        return introspection.get_columns(self.db, table_name, self.mapper)

    def has_column(self, table_name: str, column_name: str) -> bool:
        return introspection.has_column(self.db, table_name, column_name)

    def get_primary_key(self, table_name: str) -> list[str]:
        return introspection.get_primary_key(self.db, table_name)

    def has_primary_key(
        self, table_name: str, columns: str | list[str], constraint: str | None = None
    ) -> bool:
        return introspection.has_primary_key(self.db, table_name, columns, constraint)

    def get_foreign_keys(self, table_name: str) -> dict[int, list[str]]:
        return introspection.get_foreign_keys(self.db, table_name)

    def has_foreign_key(
        self, table_name: str, columns: str | list[str], constraint: str | None = None
    ) -> bool:
        return introspection.has_foreign_key(self.db, table_name, columns, constraint)

    def get_indexes(self, table_name: str) -> dict[str, list[str]]:
        return introspection.get_indexes(self.db, table_name)

    def has_index(self, table_name: str, columns: str | list[str]) -> bool:
        return introspection.has_index(self.db, table_name, columns)

    def has_index_by_name(self, table_name: str, index_name: str) -> bool:
        return introspection.has_index_by_name(self.db, table_name, index_name)

    def resolve_identity(self, table_name: str) -> str | None:
        return introspection.resolve_identity(self.db, table_name)

    # Tables

    def create_table(self, table: Table, indexes: list[Index] | None = None) -> None:
        """Create a table and its indexes.

        Raises:
            UnsupportedOperationError: If the table has a comment.
            UnsupportedColumnTypeError: If a column type cannot be mapped.
        """
        sql = ddl.create_table_sql(table, self.mapper)
        logger.info("Creating table %s", table.name)
        self.db.execute(sql)
        for index in indexes or []:
            self.add_index(table.name, index)

    def rename_table(self, table_name: str, new_name: str) -> None:
        logger.info("Renaming table %s to %s", table_name, new_name)
        self.db.execute(ddl.rename_table_sql(table_name, new_name))

    def drop_table(self, table_name: str) -> None:
        logger.info("Dropping table %s", table_name)
        self.db.execute(ddl.drop_table_sql(table_name))

    def truncate_table(self, table_name: str) -> None:
        """Delete every row and restart the table's AUTOINCREMENT counter."""
        self.db.execute(ddl.truncate_table_sql(table_name))

        resolution = introspection.resolve_table(self.db, table_name)
        outcome, _ = introspection.probe_namespace(
            self.db, resolution.schema, "sqlite_sequence"
        )
        if outcome is introspection.NamespaceProbe.FOUND:
            self.db.execute(
                f"DELETE FROM {quote_identifier(resolution.schema)}.sqlite_sequence "
                "WHERE name = ?",
                (resolution.table,),
            )

    def change_comment(self, table_name: str, comment: str | None) -> None:
        raise UnsupportedOperationError("SQLite does not have table comments")

    # Columns

    def add_column(self, table_name: str, column: Column) -> None:
        logger.info("Adding column %s to %s", column.name, table_name)
        self.db.execute(ddl.add_column_sql(table_name, column, self.mapper))

    def rename_column(self, table_name: str, column_name: str, new_name: str) -> None:
        logger.info("Renaming column %s.%s to %s", table_name, column_name, new_name)
        self.execute_instructions(
            alter.rename_column_instructions(table_name, column_name, new_name)
        )

    def change_column(self, table_name: str, column_name: str, new_column: Column) -> None:
        logger.info("Changing column %s.%s", table_name, column_name)
        self.execute_instructions(
            alter.change_column_instructions(table_name, column_name, new_column, self.mapper)
        )

    def drop_column(self, table_name: str, column_name: str) -> None:
        logger.info("Dropping column %s.%s", table_name, column_name)
        self.execute_instructions(alter.drop_column_instructions(table_name, column_name))

    # Indexes

    def add_index(self, table_name: str, index: Index) -> None:
        logger.info("Adding index on %s (%s)", table_name, ", ".join(index.columns))
        self.db.execute(ddl.add_index_sql(table_name, index))

    def drop_index(self, table_name: str, columns: str | list[str]) -> None:
        """Drop every index over exactly these columns.

        Indexes SQLite owns for UNIQUE and PRIMARY KEY constraints are kept.
        """
        schema = introspection.resolve_table(self.db, table_name).schema
        for name in introspection.resolve_index(self.db, table_name, columns):
            if name.startswith(AUTOINDEX_PREFIX):
                continue
            logger.info("Dropping index %s", name)
            self.db.execute(ddl.drop_index_sql(schema, name))

    def drop_index_by_name(self, table_name: str, index_name: str) -> None:
        """Drop the table's index of this name; do nothing if there is none."""
        schema = introspection.resolve_table(self.db, table_name).schema
        wanted = ascii_lower(index_name)
        name = next((n for n in self.get_indexes(table_name) if ascii_lower(n) == wanted), None)
        if name is None:
            logger.debug("No index %s on %s", index_name, table_name)
            return
        logger.info("Dropping index %s", name)
        self.db.execute(ddl.drop_index_sql(schema, name))

    # Keys

    def add_foreign_key(self, table_name: str, foreign_key: ForeignKey) -> None:
        logger.info("Adding foreign key on %s (%s)", table_name, ", ".join(foreign_key.columns))
        self.execute_instructions(alter.add_foreign_key_instructions(table_name, foreign_key))

    def drop_foreign_key(
        self, table_name: str, columns: str | list[str], constraint: str | None = None
    ) -> None:
        """Drop the foreign key over ``columns``.

        Raises:
            UnsupportedOperationError: If a constraint name is given; SQLite
                does not keep foreign key names.
            InvalidArgumentError: If no foreign key covers the columns.
        """
        if constraint is not None:
            raise UnsupportedOperationError("SQLite does not have named foreign keys")
        if isinstance(columns, str):
            columns = [columns]
        if not self.has_foreign_key(table_name, columns):
            raise InvalidArgumentError(
                f"No foreign key on {table_name} ({', '.join(columns)})"
            )
        logger.info("Dropping foreign key on %s (%s)", table_name, ", ".join(columns))
        self.execute_instructions(alter.drop_foreign_key_instructions(table_name, columns))

    def change_primary_key(self, table_name: str, new_columns: str | list[str] | None) -> None:
        """Replace the primary key with one on a single column.

        The existing key is dropped whole, whatever its columns. None or an
        empty list only drops it.

        Raises:
            InvalidArgumentError: If more than one column is given, or the
                column does not exist. Nothing is changed in that case.
        """
        if isinstance(new_columns, list):
            if len(new_columns) > 1:
                raise InvalidArgumentError(
                    "SQLite can only add a primary key on a single column"
                )
            new_columns = new_columns[0] if new_columns else None
        if new_columns is not None and not isinstance(new_columns, str):
            raise InvalidArgumentError("The primary key column must be a string")
        if new_columns is not None and not self.has_column(table_name, new_columns):
            raise InvalidArgumentError(f"The specified column doesn't exist: {new_columns}")

        instructions = AlterInstructions()
        if self.get_primary_key(table_name):
            instructions.merge(alter.drop_primary_key_instructions(table_name))
        if new_columns is not None:
            instructions.merge(alter.add_primary_key_instructions(table_name, new_columns))

        logger.info("Changing primary key of %s to %s", table_name, new_columns)
        self.execute_instructions(instructions)

    def execute_instructions(self, instructions: AlterInstructions) -> None:
        """Run a planned alteration."""
        instructions.execute(self.db)
