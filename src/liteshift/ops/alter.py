"""Table alterations emulated by rebuilding the table.

SQLite's ALTER TABLE cannot change a column's type, nor add or drop key
constraints. Such changes rename the table out of the way, create it
again from a patched copy of its CREATE statement, copy the rows across
and drop the renamed original.

An alteration is an ``AlterInstructions`` value: an ordered list of steps,
each receiving the state produced by the steps before it. Steps are plain
dataclasses so a planned alteration can be inspected before it runs.
No transaction is opened here; callers wanting an all-or-nothing change
wrap ``execute`` in one.

Foreign key enforcement is switched off while a table is moved aside, so
other tables' foreign keys keep naming the original table, and switched
back on afterwards. SQLite ignores ``PRAGMA foreign_keys`` inside a
transaction: callers that open one must turn enforcement off before it.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Protocol

from liteshift.db import introspection
from liteshift.db.connection import Database
from liteshift.db.quoting import ascii_lower, quote_identifier
from liteshift.errors import ForeignKeyViolationError, InvalidArgumentError
from liteshift.ops import patcher
from liteshift.ops.ddl import column_definition, foreign_key_clause
from liteshift.ops.model import Column, ForeignKey
from liteshift.ops.types import TypeMapper

logger = logging.getLogger(__name__)

State = dict[str, Any]

TMP_PREFIX = "tmp_"

# Connection settings changed while a table is rebuilt, with their values
# during the rebuild
REBUILD_PRAGMAS = {"foreign_keys": 0, "legacy_alter_table": 1}


def _set_pragmas(db: Database, pragmas: dict[str, int]) -> None:
    for name, value in pragmas.items():
        db.execute(f"PRAGMA {name} = {int(bool(value))}")


class Step(Protocol):
    """A deferred operation in an alteration."""

    def apply(self, db: Database, state: State) -> State: ...


@dataclass
class Statement:
    """Execute a literal SQL statement."""

    sql: str

    def apply(self, db: Database, state: State) -> State:
        db.execute(self.sql)
        return state


@dataclass
class CheckColumns:
    """Fail unless the table has every listed column.

    Runs before anything is changed, so a bad request leaves the schema
    untouched.
    """

    table_name: str
    columns: list[str]

    def apply(self, db: Database, state: State) -> State:
        if not introspection.has_table(db, self.table_name):
            raise InvalidArgumentError(f"The table doesn't exist: {self.table_name}")
        for column in self.columns:
            if not introspection.has_column(db, self.table_name, column):
                raise InvalidArgumentError(f"The specified column doesn't exist: {column}")
        return state


@dataclass
class EnableForeignKeys:
    """Switch on foreign key enforcement for the connection."""

    def apply(self, db: Database, state: State) -> State:
        db.execute("PRAGMA foreign_keys = ON")
        return state


@dataclass
class BeginCopy:
    """Capture the table definition and move the table aside.

    ``patch`` rewrites the captured CREATE TABLE statement; it is applied
    before the table is renamed, so a patch that fails leaves it in place.
    The secondary indexes are captured too, as renaming and dropping the
    table takes them with it. The pragmas in ``REBUILD_PRAGMAS`` are saved
    in the state under ``pragmas`` and set for the rebuild.
    """

    table_name: str
    patch: Callable[[str], str]

    def apply(self, db: Database, state: State) -> State:
        resolution = introspection.resolve_table(db, self.table_name)
        create_sql = introspection.get_declaring_sql(db, self.table_name)
        if not resolution.exists or create_sql is None:
            raise InvalidArgumentError(f"The table doesn't exist: {self.table_name}")

        new_create_sql = patcher.retarget_table_in(
            self.patch(create_sql), resolution.qualified_name
        )
        indexes = introspection.get_index_definitions(db, self.table_name)
        tmp_table = f"{TMP_PREFIX}{resolution.table}"
        saved = {name: db.fetch_value(f"PRAGMA {name}") for name in REBUILD_PRAGMAS}
        if saved["foreign_keys"] and db.in_transaction:
            logger.warning(
                "Foreign keys cannot be disabled inside a transaction; "
                "references to %s may be rewritten to %s",
                resolution.table,
                tmp_table,
            )

        # with both set, foreign keys of other tables keep the original name
        _set_pragmas(db, REBUILD_PRAGMAS)
        try:
            db.execute(
                f"ALTER TABLE {resolution.qualified_name} RENAME TO {quote_identifier(tmp_table)}"
            )
        except Exception:
            _set_pragmas(db, saved)
            raise

        return {
            **state,
            "schema": resolution.schema,
            "table": resolution.table,
            "qualified_name": resolution.qualified_name,
            "tmp_table": tmp_table,
            "tmp_table_name": introspection.qualify(resolution.schema, tmp_table),
            "create_sql": create_sql,
            "new_create_sql": new_create_sql,
            "indexes": indexes,
            "pragmas": saved,
            "renames": {},
            "dropped": [],
        }


def _tmp_columns(db: Database, state: State) -> list[dict[str, Any]]:
    return introspection.get_table_info(db, f"{state['schema']}.{state['tmp_table']}")


@dataclass
class MapColumns:
    """Pair the columns to copy, renaming or dropping one of them.

    ``new_name`` is the column's name in the rebuilt table, or None when
    the column is dropped.
    """

    column: str
    new_name: str | None

    def apply(self, db: Database, state: State) -> State:
        select_columns: list[str] = []
        write_columns: list[str] = []
        renames = dict(state.get("renames", {}))
        dropped = list(state.get("dropped", []))
        column_type = None
        found = False

        for row in _tmp_columns(db, state):
            name = row["name"]
            written: str | None = name
            if ascii_lower(name) == ascii_lower(self.column):
                found = True
                column_type = row["type"]
                written = self.new_name
                if written is None:
                    dropped.append(name)
                elif written != name:
                    renames[name] = written
            if written:
                select_columns.append(quote_identifier(name))
                write_columns.append(quote_identifier(written))

        if not found:
            raise InvalidArgumentError(f"The specified column doesn't exist: {self.column}")

        return {
            **state,
            "select_columns": select_columns,
            "write_columns": write_columns,
            "column_type": column_type,
            "renames": renames,
            "dropped": dropped,
        }


@dataclass
class MapAllColumns:
    """Copy every column unchanged."""

    def apply(self, db: Database, state: State) -> State:
        columns = [quote_identifier(row["name"]) for row in _tmp_columns(db, state)]
        return {**state, "select_columns": columns, "write_columns": list(columns)}


@dataclass
class CreateRebuilt:
    """Create the table again from the patched statement."""

    def apply(self, db: Database, state: State) -> State:
        db.execute(state["new_create_sql"])
        return state


@dataclass
class CopyAndDrop:
    """Copy rows into the rebuilt table, drop the old one, restore indexes."""

    def apply(self, db: Database, state: State) -> State:
        write = ", ".join(state["write_columns"])
        select = ", ".join(state["select_columns"])
        db.execute(
            f"INSERT INTO {state['qualified_name']} ({write}) "
            f"SELECT {select} FROM {state['tmp_table_name']}"
        )
        db.execute(f"DROP TABLE {state['tmp_table_name']}")

        for name, sql in state.get("indexes", {}).items():
            if any(patcher.index_references_column(sql, c) for c in state.get("dropped", [])):
                logger.info("Not restoring index %s on dropped column", name)
                continue
            for old, new in state.get("renames", {}).items():
                sql = patcher.rename_index_column_in(sql, old, new)
            db.execute(patcher.qualify_index_in(sql, state["schema"]))

        pragmas = state["pragmas"]
        _set_pragmas(db, pragmas)
        if pragmas["foreign_keys"]:
            _check_foreign_keys(db, state["schema"], state["table"])
        return {**state, "pragmas": {}}


def _check_foreign_keys(db: Database, schema: str, table: str) -> None:
    """Fail if any row of the schema violates a foreign key.

    Raises:
        ForeignKeyViolationError: If a violation is found.
    """
    violations = db.fetch_all(f"PRAGMA {quote_identifier(schema)}.foreign_key_check")
    if violations:
        first = violations[0]
        raise ForeignKeyViolationError(
            f"Rebuilding {table} left {len(violations)} foreign key violation(s), "
            f"first in {first['table']} referencing {first['parent']}"
        )


@dataclass
class AlterInstructions:
    """Ordered steps of an alteration, followed by literal statements."""

    steps: list[Step] = field(default_factory=list)
    statements: list[str] = field(default_factory=list)

    def add_step(self, step: Step) -> None:
        self.steps.append(step)

    def add_statement(self, sql: str) -> None:
        self.statements.append(sql)

    def merge(self, other: "AlterInstructions") -> None:
        """Append the steps and statements of ``other``."""
        self.steps.extend(other.steps)
        self.statements.extend(other.statements)

    def execute(self, db: Database) -> State:
        """Run every step in order, then every statement.

        Pragmas saved by a rebuild that did not finish are restored before
        the error propagates.

        Returns:
            The final state.
        """
        state: State = {}
        try:
            for step in self.steps:
                state = step.apply(db, state)
        finally:
            _set_pragmas(db, state.get("pragmas", {}))
        for sql in self.statements:
            db.execute(sql)
        return state


def _rebuild(
    table_name: str,
    patch: Callable[[str], str],
    mapping: Step,
    check: list[str],
) -> AlterInstructions:
    return AlterInstructions(
        steps=[
            CheckColumns(table_name, check),
            BeginCopy(table_name, patch),
            mapping,
            CreateRebuilt(),
            CopyAndDrop(),
        ]
    )


def rename_column_instructions(table_name: str, old: str, new: str) -> AlterInstructions:
    """Plan renaming a column."""
    return _rebuild(
        table_name,
        partial(patcher.rename_column_in, old=old, new=new),
        MapColumns(old, new),
        [old],
    )


def change_column_instructions(
    table_name: str,
    column_name: str,
    new_column: Column,
    mapper: TypeMapper | None = None,
) -> AlterInstructions:
    """Plan replacing a column's definition, possibly renaming it.

    Raises:
        UnsupportedColumnTypeError: If the new type cannot be mapped.
    """
    definition = column_definition(new_column, mapper or TypeMapper())
    return _rebuild(
        table_name,
        partial(patcher.retype_column_in, old=column_name, new_definition=definition),
        MapColumns(column_name, new_column.name),
        [column_name],
    )


def drop_column_instructions(table_name: str, column_name: str) -> AlterInstructions:
    """Plan dropping a column."""
    return _rebuild(
        table_name,
        partial(patcher.drop_column_in, column=column_name),
        MapColumns(column_name, None),
        [column_name],
    )


def add_primary_key_instructions(table_name: str, column_name: str) -> AlterInstructions:
    """Plan making a column the primary key."""
    return _rebuild(
        table_name,
        partial(patcher.add_primary_key_in, column=column_name),
        MapAllColumns(),
        [column_name],
    )


def drop_primary_key_instructions(table_name: str) -> AlterInstructions:
    """Plan removing the primary key."""
    return _rebuild(table_name, patcher.drop_primary_key_in, MapAllColumns(), [])


def add_foreign_key_instructions(table_name: str, foreign_key: ForeignKey) -> AlterInstructions:
    """Plan adding a foreign key; enforcement is switched on first."""
    instructions = AlterInstructions(steps=[EnableForeignKeys()])
    instructions.merge(
        _rebuild(
            table_name,
            partial(patcher.add_foreign_key_in, clause=foreign_key_clause(foreign_key)),
            MapAllColumns(),
            list(foreign_key.columns),
        )
    )
    return instructions


def drop_foreign_key_instructions(table_name: str, columns: list[str]) -> AlterInstructions:
    """Plan removing the foreign key defined over ``columns``."""
    return _rebuild(
        table_name,
        partial(patcher.drop_foreign_key_in, columns=columns),
        MapAllColumns(),
        list(columns),
    )
