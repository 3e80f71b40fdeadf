"""Liteshift CLI - inspect a database the way the migration adapter sees it.

Provides the `liteshift` command:
    liteshift tables          List user tables
    liteshift columns TABLE   Show columns as abstract types
    liteshift indexes TABLE   Show indexes and their columns
    liteshift types           Show supported column types
"""

import logging

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from liteshift.adapter import SQLiteAdapter
from liteshift.config import LiteshiftConfig
from liteshift.db.connection import Database
from liteshift.errors import LiteshiftError

console = Console()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _fail(message: str) -> None:
    click.echo(f"Error: {message}", err=True)
    raise SystemExit(1)


def _adapter(ctx: click.Context) -> SQLiteAdapter:
    """Return an adapter for the selected database, which must exist."""
    db: Database = ctx.obj["db"]
    if not db.memory and not db.path.exists():
        _fail(f"Database not found: {db.path}")
    return SQLiteAdapter(db)


def _format_default(value: object) -> str:
    return "" if value is None else repr(value)


@click.group()
@click.option("--name", help="Database name, without suffix")
@click.option("--suffix", help="Database file suffix")
@click.option("--memory", is_flag=True, help="Use an in-memory database")
@click.option("-v", "--verbose", is_flag=True, help="Log executed SQL")
@click.pass_context
def cli(
    ctx: click.Context,
    name: str | None,
    suffix: str | None,
    memory: bool,
    verbose: bool,
) -> None:
    """Liteshift - SQLite schema migration adapter.

    Options not given fall back to LITESHIFT_* environment variables, then
    to $LITESHIFT_HOME/config.toml.
    """
    _configure_logging(verbose)
    ctx.ensure_object(dict)

    try:
        config = LiteshiftConfig.load()
    except ValueError as e:
        _fail(f"Invalid configuration: {e}")

    ctx.obj["db"] = Database(
        name=name if name is not None else config.name,
        suffix=suffix if suffix is not None else config.suffix,
        memory=memory or config.memory,
    )


@cli.command()
@click.pass_context
def tables(ctx: click.Context) -> None:
    """List the user tables of the database."""
    adapter = _adapter(ctx)
    try:
        names = adapter.list_tables()
    except LiteshiftError as e:
        _fail(str(e))

    if not names:
        click.echo("No user tables found")
        return
    for table_name in names:
        click.echo(table_name)


@cli.command()
@click.argument("table")
@click.pass_context
def columns(ctx: click.Context, table: str) -> None:
    """Show the columns of TABLE as the adapter reads them."""
    adapter = _adapter(ctx)
    if not adapter.has_table(table):
        _fail(f"Table not found: {table}")

    output = Table(title=table)
    for heading in ("name", "type", "limit", "null", "default", "identity"):
        output.add_column(heading)

    for column in adapter.get_columns(table):
        output.add_row(
            column.name,
            "" if column.type is None else str(column.type),
            "" if column.limit is None else str(column.limit),
            "yes" if column.null else "no",
            _format_default(column.default),
            "yes" if column.identity else "",
        )
    console.print(output)


@cli.command()
@click.argument("table")
@click.pass_context
def indexes(ctx: click.Context, table: str) -> None:
    """Show the indexes of TABLE with their columns."""
    adapter = _adapter(ctx)
    if not adapter.has_table(table):
        _fail(f"Table not found: {table}")

    found = adapter.get_indexes(table)
    if not found:
        click.echo("No indexes")
        return
    for index_name, index_columns in found.items():
        click.echo(f"{index_name}: {', '.join(index_columns)}")


@cli.command()
def types() -> None:
    """Show the supported column types and their SQLite spellings."""
    adapter = SQLiteAdapter(Database(memory=True))
    for type_ in adapter.get_column_types():
        click.echo(f"{type_}: {adapter.get_sql_type(type_).name}")


def main() -> None:
    """Entry point for the liteshift CLI."""
    cli()


if __name__ == "__main__":
    main()
