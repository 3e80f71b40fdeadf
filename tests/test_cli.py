"""Tests for the liteshift CLI."""

from pathlib import Path

import pytest
from click.testing import CliRunner

from liteshift.cli import cli
from liteshift.db.connection import Database


@pytest.fixture
def runner() -> CliRunner:
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture
def env(tmp_path: Path) -> dict[str, str | None]:
    """Environment pointing LITESHIFT_HOME at an empty directory."""
    return {
        "LITESHIFT_HOME": str(tmp_path / "home"),
        "LITESHIFT_NAME": None,
        "LITESHIFT_SUFFIX": None,
        "LITESHIFT_MEMORY": None,
    }


@pytest.fixture
def db_name(tmp_path: Path) -> str:
    """Create a database file with one table and return its name."""
    name = str(tmp_path / "app")
    db = Database(name=name)
    db.execute(
        "CREATE TABLE users (id INTEGER PRIMARY KEY AUTOINCREMENT, "
        "email varchar(100) NOT NULL, active boolean_integer DEFAULT 1)"
    )
    db.execute("CREATE UNIQUE INDEX users_email ON users (email)")
    db.disconnect()
    return name


class TestCLIHelp:
    """Test CLI help output."""

    def test_main_help(self, runner: CliRunner) -> None:
        """Main command shows help."""
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "Liteshift" in result.output
        assert "tables" in result.output
        assert "columns" in result.output
        assert "indexes" in result.output

    def test_columns_help(self, runner: CliRunner) -> None:
        """Columns command has help."""
        result = runner.invoke(cli, ["columns", "--help"])
        assert result.exit_code == 0
        assert "TABLE" in result.output


class TestTablesCommand:
    """Test liteshift tables."""

    def test_lists_tables(self, runner: CliRunner, env: dict, db_name: str) -> None:
        """User tables are listed, internal ones are not."""
        result = runner.invoke(cli, ["--name", db_name, "tables"], env=env)
        assert result.exit_code == 0
        assert result.output.splitlines() == ["users"]

    def test_memory_database(self, runner: CliRunner, env: dict) -> None:
        """A fresh in-memory database has no tables."""
        result = runner.invoke(cli, ["--memory", "tables"], env=env)
        assert result.exit_code == 0
        assert "No user tables found" in result.output

    def test_missing_database(self, runner: CliRunner, env: dict, tmp_path: Path) -> None:
        """A missing database file is an error."""
        result = runner.invoke(cli, ["--name", str(tmp_path / "nope"), "tables"], env=env)
        assert result.exit_code == 1
        assert "Database not found" in result.output

    def test_name_from_environment(
        self, runner: CliRunner, env: dict, db_name: str
    ) -> None:
        """The database name falls back to LITESHIFT_NAME."""
        result = runner.invoke(cli, ["tables"], env={**env, "LITESHIFT_NAME": db_name})
        assert result.exit_code == 0
        assert "users" in result.output


class TestColumnsCommand:
    """Test liteshift columns."""

    def test_columns(self, runner: CliRunner, env: dict, db_name: str) -> None:
        """Columns are shown with abstract types."""
        result = runner.invoke(cli, ["--name", db_name, "columns", "users"], env=env)
        assert result.exit_code == 0
        assert "email" in result.output
        assert "string" in result.output
        assert "boolean" in result.output
        assert "True" in result.output

    def test_missing_table(self, runner: CliRunner, env: dict, db_name: str) -> None:
        """Unknown tables are an error."""
        result = runner.invoke(cli, ["--name", db_name, "columns", "nope"], env=env)
        assert result.exit_code == 1
        assert "Table not found: nope" in result.output


class TestIndexesCommand:
    """Test liteshift indexes."""

    def test_indexes(self, runner: CliRunner, env: dict, db_name: str) -> None:
        """Indexes are listed with their columns."""
        result = runner.invoke(cli, ["--name", db_name, "indexes", "users"], env=env)
        assert result.exit_code == 0
        assert "users_email: email" in result.output

    def test_no_indexes(self, runner: CliRunner, env: dict, db_name: str) -> None:
        """Tables without indexes say so."""
        db = Database(name=db_name)
        db.execute("CREATE TABLE plain (a text)")
        db.disconnect()

        result = runner.invoke(cli, ["--name", db_name, "indexes", "plain"], env=env)
        assert result.exit_code == 0
        assert "No indexes" in result.output


class TestTypesCommand:
    """Test liteshift types."""

    def test_types(self, runner: CliRunner, env: dict) -> None:
        """Every supported type is shown with its SQLite name."""
        result = runner.invoke(cli, ["types"], env=env)
        assert result.exit_code == 0
        assert "string: varchar" in result.output
        assert "boolean: boolean_integer" in result.output
