"""Database connection manager for liteshift.

Wraps a single sqlite3 connection with lazy connection, explicit
transaction control and the database-file housekeeping used by migrations.
A Database is not safe to share between threads.
"""

import logging
import sqlite3
from collections.abc import Generator, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from liteshift.config import DEFAULT_SUFFIX, LiteshiftConfig, normalize_suffix
from liteshift.errors import ConnectionFailureError

logger = logging.getLogger(__name__)

Row = dict[str, Any]


class Database:
    """SQLite connection manager with transaction support.

    The connection is opened on first use and runs in autocommit mode;
    transactions are demarcated explicitly by the caller.
    """

    def __init__(
        self,
        name: str = "liteshift",
        suffix: str = DEFAULT_SUFFIX,
        memory: bool = False,
    ) -> None:
        """Initialize database settings.

        Args:
            name: Base name of the database file.
            suffix: File extension; a leading dot is added unless empty.
            memory: Use an in-memory database.
        """
        self._name = name
        self._suffix = normalize_suffix(suffix)
        self._memory = memory
        self._connection: sqlite3.Connection | None = None

    @classmethod
    def from_config(cls, config: LiteshiftConfig) -> "Database":
        """Create a Database from loaded configuration."""
        return cls(name=config.name, suffix=config.suffix, memory=config.memory)

    @property
    def suffix(self) -> str:
        """Return the normalized file suffix."""
        return self._suffix

    @property
    def memory(self) -> bool:
        """Return whether the database lives in memory."""
        return self._memory

    @property
    def path(self) -> Path:
        """Return the database file path."""
        if self._memory:
            return Path(":memory:")
        return Path(f"{self._name}{self._suffix}")

    @property
    def connection(self) -> sqlite3.Connection:
        """Return the open connection, connecting if necessary."""
        if self._connection is None:
            self.connect()
        assert self._connection is not None
        return self._connection

    def connect(self) -> None:
        """Open the connection if it is not already open.

        Raises:
            ConnectionFailureError: If SQLite cannot open the database.
        """
        if self._connection is not None:
            return

        target = ":memory:" if self._memory else str(self.path)
        try:
            conn = sqlite3.connect(target, isolation_level=None)
        except sqlite3.Error as e:
            raise ConnectionFailureError(
                f"There was a problem connecting to the database: {e}"
            ) from e

        conn.row_factory = sqlite3.Row
        self._connection = conn
        logger.debug("Connected to %s", target)

    def disconnect(self) -> None:
        """Close and forget the connection; the next call reconnects."""
        if self._connection is not None:
            self._connection.close()
            self._connection = None

    def execute(self, sql: str, params: Sequence[Any] = ()) -> None:
        """Execute a statement, discarding any result rows."""
        logger.debug("Executing: %s", sql)
        self.connection.execute(sql, params)

    def query(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        """Execute a statement and return its cursor."""
        logger.debug("Querying: %s", sql)
        return self.connection.execute(sql, params)

    def fetch_all(self, sql: str, params: Sequence[Any] = ()) -> list[Row]:
        """Execute a statement and return all rows as dictionaries."""
        return [dict(row) for row in self.query(sql, params).fetchall()]

    def fetch_value(self, sql: str, params: Sequence[Any] = ()) -> Any:
        """Return the first column of the first row, or None if no rows."""
        row = self.query(sql, params).fetchone()
        return None if row is None else row[0]

    def has_transactions(self) -> bool:
        """SQLite supports transactions, including for DDL."""
        return True

    @property
    def in_transaction(self) -> bool:
        """Return whether a transaction is open on the connection."""
        return self.connection.in_transaction

    def begin_transaction(self) -> None:
        """Begin a transaction."""
        self.execute("BEGIN")

    def commit_transaction(self) -> None:
        """Commit the current transaction."""
        self.execute("COMMIT")

    def rollback_transaction(self) -> None:
        """Roll back the current transaction."""
        self.execute("ROLLBACK")

    @contextmanager
    def transaction(self) -> Generator[None]:
        """Context manager wrapping the block in a transaction.

        Commits on successful exit, rolls back on exception.
        """
        self.begin_transaction()
        try:
            yield
            self.commit_transaction()
        except Exception:
            self.rollback_transaction()
            raise

    def version_at_least(self, version: str) -> bool:
        """Return whether the SQLite library is at least ``version``.

        Args:
            version: Dotted version string, e.g. '3.28.0'.
        """
        wanted = [int(part) for part in version.split(".")]
        actual = [int(part) for part in self.fetch_value("SELECT sqlite_version()").split(".")]
        actual += [0] * (len(wanted) - len(actual))

        for have, want in zip(actual, wanted):
            if have != want:
                return have > want
        return True

    def _file_for(self, name: str) -> Path:
        return Path(f"{name}{self._suffix}")

    def create_database(self, name: str) -> None:
        """Create an empty database file for ``name``."""
        path = self._file_for(name)
        if path.parent.name:
            path.parent.mkdir(parents=True, exist_ok=True)
        path.touch()

    def has_database(self, name: str) -> bool:
        """Return whether the database file for ``name`` exists."""
        return self._file_for(name).is_file()

    def drop_database(self, name: str) -> None:
        """Delete the database file for ``name``.

        In memory mode the connection is reopened, which discards all data.
        """
        if self._memory:
            self.disconnect()
            self.connect()
        path = self._file_for(name)
        if path.exists():
            path.unlink()
