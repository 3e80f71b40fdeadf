"""Error types raised by the liteshift adapter.

Engine errors (``sqlite3.Error``) raised by statements the adapter executes
are not wrapped; they propagate to the caller unchanged.
"""


class LiteshiftError(Exception):
    """Base class for all liteshift errors."""


class UnsupportedColumnTypeError(LiteshiftError):
    """Raised when an abstract column type has no SQLite representation."""


class InvalidArgumentError(LiteshiftError, ValueError):
    """Raised when a caller passes a value the adapter cannot act on."""


class UnsupportedOperationError(LiteshiftError, NotImplementedError):
    """Raised for operations SQLite cannot perform or emulate."""


class ConnectionFailureError(LiteshiftError):
    """Raised when the database connection cannot be opened."""


class MetadataQueryError(LiteshiftError):
    """Raised when a schema catalog cannot be queried.

    This usually means the schema name refers to a database that is not
    attached to the connection.
    """


class ForeignKeyViolationError(LiteshiftError):
    """Raised when rows violate a foreign key after a table was rebuilt."""
