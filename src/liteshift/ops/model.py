"""Abstract schema model: tables, columns, indexes and foreign keys.

Types and defaults are held as ``Any`` so that ``Literal`` and
``Expression`` values keep their class; pydantic would otherwise coerce
them to plain ``str``.
"""

from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

# Referential actions accepted in ON DELETE / ON UPDATE clauses
FOREIGN_KEY_ACTIONS = ("SET NULL", "SET DEFAULT", "CASCADE", "RESTRICT", "NO ACTION")


class Column(BaseModel):
    """A table column in the abstract model.

    Attributes:
        name: Column name.
        type: Abstract type tag, a ``Literal`` native type, or None for
            a column declared without a type.
        null: Whether the column accepts NULL.
        default: Default value; see ``parse_default_value`` for the kinds.
        limit: Display or storage width.
        precision: Numeric precision.
        scale: Numeric scale.
        identity: Column is an auto-incrementing alias for the row ID.
        update: ON UPDATE action, emitted verbatim.
        comment: Column comment.
        values: Allowed values, enforced with a CHECK constraint.
    """

    name: str
    type: Any = None
    null: bool = True
    default: Any = None
    limit: int | None = None
    precision: int | None = None
    scale: int | None = None
    identity: bool = False
    update: str | None = None
    comment: str | None = None
    values: list[str] | None = None

    @model_validator(mode="after")
    def validate_identity(self) -> "Column":
        """An identity column never accepts NULL."""
        if self.identity:
            self.null = False
        return self


class Table(BaseModel):
    """A table, optionally qualified as ``schema.table``.

    Recognized options:
        id: True (the default) adds an identity column named ``id``, a
            string names the identity column, False adds none.
        primary_key: Column name or list of names for a PRIMARY KEY
            table constraint.
        comment: Table comment; SQLite cannot store one.
    """

    name: str
    columns: list[Column] = Field(default_factory=list)
    options: dict[str, Any] = Field(default_factory=dict)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Reject an empty table name."""
        if not v:
            raise ValueError("Table name cannot be empty")
        return v


class Index(BaseModel):
    """An index over an ordered list of columns."""

    columns: list[str]
    name: str | None = None
    type: Literal["index", "unique"] = "index"

    @field_validator("columns", mode="before")
    @classmethod
    def validate_columns(cls, v: Any) -> Any:
        """Accept a single column name in place of a list."""
        if isinstance(v, str):
            return [v]
        return v

    @property
    def unique(self) -> bool:
        return self.type == "unique"


class ForeignKey(BaseModel):
    """A foreign key from local columns to a referenced table."""

    columns: list[str]
    referenced_table: str
    referenced_columns: list[str] = Field(default_factory=lambda: ["id"])
    constraint: str | None = None
    on_delete: str | None = None
    on_update: str | None = None

    @field_validator("columns", "referenced_columns", mode="before")
    @classmethod
    def validate_columns(cls, v: Any) -> Any:
        """Accept a single column name and reject an empty list."""
        if isinstance(v, str):
            v = [v]
        if not v:
            raise ValueError("Foreign key columns cannot be empty")
        return v

    @field_validator("on_delete", "on_update")
    @classmethod
    def validate_action(cls, v: str | None) -> str | None:
        """Normalize a referential action to upper case.

        Raises:
            ValueError: If the action is not one SQLite knows.
        """
        if v is None:
            return None
        action = " ".join(v.replace("_", " ").split()).upper()
        if action not in FOREIGN_KEY_ACTIONS:
            raise ValueError(
                f"Invalid foreign key action '{v}': must be one of "
                + ", ".join(FOREIGN_KEY_ACTIONS)
            )
        return action
