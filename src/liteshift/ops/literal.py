"""Opaque string values that must not be interpreted by the adapter."""


class Literal(str):
    """A value passed through as-is.

    As a column type, the text is emitted verbatim instead of being mapped.
    As a default value, it is a string literal (quoted when emitted).
    """

    __slots__ = ()

    def __repr__(self) -> str:
        return f"Literal({str.__repr__(self)})"


class Expression(str):
    """A default-value expression emitted verbatim inside parentheses."""

    __slots__ = ()

    def __repr__(self) -> str:
        return f"Expression({str.__repr__(self)})"
