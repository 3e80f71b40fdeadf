"""Lexical scanning of SQLite statement text.

Splits SQL into whitespace, comments, string literals, quoted identifiers,
numbers, bare words and single punctuation characters. Unterminated
strings and comments run to the end of the input.
"""

import re
from collections.abc import Iterator, Sequence
from typing import NamedTuple

SPACE = "space"
COMMENT = "comment"
STRING = "string"
IDENTIFIER = "identifier"
NUMBER = "number"
WORD = "word"
PUNCT = "punct"

_TOKEN_PATTERN = re.compile(
    r"""
      (?P<space>\s+)
    | (?P<comment>--[^\n]*|/\*.*?(?:\*/|\Z))
    | (?P<string>'(?:[^']|'')*'?)
    | (?P<identifier>"(?:[^"]|"")*"?|`(?:[^`]|``)*`?|\[[^\]]*\]?)
    | (?P<number>(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][-+]?\d+)?)
    | (?P<word>[\w$]+)
    | (?P<punct>.)
    """,
    re.VERBOSE | re.DOTALL,
)


class Token(NamedTuple):
    """A lexical token and its offset in the scanned text."""

    kind: str
    text: str
    start: int

    @property
    def end(self) -> int:
        return self.start + len(self.text)

    @property
    def significant(self) -> bool:
        """Whether the token carries meaning (is not space or a comment)."""
        return self.kind not in (SPACE, COMMENT)

    def is_keyword(self, *words: str) -> bool:
        """Return whether this is a bare word equal to one of ``words``."""
        return self.kind == WORD and self.text.upper() in words

    def is_punct(self, char: str) -> bool:
        return self.kind == PUNCT and self.text == char


def tokenize(sql: str) -> list[Token]:
    """Scan ``sql`` into tokens; concatenating their text yields ``sql``."""
    return list(_scan(sql))


def _scan(sql: str) -> Iterator[Token]:
    for match in _TOKEN_PATTERN.finditer(sql):
        kind = match.lastgroup
        assert kind is not None
        yield Token(kind, match.group(), match.start())


def identifier_value(token: Token) -> str:
    """Return the name a word, quoted identifier or string token denotes.

    SQLite accepts a string literal where a column name is expected, so
    single-quoted tokens are unquoted as well.
    """
    text = token.text
    if token.kind == IDENTIFIER:
        if text[0] == "[":
            return text[1:-1] if text.endswith("]") else text[1:]
        quote = text[0]
        inner = text[1:-1] if len(text) > 1 and text.endswith(quote) else text[1:]
        return inner.replace(quote * 2, quote)
    if token.kind == STRING:
        inner = text[1:-1] if len(text) > 1 and text.endswith("'") else text[1:]
        return inner.replace("''", "'")
    return text


def significant(tokens: Sequence[Token]) -> list[Token]:
    """Return the tokens that are neither whitespace nor comments."""
    return [token for token in tokens if token.significant]


def matching_paren(tokens: Sequence[Token], open_index: int) -> int | None:
    """Return the index of the ``)`` closing the ``(`` at ``open_index``.

    Returns:
        The index in ``tokens``, or None if the parenthesis is unbalanced.
    """
    depth = 0
    for index in range(open_index, len(tokens)):
        token = tokens[index]
        if token.is_punct("("):
            depth += 1
        elif token.is_punct(")"):
            depth -= 1
            if depth == 0:
                return index
    return None
