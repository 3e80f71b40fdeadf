"""Targeted rewriting of stored CREATE TABLE and CREATE INDEX statements.

A CREATE TABLE statement is split into its head (``CREATE TABLE name``),
the comma-separated definitions between the outer parentheses, and the
table options after them. Each rewrite edits whole tokens, so names,
string literals and comments that merely contain a column name are left
alone.
"""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from liteshift.db.quoting import ascii_lower as _fold
from liteshift.db.quoting import quote_identifier
from liteshift.errors import InvalidArgumentError
from liteshift.ops import tokens
from liteshift.ops.tokens import COMMENT, IDENTIFIER, SPACE, STRING, WORD, Token

_CONSTRAINT_KEYWORDS = ("CONSTRAINT", "PRIMARY", "UNIQUE", "CHECK", "FOREIGN")

# Words that end the type name in a column definition
_COLUMN_CONSTRAINT_KEYWORDS = (
    "CONSTRAINT",
    "PRIMARY",
    "NOT",
    "NULL",
    "UNIQUE",
    "CHECK",
    "DEFAULT",
    "COLLATE",
    "REFERENCES",
    "GENERATED",
    "AS",
)

_NAME_KINDS = (WORD, IDENTIFIER)


def _trim(toks: list[Token]) -> list[Token]:
    start, end = 0, len(toks)
    while start < end and toks[start].kind == SPACE:
        start += 1
    while end > start and toks[end - 1].kind == SPACE:
        end -= 1
    return toks[start:end]


@dataclass
class Definition:
    """One column definition or table constraint."""

    tokens: list[Token]

    @classmethod
    def parse(cls, text: str) -> "Definition":
        return cls(_trim(tokens.tokenize(text)))

    @property
    def text(self) -> str:
        text = "".join(token.text for token in self.tokens)
        last = self.tokens[-1] if self.tokens else None
        if last is not None and last.kind == COMMENT and last.text.startswith("--"):
            # a trailing line comment would swallow what follows
            text += "\n"
        return text

    def significant_indices(self) -> list[int]:
        return [i for i, token in enumerate(self.tokens) if token.significant]

    def significant(self) -> list[Token]:
        return [token for token in self.tokens if token.significant]

    @property
    def is_constraint(self) -> bool:
        """Whether this is a table constraint rather than a column."""
        sig = self.significant()
        return bool(sig) and sig[0].is_keyword(*_CONSTRAINT_KEYWORDS)

    @property
    def column_name(self) -> str | None:
        if self.is_constraint:
            return None
        sig = self.significant()
        return tokens.identifier_value(sig[0]) if sig else None

    def declares(self, column: str) -> bool:
        name = self.column_name
        return name is not None and _fold(name) == _fold(column)

    def declared_type(self) -> str:
        """Return the declared type of a column definition, upper-cased."""
        sig = self.significant()[1:]
        parts: list[str] = []
        index = 0
        while index < len(sig) and sig[index].kind in _NAME_KINDS:
            if sig[index].is_keyword(*_COLUMN_CONSTRAINT_KEYWORDS):
                break
            parts.append(sig[index].text.upper())
            index += 1
        if parts and index < len(sig) and sig[index].is_punct("("):
            close = tokens.matching_paren(sig, index)
            end = len(sig) - 1 if close is None else close
            parts.append("(" + "".join(tok.text for tok in sig[index + 1 : end]) + ")")
        return " ".join(parts)

    def reference_indices(self) -> Iterator[int]:
        """Yield the indices of tokens that name columns of this table.

        Only names inside parentheses count (column lists, CHECK and
        generated-column expressions); the column list following a
        REFERENCES clause names columns of another table and is skipped.
        """
        depth = 0
        skip_depth: int | None = None
        after_references = 0
        for index, token in enumerate(self.tokens):
            if not token.significant:
                continue
            if token.is_keyword("REFERENCES"):
                after_references = 2
                continue
            if after_references:
                after_references -= 1
                if token.is_punct("(") and after_references == 0:
                    skip_depth = depth
                    depth += 1
                    continue
                if after_references == 1:
                    # referenced table name
                    continue
            if token.is_punct("("):
                depth += 1
            elif token.is_punct(")"):
                depth -= 1
                if skip_depth is not None and depth == skip_depth:
                    skip_depth = None
            elif depth > 0 and skip_depth is None and token.kind in _NAME_KINDS:
                yield index

    def references(self, column: str) -> bool:
        wanted = _fold(column)
        return any(
            _fold(tokens.identifier_value(self.tokens[i])) == wanted
            for i in self.reference_indices()
        )

    def rename_references(self, old: str, new: str) -> None:
        wanted = _fold(old)
        replacement = quote_identifier(new)
        for index in list(self.reference_indices()):
            token = self.tokens[index]
            if _fold(tokens.identifier_value(token)) == wanted:
                self.tokens[index] = Token(IDENTIFIER, replacement, token.start)

    def rename_column(self, new: str) -> None:
        first = self.significant_indices()[0]
        token = self.tokens[first]
        self.tokens[first] = Token(IDENTIFIER, quote_identifier(new), token.start)

    def remove(self, start: int, end: int) -> None:
        """Remove ``tokens[start:end]`` and the whitespace before it."""
        while start > 0 and self.tokens[start - 1].kind == SPACE:
            start -= 1
        del self.tokens[start:end]

    def append(self, text: str) -> None:
        """Insert ``text`` after the last significant token."""
        last = self.significant_indices()[-1]
        added = [Token(SPACE, " ", 0), *tokens.tokenize(text)]
        self.tokens[last + 1 : last + 1] = added


@dataclass
class CreateTable:
    """A CREATE TABLE statement split for editing."""

    head: str
    definitions: list[Definition] = field(default_factory=list)
    options: str = ""

    @classmethod
    def parse(cls, sql: str) -> "CreateTable":
        """Split a CREATE TABLE statement.

        Raises:
            InvalidArgumentError: If the statement has no column list.
        """
        toks = tokens.tokenize(sql)
        open_index = next((i for i, tok in enumerate(toks) if tok.is_punct("(")), None)
        close_index = None if open_index is None else tokens.matching_paren(toks, open_index)
        if open_index is None or close_index is None:
            raise InvalidArgumentError(f"Cannot parse table definition: {sql}")

        definitions: list[Definition] = []
        current: list[Token] = []
        depth = 0
        for token in toks[open_index + 1 : close_index]:
            if token.is_punct("("):
                depth += 1
            elif token.is_punct(")"):
                depth -= 1
            elif token.is_punct(",") and depth == 0:
                definitions.append(Definition(_trim(current)))
                current = []
                continue
            current.append(token)
        definitions.append(Definition(_trim(current)))

        return cls(
            head=sql[: toks[open_index].start].rstrip(),
            definitions=[d for d in definitions if d.tokens],
            options=sql[toks[close_index].end :],
        )

    def render(self) -> str:
        body = ", ".join(definition.text for definition in self.definitions)
        return f"{self.head} ({body}){self.options}"

    def find_column(self, column: str) -> Definition:
        """Return the definition of a column.

        Raises:
            InvalidArgumentError: If the table has no such column.
        """
        for definition in self.definitions:
            if definition.declares(column):
                return definition
        raise InvalidArgumentError(f"The specified column doesn't exist: {column}")

    def constraints(self) -> list[Definition]:
        return [d for d in self.definitions if d.is_constraint]


def rename_column_in(create_sql: str, old: str, new: str) -> str:
    """Rename a column and every reference to it within the table."""
    table = CreateTable.parse(create_sql)
    table.find_column(old).rename_column(new)
    for definition in table.definitions:
        definition.rename_references(old, new)
    return table.render()


def retype_column_in(create_sql: str, old: str, new_definition: str) -> str:
    """Replace a column definition, renaming references if the name changes."""
    table = CreateTable.parse(create_sql)
    target = table.find_column(old)
    replacement = Definition.parse(new_definition)
    table.definitions[table.definitions.index(target)] = replacement

    new = replacement.column_name
    if new is not None and _fold(new) != _fold(old):
        for definition in table.definitions:
            if definition is not replacement:
                definition.rename_references(old, new)
    return table.render()


def drop_column_in(create_sql: str, column: str) -> str:
    """Remove a column and the table constraints that refer to it."""
    table = CreateTable.parse(create_sql)
    target = table.find_column(column)
    table.definitions = [
        d
        for d in table.definitions
        if d is not target and not (d.is_constraint and d.references(column))
    ]
    if not [d for d in table.definitions if not d.is_constraint]:
        raise InvalidArgumentError(f"Cannot drop the only column of a table: {column}")
    return table.render()


def add_primary_key_in(create_sql: str, column: str) -> str:
    """Declare an existing column as the primary key.

    A column declared exactly ``INTEGER`` also gets AUTOINCREMENT, making it
    an alias for the row ID.
    """
    table = CreateTable.parse(create_sql)
    target = table.find_column(column)
    if target.declared_type() == "INTEGER":
        target.append("PRIMARY KEY AUTOINCREMENT")
    else:
        target.append("PRIMARY KEY")
    return table.render()


def _primary_key_span(definition: Definition) -> tuple[int, int] | None:
    """Locate an inline ``[CONSTRAINT n] PRIMARY KEY ...`` column constraint."""
    sig = definition.significant_indices()
    toks = definition.tokens
    for position, index in enumerate(sig[:-1]):
        if not (toks[index].is_keyword("PRIMARY") and toks[sig[position + 1]].is_keyword("KEY")):
            continue
        start = index
        if position >= 2 and toks[sig[position - 2]].is_keyword("CONSTRAINT"):
            start = sig[position - 2]
        cursor = position + 2
        if cursor < len(sig) and toks[sig[cursor]].is_keyword("ASC", "DESC"):
            cursor += 1
        if (
            cursor + 2 < len(sig)
            and toks[sig[cursor]].is_keyword("ON")
            and toks[sig[cursor + 1]].is_keyword("CONFLICT")
        ):
            cursor += 3
        if cursor < len(sig) and toks[sig[cursor]].is_keyword("AUTOINCREMENT"):
            cursor += 1
        end = sig[cursor - 1] + 1
        return start, end
    return None


def _is_primary_key_constraint(definition: Definition) -> bool:
    sig = definition.significant()
    if len(sig) >= 3 and sig[0].is_keyword("CONSTRAINT"):
        sig = sig[2:]
    return len(sig) >= 2 and sig[0].is_keyword("PRIMARY") and sig[1].is_keyword("KEY")


def drop_primary_key_in(create_sql: str) -> str:
    """Remove the primary key, whether a table constraint or inline."""
    table = CreateTable.parse(create_sql)
    table.definitions = [d for d in table.definitions if not _is_primary_key_constraint(d)]
    for definition in table.definitions:
        if definition.is_constraint:
            continue
        span = _primary_key_span(definition)
        if span is not None:
            definition.remove(*span)
    return table.render()


def add_foreign_key_in(create_sql: str, clause: str) -> str:
    """Append a ``FOREIGN KEY ... REFERENCES ...`` table constraint."""
    table = CreateTable.parse(create_sql)
    table.definitions.append(Definition.parse(clause))
    return table.render()


def _foreign_key_clause_end(sig: list[Token], references: int) -> int:
    """Return the position after the foreign key clause at ``references``."""
    cursor = references + 2
    if cursor < len(sig) and sig[cursor].is_punct("("):
        close = tokens.matching_paren(sig, cursor)
        cursor = len(sig) if close is None else close + 1
    while cursor < len(sig):
        token = sig[cursor]
        if token.is_keyword("ON"):
            cursor += 2
            if cursor < len(sig) and sig[cursor].is_keyword("SET", "NO"):
                cursor += 2
            else:
                cursor += 1
        elif token.is_keyword("MATCH"):
            cursor += 2
        elif token.is_keyword("NOT") and cursor + 1 < len(sig) and sig[cursor + 1].is_keyword(
            "DEFERRABLE"
        ):
            cursor += 2
        elif token.is_keyword("DEFERRABLE"):
            cursor += 1
        elif token.is_keyword("INITIALLY"):
            cursor += 2
        else:
            break
    return min(cursor, len(sig))


def _foreign_key_columns(definition: Definition) -> list[str] | None:
    sig = definition.significant()
    if len(sig) >= 3 and sig[0].is_keyword("CONSTRAINT"):
        sig = sig[2:]
    if not (len(sig) >= 3 and sig[0].is_keyword("FOREIGN") and sig[1].is_keyword("KEY")):
        return None
    close = tokens.matching_paren(sig, 2)
    if close is None:
        return None
    return [
        tokens.identifier_value(tok)
        for tok in sig[3:close]
        if tok.kind in (WORD, IDENTIFIER, STRING)
    ]


def drop_foreign_key_in(create_sql: str, columns: Iterable[str]) -> str:
    """Remove the foreign key defined over exactly ``columns``.

    Both ``FOREIGN KEY`` table constraints and inline ``REFERENCES``
    clauses (for a single column) are recognized.

    Raises:
        InvalidArgumentError: If no such foreign key exists.
    """
    wanted = {_fold(column) for column in columns}
    table = CreateTable.parse(create_sql)

    kept: list[Definition] = []
    removed = False
    for definition in table.definitions:
        key_columns = _foreign_key_columns(definition)
        if key_columns is not None and {_fold(c) for c in key_columns} == wanted:
            removed = True
            continue
        kept.append(definition)
    table.definitions = kept

    if len(wanted) == 1:
        for definition in table.definitions:
            if definition.is_constraint or _fold(definition.column_name or "") not in wanted:
                continue
            sig_indices = definition.significant_indices()
            sig = definition.significant()
            for position, token in enumerate(sig):
                if not token.is_keyword("REFERENCES"):
                    continue
                start = position
                if position >= 2 and sig[position - 2].is_keyword("CONSTRAINT"):
                    start = position - 2
                end = _foreign_key_clause_end(sig, position)
                definition.remove(sig_indices[start], sig_indices[end - 1] + 1)
                removed = True
                break

    if not removed:
        raise InvalidArgumentError(
            "No foreign key on columns: " + ", ".join(sorted(wanted))
        )
    return table.render()


def retarget_table_in(create_sql: str, qualified_name: str) -> str:
    """Point a CREATE TABLE statement at another (quoted) table name."""
    table = CreateTable.parse(create_sql)
    table.head = f"CREATE TABLE {qualified_name}"
    return table.render()


def _index_column_indices(toks: list[Token]) -> Iterator[int]:
    """Yield indices of names after the column list opens in CREATE INDEX."""
    open_index = next((i for i, tok in enumerate(toks) if tok.is_punct("(")), None)
    if open_index is None:
        return
    for index in range(open_index + 1, len(toks)):
        token = toks[index]
        if token.kind in _NAME_KINDS and not token.is_keyword(
            "ASC", "DESC", "COLLATE", "WHERE", "AND", "OR", "NOT", "IS", "NULL", "IN", "LIKE"
        ):
            yield index


def index_references_column(index_sql: str, column: str) -> bool:
    """Return whether a CREATE INDEX statement uses ``column``."""
    toks = tokens.tokenize(index_sql)
    wanted = _fold(column)
    return any(
        _fold(tokens.identifier_value(toks[i])) == wanted for i in _index_column_indices(toks)
    )


def rename_index_column_in(index_sql: str, old: str, new: str) -> str:
    """Rename a column used by a CREATE INDEX statement."""
    toks = tokens.tokenize(index_sql)
    wanted = _fold(old)
    for index in list(_index_column_indices(toks)):
        if _fold(tokens.identifier_value(toks[index])) == wanted:
            toks[index] = Token(IDENTIFIER, quote_identifier(new), toks[index].start)
    return "".join(token.text for token in toks)


def qualify_index_in(index_sql: str, schema: str) -> str:
    """Prefix the index name of a CREATE INDEX statement with a schema.

    SQLite stores index statements without the schema they were created in.
    """
    toks = tokens.tokenize(index_sql)
    sig = [i for i, tok in enumerate(toks) if tok.significant]
    position = next(p for p, i in enumerate(sig) if toks[i].is_keyword("INDEX")) + 1
    if toks[sig[position]].is_keyword("IF"):
        position += 3
    name_index = sig[position]
    toks.insert(name_index, Token(IDENTIFIER, quote_identifier(schema) + ".", 0))
    return "".join(token.text for token in toks)
