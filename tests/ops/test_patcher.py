"""Tests for CREATE statement rewriting."""

import pytest

from liteshift.errors import InvalidArgumentError
from liteshift.ops import patcher
from liteshift.ops.tokens import tokenize


class TestTokenize:
    """Tests for the SQL scanner."""

    def test_text_roundtrip(self) -> None:
        """Token texts concatenate back to the input."""
        sql = "CREATE TABLE \"a\"\"b\" (`c` int /* x */, [d] text default 'it''s') -- end"
        assert "".join(token.text for token in tokenize(sql)) == sql

    def test_kinds(self) -> None:
        """Strings, identifiers and comments are single tokens."""
        kinds = [t.kind for t in tokenize("'a,b' \"c(d\" /* e) */") if t.significant]
        assert kinds == ["string", "identifier"]


class TestCreateTable:
    """Tests for splitting CREATE TABLE statements."""

    def test_parse(self) -> None:
        """Definitions are split at top-level commas only."""
        table = patcher.CreateTable.parse(
            "CREATE TABLE t (a integer(12,6), b text check (b in ('x', 'y')), primary key (a))"
        )
        assert table.head == "CREATE TABLE t"
        assert [d.text for d in table.definitions] == [
            "a integer(12,6)",
            "b text check (b in ('x', 'y'))",
            "primary key (a)",
        ]
        assert [d.column_name for d in table.definitions] == ["a", "b", None]

    def test_options_kept(self) -> None:
        """Table options after the column list survive a rewrite."""
        sql = "CREATE TABLE t (a integer primary key, b text) WITHOUT ROWID"
        assert patcher.CreateTable.parse(sql).render() == sql

    def test_trailing_line_comment(self) -> None:
        """A line comment at the end of a definition does not eat the next one."""
        sql = "CREATE TABLE t (a text -- first\n, b text -- second\n)"
        rendered = patcher.drop_column_in(sql, "a")
        assert rendered == "CREATE TABLE t (b text -- second\n)"

    def test_not_a_table(self) -> None:
        """Statements without a column list are rejected."""
        with pytest.raises(InvalidArgumentError):
            patcher.CreateTable.parse("CREATE TABLE t AS SELECT 1")

    def test_declared_type(self) -> None:
        """The declared type stops at the first constraint."""
        table = patcher.CreateTable.parse("CREATE TABLE t (a integer not null, b unsigned big int)")
        assert table.definitions[0].declared_type() == "INTEGER"
        assert table.definitions[1].declared_type() == "UNSIGNED BIG INT"


class TestRenameColumn:
    """Tests for rename_column_in."""

    def test_rename(self) -> None:
        """The column and its table constraint references are renamed."""
        sql = "CREATE TABLE t (a integer, b text, primary key (a), unique (b, a))"
        assert patcher.rename_column_in(sql, "a", "c") == (
            "CREATE TABLE t (`c` integer, b text, primary key (`c`), unique (b, `c`))"
        )

    def test_quoted_and_case_insensitive(self) -> None:
        """Quoted names match regardless of quoting style and case."""
        sql = 'CREATE TABLE t ("A" integer, [b] text, check ("a" > 0))'
        assert patcher.rename_column_in(sql, "a", "x") == (
            "CREATE TABLE t (`x` integer, [b] text, check (`x` > 0))"
        )

    def test_references_to_other_table_untouched(self) -> None:
        """Columns of a referenced table keep their names."""
        sql = "CREATE TABLE t (a integer references p (a), foreign key (a) references p (a))"
        assert patcher.rename_column_in(sql, "a", "b") == (
            "CREATE TABLE t (`b` integer references p (a), foreign key (`b`) references p (a))"
        )

    def test_strings_and_comments_untouched(self) -> None:
        """Text that only contains the name is left alone."""
        sql = "CREATE TABLE t (a text default 'a' /* a */, b text check (b <> 'a'))"
        assert patcher.rename_column_in(sql, "a", "z") == (
            "CREATE TABLE t (`z` text default 'a' /* a */, b text check (b <> 'a'))"
        )

    def test_keyword_named_column(self) -> None:
        """A column named like a keyword does not rename the keyword."""
        sql = "CREATE TABLE t (\"key\" text, primary key (\"key\"))"
        assert patcher.rename_column_in(sql, "key", "k") == (
            "CREATE TABLE t (`k` text, primary key (`k`))"
        )

    def test_missing_column(self) -> None:
        """Renaming an unknown column fails."""
        with pytest.raises(InvalidArgumentError, match="doesn't exist"):
            patcher.rename_column_in("CREATE TABLE t (a text)", "b", "c")


class TestRetypeColumn:
    """Tests for retype_column_in."""

    def test_retype(self) -> None:
        """The whole definition is replaced."""
        sql = "CREATE TABLE t (a integer, b text)"
        assert patcher.retype_column_in(sql, "b", "`b` VARCHAR(10) NOT NULL") == (
            "CREATE TABLE t (a integer, `b` VARCHAR(10) NOT NULL)"
        )

    def test_retype_with_rename(self) -> None:
        """A new name is carried into table constraints."""
        sql = "CREATE TABLE t (a integer, unique (a))"
        assert patcher.retype_column_in(sql, "a", "`c` TEXT NULL") == (
            "CREATE TABLE t (`c` TEXT NULL, unique (`c`))"
        )


class TestDropColumn:
    """Tests for drop_column_in."""

    def test_drop(self) -> None:
        """The definition is removed."""
        sql = "CREATE TABLE t (a integer, b text, c text)"
        assert patcher.drop_column_in(sql, "b") == "CREATE TABLE t (a integer, c text)"

    def test_drop_removes_constraints(self) -> None:
        """Table constraints on the column go with it."""
        sql = "CREATE TABLE t (a integer, b text, unique (a, b), check (a > 0))"
        assert patcher.drop_column_in(sql, "b") == (
            "CREATE TABLE t (a integer, check (a > 0))"
        )

    def test_drop_last_column(self) -> None:
        """A table must keep at least one column."""
        with pytest.raises(InvalidArgumentError):
            patcher.drop_column_in("CREATE TABLE t (a integer)", "a")


class TestPrimaryKey:
    """Tests for adding and dropping primary keys."""

    def test_add_integer(self) -> None:
        """An INTEGER column becomes an auto-incrementing key."""
        sql = "CREATE TABLE t (a INTEGER NOT NULL, b text)"
        assert patcher.add_primary_key_in(sql, "a") == (
            "CREATE TABLE t (a INTEGER NOT NULL PRIMARY KEY AUTOINCREMENT, b text)"
        )

    def test_add_other_type(self) -> None:
        """Other columns become a plain key."""
        sql = "CREATE TABLE t (a integer, b text /* c */)"
        assert patcher.add_primary_key_in(sql, "b") == (
            "CREATE TABLE t (a integer, b text PRIMARY KEY /* c */)"
        )

    @pytest.mark.parametrize(
        ("sql", "expected"),
        [
            (
                "CREATE TABLE t (a integer, b text, primary key (a, b))",
                "CREATE TABLE t (a integer, b text)",
            ),
            (
                "CREATE TABLE t (a integer, constraint pk primary key (a))",
                "CREATE TABLE t (a integer)",
            ),
            (
                "CREATE TABLE t (a INTEGER PRIMARY KEY AUTOINCREMENT, b text)",
                "CREATE TABLE t (a INTEGER, b text)",
            ),
            (
                "CREATE TABLE t (a integer not null primary key desc on conflict fail unique)",
                "CREATE TABLE t (a integer not null unique)",
            ),
            (
                "CREATE TABLE t (a text constraint pk primary key)",
                "CREATE TABLE t (a text)",
            ),
        ],
    )
    def test_drop(self, sql: str, expected: str) -> None:
        """Table and inline keys are removed."""
        assert patcher.drop_primary_key_in(sql) == expected


class TestForeignKey:
    """Tests for adding and dropping foreign keys."""

    def test_add(self) -> None:
        """The clause is appended as a table constraint."""
        sql = "CREATE TABLE t (a integer)"
        clause = "FOREIGN KEY (`a`) REFERENCES `p` (`id`)"
        assert patcher.add_foreign_key_in(sql, clause) == (
            "CREATE TABLE t (a integer, FOREIGN KEY (`a`) REFERENCES `p` (`id`))"
        )

    def test_drop_table_constraint(self) -> None:
        """The constraint over exactly the columns is removed."""
        sql = (
            "CREATE TABLE t (a integer, b integer, "
            "foreign key (a) references p (id), "
            "constraint fk foreign key (A, b) references q (x, y) on delete cascade)"
        )
        assert patcher.drop_foreign_key_in(sql, ["b", "a"]) == (
            "CREATE TABLE t (a integer, b integer, foreign key (a) references p (id))"
        )

    def test_drop_inline(self) -> None:
        """An inline REFERENCES clause is removed with its actions."""
        sql = (
            "CREATE TABLE t (a integer not null references p (id) "
            "on delete set null on update no action deferrable initially deferred default 1)"
        )
        assert patcher.drop_foreign_key_in(sql, ["a"]) == (
            "CREATE TABLE t (a integer not null default 1)"
        )

    def test_drop_missing(self) -> None:
        """Dropping a foreign key that does not exist fails."""
        with pytest.raises(InvalidArgumentError):
            patcher.drop_foreign_key_in("CREATE TABLE t (a integer)", ["a"])


class TestRetargetAndIndexes:
    """Tests for statement head and index rewriting."""

    def test_retarget(self) -> None:
        """The statement is pointed at the given table."""
        sql = 'CREATE TABLE "t" (a integer)'
        assert patcher.retarget_table_in(sql, "`etc`.`t`") == (
            "CREATE TABLE `etc`.`t` (a integer)"
        )

    def test_rename_index_column(self) -> None:
        """Index columns are renamed, other names are not."""
        sql = "CREATE INDEX a_idx ON a (a DESC, b)"
        assert patcher.rename_index_column_in(sql, "a", "c") == (
            "CREATE INDEX a_idx ON a (`c` DESC, b)"
        )

    def test_index_references_column(self) -> None:
        """Only the indexed columns count."""
        sql = "CREATE UNIQUE INDEX i ON t (b) WHERE c IS NOT NULL"
        assert patcher.index_references_column(sql, "b")
        assert patcher.index_references_column(sql, "C")
        assert not patcher.index_references_column(sql, "t")

    @pytest.mark.parametrize(
        ("sql", "expected"),
        [
            ("CREATE INDEX i ON t (a)", "CREATE INDEX `etc`.i ON t (a)"),
            (
                "CREATE UNIQUE INDEX IF NOT EXISTS i ON t (a)",
                "CREATE UNIQUE INDEX IF NOT EXISTS `etc`.i ON t (a)",
            ),
        ],
    )
    def test_qualify_index(self, sql: str, expected: str) -> None:
        """The index name is qualified with the schema."""
        assert patcher.qualify_index_in(sql, "etc") == expected
