"""Tests for the DDL lexer and the CREATE TABLE parser."""
import random

import pytest

from Schema.adapters import (
    SQLAdapter, StatementKind, AlterKind,
    parse_create_table_statements, parse_alter_statement, classify_statements
)
from Schema.adapters.ddl_lexer import TokenKind, tokenize, remove_comments, split_top_level, render


def _columns(table):
    return {c.name: c for c in table.columns}


class TestLexer:
    def test_quoted_identifiers_are_unquoted(self):
        tokens = tokenize('"Order Items" `qty` [item_id] plain')
        assert [(t.kind, t.value) for t in tokens] == [
            (TokenKind.QUOTED, "Order Items"),
            (TokenKind.QUOTED, "qty"),
            (TokenKind.QUOTED, "item_id"),
            (TokenKind.WORD, "plain"),
        ]

    def test_doubled_closing_quotes_are_unescaped(self):
        tokens = tokenize('[my table] [a]]b] `x``y` INT[]')
        assert [(t.kind, t.value) for t in tokens[:3]] == [
            (TokenKind.QUOTED, "my table"),
            (TokenKind.QUOTED, "a]b"),
            (TokenKind.QUOTED, "x`y"),
        ]
        assert [t.kind for t in tokens[3:]] == [TokenKind.WORD, TokenKind.OTHER, TokenKind.OTHER]

    def test_string_literal_keeps_quotes(self):
        tokens = tokenize("DEFAULT 'it''s'")
        assert tokens[1].kind == TokenKind.STRING
        assert tokens[1].text == "'it''s'"

    def test_remove_comments(self):
        text = "CREATE TABLE t ( -- trailing\n id INT /* block\n comment */ )"
        assert "--" not in remove_comments(text)
        assert "/*" not in remove_comments(text)

    def test_split_top_level_respects_parentheses(self):
        parts = split_top_level(tokenize("a DECIMAL(10, 2), b INT"))
        assert [render(p) for p in parts] == ["a DECIMAL(10,2)", "b INT"]


class TestCreateTable:
    def test_basic_table(self):
        """Primary key, NOT NULL and type arguments are recognised."""
        tables = parse_create_table_statements(
            "CREATE TABLE t (id INT PRIMARY KEY, name VARCHAR(255) NOT NULL);"
        )
        assert [t.name for t in tables] == ["t"]
        cols = _columns(tables[0])
        assert list(cols) == ["id", "name"]
        assert cols["id"].is_primary_key is True
        assert cols["id"].nullable is True
        assert cols["name"].type == "VARCHAR(255)"
        assert cols["name"].nullable is False

    def test_keywords_are_case_insensitive(self):
        tables = parse_create_table_statements("create table t (id int primary key not null unique)")
        col = tables[0].columns[0]
        assert (col.is_primary_key, col.nullable, col.is_unique) == (True, False, True)

    def test_multiple_statements_and_comments(self):
        ddl = """
        -- users first
        CREATE TABLE users (id INT);
        /* then orders */
        CREATE TABLE orders (id INT, total DECIMAL(10, 2));
        """
        tables = parse_create_table_statements(ddl)
        assert [t.name for t in tables] == ["users", "orders"]
        assert tables[1].columns[1].type == "DECIMAL(10,2)"

    def test_if_not_exists_and_qualified_name(self):
        tables = parse_create_table_statements("CREATE TABLE IF NOT EXISTS public.accounts (id SERIAL)")
        assert tables[0].name == "accounts"

    def test_quoted_names(self):
        tables = parse_create_table_statements('CREATE TABLE "Order Items" ([item_id] INT, `qty` INT)')
        assert tables[0].name == "Order Items"
        assert [c.name for c in tables[0].columns] == ["item_id", "qty"]

    def test_multi_word_types(self):
        tables = parse_create_table_statements(
            "CREATE TABLE m (a DOUBLE PRECISION, b CHARACTER VARYING(20), c INT[])"
        )
        assert [c.type for c in tables[0].columns] == ["DOUBLE PRECISION", "CHARACTER VARYING(20)", "INT[]"]

    def test_default_values(self):
        tables = parse_create_table_statements(
            "CREATE TABLE d (status VARCHAR(10) DEFAULT 'new' NOT NULL, "
            "created_at TIMESTAMP DEFAULT now(), score INT DEFAULT -1)"
        )
        cols = _columns(tables[0])
        assert cols["status"].default_value == "'new'"
        assert cols["status"].nullable is False
        assert cols["created_at"].default_value == "now()"
        assert cols["score"].default_value == "-1"

    def test_keywords_inside_literals_are_ignored(self):
        tables = parse_create_table_statements("CREATE TABLE d (note TEXT DEFAULT 'NOT NULL')")
        assert tables[0].columns[0].nullable is True

    def test_inline_references(self):
        tables = parse_create_table_statements("CREATE TABLE orders (user_id INT REFERENCES users(id))")
        col = tables[0].columns[0]
        assert col.is_foreign_key is True
        assert (col.referenced_table, col.referenced_column) == ("users", "id")

    def test_fresh_ids_and_position_in_box(self):
        adapter = SQLAdapter(x_range=(100.0, 400.0), y_range=(100.0, 300.0), rng=random.Random(1))
        tables, _ = adapter.parse("CREATE TABLE a (id INT); CREATE TABLE b (id INT)")
        assert tables[0].id != tables[1].id
        assert tables[0].columns[0].id != tables[1].columns[0].id
        for table in tables:
            assert 100.0 <= table.position.x <= 500.0
            assert 100.0 <= table.position.y <= 400.0
            assert table.data == [] and table.row_count == 0


class TestParseDiagnostics:
    def test_table_level_clauses_are_skipped(self):
        """Composite keys and named constraints are reported, not imported."""
        tables, diagnostics = SQLAdapter().parse(
            "CREATE TABLE t (a INT, b INT, PRIMARY KEY (a, b), "
            "CONSTRAINT fk FOREIGN KEY (b) REFERENCES x(id))"
        )
        assert [c.name for c in tables[0].columns] == ["a", "b"]
        assert not any(c.is_primary_key for c in tables[0].columns)
        assert len(diagnostics) == 2
        assert all("table-level clause" in d.message for d in diagnostics)

    def test_broken_statement_does_not_stop_the_rest(self):
        tables, diagnostics = SQLAdapter().parse("CREATE TABLE broken; CREATE TABLE ok (id INT);")
        assert [t.name for t in tables] == ["ok"]
        assert len(diagnostics) == 1
        assert diagnostics[0].statement_index == 0
        assert "missing column definition block" in diagnostics[0].message

    def test_unterminated_block(self):
        tables, diagnostics = SQLAdapter().parse("CREATE TABLE t (id INT")
        assert tables == []
        assert diagnostics[0].message == "unbalanced parentheses"

    def test_missing_table_name(self):
        _, diagnostics = SQLAdapter().parse("CREATE TABLE (id INT)")
        assert diagnostics[0].message == "missing table name"

    def test_fragment_without_type(self):
        tables, diagnostics = SQLAdapter().parse("CREATE TABLE t (id INT, lonely)")
        assert [c.name for c in tables[0].columns] == ["id"]
        assert diagnostics[0].message == 'column "lonely" has no type in table "t"'

    def test_per_statement_results(self):
        results = SQLAdapter().parse_statements("CREATE TABLE a (id INT); CREATE TABLE;")
        assert results[0].table is not None and results[0].diagnostics == []
        assert results[1].table is None and len(results[1].diagnostics) == 1


class TestClassification:
    def test_classify_statements(self):
        results = classify_statements(
            "CREATE TABLE a (id INT); ALTER TABLE users ADD COLUMN age INT; "
            "DROP TABLE IF EXISTS old; CREATE UNIQUE INDEX i ON a (id); GRANT ALL ON a TO bob"
        )
        assert [r.kind for r in results] == [
            StatementKind.CREATE_TABLE, StatementKind.ALTER_TABLE, StatementKind.DROP_TABLE,
            StatementKind.CREATE_INDEX, StatementKind.OTHER,
        ]
        assert [r.table_name for r in results[:3]] == ["a", "users", "old"]
        assert results[1].operation == AlterKind.ADD_COLUMN
        assert len(results[4].diagnostics) == 1

    @pytest.mark.parametrize("statement, operation", [
        ("ALTER TABLE users ADD COLUMN age INT", AlterKind.ADD_COLUMN),
        ("ALTER TABLE users DROP COLUMN age", AlterKind.DROP_COLUMN),
        ("ALTER TABLE t ADD CONSTRAINT c CHECK (x > 0)", AlterKind.ADD_CONSTRAINT),
        ("alter table t drop constraint c", AlterKind.DROP_CONSTRAINT),
        ("ALTER TABLE users RENAME TO people", AlterKind.UNKNOWN),
    ])
    def test_parse_alter_statement(self, statement, operation):
        intent = parse_alter_statement(statement)
        assert intent.operation == operation
        assert intent.table_name in ("users", "t")

    def test_non_alter_statement(self):
        assert parse_alter_statement("SELECT 1") is None
        assert parse_alter_statement("") is None
