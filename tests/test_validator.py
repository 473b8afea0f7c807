"""Tests for schema validation diagnostics."""
from Schema.schema_model import Schema, Table, Column, Relationship
from Schema.validator import (
    DiagnosticType, validate_schema, validate_table, validate_relationship, has_errors
)


def _schema(*tables, relationships=()):
    return Schema(name="s", tables=list(tables), relationships=list(relationships))


def _messages(diagnostics):
    return [d.message for d in diagnostics]


class TestValidateSchema:
    def test_empty_schema_is_clean(self):
        assert validate_schema(_schema()) == []

    def test_duplicate_table_names_ignore_case(self):
        """A second table differing only in case yields exactly one error."""
        diagnostics = validate_schema(_schema(Table(name="users"), Table(name="Users")))
        assert len(diagnostics) == 1
        assert diagnostics[0].type == DiagnosticType.ERROR
        assert diagnostics[0].message == "Duplicate table name: Users"

    def test_deterministic(self):
        """Repeated validation returns identical, identically ordered lists."""
        t1 = Table(name="a", columns=[Column(name="x", type="INT", is_primary_key=True),
                                      Column(name="y", type="INT", is_primary_key=True)])
        t2 = Table(name="A")
        schema = _schema(t1, t2)
        assert validate_schema(schema) == validate_schema(schema)

    def test_missing_names_are_reported_not_raised(self):
        t1 = Table(name=None, columns=[Column(name=None, type="INT"), Column(name=None, type="INT")])
        t2 = Table(name=None)
        assert _messages(validate_schema(_schema(t1, t2))) == [
            'Duplicate column name "None" in table "None"',
            "Duplicate table name: None",
        ]

    def test_tables_before_relationships(self):
        table = Table(name="t", columns=[Column(name="a", type="INT", is_primary_key=True),
                                         Column(name="b", type="INT", is_primary_key=True)])
        rel = Relationship("missing", "c", table.id, table.columns[0].id, name="r")
        diagnostics = validate_schema(_schema(table, relationships=[rel]))
        assert _messages(diagnostics) == [
            'Table "t" cannot have multiple primary keys',
            'Source table not found for relationship "r"',
        ]


class TestValidateTable:
    def test_multiple_primary_keys(self):
        table = Table(name="t", columns=[Column(name="a", type="INT", is_primary_key=True),
                                         Column(name="b", type="INT", is_primary_key=True)])
        diagnostics = validate_table(table, _schema(table))
        assert _messages(diagnostics) == ['Table "t" cannot have multiple primary keys']
        assert diagnostics[0].table_id == table.id

    def test_duplicate_column_name_ignores_case(self):
        table = Table(name="t", columns=[Column(name="id", type="INT"), Column(name="ID", type="INT")])
        diagnostics = validate_table(table, _schema(table))
        assert _messages(diagnostics) == ['Duplicate column name "ID" in table "t"']
        assert diagnostics[0].column_id == table.columns[1].id

    def test_duplicate_unique_columns(self):
        """Two unique columns with the same name report the name clash and both unique twins."""
        table = Table(name="t", columns=[Column(name="email", type="TEXT", is_unique=True),
                                         Column(name="email", type="TEXT", is_unique=True)])
        assert _messages(validate_table(table, _schema(table))) == [
            'Duplicate unique constraint on column "email"',
            'Duplicate column name "email" in table "t"',
            'Duplicate unique constraint on column "email"',
        ]

    def test_foreign_key_without_table(self):
        table = Table(name="orders", columns=[Column(name="user_id", type="INT", is_foreign_key=True)])
        assert _messages(validate_table(table, _schema(table))) == [
            'Foreign key column "user_id" in table "orders" does not reference a table'
        ]

    def test_foreign_key_to_missing_table(self):
        table = Table(name="orders", columns=[
            Column(name="user_id", type="INT", is_foreign_key=True, referenced_table="users")
        ])
        assert _messages(validate_table(table, _schema(table))) == ['Referenced table "users" not found']

    def test_foreign_key_to_missing_column(self):
        users = Table(name="users", columns=[Column(name="id", type="INT")])
        orders = Table(name="orders", columns=[
            Column(name="user_id", type="INT", is_foreign_key=True,
                   referenced_table="users", referenced_column="uid")
        ])
        assert _messages(validate_table(orders, _schema(users, orders))) == [
            'Referenced column "uid" not found in table "users"'
        ]

    def test_resolved_foreign_key_is_clean(self):
        users = Table(name="users", columns=[Column(name="id", type="INT")])
        orders = Table(name="orders", columns=[
            Column(name="user_id", type="INT", is_foreign_key=True,
                   referenced_table="users", referenced_column="id")
        ])
        assert validate_table(orders, _schema(users, orders)) == []


class TestValidateRelationship:
    def test_missing_tables_stop_early(self):
        rel = Relationship("nope", "c1", "gone", "c2", name="r")
        assert _messages(validate_relationship(rel, _schema())) == [
            'Source table not found for relationship "r"',
            'Target table not found for relationship "r"',
        ]

    def test_missing_columns(self):
        a = Table(name="a", columns=[Column(name="x", type="INT")])
        b = Table(name="b", columns=[Column(name="y", type="INT")])
        rel = Relationship(a.id, "stale", b.id, "stale", name="r")
        assert _messages(validate_relationship(rel, _schema(a, b))) == [
            'Source column not found for relationship "r"',
            'Target column not found for relationship "r"',
        ]

    def test_self_reference_is_warning(self):
        table = Table(name="employees", columns=[Column(name="id", type="INT", is_primary_key=True),
                                                 Column(name="manager_id", type="INT")])
        rel = Relationship(table.id, table.columns[1].id, table.id, table.columns[0].id, name="r")
        diagnostics = validate_relationship(rel, _schema(table))
        assert [(d.type, d.message) for d in diagnostics] == [
            (DiagnosticType.WARNING, 'Self-referencing relationship in table "employees"')
        ]
        assert not has_errors(diagnostics)

    def test_non_primary_key_target_warns_when_enabled(self):
        a = Table(name="a", columns=[Column(name="ref", type="INT")])
        b = Table(name="b", columns=[Column(name="code", type="INT")])
        rel = Relationship(a.id, a.columns[0].id, b.id, b.columns[0].id, name="r")
        assert validate_relationship(rel, _schema(a, b)) == []
        diagnostics = validate_relationship(rel, _schema(a, b), require_pk_target=True)
        assert [d.type for d in diagnostics] == [DiagnosticType.WARNING]


def test_diagnostic_to_dict():
    table = Table(name="t", columns=[Column(name="a", type="INT", is_primary_key=True),
                                     Column(name="b", type="INT", is_primary_key=True)])
    d = validate_table(table, _schema(table))[0].to_dict()
    assert d == {"type": "error", "message": 'Table "t" cannot have multiple primary keys', "tableId": table.id}
