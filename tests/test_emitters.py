"""Tests for the SQL dialect emitter and the MongoDB emitter."""
import json

import pytest

from Schema.adapters import (
    SQLAdapter, MongoDBAdapter, TypeClass, classify_type, get_dialect, emit,
    parse_create_table_statements
)


GENERIC_SHOP = (
    "-- Database Schema: Untitled Schema\n\n"
    "CREATE TABLE users (\n"
    "  id INT NOT NULL PRIMARY KEY,\n"
    "  email VARCHAR(255) NOT NULL UNIQUE\n"
    ");\n\n"
    "CREATE TABLE orders (\n"
    "  id INT NOT NULL PRIMARY KEY,\n"
    "  user_id INT\n"
    ");\n\n"
    "ALTER TABLE orders ADD CONSTRAINT FK_orders_user_id_users_id "
    "FOREIGN KEY (user_id) REFERENCES users(id);\n"
)


class TestSQLEmitter:
    def test_generic_output(self, linked_shop):
        store = linked_shop[0]
        assert store.generate_sql() == GENERIC_SHOP

    def test_mysql(self, linked_shop):
        """MySQL quotes with backticks and uses AUTO_INCREMENT primary keys."""
        sql = linked_shop[0].export_schema("mysql")
        assert sql.startswith("-- MySQL Database Schema: Untitled Schema\n\n")
        assert "CREATE TABLE `users` (" in sql
        assert "  `id` INT NOT NULL AUTO_INCREMENT PRIMARY KEY," in sql
        assert ") ENGINE=InnoDB DEFAULT CHARSET=utf8mb4;" in sql
        assert "ALTER TABLE `orders` ADD CONSTRAINT `FK_orders_user_id_users_id` " \
               "FOREIGN KEY (`user_id`) REFERENCES `users`(`id`);" in sql

    def test_postgresql(self, linked_shop):
        sql = linked_shop[0].export_schema("postgresql")
        assert 'CREATE TABLE "users" (' in sql
        assert '  "id" INT NOT NULL PRIMARY KEY,' in sql
        assert "ENGINE" not in sql

    def test_sqlserver(self, linked_shop):
        sql = linked_shop[0].export_schema("sqlserver")
        assert "CREATE TABLE [users] (" in sql
        assert "  [id] INT NOT NULL IDENTITY(1,1) PRIMARY KEY," in sql

    def test_oracle(self, linked_shop):
        sql = linked_shop[0].export_schema("oracle")
        assert sql.startswith("-- Oracle Database Schema:")
        assert '  "id" INT NOT NULL PRIMARY KEY,' in sql

    def test_unknown_dialect_falls_back_to_generic(self, linked_shop):
        store = linked_shop[0]
        assert store.export_schema("cobol") == store.generate_sql()

    def test_aliases(self, linked_shop):
        store = linked_shop[0]
        assert store.export_schema("postgres") == store.export_schema("postgresql")
        assert store.export_schema("MSSQL") == store.export_schema("sqlserver")

    def test_default_value_clause(self, store):
        store.add_table("t", [{"name": "status", "type": "TEXT", "default_value": "'new'"}])
        assert "  status TEXT DEFAULT 'new'\n" in store.generate_sql()

    def test_indexes_and_constraints(self, shop):
        store, users, _ = shop
        store.add_index(users.id, ["email"], is_unique=True)
        store.add_constraint(users.id, "CHECK", "ck_users_id", expression="id > 0")
        store.add_constraint(users.id, "UNIQUE", "uq_users_email",
                             column_id=users.get_column_by_name("email").id)
        store.add_constraint(users.id, "NOT_NULL", "nn_users_id", column_id=users.columns[0].id)
        sql = store.generate_sql()
        assert sql.endswith(
            "CREATE UNIQUE INDEX idx_users_email ON users (email);\n"
            "ALTER TABLE users ADD CONSTRAINT ck_users_id CHECK (id > 0);\n"
            "ALTER TABLE users ADD CONSTRAINT uq_users_email UNIQUE (email);\n"
        )

    def test_identifier_escaping(self):
        assert get_dialect("postgresql").quote('a"b') == '"a""b"'
        assert get_dialect("sqlserver").quote("a]b") == "[a]]b]"
        assert get_dialect("generic").quote("plain") == "plain"

    @pytest.mark.parametrize("dialect", ["mysql", "postgresql", "sqlserver"])
    def test_quoted_names_reimport(self, store, dialect):
        store.add_table("my table", [{"name": "odd]`\"name", "type": "INT"}])
        tables = parse_create_table_statements(store.export_schema(dialect))
        assert [t.name for t in tables] == ["my table"]
        assert [c.name for c in tables[0].columns] == ['odd]`"name']

    def test_deterministic_and_pure(self, linked_shop):
        store = linked_shop[0]
        before = store.to_dict()
        first = store.export_schema("mysql")
        assert store.export_schema("mysql") == first
        assert store.to_dict() == before

    @pytest.mark.parametrize("dialect", ["generic", "mysql", "postgresql", "sqlserver", "oracle"])
    def test_round_trip(self, store, dialect):
        """Parsing exported DDL reproduces table names and (column, nullable) pairs."""
        store.add_table("people", [
            {"name": "id", "type": "INT", "nullable": False, "is_primary_key": True},
            {"name": "name", "type": "VARCHAR(100)", "nullable": False},
            {"name": "bio", "type": "TEXT"},
            {"name": "born", "type": "DATE"},
            {"name": "active", "type": "BOOLEAN", "nullable": False},
        ])
        store.add_table("pets", [{"name": "owner_id", "type": "INT"}])

        tables = parse_create_table_statements(SQLAdapter.export_to_sql(store.schema, get_dialect(dialect)))
        assert [t.name for t in tables] == ["people", "pets"]
        for parsed, original in zip(tables, store.schema.tables):
            assert [(c.name, c.nullable) for c in parsed.columns] == \
                [(c.name, c.nullable) for c in original.columns]


class TestMongoDBEmitter:
    @pytest.mark.parametrize("sql_type, expected", [
        ("INT", TypeClass.INT),
        ("bigint", TypeClass.INT),
        ("VARCHAR(20)", TypeClass.STRING),
        ("String", TypeClass.STRING),
        ("BOOLEAN", TypeClass.BOOL),
        ("DATE", TypeClass.DATE),
        ("DATETIME", TypeClass.DATE),
        ("DECIMAL(10,2)", TypeClass.STRING),
        ("", TypeClass.STRING),
    ])
    def test_classify_type(self, sql_type, expected):
        assert classify_type(sql_type) == expected

    def test_collections(self, shop):
        store, users, _ = shop
        store.add_index(users.id, ["email"], name="email_idx", is_unique=True)
        doc = MongoDBAdapter.export_to_json(store.schema)

        assert doc["database"] == "Untitled Schema"
        assert [c["name"] for c in doc["collections"]] == ["users", "orders"]
        users_doc = doc["collections"][0]
        assert users_doc["schema"] == {
            "bsonType": "object",
            "required": ["id", "email"],
            "properties": {
                "id": {"bsonType": "int", "description": "id field"},
                "email": {"bsonType": "string", "description": "email field"},
            },
        }
        assert users_doc["indexes"] == [{"key": {"email": 1}, "unique": True, "name": "email_idx"}]
        assert doc["collections"][1]["schema"]["required"] == ["id"]
        assert doc["collections"][1]["indexes"] == []

    def test_script_header(self, shop):
        store = shop[0]
        script = emit(store.schema, "mongodb")
        header, body = script.split("\n\n", 1)
        assert header == "// MongoDB Schema: Untitled Schema"
        assert json.loads(body) == MongoDBAdapter.export_to_json(store.schema)

    def test_store_alias(self, shop):
        store = shop[0]
        assert store.export_schema("mongo") == store.export_schema("mongodb")
