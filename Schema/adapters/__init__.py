from ..schema_model import Schema
from .dialects import Dialect, DIALECTS, GENERIC, get_dialect
from .sql_adapter import (
    SQLAdapter, DDLParseError, ParseDiagnostic, StatementResult, StatementKind,
    AlterIntent, AlterKind, parse_create_table_statements, parse_alter_statement,
    classify_statements
)
from .mongodb_adapter import MongoDBAdapter, TypeClass, classify_type


def emit(schema: Schema, dialect: str = "generic") -> str:
    """Render the schema for a SQL dialect or as a MongoDB script."""
    if (dialect or "").lower() == "mongodb":
        return MongoDBAdapter.export_to_json_string(schema)
    return SQLAdapter.export_to_sql(schema, get_dialect(dialect))
