"""
MongoDB Adapter - Export the schema model as MongoDB collection validators.
Each table becomes a collection with a $jsonSchema-style validator (bsonType per
column) and its index definitions.
"""
import json
from enum import Enum
from typing import Dict, Any, List

from ..schema_model import Schema, Table, Column


class TypeClass(str, Enum):
    """Coarse class of an opaque SQL column type."""
    INT = "int"
    STRING = "string"
    BOOL = "bool"
    DATE = "date"


def classify_type(type_str: str) -> TypeClass:
    """Classify a SQL type by case-insensitive substring; anything unknown is a string."""
    t = (type_str or "").lower()
    if "int" in t:
        return TypeClass.INT
    if "varchar" in t or "string" in t:
        return TypeClass.STRING
    if "bool" in t:
        return TypeClass.BOOL
    if "date" in t:
        return TypeClass.DATE
    return TypeClass.STRING


class MongoDBAdapter:
    """Adapter to export the schema model to MongoDB collection definitions."""

    # TypeClass -> BSON type
    TYPE_MAP = {
        TypeClass.INT: 'int',
        TypeClass.STRING: 'string',
        TypeClass.BOOL: 'bool',
        TypeClass.DATE: 'date',
    }

    # ========== Export Methods ==========

    @classmethod
    def export_to_json(cls, schema: Schema) -> Dict[str, Any]:
        """
        Export the schema to MongoDB collection definitions.

        Args:
            schema: The Schema to export

        Returns:
            {"database": ..., "collections": [...]} as a dictionary
        """
        return {
            "database": schema.name,
            "collections": [cls._export_table_to_collection(schema, table) for table in schema.tables]
        }

    @classmethod
    def _export_table_to_collection(cls, schema: Schema, table: Table) -> Dict[str, Any]:
        properties = {}
        for column in table.columns:
            properties[column.name] = cls._export_column_to_property(column)

        return {
            "name": table.name,
            "schema": {
                "bsonType": "object",
                "required": [c.name for c in table.columns if not c.nullable],
                "properties": properties
            },
            "indexes": cls._export_indexes(schema, table)
        }

    @classmethod
    def _export_column_to_property(cls, column: Column) -> Dict[str, Any]:
        """Export a column to a MongoDB property schema."""
        return {
            "bsonType": cls.TYPE_MAP[classify_type(column.type)],
            "description": f"{column.name} field"
        }

    @classmethod
    def _export_indexes(cls, schema: Schema, table: Table) -> List[Dict[str, Any]]:
        return [
            {
                "key": {name: 1 for name in index.columns},
                "unique": index.is_unique,
                "name": index.name
            }
            for index in schema.indexes
            if index.table_id == table.id
        ]

    @classmethod
    def export_to_json_string(cls, schema: Schema, indent: int = 2) -> str:
        """Export to a commented, formatted JSON string."""
        body = json.dumps(cls.export_to_json(schema), indent=indent, ensure_ascii=False)
        return f"// MongoDB Schema: {schema.name}\n\n{body}\n"


__all__ = ['TypeClass', 'classify_type', 'MongoDBAdapter']
