"""
Schema Validator - structural and referential checks over the schema model.

All functions are pure: they read a Schema and return Diagnostics in traversal
order (tables in collection order with their columns in declared order, then
relationships in collection order). They never raise and never mutate.
"""
import logging
from enum import Enum
from dataclasses import dataclass
from collections import Counter
from typing import Dict, List, Optional, Any

from .schema_model import Schema, Table, Relationship

logger = logging.getLogger(__name__)


class DiagnosticType(str, Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class Diagnostic:
    type: DiagnosticType
    message: str
    table_id: Optional[str] = None
    column_id: Optional[str] = None
    relationship_id: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return self.type == DiagnosticType.ERROR

    def to_dict(self) -> Dict[str, Any]:
        d = {"type": self.type.value, "message": self.message}
        if self.table_id is not None:
            d["tableId"] = self.table_id
        if self.column_id is not None:
            d["columnId"] = self.column_id
        if self.relationship_id is not None:
            d["relationshipId"] = self.relationship_id
        return d


def _error(message: str, **refs) -> Diagnostic:
    return Diagnostic(DiagnosticType.ERROR, message, **refs)


def _warning(message: str, **refs) -> Diagnostic:
    return Diagnostic(DiagnosticType.WARNING, message, **refs)


def validate_schema(schema: Schema, require_pk_target: bool = False) -> List[Diagnostic]:
    """Validate every table and relationship of the schema."""
    diagnostics: List[Diagnostic] = []

    tables_by_id: Dict[str, Table] = {}
    tables_by_name: Dict[str, Table] = {}
    for table in schema.tables:
        tables_by_id.setdefault(table.id, table)
        tables_by_name.setdefault(table.name, table)

    table_names = set()
    for table in schema.tables:
        key = _name_key(table.name)
        if key in table_names:
            diagnostics.append(_error(f"Duplicate table name: {table.name}", table_id=table.id))
        table_names.add(key)

        diagnostics.extend(validate_table(table, schema, tables_by_name))

    for relationship in schema.relationships:
        diagnostics.extend(validate_relationship(relationship, schema, require_pk_target, tables_by_id))

    logger.debug("Validated schema %r: %d diagnostics", schema.name, len(diagnostics))
    return diagnostics


def _name_key(name: Any) -> str:
    return "" if name is None else str(name).lower()


def validate_table(table: Table, schema: Schema,
                   tables_by_name: Optional[Dict[str, Table]] = None) -> List[Diagnostic]:
    """Primary key count, column name uniqueness and foreign key resolution for one table."""
    diagnostics: List[Diagnostic] = []
    if tables_by_name is None:
        tables_by_name = {}
        for other in schema.tables:
            tables_by_name.setdefault(other.name, other)

    if len(table.get_primary_keys()) > 1:
        diagnostics.append(_error(
            f'Table "{table.name}" cannot have multiple primary keys',
            table_id=table.id
        ))

    unique_counts = Counter(c.name for c in table.columns if c.is_unique)
    column_names = set()
    for column in table.columns:
        key = _name_key(column.name)
        if key in column_names:
            diagnostics.append(_error(
                f'Duplicate column name "{column.name}" in table "{table.name}"',
                table_id=table.id, column_id=column.id
            ))
        column_names.add(key)

        if column.is_foreign_key:
            diagnostics.extend(_validate_reference(table, column, tables_by_name))

        # Also caught by the duplicate name check above
        if unique_counts[column.name] > 1:
            diagnostics.append(_error(
                f'Duplicate unique constraint on column "{column.name}"',
                table_id=table.id, column_id=column.id
            ))

    return diagnostics


def _validate_reference(table: Table, column, tables_by_name: Dict[str, Table]) -> List[Diagnostic]:
    if not column.referenced_table:
        return [_error(
            f'Foreign key column "{column.name}" in table "{table.name}" does not reference a table',
            table_id=table.id, column_id=column.id
        )]

    referenced = tables_by_name.get(column.referenced_table)
    if referenced is None:
        return [_error(
            f'Referenced table "{column.referenced_table}" not found',
            table_id=table.id, column_id=column.id
        )]

    if column.referenced_column and referenced.get_column_by_name(column.referenced_column) is None:
        return [_error(
            f'Referenced column "{column.referenced_column}" not found in table "{column.referenced_table}"',
            table_id=table.id, column_id=column.id
        )]
    return []


def validate_relationship(relationship: Relationship, schema: Schema,
                          require_pk_target: bool = False,
                          tables_by_id: Optional[Dict[str, Table]] = None) -> List[Diagnostic]:
    """Endpoint resolution and self-reference check for one relationship."""
    diagnostics: List[Diagnostic] = []
    label = relationship.name or relationship.constraint_name
    rel_id = relationship.id

    if tables_by_id is None:
        source_table = schema.get_table(relationship.source_table_id)
        target_table = schema.get_table(relationship.target_table_id)
    else:
        source_table = tables_by_id.get(relationship.source_table_id)
        target_table = tables_by_id.get(relationship.target_table_id)

    if source_table is None:
        diagnostics.append(_error(f'Source table not found for relationship "{label}"', relationship_id=rel_id))
    if target_table is None:
        diagnostics.append(_error(f'Target table not found for relationship "{label}"', relationship_id=rel_id))

    if source_table is None or target_table is None:
        return diagnostics

    source_column = source_table.get_column(relationship.source_column_id)
    target_column = target_table.get_column(relationship.target_column_id)

    if source_column is None:
        diagnostics.append(_error(f'Source column not found for relationship "{label}"', relationship_id=rel_id))
    if target_column is None:
        diagnostics.append(_error(f'Target column not found for relationship "{label}"', relationship_id=rel_id))

    if source_table.id == target_table.id:
        diagnostics.append(_warning(
            f'Self-referencing relationship in table "{source_table.name}"',
            relationship_id=rel_id
        ))

    if require_pk_target and target_column is not None and not target_column.is_primary_key:
        diagnostics.append(_warning(
            f'Target column "{target_column.name}" of relationship "{label}" is not a primary key',
            relationship_id=rel_id
        ))

    return diagnostics


def has_errors(diagnostics: List[Diagnostic]) -> bool:
    return any(d.is_error for d in diagnostics)


__all__ = [
    'DiagnosticType', 'Diagnostic',
    'validate_schema', 'validate_table', 'validate_relationship', 'has_errors'
]
