from .schema_model import (
    Cardinality, ConstraintType, MemberRole,
    Column, Position, Table, Relationship, Index, Constraint, Member, Schema,
    foreign_key_name, column_from_spec, apply_column_updates
)
from .validator import (
    DiagnosticType, Diagnostic,
    validate_schema, validate_table, validate_relationship, has_errors
)
