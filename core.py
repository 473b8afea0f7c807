"""
Schema Forge Core - Shared logic for the schema editor

This module contains the core components shared by main.py (CLI) and repl.py (interactive shell):
- AlterEngine: Apply ALTER-style operations to a single table
- SchemaStore: Own the current schema, apply mutations, re-validate and notify subscribers

Note: For loading schemas from files, use parser_factory.load_schema() which supports
both DDL (.sql, .ddl) and persisted schema JSON (.json).
"""
import copy
import logging
from enum import Enum
from typing import Callable, Dict, List, Any, Optional, Iterable, Tuple, Union

from Schema.schema_model import (
    Schema, Table, Column, Position, Relationship, Index, Constraint,
    Cardinality, ConstraintType, foreign_key_name, column_from_spec, apply_column_updates
)
from Schema.validator import Diagnostic, validate_schema, validate_table, validate_relationship
from Schema.adapters import SQLAdapter, ParseDiagnostic, StatementResult, emit
from config import (
    DEFAULT_SCHEMA_NAME, DEFAULT_OWNER, CANVAS_X_RANGE, CANVAS_Y_RANGE,
    DUPLICATE_OFFSET, DUPLICATE_SUFFIX, REQUIRE_PK_TARGET, DIALECT_ALIASES
)

logger = logging.getLogger(__name__)

Subscriber = Callable[[Schema, List[Diagnostic]], None]


class AlterOperation(str, Enum):
    ADD_COLUMN = "ADD_COLUMN"
    DROP_COLUMN = "DROP_COLUMN"
    MODIFY_COLUMN = "MODIFY_COLUMN"
    ADD_PRIMARY_KEY = "ADD_PRIMARY_KEY"
    DROP_PRIMARY_KEY = "DROP_PRIMARY_KEY"
    ADD_FOREIGN_KEY = "ADD_FOREIGN_KEY"
    DROP_FOREIGN_KEY = "DROP_FOREIGN_KEY"


class SQLImportError(ValueError):
    """No CREATE TABLE statement in the input could be parsed."""

    def __init__(self, message: str, diagnostics: Optional[List[ParseDiagnostic]] = None):
        super().__init__(message)
        self.diagnostics = list(diagnostics or [])


def _param(params: Dict, *keys: str, default: Any = None) -> Any:
    """First present key; payloads may use snake_case or camelCase."""
    if not isinstance(params, dict):
        return default
    for key in keys:
        if key in params:
            return params[key]
    return default


# =============================================================================
# ALTER ENGINE
# =============================================================================

class AlterEngine:
    """Apply ALTER operations to a copy of one table."""

    def __init__(self, table: Table):
        self.table = copy.deepcopy(table)
        self.changes: List[str] = []
        self.dropped_constraints: List[str] = []

    def apply(self, operation: Union[AlterOperation, str], payload: Any = None) -> Table:
        op = operation.value if isinstance(operation, AlterOperation) else str(operation)
        handler = getattr(self, f"_handle_{op.lower()}", None)
        if handler is None:
            logger.warning("Unknown alter operation %r on table %r ignored", op, self.table.name)
            return self.table
        handler(payload if payload is not None else {})
        return self.table

    def execute(self, operations: Iterable[Tuple[Union[AlterOperation, str], Any]]) -> Table:
        """Apply all operations in order and return the altered table."""
        for operation, payload in operations:
            self.apply(operation, payload)
        return self.table

    def _handle_add_column(self, params: Any) -> None:
        """ADD_COLUMN {column: {...}} or the column fields directly"""
        spec = params.get("column", params) if isinstance(params, dict) else params
        if not isinstance(spec, (dict, Column)):
            logger.debug("ADD_COLUMN on %r ignored: unusable column %r", self.table.name, spec)
            return
        column = column_from_spec(spec)
        self.table.add_column(column)
        self.changes.append(f"ADD_COLUMN:{self.table.name}.{column.name}")

    def _handle_drop_column(self, params: Dict) -> None:
        column = self.table.remove_column(_param(params, "column_id", "columnId"))
        if column:
            self.changes.append(f"DROP_COLUMN:{self.table.name}.{column.name}")

    def _handle_modify_column(self, params: Dict) -> None:
        column = self.table.get_column(_param(params, "column_id", "columnId"))
        if column and apply_column_updates(column, _param(params, "updates", default={})):
            self.changes.append(f"MODIFY_COLUMN:{self.table.name}.{column.name}")

    def _handle_add_primary_key(self, params: Dict) -> None:
        column_ids = _param(params, "column_ids", "columnIds", default=[])
        if not isinstance(column_ids, (list, tuple, set)):
            column_ids = []
        for column in self.table.columns:
            column.is_primary_key = column.id in column_ids
        self.changes.append(f"ADD_PRIMARY_KEY:{self.table.name}")

    def _handle_drop_primary_key(self, params: Dict) -> None:
        for column in self.table.columns:
            column.is_primary_key = False
        self.changes.append(f"DROP_PRIMARY_KEY:{self.table.name}")

    def _handle_add_foreign_key(self, params: Dict) -> None:
        column = self.table.get_column(_param(params, "column_id", "columnId"))
        if not column:
            return
        column.is_foreign_key = True
        column.referenced_table = _param(params, "referenced_table", "referencedTable")
        column.referenced_column = _param(params, "referenced_column", "referencedColumn")
        column.constraint_name = _param(params, "constraint_name", "constraintName")
        self.changes.append(f"ADD_FOREIGN_KEY:{self.table.name}.{column.name}")

    def _handle_drop_foreign_key(self, params: Dict) -> None:
        name = _param(params, "constraint_name", "constraintName")
        if name is None:
            return
        for column in self.table.columns:
            if column.constraint_name == name:
                column.clear_foreign_key()
        self.dropped_constraints.append(name)
        self.changes.append(f"DROP_FOREIGN_KEY:{self.table.name}.{name}")


# =============================================================================
# SCHEMA STORE
# =============================================================================

class SchemaStore:
    """
    Owner of the current schema.

    Every applied mutation touches updated_at, re-runs the validator and
    notifies subscribers. Mutations that reference missing tables, columns or
    relationships change nothing, notify nobody and return None.
    """

    TABLE_FIELDS = {"name": "name", "position": "position", "data": "data",
                    "row_count": "row_count", "rowCount": "row_count"}

    RELATIONSHIP_ENDPOINTS = {
        "source_table_id": "source_table_id", "sourceTableId": "source_table_id",
        "source_column_id": "source_column_id", "sourceColumnId": "source_column_id",
        "target_table_id": "target_table_id", "targetTableId": "target_table_id",
        "target_column_id": "target_column_id", "targetColumnId": "target_column_id",
    }

    def __init__(self, schema: Optional[Schema] = None, require_pk_target: bool = REQUIRE_PK_TARGET,
                 parser: Optional[SQLAdapter] = None):
        self.schema = schema or Schema.create(DEFAULT_SCHEMA_NAME, DEFAULT_OWNER)
        self.require_pk_target = require_pk_target
        self.parser = parser or SQLAdapter(CANVAS_X_RANGE, CANVAS_Y_RANGE)
        self._subscribers: List[Subscriber] = []
        self._diagnostics: List[Diagnostic] = validate_schema(self.schema, require_pk_target)

    # ========== Subscription ==========

    @property
    def diagnostics(self) -> List[Diagnostic]:
        return list(self._diagnostics)

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback(schema, diagnostics); returns an unsubscribe function."""
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)
        return unsubscribe

    def _commit(self, change: str) -> None:
        self.schema.touch()
        self._diagnostics = validate_schema(self.schema, self.require_pk_target)
        logger.debug("%s (%d diagnostics)", change, len(self._diagnostics))
        for callback in list(self._subscribers):
            try:
                callback(self.schema, self.diagnostics)
            except Exception:
                logger.exception("Schema subscriber %r failed", callback)

    # ========== Schema ==========

    def create_schema(self, name: str = DEFAULT_SCHEMA_NAME, owner: str = DEFAULT_OWNER) -> Schema:
        self.schema = Schema.create(name, owner)
        self._commit(f"CREATE_SCHEMA:{name}")
        return self.schema

    def load_schema(self, schema: Schema) -> Schema:
        """Replace the current schema, e.g. with one read from disk."""
        self.schema = schema
        self._commit(f"LOAD_SCHEMA:{schema.name}")
        return self.schema

    # ========== Tables ==========

    def add_table(self, name: str, columns: Iterable[Any] = (),
                  position: Optional[Any] = None) -> Table:
        table = Table(
            name=name,
            columns=[column_from_spec(c) for c in columns],
            position=Position.from_dict(position) if position is not None else self.parser.random_position()
        )
        self.schema.tables.append(table)
        self._commit(f"ADD_TABLE:{name}")
        return table

    def remove_table(self, table_id: str) -> Optional[Table]:
        """Remove a table with its relationships, indexes and constraints."""
        table = self.schema.get_table(table_id)
        if not table:
            logger.debug("remove_table: no table %s", table_id)
            return None

        for rel in [r for r in self.schema.relationships
                    if table_id in (r.source_table_id, r.target_table_id)]:
            self._detach_relationship(rel)
        self.schema.tables.remove(table)
        self.schema.indexes = [i for i in self.schema.indexes if i.table_id != table_id]
        self.schema.constraints = [c for c in self.schema.constraints if c.table_id != table_id]
        self._commit(f"REMOVE_TABLE:{table.name}")
        return table

    def update_table(self, table_id: str, **updates) -> Optional[Table]:
        """Shallow-merge name, position, data or row_count; id and columns are fixed."""
        table = self.schema.get_table(table_id)
        if not table:
            logger.debug("update_table: no table %s", table_id)
            return None
        if "name" in updates and not isinstance(updates["name"], str):
            logger.debug("update_table: rejected name %r", updates["name"])
            return None

        for key, value in updates.items():
            attr = self.TABLE_FIELDS.get(key)
            if attr == "position":
                value = Position.from_dict(value)
            if attr:
                setattr(table, attr, value)
        self._relink_table(table_id)
        self._commit(f"UPDATE_TABLE:{table.name}")
        return table

    def duplicate_table(self, table_id: str) -> Optional[Table]:
        """Copy a table with fresh ids, an offset position and no data."""
        table = self.schema.get_table(table_id)
        if not table:
            logger.debug("duplicate_table: no table %s", table_id)
            return None

        duplicate = Table(
            name=f"{table.name}{DUPLICATE_SUFFIX}",
            columns=[column_from_spec(c) for c in table.columns],
            position=Position(table.position.x + DUPLICATE_OFFSET, table.position.y + DUPLICATE_OFFSET)
        )
        self.schema.tables.append(duplicate)
        self._commit(f"DUPLICATE_TABLE:{table.name}")
        return duplicate

    def alter_table(self, table_id: str, operation: Union[AlterOperation, str],
                    payload: Any = None) -> Optional[Table]:
        return self.apply_alterations(table_id, [(operation, payload)])

    def apply_alterations(self, table_id: str,
                          operations: Iterable[Tuple[Union[AlterOperation, str], Any]]) -> Optional[Table]:
        """Apply a batch of ALTER operations, then prune relationships they invalidated."""
        table = self.schema.get_table(table_id)
        if not table:
            logger.debug("apply_alterations: no table %s", table_id)
            return None

        engine = AlterEngine(table)
        altered = engine.execute(operations)
        if altered.to_dict() == table.to_dict():
            return None

        self.schema.tables[self.schema.tables.index(table)] = altered
        self._prune_relationships(altered, engine.dropped_constraints)
        self._relink_table(table_id)
        self._commit(", ".join(engine.changes) or f"ALTER_TABLE:{altered.name}")
        return altered

    # ========== Columns ==========

    def add_column(self, table_id: str, column: Any) -> Optional[Column]:
        table = self.schema.get_table(table_id)
        if not table:
            logger.debug("add_column: no table %s", table_id)
            return None
        if not isinstance(column, (dict, Column)):
            logger.debug("add_column: unusable column %r", column)
            return None

        new_column = column_from_spec(column)
        table.add_column(new_column)
        self._commit(f"ADD_COLUMN:{table.name}.{new_column.name}")
        return new_column

    def remove_column(self, table_id: str, column_id: str) -> Optional[Column]:
        table = self.schema.get_table(table_id)
        column = table.get_column(column_id) if table else None
        if not column:
            logger.debug("remove_column: no column %s in table %s", column_id, table_id)
            return None

        for rel in [r for r in self.schema.relationships
                    if (r.source_table_id, r.source_column_id) == (table_id, column_id)
                    or (r.target_table_id, r.target_column_id) == (table_id, column_id)]:
            self._detach_relationship(rel)
        table.remove_column(column_id)
        self._commit(f"REMOVE_COLUMN:{table.name}.{column.name}")
        return column

    def update_column(self, table_id: str, column_id: str, **updates) -> Optional[Column]:
        """
        Shallow-merge column fields.

        The FK fields (is_foreign_key, referenced_table, referenced_column,
        constraint_name) of a column that is the source of a relationship are
        re-derived from that relationship afterwards, so overriding them here
        has no lasting effect; use remove_relationship to drop the FK.
        """
        table = self.schema.get_table(table_id)
        column = table.get_column(column_id) if table else None
        if not column:
            logger.debug("update_column: no column %s in table %s", column_id, table_id)
            return None

        if not apply_column_updates(column, updates):
            logger.debug("update_column: rejected updates %r", updates)
            return None
        self._relink_table(table_id)
        self._commit(f"UPDATE_COLUMN:{table.name}.{column.name}")
        return column

    # ========== Relationships ==========

    def add_relationship(self, source_table_id: str, source_column_id: str,
                         target_table_id: str, target_column_id: str,
                         cardinality: Union[Cardinality, str] = Cardinality.ONE_TO_MANY) -> Optional[Relationship]:
        rel = Relationship(
            source_table_id=source_table_id,
            source_column_id=source_column_id,
            target_table_id=target_table_id,
            target_column_id=target_column_id,
            cardinality=Cardinality.from_symbol(cardinality)
        )
        if not self._link(rel):
            logger.debug("add_relationship: endpoints do not resolve")
            return None

        self.schema.relationships.append(rel)
        self._commit(f"ADD_RELATIONSHIP:{rel.name}")
        return rel

    def remove_relationship(self, relationship_id: str) -> Optional[Relationship]:
        rel = self.schema.get_relationship(relationship_id)
        if not rel:
            logger.debug("remove_relationship: no relationship %s", relationship_id)
            return None

        self._detach_relationship(rel)
        self._commit(f"REMOVE_RELATIONSHIP:{rel.name}")
        return rel

    def update_relationship(self, relationship_id: str, **updates) -> Optional[Relationship]:
        """
        Merge cardinality and endpoint changes; a moved endpoint re-derives the FK.

        If any new endpoint does not resolve, nothing changes and None is returned.
        """
        rel = self.schema.get_relationship(relationship_id)
        if not rel:
            logger.debug("update_relationship: no relationship %s", relationship_id)
            return None

        endpoints = {self.RELATIONSHIP_ENDPOINTS[k]: v for k, v in updates.items()
                     if k in self.RELATIONSHIP_ENDPOINTS}
        moved = any(getattr(rel, attr) != value for attr, value in endpoints.items())
        if moved:
            candidate = copy.copy(rel)
            for attr, value in endpoints.items():
                setattr(candidate, attr, value)
            if self._resolve_endpoints(candidate) is None:
                logger.debug("update_relationship: endpoints of %s do not resolve", relationship_id)
                return None
            self._unlink(rel)
            for attr, value in endpoints.items():
                setattr(rel, attr, value)
            self._link(rel)

        if "cardinality" in updates:
            rel.cardinality = Cardinality.from_symbol(updates["cardinality"])

        self._commit(f"UPDATE_RELATIONSHIP:{rel.name}")
        return rel

    def _resolve_endpoints(self, rel: Relationship) -> Optional[Tuple[Table, Column, Table, Column]]:
        source_table = self.schema.get_table(rel.source_table_id)
        target_table = self.schema.get_table(rel.target_table_id)
        source_column = source_table.get_column(rel.source_column_id) if source_table else None
        target_column = target_table.get_column(rel.target_column_id) if target_table else None
        if not (source_table and target_table and source_column and target_column):
            return None
        return source_table, source_column, target_table, target_column

    def _link(self, rel: Relationship) -> bool:
        """Derive name and constraint name, and mirror the FK onto the source column."""
        endpoints = self._resolve_endpoints(rel)
        if endpoints is None:
            return False
        source_table, source_column, target_table, target_column = endpoints

        rel.name = rel.constraint_name = foreign_key_name(
            source_table.name, source_column.name, target_table.name, target_column.name
        )
        source_column.is_foreign_key = True
        source_column.referenced_table = target_table.name
        source_column.referenced_column = target_column.name
        source_column.constraint_name = rel.constraint_name
        return True

    def _unlink(self, rel: Relationship) -> None:
        column = self.schema.resolve_column(rel.source_table_id, rel.source_column_id)
        if column and column.constraint_name in (None, rel.constraint_name):
            column.clear_foreign_key()

    def _detach_relationship(self, rel: Relationship) -> None:
        self._unlink(rel)
        self.schema.relationships.remove(rel)

    def _relink_table(self, table_id: str) -> None:
        for rel in self.schema.relationships:
            if table_id in (rel.source_table_id, rel.target_table_id):
                self._link(rel)

    def _prune_relationships(self, table: Table, dropped_constraints: List[str]) -> None:
        """Drop relationships whose column on this table vanished or whose FK was dropped."""
        column_ids = {c.id for c in table.columns}
        for rel in list(self.schema.relationships):
            lost_source = rel.source_table_id == table.id and (
                rel.source_column_id not in column_ids or rel.constraint_name in dropped_constraints
            )
            lost_target = rel.target_table_id == table.id and rel.target_column_id not in column_ids
            if lost_source or lost_target:
                self._detach_relationship(rel)

    # ========== Indexes / Constraints ==========

    def add_index(self, table_id: str, columns: List[str], name: Optional[str] = None,
                  is_unique: bool = False) -> Optional[Index]:
        table = self.schema.get_table(table_id)
        if not table:
            logger.debug("add_index: no table %s", table_id)
            return None

        index = Index(
            name=name or f"idx_{table.name}_{'_'.join(columns)}",
            table_id=table_id,
            columns=list(columns),
            is_unique=is_unique
        )
        self.schema.indexes.append(index)
        self._commit(f"ADD_INDEX:{index.name}")
        return index

    def remove_index(self, index_id: str) -> Optional[Index]:
        index = self.schema.get_index(index_id)
        if not index:
            return None
        self.schema.indexes.remove(index)
        self._commit(f"REMOVE_INDEX:{index.name}")
        return index

    def add_constraint(self, table_id: str, constraint_type: Union[ConstraintType, str], name: str,
                       column_id: Optional[str] = None, expression: Optional[str] = None) -> Optional[Constraint]:
        if not self.schema.get_table(table_id):
            logger.debug("add_constraint: no table %s", table_id)
            return None
        try:
            constraint_type = ConstraintType(constraint_type)
        except ValueError:
            logger.debug("add_constraint: unknown constraint type %r", constraint_type)
            return None

        constraint = Constraint(
            name=name,
            constraint_type=constraint_type,
            table_id=table_id,
            column_id=column_id,
            expression=expression
        )
        self.schema.constraints.append(constraint)
        self._commit(f"ADD_CONSTRAINT:{name}")
        return constraint

    def remove_constraint(self, constraint_id: str) -> Optional[Constraint]:
        constraint = self.schema.get_constraint(constraint_id)
        if not constraint:
            return None
        self.schema.constraints.remove(constraint)
        self._commit(f"REMOVE_CONSTRAINT:{constraint.name}")
        return constraint

    # ========== Validation ==========

    def validate_schema(self) -> List[Diagnostic]:
        return validate_schema(self.schema, self.require_pk_target)

    def validate_table(self, table: Union[Table, str]) -> List[Diagnostic]:
        if isinstance(table, str):
            table = self.schema.get_table(table)
        return validate_table(table, self.schema) if table else []

    def validate_relationship(self, relationship: Union[Relationship, str]) -> List[Diagnostic]:
        if isinstance(relationship, str):
            relationship = self.schema.get_relationship(relationship)
        if not relationship:
            return []
        return validate_relationship(relationship, self.schema, self.require_pk_target)

    # ========== Export ==========

    def generate_sql(self) -> str:
        return self.export_schema("generic")

    def export_schema(self, dialect: str = "generic") -> str:
        """Render the schema for a dialect name or alias; unknown names use generic SQL."""
        name = (dialect or "generic").lower()
        return emit(self.schema, DIALECT_ALIASES.get(name, name))

    # ========== Import ==========

    def import_from_sql(self, ddl_content: str) -> List[ParseDiagnostic]:
        """
        Merge every CREATE TABLE in the text into the schema.

        Returns:
            Diagnostics for skipped statements and column fragments

        Raises:
            SQLImportError: when no table could be parsed; the schema is untouched
        """
        results = self.parser.parse_statements(ddl_content)
        diagnostics = [d for r in results for d in r.diagnostics]
        tables = [r.table for r in results if r.table is not None]
        if not tables:
            raise SQLImportError("No valid CREATE TABLE statements found", diagnostics)

        self._merge_tables(tables)
        return diagnostics

    def parse_sql_statement(self, ddl_content: str) -> List[StatementResult]:
        """Import any CREATE TABLE statements and report what every statement was."""
        results = self.parser.parse_statements(ddl_content)
        tables = [r.table for r in results if r.table is not None]
        if tables:
            self._merge_tables(tables)
        return results

    def _merge_tables(self, tables: List[Table]) -> None:
        self.schema.tables.extend(tables)
        self._resolve_references(tables)
        self._commit(f"IMPORT:{', '.join(t.name for t in tables)}")

    def _resolve_references(self, tables: List[Table]) -> None:
        """Create relationships for inline REFERENCES whose target exists."""
        for table in tables:
            for column in table.columns:
                if not (column.is_foreign_key and column.referenced_table):
                    continue
                target = self.schema.get_table_by_name(column.referenced_table)
                if not target:
                    continue
                if column.referenced_column:
                    target_column = target.get_column_by_name(column.referenced_column)
                else:
                    target_column = next(iter(target.get_primary_keys()), None)
                if not target_column:
                    continue

                rel = Relationship(
                    source_table_id=table.id,
                    source_column_id=column.id,
                    target_table_id=target.id,
                    target_column_id=target_column.id
                )
                self._link(rel)
                self.schema.relationships.append(rel)

    # ========== Persistence ==========

    def to_dict(self) -> Dict[str, Any]:
        return self.schema.to_dict()

    def to_json(self, indent: int = 2) -> str:
        return self.schema.to_json(indent)

    def save_to_file(self, path: str):
        self.schema.save_to_file(path)

    @classmethod
    def load_from_file(cls, path: str, **kwargs) -> 'SchemaStore':
        return cls(Schema.load_from_file(path), **kwargs)
