# Schema Model - Tables, Columns, Relationships, Indexes, Constraints
# Canonical in-memory graph shared by the validator, parser, alter engine and emitters.

from enum import Enum
from typing import Dict, List, Optional, Any
from dataclasses import dataclass, field
from datetime import datetime, timezone
import json
import uuid


# ============================================================================
# ENUMS
# ============================================================================

class Cardinality(str, Enum):
    """Descriptive relationship multiplicity (never enforced structurally)."""
    ONE_TO_ONE = "1:1"
    ONE_TO_MANY = "1:N"
    MANY_TO_MANY = "N:M"

    @classmethod
    def from_symbol(cls, s: Any) -> 'Cardinality':
        if isinstance(s, cls):
            return s
        mapping = {
            "1:1": cls.ONE_TO_ONE, "ONE_TO_ONE": cls.ONE_TO_ONE,
            "1:N": cls.ONE_TO_MANY, "1:n": cls.ONE_TO_MANY, "ONE_TO_MANY": cls.ONE_TO_MANY,
            "N:M": cls.MANY_TO_MANY, "n:m": cls.MANY_TO_MANY, "MANY_TO_MANY": cls.MANY_TO_MANY,
        }
        return mapping.get(s, cls.ONE_TO_MANY) if isinstance(s, str) else cls.ONE_TO_MANY


class ConstraintType(str, Enum):
    CHECK = "CHECK"
    UNIQUE = "UNIQUE"
    NOT_NULL = "NOT_NULL"
    FOREIGN_KEY = "FOREIGN_KEY"
    PRIMARY_KEY = "PRIMARY_KEY"


class MemberRole(str, Enum):
    OWNER = "owner"
    EDITOR = "editor"
    VIEWER = "viewer"


# ============================================================================
# HELPERS
# ============================================================================

def _uid() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value: datetime) -> str:
    return value.isoformat()


def _parse_time(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            pass
    return _now()


def _coerce_enum(enum_cls, value: Any, default):
    try:
        return enum_cls(value)
    except ValueError:
        return default


# ============================================================================
# COLUMN
# ============================================================================

@dataclass
class Column:
    name: str
    type: str
    nullable: bool = True
    default_value: Optional[str] = None
    is_primary_key: bool = False
    is_foreign_key: bool = False
    is_unique: bool = False
    is_indexed: bool = False
    referenced_table: Optional[str] = None
    referenced_column: Optional[str] = None
    constraint_name: Optional[str] = None
    id: str = field(default_factory=_uid)

    def clear_foreign_key(self) -> None:
        self.is_foreign_key = False
        self.referenced_table = None
        self.referenced_column = None
        self.constraint_name = None

    def to_dict(self) -> Dict[str, Any]:
        d = {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "nullable": self.nullable,
            "isPrimaryKey": self.is_primary_key,
            "isForeignKey": self.is_foreign_key,
            "isUnique": self.is_unique,
            "isIndexed": self.is_indexed,
        }
        if self.default_value is not None:
            d["defaultValue"] = self.default_value
        if self.referenced_table is not None:
            d["referencedTable"] = self.referenced_table
        if self.referenced_column is not None:
            d["referencedColumn"] = self.referenced_column
        if self.constraint_name is not None:
            d["constraintName"] = self.constraint_name
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Column':
        return cls(
            name=data.get("name", ""),
            type=data.get("type", "VARCHAR(255)"),
            nullable=data.get("nullable", True),
            default_value=data.get("defaultValue"),
            is_primary_key=data.get("isPrimaryKey", False),
            is_foreign_key=data.get("isForeignKey", False),
            is_unique=data.get("isUnique", False),
            is_indexed=data.get("isIndexed", False),
            referenced_table=data.get("referencedTable"),
            referenced_column=data.get("referencedColumn"),
            constraint_name=data.get("constraintName"),
            id=data.get("id") or _uid()
        )


# Field names accepted by partial column updates (Store.update_column, MODIFY_COLUMN)
COLUMN_FIELDS = {
    "name": "name", "type": "type", "nullable": "nullable",
    "default_value": "default_value", "defaultValue": "default_value",
    "is_primary_key": "is_primary_key", "isPrimaryKey": "is_primary_key",
    "is_foreign_key": "is_foreign_key", "isForeignKey": "is_foreign_key",
    "is_unique": "is_unique", "isUnique": "is_unique",
    "is_indexed": "is_indexed", "isIndexed": "is_indexed",
    "referenced_table": "referenced_table", "referencedTable": "referenced_table",
    "referenced_column": "referenced_column", "referencedColumn": "referenced_column",
    "constraint_name": "constraint_name", "constraintName": "constraint_name",
}


def apply_column_updates(column: Column, updates: Dict[str, Any]) -> bool:
    """
    Shallow-merge known fields into a column. The id is never replaced.

    Returns False and leaves the column untouched when updates is not a dict
    or carries a name that is not a string.
    """
    if not isinstance(updates, dict) or not _has_valid_name(updates):
        return False
    for key, value in updates.items():
        attr = COLUMN_FIELDS.get(key)
        if attr:
            setattr(column, attr, value)
    return True


def _has_valid_name(updates: Dict[str, Any]) -> bool:
    return "name" not in updates or isinstance(updates["name"], str)


def column_from_spec(spec: Any) -> Column:
    """Build a fresh Column (new id) from a Column or a dict of fields."""
    if isinstance(spec, Column):
        spec = spec.to_dict()
    data = {k: v for k, v in dict(spec).items() if k != "id"}
    if not _has_valid_name(data):
        del data["name"]
    column = Column(name=data.get("name", ""), type=data.get("type", "VARCHAR(255)"))
    apply_column_updates(column, data)
    return column


# ============================================================================
# TABLE
# ============================================================================

@dataclass
class Position:
    x: float = 0.0
    y: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, data: Any) -> 'Position':
        if isinstance(data, Position):
            return cls(data.x, data.y)
        data = data or {}
        return cls(x=data.get("x", 0.0), y=data.get("y", 0.0))


@dataclass
class Table:
    name: str
    columns: List[Column] = field(default_factory=list)
    position: Position = field(default_factory=Position)
    data: List[Dict[str, Any]] = field(default_factory=list)
    row_count: int = 0
    id: str = field(default_factory=_uid)

    def get_column(self, column_id: str) -> Optional[Column]:
        return next((c for c in self.columns if c.id == column_id), None)

    def get_column_by_name(self, name: str) -> Optional[Column]:
        return next((c for c in self.columns if c.name == name), None)

    def get_primary_keys(self) -> List[Column]:
        return [c for c in self.columns if c.is_primary_key]

    def add_column(self, column: Column):
        self.columns.append(column)

    def remove_column(self, column_id: str) -> Optional[Column]:
        for i, c in enumerate(self.columns):
            if c.id == column_id:
                return self.columns.pop(i)
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "columns": [c.to_dict() for c in self.columns],
            "position": self.position.to_dict(),
            "data": list(self.data),
            "rowCount": self.row_count
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Table':
        return cls(
            name=data.get("name", ""),
            columns=[Column.from_dict(c) for c in data.get("columns", [])],
            position=Position.from_dict(data.get("position")),
            data=list(data.get("data", [])),
            row_count=data.get("rowCount", 0),
            id=data.get("id") or _uid()
        )


# ============================================================================
# RELATIONSHIP
# ============================================================================

def foreign_key_name(source_table: str, source_column: str,
                     target_table: str, target_column: str) -> str:
    """Deterministic constraint name for a relationship."""
    return f"FK_{source_table}_{source_column}_{target_table}_{target_column}"


@dataclass
class Relationship:
    source_table_id: str
    source_column_id: str
    target_table_id: str
    target_column_id: str
    cardinality: Cardinality = Cardinality.ONE_TO_MANY
    name: str = ""
    constraint_name: str = ""
    created_at: datetime = field(default_factory=_now)
    id: str = field(default_factory=_uid)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "sourceTableId": self.source_table_id,
            "sourceColumnId": self.source_column_id,
            "targetTableId": self.target_table_id,
            "targetColumnId": self.target_column_id,
            "cardinality": self.cardinality.value,
            "constraintName": self.constraint_name,
            "createdAt": _iso(self.created_at)
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Relationship':
        return cls(
            source_table_id=data.get("sourceTableId", ""),
            source_column_id=data.get("sourceColumnId", ""),
            target_table_id=data.get("targetTableId", ""),
            target_column_id=data.get("targetColumnId", ""),
            cardinality=Cardinality.from_symbol(data.get("cardinality", "1:N")),
            name=data.get("name", ""),
            constraint_name=data.get("constraintName", ""),
            created_at=_parse_time(data.get("createdAt")),
            id=data.get("id") or _uid()
        )


# ============================================================================
# INDEX / CONSTRAINT
# ============================================================================

@dataclass
class Index:
    name: str
    table_id: str
    columns: List[str] = field(default_factory=list)
    is_unique: bool = False
    id: str = field(default_factory=_uid)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "tableId": self.table_id,
            "columns": list(self.columns),
            "isUnique": self.is_unique
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Index':
        return cls(
            name=data.get("name", ""),
            table_id=data.get("tableId", ""),
            columns=list(data.get("columns", [])),
            is_unique=data.get("isUnique", False),
            id=data.get("id") or _uid()
        )


@dataclass
class Constraint:
    name: str
    constraint_type: ConstraintType
    table_id: str
    column_id: Optional[str] = None
    expression: Optional[str] = None
    id: str = field(default_factory=_uid)

    def to_dict(self) -> Dict[str, Any]:
        d = {
            "id": self.id,
            "name": self.name,
            "type": self.constraint_type.value,
            "tableId": self.table_id
        }
        if self.column_id is not None:
            d["columnId"] = self.column_id
        if self.expression is not None:
            d["expression"] = self.expression
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Constraint':
        return cls(
            name=data.get("name", ""),
            constraint_type=_coerce_enum(ConstraintType, data.get("type", "CHECK"), ConstraintType.CHECK),
            table_id=data.get("tableId", ""),
            column_id=data.get("columnId"),
            expression=data.get("expression"),
            id=data.get("id") or _uid()
        )


# ============================================================================
# MEMBER
# ============================================================================

@dataclass
class Member:
    username: str
    role: MemberRole = MemberRole.VIEWER
    joined_at: datetime = field(default_factory=_now)
    id: str = field(default_factory=_uid)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "username": self.username,
            "role": self.role.value,
            "joinedAt": _iso(self.joined_at)
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Member':
        return cls(
            username=data.get("username", ""),
            role=_coerce_enum(MemberRole, data.get("role", "viewer"), MemberRole.VIEWER),
            joined_at=_parse_time(data.get("joinedAt")),
            id=data.get("id") or _uid()
        )


# ============================================================================
# SCHEMA (TOP-LEVEL)
# ============================================================================

@dataclass
class Schema:
    name: str
    tables: List[Table] = field(default_factory=list)
    relationships: List[Relationship] = field(default_factory=list)
    indexes: List[Index] = field(default_factory=list)
    constraints: List[Constraint] = field(default_factory=list)
    members: List[Member] = field(default_factory=list)
    owner_id: str = ""
    is_shared: bool = False
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)
    id: str = field(default_factory=_uid)

    @classmethod
    def create(cls, name: str, owner: str) -> 'Schema':
        """Fresh schema with a single owner member and empty collections."""
        return cls(
            name=name,
            members=[Member(username=owner, role=MemberRole.OWNER)],
            owner_id=owner
        )

    def touch(self) -> None:
        self.updated_at = _now()

    # Lookups
    def get_table(self, table_id: str) -> Optional[Table]:
        return next((t for t in self.tables if t.id == table_id), None)

    def get_table_by_name(self, name: str) -> Optional[Table]:
        return next((t for t in self.tables if t.name == name), None)

    def get_relationship(self, relationship_id: str) -> Optional[Relationship]:
        return next((r for r in self.relationships if r.id == relationship_id), None)

    def get_index(self, index_id: str) -> Optional[Index]:
        return next((i for i in self.indexes if i.id == index_id), None)

    def get_constraint(self, constraint_id: str) -> Optional[Constraint]:
        return next((c for c in self.constraints if c.id == constraint_id), None)

    def resolve_column(self, table_id: str, column_id: str) -> Optional[Column]:
        table = self.get_table(table_id)
        return table.get_column(column_id) if table else None

    # Serialization
    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "tables": [t.to_dict() for t in self.tables],
            "relationships": [r.to_dict() for r in self.relationships],
            "indexes": [i.to_dict() for i in self.indexes],
            "constraints": [c.to_dict() for c in self.constraints],
            "members": [m.to_dict() for m in self.members],
            "ownerId": self.owner_id,
            "isShared": self.is_shared,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at)
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def save_to_file(self, path: str):
        with open(path, 'w', encoding='utf-8') as f:
            f.write(self.to_json())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Schema':
        return cls(
            name=data.get("name", "unknown"),
            tables=[Table.from_dict(t) for t in data.get("tables", [])],
            relationships=[Relationship.from_dict(r) for r in data.get("relationships", [])],
            indexes=[Index.from_dict(i) for i in data.get("indexes", [])],
            constraints=[Constraint.from_dict(c) for c in data.get("constraints", [])],
            members=[Member.from_dict(m) for m in data.get("members", [])],
            owner_id=data.get("ownerId", ""),
            is_shared=data.get("isShared", False),
            created_at=_parse_time(data.get("createdAt")),
            updated_at=_parse_time(data.get("updatedAt")),
            id=data.get("id") or _uid()
        )

    @classmethod
    def load_from_file(cls, path: str) -> 'Schema':
        with open(path, 'r', encoding='utf-8') as f:
            return cls.from_dict(json.load(f))


__all__ = [
    'Cardinality', 'ConstraintType', 'MemberRole',
    'Column', 'COLUMN_FIELDS', 'apply_column_updates', 'column_from_spec',
    'Position', 'Table', 'Relationship', 'foreign_key_name',
    'Index', 'Constraint', 'Member', 'Schema'
]
