"""
SQL Adapter - Parse SQL DDL to the schema model and export it back as SQL.

Parsing is tolerant: every CREATE TABLE statement is handled on its own and a
statement that cannot be read is reported as a ParseDiagnostic while the rest
of the input is still parsed. ALTER TABLE statements are classified but never
applied.
"""
import logging
import random
from enum import Enum
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Any

from ..schema_model import Schema, Table, Column, Position, ConstraintType
from .ddl_lexer import (
    Token, TokenKind, remove_comments, tokenize,
    split_statements, split_top_level, render
)
from .dialects import Dialect, GENERIC

logger = logging.getLogger(__name__)


class DDLParseError(ValueError):
    """Raised inside the parser when a single statement or column cannot be read."""


class StatementKind(str, Enum):
    CREATE_TABLE = "CREATE_TABLE"
    CREATE_INDEX = "CREATE_INDEX"
    ALTER_TABLE = "ALTER_TABLE"
    DROP_TABLE = "DROP_TABLE"
    OTHER = "OTHER"


class AlterKind(str, Enum):
    ADD_COLUMN = "ADD_COLUMN"
    DROP_COLUMN = "DROP_COLUMN"
    ADD_CONSTRAINT = "ADD_CONSTRAINT"
    DROP_CONSTRAINT = "DROP_CONSTRAINT"
    UNKNOWN = "UNKNOWN"


@dataclass
class ParseDiagnostic:
    statement_index: int
    message: str
    statement: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "statementIndex": self.statement_index,
            "message": self.message,
            "statement": self.statement
        }

    def __str__(self) -> str:
        return f"Statement {self.statement_index + 1}: {self.message}"


@dataclass
class AlterIntent:
    table_name: Optional[str]
    operation: AlterKind
    statement: str = ""


@dataclass
class StatementResult:
    """Outcome of one ';'-separated statement."""
    index: int
    kind: StatementKind
    statement: str
    table_name: Optional[str] = None
    table: Optional[Table] = None
    operation: Optional[AlterKind] = None
    diagnostics: List[ParseDiagnostic] = field(default_factory=list)


class _Cursor:
    """Sequential reader over one statement's tokens."""

    def __init__(self, tokens: List[Token]):
        self.tokens = tokens
        self.pos = 0

    @property
    def at_end(self) -> bool:
        return self.pos >= len(self.tokens)

    def peek(self, offset: int = 0) -> Optional[Token]:
        i = self.pos + offset
        return self.tokens[i] if i < len(self.tokens) else None

    def advance(self) -> Optional[Token]:
        token = self.peek()
        if token is not None:
            self.pos += 1
        return token

    def accept_word(self, *words: str) -> bool:
        token = self.peek()
        if token is not None and token.is_word(*words):
            self.pos += 1
            return True
        return False

    def accept_sequence(self, *words: str) -> bool:
        for offset, word in enumerate(words):
            token = self.peek(offset)
            if token is None or not token.is_word(word):
                return False
        self.pos += len(words)
        return True

    def peek_punct(self, char: str) -> bool:
        token = self.peek()
        return token is not None and token.is_punct(char)

    def take_group(self) -> List[Token]:
        """Consume a balanced '( ... )' group and return the inner tokens."""
        start = self.pos
        depth = 0
        while not self.at_end:
            token = self.advance()
            if token.is_punct("("):
                depth += 1
            elif token.is_punct(")"):
                depth -= 1
                if depth == 0:
                    return self.tokens[start + 1:self.pos - 1]
        raise DDLParseError("unbalanced parentheses")


class SQLAdapter:
    """Adapter to parse SQL DDL into the schema model and export it per dialect."""

    # Words that may follow the base type name and belong to the type
    TYPE_SUFFIX_WORDS = ('PRECISION', 'VARYING')
    TYPE_TRAILING_WORDS = ('UNSIGNED', 'ZEROFILL')

    def __init__(self, x_range: Tuple[float, float] = (100.0, 400.0),
                 y_range: Tuple[float, float] = (100.0, 300.0),
                 rng: Optional[random.Random] = None):
        self.x_range = x_range
        self.y_range = y_range
        self.rng = rng or random.Random()

    # ========== Parse Methods ==========

    def parse(self, ddl_content: str) -> Tuple[List[Table], List[ParseDiagnostic]]:
        """Parse DDL text and return (tables, diagnostics)."""
        tables: List[Table] = []
        diagnostics: List[ParseDiagnostic] = []
        for result in self.parse_statements(ddl_content):
            if result.table is not None:
                tables.append(result.table)
            diagnostics.extend(result.diagnostics)
        return tables, diagnostics

    def parse_statements(self, ddl_content: str) -> List[StatementResult]:
        """Classify every statement and build a Table for each readable CREATE TABLE."""
        tokens = tokenize(remove_comments(ddl_content))
        results = []

        for index, statement in enumerate(split_statements(tokens)):
            kind = self._classify(statement)
            snippet = render(statement)
            result = StatementResult(index=index, kind=kind, statement=snippet)

            if kind == StatementKind.CREATE_TABLE:
                try:
                    table, fragment_errors = self._parse_create_table(statement)
                except DDLParseError as e:
                    logger.debug("Skipping statement %d: %s", index, e)
                    result.diagnostics.append(ParseDiagnostic(index, str(e), snippet))
                else:
                    result.table = table
                    result.table_name = table.name
                    result.diagnostics.extend(
                        ParseDiagnostic(index, message, snippet) for message in fragment_errors
                    )
            elif kind == StatementKind.ALTER_TABLE:
                intent = self._alter_intent(statement, snippet)
                result.table_name = intent.table_name
                result.operation = intent.operation
            elif kind == StatementKind.DROP_TABLE:
                result.table_name = self._name_after(statement, 2)
            elif kind == StatementKind.OTHER:
                result.diagnostics.append(ParseDiagnostic(index, "Unrecognized statement skipped", snippet))

            results.append(result)

        return results

    def parse_alter_statement(self, statement: str) -> Optional[AlterIntent]:
        """Classify a single ALTER TABLE statement; None when it is not one."""
        tokens = tokenize(remove_comments(statement))
        statements = split_statements(tokens)
        if not statements or self._classify(statements[0]) != StatementKind.ALTER_TABLE:
            return None
        return self._alter_intent(statements[0], render(statements[0]))

    def _classify(self, statement: List[Token]) -> StatementKind:
        first = statement[0]
        second = statement[1] if len(statement) > 1 else None
        third = statement[2] if len(statement) > 2 else None

        if first.is_word("CREATE") and second is not None:
            if second.is_word("TABLE"):
                return StatementKind.CREATE_TABLE
            if second.is_word("INDEX") or (second.is_word("UNIQUE") and third is not None and third.is_word("INDEX")):
                return StatementKind.CREATE_INDEX
        if first.is_word("ALTER") and second is not None and second.is_word("TABLE"):
            return StatementKind.ALTER_TABLE
        if first.is_word("DROP") and second is not None and second.is_word("TABLE"):
            return StatementKind.DROP_TABLE
        return StatementKind.OTHER

    def _alter_intent(self, statement: List[Token], snippet: str) -> AlterIntent:
        words = " ".join(t.upper for t in statement if t.kind == TokenKind.WORD)
        if "ADD COLUMN" in words:
            operation = AlterKind.ADD_COLUMN
        elif "DROP COLUMN" in words:
            operation = AlterKind.DROP_COLUMN
        elif "ADD CONSTRAINT" in words:
            operation = AlterKind.ADD_CONSTRAINT
        elif "DROP CONSTRAINT" in words:
            operation = AlterKind.DROP_CONSTRAINT
        else:
            operation = AlterKind.UNKNOWN
        return AlterIntent(table_name=self._name_after(statement, 2), operation=operation, statement=snippet)

    def _name_after(self, statement: List[Token], offset: int) -> Optional[str]:
        cursor = _Cursor(statement)
        cursor.pos = offset
        if not cursor.accept_sequence("IF", "EXISTS"):
            cursor.accept_sequence("IF", "NOT", "EXISTS")
        try:
            return self._parse_qualified_name(cursor)
        except DDLParseError:
            return None

    def _parse_qualified_name(self, cursor: _Cursor) -> str:
        """Identifier with optional schema prefix; keeps the last part."""
        token = cursor.peek()
        if token is None or not token.is_identifier:
            raise DDLParseError("missing table name")
        cursor.advance()
        name = token.value
        while cursor.peek_punct(".") and cursor.peek(1) is not None and cursor.peek(1).is_identifier:
            cursor.advance()
            name = cursor.advance().value
        return name

    def _parse_create_table(self, statement: List[Token]) -> Tuple[Table, List[str]]:
        cursor = _Cursor(statement)
        cursor.accept_sequence("CREATE", "TABLE")
        cursor.accept_sequence("IF", "NOT", "EXISTS")

        table_name = self._parse_qualified_name(cursor)
        if not cursor.peek_punct("("):
            raise DDLParseError(f'missing column definition block for table "{table_name}"')
        body = cursor.take_group()

        columns: List[Column] = []
        fragment_errors: List[str] = []
        for fragment in split_top_level(body):
            if self._is_table_clause(fragment):
                fragment_errors.append(
                    f'table-level clause not supported in "{table_name}", skipped: {render(fragment)}'
                )
                continue
            try:
                columns.append(self._parse_column(fragment))
            except DDLParseError as e:
                fragment_errors.append(f'{e} in table "{table_name}"')

        table = Table(name=table_name, columns=columns, position=self.random_position())
        return table, fragment_errors

    def _is_table_clause(self, fragment: List[Token]) -> bool:
        first = fragment[0]
        second = fragment[1] if len(fragment) > 1 else None
        third = fragment[2] if len(fragment) > 2 else None

        if first.is_word("CONSTRAINT"):
            return True
        if first.is_word("PRIMARY", "FOREIGN"):
            return second is not None and second.is_word("KEY")
        if first.is_word("UNIQUE", "CHECK", "KEY", "INDEX", "FULLTEXT"):
            if second is None:
                return False
            return second.is_punct("(") or second.is_word("KEY", "INDEX") or \
                (third is not None and third.is_punct("("))
        return False

    def _parse_column(self, fragment: List[Token]) -> Column:
        """Parse a single column definition: name, type, then column constraints."""
        cursor = _Cursor(fragment)

        name_token = cursor.advance()
        if not name_token.is_identifier:
            raise DDLParseError(f"expected a column name, found {name_token.text!r}")
        column = Column(name=name_token.value, type="")
        column.type = self._parse_type(cursor, column.name)

        while not cursor.at_end:
            if cursor.accept_sequence("NOT", "NULL"):
                column.nullable = False
            elif cursor.accept_sequence("PRIMARY", "KEY"):
                column.is_primary_key = True
            elif cursor.accept_word("UNIQUE"):
                column.is_unique = True
                cursor.accept_word("KEY")
            elif cursor.accept_word("DEFAULT"):
                column.default_value = self._parse_default(cursor)
            elif cursor.accept_word("REFERENCES"):
                self._parse_references(cursor, column)
            elif cursor.peek_punct("("):
                cursor.take_group()
            else:
                cursor.advance()

        return column

    def _parse_type(self, cursor: _Cursor, column_name: str) -> str:
        token = cursor.peek()
        if token is None or token.kind != TokenKind.WORD:
            raise DDLParseError(f'column "{column_name}" has no type')
        parts = [cursor.advance()]

        while cursor.peek() is not None and cursor.peek().is_word(*self.TYPE_SUFFIX_WORDS):
            parts.append(cursor.advance())
        if cursor.peek_punct("("):
            start = cursor.pos
            cursor.take_group()
            parts.extend(cursor.tokens[start:cursor.pos])
        # Array suffix: INT[] / TEXT[][]
        while cursor.peek() is not None and cursor.peek().value == "[" \
                and cursor.peek(1) is not None and cursor.peek(1).value == "]":
            parts.extend([cursor.advance(), cursor.advance()])
        while cursor.peek() is not None and cursor.peek().is_word(*self.TYPE_TRAILING_WORDS):
            parts.append(cursor.advance())

        return render(parts).replace(" [", "[").replace("[ ", "[").replace(" ]", "]")

    def _parse_default(self, cursor: _Cursor) -> Optional[str]:
        token = cursor.peek()
        if token is None:
            return None
        if token.is_punct("("):
            start = cursor.pos
            cursor.take_group()
            return render(cursor.tokens[start:cursor.pos])

        parts = [cursor.advance()]
        if token.kind == TokenKind.OTHER and token.value in "+-" and cursor.peek() is not None:
            parts.append(cursor.advance())
        elif token.kind == TokenKind.WORD and cursor.peek_punct("("):
            start = cursor.pos
            cursor.take_group()
            parts.extend(cursor.tokens[start:cursor.pos])
        return render(parts)

    def _parse_references(self, cursor: _Cursor, column: Column) -> None:
        try:
            column.referenced_table = self._parse_qualified_name(cursor)
        except DDLParseError:
            return
        column.is_foreign_key = True
        if cursor.peek_punct("("):
            inner = cursor.take_group()
            names = [t.value for t in inner if t.is_identifier]
            if names:
                column.referenced_column = names[0]

    def random_position(self) -> Position:
        x_min, x_span = self.x_range
        y_min, y_span = self.y_range
        return Position(
            x=self.rng.random() * x_span + x_min,
            y=self.rng.random() * y_span + y_min
        )

    # ========== Export Methods ==========

    @classmethod
    def export_to_sql(cls, schema: Schema, dialect: Dialect = GENERIC) -> str:
        """
        Export the schema as DDL for one SQL dialect.

        Args:
            schema: The Schema to export
            dialect: Quoting, primary key clause and table suffix to use

        Returns:
            CREATE TABLE blocks, then foreign keys, indexes and named constraints
        """
        q = dialect.quote
        sql = f"-- {dialect.label} Schema: {schema.name}\n\n"

        for table in schema.tables:
            sql += f"CREATE TABLE {q(table.name)} (\n"
            sql += ",\n".join(cls._export_column(column, dialect) for column in table.columns)
            suffix = f" {dialect.table_suffix}" if dialect.table_suffix else ""
            sql += f"\n){suffix};\n\n"

        for relationship in schema.relationships:
            source_table = schema.get_table(relationship.source_table_id)
            target_table = schema.get_table(relationship.target_table_id)
            source_column = source_table.get_column(relationship.source_column_id) if source_table else None
            target_column = target_table.get_column(relationship.target_column_id) if target_table else None

            if source_table and target_table and source_column and target_column:
                sql += f"ALTER TABLE {q(source_table.name)} ADD CONSTRAINT {q(relationship.constraint_name)} "
                sql += f"FOREIGN KEY ({q(source_column.name)}) REFERENCES {q(target_table.name)}({q(target_column.name)});\n"

        for index in schema.indexes:
            table = schema.get_table(index.table_id)
            if table:
                columns = ", ".join(q(c) for c in index.columns)
                unique = "UNIQUE " if index.is_unique else ""
                sql += f"CREATE {unique}INDEX {q(index.name)} ON {q(table.name)} ({columns});\n"

        for constraint in schema.constraints:
            sql += cls._export_constraint(schema, constraint, dialect)

        return sql

    @classmethod
    def _export_column(cls, column: Column, dialect: Dialect) -> str:
        """Export a column to its definition clause."""
        parts = [f"  {dialect.quote(column.name)} {column.type}"]
        if not column.nullable:
            parts.append("NOT NULL")
        if column.default_value:
            parts.append(f"DEFAULT {column.default_value}")
        if column.is_primary_key:
            parts.append(dialect.primary_key_clause)
        if column.is_unique:
            parts.append("UNIQUE")
        return " ".join(parts)

    @classmethod
    def _export_constraint(cls, schema: Schema, constraint, dialect: Dialect) -> str:
        """CHECK and UNIQUE constraints; the others are carried by column flags."""
        table = schema.get_table(constraint.table_id)
        if table is None:
            return ""
        q = dialect.quote

        if constraint.constraint_type == ConstraintType.CHECK and constraint.expression:
            return f"ALTER TABLE {q(table.name)} ADD CONSTRAINT {q(constraint.name)} CHECK ({constraint.expression});\n"
        if constraint.constraint_type == ConstraintType.UNIQUE and constraint.column_id:
            column = table.get_column(constraint.column_id)
            if column:
                return f"ALTER TABLE {q(table.name)} ADD CONSTRAINT {q(constraint.name)} UNIQUE ({q(column.name)});\n"
        return ""


def parse_create_table_statements(ddl_content: str) -> List[Table]:
    """Tables for every readable CREATE TABLE statement; unreadable ones are skipped."""
    tables, _ = SQLAdapter().parse(ddl_content)
    return tables


def parse_alter_statement(statement: str) -> Optional[AlterIntent]:
    return SQLAdapter().parse_alter_statement(statement)


def classify_statements(ddl_content: str) -> List[StatementResult]:
    """Statement kind and table name for every statement, tables included."""
    return SQLAdapter().parse_statements(ddl_content)


__all__ = [
    'DDLParseError', 'StatementKind', 'AlterKind', 'ParseDiagnostic', 'AlterIntent',
    'StatementResult', 'SQLAdapter', 'parse_create_table_statements', 'parse_alter_statement',
    'classify_statements'
]
