"""
Schema Forge Configuration - Centralized path and settings management.

This module contains all configurable paths and settings for the schema tool.
Users can modify these values to customize the behavior of the store, the
parser and the exporters.
"""
from pathlib import Path

# =============================================================================
# PATH CONFIGURATION
# =============================================================================

# Base directory (project root)
BASE_DIR = Path(__file__).parent

# History file used by the interactive shell
REPL_HISTORY_FILE = BASE_DIR / ".schema_forge_history"


# =============================================================================
# SCHEMA DEFAULTS
# =============================================================================

DEFAULT_SCHEMA_NAME = "Untitled Schema"

# Username seeded as the single owner member of a fresh schema
DEFAULT_OWNER = "current_user"

# Random placement box for tables created by the DDL parser: (min, span)
CANVAS_X_RANGE = (100.0, 400.0)
CANVAS_Y_RANGE = (100.0, 300.0)

# Offset applied to the position of a duplicated table
DUPLICATE_OFFSET = 50.0

# Suffix appended to the name of a duplicated table
DUPLICATE_SUFFIX = "_copy"


# =============================================================================
# VALIDATION
# =============================================================================

# When True, the validator warns about relationships whose target column is
# not a primary key. The default keeps it advisory and silent.
REQUIRE_PK_TARGET = False


# =============================================================================
# EXPORT DIALECTS
# =============================================================================
# Names accepted by SchemaStore.export_schema(); anything else falls back to
# the generic emitter.

SQL_DIALECTS = ("generic", "mysql", "postgresql", "sqlserver", "oracle")
DOCUMENT_DIALECTS = ("mongodb",)

# Alternate spellings accepted for dialect names
DIALECT_ALIASES = {
    "ansi": "generic",
    "sql": "generic",
    "postgres": "postgresql",
    "pg": "postgresql",
    "mssql": "sqlserver",
    "tsql": "sqlserver",
    "mongo": "mongodb",
}

# File extensions recognised by parser_factory
SQL_EXTENSIONS = (".sql", ".ddl")
SCHEMA_JSON_EXTENSIONS = (".json",)
