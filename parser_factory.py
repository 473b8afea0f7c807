"""
Parser Factory - Auto-select loader based on file extension

This module provides a unified entry point for loading schema files.
It automatically selects the appropriate loader based on file extension:
- .sql, .ddl  -> DDL parser (CREATE TABLE statements merged into a fresh schema)
- .json       -> persisted schema document
"""
from pathlib import Path
from typing import Tuple, List

from Schema.schema_model import Schema
from Schema.adapters import ParseDiagnostic
from config import SQL_EXTENSIONS, SCHEMA_JSON_EXTENSIONS, DEFAULT_SCHEMA_NAME
from core import SchemaStore


def detect_source_type(file_path: str) -> str:
    """
    Detect which loader to use based on file extension.

    Args:
        file_path: Path to a schema file

    Returns:
        Source type: 'ddl' or 'json'
    """
    suffix = Path(file_path).suffix.lower()

    if suffix in SQL_EXTENSIONS:
        return 'ddl'
    elif suffix in SCHEMA_JSON_EXTENSIONS:
        return 'json'
    else:
        expected = " or ".join(SQL_EXTENSIONS + SCHEMA_JSON_EXTENSIONS)
        raise ValueError(f"Unknown file extension: {suffix}. Expected {expected}")


def get_source_info(file_path: str) -> dict:
    """Describe which loader will be used for a file."""
    source_type = detect_source_type(file_path)
    return {
        'type': source_type,
        'file_extension': Path(file_path).suffix,
        'loader': 'SQLAdapter' if source_type == 'ddl' else 'Schema.from_dict'
    }


def load_schema(file_path: str, store: SchemaStore = None) -> Tuple[SchemaStore, List[ParseDiagnostic]]:
    """
    Load a schema file into a store.

    DDL files are imported into a fresh schema named after the file (or merged
    into the given store); JSON files replace the store's schema.

    Args:
        file_path: Path to a .sql, .ddl or .json file
        store: Existing store to load into; a new one is created when omitted

    Returns:
        Tuple of (store, diagnostics)
        - diagnostics: skipped DDL statements and fragments (always empty for JSON)

    Raises:
        ValueError: unknown extension
        SQLImportError: the DDL file contains no readable CREATE TABLE
    """
    source_type = detect_source_type(file_path)
    path = Path(file_path)

    if source_type == 'json':
        schema = Schema.load_from_file(str(path))
        if store is None:
            return SchemaStore(schema), []
        store.load_schema(schema)
        return store, []

    if store is None:
        store = SchemaStore()
        store.schema.name = path.stem or DEFAULT_SCHEMA_NAME
    diagnostics = store.import_from_sql(path.read_text(encoding='utf-8'))
    return store, diagnostics
