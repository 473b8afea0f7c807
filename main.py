"""Schema Forge CLI - Load a schema file, validate it and export it for a dialect"""
import sys
import argparse
import logging
from pathlib import Path
from typing import List

from Schema.schema_model import Schema, Table
from Schema.validator import Diagnostic, has_errors
from Schema.adapters import ParseDiagnostic
from config import SQL_DIALECTS, DOCUMENT_DIALECTS, DIALECT_ALIASES
from core import SQLImportError
from parser_factory import load_schema

# ANSI Colors
GREEN = "\033[92m"
YELLOW = "\033[93m"
CYAN = "\033[96m"
RED = "\033[91m"
BOLD = "\033[1m"
RESET = "\033[0m"


def get_table_lines(table: Table) -> List[str]:
    """Format a table and its columns as lines."""
    lines = [f"  {BOLD}{table.name}{RESET}"]
    for column in table.columns:
        marker = "[PK]" if column.is_primary_key else ("?" if column.nullable else "")
        line = f"    {column.name}: {column.type} {marker}".rstrip()
        if column.is_foreign_key and column.referenced_table:
            target = f"{column.referenced_table}.{column.referenced_column}" if column.referenced_column \
                else column.referenced_table
            line = f"{line} {CYAN}-> {target}{RESET}"
        lines.append(line)
    return lines


def print_schema(schema: Schema):
    """Print tables and relationships of the schema."""
    print("\n" + "=" * 60)
    print(f"{BOLD} SCHEMA: {schema.name}{RESET}")
    print("=" * 60)

    for table in schema.tables:
        for line in get_table_lines(table):
            print(line)
        print("-" * 60)

    if schema.relationships:
        print(f"\n  {CYAN}Relationships:{RESET}")
        for rel in schema.relationships:
            print(f"    {rel.name} [{rel.cardinality.value}]")


def print_parse_diagnostics(diagnostics: List[ParseDiagnostic]):
    for diagnostic in diagnostics:
        print(f"  {YELLOW}[SKIPPED] {diagnostic}{RESET}")
        if diagnostic.statement:
            print(f"            {diagnostic.statement[:70]}")


def print_diagnostics(diagnostics: List[Diagnostic]):
    if not diagnostics:
        print(f"  {GREEN}[OK] No problems found{RESET}")
        return
    for diagnostic in diagnostics:
        if diagnostic.is_error:
            print(f"  {RED}[ERROR] {diagnostic.message}{RESET}")
        else:
            print(f"  {YELLOW}[WARN] {diagnostic.message}{RESET}")


def build_arg_parser() -> argparse.ArgumentParser:
    dialects = list(SQL_DIALECTS + DOCUMENT_DIALECTS) + sorted(DIALECT_ALIASES)
    parser = argparse.ArgumentParser(
        description="Validate a schema (.sql, .ddl or .json) and export it for a database dialect."
    )
    parser.add_argument("file", help="schema file to load")
    parser.add_argument("-d", "--dialect", default="generic", choices=dialects,
                        help="export dialect (default: generic)")
    parser.add_argument("-o", "--output", help="write the export to this file instead of stdout")
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    return parser


def main(argv: List[str] = None):
    args = build_arg_parser().parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    source_file = Path(args.file)
    if not source_file.exists():
        print(f"{RED}[ERROR] File not found: {source_file}{RESET}")
        return 1

    # Step 1: Load
    print(f"\n{CYAN}[Step 1] Loading {source_file.name}{RESET}")
    try:
        store, parse_diagnostics = load_schema(str(source_file))
    except SQLImportError as e:
        print(f"{RED}[ERROR] {e}{RESET}")
        print_parse_diagnostics(e.diagnostics)
        return 1
    except ValueError as e:
        print(f"{RED}[ERROR] {e}{RESET}")
        return 1
    print(f"         Loaded {len(store.schema.tables)} tables, {len(store.schema.relationships)} relationships")
    print_parse_diagnostics(parse_diagnostics)

    # Step 2: Validation
    print(f"\n{CYAN}[Step 2] Validation{RESET}")
    diagnostics = store.diagnostics
    print_diagnostics(diagnostics)

    # Step 3: Export
    print(f"\n{CYAN}[Step 3] Export ({args.dialect}){RESET}")
    exported = store.export_schema(args.dialect)
    if args.output:
        Path(args.output).write_text(exported, encoding="utf-8")
        print(f"         Wrote {len(exported)} characters to {args.output}")
    else:
        print_schema(store.schema)
        print("-" * 60)
        print(exported)
        print("-" * 60)

    if has_errors(diagnostics):
        print(f"\n  {YELLOW}{BOLD}[WARN] Schema has errors{RESET}\n")
        return 1
    print(f"\n  {GREEN}{BOLD}[OK] EXPORT COMPLETE{RESET}\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
