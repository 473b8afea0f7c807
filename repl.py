#!/usr/bin/env python3
"""
Schema Forge - Interactive shell with auto-completion

Paste CREATE TABLE / ALTER TABLE / DROP TABLE statements to edit the current
schema, inspect it with SHOW, and export it for any supported dialect.
Press TAB after a keyword to see the available sub-commands.
"""
import sys
from typing import List

from prompt_toolkit import prompt
from prompt_toolkit.completion import NestedCompleter
from prompt_toolkit.history import FileHistory
from prompt_toolkit.auto_suggest import AutoSuggestFromHistory
from prompt_toolkit.styles import Style

from Schema.adapters import StatementKind, StatementResult
from config import REPL_HISTORY_FILE, SQL_DIALECTS, DOCUMENT_DIALECTS
from core import SchemaStore
from parser_factory import load_schema
from main import GREEN, YELLOW, CYAN, RED, RESET, get_table_lines, print_diagnostics

# ============================================================================
# Command Hierarchy
# ============================================================================

DIALECTS = {name: None for name in SQL_DIALECTS + DOCUMENT_DIALECTS}

SHELL_COMMANDS = {
    # Statements are handed to the DDL parser as typed
    "CREATE": {"TABLE": {"IF": {"NOT": {"EXISTS": None}}}},
    "ALTER": {
        "TABLE": {
            "ADD": {"COLUMN": None, "CONSTRAINT": None},
            "DROP": {"COLUMN": None, "CONSTRAINT": None}
        }
    },
    "DROP": {"TABLE": {"IF": {"EXISTS": None}}},

    # Utility commands
    "SHOW": {
        "TABLES": None,
        "RELATIONSHIPS": None,
        "DIAGNOSTICS": None
    },
    "EXPORT": DIALECTS,
    "SAVE": None,
    "LOAD": None,
    "HELP": None,
    "EXIT": None
}

SQL_KEYWORDS = ("CREATE", "ALTER", "DROP")

# ============================================================================
# Style Configuration
# ============================================================================

style = Style.from_dict({
    'completion-menu.completion': 'bg:#008888 #ffffff',
    'completion-menu.completion.current': 'bg:#00aaaa #000000',
    'scrollbar.background': 'bg:#88aaaa',
    'scrollbar.button': 'bg:#222222',
})

# ============================================================================
# Shell Implementation
# ============================================================================


def print_banner():
    """Print welcome banner with usage tips"""
    print("""
+===========================================================================+
|                 Schema Forge - Interactive Schema Shell                   |
+===========================================================================+
|  TIP: Type a command and press TAB to see available sub-commands          |
|                                                                           |
|  Examples:                                                                |
|    CREATE TABLE users (id INT PRIMARY KEY, email VARCHAR(255) NOT NULL);  |
|    SHOW <TAB>     -> TABLES, RELATIONSHIPS, DIAGNOSTICS                   |
|    EXPORT <TAB>   -> generic, mysql, postgresql, sqlserver, oracle, ...   |
|                                                                           |
|  Type 'HELP' for command reference, 'EXIT' to quit                        |
+---------------------------------------------------------------------------+
""")


def print_help():
    """Print command reference"""
    print("""
Schema Forge Command Reference
==============================

DDL Statements (';' separates several):
  CREATE TABLE [IF NOT EXISTS] name (col TYPE [NOT NULL] [PRIMARY KEY] [UNIQUE]
                                    [DEFAULT v] [REFERENCES t(c)], ...)
  ALTER TABLE name ...        - classified and reported, never applied
  DROP TABLE name             - remove the table with its relationships

Inspection:
  SHOW TABLES
  SHOW RELATIONSHIPS
  SHOW DIAGNOSTICS

Export and Persistence:
  EXPORT generic|mysql|postgresql|sqlserver|oracle|mongodb
  SAVE path.json
  LOAD path.json|path.sql

Utility:
  HELP
  EXIT

Press TAB after any keyword to see available completions!
""")


def report_statements(store: SchemaStore, results: List[StatementResult]):
    """Print what happened to each statement and apply DROP TABLE."""
    for result in results:
        if result.kind == StatementKind.CREATE_TABLE and result.table is not None:
            print(f"  {GREEN}[+] Table created: {result.table.name} "
                  f"({len(result.table.columns)} columns){RESET}")
        elif result.kind == StatementKind.ALTER_TABLE:
            print(f"  {CYAN}[~] ALTER TABLE {result.table_name}: {result.operation.value} (not applied){RESET}")
        elif result.kind == StatementKind.DROP_TABLE:
            table = store.schema.get_table_by_name(result.table_name) if result.table_name else None
            if table:
                store.remove_table(table.id)
                print(f"  {YELLOW}[-] Table dropped: {table.name}{RESET}")
            else:
                print(f"  {YELLOW}[-] No table named {result.table_name}{RESET}")
        elif result.kind == StatementKind.CREATE_INDEX:
            print(f"  [i] Index statement ignored: {result.statement[:60]}")

        for diagnostic in result.diagnostics:
            print(f"  {YELLOW}[SKIPPED] {diagnostic.message}{RESET}")


def show(store: SchemaStore, what: str):
    if what == "TABLES":
        if not store.schema.tables:
            print("  (no tables)")
        for table in store.schema.tables:
            for line in get_table_lines(table):
                print(line)
    elif what == "RELATIONSHIPS":
        if not store.schema.relationships:
            print("  (no relationships)")
        for rel in store.schema.relationships:
            print(f"  {rel.name} [{rel.cardinality.value}]")
    elif what == "DIAGNOSTICS":
        print_diagnostics(store.diagnostics)
    else:
        print(f"  [?] Unknown SHOW target: {what}")


def execute_command(store: SchemaStore, command: str) -> bool:
    """Execute one shell command; returns False when the shell should exit."""
    cmd = command.strip()
    if not cmd:
        return True

    words = cmd.split()
    keyword = words[0].upper()
    argument = cmd[len(words[0]):].strip()

    if keyword == "EXIT":
        print("Goodbye!")
        return False
    elif keyword == "HELP":
        print_help()
    elif keyword in SQL_KEYWORDS:
        report_statements(store, store.parse_sql_statement(cmd))
    elif keyword == "SHOW":
        show(store, argument.upper())
    elif keyword == "EXPORT":
        print(store.export_schema(argument or "generic"))
    elif keyword == "SAVE" and argument:
        store.save_to_file(argument)
        print(f"  {GREEN}[OK] Saved to {argument}{RESET}")
    elif keyword == "LOAD" and argument:
        try:
            _, diagnostics = load_schema(argument, store)
        except (OSError, ValueError) as e:
            print(f"  {RED}[ERROR] {e}{RESET}")
        else:
            print(f"  {GREEN}[OK] Loaded {argument}: {len(store.schema.tables)} tables{RESET}")
            for diagnostic in diagnostics:
                print(f"  {YELLOW}[SKIPPED] {diagnostic}{RESET}")
    else:
        print(f"  [?] Unknown command: {cmd}")
        print("  Type 'HELP' for commands or press TAB for suggestions")
    return True


def main():
    """Main shell loop"""
    print_banner()

    store = SchemaStore()
    completer = NestedCompleter.from_nested_dict(SHELL_COMMANDS)
    history = FileHistory(str(REPL_HISTORY_FILE))

    while True:
        try:
            user_input = prompt(
                f'{store.schema.name}> ',
                completer=completer,
                complete_while_typing=False,
                history=history,
                auto_suggest=AutoSuggestFromHistory(),
                style=style,
            )

            if not execute_command(store, user_input):
                break

        except KeyboardInterrupt:
            print("\n  Use 'EXIT' to quit")
        except EOFError:
            print("\nGoodbye!")
            break

    return 0


if __name__ == "__main__":
    sys.exit(main())
