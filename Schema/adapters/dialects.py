"""
SQL dialect records used by the SQL emitter.

Each dialect differs from the generic form on three axes only: identifier
quoting, the primary key clause and a table-level suffix.
"""
from dataclasses import dataclass
from typing import Dict


@dataclass(frozen=True)
class Dialect:
    name: str
    label: str
    quote_open: str = ""
    quote_close: str = ""
    primary_key_clause: str = "PRIMARY KEY"
    table_suffix: str = ""

    def quote(self, identifier: str) -> str:
        if not self.quote_open:
            return identifier
        escaped = identifier.replace(self.quote_close, self.quote_close * 2)
        return f"{self.quote_open}{escaped}{self.quote_close}"


GENERIC = Dialect(name="generic", label="Database")

DIALECTS: Dict[str, Dialect] = {
    "generic": GENERIC,
    "mysql": Dialect(
        name="mysql", label="MySQL Database",
        quote_open="`", quote_close="`",
        primary_key_clause="AUTO_INCREMENT PRIMARY KEY",
        table_suffix="ENGINE=InnoDB DEFAULT CHARSET=utf8mb4"
    ),
    "postgresql": Dialect(
        name="postgresql", label="PostgreSQL Database",
        quote_open='"', quote_close='"'
    ),
    "sqlserver": Dialect(
        name="sqlserver", label="SQL Server Database",
        quote_open="[", quote_close="]",
        primary_key_clause="IDENTITY(1,1) PRIMARY KEY"
    ),
    "oracle": Dialect(
        name="oracle", label="Oracle Database",
        quote_open='"', quote_close='"'
    ),
}


def get_dialect(name: str) -> Dialect:
    """Look up a dialect by name; unknown names get the generic dialect."""
    return DIALECTS.get((name or "").lower(), GENERIC)


__all__ = ['Dialect', 'GENERIC', 'DIALECTS', 'get_dialect']
