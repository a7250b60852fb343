"""
SQLite Dialect - SQLite-specific SQL operations
"""

import uuid
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, List, Optional, Set

from ...core.schema import SemanticType
from .base import DatabaseDialect, ColumnInfo

import logging
logger = logging.getLogger(__name__)


class SQLiteDialect(DatabaseDialect):
    """Dialect for SQLite databases."""

    @property
    def quote_char(self) -> str:
        return '"'

    @property
    def default_schema(self) -> str:
        return ""  # SQLite doesn't use schemas

    def quote_full_table_name(
        self,
        table_name: str,
        schema_name: Optional[str] = None,
        include_db: bool = False
    ) -> str:
        # SQLite doesn't use schemas, just quote the table name
        return self.quote_identifier(table_name)

    def get_table_columns(
        self,
        table_name: str,
        schema_name: Optional[str] = None
    ) -> List[ColumnInfo]:
        """Get columns using PRAGMA table_info."""
        rows = self._execute_all(f"PRAGMA table_info({self.quote_identifier(table_name)})")

        return [
            ColumnInfo(
                name=row[1],  # name is at index 1
                type_name=row[2].upper() if row[2] else "TEXT",
                is_nullable=(row[3] == 0),  # notnull is at index 3
                is_primary_key=(row[5] > 0)  # pk is at index 5
            )
            for row in rows
        ]

    def get_identity_columns(
        self,
        table_name: str,
        schema_name: Optional[str] = None
    ) -> Set[str]:
        """A single INTEGER PRIMARY KEY column aliases the rowid and is generated by SQLite."""
        pk_columns = [c for c in self.get_table_columns(table_name) if c.is_primary_key]
        if len(pk_columns) == 1 and pk_columns[0].type_name == "INTEGER":
            return {pk_columns[0].name}
        return set()

    def semantic_type(self, type_name: str) -> SemanticType:
        """SQLite stores every integer affinity column as a 64-bit signed value."""
        semantic = super().semantic_type(type_name)
        return SemanticType.BIG_INTEGER if semantic.is_integral else semantic

    def adapt_value(self, value: Any) -> Any:
        """sqlite3 cannot bind Decimal/UUID and its datetime adapters are deprecated."""
        if isinstance(value, bool):
            return int(value)
        if isinstance(value, Decimal):
            return str(value)
        if isinstance(value, uuid.UUID):
            return str(value)
        if isinstance(value, datetime):
            return value.isoformat(sep=" ")
        if isinstance(value, (date, time)):
            return value.isoformat()
        return value
