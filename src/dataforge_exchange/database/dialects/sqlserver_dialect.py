"""
SQL Server Dialect - SQL Server-specific SQL operations
"""

import uuid
from typing import Any, List, Optional, Set
from .base import DatabaseDialect, ColumnInfo

import logging
logger = logging.getLogger(__name__)


class SQLServerDialect(DatabaseDialect):
    """Dialect for SQL Server databases."""

    @property
    def quote_char(self) -> str:
        return "["

    @property
    def quote_char_end(self) -> str:
        return "]"

    @property
    def default_schema(self) -> str:
        return "dbo"

    def generate_select_query(
        self,
        table_name: str,
        schema_name: Optional[str] = None,
        columns: Optional[List[str]] = None,
        limit: Optional[int] = None
    ) -> str:
        """Generate SQL Server SELECT query with TOP clause."""
        query = super().generate_select_query(table_name, schema_name, columns)
        if limit:
            query = query.replace("SELECT ", f"SELECT TOP {int(limit)} ", 1)
        return query

    def _sys(self, view: str) -> str:
        """Catalog view name, prefixed with the target database when one is set."""
        if self.db_name:
            return f"{self.quote_identifier(self.db_name)}.sys.{view}"
        return f"sys.{view}"

    def get_table_columns(
        self,
        table_name: str,
        schema_name: Optional[str] = None
    ) -> List[ColumnInfo]:
        """Get columns using sys.columns."""
        schema = schema_name or self.default_schema

        rows = self._execute_all(f"""
            SELECT c.name, t.name as type_name, c.is_nullable
            FROM {self._sys('columns')} c
            INNER JOIN {self._sys('tables')} tbl ON c.object_id = tbl.object_id
            INNER JOIN {self._sys('schemas')} s ON tbl.schema_id = s.schema_id
            INNER JOIN {self._sys('types')} t ON c.user_type_id = t.user_type_id
            WHERE tbl.name = ? AND s.name = ?
            ORDER BY c.column_id
        """, (table_name, schema))

        return [
            ColumnInfo(
                name=row[0],
                type_name=row[1].upper(),
                is_nullable=bool(row[2])
            )
            for row in rows
        ]

    def get_identity_columns(
        self,
        table_name: str,
        schema_name: Optional[str] = None
    ) -> Set[str]:
        """Get identity columns from sys.identity_columns."""
        schema = schema_name or self.default_schema

        rows = self._execute_all(f"""
            SELECT ic.name
            FROM {self._sys('identity_columns')} ic
            INNER JOIN {self._sys('tables')} tbl ON ic.object_id = tbl.object_id
            INNER JOIN {self._sys('schemas')} s ON tbl.schema_id = s.schema_id
            WHERE tbl.name = ? AND s.name = ?
        """, (table_name, schema))

        return {row[0] for row in rows}

    @property
    def accepts_explicit_identity(self) -> bool:
        # Needs SET IDENTITY_INSERT ON, which bulk imports do not use
        return False

    def adapt_value(self, value: Any) -> Any:
        if isinstance(value, uuid.UUID):
            return str(value)
        return value

    def prepare_cursor(self, cursor: Any, timeout: Optional[int] = None) -> Any:
        """Enable pyodbc's array binding and apply the query timeout."""
        if hasattr(cursor, "fast_executemany"):
            cursor.fast_executemany = True
        if timeout and hasattr(self.connection, "timeout"):
            self.connection.timeout = timeout
        return cursor
