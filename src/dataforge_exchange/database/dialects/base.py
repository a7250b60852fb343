"""
Base Database Dialect - Abstract base class for database-specific SQL operations

Dialects handle database-specific differences needed by import/export jobs:
- Identifier quoting ([brackets] vs "quotes")
- System catalog queries (sys.* vs PRAGMA) for columns and identity columns
- INSERT / DELETE / SELECT statement generation
- Driver quirks when binding values and applying timeouts
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Set
import logging

from ...core.schema import SemanticType, map_native_type

logger = logging.getLogger(__name__)


@dataclass
class ColumnInfo:
    """Column metadata returned by dialect queries."""
    name: str
    type_name: str
    is_nullable: bool = True
    is_primary_key: bool = False


class DatabaseDialect(ABC):
    """
    Abstract base class for database dialects.

    Each dialect knows how to:
    1. Query system catalogs for column and identity metadata
    2. Generate the statements used by import/export jobs
    3. Quote/escape identifiers appropriately

    Usage:
        dialect = DialectFactory.create("sqlserver", connection, db_name)
        columns = dialect.get_table_columns("Orders", "dbo")
        sql = dialect.generate_insert_statement("Orders", "dbo", ["Id", "Name"])
    """

    def __init__(self, connection: Any, db_name: Optional[str] = None):
        """
        Initialize the dialect.

        Args:
            connection: Database connection object
            db_name: Optional target database name (for multi-db servers like SQL Server)
        """
        self.connection = connection
        self.db_name = db_name

    # ==================== Identifier Quoting ====================

    @property
    @abstractmethod
    def quote_char(self) -> str:
        """Character used to quote identifiers (e.g., '"' or '[')."""
        pass

    @property
    def quote_char_end(self) -> str:
        """Closing quote character (same as quote_char for most databases)."""
        return self.quote_char

    def quote_identifier(self, identifier: str) -> str:
        """Quote a single identifier, doubling any embedded closing quote."""
        end = self.quote_char_end
        escaped = identifier.replace(end, end + end)
        return f"{self.quote_char}{escaped}{end}"

    def quote_full_table_name(
        self,
        table_name: str,
        schema_name: Optional[str] = None,
        include_db: bool = False
    ) -> str:
        """
        Quote a full table reference including optional schema/database.

        Args:
            table_name: Table name
            schema_name: Optional schema name
            include_db: Whether to include database name (for SQL Server)

        Returns:
            Fully qualified and quoted table name
        """
        parts = []
        if include_db and self.db_name:
            parts.append(self.quote_identifier(self.db_name))
        if schema_name:
            parts.append(self.quote_identifier(schema_name))
        parts.append(self.quote_identifier(table_name))
        return ".".join(parts)

    # ==================== Default Schema ====================

    @property
    def default_schema(self) -> str:
        """Default schema name for this database type."""
        return ""

    # ==================== Statement Generation ====================

    def generate_select_query(
        self,
        table_name: str,
        schema_name: Optional[str] = None,
        columns: Optional[List[str]] = None,
        limit: Optional[int] = None
    ) -> str:
        """
        Generate a SELECT over the table, optionally limited to the first rows.

        Args:
            table_name: Table or view name
            schema_name: Optional schema name
            columns: List of columns to select (None = all)
            limit: Optional row limit (LIMIT clause by default)

        Returns:
            Complete SELECT statement
        """
        cols = ", ".join(self.quote_identifier(c) for c in columns) if columns else "*"
        full_table = self.quote_full_table_name(table_name, schema_name or self.default_schema)
        query = f"SELECT {cols} FROM {full_table}"
        if limit:
            query += f" LIMIT {int(limit)}"
        return query

    def generate_insert_statement(
        self,
        table_name: str,
        schema_name: Optional[str],
        columns: Sequence[str]
    ) -> str:
        """Generate a parameterized single-row INSERT (qmark placeholders)."""
        full_table = self.quote_full_table_name(table_name, schema_name or self.default_schema)
        cols = ", ".join(self.quote_identifier(c) for c in columns)
        placeholders = ", ".join("?" for _ in columns)
        return f"INSERT INTO {full_table} ({cols}) VALUES ({placeholders})"

    def generate_delete_all(self, table_name: str, schema_name: Optional[str] = None) -> str:
        """Generate a statement removing every row (works with foreign keys, unlike TRUNCATE)."""
        full_table = self.quote_full_table_name(table_name, schema_name or self.default_schema)
        return f"DELETE FROM {full_table}"

    # ==================== Catalog Metadata ====================

    @abstractmethod
    def get_table_columns(
        self,
        table_name: str,
        schema_name: Optional[str] = None
    ) -> List[ColumnInfo]:
        """
        Get column metadata for a table, ordered by ordinal position.

        Args:
            table_name: Table name
            schema_name: Optional schema name

        Returns:
            List of ColumnInfo objects (empty if the table does not exist)
        """
        pass

    @abstractmethod
    def get_identity_columns(
        self,
        table_name: str,
        schema_name: Optional[str] = None
    ) -> Set[str]:
        """
        Get the names of system-generated (identity) columns.

        Returns:
            Set of column names (empty if none)
        """
        pass

    def semantic_type(self, type_name: str) -> SemanticType:
        """Semantic type of a catalog type name (range checks follow the storage size)."""
        return map_native_type(type_name)

    # ==================== Driver Hooks ====================

    @property
    def accepts_explicit_identity(self) -> bool:
        """Whether a plain INSERT may supply values for identity columns."""
        return True

    def adapt_value(self, value: Any) -> Any:
        """Convert a coerced Python value into something the driver can bind."""
        return value

    def prepare_cursor(self, cursor: Any, timeout: Optional[int] = None) -> Any:
        """Apply driver options (timeouts, fast paths) before a batch write."""
        return cursor

    # ==================== Utility Methods ====================

    def _execute_all(self, query: str, params: tuple = ()) -> List[tuple]:
        """Execute query and return all rows."""
        cursor = self.connection.cursor()
        try:
            cursor.execute(query, params)
            return cursor.fetchall()
        finally:
            cursor.close()
