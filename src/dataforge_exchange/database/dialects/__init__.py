"""
Database Dialects - Database-specific SQL operations

Provides a factory pattern for the catalog queries and statements that
import/export jobs need on each supported destination.

Usage:
    from dataforge_exchange.database.dialects import DialectFactory

    dialect = DialectFactory.create("sqlserver", connection, db_name)
    columns = dialect.get_table_columns("Orders", "dbo")
    identity = dialect.get_identity_columns("Orders", "dbo")
"""

from .base import DatabaseDialect, ColumnInfo
from .factory import DialectFactory

from .sqlite_dialect import SQLiteDialect
from .sqlserver_dialect import SQLServerDialect

__all__ = [
    # Base classes
    "DatabaseDialect",
    "ColumnInfo",

    # Factory
    "DialectFactory",

    # Implementations
    "SQLiteDialect",
    "SQLServerDialect",
]
