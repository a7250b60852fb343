"""
Dialect Factory - Resolve a database type name to its dialect class
"""

from typing import Any, Optional, Type, Dict
from .base import DatabaseDialect

import logging
logger = logging.getLogger(__name__)


class DialectFactory:
    """
    Maps database type names (and aliases) to dialect classes.

    Usage:
        dialect = DialectFactory.create("sqlite", connection)
        columns = dialect.get_table_columns("users")
    """

    # type name -> dialect class
    _dialects: Dict[str, Type[DatabaseDialect]] = {}

    @classmethod
    def create(
        cls,
        db_type: str,
        connection: Any,
        db_name: Optional[str] = None
    ) -> DatabaseDialect:
        """
        Bind the dialect registered for db_type to an open connection.

        Args:
            db_type: Database type (sqlite, sqlserver)
            connection: Open DB-API connection (sqlite3 or pyodbc)
            db_name: Catalog used to prefix system views (SQL Server only)

        Returns:
            DatabaseDialect instance

        Raises:
            ValueError: If the database type is not supported
        """
        dialect_class = cls._dialects.get(db_type.lower())
        if dialect_class is None:
            logger.warning(f"No dialect for database type: {db_type}")
            raise ValueError(
                f"Unsupported database type: {db_type} "
                f"(supported: {', '.join(cls.supported_types())})"
            )

        return dialect_class(connection, db_name)

    @classmethod
    def supported_types(cls) -> list:
        """Registered type names, aliases included."""
        return list(cls._dialects.keys())

    @classmethod
    def register(cls, db_type: str, dialect_class: Type[DatabaseDialect]):
        """
        Register a dialect class under a type name (case-insensitive).

        Args:
            db_type: Name as given on the command line or in settings
            dialect_class: DatabaseDialect subclass
        """
        cls._dialects[db_type.lower()] = dialect_class
        logger.debug(f"Registered dialect for: {db_type}")


def _register_default_dialects():
    """Register built-in dialects. Called on module import."""
    from .sqlite_dialect import SQLiteDialect
    from .sqlserver_dialect import SQLServerDialect

    DialectFactory.register("sqlite", SQLiteDialect)
    DialectFactory.register("sqlserver", SQLServerDialect)
    DialectFactory.register("mssql", SQLServerDialect)  # Alias


# Register on module import
_register_default_dialects()
