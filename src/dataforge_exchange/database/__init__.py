"""
Database layer - catalog metadata, row source and connections for exchange jobs.
"""

from .dialects import DatabaseDialect, ColumnInfo, DialectFactory
from .schema_resolver import SchemaResolver
from .row_source import TableRowSource
from .connections import open_connection, connection_factory

__all__ = [
    "DatabaseDialect",
    "ColumnInfo",
    "DialectFactory",
    "SchemaResolver",
    "TableRowSource",
    "open_connection",
    "connection_factory",
]
