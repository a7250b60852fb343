"""
Schema Resolver - Fetch destination column metadata once per job.

Wraps a dialect (the catalog metadata provider) and maps native column types
to semantic types. The result is immutable for the rest of the job.
"""

import logging
from typing import Optional

from ..core.schema import ColumnSchema, ResolvedSchema
from ..errors import SchemaResolutionError
from .dialects.base import DatabaseDialect

logger = logging.getLogger(__name__)


class SchemaResolver:
    """
    Resolves a destination table into ordered ColumnSchema entries.

    Usage:
        resolver = SchemaResolver(dialect)
        columns, identity = resolver.resolve("dbo", "Orders")
    """

    def __init__(self, dialect: DatabaseDialect):
        self.dialect = dialect

    def resolve(self, schema_name: Optional[str], table_name: str) -> ResolvedSchema:
        """
        Resolve columns and identity columns of a table.

        Args:
            schema_name: Schema name (dialect default when empty)
            table_name: Table name

        Returns:
            ResolvedSchema with columns in ordinal order

        Raises:
            SchemaResolutionError: If the table has no columns or the catalog query fails
        """
        schema = schema_name or self.dialect.default_schema
        qualified = f"{schema}.{table_name}" if schema else table_name

        try:
            infos = self.dialect.get_table_columns(table_name, schema)
        except Exception as e:
            logger.error(f"Error loading columns for {qualified}: {e}")
            raise SchemaResolutionError(f"Cannot read columns of {qualified}: {e}") from e

        if not infos:
            raise SchemaResolutionError(f"Table not found or has no columns: {qualified}")

        try:
            identity = frozenset(self.dialect.get_identity_columns(table_name, schema))
        except Exception as e:
            logger.error(f"Error loading identity columns for {qualified}: {e}")
            raise SchemaResolutionError(f"Cannot read identity columns of {qualified}: {e}") from e

        columns = tuple(
            ColumnSchema(
                name=info.name,
                native_type=info.type_name,
                semantic_type=self.dialect.semantic_type(info.type_name),
                nullable=bool(info.is_nullable),
            )
            for info in infos
        )

        logger.info(
            f"Resolved {qualified}: {len(columns)} columns"
            + (f", identity: {', '.join(sorted(identity))}" if identity else "")
        )
        return ResolvedSchema(
            schema_name=schema,
            table_name=table_name,
            columns=columns,
            identity_columns=identity,
        )
