"""
Row Source - Full-table read used by export jobs.

Keeps the driver's native values (int, Decimal, datetime, bool, UUID) so the
writers can render each value by type.
"""

import logging
from typing import Optional

from ..core.dataset import TabularDataset
from ..errors import SchemaResolutionError
from .dialects.base import DatabaseDialect

logger = logging.getLogger(__name__)


class TableRowSource:
    """Reads a whole table into a TabularDataset (SELECT * FROM schema.table)."""

    def __init__(self, dialect: DatabaseDialect):
        self.dialect = dialect

    def fetch(self, schema_name: Optional[str], table_name: str,
              max_rows: Optional[int] = None) -> TabularDataset:
        """
        Materialize the table, or only its first max_rows rows (preview).

        Raises:
            SchemaResolutionError: If the SELECT fails (unknown table, no permission)
        """
        sql = self.dialect.generate_select_query(table_name, schema_name, limit=max_rows)

        cursor = self.dialect.connection.cursor()
        try:
            cursor.execute(sql)
            columns = [d[0] for d in cursor.description]
            rows = [list(row) for row in cursor.fetchall()]
        except Exception as e:
            logger.error(f"Error reading {sql}: {e}")
            raise SchemaResolutionError(f"Cannot read table {table_name}: {e}") from e
        finally:
            cursor.close()

        logger.info(f"Read {len(rows)} rows, {len(columns)} cols from {table_name}")
        return TabularDataset(
            columns=columns,
            rows=rows,
            source_info={"sql": sql, "table": table_name, "schema": schema_name},
        )
