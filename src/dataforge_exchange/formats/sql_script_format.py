"""
SQL Script Format - Export-only INSERT script generator (SQL Server syntax).

Rows are emitted as multi-row INSERT ... VALUES statements of at most 1000
rows each. When the table has identity columns the INSERT block is wrapped in
SET IDENTITY_INSERT ON/OFF so the script can replay the original key values.
"""

import logging
import math
import uuid
from datetime import date, datetime, time
from decimal import Decimal
from pathlib import Path
from typing import Any, List

from ..constants import SQL_SCRIPT_ROWS_PER_INSERT
from ..core.dataset import TabularDataset
from ..database.dialects.sqlserver_dialect import SQLServerDialect
from ..errors import ExchangeError
from .base import ExchangeFormat, FormatHandler, ReadOptions, WriteOptions

logger = logging.getLogger(__name__)


def sql_literal(value: Any) -> str:
    """
    Render a value as a T-SQL literal.

    Strings, date/times and GUIDs are single-quoted with embedded quotes
    doubled; booleans render as 1/0; None renders as NULL.
    """
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, (float, Decimal)):
        finite = value.is_finite() if isinstance(value, Decimal) else math.isfinite(value)
        if not finite:
            logger.warning(f"Non-finite number {value!r} has no T-SQL literal, written as NULL")
            return "NULL"
        return str(value) if isinstance(value, Decimal) else repr(value)
    if isinstance(value, datetime):
        timespec = "milliseconds" if value.microsecond else "seconds"
        return f"'{value.replace(tzinfo=None).isoformat(sep=' ', timespec=timespec)}'"
    if isinstance(value, (date, time)):
        return f"'{value.isoformat()}'"
    if isinstance(value, (bytes, bytearray, memoryview)):
        return "0x" + bytes(value).hex().upper()
    if isinstance(value, uuid.UUID):
        return f"'{value}'"
    text = str(value).replace("'", "''")
    return f"'{text}'"


class SqlScriptFormat(FormatHandler):
    """Writes a table as a replayable SQL Server INSERT script."""

    format = ExchangeFormat.SQL_SCRIPT

    def __init__(self):
        # Quoting only; no connection is needed to render a script
        self.dialect = SQLServerDialect(None)

    @property
    def can_read(self) -> bool:
        return False

    def _read(self, path: Path, options: ReadOptions) -> TabularDataset:
        raise NotImplementedError("SQL scripts are export-only")

    def render(self, dataset: TabularDataset, options: WriteOptions) -> List[str]:
        """
        Build the script lines.

        Args:
            dataset: Rows to export (native values)
            options: Must name the table; identity_columns drives IDENTITY_INSERT

        Returns:
            Script lines without line terminators
        """
        if not options.table_name:
            raise ExchangeError("SQL script export needs a target table name")

        schema = options.schema_name or self.dialect.default_schema
        table = self.dialect.quote_full_table_name(options.table_name, schema)
        generated_at = options.generated_at or datetime.now()

        lines = [
            f"-- Data export for {schema}.{options.table_name}",
            f"-- Generated on {generated_at:%Y-%m-%d %H:%M:%S}",
            "",
        ]

        if dataset.is_empty():
            return lines

        wrap_identity = bool(options.identity_columns)

        cols = ", ".join(self.dialect.quote_identifier(c) for c in dataset.columns)

        if wrap_identity:
            lines.append(f"SET IDENTITY_INSERT {table} ON;")

        rows = dataset.rows
        for start in range(0, len(rows), SQL_SCRIPT_ROWS_PER_INSERT):
            chunk = rows[start:start + SQL_SCRIPT_ROWS_PER_INSERT]
            lines.append(f"INSERT INTO {table} ({cols}) VALUES")
            for offset, row in enumerate(chunk):
                terminator = ";" if offset == len(chunk) - 1 else ","
                lines.append(f"({', '.join(sql_literal(v) for v in row)}){terminator}")

        if wrap_identity:
            lines.append(f"SET IDENTITY_INSERT {table} OFF;")

        return lines

    def _write(self, dataset: TabularDataset, path: Path, options: WriteOptions) -> None:
        lines = self.render(dataset, options)
        with open(path, "w", encoding=options.codec, newline="") as f:
            f.write("\n".join(lines) + "\n")
