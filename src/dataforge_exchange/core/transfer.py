"""
Bulk Transfer Engine - Streams coerced rows to the destination in batches.

Rows are grouped into batches of exactly batch_size rows (the last one may be
smaller) and handed to a BulkWriteSink one at a time, in dataset order.
A batch succeeds or fails as a whole: a rejected batch aborts the transfer and
earlier batches stay committed.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, List, Optional, Sequence

from ..constants import BULK_TIMEOUT_S, DEFAULT_BATCH_SIZE, is_valid_batch_size
from ..errors import BulkTransferError
from .cancellation import CancellationToken
from .summary import JobSummary

logger = logging.getLogger(__name__)


@dataclass
class Batch:
    """
    Bounded, ordered group of coerced rows.

    Attributes:
        index: 1-based position of the batch in the transfer
        capacity: Maximum number of rows
        rows: Row values in destination column order
    """
    index: int
    capacity: int
    rows: List[Sequence[Any]] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.rows)

    @property
    def is_full(self) -> bool:
        return len(self.rows) >= self.capacity

    def append(self, row: Sequence[Any]) -> None:
        if self.is_full:
            raise ValueError(f"Batch {self.index} is full ({self.capacity} rows)")
        self.rows.append(row)


@dataclass(frozen=True)
class ColumnMapping:
    """Source column name -> destination column name."""
    source: str
    destination: str

    @classmethod
    def identity(cls, names: Iterable[str]) -> List["ColumnMapping"]:
        return [cls(name, name) for name in names]


class BulkWriteSink(ABC):
    """
    Destination side of a bulk transfer.

    Accepts column-mapped batches and commits each one before the next is sent.
    """

    def __init__(self, table_name: str, mappings: Sequence[ColumnMapping],
                 batch_size: int = DEFAULT_BATCH_SIZE, timeout: int = BULK_TIMEOUT_S):
        self.table_name = table_name
        self.mappings = list(mappings)
        self.batch_size = batch_size
        self.timeout = timeout
        self.rows_committed = 0
        self.batches_committed = 0

    @abstractmethod
    def write_batch(self, batch: Batch) -> None:
        """
        Write and commit one batch.

        Raises:
            BulkTransferError: If the destination rejected the batch
        """
        pass

    def complete(self) -> None:
        """Called once after the last batch was committed."""
        logger.info(
            f"Transfer to {self.table_name} complete: "
            f"{self.rows_committed} rows in {self.batches_committed} batches"
        )


class DatabaseBulkSink(BulkWriteSink):
    """
    Writes batches with executemany over a DB-API connection.

    One transaction per batch: commit after the batch, rollback if any row fails.
    """

    def __init__(self, dialect, schema_name: Optional[str], table_name: str,
                 mappings: Sequence[ColumnMapping],
                 batch_size: int = DEFAULT_BATCH_SIZE, timeout: int = BULK_TIMEOUT_S):
        super().__init__(table_name, mappings, batch_size, timeout)
        self.dialect = dialect
        self.schema_name = schema_name or dialect.default_schema
        self.connection = dialect.connection
        self.insert_sql = dialect.generate_insert_statement(
            table_name, self.schema_name, [m.destination for m in self.mappings]
        )

    def truncate(self) -> None:
        """Delete every existing row of the destination table."""
        sql = self.dialect.generate_delete_all(self.table_name, self.schema_name)
        cursor = self.connection.cursor()
        try:
            self.dialect.prepare_cursor(cursor, self.timeout)
            cursor.execute(sql)
            self.connection.commit()
        except Exception as e:
            self._rollback()
            raise BulkTransferError(f"Cannot empty table {self.table_name}: {e}") from e
        finally:
            cursor.close()
        logger.info(f"Emptied table {self.schema_name}.{self.table_name}")

    def write_batch(self, batch: Batch) -> None:
        params = [tuple(self.dialect.adapt_value(v) for v in row) for row in batch.rows]

        cursor = self.connection.cursor()
        try:
            self.dialect.prepare_cursor(cursor, self.timeout)
            cursor.executemany(self.insert_sql, params)
            self.connection.commit()
        except Exception as e:
            self._rollback()
            logger.error(f"Batch {batch.index} rejected by {self.table_name}: {e}")
            raise BulkTransferError(
                f"Batch {batch.index} ({len(batch)} rows) rejected: {e}",
                batch_index=batch.index,
                rows_committed=self.rows_committed,
            ) from e
        finally:
            cursor.close()

        self.rows_committed += len(batch)
        self.batches_committed += 1
        logger.info(f"Inserted batch {batch.index} ({len(batch)} rows)")

    def _rollback(self) -> None:
        try:
            self.connection.rollback()
        except Exception as e:
            logger.warning(f"Rollback failed: {e}")


class BulkTransferEngine:
    """
    Sequential batch pipeline between the coercion engine and a sink.

    Usage:
        engine = BulkTransferEngine(batch_size=500)
        engine.transfer(row_values, sink, summary, cancel_token)
    """

    def __init__(self, batch_size: int = DEFAULT_BATCH_SIZE, timeout: int = BULK_TIMEOUT_S):
        if not is_valid_batch_size(batch_size):
            raise ValueError(f"Invalid batch size: {batch_size}")
        self.batch_size = batch_size
        self.timeout = timeout

    def batches(self, rows: Iterable[Sequence[Any]]) -> Iterator[Batch]:
        """Group rows into batches, preserving order."""
        batch = Batch(index=1, capacity=self.batch_size)
        for row in rows:
            batch.append(row)
            if batch.is_full:
                yield batch
                batch = Batch(index=batch.index + 1, capacity=self.batch_size)
        if batch.rows:
            yield batch

    def transfer(self, rows: Iterable[Sequence[Any]], sink: BulkWriteSink,
                 summary: Optional[JobSummary] = None,
                 cancel_token: Optional[CancellationToken] = None) -> JobSummary:
        """
        Send every row to the sink.

        Args:
            rows: Row values in destination column order
            sink: Destination
            summary: Summary to update (a new one is created when omitted)
            cancel_token: Checked before each batch is written

        Returns:
            The updated summary

        Raises:
            BulkTransferError: The sink rejected a batch (earlier batches stay committed)
            JobCancelledError: Cancellation was requested between batches
        """
        summary = summary if summary is not None else JobSummary(target=sink.table_name)

        for batch in self.batches(rows):
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()
            sink.write_batch(batch)
            summary.rows_written += len(batch)
            summary.batches_written += 1

        sink.complete()
        return summary
