"""
Tests for batching, bulk sinks and transfer error reporting
"""
import sqlite3
from datetime import datetime
from decimal import Decimal

import pytest

from dataforge_exchange.core import (
    Batch,
    BulkTransferEngine,
    BulkWriteSink,
    CancellationToken,
    ColumnMapping,
    JobSummary,
)
from dataforge_exchange.core.transfer import DatabaseBulkSink
from dataforge_exchange.database import DialectFactory
from dataforge_exchange.errors import BulkTransferError, JobCancelledError, describe_error


class RecordingSink(BulkWriteSink):
    """Keeps every batch it receives; can be told to reject one."""

    def __init__(self, fail_on=None, on_batch=None):
        super().__init__("recorded", ColumnMapping.identity(["a"]))
        self.batches = []
        self.fail_on = fail_on
        self.on_batch = on_batch
        self.completed = False

    def write_batch(self, batch):
        if batch.index == self.fail_on:
            raise BulkTransferError("rejected", batch_index=batch.index,
                                    rows_committed=self.rows_committed)
        self.batches.append(list(batch.rows))
        self.rows_committed += len(batch)
        self.batches_committed += 1
        if self.on_batch:
            self.on_batch(batch)

    def complete(self):
        self.completed = True


def rows(count):
    return [[i] for i in range(count)]


class TestBatching:
    """Batch arithmetic"""

    @pytest.mark.parametrize("count,size,expected_sizes", [
        (0, 3, []),
        (1, 3, [1]),
        (9, 3, [3, 3, 3]),
        (10, 3, [3, 3, 3, 1]),
        (5, 1000, [5]),
    ])
    def test_batch_sizes(self, count, size, expected_sizes):
        batches = list(BulkTransferEngine(batch_size=size).batches(rows(count)))

        assert [len(b) for b in batches] == expected_sizes
        assert [b.index for b in batches] == list(range(1, len(expected_sizes) + 1))

    def test_order_preserved(self):
        batches = BulkTransferEngine(batch_size=4).batches(rows(10))

        flattened = [row for batch in batches for row in batch.rows]
        assert flattened == rows(10)

    def test_batch_capacity(self):
        batch = Batch(index=1, capacity=1)
        batch.append([1])

        assert batch.is_full
        with pytest.raises(ValueError, match="full"):
            batch.append([2])

    @pytest.mark.parametrize("size", [0, -1, 10_001])
    def test_invalid_batch_size(self, size):
        with pytest.raises(ValueError, match="Invalid batch size"):
            BulkTransferEngine(batch_size=size)


class TestTransferEngine:
    """Engine against an in-memory sink"""

    def test_transfer_updates_summary(self):
        sink = RecordingSink()
        summary = JobSummary(kind="import", target="recorded")

        BulkTransferEngine(batch_size=3).transfer(rows(7), sink, summary)

        assert summary.rows_written == 7
        assert summary.batches_written == 3
        assert len(sink.batches) == 3
        assert sink.completed

    def test_failed_batch_keeps_earlier_batches(self):
        sink = RecordingSink(fail_on=2)
        summary = JobSummary()

        with pytest.raises(BulkTransferError) as exc_info:
            BulkTransferEngine(batch_size=3).transfer(rows(10), sink, summary)

        assert exc_info.value.batch_index == 2
        assert exc_info.value.rows_committed == 3
        assert sink.batches == [rows(3)]
        assert summary.rows_written == 3
        assert not sink.completed

    def test_cancel_between_batches(self):
        token = CancellationToken()
        sink = RecordingSink(on_batch=lambda batch: token.cancel())
        summary = JobSummary()

        with pytest.raises(JobCancelledError):
            BulkTransferEngine(batch_size=2).transfer(rows(6), sink, summary, token)

        assert len(sink.batches) == 1
        assert summary.rows_written == 2

    def test_creates_summary_when_missing(self):
        summary = BulkTransferEngine(batch_size=2).transfer(rows(3), RecordingSink())

        assert summary.target == "recorded"
        assert summary.rows_written == 3


class TestDatabaseBulkSink:
    """executemany sink on SQLite"""

    @pytest.fixture
    def sink(self, people_table):
        dialect = DialectFactory.create("sqlite", people_table)
        return DatabaseBulkSink(dialect, None, "people", ColumnMapping.identity(["id", "name", "age"]),
                                batch_size=2)

    def count(self, conn):
        return conn.execute("SELECT COUNT(*) FROM people").fetchone()[0]

    def test_insert_statement(self, sink):
        assert sink.insert_sql == 'INSERT INTO "people" ("id", "name", "age") VALUES (?, ?, ?)'

    def test_transfer_commits_each_batch(self, sink, people_table):
        data = [[1, "a", 10], [2, "b", None], [3, "c", 30]]

        BulkTransferEngine(batch_size=2).transfer(data, sink)

        assert self.count(people_table) == 3
        assert sink.batches_committed == 2

    def test_rejected_batch_rolled_back(self, sink, people_table):
        data = [[1, "a", 1], [2, "b", 2], [3, None, 3], [4, "d", 4], [5, "e", 5]]

        with pytest.raises(BulkTransferError) as exc_info:
            BulkTransferEngine(batch_size=2).transfer(data, sink)

        error = exc_info.value
        assert error.batch_index == 2
        assert error.rows_committed == 2
        assert isinstance(error.__cause__, sqlite3.IntegrityError)
        assert self.count(people_table) == 2

        info = describe_error(error)
        assert info.title == "Required value missing"
        assert "'name'" in info.message

    def test_truncate(self, sink, people_table):
        people_table.execute("INSERT INTO people VALUES (9, 'old', NULL)")
        people_table.commit()

        sink.truncate()

        assert self.count(people_table) == 0

    def test_truncate_missing_table(self, sqlite_conn):
        dialect = DialectFactory.create("sqlite", sqlite_conn)
        sink = DatabaseBulkSink(dialect, None, "ghost", ColumnMapping.identity(["a"]))

        with pytest.raises(BulkTransferError, match="Cannot empty table ghost"):
            sink.truncate()

    def test_adapts_values(self, make_table, sqlite_conn):
        make_table("CREATE TABLE t (flag INT, amount TEXT, at TEXT)")
        dialect = DialectFactory.create("sqlite", sqlite_conn)
        sink = DatabaseBulkSink(dialect, None, "t", ColumnMapping.identity(["flag", "amount", "at"]))

        BulkTransferEngine().transfer([[True, Decimal("1.50"), datetime(2024, 1, 2, 3, 4, 5)]], sink)

        assert sqlite_conn.execute("SELECT * FROM t").fetchall() == [(1, "1.50", "2024-01-02 03:04:05")]


class TestDescribeError:
    """Driver message translation"""

    @pytest.mark.parametrize("message,title", [
        ("Cannot insert the value NULL into column 'Name', table 'db.dbo.People'", "Required value missing"),
        ("NOT NULL constraint failed: people.name", "Required value missing"),
        ("Cannot insert explicit value for identity column in table 'Orders' when IDENTITY_INSERT is set to OFF.",
         "Identity column"),
        ("Violation of PRIMARY KEY constraint 'PK_Orders'", "Duplicate key"),
        ("UNIQUE constraint failed: people.id", "Duplicate key"),
        ("String or binary data would be truncated.", "Value too long"),
        ("Query timeout expired", "Timeout"),
    ])
    def test_known_patterns(self, message, title):
        assert describe_error(Exception(message)).title == title

    def test_column_name_extracted(self):
        info = describe_error(Exception("Cannot insert the value NULL into column 'Name'"))

        assert info.message == "Column 'Name' does not accept NULL values."

    def test_unknown_message(self):
        info = describe_error(RuntimeError("something odd"))

        assert info.title == "RuntimeError"
        assert info.message == "something odd"
        assert info.suggestion == ""
        assert "Suggestion" not in info.format_full()
