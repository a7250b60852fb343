"""
Import/Export Jobs - One file <-> one table, run as a single unit of work.

Import:  Reader -> TabularDataset -> SchemaResolver -> CoercionEngine
         -> BulkTransferEngine -> destination table
Export:  SchemaResolver + TableRowSource -> TabularDataset -> Writer

Jobs never raise for data problems. Structural failures (unreadable file,
unknown table, rejected batch) end the job and are recorded in the returned
JobSummary, as is cancellation.
"""

import logging
import threading
from abc import ABC, abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterable, Iterator, List, Optional, Sequence, Set, Tuple, Union

from ..config.settings import ExchangeSettings
from ..constants import (
    CANCEL_CHECK_INTERVAL,
    DEFAULT_BATCH_SIZE,
    DEFAULT_DELIMITER,
    DEFAULT_ENCODING,
    clean_identifier,
    is_valid_batch_size,
    is_valid_identifier,
)
from ..database.dialects import DatabaseDialect, DialectFactory
from ..database.row_source import TableRowSource
from ..database.schema_resolver import SchemaResolver
from ..errors import ExchangeError, JobCancelledError, JobConflictError, MissingRequiredColumnError
from ..formats import (
    ExchangeFormat,
    FormatFactory,
    ReadOptions,
    WriteOptions,
    resolve_delimiter,
    resolve_encoding,
)
from .cancellation import CancellationToken
from .coercion import CoercedRow, CoercionEngine, DefaultPolicy
from .summary import JobStatus, JobSummary
from .transfer import BulkTransferEngine, ColumnMapping, DatabaseBulkSink

logger = logging.getLogger(__name__)


@dataclass
class JobParameters:
    """Everything the caller chooses for one import or export."""
    format: Union[str, ExchangeFormat]
    file_path: Union[str, Path]
    target_table: str
    target_schema: Optional[str] = None
    include_headers: bool = True
    encoding: str = DEFAULT_ENCODING
    delimiter: str = DEFAULT_DELIMITER
    truncate_before_import: bool = False
    skip_row_errors: bool = False
    validate_before_import: bool = False
    batch_size: int = DEFAULT_BATCH_SIZE

    @property
    def exchange_format(self) -> ExchangeFormat:
        return ExchangeFormat.from_name(self.format)

    @property
    def qualified_table(self) -> str:
        return f"{self.target_schema}.{self.target_table}" if self.target_schema else self.target_table

    def validate(self) -> "JobParameters":
        """
        Check names, batch size and file options before a job starts.

        Raises:
            ValueError: On the first invalid parameter
        """
        ExchangeFormat.from_name(self.format)
        if not is_valid_identifier(self.target_table or ""):
            raise ValueError(f"Invalid table name: {self.target_table!r}")
        if self.target_schema and not is_valid_identifier(self.target_schema):
            raise ValueError(f"Invalid schema name: {self.target_schema!r}")
        # Names are quoted by the dialect, so brackets typed by the user are dropped
        self.target_table = clean_identifier(self.target_table)
        if self.target_schema:
            self.target_schema = clean_identifier(self.target_schema)
        if not is_valid_batch_size(self.batch_size):
            raise ValueError(f"Batch size must be between 1 and 10000, got {self.batch_size}")
        if not self.file_path:
            raise ValueError("No file path given")
        resolve_encoding(self.encoding)
        resolve_delimiter(self.delimiter)
        return self

    def read_options(self) -> ReadOptions:
        return ReadOptions(
            include_headers=self.include_headers,
            encoding=self.encoding,
            delimiter=self.delimiter,
        )

    def write_options(self, identity_columns: Iterable[str] = ()) -> WriteOptions:
        return WriteOptions(
            include_headers=self.include_headers,
            encoding=self.encoding,
            delimiter=self.delimiter,
            schema_name=self.target_schema,
            table_name=self.target_table,
            identity_columns=frozenset(identity_columns),
        )


class TableJobRegistry:
    """
    Tracks the tables that have a job running.

    A second job on the same schema.table is rejected with JobConflictError
    until the first one has released the table.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._active: Set[Tuple[str, str]] = set()

    @staticmethod
    def _key(schema_name: Optional[str], table_name: str) -> Tuple[str, str]:
        return ((schema_name or "").strip("[]").lower(), table_name.strip("[]").lower())

    def acquire(self, schema_name: Optional[str], table_name: str) -> None:
        """
        Raises:
            JobConflictError: If a job already holds the table
        """
        key = self._key(schema_name, table_name)
        with self._lock:
            if key in self._active:
                name = f"{schema_name}.{table_name}" if schema_name else table_name
                raise JobConflictError(f"Another job is already running on {name}")
            self._active.add(key)

    def release(self, schema_name: Optional[str], table_name: str) -> None:
        with self._lock:
            self._active.discard(self._key(schema_name, table_name))

    def is_active(self, schema_name: Optional[str], table_name: str) -> bool:
        with self._lock:
            return self._key(schema_name, table_name) in self._active

    @contextmanager
    def claim(self, schema_name: Optional[str], table_name: str):
        self.acquire(schema_name, table_name)
        try:
            yield
        finally:
            self.release(schema_name, table_name)


# Shared by every job in the process
default_registry = TableJobRegistry()


class _ExchangeJob(ABC):
    """Shared plumbing of import and export jobs."""

    kind = "job"

    def __init__(self, connection: Any, db_type: str, params: JobParameters,
                 settings: Optional[ExchangeSettings] = None,
                 cancel_token: Optional[CancellationToken] = None,
                 registry: Optional[TableJobRegistry] = default_registry,
                 db_name: Optional[str] = None):
        """
        Args:
            connection: Open DB-API connection, used sequentially by this job only
            db_type: Dialect name (sqlserver, sqlite)
            params: Job parameters (validated here)
            settings: Timeout, error cap and default policy
            cancel_token: Cooperative cancellation flag
            registry: Per-table job registry; None when the caller already holds the table
            db_name: Database name for catalog queries (SQL Server)
        """
        self.params = params.validate()
        self.settings = settings or ExchangeSettings()
        self.cancel_token = cancel_token or CancellationToken()
        self.registry = registry
        self.dialect: DatabaseDialect = DialectFactory.create(db_type, connection, db_name)

    @property
    def schema_name(self) -> str:
        return self.params.target_schema or self.dialect.default_schema

    def run(self) -> JobSummary:
        """
        Run the job to completion.

        Returns:
            Finalized JobSummary (status completed, failed or cancelled)
        """
        summary = JobSummary(
            kind=self.kind,
            target=self.params.qualified_table,
            max_examples=self.settings.max_error_examples,
        )
        summary.start()
        logger.info(f"Starting {self.kind} {self.params.qualified_table} ({self.params.file_path})")

        try:
            if self.registry is not None:
                with self.registry.claim(self.schema_name, self.params.target_table):
                    self._execute(summary)
            else:
                self._execute(summary)
        except JobCancelledError as e:
            logger.warning(f"{self.kind.capitalize()} {summary.target} cancelled")
            summary.finalize(JobStatus.CANCELLED, str(e))
        except ExchangeError as e:
            logger.error(f"{self.kind.capitalize()} {summary.target} failed: {e}")
            summary.finalize(JobStatus.FAILED, str(e))
        else:
            summary.finalize(JobStatus.COMPLETED)
            logger.info(
                f"{self.kind.capitalize()} completed: {summary.rows_written} rows "
                f"({summary.rows_defaulted} defaulted, {summary.coercion_warnings} warnings)"
            )
        return summary

    @abstractmethod
    def _execute(self, summary: JobSummary) -> None:
        """Do the work, updating summary. Raise ExchangeError to fail the job."""
        pass


class ImportJob(_ExchangeJob):
    """Loads a file into an existing table."""

    kind = "import"

    def __init__(self, *args, policy: Optional[DefaultPolicy] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.policy = policy or self.settings.default_policy()

    def _execute(self, summary: JobSummary) -> None:
        params = self.params

        handler = FormatFactory.create(params.exchange_format)
        dataset = handler.read(params.file_path, params.read_options())
        summary.rows_read = dataset.row_count
        self.cancel_token.raise_if_cancelled()

        resolved = SchemaResolver(self.dialect).resolve(params.target_schema, params.target_table)
        columns = list(resolved.columns)

        keep = self._insertable_positions(columns, resolved.identity_columns)
        mappings = ColumnMapping.identity(columns[i].name for i in keep)

        coerced = CoercionEngine(self.policy).coerce(dataset, columns)
        checked = self._account(coerced, summary)
        if params.validate_before_import:
            # Everything is coerced and checked before the table is touched
            rows: Iterable[Sequence[Any]] = list(checked)
            logger.info(f"Validated {len(rows)} rows before import")
        else:
            rows = checked

        sink = DatabaseBulkSink(
            self.dialect, params.target_schema, params.target_table, mappings,
            batch_size=params.batch_size, timeout=self.settings.bulk_timeout_s,
        )
        if params.truncate_before_import:
            self.cancel_token.raise_if_cancelled()
            sink.truncate()

        projected = (tuple(values[i] for i in keep) for values in rows)
        engine = BulkTransferEngine(params.batch_size, self.settings.bulk_timeout_s)
        engine.transfer(projected, sink, summary, self.cancel_token)

    def _insertable_positions(self, columns, identity_columns) -> List[int]:
        """Destination column positions written by the bulk insert."""
        if self.dialect.accepts_explicit_identity or not identity_columns:
            return list(range(len(columns)))
        skipped = [c.name for c in columns if c.name in identity_columns]
        logger.info(f"Identity values are generated by the destination: {', '.join(skipped)}")
        return [i for i, c in enumerate(columns) if c.name not in identity_columns]

    def _account(self, rows: Iterable[CoercedRow], summary: JobSummary) -> Iterator[Tuple[Any, ...]]:
        """
        Record each coerced row in the summary and yield its values.

        Raises:
            MissingRequiredColumnError: On the first unresolvable cell, unless
                skip_row_errors is set (the null placeholder is passed on instead)
            JobCancelledError: Checked every CANCEL_CHECK_INTERVAL rows
        """
        for row in rows:
            if row.row_number % CANCEL_CHECK_INTERVAL == 0:
                self.cancel_token.raise_if_cancelled()

            summary.record_row(row)
            unresolvable = row.unresolvable
            if unresolvable and not self.params.skip_row_errors:
                first = unresolvable[0]
                raise MissingRequiredColumnError(
                    first.describe(row.row_number),
                    column=first.column,
                    row_number=row.row_number,
                )
            yield row.values


class ExportJob(_ExchangeJob):
    """Writes a whole table to a file."""

    kind = "export"

    def _execute(self, summary: JobSummary) -> None:
        params = self.params

        handler = FormatFactory.create(params.exchange_format)
        resolved = SchemaResolver(self.dialect).resolve(params.target_schema, params.target_table)

        dataset = TableRowSource(self.dialect).fetch(params.target_schema, params.target_table)
        summary.rows_read = dataset.row_count
        self.cancel_token.raise_if_cancelled()

        options = params.write_options(resolved.identity_columns)
        if options.schema_name is None:
            options.schema_name = resolved.schema_name or None
        handler.write(dataset, params.file_path, options)
        summary.rows_written = dataset.row_count


class JobRunner:
    """
    Runs jobs on a worker pool so the caller is never blocked.

    Each job gets its own connection from connection_factory, closed when the
    job ends. A table can only have one job submitted at a time.

    Usage:
        runner = JobRunner(connection_factory("sqlite", "app.db"), "sqlite")
        future = runner.submit_import(params)
        summary = future.result()
    """

    def __init__(self, connection_factory: Callable[[], Any], db_type: str,
                 settings: Optional[ExchangeSettings] = None,
                 registry: Optional[TableJobRegistry] = None,
                 db_name: Optional[str] = None,
                 max_workers: int = 2):
        self.connection_factory = connection_factory
        self.db_type = db_type
        self.settings = settings or ExchangeSettings()
        self.registry = registry or default_registry
        self.db_name = db_name
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="exchange-job")

    def submit_import(self, params: JobParameters,
                      cancel_token: Optional[CancellationToken] = None) -> "Future[JobSummary]":
        """
        Queue an import.

        Raises:
            ValueError: If the parameters are invalid
            JobConflictError: If the table already has a job
        """
        return self._submit(ImportJob, params, cancel_token)

    def submit_export(self, params: JobParameters,
                      cancel_token: Optional[CancellationToken] = None) -> "Future[JobSummary]":
        """Queue an export (same errors as submit_import)."""
        return self._submit(ExportJob, params, cancel_token)

    def _submit(self, job_class, params: JobParameters,
                cancel_token: Optional[CancellationToken]) -> "Future[JobSummary]":
        params.validate()
        schema = params.target_schema or DialectFactory.create(self.db_type, None).default_schema
        self.registry.acquire(schema, params.target_table)
        try:
            return self._executor.submit(self._run, job_class, params, cancel_token, schema)
        except Exception:
            self.registry.release(schema, params.target_table)
            raise

    def _run(self, job_class, params: JobParameters,
             cancel_token: Optional[CancellationToken], schema: str) -> JobSummary:
        try:
            connection = self.connection_factory()
            try:
                job = job_class(
                    connection, self.db_type, params,
                    settings=self.settings,
                    cancel_token=cancel_token,
                    registry=None,
                    db_name=self.db_name,
                )
                return job.run()
            finally:
                connection.close()
        finally:
            self.registry.release(schema, params.target_table)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.shutdown()
        return False
