"""
Job Summary - Counts and example messages collected while a job runs.

Built incrementally by the job, finalized once when the job ends and then
handed to the caller for display.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from ..constants import MAX_ERROR_EXAMPLES
from ..errors import MissingRequiredColumnError, TypeCoercionWarning
from .coercion import CoercedRow

logger = logging.getLogger(__name__)


class JobStatus(Enum):
    """Lifecycle of an import/export job."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class JobSummary:
    """
    Result of an import or export job.

    Attributes:
        kind: "import" or "export"
        target: schema.table the job worked on
        rows_read: Rows read from the source (file or table)
        rows_written: Rows committed to the destination (file or table)
        rows_defaulted: Rows where at least one type default was substituted
        rows_unresolvable: Rows with at least one cell that had no safe value
        coercion_warnings: Cells where a value was present but a null/default was used
        batches_written: Batches committed by the bulk transfer
        error_examples: First messages, capped at max_examples
        error_overflow: Messages dropped once the cap was reached
        error: Message of the error that ended the job, if any
    """
    kind: str = "import"
    target: str = ""
    status: JobStatus = JobStatus.PENDING
    rows_read: int = 0
    rows_written: int = 0
    rows_defaulted: int = 0
    rows_unresolvable: int = 0
    coercion_warnings: int = 0
    batches_written: int = 0
    error_examples: List[str] = field(default_factory=list)
    error_overflow: int = 0
    max_examples: int = MAX_ERROR_EXAMPLES
    error: Optional[str] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def is_finalized(self) -> bool:
        return self.finished_at is not None

    @property
    def succeeded(self) -> bool:
        return self.status == JobStatus.COMPLETED

    @property
    def duration_s(self) -> Optional[float]:
        if self.started_at is None or self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()

    def start(self) -> None:
        self.status = JobStatus.RUNNING
        self.started_at = datetime.now()

    def add_error(self, message: str, category: str = "Error") -> None:
        """Keep the message as an example, or count it once the cap is reached."""
        if len(self.error_examples) < self.max_examples:
            self.error_examples.append(f"[{category}] {message}")
        else:
            self.error_overflow += 1

    def record_row(self, row: CoercedRow) -> None:
        """Account for one coerced row: defaults, unresolvable cells and warnings."""
        if row.has_default:
            self.rows_defaulted += 1

        unresolvable = row.unresolvable
        if unresolvable:
            self.rows_unresolvable += 1
            for outcome in unresolvable:
                self.add_error(outcome.describe(row.row_number), MissingRequiredColumnError.__name__)

        for outcome in row.warnings:
            self.coercion_warnings += 1
            self.add_error(outcome.describe(row.row_number), TypeCoercionWarning.__name__)

    def finalize(self, status: JobStatus, error: Optional[str] = None) -> "JobSummary":
        """
        Close the summary. A summary can only be finalized once.

        Raises:
            RuntimeError: If the summary was already finalized
        """
        if self.is_finalized:
            raise RuntimeError(f"Job summary for {self.target} already finalized")
        self.status = status
        self.error = error
        self.finished_at = datetime.now()
        if self.started_at is None:
            self.started_at = self.finished_at
        return self

    def format_report(self) -> str:
        """Render the summary for display (counts, then up to N example messages)."""
        lines = [f"{self.kind.capitalize()} {self.target}: {self.status.value}"]
        if self.error:
            lines.append(f"  Error: {self.error}")
        lines.append(f"  Rows read:         {self.rows_read}")
        lines.append(f"  Rows written:      {self.rows_written}")
        if self.kind == "import":
            lines.append(f"  Rows defaulted:    {self.rows_defaulted}")
            lines.append(f"  Rows unresolvable: {self.rows_unresolvable}")
            lines.append(f"  Warnings:          {self.coercion_warnings}")
            lines.append(f"  Batches:           {self.batches_written}")
        if self.duration_s is not None:
            lines.append(f"  Duration:          {self.duration_s:.2f}s")

        if self.error_examples:
            lines.append("")
            lines.append(f"Messages (first {len(self.error_examples)}):")
            for message in self.error_examples:
                lines.append(f"  - {message}")
            if self.error_overflow:
                lines.append(f"  ... +{self.error_overflow} more")

        return "\n".join(lines)
