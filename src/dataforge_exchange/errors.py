"""
Exchange Errors - Error taxonomy for import/export jobs

Structural problems (unreadable file, unknown table, rejected batch) are
raised as ExchangeError subclasses and abort the job. Per-cell problems never
raise: they are carried as coercion outcomes and summarised in the JobSummary.

Also translates cryptic driver messages raised while writing batches into
user-friendly messages with suggestions for resolution.
"""

import re
from dataclasses import dataclass
from typing import Optional

import logging
logger = logging.getLogger(__name__)


class ExchangeError(Exception):
    """Base class for fatal import/export errors."""


class FormatParseError(ExchangeError):
    """The source file is structurally malformed or cannot be read."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class SchemaResolutionError(ExchangeError):
    """The destination table or its columns could not be found."""


class MissingRequiredColumnError(ExchangeError):
    """A non-nullable column has neither source data nor a usable default."""

    def __init__(self, message: str, column: Optional[str] = None,
                 row_number: Optional[int] = None):
        super().__init__(message)
        self.column = column
        self.row_number = row_number


class BulkTransferError(ExchangeError):
    """The destination rejected a batch. Earlier batches stay committed."""

    def __init__(self, message: str, batch_index: int = 0, rows_committed: int = 0):
        super().__init__(message)
        self.batch_index = batch_index
        self.rows_committed = rows_committed


class JobCancelledError(ExchangeError):
    """The user asked the job to stop. Reported as 'cancelled', not as a failure."""


class JobConflictError(ExchangeError):
    """Another job is already writing to or reading from the same table."""


class TypeCoercionWarning(UserWarning):
    """A value was missing or unparsable and a null or default was substituted."""


@dataclass
class ErrorInfo:
    """Structured error information for display."""
    title: str  # Short error title
    message: str  # User-friendly message
    suggestion: str  # What to do to fix it
    original_error: str  # Original error for debugging

    def format_full(self) -> str:
        """Format complete error message for display."""
        parts = [self.title, "", self.message]
        if self.suggestion:
            parts.extend(["", "Suggestion:", self.suggestion])
        return "\n".join(parts)


# Format: (regex_pattern, title, message_template, suggestion)
# Use {match} in message_template to include regex group(1)
TRANSFER_PATTERNS = [
    # SQL Server: Cannot insert the value NULL into column 'x'
    (
        r"cannot insert the value null into column ['\"]?(\w+)['\"]?",
        "Required value missing",
        "Column '{match}' does not accept NULL values.",
        "Provide a value for this column in the source file, "
        "or disable 'skip row errors' so the job stops before writing."
    ),
    # SQLite: NOT NULL constraint failed: table.column
    (
        r"not null constraint failed: [\w\.]*?(\w+)$",
        "Required value missing",
        "Column '{match}' does not accept NULL values.",
        "Provide a value for this column in the source file."
    ),
    # Explicit value into an identity column
    (
        r"explicit value for identity column in table ['\"]?([\w\.]+)['\"]?",
        "Identity column",
        "Table '{match}' generates its identity values itself.",
        "Remove the identity column from the source file, "
        "or export the data as a SQL script which enables IDENTITY_INSERT."
    ),
    # Duplicate key
    (
        r"(?:violation of (?:primary|unique) key|unique constraint failed|duplicate key)",
        "Duplicate key",
        "A row in the batch duplicates an existing key.",
        "Enable 'truncate before import' or remove duplicate rows from the source."
    ),
    # Foreign key / check constraint
    (
        r"(?:foreign key|check constraint|conflicted with the)",
        "Constraint violation",
        "A row in the batch violates a table constraint.",
        "Check that referenced rows exist and values satisfy the table constraints."
    ),
    # String truncation
    (
        r"(?:string or binary data would be truncated|right truncation)",
        "Value too long",
        "A text value is longer than the destination column allows.",
        "Shorten the values in the source file or widen the destination column."
    ),
    # Conversion failure
    (
        r"(?:conversion failed|error converting|datatype mismatch|invalid character value)",
        "Conversion failure",
        "The destination could not convert a value to the column type.",
        "Check the column types of the destination table against the source data."
    ),
    # Timeout
    (
        r"(?:timeout expired|query timeout|database is locked)",
        "Timeout",
        "The destination did not accept the batch in time.",
        "Use a smaller batch size or a longer timeout."
    ),
]


def describe_error(error: Exception) -> ErrorInfo:
    """
    Parse a transfer error and return user-friendly information.

    Args:
        error: The exception that occurred (usually the cause of a BulkTransferError)

    Returns:
        ErrorInfo with user-friendly message and suggestion
    """
    cause = error.__cause__ if error.__cause__ is not None else error
    error_str = str(cause)
    original_error = str(error)

    for pattern, title, message_template, suggestion in TRANSFER_PATTERNS:
        match = re.search(pattern, error_str, re.IGNORECASE | re.MULTILINE)
        if match:
            message = message_template
            if "{match}" in message and match.groups():
                message = message.replace("{match}", match.group(1))

            return ErrorInfo(
                title=title,
                message=message,
                suggestion=suggestion,
                original_error=original_error
            )

    return ErrorInfo(
        title=type(error).__name__,
        message=original_error,
        suggestion="",
        original_error=original_error
    )
