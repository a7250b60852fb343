"""
Centralized constants for DataForge Exchange.

Eliminates magic numbers scattered across the codebase.
Import from here instead of hardcoding values.
"""

import re

# ===========================================================================
# Bulk transfer
# ===========================================================================
DEFAULT_BATCH_SIZE = 1000       # Rows per batch handed to the sink
MIN_BATCH_SIZE = 1
MAX_BATCH_SIZE = 10_000         # Upper bound accepted for a job
BULK_TIMEOUT_S = 30             # Per-batch write timeout
CANCEL_CHECK_INTERVAL = 500     # Coerced rows between cancellation checks

# ===========================================================================
# Job summary
# ===========================================================================
MAX_ERROR_EXAMPLES = 5          # Example messages kept in a JobSummary

# ===========================================================================
# SQL script export
# ===========================================================================
SQL_SCRIPT_ROWS_PER_INSERT = 1000   # SQL Server row-constructor limit

# ===========================================================================
# File options
# ===========================================================================
DEFAULT_ENCODING = "UTF-8"
DEFAULT_DELIMITER = ","
SPREADSHEET_SHEET_NAME = "Data"
XML_ROOT_ELEMENT = "data"
XML_ROW_ELEMENT = "row"

# Display name -> Python codec
ENCODINGS = {
    "UTF-8": "utf-8",
    "UTF-16": "utf-16",
    "ASCII": "ascii",
    "Windows-1252": "cp1252",
}

DELIMITERS = (",", ";", "\t", "|")

# ===========================================================================
# SQL identifiers
# ===========================================================================
MAX_IDENTIFIER_LENGTH = 128
_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def is_valid_identifier(name: str) -> bool:
    """
    Check a schema/table name before it is embedded in generated SQL.

    Surrounding brackets are ignored, so "[dbo]" and "dbo" are equivalent.

    Args:
        name: Raw identifier

    Returns:
        True if the name is a plain identifier of at most 128 characters
    """
    if not name or not name.strip():
        return False
    if len(name) > MAX_IDENTIFIER_LENGTH:
        return False
    return bool(_IDENTIFIER_RE.match(clean_identifier(name)))


def clean_identifier(name: str) -> str:
    """Drop surrounding whitespace and brackets: " [dbo] " -> "dbo"."""
    return name.strip().strip("[]")


def is_valid_batch_size(batch_size: int) -> bool:
    """Check that a batch size lies within the accepted range."""
    return MIN_BATCH_SIZE <= batch_size <= MAX_BATCH_SIZE
