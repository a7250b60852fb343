"""
Core module - Dataset, schema, coercion and transfer.

Architecture:
    Readers (CSV, Excel, JSON, XML)
           ↓
    dataset.py → TabularDataset (pivot)
           ↓
    coercion.py → CoercedRow per dataset row (needs ColumnSchema from schema.py)
           ↓
    transfer.py → batches → BulkWriteSink

Jobs tying the pieces together live in core.job (import it directly).
"""

from .dataset import TabularDataset, synthesize_column_names
from .schema import ColumnSchema, ResolvedSchema, SemanticType, map_native_type
from .coercion import (
    CoercedRow,
    CoercionEngine,
    CoercionOutcome,
    DefaultPolicy,
    OutcomeKind,
    coerce,
)
from .cancellation import CancellationToken
from .summary import JobStatus, JobSummary
from .transfer import (
    Batch,
    BulkTransferEngine,
    BulkWriteSink,
    ColumnMapping,
    DatabaseBulkSink,
)

__all__ = [
    # Dataset
    "TabularDataset",
    "synthesize_column_names",

    # Schema
    "ColumnSchema",
    "ResolvedSchema",
    "SemanticType",
    "map_native_type",

    # Coercion
    "CoercedRow",
    "CoercionEngine",
    "CoercionOutcome",
    "DefaultPolicy",
    "OutcomeKind",
    "coerce",

    # Transfer
    "Batch",
    "BulkTransferEngine",
    "BulkWriteSink",
    "ColumnMapping",
    "DatabaseBulkSink",
    "CancellationToken",
    "JobStatus",
    "JobSummary",
]
