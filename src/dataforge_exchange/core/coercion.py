"""
Value Coercion Engine - Converts raw source cells into destination-typed values.

Every destination cell resolves to exactly one CoercionOutcome:

- VALUE: the raw value parsed into the column's semantic type
- NULL: the column is nullable and the value was missing, empty or unparsable
- DEFAULT: the column is NOT NULL and the type default was substituted
- UNRESOLVABLE: the column is NOT NULL and no default is available

The engine never raises for bad data. Callers decide what an UNRESOLVABLE
outcome means for the job (abort, or write a null placeholder and count it).
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Callable, Iterator, List, Optional, Sequence, Tuple

import pandas as pd

from .dataset import TabularDataset
from .schema import ColumnSchema, SemanticType

logger = logging.getLogger(__name__)

REASON_MISSING = "missing-or-empty"
REASON_UNPARSABLE = "unparsable"
REASON_NO_DEFAULT = "no default available"

# Inclusive value ranges of the integral SQL Server types
INTEGER_RANGES = {
    SemanticType.BYTE: (0, 255),
    SemanticType.SMALL_INTEGER: (-2 ** 15, 2 ** 15 - 1),
    SemanticType.INTEGER: (-2 ** 31, 2 ** 31 - 1),
    SemanticType.BIG_INTEGER: (-2 ** 63, 2 ** 63 - 1),
}

_TRUE_TEXT = {"true", "1"}
_FALSE_TEXT = {"false", "0"}


class OutcomeKind(Enum):
    """The four possible results of coercing one cell."""
    VALUE = "value"
    NULL = "null"
    DEFAULT = "default"
    UNRESOLVABLE = "unresolvable"


@dataclass(frozen=True)
class CoercionOutcome:
    """
    Result of coercing one destination cell.

    Attributes:
        kind: Which variant this outcome is
        value: Parsed value (VALUE) or substituted default (DEFAULT)
        reason: Why a null/default was substituted or why nothing could be
        column: Destination column name
        raw: The raw source value, kept for messages
    """
    kind: OutcomeKind
    value: Any = None
    reason: str = ""
    column: str = ""
    raw: Any = None

    @classmethod
    def of_value(cls, value: Any, column: str = "", raw: Any = None) -> "CoercionOutcome":
        return cls(OutcomeKind.VALUE, value=value, column=column, raw=raw)

    @classmethod
    def null(cls, reason: str = "", column: str = "", raw: Any = None) -> "CoercionOutcome":
        return cls(OutcomeKind.NULL, reason=reason, column=column, raw=raw)

    @classmethod
    def default(cls, value: Any, reason: str, column: str = "", raw: Any = None) -> "CoercionOutcome":
        return cls(OutcomeKind.DEFAULT, value=value, reason=reason, column=column, raw=raw)

    @classmethod
    def unresolvable(cls, reason: str, column: str = "", raw: Any = None) -> "CoercionOutcome":
        return cls(OutcomeKind.UNRESOLVABLE, reason=reason, column=column, raw=raw)

    @property
    def placeholder(self) -> Any:
        """Value handed to the destination. UNRESOLVABLE becomes a null placeholder."""
        if self.kind in (OutcomeKind.VALUE, OutcomeKind.DEFAULT):
            return self.value
        return None

    @property
    def is_warning(self) -> bool:
        """True when a null or default replaced a value that was present but unparsable,
        or when a default was substituted."""
        if self.kind == OutcomeKind.DEFAULT:
            return True
        return self.kind == OutcomeKind.NULL and self.reason.startswith(REASON_UNPARSABLE)

    def describe(self, row_number: Optional[int] = None) -> str:
        """Human-readable message for the job summary."""
        where = f"Row {row_number}, column '{self.column}'" if row_number else f"Column '{self.column}'"
        if self.kind == OutcomeKind.UNRESOLVABLE:
            return f"{where}: {self.reason} ({_raw_text(self.raw)})"
        if self.kind == OutcomeKind.DEFAULT:
            return f"{where}: {self.reason}, default {self.value!r} used ({_raw_text(self.raw)})"
        if self.kind == OutcomeKind.NULL and self.reason:
            return f"{where}: {self.reason}, NULL used ({_raw_text(self.raw)})"
        return f"{where}: {self.kind.value}"


def _raw_text(raw: Any) -> str:
    if raw is None:
        return "no value"
    if raw == "":
        return "empty value"
    return f"value {raw!r}"


@dataclass
class DefaultPolicy:
    """
    Defaults substituted into NOT NULL columns when the source has no usable value.

    Integers default to 0, booleans to False, decimals and floats to 0.0 and
    strings to "". Date/time and GUID defaults are fabricated (current time,
    fresh identifier) and can be switched off, in which case those columns have
    no default and resolve to UNRESOLVABLE.
    """
    fabricate_datetime: bool = True
    fabricate_guid: bool = True
    clock: Callable[[], datetime] = datetime.now
    guid_factory: Callable[[], uuid.UUID] = uuid.uuid4

    def default_for(self, semantic_type: SemanticType) -> Tuple[bool, Any]:
        """
        Look up the default for a semantic type.

        Returns:
            (available, value) - available is False when no default exists
        """
        if semantic_type.is_integral:
            return True, 0
        if semantic_type == SemanticType.BOOLEAN:
            return True, False
        if semantic_type == SemanticType.DECIMAL:
            return True, Decimal("0.0")
        if semantic_type == SemanticType.FLOAT:
            return True, 0.0
        if semantic_type == SemanticType.DATETIME:
            return (True, self.clock()) if self.fabricate_datetime else (False, None)
        if semantic_type == SemanticType.GUID:
            return (True, self.guid_factory()) if self.fabricate_guid else (False, None)
        return True, ""


# ==================== Parsers ====================

def _parse_integer(text: str, semantic_type: SemanticType) -> int:
    stripped = text.strip()
    try:
        value = int(stripped)
    except ValueError:
        # Accept integral decimals such as "30.0" written by float-typed sources
        number = Decimal(stripped)
        if not number.is_finite() or number != number.to_integral_value():
            raise ValueError(f"not an integer: {text!r}")
        value = int(number)

    low, high = INTEGER_RANGES[semantic_type]
    if not low <= value <= high:
        raise ValueError(f"{value} outside range {low}..{high}")
    return value


def _parse_boolean(text: str) -> bool:
    lowered = text.strip().lower()
    if lowered in _TRUE_TEXT:
        return True
    if lowered in _FALSE_TEXT:
        return False
    raise ValueError(f"not a boolean: {text!r}")


def _parse_decimal(text: str) -> Decimal:
    value = Decimal(text.strip())
    if not value.is_finite():
        raise ValueError(f"not a finite decimal: {text!r}")
    return value


def _parse_float(text: str) -> float:
    value = float(text.strip())
    if value != value or value in (float("inf"), float("-inf")):
        raise ValueError(f"not a finite number: {text!r}")
    return value


def _parse_datetime(text: str) -> datetime:
    stripped = text.strip()
    try:
        return datetime.fromisoformat(stripped)
    except ValueError:
        pass
    # pandas resolves "now" and "today" to the current time; a date needs digits
    if not any(ch.isdigit() for ch in stripped):
        raise ValueError(f"not a date/time: {text!r}")
    timestamp = pd.to_datetime(stripped)
    if pd.isna(timestamp):
        raise ValueError(f"not a date/time: {text!r}")
    return timestamp.to_pydatetime()


def _parse_guid(text: str) -> uuid.UUID:
    return uuid.UUID(text.strip())


def parse_value(text: str, semantic_type: SemanticType) -> Any:
    """
    Parse a non-empty raw string into the semantic type.

    Raises:
        ValueError (or ArithmeticError/TypeError/OverflowError) on failure
    """
    if semantic_type.is_integral:
        return _parse_integer(text, semantic_type)
    if semantic_type == SemanticType.BOOLEAN:
        return _parse_boolean(text)
    if semantic_type == SemanticType.DECIMAL:
        return _parse_decimal(text)
    if semantic_type == SemanticType.FLOAT:
        return _parse_float(text)
    if semantic_type == SemanticType.DATETIME:
        return _parse_datetime(text)
    if semantic_type == SemanticType.GUID:
        return _parse_guid(text)
    return text


def _as_text(raw: Any) -> str:
    if isinstance(raw, str):
        return raw
    if isinstance(raw, bool):
        return "true" if raw else "false"
    return str(raw)


# ==================== Engine ====================

@dataclass(frozen=True)
class CoercedRow:
    """Coerced outcomes for one dataset row, in destination column order."""
    row_number: int
    outcomes: Tuple[CoercionOutcome, ...] = field(default_factory=tuple)

    @property
    def values(self) -> Tuple[Any, ...]:
        return tuple(o.placeholder for o in self.outcomes)

    @property
    def has_default(self) -> bool:
        return any(o.kind == OutcomeKind.DEFAULT for o in self.outcomes)

    @property
    def unresolvable(self) -> List[CoercionOutcome]:
        return [o for o in self.outcomes if o.kind == OutcomeKind.UNRESOLVABLE]

    @property
    def warnings(self) -> List[CoercionOutcome]:
        return [o for o in self.outcomes if o.is_warning]


class CoercionEngine:
    """
    Coerces a TabularDataset against destination column schemas.

    Usage:
        engine = CoercionEngine(DefaultPolicy())
        for row in engine.coerce(dataset, columns):
            sink_rows.append(row.values)
    """

    def __init__(self, policy: Optional[DefaultPolicy] = None):
        self.policy = policy or DefaultPolicy()

    def coerce_cell(self, raw: Any, column: ColumnSchema) -> CoercionOutcome:
        """
        Resolve one cell.

        Args:
            raw: Source value (None when the source has no matching column)
            column: Destination column

        Returns:
            Exactly one CoercionOutcome
        """
        if raw is None or raw == "":
            return self._fallback(column, REASON_MISSING, raw)

        try:
            value = parse_value(_as_text(raw), column.semantic_type)
        except (ValueError, TypeError, ArithmeticError, OverflowError) as e:
            logger.debug(f"Cannot parse {raw!r} for {column.name} ({column.native_type}): {e}")
            return self._fallback(column, REASON_UNPARSABLE, raw)

        return CoercionOutcome.of_value(value, column=column.name, raw=raw)

    def _fallback(self, column: ColumnSchema, reason: str, raw: Any) -> CoercionOutcome:
        if column.nullable:
            # A missing value in a nullable column is not a warning
            null_reason = "" if reason == REASON_MISSING else reason
            return CoercionOutcome.null(null_reason, column=column.name, raw=raw)

        available, value = self.policy.default_for(column.semantic_type)
        if available:
            return CoercionOutcome.default(value, reason, column=column.name, raw=raw)
        return CoercionOutcome.unresolvable(REASON_NO_DEFAULT, column=column.name, raw=raw)

    def match_columns(self, dataset: TabularDataset,
                      columns: Sequence[ColumnSchema]) -> List[Optional[int]]:
        """
        Locate each destination column in the dataset by case-insensitive name.

        Returns:
            Source position per destination column (None when absent)
        """
        positions = [dataset.column_index(c.name) for c in columns]

        wanted = {c.name.lower() for c in columns}
        unmatched = [name for name in dataset.columns if name.lower() not in wanted]
        if unmatched:
            logger.warning(f"Source columns ignored (no destination column): {', '.join(unmatched)}")
        missing = [c.name for c, pos in zip(columns, positions) if pos is None]
        if missing:
            logger.warning(f"Destination columns without source data: {', '.join(missing)}")

        return positions

    def coerce(self, dataset: TabularDataset,
               columns: Sequence[ColumnSchema]) -> Iterator[CoercedRow]:
        """
        Stream coerced rows in dataset order.

        Args:
            dataset: Raw source data
            columns: Destination columns in ordinal order

        Yields:
            CoercedRow per dataset row (row_number is 1-based)
        """
        positions = self.match_columns(dataset, columns)

        for row_number, row in enumerate(dataset.rows, start=1):
            outcomes = tuple(
                self.coerce_cell(None if pos is None else row[pos], column)
                for column, pos in zip(columns, positions)
            )
            yield CoercedRow(row_number=row_number, outcomes=outcomes)


def coerce(dataset: TabularDataset, columns: Sequence[ColumnSchema],
           policy: Optional[DefaultPolicy] = None) -> Iterator[CoercedRow]:
    """Shortcut for CoercionEngine(policy).coerce(dataset, columns)."""
    return CoercionEngine(policy).coerce(dataset, columns)
