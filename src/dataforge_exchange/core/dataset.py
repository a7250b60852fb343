"""
Tabular Dataset - The interchange shape between readers, coercion and writers.

Readers always produce string-or-None cells. The export row source keeps the
native driver values so writers can render them by type.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Iterator, List, Optional, Sequence

logger = logging.getLogger(__name__)


def synthesize_column_names(count: int) -> List[str]:
    """Column1..ColumnN, used when a source has no header row."""
    return [f"Column{i + 1}" for i in range(count)]


@dataclass
class TabularDataset:
    """
    Ordered column names plus position-addressed rows.

    Attributes:
        columns: Column names as they appeared in the source
        rows: One list per row, always the same length as columns
        source_info: Free-form details about the source (path, encoding, ...)
    """
    columns: List[str] = field(default_factory=list)
    rows: List[List[Any]] = field(default_factory=list)
    source_info: dict = field(default_factory=dict)

    def __post_init__(self):
        width = len(self.columns)
        for index, row in enumerate(self.rows):
            if len(row) != width:
                raise ValueError(
                    f"Row {index + 1} has {len(row)} values, expected {width}"
                )

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def column_count(self) -> int:
        return len(self.columns)

    def is_empty(self) -> bool:
        return not self.rows

    def append_row(self, values: Sequence[Any]) -> None:
        """
        Append a row, padding short rows with None and dropping extra values.

        Args:
            values: Raw cell values in column order
        """
        width = len(self.columns)
        row = list(values[:width])
        if len(row) < width:
            row.extend([None] * (width - len(row)))
        self.rows.append(row)

    def column_index(self, name: str) -> Optional[int]:
        """Find a column position by case-insensitive name, or None."""
        wanted = name.lower()
        for index, column in enumerate(self.columns):
            if column.lower() == wanted:
                return index
        return None

    def iter_rows(self) -> Iterator[List[Any]]:
        return iter(self.rows)
