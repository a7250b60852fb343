"""
CSV Format - Delimited text reader/writer.

Lines are split quote-aware: a quoted field may contain the delimiter and a
doubled quote stands for a literal quote. Blank lines are skipped.
"""

import csv
import logging
from itertools import islice
from pathlib import Path
from typing import List

from ..core.dataset import TabularDataset, synthesize_column_names
from .base import ExchangeFormat, FormatHandler, ReadOptions, WriteOptions, cell_text

logger = logging.getLogger(__name__)


def split_line(line: str, delimiter: str) -> List[str]:
    """Split one CSV line into quote-stripped fields."""
    return next(csv.reader([line], delimiter=delimiter, strict=True), [])


class CsvFormat(FormatHandler):
    """Reads and writes delimited text files."""

    format = ExchangeFormat.CSV

    def _read(self, path: Path, options: ReadOptions) -> TabularDataset:
        delimiter = options.separator
        codec = options.read_codec

        with open(path, "r", encoding=codec, newline="") as f:
            lines = (line for line in f if line.strip())
            records = [
                split_line(line.rstrip("\r\n"), delimiter)
                for line in islice(lines, options.record_limit)
            ]

        if options.include_headers and records:
            header = records.pop(0)
            columns = [name.strip() or f"Column{i + 1}" for i, name in enumerate(header)]
        else:
            width = max((len(r) for r in records), default=0)
            columns = synthesize_column_names(width)

        dataset = TabularDataset(
            columns=columns,
            source_info={"encoding": codec, "separator": delimiter},
        )
        overflow = 0
        for record in records:
            if len(record) > len(columns):
                overflow += 1
            dataset.append_row(record)

        if overflow:
            logger.warning(f"{overflow} rows of {path.name} have more fields than the header; extra fields ignored")
        return dataset

    def _write(self, dataset: TabularDataset, path: Path, options: WriteOptions) -> None:
        with open(path, "w", encoding=options.codec, newline="") as f:
            writer = csv.writer(f, delimiter=options.separator, quoting=csv.QUOTE_ALL)
            if options.include_headers:
                writer.writerow(dataset.columns)
            for row in dataset.iter_rows():
                writer.writerow([cell_text(value) for value in row])
