"""
Spreadsheet Format - Excel (.xlsx) reader/writer via pandas + openpyxl.

Only the first worksheet is read. Cells are read as text so numbers keep the
form they have in the sheet; empty cells become empty strings.
"""

import logging
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Any

import pandas as pd

from ..constants import SPREADSHEET_SHEET_NAME
from ..core.dataset import TabularDataset, synthesize_column_names
from .base import ExchangeFormat, FormatHandler, ReadOptions, WriteOptions, cell_text

logger = logging.getLogger(__name__)


def _sheet_value(value: Any) -> Any:
    """Keep values Excel stores natively, render everything else as text."""
    if value is None:
        return None
    if isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if isinstance(value, Decimal):
        # Text keeps every digit; Excel numbers are doubles
        return str(value)
    return cell_text(value)


class SpreadsheetFormat(FormatHandler):
    """Reads the first worksheet of a workbook; writes a single 'Data' sheet."""

    format = ExchangeFormat.SPREADSHEET

    def _read(self, path: Path, options: ReadOptions) -> TabularDataset:
        df = pd.read_excel(
            path,
            sheet_name=0,
            header=None,
            dtype=str,
            keep_default_na=False,
            nrows=options.record_limit,
            engine="openpyxl",
        )

        records = [list(record) for record in df.itertuples(index=False, name=None)]

        if options.include_headers and records:
            header = records.pop(0)
            columns = [str(name).strip() or f"Column{i + 1}" for i, name in enumerate(header)]
        else:
            columns = synthesize_column_names(len(df.columns))

        dataset = TabularDataset(columns=columns, source_info={"sheet": 0, "engine": "openpyxl"})
        for record in records:
            dataset.append_row(["" if _blank(v) else str(v) for v in record])
        return dataset

    def _write(self, dataset: TabularDataset, path: Path, options: WriteOptions) -> None:
        df = pd.DataFrame(
            [[_sheet_value(v) for v in row] for row in dataset.iter_rows()],
            columns=dataset.columns,
            dtype=object,
        )
        df.to_excel(
            path,
            sheet_name=SPREADSHEET_SHEET_NAME,
            index=False,
            header=options.include_headers,
            engine="openpyxl",
        )


def _blank(value: Any) -> bool:
    if value is None:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False
