"""
JSON Format - Array-of-objects reader/writer.

The keys of the first object fix the column list; later objects are read
against it (missing keys become None, extra keys are ignored).
"""

import json
import logging
from decimal import Decimal
from pathlib import Path
from typing import Any

from ..core.dataset import TabularDataset
from ..errors import FormatParseError
from .base import ExchangeFormat, FormatHandler, ReadOptions, WriteOptions, cell_text

logger = logging.getLogger(__name__)


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _raw_text(value: Any) -> Any:
    """Flatten a parsed JSON value into a raw cell (string or None)."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, default=_json_default)
    return str(value)


def _json_value(value: Any) -> Any:
    """Render a cell for output, keeping JSON's own scalar types."""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, Decimal):
        return str(value)
    return cell_text(value)


class JsonFormat(FormatHandler):
    """Reads and writes a JSON array of flat objects."""

    format = ExchangeFormat.JSON

    def _read(self, path: Path, options: ReadOptions) -> TabularDataset:
        with open(path, "r", encoding=options.read_codec) as f:
            text = f.read()

        if not text.strip():
            return TabularDataset(source_info={"structure": "empty"})

        # Decimal keeps the digits exactly as written in the file
        data = json.loads(text, parse_float=Decimal)

        if not isinstance(data, list):
            raise FormatParseError(
                f"Expected a JSON array of objects, got {type(data).__name__}", path=str(path)
            )

        columns = []
        if data:
            if not isinstance(data[0], dict):
                raise FormatParseError("Element 1 is not a JSON object", path=str(path))
            columns = [str(key) for key in data[0].keys()]

        dataset = TabularDataset(columns=columns, source_info={"structure": "array"})
        for index, item in enumerate(data[:options.max_rows], start=1):
            if not isinstance(item, dict):
                raise FormatParseError(f"Element {index} is not a JSON object", path=str(path))
            dataset.append_row([_raw_text(item.get(column)) for column in columns])
        return dataset

    def _write(self, dataset: TabularDataset, path: Path, options: WriteOptions) -> None:
        records = [
            {column: _json_value(value) for column, value in zip(dataset.columns, row)}
            for row in dataset.iter_rows()
        ]
        with open(path, "w", encoding=options.codec) as f:
            json.dump(records, f, indent=2, ensure_ascii=options.codec == "ascii")
