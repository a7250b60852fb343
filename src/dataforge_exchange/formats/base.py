"""
Base Format Handler - Abstract base class for file format readers/writers

Each handler turns an external file into a TabularDataset (read) and a
TabularDataset back into a file (write). Handlers know nothing about the
destination table or the coercion engine.
"""

import codecs
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, datetime, time
from enum import Enum
from pathlib import Path
from typing import Any, FrozenSet, Optional, Union

from ..constants import DEFAULT_DELIMITER, DEFAULT_ENCODING, DELIMITERS, ENCODINGS
from ..core.dataset import TabularDataset
from ..errors import ExchangeError, FormatParseError

logger = logging.getLogger(__name__)


class ExchangeFormat(Enum):
    """Supported exchange formats. SQL_SCRIPT is export-only."""
    CSV = "csv"
    SPREADSHEET = "spreadsheet"
    JSON = "json"
    XML = "xml"
    SQL_SCRIPT = "sql"

    @classmethod
    def from_name(cls, name: Union[str, "ExchangeFormat"]) -> "ExchangeFormat":
        """
        Look up a format by name or file extension (case-insensitive).

        Raises:
            ValueError: If the name matches no format
        """
        if isinstance(name, cls):
            return name
        key = str(name).strip().lower().lstrip(".")
        for fmt in cls:
            if key == fmt.value or key == fmt.name.lower() or key in _ALIASES.get(fmt, ()):
                return fmt
        raise ValueError(f"Unknown format: {name}")

    @property
    def label(self) -> str:
        return _LABELS[self]


_ALIASES = {
    ExchangeFormat.CSV: ("txt", "tsv"),
    ExchangeFormat.SPREADSHEET: ("xlsx", "excel"),
    ExchangeFormat.SQL_SCRIPT: ("sql_script", "script"),
}

_LABELS = {
    ExchangeFormat.CSV: "CSV",
    ExchangeFormat.SPREADSHEET: "Excel",
    ExchangeFormat.JSON: "JSON",
    ExchangeFormat.XML: "XML",
    ExchangeFormat.SQL_SCRIPT: "SQL script",
}


def resolve_encoding(name: Optional[str]) -> str:
    """
    Map an encoding choice to a Python codec name.

    Accepts the display names (UTF-8, UTF-16, ASCII, Windows-1252) and any
    codec Python knows (a code page such as "cp850").

    Raises:
        ValueError: If the codec does not exist
    """
    if not name:
        name = DEFAULT_ENCODING
    for display, codec in ENCODINGS.items():
        if name.lower() == display.lower():
            return codec
    try:
        return codecs.lookup(name).name
    except LookupError:
        raise ValueError(f"Unknown encoding: {name}") from None


def resolve_delimiter(delimiter: Optional[str]) -> str:
    """
    Validate a CSV delimiter. The two characters "\\t" are read as a tab.

    Raises:
        ValueError: If the delimiter is not one of , ; TAB |
    """
    if delimiter is None or delimiter == "":
        return DEFAULT_DELIMITER
    if delimiter in ("\\t", "tab", "TAB"):
        delimiter = "\t"
    if delimiter not in DELIMITERS:
        raise ValueError(f"Unsupported delimiter: {delimiter!r}")
    return delimiter


@dataclass
class ReadOptions:
    """
    Options for reading a source file.

    max_rows bounds the data rows read (header excluded), for previews.
    """
    include_headers: bool = True
    encoding: str = DEFAULT_ENCODING
    delimiter: str = DEFAULT_DELIMITER
    max_rows: Optional[int] = None

    @property
    def codec(self) -> str:
        return resolve_encoding(self.encoding)

    @property
    def read_codec(self) -> str:
        """Codec for reading; UTF-8 also accepts a leading byte order mark."""
        codec = self.codec
        return "utf-8-sig" if codec == "utf-8" else codec

    @property
    def separator(self) -> str:
        return resolve_delimiter(self.delimiter)

    @property
    def record_limit(self) -> Optional[int]:
        """Records to read from the top of the file, header row included."""
        if self.max_rows is None:
            return None
        return self.max_rows + (1 if self.include_headers else 0)


@dataclass
class WriteOptions(ReadOptions):
    """
    Options for writing an export file.

    The table fields are only used by the SQL script writer.
    """
    schema_name: Optional[str] = None
    table_name: Optional[str] = None
    identity_columns: FrozenSet[str] = field(default_factory=frozenset)
    generated_at: Optional[datetime] = None


def cell_text(value: Any) -> str:
    """
    Render a cell as text for the text-based writers.

    None becomes an empty string, booleans become true/false and binary
    values become hex.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return value.isoformat(sep=" ")
    if isinstance(value, (date, time)):
        return value.isoformat()
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).hex()
    return str(value)


class FormatHandler(ABC):
    """
    Abstract base class for format handlers.

    Subclasses implement _read/_write; read/write wrap them with path checks,
    error translation and logging.
    """

    format: ExchangeFormat = None

    @property
    def can_read(self) -> bool:
        return True

    def read(self, path: Union[str, Path], options: Optional[ReadOptions] = None) -> TabularDataset:
        """
        Read a file into a TabularDataset.

        Args:
            path: Source file
            options: Header/encoding/delimiter options and optional row limit

        Returns:
            TabularDataset with string-or-None cells

        Raises:
            FormatParseError: If the file is missing or structurally malformed
            ValueError: If max_rows is given and below 1
        """
        path = Path(path)
        options = options or ReadOptions()

        if not self.can_read:
            raise FormatParseError(f"{self.format.label} files cannot be imported", path=str(path))
        if not path.is_file():
            raise FormatParseError(f"File not found: {path}", path=str(path))
        if options.max_rows is not None and options.max_rows < 1:
            raise ValueError(f"max_rows must be at least 1, got {options.max_rows}")

        try:
            dataset = self._read(path, options)
        except FormatParseError:
            raise
        except Exception as e:
            logger.error(f"Error loading {self.format.label} {path}: {e}")
            raise FormatParseError(f"Cannot read {self.format.label} file {path.name}: {e}",
                                   path=str(path)) from e

        dataset.source_info.setdefault("path", str(path))
        dataset.source_info.setdefault("format", self.format.value)
        logger.info(
            f"Loaded {self.format.label}: {path.name} "
            f"({dataset.row_count} rows, {dataset.column_count} cols)"
        )
        return dataset

    def write(self, dataset: TabularDataset, path: Union[str, Path],
              options: Optional[WriteOptions] = None) -> None:
        """
        Write a dataset to a file, replacing any existing file.

        Raises:
            ExchangeError: If the file cannot be written
        """
        path = Path(path)
        options = options or WriteOptions()

        try:
            self._write(dataset, path, options)
        except ExchangeError:
            raise
        except Exception as e:
            logger.error(f"Error writing {self.format.label} {path}: {e}")
            raise ExchangeError(f"Cannot write {self.format.label} file {path.name}: {e}") from e

        logger.info(f"Exported {dataset.row_count} rows to {self.format.label}: {path.name}")

    @abstractmethod
    def _read(self, path: Path, options: ReadOptions) -> TabularDataset:
        pass

    @abstractmethod
    def _write(self, dataset: TabularDataset, path: Path, options: WriteOptions) -> None:
        pass
