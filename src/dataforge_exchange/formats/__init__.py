"""
Exchange Formats - File readers and writers

Usage:
    from dataforge_exchange.formats import FormatFactory, ReadOptions

    handler = FormatFactory.create("json")
    dataset = handler.read("orders.json", ReadOptions())
"""

from .base import (
    ExchangeFormat,
    FormatHandler,
    ReadOptions,
    WriteOptions,
    cell_text,
    resolve_delimiter,
    resolve_encoding,
)
from .factory import FormatFactory

from .csv_format import CsvFormat
from .spreadsheet_format import SpreadsheetFormat
from .json_format import JsonFormat
from .xml_format import XmlFormat
from .sql_script_format import SqlScriptFormat, sql_literal

__all__ = [
    # Base classes
    "ExchangeFormat",
    "FormatHandler",
    "ReadOptions",
    "WriteOptions",
    "cell_text",
    "resolve_delimiter",
    "resolve_encoding",

    # Factory
    "FormatFactory",

    # Implementations
    "CsvFormat",
    "SpreadsheetFormat",
    "JsonFormat",
    "XmlFormat",
    "SqlScriptFormat",
    "sql_literal",
]
