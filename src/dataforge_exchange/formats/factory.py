"""
Format Factory - Create the handler for an exchange format
"""

from typing import Dict, List, Type, Union

from .base import ExchangeFormat, FormatHandler

import logging
logger = logging.getLogger(__name__)


class FormatFactory:
    """
    Factory for creating format handlers.

    Usage:
        handler = FormatFactory.create("csv")
        dataset = handler.read("orders.csv", ReadOptions(delimiter=";"))
    """

    _handlers: Dict[ExchangeFormat, Type[FormatHandler]] = {}

    @classmethod
    def create(cls, fmt: Union[str, ExchangeFormat]) -> FormatHandler:
        """
        Create a handler for the given format.

        Args:
            fmt: ExchangeFormat or its name / file extension

        Raises:
            ValueError: If the format is unknown
        """
        exchange_format = ExchangeFormat.from_name(fmt)
        handler_class = cls._handlers.get(exchange_format)
        if handler_class is None:
            raise ValueError(f"No handler registered for format: {exchange_format.value}")
        return handler_class()

    @classmethod
    def readable_formats(cls) -> List[ExchangeFormat]:
        """Formats that can be imported (everything except SQL scripts)."""
        return [fmt for fmt, handler in cls._handlers.items() if handler().can_read]

    @classmethod
    def register(cls, fmt: ExchangeFormat, handler_class: Type[FormatHandler]):
        """Register a handler class for a format."""
        cls._handlers[fmt] = handler_class
        logger.debug(f"Registered format handler for: {fmt.value}")


def _register_default_formats():
    """Register built-in formats. Called on module import."""
    from .csv_format import CsvFormat
    from .spreadsheet_format import SpreadsheetFormat
    from .json_format import JsonFormat
    from .xml_format import XmlFormat
    from .sql_script_format import SqlScriptFormat

    FormatFactory.register(ExchangeFormat.CSV, CsvFormat)
    FormatFactory.register(ExchangeFormat.SPREADSHEET, SpreadsheetFormat)
    FormatFactory.register(ExchangeFormat.JSON, JsonFormat)
    FormatFactory.register(ExchangeFormat.XML, XmlFormat)
    FormatFactory.register(ExchangeFormat.SQL_SCRIPT, SqlScriptFormat)


# Register on module import
_register_default_formats()
