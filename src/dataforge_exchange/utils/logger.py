"""
Logging Module - Coloured console output and optional file logging

Modules log through logging.getLogger(__name__); this only configures the
handlers of the package logger.
"""

import logging
from pathlib import Path
from typing import Optional, Union

from colorama import init, Fore, Style

# Initialize colorama for Windows compatibility
init()

PACKAGE_LOGGER = "dataforge_exchange"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FORMAT = "[%(asctime)s] [%(levelname)-10s] %(message)s"

_COLORS = {
    logging.CRITICAL: Fore.RED,
    logging.ERROR: Fore.RED,
    logging.WARNING: Fore.YELLOW,
    logging.INFO: Fore.RESET,
    logging.DEBUG: Fore.CYAN,
}


class ColorFormatter(logging.Formatter):
    """Formatter colouring whole lines by level"""

    def format(self, record: logging.LogRecord) -> str:
        entry = super().format(record)
        color = _COLORS.get(record.levelno, Fore.RESET)
        return f"{color}{entry}{Style.RESET_ALL}"


def setup_logging(level: Union[int, str] = "INFO",
                  log_file: Optional[Union[str, Path]] = None) -> logging.Logger:
    """
    Configure the package logger.

    Calling it again replaces the handlers installed by the previous call.

    Args:
        level: Level name or number
        log_file: Optional path of a UTF-8 log file (appended to)

    Returns:
        The package logger
    """
    if isinstance(level, str):
        name = level
        level = logging.getLevelName(name.upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {name}")

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(level)

    for handler in list(package_logger.handlers):
        if getattr(handler, "_dataforge_handler", False):
            package_logger.removeHandler(handler)
            handler.close()

    console = logging.StreamHandler()
    console.setFormatter(ColorFormatter(LOG_FORMAT, DATE_FORMAT))
    console._dataforge_handler = True
    package_logger.addHandler(console)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        file_handler._dataforge_handler = True
        package_logger.addHandler(file_handler)
        package_logger.info(f"Log file: {log_path}")

    return package_logger
