"""
Exchange Settings - Job defaults loaded from a YAML file.

Lookup order: explicit path, then the DATAFORGE_EXCHANGE_CONFIG environment
variable, then built-in defaults. A missing file is not an error.

Example file:

    batch_size: 500
    encoding: Windows-1252
    delimiter: ";"
    fabricate_datetime_defaults: false
    log_level: DEBUG
"""

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional, Union

import yaml

from ..constants import (
    BULK_TIMEOUT_S,
    DEFAULT_BATCH_SIZE,
    DEFAULT_DELIMITER,
    DEFAULT_ENCODING,
    MAX_ERROR_EXAMPLES,
    is_valid_batch_size,
)
from ..core.coercion import DefaultPolicy

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "DATAFORGE_EXCHANGE_CONFIG"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ExchangeSettings:
    """Defaults applied to import/export jobs."""
    batch_size: int = DEFAULT_BATCH_SIZE
    bulk_timeout_s: int = BULK_TIMEOUT_S
    encoding: str = DEFAULT_ENCODING
    delimiter: str = DEFAULT_DELIMITER
    include_headers: bool = True
    fabricate_datetime_defaults: bool = True
    fabricate_guid_defaults: bool = True
    max_error_examples: int = MAX_ERROR_EXAMPLES
    log_level: str = "INFO"
    log_file: Optional[str] = None

    def validate(self) -> "ExchangeSettings":
        """
        Check value ranges.

        Raises:
            ValueError: On the first invalid value
        """
        if not isinstance(self.batch_size, int) or not is_valid_batch_size(self.batch_size):
            raise ValueError(f"batch_size must be between 1 and 10000, got {self.batch_size!r}")
        if not isinstance(self.bulk_timeout_s, int) or self.bulk_timeout_s <= 0:
            raise ValueError(f"bulk_timeout_s must be a positive integer, got {self.bulk_timeout_s!r}")
        if not isinstance(self.max_error_examples, int) or self.max_error_examples < 0:
            raise ValueError(f"max_error_examples must be >= 0, got {self.max_error_examples!r}")
        if str(self.log_level).upper() not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(_LOG_LEVELS)}")
        for name in ("include_headers", "fabricate_datetime_defaults", "fabricate_guid_defaults"):
            if not isinstance(getattr(self, name), bool):
                raise ValueError(f"{name} must be true or false")
        return self

    def default_policy(self) -> DefaultPolicy:
        """Coercion defaults for NOT NULL columns, as configured."""
        return DefaultPolicy(
            fabricate_datetime=self.fabricate_datetime_defaults,
            fabricate_guid=self.fabricate_guid_defaults,
        )


def load_settings(path: Optional[Union[str, Path]] = None) -> ExchangeSettings:
    """
    Load settings from YAML.

    Args:
        path: Settings file (defaults to $DATAFORGE_EXCHANGE_CONFIG)

    Returns:
        ExchangeSettings (defaults when no file is configured or found)

    Raises:
        ValueError: If the file is not a mapping or holds invalid values
    """
    if path is None:
        path = os.environ.get(CONFIG_ENV_VAR)
    if not path:
        return ExchangeSettings()

    path = Path(path)
    if not path.is_file():
        logger.warning(f"Settings file not found, using defaults: {path}")
        return ExchangeSettings()

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return ExchangeSettings()
    if not isinstance(data, dict):
        raise ValueError(f"Settings file must contain a mapping: {path}")

    known = {f.name for f in fields(ExchangeSettings)}
    unknown = sorted(k for k in data if k not in known)
    if unknown:
        logger.warning(f"Ignoring unknown settings in {path.name}: {', '.join(map(str, unknown))}")

    settings = ExchangeSettings(**{k: v for k, v in data.items() if k in known})
    logger.debug(f"Loaded settings from {path}")
    return settings.validate()
