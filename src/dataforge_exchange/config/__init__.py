"""
Configuration - Job defaults loaded from YAML.
"""

from .settings import ExchangeSettings, load_settings, CONFIG_ENV_VAR

__all__ = ["ExchangeSettings", "load_settings", "CONFIG_ENV_VAR"]
