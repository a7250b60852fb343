"""
Utilities - Logging setup.
"""

from .logger import setup_logging

__all__ = ["setup_logging"]
