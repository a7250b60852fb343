"""
DataForge Exchange - Schema-driven import/export between files and tables
"""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("dataforge-exchange")
except PackageNotFoundError:
    # Package not installed (running from a source checkout)
    __version__ = "0.1.0"

__author__ = "Lestat2Lioncourt"

__all__ = ["__version__"]
