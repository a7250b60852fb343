"""
Connection Helper - Open the destination connection for a job.

SQL Server goes through pyodbc with an ODBC connection string; SQLite takes a
file path (or ":memory:"). Connection strings are built by the caller.
"""

import logging
import sqlite3
from typing import Any, Callable, Dict, Optional

from ..constants import BULK_TIMEOUT_S

logger = logging.getLogger(__name__)

CONNECTION_TIMEOUT_S = 5


def parse_odbc_connection_string(conn_str: str) -> Dict[str, str]:
    """
    Parse an ODBC-style connection string into a dict.

    Handles ``Key=Value;`` pairs and ``Driver={...}`` with braces.
    Keys are normalised to lower-case.
    """
    result: Dict[str, str] = {}
    i = 0
    length = len(conn_str)

    while i < length:
        # Skip whitespace / semicolons
        while i < length and conn_str[i] in (" ", "\t", ";", "\r", "\n"):
            i += 1
        if i >= length:
            break

        eq_pos = conn_str.find("=", i)
        if eq_pos == -1:
            break
        key = conn_str[i:eq_pos].strip()
        i = eq_pos + 1

        if i < length and conn_str[i] == "{":
            # Brace-quoted value  Driver={ODBC Driver 17 for SQL Server}
            close = conn_str.find("}", i + 1)
            if close == -1:
                value = conn_str[i + 1:]
                i = length
            else:
                value = conn_str[i + 1:close]
                i = close + 1
        else:
            semi = conn_str.find(";", i)
            if semi == -1:
                value = conn_str[i:]
                i = length
            else:
                value = conn_str[i:semi]
                i = semi + 1

        result[key.lower()] = value.strip()

    return result


def database_name_from(db_type: str, target: str) -> Optional[str]:
    """Database name embedded in a SQL Server connection string, if any."""
    if db_type.lower() not in ("sqlserver", "mssql"):
        return None
    params = parse_odbc_connection_string(target)
    return params.get("database") or params.get("initial catalog") or None


def open_connection(db_type: str, target: str, timeout: int = CONNECTION_TIMEOUT_S) -> Any:
    """
    Open a connection with autocommit off (batches are committed explicitly).

    Args:
        db_type: "sqlserver" or "sqlite"
        target: ODBC connection string (SQL Server) or database path (SQLite)
        timeout: Login timeout in seconds

    Returns:
        DB-API connection
    """
    kind = db_type.lower()

    if kind == "sqlite":
        conn = sqlite3.connect(target, timeout=BULK_TIMEOUT_S, check_same_thread=False)
        logger.debug(f"Opened SQLite database: {target}")
        return conn

    if kind in ("sqlserver", "mssql"):
        import pyodbc
        conn = pyodbc.connect(target, timeout=timeout, autocommit=False)
        logger.debug("Opened SQL Server connection")
        return conn

    raise ValueError(f"Unsupported database type: {db_type}")


def connection_factory(db_type: str, target: str) -> Callable[[], Any]:
    """Return a zero-argument callable opening a fresh connection per job."""
    def _factory():
        return open_connection(db_type, target)
    return _factory
