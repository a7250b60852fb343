"""
Pytest configuration and fixtures for DataForge Exchange tests.
"""
import sqlite3
import uuid
from datetime import datetime

import pytest

from dataforge_exchange.core.coercion import DefaultPolicy

FIXED_NOW = datetime(2024, 1, 2, 3, 4, 5)


@pytest.fixture
def sqlite_conn(tmp_path):
    """Temporary SQLite destination database."""
    conn = sqlite3.connect(tmp_path / "dest.db", check_same_thread=False)
    yield conn
    conn.close()


@pytest.fixture
def make_table(sqlite_conn):
    """Create a table in the temporary database from DDL."""
    def _make(ddl: str, rows=(), insert_sql: str = None):
        sqlite_conn.execute(ddl)
        if rows:
            sqlite_conn.executemany(insert_sql, rows)
        sqlite_conn.commit()
        return sqlite_conn
    return _make


@pytest.fixture
def people_table(make_table):
    """id INT NOT NULL, name VARCHAR NOT NULL, age INT (nullable)."""
    return make_table(
        "CREATE TABLE people (id INT NOT NULL, name VARCHAR(50) NOT NULL, age INT)"
    )


@pytest.fixture
def write_file(tmp_path):
    """Write text (or bytes) to a file under tmp_path and return its path."""
    def _write(name: str, content, encoding: str = "utf-8"):
        path = tmp_path / name
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_bytes(content.encode(encoding))
        return path
    return _write


@pytest.fixture
def people_csv(write_file):
    """The id,name,age sample used by the nullability scenarios."""
    return write_file("people.csv", "id,name,age\n1,Alice,30\n2,Bob,\n")


@pytest.fixture
def fixed_policy():
    """Default policy with a frozen clock and a predictable GUID."""
    return DefaultPolicy(
        clock=lambda: FIXED_NOW,
        guid_factory=lambda: uuid.UUID("00000000-0000-0000-0000-000000000001"),
    )
