"""
Tests for destination schema resolution and the export row source
"""
from unittest.mock import Mock

import pytest

from dataforge_exchange.core.schema import ColumnSchema, SemanticType, map_native_type
from dataforge_exchange.database import (
    DialectFactory,
    SchemaResolver,
    TableRowSource,
    connection_factory,
    open_connection,
)
from dataforge_exchange.database.connections import database_name_from
from dataforge_exchange.database.dialects.sqlserver_dialect import SQLServerDialect
from dataforge_exchange.errors import SchemaResolutionError


class TestNativeTypeMapping:
    """Catalog type name -> semantic type"""

    @pytest.mark.parametrize("native,semantic", [
        ("int", SemanticType.INTEGER),
        ("INTEGER", SemanticType.INTEGER),
        ("bigint", SemanticType.BIG_INTEGER),
        ("smallint", SemanticType.SMALL_INTEGER),
        ("tinyint", SemanticType.BYTE),
        ("bit", SemanticType.BOOLEAN),
        ("DECIMAL(10,2)", SemanticType.DECIMAL),
        ("numeric(18, 4)", SemanticType.DECIMAL),
        ("money", SemanticType.DECIMAL),
        ("float", SemanticType.FLOAT),
        ("real", SemanticType.FLOAT),
        ("datetime2", SemanticType.DATETIME),
        ("date", SemanticType.DATETIME),
        ("uniqueidentifier", SemanticType.GUID),
        ("nvarchar", SemanticType.STRING),
        ("VARCHAR(50)", SemanticType.STRING),
        ("xml", SemanticType.STRING),
        ("", SemanticType.STRING),
        (None, SemanticType.STRING),
    ])
    def test_mapping(self, native, semantic):
        assert map_native_type(native) == semantic

    def test_column_from_catalog(self):
        column = ColumnSchema.from_catalog("Price", "DECIMAL(10,2)", 0)

        assert column.semantic_type == SemanticType.DECIMAL
        assert column.nullable is False


class TestSqliteResolution:
    """Resolution against a real SQLite catalog"""

    @pytest.fixture
    def resolver(self, sqlite_conn):
        return SchemaResolver(DialectFactory.create("sqlite", sqlite_conn))

    def test_columns_in_ordinal_order(self, make_table, resolver):
        make_table(
            "CREATE TABLE orders (id INTEGER PRIMARY KEY, total DECIMAL(10,2) NOT NULL, "
            "placed DATETIME, note TEXT)"
        )

        resolved = resolver.resolve(None, "orders")

        assert resolved.column_names == ("id", "total", "placed", "note")
        assert [c.semantic_type for c in resolved.columns] == [
            SemanticType.BIG_INTEGER, SemanticType.DECIMAL, SemanticType.DATETIME, SemanticType.STRING,
        ]
        assert [c.nullable for c in resolved.columns] == [True, False, True, True]
        assert resolved.identity_columns == frozenset({"id"})

    def test_unpacks_into_columns_and_identity(self, people_table, resolver):
        columns, identity = resolver.resolve("", "people")

        assert len(columns) == 3
        assert identity == frozenset()

    @pytest.mark.parametrize("declared", ["INTEGER", "INT", "SMALLINT", "TINYINT", "BIGINT"])
    def test_integers_are_64_bit(self, make_table, resolver, declared):
        make_table(f"CREATE TABLE counts (qty {declared} NOT NULL)")

        assert resolver.resolve(None, "counts").columns[0].semantic_type == SemanticType.BIG_INTEGER

    def test_composite_key_is_not_identity(self, make_table, resolver):
        make_table("CREATE TABLE pairs (a INTEGER, b INTEGER, PRIMARY KEY (a, b))")

        assert resolver.resolve(None, "pairs").identity_columns == frozenset()

    def test_missing_table(self, resolver):
        with pytest.raises(SchemaResolutionError, match="not found"):
            resolver.resolve(None, "no_such_table")


class TestSqlServerResolution:
    """Catalog queries against a mocked pyodbc connection"""

    @pytest.fixture
    def cursor(self):
        cursor = Mock()
        cursor.fetchall.side_effect = [
            [("Id", "int", False), ("Name", "nvarchar", True), ("Amount", "decimal", True)],
            [("Id",)],
        ]
        return cursor

    @pytest.fixture
    def connection(self, cursor):
        connection = Mock()
        connection.cursor.return_value = cursor
        return connection

    def test_resolve_defaults_to_dbo(self, connection, cursor):
        resolved = SchemaResolver(SQLServerDialect(connection)).resolve(None, "Orders")

        assert resolved.schema_name == "dbo"
        assert resolved.column_names == ("Id", "Name", "Amount")
        assert resolved.columns[0].nullable is False
        assert resolved.columns[2].semantic_type == SemanticType.DECIMAL
        assert resolved.identity_columns == frozenset({"Id"})

        first_query, first_params = cursor.execute.call_args_list[0][0]
        assert "sys.columns" in first_query
        assert first_params == ("Orders", "dbo")
        assert cursor.close.call_count == cursor.execute.call_count

    def test_catalog_prefixed_with_database(self, connection, cursor):
        SchemaResolver(SQLServerDialect(connection, "Sales")).resolve("stage", "Orders")

        query, params = cursor.execute.call_args_list[0][0]
        assert "[Sales].sys.columns" in query
        assert params == ("Orders", "stage")

    def test_catalog_failure(self, connection, cursor):
        cursor.execute.side_effect = Exception("Login failed for user 'bob'")

        with pytest.raises(SchemaResolutionError, match="Cannot read columns"):
            SchemaResolver(SQLServerDialect(connection)).resolve("dbo", "Orders")

    def test_bulk_insert_skips_identity(self):
        assert SQLServerDialect(None).accepts_explicit_identity is False
        assert DialectFactory.create("sqlite", None).accepts_explicit_identity is True


class TestTableRowSource:
    """Full-table reads for export"""

    def test_fetch_keeps_native_values(self, make_table, sqlite_conn):
        make_table(
            "CREATE TABLE products (id INTEGER PRIMARY KEY, name TEXT, price REAL)",
            rows=[(1, "Widget", 2.5), (2, None, None)],
            insert_sql="INSERT INTO products VALUES (?, ?, ?)",
        )

        dataset = TableRowSource(DialectFactory.create("sqlite", sqlite_conn)).fetch(None, "products")

        assert dataset.columns == ["id", "name", "price"]
        assert dataset.rows == [[1, "Widget", 2.5], [2, None, None]]

    def test_fetch_first_rows(self, make_table, sqlite_conn):
        make_table(
            "CREATE TABLE numbers (n INTEGER)",
            rows=[(i,) for i in range(10)],
            insert_sql="INSERT INTO numbers VALUES (?)",
        )

        dataset = TableRowSource(DialectFactory.create("sqlite", sqlite_conn)).fetch(None, "numbers", max_rows=3)

        assert dataset.rows == [[0], [1], [2]]
        assert dataset.source_info["sql"] == 'SELECT * FROM "numbers" LIMIT 3'

    def test_fetch_missing_table(self, sqlite_conn):
        source = TableRowSource(DialectFactory.create("sqlite", sqlite_conn))

        with pytest.raises(SchemaResolutionError, match="Cannot read table"):
            source.fetch(None, "nope")

    def test_select_statement(self):
        dialect = SQLServerDialect(None)

        assert dialect.generate_select_query("Orders", "sales") == "SELECT * FROM [sales].[Orders]"
        assert dialect.generate_select_query("Orders", limit=100) == "SELECT TOP 100 * FROM [dbo].[Orders]"
        assert dialect.generate_insert_statement("Orders", None, ["Id", "Total"]) == (
            "INSERT INTO [dbo].[Orders] ([Id], [Total]) VALUES (?, ?)"
        )

    def test_unsupported_database_type(self):
        with pytest.raises(ValueError, match="Unsupported database type"):
            DialectFactory.create("oracle", None)


class TestConnections:
    """Connection helpers"""

    @pytest.mark.parametrize("target,expected", [
        ("Driver={ODBC Driver 17 for SQL Server};Server=db01;Database=Sales;Trusted_Connection=yes;", "Sales"),
        ("DRIVER={SQL Server}; SERVER=db01; Initial Catalog=Hr; UID=u; PWD=p", "Hr"),
        ("Driver={SQL Server};Server=db01", None),
    ])
    def test_database_name_from(self, target, expected):
        assert database_name_from("sqlserver", target) == expected

    def test_sqlite_has_no_database_name(self, tmp_path):
        assert database_name_from("sqlite", str(tmp_path / "x.db")) is None

    def test_connection_factory_opens_fresh_connections(self, tmp_path):
        factory = connection_factory("sqlite", str(tmp_path / "x.db"))

        first, second = factory(), factory()
        try:
            assert first is not second
            assert first.execute("SELECT 1").fetchone() == (1,)
        finally:
            first.close()
            second.close()

    def test_open_unsupported(self):
        with pytest.raises(ValueError, match="Unsupported database type"):
            open_connection("oracle", "x")
