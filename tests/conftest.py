"""Shared fixtures: an in-memory adapter standing in for a live database."""

from typing import Any, Dict, List, Optional

import pytest

from db_browser.database import (
    Column,
    DatabaseAdapter,
    DatabaseConfig,
    FilterOperator,
    ForeignKey,
    IntrospectionError,
    QueryExecutionError,
    QueryOptions,
    QueryResult,
    Relationship,
    Table,
    table_key,
)


class FakeAdapter(DatabaseAdapter):
    """Adapter over dicts; evaluates equals/in filters and pagination in memory."""

    def __init__(self, tables: List[Table], relationships: List[Relationship],
                 rows: Optional[Dict[str, List[Dict[str, Any]]]] = None,
                 failing_columns: Optional[List[str]] = None,
                 failing_queries: Optional[List[str]] = None,
                 failing_schemas: Optional[List[str]] = None):
        super().__init__(DatabaseConfig("localhost", "shop", "sa", "secret"))
        self.tables = tables
        self.relationships = relationships
        self.rows = rows or {}
        self.failing_columns = set(failing_columns or [])
        self.failing_queries = set(failing_queries or [])
        self.failing_schemas = set(failing_schemas or [])
        self.connected = False
        self.column_calls: List[str] = []
        self.data_calls: List[tuple] = []

    def connect(self) -> None:
        self.connected = True

    def disconnect(self) -> None:
        self.connected = False

    def test_connection(self) -> bool:
        if not self.connected:
            self.connect()
        return self.connected

    def get_schemas(self) -> List[str]:
        return sorted({t.schema for t in self.tables if t.schema})

    def get_tables(self, schema: Optional[str] = None) -> List[Table]:
        if schema in self.failing_schemas:
            raise QueryExecutionError(f"VIEW DEFINITION permission denied on schema {schema}", code=300)
        return [
            Table(name=t.name, schema=t.schema, columns=[], row_count=t.row_count)
            for t in self.tables
            if schema is None or t.schema == schema
        ]

    def get_columns(self, table: str, schema: Optional[str] = None) -> List[Column]:
        key = table_key(table, schema)
        self.column_calls.append(key)
        if key in self.failing_columns:
            raise IntrospectionError(f"Could not read columns of {key}", code=229,
                                     table=table, schema=schema)
        for t in self.tables:
            if t.key == key:
                return list(t.columns)
        return []

    def get_relationships(self) -> List[Relationship]:
        return list(self.relationships)

    def execute_query(self, sql: str, params: Optional[Dict[str, Any]] = None) -> QueryResult:
        raise NotImplementedError("FakeAdapter evaluates get_table_data in memory")

    def quote_identifier(self, name: str) -> str:
        return f'"{name}"'

    def pagination_clause(self) -> str:
        return "LIMIT :page_size OFFSET :offset"

    def get_table_data(self, table: str, schema: Optional[str] = None,
                       options: Optional[QueryOptions] = None) -> QueryResult:
        options = options or QueryOptions()
        key = table_key(table, schema)
        self.data_calls.append((key, options))
        if key in self.failing_queries:
            raise QueryExecutionError(f"SELECT permission denied on {key}", code=229)

        rows = list(self.rows.get(key, []))
        for filt in options.filters:
            if filt.operator == FilterOperator.EQUALS:
                rows = [r for r in rows if r.get(filt.column) == filt.value]
            elif filt.operator == FilterOperator.IN:
                rows = [r for r in rows if r.get(filt.column) in filt.value]
            else:
                raise AssertionError(f"Unexpected operator {filt.operator}")

        total = len(rows)
        if options.pagination:
            start = options.pagination.offset
            rows = rows[start:start + options.pagination.page_size]
        return QueryResult(rows=rows, columns=self.get_columns(table, schema), row_count=total)


def _sales_tables() -> List[Table]:
    return [
        Table(
            name="customers",
            schema="sales",
            columns=[
                Column("id", "int", nullable=False, primary_key=True),
                Column("name", "nvarchar", max_length=200),
            ],
            row_count=3,
        ),
        Table(
            name="orders",
            schema="sales",
            columns=[
                Column("id", "int", nullable=False, primary_key=True),
                Column("customer_id", "int", foreign_key=ForeignKey(
                    referenced_table="customers", referenced_column="id",
                    constraint_name="FK_orders_customers", referenced_schema="sales")),
                Column("status", "nvarchar", max_length=20),
            ],
            row_count=4,
        ),
        Table(
            name="legacy_blob",
            schema="sales",
            columns=[Column("payload", "varbinary")],
            row_count=None,
        ),
        Table(
            name="invoices",
            schema="billing",
            columns=[
                Column("id", "int", nullable=False, primary_key=True),
                Column("order_id", "int"),
            ],
            row_count=2,
        ),
    ]


def _sales_relationships() -> List[Relationship]:
    return [
        Relationship(
            from_table="orders", from_schema="sales", from_column="customer_id",
            to_table="customers", to_schema="sales", to_column="id",
            constraint_name="FK_orders_customers",
        ),
        Relationship(
            from_table="invoices", from_schema="billing", from_column="order_id",
            to_table="orders", to_schema="sales", to_column="id",
            constraint_name="FK_invoices_orders",
        ),
    ]


def _sales_rows() -> Dict[str, List[Dict[str, Any]]]:
    return {
        "sales.customers": [
            {"id": 1, "name": "Acme"},
            {"id": 2, "name": "Globex"},
            {"id": 3, "name": "Initech"},
        ],
        "sales.orders": [
            {"id": 10, "customer_id": 1, "status": "shipped"},
            {"id": 11, "customer_id": 1, "status": "pending"},
            {"id": 12, "customer_id": 2, "status": "shipped"},
            {"id": 13, "customer_id": None, "status": "draft"},
        ],
        "billing.invoices": [
            {"id": 100, "order_id": 10},
            {"id": 101, "order_id": 12},
        ],
    }


@pytest.fixture
def sales_tables() -> List[Table]:
    return _sales_tables()


@pytest.fixture
def sales_relationships() -> List[Relationship]:
    return _sales_relationships()


@pytest.fixture
def sales_adapter() -> FakeAdapter:
    return FakeAdapter(_sales_tables(), _sales_relationships(), rows=_sales_rows())


@pytest.fixture
def make_adapter():
    """Build a FakeAdapter over the sales fixture with custom failure points."""
    def factory(**kwargs) -> FakeAdapter:
        return FakeAdapter(_sales_tables(), _sales_relationships(), rows=_sales_rows(), **kwargs)
    return factory
