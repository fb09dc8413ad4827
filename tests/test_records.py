"""Record, related-record and lookup helper tests."""

from db_browser.database import Column, FilterOperator, ForeignKey, SchemaMetadata, Table
from db_browser.schema import (
    fetch_lookup_values,
    fetch_record,
    fetch_related_records,
    resolve_lookup_schema,
)


class TestFetchRecord:

    def test_returns_single_row(self, sales_adapter) -> None:
        # When
        row = fetch_record(sales_adapter, "orders", "sales", "id", 12)

        # Then
        assert row == {"id": 12, "customer_id": 2, "status": "shipped"}
        _, options = sales_adapter.data_calls[0]
        assert options.pagination.page_size == 1
        assert options.filters[0].operator == FilterOperator.EQUALS

    def test_missing_record(self, sales_adapter) -> None:
        assert fetch_record(sales_adapter, "orders", "sales", "id", 999) is None


class TestFetchRelatedRecords:

    def test_follows_both_directions(self, sales_adapter, sales_relationships) -> None:
        # Given
        record = {"id": 10, "customer_id": 1, "status": "shipped"}

        # When
        related = fetch_related_records(sales_adapter, "orders", "sales", record, sales_relationships)

        # Then
        assert related == {
            "sales.customers": [{"id": 1, "name": "Acme"}],
            "billing.invoices": [{"id": 100, "order_id": 10}],
        }

    def test_inbound_returns_all_children(self, sales_adapter, sales_relationships) -> None:
        record = {"id": 1, "name": "Acme"}

        related = fetch_related_records(sales_adapter, "customers", "sales", record, sales_relationships)

        assert [r["id"] for r in related["sales.orders"]] == [10, 11]

    def test_null_local_value_is_skipped(self, sales_adapter, sales_relationships) -> None:
        record = {"id": 13, "customer_id": None, "status": "draft"}

        related = fetch_related_records(sales_adapter, "orders", "sales", record, sales_relationships)

        assert "sales.customers" not in related
        assert related["billing.invoices"] == []

    def test_allowed_tables_filter(self, sales_adapter, sales_relationships) -> None:
        record = {"id": 10, "customer_id": 1, "status": "shipped"}

        related = fetch_related_records(sales_adapter, "orders", "sales", record, sales_relationships,
                                        allowed_tables=["sales.customers"])

        assert list(related) == ["sales.customers"]
        assert [call[0] for call in sales_adapter.data_calls] == ["sales.customers"]

    def test_failing_related_table_is_skipped(self, make_adapter, sales_relationships) -> None:
        # Given
        adapter = make_adapter(failing_queries=["billing.invoices"])
        record = {"id": 10, "customer_id": 1, "status": "shipped"}

        # When
        related = fetch_related_records(adapter, "orders", "sales", record, sales_relationships)

        # Then
        assert list(related) == ["sales.customers"]

    def test_limit_applies_per_table(self, sales_adapter, sales_relationships) -> None:
        record = {"id": 1, "name": "Acme"}

        related = fetch_related_records(sales_adapter, "customers", "sales", record, sales_relationships,
                                        limit=1)

        assert len(related["sales.orders"]) == 1


class TestLookups:

    def test_fetch_lookup_values(self, sales_adapter) -> None:
        # When
        values = fetch_lookup_values(sales_adapter, "customers", "sales", "id", "name", [1, 3, 1, None])

        # Then
        assert values == {1: "Acme", 3: "Initech"}
        _, options = sales_adapter.data_calls[0]
        assert options.filters[0].operator == FilterOperator.IN
        assert options.filters[0].value == [1, 3]

    def test_fetch_lookup_values_without_ids(self, sales_adapter) -> None:
        assert fetch_lookup_values(sales_adapter, "customers", "sales", "id", "name", [None]) == {}
        assert sales_adapter.data_calls == []


class TestResolveLookupSchema:

    def _metadata(self) -> SchemaMetadata:
        return SchemaMetadata(
            schemas=["sales", "hr"],
            tables=[
                Table(name="customers", schema="sales"),
                Table(name="Regions", schema="sales"),
                Table(name="employees", schema="hr"),
            ],
        )

    def test_explicit_schema(self) -> None:
        assert resolve_lookup_schema("hr.employees", None, self._metadata()) == \
            {"table": "employees", "schema": "hr"}

    def test_foreign_key_schema(self) -> None:
        column = Column("rep_id", "int", foreign_key=ForeignKey("employees", "id", "FK_rep", "hr"))

        result = resolve_lookup_schema("employees", column, self._metadata(), current_schema="sales")

        assert result == {"table": "employees", "schema": "hr"}

    def test_current_schema(self) -> None:
        result = resolve_lookup_schema("customers", None, self._metadata(), current_schema="sales")

        assert result == {"table": "customers", "schema": "sales"}

    def test_name_scan(self) -> None:
        result = resolve_lookup_schema("employees", None, self._metadata(), current_schema="sales")

        assert result == {"table": "employees", "schema": "hr"}

    def test_case_insensitive_fallback(self) -> None:
        result = resolve_lookup_schema("regions", None, self._metadata())

        assert result == {"table": "Regions", "schema": "sales"}

    def test_ambiguous_name_uses_current_schema(self) -> None:
        # Given the same table name in two schemas
        metadata = SchemaMetadata(
            schemas=["ref", "hr", "sales"],
            tables=[
                Table(name="status", schema="ref"),
                Table(name="status", schema="hr"),
                Table(name="orders", schema="sales"),
            ],
        )

        # When
        result = resolve_lookup_schema("status", None, metadata, current_schema="sales")

        # Then
        assert result == {"table": "status", "schema": "sales"}

    def test_ambiguous_name_without_current_schema(self) -> None:
        metadata = SchemaMetadata(tables=[Table(name="status", schema="ref"), Table(name="status", schema="hr")])

        assert resolve_lookup_schema("status", None, metadata) == {"table": "status", "schema": None}

    def test_foreign_key_to_other_table_is_only_a_hint(self) -> None:
        # FK points at customers in sales, but the lookup table lives in hr only
        column = Column("customer_id", "int", foreign_key=ForeignKey("customers", "id", "FK_c", "sales"))

        result = resolve_lookup_schema("employees", column, self._metadata())

        assert result == {"table": "employees", "schema": "hr"}

    def test_unresolved(self) -> None:
        assert resolve_lookup_schema("ghosts", None, self._metadata()) == {"table": "ghosts", "schema": None}
