"""
Record-level helpers for profile pages and lookup columns
"""

import logging
from typing import Any, Collection, Dict, Iterable, List, Optional

from ..database.adapters import DatabaseAdapter
from ..database.errors import DataBrowserError
from ..database.models import (
    Column,
    Filter,
    FilterOperator,
    Pagination,
    QueryOptions,
    Relationship,
    SchemaMetadata,
)
from .relations import RelationshipAnalyzer

logger = logging.getLogger(__name__)

DEFAULT_RELATED_LIMIT = 50


def fetch_record(adapter: DatabaseAdapter, table: str, schema: Optional[str],
                 key_column: str, key_value: Any) -> Optional[Dict[str, Any]]:
    """Fetch a single row by key, or None"""
    options = QueryOptions(
        filters=[Filter(key_column, FilterOperator.EQUALS, key_value)],
        pagination=Pagination(page=1, page_size=1),
    )
    result = adapter.get_table_data(table, schema, options)
    return result.rows[0] if result.rows else None


def fetch_related_records(adapter: DatabaseAdapter, table: str, schema: Optional[str],
                          record: Dict[str, Any], relationships: List[Relationship],
                          allowed_tables: Optional[Collection[str]] = None,
                          limit: int = DEFAULT_RELATED_LIMIT) -> Dict[str, List[Dict[str, Any]]]:
    """Rows of every table related to `record`, keyed by related table key.

    Relationships whose local value is null, or whose related table is not in
    `allowed_tables`, are skipped. A failing related query is logged and
    skipped so one inaccessible table does not hide the others.
    """
    related_rows: Dict[str, List[Dict[str, Any]]] = {}

    for related in RelationshipAnalyzer.get_related_tables(table, schema, relationships):
        if allowed_tables is not None and related.key not in allowed_tables:
            logger.debug(f"Skipping {related.key} - not in allowed configuration")
            continue

        value = record.get(related.local_column)
        if value is None:
            continue

        options = QueryOptions(
            filters=[Filter(related.remote_column, FilterOperator.EQUALS, value)],
            pagination=Pagination(page=1, page_size=limit),
        )
        try:
            result = adapter.get_table_data(related.table, related.schema, options)
        except DataBrowserError as e:
            logger.error(f"Error fetching related data for {related.key}: {e}")
            continue

        related_rows.setdefault(related.key, []).extend(result.rows)

    return related_rows


def fetch_lookup_values(adapter: DatabaseAdapter, table: str, schema: Optional[str],
                        lookup_column: str, display_column: str,
                        ids: Iterable[Any]) -> Dict[Any, str]:
    """Map ids to display strings with a single IN query"""
    unique_ids = []
    for value in ids:
        if value is not None and value not in unique_ids:
            unique_ids.append(value)
    if not unique_ids:
        return {}

    options = QueryOptions(filters=[Filter(lookup_column, FilterOperator.IN, unique_ids)])
    result = adapter.get_table_data(table, schema, options)

    lookup = {}
    for row in result.rows:
        key = row.get(lookup_column)
        display = row.get(display_column)
        if key is not None and display is not None:
            lookup[key] = str(display)
    return lookup


def resolve_lookup_schema(lookup_table: str, column: Optional[Column], metadata: SchemaMetadata,
                          current_schema: Optional[str] = None) -> Dict[str, Optional[str]]:
    """Work out which schema a configured lookup table lives in.

    Tries, in order: an explicit "schema.table" name, the schema of the
    column's foreign key, a table of that name that is unique across the
    metadata (exact match first, then case-insensitive), and finally the
    current table's schema.
    """
    if '.' in lookup_table:
        schema, name = lookup_table.split('.', 1)
        return {'table': name, 'schema': schema}

    name = lookup_table

    if column is not None and column.foreign_key is not None:
        fk = column.foreign_key
        if fk.referenced_table == name:
            return {'table': name, 'schema': fk.referenced_schema}
        # FK to another table: its schema only counts when the lookup table lives there too
        if fk.referenced_schema and metadata.find_table(name, fk.referenced_schema):
            return {'table': name, 'schema': fk.referenced_schema}

    for match in (lambda t: t.name == name, lambda t: t.name.lower() == name.lower()):
        candidates = [t for t in metadata.tables if match(t) and t.schema]
        if len(candidates) == 1:
            return {'table': candidates[0].name, 'schema': candidates[0].schema}
        if candidates:
            # Ambiguous name
            break

    return {'table': name, 'schema': current_schema}
