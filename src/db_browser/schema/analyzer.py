"""
Schema analysis: full and selective introspection through an adapter
"""

import logging
from typing import Dict, List, Optional

from ..database.adapters import DatabaseAdapter
from ..database.errors import IntrospectionError
from ..database.models import Relationship, SchemaMetadata, Table
from .relations import RelationshipAnalyzer

logger = logging.getLogger(__name__)


class SchemaAnalyzer:
    """Build a full or partial SchemaMetadata from adapter introspection calls"""

    def __init__(self, adapter: DatabaseAdapter):
        self.adapter = adapter

    def analyze(self) -> SchemaMetadata:
        """Unfiltered analysis of the whole database"""
        return self.adapter.get_schema_metadata()

    def list_tables(self, schema: Optional[str] = None) -> Dict[str, list]:
        """Schema names and column-less tables, cheap enough for a selection UI"""
        return {
            'schemas': self.adapter.get_schemas(),
            'tables': self.adapter.get_tables(schema),
        }

    def analyze_for_selected_tables(self, selected_tables: Optional[List[str]] = None,
                                    selected_schemas: Optional[List[str]] = None) -> SchemaMetadata:
        """Introspect only the selected schemas and/or tables.

        Args:
            selected_tables: keys of the form "schema.table" (or bare "table"
                for schemaless tables); None or empty keeps every table of the
                selected schemas
            selected_schemas: schema names; None keeps every schema

        Returns:
            SchemaMetadata whose relationships only join tables present in
            its own table list
        """
        schemas = self.adapter.get_schemas()
        if selected_schemas is not None:
            wanted = set(selected_schemas)
            schemas = [s for s in schemas if s in wanted]

        all_tables: List[Table] = []
        for schema in schemas:
            all_tables.extend(self.adapter.get_tables(schema))

        if selected_tables:
            selected = set(selected_tables)
            tables_to_process = [t for t in all_tables if t.key in selected]
        else:
            tables_to_process = all_tables

        total = len(tables_to_process)
        logger.info(f"Processing {total} tables...")

        tables_with_columns: List[Table] = []
        for index, table in enumerate(tables_to_process, 1):
            logger.debug(f"[{index}/{total}] Fetching columns for {table.key}")
            try:
                columns = self.adapter.get_columns(table.name, table.schema)
            except IntrospectionError as e:
                logger.warning(f"Error fetching columns for {table.key}: {e}")
                columns = []
            tables_with_columns.append(
                Table(name=table.name, schema=table.schema, columns=columns, row_count=table.row_count)
            )

        logger.info(f"Completed processing {len(tables_with_columns)} tables")

        relationships = self._prune_relationships(self.adapter.get_relationships(), tables_with_columns)

        return SchemaMetadata(
            schemas=schemas,
            tables=tables_with_columns,
            relationships=relationships,
        )

    @staticmethod
    def _prune_relationships(relationships: List[Relationship],
                             tables: List[Table]) -> List[Relationship]:
        # Both endpoints must resolve to a returned table
        keys = {t.key for t in tables}
        return [rel for rel in relationships if rel.from_key in keys and rel.to_key in keys]

    def get_tables_for_schema(self, schema: Optional[str] = None) -> List[Table]:
        """Tables of one schema with their columns"""
        tables = self.adapter.get_tables(schema)
        for table in tables:
            table.columns = self.adapter.get_columns(table.name, table.schema)
        return tables

    def get_relationships_for_table(self, table: str, schema: Optional[str] = None) -> List[Relationship]:
        related = RelationshipAnalyzer.get_related_tables(table, schema, self.adapter.get_relationships())
        return [item.relationship for item in related]
