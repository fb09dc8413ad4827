"""
Schema analysis, relationship resolution and record helpers
"""

from .analyzer import SchemaAnalyzer
from .relations import RelatedTable, RelationshipAnalyzer
from .records import fetch_lookup_values, fetch_record, fetch_related_records, resolve_lookup_schema

__all__ = [
    'SchemaAnalyzer',
    'RelatedTable',
    'RelationshipAnalyzer',
    'fetch_lookup_values',
    'fetch_record',
    'fetch_related_records',
    'resolve_lookup_schema',
]
