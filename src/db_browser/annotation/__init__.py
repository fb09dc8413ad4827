"""
Optional AI labeling of schema metadata
"""

from .models import (
    AggregateType,
    CardType,
    ColumnConfig,
    DisplayFormat,
    ProfileCard,
    ProfileLayout,
    SchemaAnnotation,
)
from .client import SchemaAnnotator, annotate_schema, build_schema_digest

__all__ = [
    'AggregateType',
    'CardType',
    'ColumnConfig',
    'DisplayFormat',
    'ProfileCard',
    'ProfileLayout',
    'SchemaAnnotation',
    'SchemaAnnotator',
    'annotate_schema',
    'build_schema_digest',
]
