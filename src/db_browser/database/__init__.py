"""
Database adapters and schema management
"""

from .models import (
    Column,
    DatabaseConfig,
    DatabaseType,
    Filter,
    FilterOperator,
    ForeignKey,
    Pagination,
    QueryOptions,
    QueryResult,
    Relationship,
    RelationshipType,
    SchemaMetadata,
    Sort,
    SortDirection,
    Table,
    table_key,
)
from .errors import (
    DataBrowserError,
    DatabaseConnectionError,
    IntrospectionError,
    QueryExecutionError,
    ValidationError,
)
from .adapters import DatabaseAdapter, SQLServerAdapter
from .factory import DatabaseFactory, connected_adapter

__all__ = [
    'Column',
    'DatabaseConfig',
    'DatabaseType',
    'Filter',
    'FilterOperator',
    'ForeignKey',
    'Pagination',
    'QueryOptions',
    'QueryResult',
    'Relationship',
    'RelationshipType',
    'SchemaMetadata',
    'Sort',
    'SortDirection',
    'Table',
    'table_key',
    'DataBrowserError',
    'DatabaseConnectionError',
    'IntrospectionError',
    'QueryExecutionError',
    'ValidationError',
    'DatabaseAdapter',
    'SQLServerAdapter',
    'DatabaseFactory',
    'connected_adapter',
]
