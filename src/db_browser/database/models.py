"""
Data models for database schema representation and row queries
"""

import base64
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from .errors import ValidationError


class DatabaseType(Enum):
    """Supported (and planned) database engines"""
    SQLSERVER = "sqlserver"
    POSTGRESQL = "postgresql"
    MYSQL = "mysql"


class RelationshipType(Enum):
    ONE_TO_ONE = "one-to-one"
    ONE_TO_MANY = "one-to-many"
    MANY_TO_MANY = "many-to-many"


class FilterOperator(Enum):
    EQUALS = "equals"
    CONTAINS = "contains"
    STARTS_WITH = "startsWith"
    ENDS_WITH = "endsWith"
    GREATER_THAN = "greaterThan"
    LESS_THAN = "lessThan"
    BETWEEN = "between"
    IN = "in"


class SortDirection(Enum):
    ASC = "asc"
    DESC = "desc"


def table_key(name: str, schema: Optional[str] = None) -> str:
    """Build the `schema.table` (or bare `table`) identity key"""
    return f"{schema}.{name}" if schema else name


@dataclass
class DatabaseConfig:
    """Connection settings supplied by the caller on every request"""
    server: str
    database: str
    username: str
    password: str
    port: int = 1433
    options: Dict[str, Any] = field(default_factory=dict)

    REQUIRED_FIELDS = ('server', 'database', 'username', 'password')

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'DatabaseConfig':
        if not isinstance(data, dict):
            raise ValidationError("Database config must be an object")

        missing = [name for name in cls.REQUIRED_FIELDS if not data.get(name)]
        if missing:
            raise ValidationError(f"Missing required config fields: {', '.join(missing)}")

        port = data.get('port') or 1433
        try:
            port = int(port)
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid port: {data.get('port')!r}")

        return cls(
            server=data['server'],
            database=data['database'],
            username=data['username'],
            password=data['password'],
            port=port,
            options=dict(data.get('options') or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'server': self.server,
            'database': self.database,
            'username': self.username,
            'password': self.password,
            'port': self.port,
            'options': dict(self.options),
        }


@dataclass
class ForeignKey:
    """Outbound reference from one column"""
    referenced_table: str
    referenced_column: str
    constraint_name: str
    referenced_schema: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ForeignKey':
        return cls(
            referenced_table=data['referencedTable'],
            referenced_column=data['referencedColumn'],
            constraint_name=data.get('constraintName', ''),
            referenced_schema=data.get('referencedSchema'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'referencedTable': self.referenced_table,
            'referencedSchema': self.referenced_schema,
            'referencedColumn': self.referenced_column,
            'constraintName': self.constraint_name,
        }


@dataclass
class Column:
    """Column definition, owned by exactly one table"""
    name: str
    type: str
    nullable: bool = True
    primary_key: bool = False
    foreign_key: Optional[ForeignKey] = None
    max_length: Optional[int] = None
    precision: Optional[int] = None
    scale: Optional[int] = None
    default_value: Optional[Any] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Column':
        fk = data.get('foreignKey')
        return cls(
            name=data['name'],
            type=data.get('type', ''),
            nullable=bool(data.get('nullable', True)),
            primary_key=bool(data.get('primaryKey', False)),
            foreign_key=ForeignKey.from_dict(fk) if fk else None,
            max_length=data.get('maxLength'),
            precision=data.get('precision'),
            scale=data.get('scale'),
            default_value=data.get('defaultValue'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'type': self.type,
            'nullable': self.nullable,
            'primaryKey': self.primary_key,
            'foreignKey': self.foreign_key.to_dict() if self.foreign_key else None,
            'maxLength': self.max_length,
            'precision': self.precision,
            'scale': self.scale,
            'defaultValue': self.default_value,
        }


@dataclass
class Table:
    """Table identity plus its ordered columns"""
    name: str
    schema: Optional[str] = None
    columns: List[Column] = field(default_factory=list)
    row_count: Optional[int] = None

    @property
    def key(self) -> str:
        return table_key(self.name, self.schema)

    @property
    def primary_key_columns(self) -> List[str]:
        return [col.name for col in self.columns if col.primary_key]

    def get_column(self, name: str) -> Optional[Column]:
        for col in self.columns:
            if col.name == name:
                return col
        return None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Table':
        return cls(
            name=data['name'],
            schema=data.get('schema'),
            columns=[Column.from_dict(col) for col in data.get('columns') or []],
            row_count=data.get('rowCount'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'schema': self.schema,
            'columns': [col.to_dict() for col in self.columns],
            'rowCount': self.row_count,
        }


@dataclass
class Relationship:
    """One foreign key column pair; composite constraints yield several"""
    from_table: str
    from_column: str
    to_table: str
    to_column: str
    constraint_name: str
    from_schema: Optional[str] = None
    to_schema: Optional[str] = None
    relationship_type: RelationshipType = RelationshipType.ONE_TO_MANY

    @property
    def from_key(self) -> str:
        return table_key(self.from_table, self.from_schema)

    @property
    def to_key(self) -> str:
        return table_key(self.to_table, self.to_schema)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Relationship':
        return cls(
            from_table=data['fromTable'],
            from_column=data['fromColumn'],
            to_table=data['toTable'],
            to_column=data['toColumn'],
            constraint_name=data.get('constraintName', ''),
            from_schema=data.get('fromSchema'),
            to_schema=data.get('toSchema'),
            relationship_type=RelationshipType(data.get('relationshipType', 'one-to-many')),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'fromTable': self.from_table,
            'fromSchema': self.from_schema,
            'fromColumn': self.from_column,
            'toTable': self.to_table,
            'toSchema': self.to_schema,
            'toColumn': self.to_column,
            'constraintName': self.constraint_name,
            'relationshipType': self.relationship_type.value,
        }


@dataclass
class SchemaMetadata:
    """Aggregate root for one schema analysis"""
    schemas: List[str] = field(default_factory=list)
    tables: List[Table] = field(default_factory=list)
    relationships: List[Relationship] = field(default_factory=list)

    def find_table(self, name: str, schema: Optional[str] = None) -> Optional[Table]:
        for table in self.tables:
            if table.name == name and table.schema == schema:
                return table
        return None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SchemaMetadata':
        return cls(
            schemas=list(data.get('schemas') or []),
            tables=[Table.from_dict(t) for t in data.get('tables') or []],
            relationships=[Relationship.from_dict(r) for r in data.get('relationships') or []],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'schemas': list(self.schemas),
            'tables': [t.to_dict() for t in self.tables],
            'relationships': [r.to_dict() for r in self.relationships],
        }


@dataclass
class Filter:
    column: str
    operator: FilterOperator
    value: Any = None


@dataclass
class Sort:
    column: str
    direction: SortDirection = SortDirection.ASC


@dataclass
class Pagination:
    page: int
    page_size: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


def _entries(data: Dict[str, Any], name: str) -> List[Any]:
    entries = data.get(name) or []
    if not isinstance(entries, list):
        raise ValidationError(f"Query option '{name}' must be a list")
    return entries


@dataclass
class QueryOptions:
    """Engine-agnostic filter/sort/pagination request, consumed once"""
    filters: List[Filter] = field(default_factory=list)
    sorts: List[Sort] = field(default_factory=list)
    pagination: Optional[Pagination] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'QueryOptions':
        """Parse and validate the wire form of query options"""
        if not data:
            return cls()
        if not isinstance(data, dict):
            raise ValidationError("Query options must be an object")

        filters = []
        for raw in _entries(data, 'filters'):
            if not isinstance(raw, dict):
                raise ValidationError(f"Filter must be an object, got {raw!r}")
            if not raw.get('column'):
                raise ValidationError("Filter is missing a column")
            try:
                operator = FilterOperator(raw.get('operator'))
            except ValueError:
                raise ValidationError(f"Unsupported filter operator: {raw.get('operator')!r}")
            value = raw.get('value')
            if operator == FilterOperator.BETWEEN:
                if not isinstance(value, (list, tuple)) or len(value) != 2:
                    raise ValidationError(f"'between' filter on {raw['column']} needs exactly two values")
            elif operator == FilterOperator.IN:
                if not isinstance(value, (list, tuple)):
                    raise ValidationError(f"'in' filter on {raw['column']} needs a list of values")
            filters.append(Filter(column=raw['column'], operator=operator, value=value))

        sorts = []
        for raw in _entries(data, 'sorts'):
            if not isinstance(raw, dict):
                raise ValidationError(f"Sort must be an object, got {raw!r}")
            if not raw.get('column'):
                raise ValidationError("Sort is missing a column")
            direction = str(raw.get('direction') or 'asc').lower()
            try:
                sorts.append(Sort(column=raw['column'], direction=SortDirection(direction)))
            except ValueError:
                raise ValidationError(f"Unsupported sort direction: {raw.get('direction')!r}")

        pagination = None
        raw_page = data.get('pagination')
        if raw_page:
            if not isinstance(raw_page, dict):
                raise ValidationError(f"Pagination must be an object, got {raw_page!r}")
            try:
                page = int(raw_page.get('page', 1))
                page_size = int(raw_page.get('pageSize'))
            except (TypeError, ValueError):
                raise ValidationError("Pagination needs integer page and pageSize")
            if page < 1 or page_size < 1:
                raise ValidationError("Pagination page and pageSize must be positive")
            pagination = Pagination(page=page, page_size=page_size)

        return cls(filters=filters, sorts=sorts, pagination=pagination)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            'filters': [
                {'column': f.column, 'operator': f.operator.value, 'value': f.value}
                for f in self.filters
            ],
            'sorts': [{'column': s.column, 'direction': s.direction.value} for s in self.sorts],
        }
        if self.pagination:
            data['pagination'] = {'page': self.pagination.page, 'pageSize': self.pagination.page_size}
        return data


def serialize_value(value: Any) -> Any:
    """Convert a driver value into a JSON-safe form"""
    if value is None or isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return base64.b64encode(bytes(value)).decode('ascii')
    if isinstance(value, uuid.UUID):
        return str(value)
    return str(value)


def serialize_row(row: Dict[str, Any]) -> Dict[str, Any]:
    return {name: serialize_value(value) for name, value in row.items()}


@dataclass
class QueryResult:
    """Rows of one page plus the total matching row count"""
    rows: List[Dict[str, Any]] = field(default_factory=list)
    columns: List[Column] = field(default_factory=list)
    row_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'rows': [serialize_row(row) for row in self.rows],
            'columns': [col.to_dict() for col in self.columns],
            'rowCount': self.row_count,
        }
