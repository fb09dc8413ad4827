"""
Database adapters for different database types
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL
from sqlalchemy.exc import SQLAlchemyError

from .errors import (
    DatabaseConnectionError,
    IntrospectionError,
    QueryExecutionError,
    error_code,
)
from .models import (
    Column,
    DatabaseConfig,
    Filter,
    FilterOperator,
    ForeignKey,
    QueryOptions,
    QueryResult,
    Relationship,
    RelationshipType,
    SchemaMetadata,
    Table,
    table_key,
)

logger = logging.getLogger(__name__)


class DatabaseAdapter(ABC):
    """Abstract base class for database adapters

    Subclasses supply connection handling, catalog introspection and a few
    dialect hooks; filter/sort/pagination translation and full schema
    extraction are shared.
    """

    LIKE_ESCAPE = '\\'

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self.engine = None
        self.connection = None

    def __enter__(self) -> 'DatabaseAdapter':
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.disconnect()

    @abstractmethod
    def connect(self) -> None:
        """Open the connection"""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Release the connection; safe when never connected"""
        pass

    @abstractmethod
    def test_connection(self) -> bool:
        """Round-trip a trivial query, never raising"""
        pass

    @abstractmethod
    def get_schemas(self) -> List[str]:
        """Names of schemas owning at least one table"""
        pass

    @abstractmethod
    def get_tables(self, schema: Optional[str] = None) -> List[Table]:
        """Tables without columns, with approximate row counts"""
        pass

    @abstractmethod
    def get_columns(self, table: str, schema: Optional[str] = None) -> List[Column]:
        """Column definitions of one table in ordinal order"""
        pass

    @abstractmethod
    def get_relationships(self) -> List[Relationship]:
        """Every foreign key column pair in the database"""
        pass

    @abstractmethod
    def execute_query(self, sql: str, params: Optional[Dict[str, Any]] = None) -> QueryResult:
        """Execute a parameterized statement"""
        pass

    @abstractmethod
    def quote_identifier(self, name: str) -> str:
        """Quote a single identifier (table, column, schema)"""
        pass

    @abstractmethod
    def pagination_clause(self) -> str:
        """Window clause using the :offset and :page_size parameters"""
        pass

    def neutral_order_by(self) -> Optional[str]:
        """Ordering expression required by the dialect's pagination, if any"""
        return None

    def qualified_name(self, table: str, schema: Optional[str] = None) -> str:
        if schema:
            return f"{self.quote_identifier(schema)}.{self.quote_identifier(table)}"
        return self.quote_identifier(table)

    def escape_like(self, value: Any) -> str:
        escape = self.LIKE_ESCAPE
        text_value = str(value)
        for char in (escape, '%', '_', '['):
            text_value = text_value.replace(char, escape + char)
        return text_value

    def _filter_clause(self, index: int, filt: Filter, params: Dict[str, Any]) -> str:
        """Translate one filter into a SQL fragment, adding its bound parameters"""
        column = self.quote_identifier(filt.column)
        name = f"filter{index}"
        like = f"{column} LIKE :{name} ESCAPE '{self.LIKE_ESCAPE}'"
        op = filt.operator

        if op == FilterOperator.EQUALS:
            params[name] = filt.value
            return f"{column} = :{name}"
        if op == FilterOperator.CONTAINS:
            params[name] = f"%{self.escape_like(filt.value)}%"
            return like
        if op == FilterOperator.STARTS_WITH:
            params[name] = f"{self.escape_like(filt.value)}%"
            return like
        if op == FilterOperator.ENDS_WITH:
            params[name] = f"%{self.escape_like(filt.value)}"
            return like
        if op == FilterOperator.GREATER_THAN:
            params[name] = filt.value
            return f"{column} > :{name}"
        if op == FilterOperator.LESS_THAN:
            params[name] = filt.value
            return f"{column} < :{name}"
        if op == FilterOperator.BETWEEN:
            low, high = filt.value
            params[f"{name}_low"] = low
            params[f"{name}_high"] = high
            return f"{column} BETWEEN :{name}_low AND :{name}_high"
        if op == FilterOperator.IN:
            values = list(filt.value)
            if not values:
                return "1 = 0"
            placeholders = []
            for i, value in enumerate(values):
                params[f"{name}_{i}"] = value
                placeholders.append(f":{name}_{i}")
            return f"{column} IN ({', '.join(placeholders)})"
        raise ValueError(f"Unhandled filter operator: {op}")

    def build_table_query(self, table: str, schema: Optional[str] = None,
                          options: Optional[QueryOptions] = None) -> Tuple[str, str, Dict[str, Any]]:
        """Build the windowed SELECT and its COUNT twin.

        Returns:
            (select_sql, count_sql, params). Both statements share the same
            WHERE clause and parameters; the pagination parameters are only
            referenced by the SELECT.
        """
        options = options or QueryOptions()
        source = self.qualified_name(table, schema)
        params: Dict[str, Any] = {}

        where_clauses = [
            self._filter_clause(index, filt, params)
            for index, filt in enumerate(options.filters)
        ]
        where = f" WHERE {' AND '.join(where_clauses)}" if where_clauses else ""

        query = f"SELECT * FROM {source}{where}"

        if options.sorts:
            order_by = ', '.join(
                f"{self.quote_identifier(sort.column)} {sort.direction.value.upper()}"
                for sort in options.sorts
            )
            query += f" ORDER BY {order_by}"
        elif options.pagination and self.neutral_order_by():
            # No stable order across pages without an explicit sort
            query += f" ORDER BY {self.neutral_order_by()}"

        if options.pagination:
            query += f" {self.pagination_clause()}"
            params['offset'] = options.pagination.offset
            params['page_size'] = options.pagination.page_size

        count_query = f"SELECT COUNT(*) AS total FROM {source}{where}"
        return query, count_query, params

    def get_table_data(self, table: str, schema: Optional[str] = None,
                       options: Optional[QueryOptions] = None) -> QueryResult:
        """Fetch one filtered/sorted page of rows plus the total match count"""
        query, count_query, params = self.build_table_query(table, schema, options)
        count_params = {k: v for k, v in params.items() if k not in ('offset', 'page_size')}

        logger.debug(f"Table data query: {query}")
        result = self.execute_query(query, params)

        count_rows = self.execute_query(count_query, count_params).rows
        total = count_rows[0].get('total', 0) if count_rows else 0

        columns = self.get_columns(table, schema)

        return QueryResult(rows=result.rows, columns=columns, row_count=int(total or 0))

    def get_schema_metadata(self) -> SchemaMetadata:
        """Introspect every schema, table, column and relationship"""
        logger.info("Getting schemas...")
        schemas = self.get_schemas()
        logger.info(f"Found {len(schemas)} schemas")

        relationships = self.get_relationships()
        logger.info(f"Found {len(relationships)} relationships")

        tables: List[Table] = []
        for schema_name in schemas:
            try:
                schema_tables = self.get_tables(schema_name)
            except QueryExecutionError as e:
                logger.error(f"Error processing schema {schema_name}: {e}")
                continue

            for table in schema_tables:
                try:
                    table.columns = self.get_columns(table.name, schema_name)
                except IntrospectionError as e:
                    logger.warning(f"Error getting columns for table {table.key}: {e}")
                    table.columns = []
                tables.append(table)

        logger.info(f"Schema metadata extraction complete: {len(tables)} tables")
        return SchemaMetadata(schemas=schemas, tables=tables, relationships=relationships)


class SQLServerAdapter(DatabaseAdapter):
    """Microsoft SQL Server adapter reading the sys.* catalog views"""

    DRIVER = "mssql+pymssql"
    DEFAULT_PORT = 1433
    DRIVER_OPTIONS = ('login_timeout', 'timeout', 'tds_version', 'charset', 'appname', 'autocommit')

    SCHEMAS_QUERY = """
        SELECT DISTINCT SCHEMA_NAME(schema_id) AS schema_name
        FROM sys.tables
        ORDER BY schema_name
    """

    TABLES_QUERY = """
        SELECT
            t.name AS table_name,
            SCHEMA_NAME(t.schema_id) AS schema_name,
            (SELECT SUM(p.rows) FROM sys.partitions p
             WHERE p.object_id = t.object_id AND p.index_id IN (0, 1)) AS row_count
        FROM sys.tables t
        {where}
        ORDER BY schema_name, table_name
    """

    COLUMNS_QUERY = """
        SELECT
            c.name AS column_name,
            ty.name AS type_name,
            c.is_nullable,
            c.max_length,
            c.precision,
            c.scale,
            OBJECT_DEFINITION(c.default_object_id) AS column_default,
            CASE WHEN pk.column_name IS NOT NULL THEN 1 ELSE 0 END AS is_primary_key
        FROM sys.columns c
        INNER JOIN sys.types ty ON c.user_type_id = ty.user_type_id
        INNER JOIN sys.tables tab ON c.object_id = tab.object_id
        LEFT JOIN (
            SELECT ic.object_id, col.name AS column_name
            FROM sys.indexes i
            INNER JOIN sys.index_columns ic ON i.object_id = ic.object_id AND i.index_id = ic.index_id
            INNER JOIN sys.columns col ON ic.object_id = col.object_id AND ic.column_id = col.column_id
            WHERE i.is_primary_key = 1
        ) pk ON pk.object_id = tab.object_id AND pk.column_name = c.name
        WHERE tab.name = :table_name
        {schema_filter}
        ORDER BY c.column_id
    """

    FOREIGN_KEYS_QUERY = """
        SELECT
            fk.name AS constraint_name,
            COL_NAME(fkc.parent_object_id, fkc.parent_column_id) AS column_name,
            OBJECT_NAME(fk.referenced_object_id) AS referenced_table_name,
            COL_NAME(fkc.referenced_object_id, fkc.referenced_column_id) AS referenced_column_name,
            OBJECT_SCHEMA_NAME(fk.referenced_object_id) AS referenced_schema_name
        FROM sys.foreign_keys fk
        INNER JOIN sys.foreign_key_columns fkc ON fk.object_id = fkc.constraint_object_id
        WHERE OBJECT_NAME(fk.parent_object_id) = :table_name
        {schema_filter}
        ORDER BY fk.name, fkc.constraint_column_id
    """

    RELATIONSHIPS_QUERY = """
        SELECT
            fk.name AS constraint_name,
            OBJECT_SCHEMA_NAME(fk.parent_object_id) AS from_schema,
            OBJECT_NAME(fk.parent_object_id) AS from_table,
            COL_NAME(fkc.parent_object_id, fkc.parent_column_id) AS from_column,
            OBJECT_SCHEMA_NAME(fk.referenced_object_id) AS to_schema,
            OBJECT_NAME(fk.referenced_object_id) AS to_table,
            COL_NAME(fkc.referenced_object_id, fkc.referenced_column_id) AS to_column
        FROM sys.foreign_keys fk
        INNER JOIN sys.foreign_key_columns fkc ON fk.object_id = fkc.constraint_object_id
        ORDER BY from_schema, from_table, constraint_name, fkc.constraint_column_id
    """

    def connect(self) -> None:
        """Connect to SQL Server"""
        if self.connection is not None:
            return

        connect_args = {
            key: value for key, value in self.config.options.items()
            if key in self.DRIVER_OPTIONS
        }
        url = URL.create(
            self.DRIVER,
            username=self.config.username,
            password=self.config.password,
            host=self.config.server,
            port=self.config.port or self.DEFAULT_PORT,
            database=self.config.database,
        )

        try:
            self.engine = create_engine(url, pool_pre_ping=True, connect_args=connect_args)
            self.connection = self.engine.connect()
        except SQLAlchemyError as e:
            self._dispose_engine()
            raise DatabaseConnectionError(
                f"SQL Server connection failed: {getattr(e, 'orig', None) or e}",
                code=error_code(e),
            ) from e

        logger.info(f"Connected to {self.config.server}/{self.config.database}")

    def disconnect(self) -> None:
        """Close the connection and dispose of the pool"""
        try:
            if self.connection is not None:
                self.connection.close()
        finally:
            self.connection = None
            self._dispose_engine()

    def _dispose_engine(self) -> None:
        if self.engine is not None:
            self.engine.dispose()
            self.engine = None

    def test_connection(self) -> bool:
        """Check the connection with SELECT 1"""
        try:
            result = self.execute_query("SELECT 1 AS test")
            return len(result.rows) > 0
        except (DatabaseConnectionError, QueryExecutionError) as e:
            logger.warning(f"Connection test failed: {e}")
            return False

    def quote_identifier(self, name: str) -> str:
        return "[" + str(name).replace("]", "]]") + "]"

    def neutral_order_by(self) -> Optional[str]:
        # OFFSET/FETCH requires an ORDER BY
        return "(SELECT NULL)"

    def pagination_clause(self) -> str:
        return "OFFSET :offset ROWS FETCH NEXT :page_size ROWS ONLY"

    def _fetch(self, sql: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """Run a statement on the owned connection and return rows as dicts"""
        if self.connection is None:
            self.connect()

        try:
            result = self.connection.execute(text(sql), params or {})
            if not result.returns_rows:
                return []
            return [dict(row) for row in result.mappings().all()]
        except SQLAlchemyError as e:
            self._rollback()
            raise QueryExecutionError(str(getattr(e, 'orig', None) or e), code=error_code(e)) from e

    def _rollback(self) -> None:
        try:
            self.connection.rollback()
        except SQLAlchemyError as e:
            logger.warning(f"Rollback after failed query also failed: {e}")

    def execute_query(self, sql: str, params: Optional[Dict[str, Any]] = None) -> QueryResult:
        """Execute SQL Server query"""
        rows = self._fetch(sql, params)
        return QueryResult(rows=rows, columns=[], row_count=len(rows))

    def get_schemas(self) -> List[str]:
        rows = self._fetch(self.SCHEMAS_QUERY)
        return [row['schema_name'] for row in rows]

    def get_tables(self, schema: Optional[str] = None) -> List[Table]:
        params = {}
        where = ""
        if schema:
            where = "WHERE SCHEMA_NAME(t.schema_id) = :schema"
            params['schema'] = schema

        rows = self._fetch(self.TABLES_QUERY.format(where=where), params)
        return [
            Table(
                name=row['table_name'],
                schema=row['schema_name'],
                columns=[],
                row_count=int(row['row_count']) if row.get('row_count') is not None else None,
            )
            for row in rows
        ]

    def get_columns(self, table: str, schema: Optional[str] = None) -> List[Column]:
        """Column definitions with primary key flags and foreign key references"""
        params = {'table_name': table}
        column_filter = ""
        fk_filter = ""
        if schema:
            params['schema_name'] = schema
            column_filter = "AND SCHEMA_NAME(tab.schema_id) = :schema_name"
            fk_filter = "AND OBJECT_SCHEMA_NAME(fk.parent_object_id) = :schema_name"

        try:
            rows = self._fetch(self.COLUMNS_QUERY.format(schema_filter=column_filter), params)
            fk_rows = self._fetch(self.FOREIGN_KEYS_QUERY.format(schema_filter=fk_filter), params)
        except QueryExecutionError as e:
            logger.error(f"Error in get_columns for {table_key(table, schema)}: {e}")
            raise IntrospectionError(
                f"Could not read columns of {table_key(table, schema)}: {e.message}",
                code=e.code, table=table, schema=schema,
            ) from e

        foreign_keys: Dict[str, ForeignKey] = {}
        for row in fk_rows:
            foreign_keys[row['column_name']] = ForeignKey(
                referenced_table=row['referenced_table_name'],
                referenced_schema=row['referenced_schema_name'],
                referenced_column=row['referenced_column_name'],
                constraint_name=row['constraint_name'],
            )

        return [
            Column(
                name=row['column_name'],
                type=row['type_name'],
                nullable=bool(row['is_nullable']),
                primary_key=row['is_primary_key'] == 1,
                foreign_key=foreign_keys.get(row['column_name']),
                max_length=_positive(row.get('max_length')),
                precision=_positive(row.get('precision')),
                scale=_positive(row.get('scale')),
                default_value=row.get('column_default'),
            )
            for row in rows
        ]

    def get_relationships(self) -> List[Relationship]:
        rows = self._fetch(self.RELATIONSHIPS_QUERY)
        return [
            Relationship(
                from_table=row['from_table'],
                from_schema=row['from_schema'],
                from_column=row['from_column'],
                to_table=row['to_table'],
                to_schema=row['to_schema'],
                to_column=row['to_column'],
                constraint_name=row['constraint_name'],
                relationship_type=RelationshipType.ONE_TO_MANY,
            )
            for row in rows
        ]


def _positive(value: Optional[int]) -> Optional[int]:
    return value if value is not None and value > 0 else None
