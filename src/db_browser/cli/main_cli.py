"""
Interactive CLI for browsing a SQL Server database
"""

import os
from typing import List, Optional

from dotenv import load_dotenv

from ..database import (
    DataBrowserError,
    Filter,
    FilterOperator,
    Pagination,
    QueryOptions,
    Table,
    connected_adapter,
)
from ..schema import RelationshipAnalyzer, SchemaAnalyzer
from ..schema.relations import OUTBOUND
from ..utils import setup_logging

PAGE_SIZE = 20


def config_from_env() -> dict:
    """Connection settings from MSSQL_* environment variables"""
    return {
        'server': os.getenv('MSSQL_HOST', 'localhost'),
        'port': os.getenv('MSSQL_PORT', '1433'),
        'username': os.getenv('MSSQL_USER', ''),
        'password': os.getenv('MSSQL_PASSWORD', ''),
        'database': os.getenv('MSSQL_DB', ''),
    }


def split_table_name(name: str):
    """`schema.table` -> (table, schema); bare names have no schema"""
    if '.' in name:
        schema, table = name.split('.', 1)
        return table, schema
    return name, None


def print_tables(tables: List[Table], limit: int = 50):
    print("\n📋 Available tables:")
    for i, table in enumerate(tables[:limit], 1):
        rows = table.row_count if table.row_count is not None else '?'
        print(f"  {i}. {table.key} ({rows} rows)")
    if len(tables) > limit:
        print(f"  ... and {len(tables) - limit} more tables")


def print_page(result, page: int):
    if not result.rows:
        print("  (no rows)")
        return
    names = list(result.rows[0].keys())
    print("  " + " | ".join(names))
    print("  " + "-" * min(100, sum(len(n) + 3 for n in names)))
    for row in result.rows:
        print("  " + " | ".join(str(row.get(n)) for n in names))
    pages = max(1, -(-result.row_count // PAGE_SIZE))
    print(f"\n  Page {page} of {pages} ({result.row_count} rows)")


def show_rows(adapter, name: str, page: int, where: Optional[str] = None):
    table, schema = split_table_name(name)
    filters = []
    if where:
        column, _, value = where.partition('=')
        filters.append(Filter(column=column.strip(), operator=FilterOperator.CONTAINS, value=value.strip()))
    options = QueryOptions(filters=filters, pagination=Pagination(page=page, page_size=PAGE_SIZE))
    print_page(adapter.get_table_data(table, schema, options), page)


def main():
    """Interactive browsing session"""
    load_dotenv()
    setup_logging()

    print("""
    ╔══════════════════════════════════════════════════════════╗
    ║              🗄️  SQL Server Database Browser 🗄️            ║
    ╚══════════════════════════════════════════════════════════╝
    """)

    config = config_from_env()
    print(f"\n🔌 Connecting to {config['server']}/{config['database']}...")

    try:
        with connected_adapter('sqlserver', config) as adapter:
            if not adapter.test_connection():
                print("Failed to connect to database. Please check your configuration.")
                return

            analyzer = SchemaAnalyzer(adapter)
            listing = analyzer.list_tables()
            tables = listing['tables']
            print("\n✅ Connected")
            print(f"📊 Found {len(listing['schemas'])} schemas, {len(tables)} tables")
            print_tables(tables)

            print("\n" + "=" * 60)
            print("💡 Commands:")
            print("  - 'TABLES' - List tables")
            print("  - 'SCHEMA <schema.table>' - Show columns")
            print("  - 'SHOW <schema.table> [page] [column=text]' - Browse rows")
            print("  - 'RELATED <schema.table>' - Show related tables")
            print("  - 'EXIT' - Exit")
            print("=" * 60)

            run_loop(adapter, analyzer, tables)
    except DataBrowserError as e:
        print(f"\n❌ Error: {e.message}")


def run_loop(adapter, analyzer: SchemaAnalyzer, tables: List[Table]):
    while True:
        try:
            user_input = input("\n💬 Command: ").strip()
            if not user_input:
                continue

            parts = user_input.split()
            command = parts[0].upper()

            if command == 'EXIT':
                print("\n👋 Goodbye!")
                break

            elif command == 'TABLES':
                print_tables(tables)

            elif command == 'SCHEMA':
                if len(parts) < 2:
                    print("Usage: SCHEMA <schema.table>")
                    continue
                table, schema = split_table_name(parts[1])
                print(f"\n📋 Columns of {parts[1]}:")
                for col in adapter.get_columns(table, schema):
                    flags = ' PK' if col.primary_key else ''
                    if col.foreign_key:
                        fk = col.foreign_key
                        target = f"{fk.referenced_schema}.{fk.referenced_table}" if fk.referenced_schema \
                            else fk.referenced_table
                        flags += f" -> {target}.{fk.referenced_column}"
                    print(f"  - {col.name}: {col.type} {'NULL' if col.nullable else 'NOT NULL'}{flags}")

            elif command == 'SHOW':
                if len(parts) < 2:
                    print("Usage: SHOW <schema.table> [page] [column=text]")
                    continue
                page = int(parts[2]) if len(parts) > 2 and parts[2].isdigit() else 1
                where = next((p for p in parts[2:] if '=' in p), None)
                show_rows(adapter, parts[1], page, where)

            elif command == 'RELATED':
                if len(parts) < 2:
                    print("Usage: RELATED <schema.table>")
                    continue
                table, schema = split_table_name(parts[1])
                relationships = analyzer.get_relationships_for_table(table, schema)
                related = RelationshipAnalyzer.get_related_tables(table, schema, relationships)
                print(f"\n🔗 Related to {parts[1]}:")
                for item in related:
                    arrow = '->' if item.direction == OUTBOUND else '<-'
                    print(f"  {item.local_column} {arrow} {item.key}.{item.remote_column}")
                if not related:
                    print("  (none)")

            else:
                print(f"Unknown command: {parts[0]}")

        except KeyboardInterrupt:
            print("\n\n👋 Session interrupted. Goodbye!")
            break
        except (DataBrowserError, ValueError) as e:
            print(f"\n❌ Error: {e}")
            print("Please try again or type 'EXIT' to quit")


if __name__ == "__main__":
    main()
