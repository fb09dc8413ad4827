"""
HTTP layer for the database browser
"""

import logging
import os
import time
from typing import Any, Dict, List, Optional

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from .annotation import SchemaAnnotator, annotate_schema
from .annotation.client import DEFAULT_TIMEOUT
from .database import (
    DatabaseFactory,
    DataBrowserError,
    QueryOptions,
    Relationship,
    ValidationError,
    connected_adapter,
)
from .database.models import serialize_row, serialize_value
from .schema import (
    SchemaAnalyzer,
    fetch_lookup_values,
    fetch_record,
    fetch_related_records,
)
from .utils import setup_logging

load_dotenv()
setup_logging()

logger = logging.getLogger(__name__)

app = FastAPI(title="Database Browser", version="0.1.0")


# Request Models
class ConnectionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: str = "sqlserver"
    config: Dict[str, Any]


class SchemaRequest(ConnectionRequest):
    api_key: Optional[str] = Field(default=None, alias="apiKey")
    selected_tables: Optional[List[str]] = Field(default=None, alias="selectedTables")
    selected_schemas: Optional[List[str]] = Field(default=None, alias="selectedSchemas")


class QueryRequest(ConnectionRequest):
    table: str
    table_schema: Optional[str] = Field(default=None, alias="schema")
    options: Optional[Dict[str, Any]] = None


class RecordRequest(ConnectionRequest):
    table: str
    table_schema: Optional[str] = Field(default=None, alias="schema")
    key_column: str = Field(alias="keyColumn")
    key_value: Any = Field(alias="keyValue")
    relationships: List[Dict[str, Any]] = Field(default_factory=list)
    allowed_tables: Optional[List[str]] = Field(default=None, alias="allowedTables")


class LookupRequest(ConnectionRequest):
    table: str
    table_schema: Optional[str] = Field(default=None, alias="schema")
    lookup_column: str = Field(alias="lookupColumn")
    display_column: str = Field(alias="displayColumn")
    ids: List[Any] = Field(default_factory=list)


def _http_error(e: DataBrowserError, action: str) -> HTTPException:
    if isinstance(e, ValidationError):
        return HTTPException(status_code=400, detail=e.to_dict())
    logger.error(f"{action} failed: {e} (code={e.code})")
    return HTTPException(status_code=500, detail=e.to_dict())


def _annotator(api_key: Optional[str], timeout: float) -> Optional[SchemaAnnotator]:
    key = api_key or os.getenv("GEMINI_API")
    if not key:
        return None
    try:
        return SchemaAnnotator(api_key=key, request_timeout=timeout)
    except Exception as e:
        logger.error(f"Could not create annotator: {e}")
        return None


@app.get("/status")
def status():
    """Get server status"""
    return {
        "status": "running",
        "supported_types": DatabaseFactory.get_supported_types(),
        "timestamp": time.time(),
    }


@app.post("/api/connect")
def connect(req: ConnectionRequest):
    """Check that the supplied credentials reach the database"""
    try:
        adapter = DatabaseFactory.create_connector(req.type, req.config)
    except DataBrowserError as e:
        raise _http_error(e, "Connection")

    # test_connection connects lazily and reports failures as False
    try:
        is_connected = adapter.test_connection()
    finally:
        adapter.disconnect()

    if not is_connected:
        raise HTTPException(status_code=400, detail={"error": "Failed to connect to database", "code": None})
    return {"success": True}


@app.post("/api/schema/tables")
def list_tables(req: ConnectionRequest):
    """Schema and table names (no columns) for the selection step"""
    try:
        with connected_adapter(req.type, req.config) as adapter:
            listing = SchemaAnalyzer(adapter).list_tables()
    except DataBrowserError as e:
        raise _http_error(e, "Table listing")

    return {
        "schemas": listing['schemas'],
        "tables": [
            {"name": t.name, "schema": t.schema, "rowCount": t.row_count}
            for t in listing['tables']
        ],
    }


@app.post("/api/schema")
def analyze_schema(req: SchemaRequest):
    """Selective schema analysis plus optional annotation"""
    logger.info(f"Schema extraction started, tables={req.selected_tables} schemas={req.selected_schemas}")
    try:
        with connected_adapter(req.type, req.config) as adapter:
            metadata = SchemaAnalyzer(adapter).analyze_for_selected_tables(
                req.selected_tables, req.selected_schemas
            )
    except DataBrowserError as e:
        raise _http_error(e, "Schema extraction")

    logger.info(f"Schema extracted: {len(metadata.schemas)} schemas, {len(metadata.tables)} tables, "
                f"{len(metadata.relationships)} relationships")

    timeout = float(os.getenv("ANNOTATION_TIMEOUT", DEFAULT_TIMEOUT))
    annotation = annotate_schema(metadata, _annotator(req.api_key, timeout), timeout=timeout)

    return {
        "metadata": metadata.to_dict(),
        "aiAnalysis": annotation.to_dict() if annotation else None,
    }


@app.post("/api/query")
def query(req: QueryRequest):
    """One page of table rows with the total match count"""
    try:
        options = QueryOptions.from_dict(req.options)
        with connected_adapter(req.type, req.config) as adapter:
            result = adapter.get_table_data(req.table, req.table_schema, options)
    except DataBrowserError as e:
        raise _http_error(e, "Query")

    logger.info(f"Query on {req.table}: {len(result.rows)} rows of {result.row_count}")
    return result.to_dict()


@app.post("/api/record")
def record(req: RecordRequest):
    """A single record and the rows related to it"""
    try:
        relationships = [Relationship.from_dict(r) for r in req.relationships]
    except (KeyError, ValueError) as e:
        raise HTTPException(status_code=400, detail={"error": f"Invalid relationship: {e}", "code": None})

    try:
        with connected_adapter(req.type, req.config) as adapter:
            row = fetch_record(adapter, req.table, req.table_schema, req.key_column, req.key_value)
            related = {}
            if row is not None:
                related = fetch_related_records(
                    adapter, req.table, req.table_schema, row, relationships,
                    allowed_tables=req.allowed_tables,
                )
    except DataBrowserError as e:
        raise _http_error(e, "Record fetch")

    if row is None:
        raise HTTPException(status_code=404, detail={"error": "Record not found", "code": None})

    return {
        "record": serialize_row(row),
        "related": {key: [serialize_row(r) for r in rows] for key, rows in related.items()},
    }


@app.post("/api/lookup")
def lookup(req: LookupRequest):
    """Display values for a page of lookup ids"""
    try:
        with connected_adapter(req.type, req.config) as adapter:
            values = fetch_lookup_values(
                adapter, req.table, req.table_schema, req.lookup_column, req.display_column, req.ids
            )
    except DataBrowserError as e:
        raise _http_error(e, "Lookup")

    return {"values": [{"id": serialize_value(k), "display": v} for k, v in values.items()]}


def run():
    """Run the API server"""
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", 8080)))


if __name__ == "__main__":
    run()
