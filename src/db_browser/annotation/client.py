"""
Schema annotation using an LLM
"""

import json
import logging
import re
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from typing import Any, Dict, Optional

from google import genai
from google.genai import types

from ..database.models import SchemaMetadata
from .models import SchemaAnnotation

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 180

SYSTEM_INSTRUCTION = "You are a database schema analyst. Return only valid JSON, no markdown formatting."

PROMPT_TEMPLATE = """You are a database schema analyst. Analyze the following database schema and provide:

1. Friendly names for tables and columns (convert technical names to human-readable ones)
2. Identify important columns that should be shown by default in data grids
3. Suggest display formats for columns (text, number, currency, date, datetime, boolean, email, url)
4. Identify which aggregates would be useful (count, sum, avg, min, max)
5. Identify lookup relationships (when a column references another table, suggest which column to display)
6. Design profile page layouts for each table showing related tables in cards

Return your analysis as JSON with this structure:
{{
  "friendlyNames": {{
    "schema.tableName": "Friendly Table Name",
    "schema.tableName.columnName": "Friendly Column Name"
  }},
  "columnConfigs": {{
    "schema.tableName.columnName": {{
      "friendlyName": "Display Name",
      "displayFormat": "text|number|currency|date|datetime|boolean|email|url",
      "isImportant": true,
      "aggregate": "count|sum|avg|min|max or null",
      "lookupTable": "schema.referencedTable",
      "lookupColumn": "idColumn",
      "lookupDisplayColumn": "nameColumn"
    }}
  }},
  "importantColumns": {{
    "schema.tableName": ["column1", "column2"]
  }},
  "profileLayouts": {{
    "schema.tableName": {{
      "cards": [
        {{
          "type": "fields|related-table|aggregate",
          "title": "Card Title",
          "table": "tableName",
          "columns": ["col1", "col2"],
          "relationship": {{"fromTable": "...", "fromSchema": "...", "fromColumn": "...",
                           "toTable": "...", "toSchema": "...", "toColumn": "...",
                           "constraintName": "..."}},
          "aggregateType": "count|sum|avg|min|max",
          "aggregateColumn": "columnName"
        }}
      ]
    }}
  }}
}}

Schema data:
{schema_data}"""


def build_schema_digest(metadata: SchemaMetadata) -> Dict[str, Any]:
    """Structure-only view of the schema sent to the annotator (never row data)"""
    return {
        'schemas': list(metadata.schemas),
        'tables': [
            {
                'name': table.name,
                'schema': table.schema,
                'columns': [
                    {
                        'name': col.name,
                        'type': col.type,
                        'nullable': col.nullable,
                        'primaryKey': col.primary_key,
                        'foreignKey': col.foreign_key.to_dict() if col.foreign_key else None,
                    }
                    for col in table.columns
                ],
            }
            for table in metadata.tables
        ],
        'relationships': [rel.to_dict() for rel in metadata.relationships],
    }


def parse_json_response(text: str) -> Dict[str, Any]:
    """Parse a JSON object from model output, tolerating markdown fences"""
    fenced = re.search(r'```(?:json)?\s*\n(.*?)\n```', text, re.DOTALL)
    if fenced:
        text = fenced.group(1)
    data = json.loads(text.strip())
    if not isinstance(data, dict):
        raise ValueError("Annotation response is not a JSON object")
    return data


class SchemaAnnotator:
    """Label tables and columns through Gemini"""

    def __init__(self, api_key: str, model_config: Optional[Dict[str, str]] = None, client=None,
                 request_timeout: float = DEFAULT_TIMEOUT):
        if not api_key and client is None:
            raise ValueError("An API key is required for schema annotation")
        # HttpOptions.timeout is in milliseconds
        self.client = client or genai.Client(
            api_key=api_key,
            http_options=types.HttpOptions(timeout=int(request_timeout * 1000)),
        )
        self.model_config = model_config or {
            'primary': 'gemini-2.5-flash',
            'fallback': 'gemini-2.0-flash',
        }

    def _generate(self, prompt: str, model_name: str) -> str:
        response = self.client.models.generate_content(
            model=model_name,
            contents=prompt,
            config=types.GenerateContentConfig(
                system_instruction=SYSTEM_INSTRUCTION,
                temperature=0.3,
                response_mime_type="application/json",
            ),
        )
        text = getattr(response, 'text', None)
        if not text:
            raise ValueError("No response from model")
        return text

    def annotate(self, metadata: SchemaMetadata) -> SchemaAnnotation:
        """Run the labeling pass; raises on failure"""
        prompt = PROMPT_TEMPLATE.format(schema_data=json.dumps(build_schema_digest(metadata), indent=2))

        primary = self.model_config.get('primary')
        fallback = self.model_config.get('fallback')
        try:
            text = self._generate(prompt, primary)
        except Exception as e:
            if not fallback:
                raise
            logger.warning(f"Annotation with {primary} failed ({e}), retrying with {fallback}")
            text = self._generate(prompt, fallback)

        return SchemaAnnotation.from_dict(parse_json_response(text), relationships=metadata.relationships)


def annotate_schema(metadata: SchemaMetadata, annotator: Optional[SchemaAnnotator],
                    timeout: float = DEFAULT_TIMEOUT) -> Optional[SchemaAnnotation]:
    """Best-effort annotation: None when unavailable, failing or too slow"""
    if annotator is None:
        logger.info("Skipping annotation - no annotator configured")
        return None

    logger.info(f"Annotating {len(metadata.tables)} tables and {len(metadata.relationships)} relationships")
    executor = ThreadPoolExecutor(max_workers=1)
    future = executor.submit(annotator.annotate, metadata)
    try:
        annotation = future.result(timeout=timeout)
        logger.info("Annotation completed")
        return annotation
    except FutureTimeout:
        logger.error(f"Annotation timed out after {timeout}s")
        return None
    except Exception as e:
        logger.error(f"Annotation failed: {e}")
        return None
    finally:
        executor.shutdown(wait=False, cancel_futures=True)
