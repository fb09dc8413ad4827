"""
Annotation (AI labeling) result models
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from ..database.models import Relationship

logger = logging.getLogger(__name__)


class DisplayFormat(Enum):
    TEXT = "text"
    NUMBER = "number"
    CURRENCY = "currency"
    DATE = "date"
    DATETIME = "datetime"
    BOOLEAN = "boolean"
    EMAIL = "email"
    URL = "url"


class AggregateType(Enum):
    COUNT = "count"
    SUM = "sum"
    AVG = "avg"
    MIN = "min"
    MAX = "max"


class CardType(Enum):
    FIELDS = "fields"
    RELATED_TABLE = "related-table"
    AGGREGATE = "aggregate"


def _aggregate(value: Any) -> Optional[AggregateType]:
    try:
        return AggregateType(value) if value else None
    except ValueError:
        return None


@dataclass
class ColumnConfig:
    """Display hints for one column"""
    friendly_name: Optional[str] = None
    display_format: DisplayFormat = DisplayFormat.TEXT
    is_important: bool = False
    is_hidden: bool = False
    aggregate: Optional[AggregateType] = None
    lookup_table: Optional[str] = None
    lookup_column: Optional[str] = None
    lookup_display_column: Optional[str] = None

    @property
    def has_lookup(self) -> bool:
        return bool(self.lookup_table and self.lookup_column and self.lookup_display_column)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ColumnConfig':
        try:
            display_format = DisplayFormat(data.get('displayFormat') or 'text')
        except ValueError:
            display_format = DisplayFormat.TEXT
        return cls(
            friendly_name=data.get('friendlyName'),
            display_format=display_format,
            is_important=bool(data.get('isImportant', False)),
            is_hidden=bool(data.get('isHidden', False)),
            aggregate=_aggregate(data.get('aggregate')),
            lookup_table=data.get('lookupTable'),
            lookup_column=data.get('lookupColumn'),
            lookup_display_column=data.get('lookupDisplayColumn'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'friendlyName': self.friendly_name,
            'displayFormat': self.display_format.value,
            'isImportant': self.is_important,
            'isHidden': self.is_hidden,
            'aggregate': self.aggregate.value if self.aggregate else None,
            'lookupTable': self.lookup_table,
            'lookupColumn': self.lookup_column,
            'lookupDisplayColumn': self.lookup_display_column,
        }


@dataclass
class ProfileCard:
    type: CardType
    title: str = ""
    table: Optional[str] = None
    columns: List[str] = field(default_factory=list)
    relationship: Optional[Relationship] = None
    aggregate_type: Optional[AggregateType] = None
    aggregate_column: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProfileCard':
        card_type = CardType(data.get('type'))
        relationship = data.get('relationship')
        card = cls(
            type=card_type,
            title=data.get('title') or '',
            table=data.get('table'),
            columns=list(data.get('columns') or []),
            relationship=Relationship.from_dict(relationship) if relationship else None,
            aggregate_type=_aggregate(data.get('aggregateType')),
            aggregate_column=data.get('aggregateColumn'),
        )
        if card_type == CardType.RELATED_TABLE and card.relationship is None:
            raise ValueError("related-table card without a relationship")
        if card_type == CardType.AGGREGATE and card.aggregate_type is None:
            raise ValueError("aggregate card without an aggregate type")
        return card

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.type.value,
            'title': self.title,
            'table': self.table,
            'columns': list(self.columns),
            'relationship': self.relationship.to_dict() if self.relationship else None,
            'aggregateType': self.aggregate_type.value if self.aggregate_type else None,
            'aggregateColumn': self.aggregate_column,
        }


@dataclass
class ProfileLayout:
    cards: List[ProfileCard] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> 'ProfileLayout':
        raw_cards = data.get('cards', []) if isinstance(data, dict) else data or []
        cards = []
        for raw in raw_cards:
            try:
                cards.append(ProfileCard.from_dict(raw))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Dropping invalid profile card {raw!r}: {e}")
        return cls(cards=cards)

    def to_dict(self) -> Dict[str, Any]:
        return {'cards': [card.to_dict() for card in self.cards]}


@dataclass
class SchemaAnnotation:
    """Human-friendly labels and layouts for a schema, keyed by table or table.column"""
    friendly_names: Dict[str, str] = field(default_factory=dict)
    column_configs: Dict[str, ColumnConfig] = field(default_factory=dict)
    important_columns: Dict[str, List[str]] = field(default_factory=dict)
    profile_layouts: Dict[str, ProfileLayout] = field(default_factory=dict)
    relationships: List[Relationship] = field(default_factory=list)

    def column_config(self, table: str, column: str, schema: Optional[str] = None) -> Optional[ColumnConfig]:
        """Most specific config for a column: schema.table.column, table.column, column"""
        candidates = [f"{table}.{column}", column]
        if schema:
            candidates.insert(0, f"{schema}.{table}.{column}")
        for key in candidates:
            if key in self.column_configs:
                return self.column_configs[key]
        return None

    def friendly_name(self, key: str) -> str:
        return self.friendly_names.get(key, key)

    @classmethod
    def from_dict(cls, data: Dict[str, Any],
                  relationships: Optional[List[Relationship]] = None) -> 'SchemaAnnotation':
        data = data or {}
        column_configs = {}
        for key, raw in (data.get('columnConfigs') or {}).items():
            if isinstance(raw, dict):
                column_configs[key] = ColumnConfig.from_dict(raw)

        return cls(
            friendly_names={k: str(v) for k, v in (data.get('friendlyNames') or {}).items()},
            column_configs=column_configs,
            important_columns={
                k: list(v) for k, v in (data.get('importantColumns') or {}).items()
                if isinstance(v, list)
            },
            profile_layouts={
                k: ProfileLayout.from_dict(v) for k, v in (data.get('profileLayouts') or {}).items()
            },
            relationships=list(relationships or []),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'friendlyNames': dict(self.friendly_names),
            'columnConfigs': {k: v.to_dict() for k, v in self.column_configs.items()},
            'importantColumns': {k: list(v) for k, v in self.important_columns.items()},
            'profileLayouts': {k: v.to_dict() for k, v in self.profile_layouts.items()},
            'relationships': [r.to_dict() for r in self.relationships],
        }
