"""
Relationship resolution over an already-built relationship list
"""

from collections import OrderedDict
from dataclasses import dataclass
from typing import Dict, List, Optional, Set, Tuple

import networkx as nx

from ..database.models import Relationship, RelationshipType, Table, table_key

OUTBOUND = "outbound"
INBOUND = "inbound"


@dataclass
class RelatedTable:
    """The table on the other end of a relationship"""
    table: str
    schema: Optional[str]
    relationship: Relationship
    direction: str

    @property
    def key(self) -> str:
        return table_key(self.table, self.schema)

    @property
    def local_column(self) -> str:
        """Column on the queried table"""
        if self.direction == OUTBOUND:
            return self.relationship.from_column
        return self.relationship.to_column

    @property
    def remote_column(self) -> str:
        """Column on the related table"""
        if self.direction == OUTBOUND:
            return self.relationship.to_column
        return self.relationship.from_column


class RelationshipAnalyzer:
    """Derive per-table relationship views; no I/O"""

    @staticmethod
    def _is_from(rel: Relationship, table: str, schema: Optional[str]) -> bool:
        return rel.from_table == table and rel.from_schema == schema

    @staticmethod
    def _is_to(rel: Relationship, table: str, schema: Optional[str]) -> bool:
        return rel.to_table == table and rel.to_schema == schema

    @staticmethod
    def get_related_tables(table: str, schema: Optional[str],
                           relationships: List[Relationship]) -> List[RelatedTable]:
        """Every relationship touching the table, normalized to the other end"""
        related = []
        for rel in relationships:
            if RelationshipAnalyzer._is_from(rel, table, schema):
                related.append(RelatedTable(rel.to_table, rel.to_schema, rel, OUTBOUND))
            elif RelationshipAnalyzer._is_to(rel, table, schema):
                related.append(RelatedTable(rel.from_table, rel.from_schema, rel, INBOUND))
        return related

    @staticmethod
    def analyze_relationships(tables: List[Table],
                              relationships: List[Relationship]) -> Dict[str, List[Relationship]]:
        """Map each table key to the relationships touching it"""
        lookup: Dict[str, List[Relationship]] = OrderedDict((t.key, []) for t in tables)
        identities = {(t.schema, t.name): t.key for t in tables}

        for rel in relationships:
            from_key = identities.get((rel.from_schema, rel.from_table))
            to_key = identities.get((rel.to_schema, rel.to_table))
            if from_key is not None:
                lookup[from_key].append(rel)
            if to_key is not None and to_key != from_key:
                lookup[to_key].append(rel)

        return lookup

    @staticmethod
    def determine_relationship_type(relationship: Relationship) -> RelationshipType:
        # TODO: detect one-to-one via unique indexes on the FK columns
        return RelationshipType.ONE_TO_MANY

    @staticmethod
    def group_by_constraint(relationships: List[Relationship]) -> Dict[str, List[Tuple[str, str]]]:
        """Reassemble composite constraints as ordered (from_column, to_column) pairs"""
        grouped: Dict[str, List[Tuple[str, str]]] = OrderedDict()
        for rel in relationships:
            name = f"{rel.from_key}.{rel.constraint_name}"
            grouped.setdefault(name, []).append((rel.from_column, rel.to_column))
        return grouped

    @staticmethod
    def build_graph(tables: List[Table], relationships: List[Relationship]) -> nx.MultiDiGraph:
        """Directed graph of tables, one edge per relationship row (FK owner -> referenced)"""
        graph = nx.MultiDiGraph()
        for table in tables:
            graph.add_node(table.key, table=table.name, schema=table.schema)
        for rel in relationships:
            graph.add_edge(rel.from_key, rel.to_key, key=f"{rel.constraint_name}.{rel.from_column}",
                           relationship=rel)
        return graph

    @staticmethod
    def find_circular_references(tables: List[Table],
                                 relationships: List[Relationship]) -> List[List[str]]:
        """Cycles of table keys, self references included"""
        graph = nx.DiGraph(RelationshipAnalyzer.build_graph(tables, relationships))
        return [sorted(cycle) for cycle in nx.simple_cycles(graph)]

    @staticmethod
    def get_reachable_tables(table: str, schema: Optional[str], tables: List[Table],
                             relationships: List[Relationship], depth: int = 1) -> Set[str]:
        """Table keys within `depth` relationship hops, ignoring direction"""
        graph = RelationshipAnalyzer.build_graph(tables, relationships).to_undirected(as_view=True)
        source = table_key(table, schema)
        if source not in graph:
            return set()
        distances = nx.single_source_shortest_path_length(graph, source, cutoff=depth)
        return {key for key in distances if key != source}
