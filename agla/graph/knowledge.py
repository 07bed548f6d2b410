from __future__ import annotations

"""Lightweight knowledge graph with entity (micro) and theme (macro) retrieval."""

import json
import logging
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from agla.rag.lexical import tokenize

logger = logging.getLogger(__name__)

NODE_TYPES = {"entity", "concept", "document"}
MAX_THEMES = 3
MAX_SYNTHESIS_CONCEPTS = 5


class GraphError(ValueError):
    """Raised when graph records are malformed."""
    pass


@dataclass(frozen=True)
class GraphNode:
    node_id: str
    node_type: str
    name: str
    attributes: dict[str, str] = field(default_factory=dict)

    @property
    def description(self) -> str:
        return self.attributes.get("description", "")


@dataclass(frozen=True)
class GraphEdge:
    source: str
    target: str
    relationship: str
    weight: float


@dataclass(frozen=True)
class MicroResult:
    """Nodes reached from the query seeds and the edges that reached them."""
    entities: list[GraphNode]
    edges: list[GraphEdge]


@dataclass(frozen=True)
class MacroResult:
    themes: list[str]
    synthesis: str


class KnowledgeGraph:
    """In-memory directed graph traversed in both directions."""
    def __init__(self, nodes: list[GraphNode], edges: list[GraphEdge]) -> None:
        self.nodes = list(nodes)
        self.edges = list(edges)
        self._by_id = {node.node_id: node for node in self.nodes}
        if len(self._by_id) != len(self.nodes):
            raise GraphError("Graph node ids must be unique")
        for edge in self.edges:
            if edge.source not in self._by_id or edge.target not in self._by_id:
                raise GraphError(
                    f"Edge {edge.source}->{edge.target} references an unknown node"
                )

    def get(self, node_id: str) -> GraphNode | None:
        return self._by_id.get(node_id)

    def micro_retrieval(self, query: str, depth: int) -> MicroResult:
        """Match seed nodes against query terms, then expand ``depth`` hops."""
        terms = tokenize(query)
        matched: list[GraphNode] = []
        for node in self.nodes:
            name = node.name.lower()
            description = node.description.lower()
            if any(term in name or term in description or name in term for term in terms):
                matched.append(node)

        edges: list[GraphEdge] = []
        visited = {node.node_id for node in matched}
        frontier = list(matched)
        for _ in range(depth):
            next_frontier: list[GraphNode] = []
            for node in frontier:
                for edge in self.edges:
                    for here, there in ((edge.source, edge.target), (edge.target, edge.source)):
                        if here != node.node_id or there in visited:
                            continue
                        reached = self._by_id[there]
                        visited.add(there)
                        next_frontier.append(reached)
                        matched.append(reached)
                        edges.append(edge)
            frontier = next_frontier
        return MicroResult(entities=matched, edges=edges)

    def macro_synthesis(self, entities: list[GraphNode], edges: list[GraphEdge]) -> MacroResult:
        """Pick the most connected nodes as themes and summarize them."""
        connections: Counter[str] = Counter()
        for edge in edges:
            connections[edge.source] += 1
            connections[edge.target] += 1
        by_id = {node.node_id: node for node in entities}
        themes = [
            by_id[node_id].name
            for node_id, _ in connections.most_common(MAX_THEMES)
            if node_id in by_id
        ]
        if not themes:
            return MacroResult(
                themes=[],
                synthesis="No strong thematic connections found in the knowledge graph.",
            )
        concepts = [node.name for node in entities if node.node_type == "concept"]
        synthesis = (
            f"The query relates to {', '.join(themes)} which form the core of the knowledge "
            f"graph. Key concepts include: {', '.join(concepts[:MAX_SYNTHESIS_CONCEPTS])}. "
            f"These are interconnected through {len(edges)} relationships."
        )
        return MacroResult(themes=themes, synthesis=synthesis)

    def stats(self) -> dict[str, int]:
        return {"nodes": len(self.nodes), "edges": len(self.edges)}


DEFAULT_GRAPH_RECORDS: dict[str, list[dict[str, Any]]] = {
    "nodes": [
        {"id": "n1", "type": "entity", "name": "GenTel",
         "attributes": {"description": "TacticDev GenTel AI Assistant"}},
        {"id": "n2", "type": "concept", "name": "AGLA",
         "attributes": {"description": "Adaptive Graph-Lite Architecture"}},
        {"id": "n3", "type": "concept", "name": "LightRAG",
         "attributes": {"description": "Lightweight graph-based RAG"}},
        {"id": "n4", "type": "concept", "name": "Hybrid Search",
         "attributes": {"description": "BM25 + Vector + RRF"}},
        {"id": "n5", "type": "concept", "name": "Semantic Routing",
         "attributes": {"description": "3-way query classification"}},
        {"id": "n6", "type": "concept", "name": "FlashRank",
         "attributes": {"description": "Fast neural reranking"}},
        {"id": "n7", "type": "concept", "name": "Self-RAG",
         "attributes": {"description": "Self-reflective RAG with grading"}},
        {"id": "n8", "type": "concept", "name": "CRAG",
         "attributes": {"description": "Corrective RAG with retry"}},
        {"id": "n9", "type": "concept", "name": "Binary Quantization",
         "attributes": {"description": "32x vector compression"}},
        {"id": "n10", "type": "concept", "name": "MRL",
         "attributes": {"description": "Matryoshka Representation Learning"}},
        {"id": "n11", "type": "concept", "name": "Semantic Cache",
         "attributes": {"description": "Query-response caching"}},
        {"id": "n12", "type": "concept", "name": "RRF",
         "attributes": {"description": "Reciprocal Rank Fusion"}},
    ],
    "edges": [
        {"source": "n1", "target": "n2", "relationship": "implements", "weight": 0.98},
        {"source": "n2", "target": "n3", "relationship": "uses", "weight": 0.95},
        {"source": "n2", "target": "n4", "relationship": "uses", "weight": 0.96},
        {"source": "n2", "target": "n5", "relationship": "starts_with", "weight": 0.99},
        {"source": "n2", "target": "n6", "relationship": "reranks_with", "weight": 0.92},
        {"source": "n2", "target": "n7", "relationship": "validates_with", "weight": 0.94},
        {"source": "n7", "target": "n8", "relationship": "combined_with", "weight": 0.93},
        {"source": "n2", "target": "n9", "relationship": "optimizes_with", "weight": 0.91},
        {"source": "n9", "target": "n10", "relationship": "combined_with", "weight": 0.89},
        {"source": "n2", "target": "n11", "relationship": "caches_with", "weight": 0.88},
        {"source": "n4", "target": "n12", "relationship": "fuses_with", "weight": 0.97},
        {"source": "n3", "target": "n2", "relationship": "powers", "weight": 0.94},
        {"source": "n5", "target": "n3", "relationship": "routes_to", "weight": 0.90},
        {"source": "n5", "target": "n4", "relationship": "routes_to", "weight": 0.90},
    ],
}


def graph_from_records(data: Any) -> KnowledgeGraph:
    """Validate ``{"nodes": [...], "edges": [...]}`` and build a graph."""
    if not isinstance(data, dict):
        raise GraphError("Graph data must be an object with nodes and edges")
    raw_nodes = data.get("nodes")
    raw_edges = data.get("edges", [])
    if not isinstance(raw_nodes, list) or not isinstance(raw_edges, list):
        raise GraphError("Graph nodes and edges must be lists")
    nodes: list[GraphNode] = []
    for index, item in enumerate(raw_nodes):
        if not isinstance(item, dict):
            raise GraphError(f"Graph node {index} must be an object")
        node_id = item.get("id")
        name = item.get("name")
        node_type = str(item.get("type", "concept")).lower()
        if not isinstance(node_id, str) or not isinstance(name, str):
            raise GraphError(f"Graph node {index} needs string id and name")
        if node_type not in NODE_TYPES:
            raise GraphError(f"Graph node {node_id} has unknown type {node_type}")
        attributes = item.get("attributes") or {}
        if not isinstance(attributes, dict):
            raise GraphError(f"Graph node {node_id} attributes must be an object")
        nodes.append(
            GraphNode(
                node_id=node_id,
                node_type=node_type,
                name=name,
                attributes={str(key): str(value) for key, value in attributes.items()},
            )
        )
    edges: list[GraphEdge] = []
    for index, item in enumerate(raw_edges):
        if not isinstance(item, dict):
            raise GraphError(f"Graph edge {index} must be an object")
        try:
            edges.append(
                GraphEdge(
                    source=str(item["source"]),
                    target=str(item["target"]),
                    relationship=str(item.get("relationship", "related_to")),
                    weight=float(item.get("weight", 1.0)),
                )
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise GraphError(f"Graph edge {index} is malformed") from exc
    return KnowledgeGraph(nodes=nodes, edges=edges)


def default_graph() -> KnowledgeGraph:
    return graph_from_records(DEFAULT_GRAPH_RECORDS)


def load_graph_file(path: Path) -> KnowledgeGraph:
    """Load a knowledge graph from a JSON file."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise GraphError(f"Graph file {path.name} is not valid JSON") from exc
    graph = graph_from_records(data)
    logger.info("graph_loaded", extra={"path": str(path), **graph.stats()})
    return graph
