from __future__ import annotations

"""Rule-based query routing across the fast, graph and complex tool paths."""

from dataclasses import dataclass, field
import re

COMPLEX_HINTS = ("compare", "analyze", "explain how", "relationship between", "multi-hop")
GRAPH_HINTS = ("connected", "related", "architecture", "setup", "how does", "how is", "rag")
COMPLEX_QUERY_LENGTH = 200

ENTITY_VOCABULARY = (
    "agla", "rag", "gentel", "lightrag", "vector", "graph", "hybrid", "search",
    "retrieval", "routing", "cache", "rerank", "bm25", "embedding", "semantic",
)
_ENTITY_PATTERNS = tuple(re.compile(re.escape(term), re.IGNORECASE) for term in ENTITY_VOCABULARY)

RECOMMENDED_TOOLS = {
    "complex": [
        "agla_semantic_cache",
        "agla_graph_search",
        "agla_hybrid_search",
        "agla_rerank",
        "agla_grader",
    ],
    "graph": [
        "agla_semantic_cache",
        "agla_graph_search",
        "agla_hybrid_search",
        "agla_grader",
    ],
    "fast": ["agla_semantic_cache", "agla_hybrid_search", "agla_grader"],
}
COMPLEXITY_SCORES = {"complex": 0.9, "graph": 0.6, "fast": 0.3}


@dataclass(frozen=True)
class RouteDecision:
    """Routing decision result."""
    route: str
    reasoning: str
    confidence: float
    entities: list[str] = field(default_factory=list)

    @property
    def complexity_score(self) -> float:
        return COMPLEXITY_SCORES[self.route]

    @property
    def recommended_tools(self) -> list[str]:
        return list(RECOMMENDED_TOOLS[self.route])


def detect_entities(query: str) -> list[str]:
    """Return vocabulary terms present in the query, in vocabulary order."""
    entities: list[str] = []
    for pattern in _ENTITY_PATTERNS:
        for match in pattern.findall(query):
            entities.append(match.lower())
    return list(dict.fromkeys(entities))


class SemanticRouter:
    """Router that classifies queries by keyword hints and length."""
    def route(self, query: str) -> RouteDecision:
        """Return a rule-based routing decision."""
        lowered = query.lower()
        entities = detect_entities(query)
        if any(hint in lowered for hint in COMPLEX_HINTS) or len(query) > COMPLEX_QUERY_LENGTH:
            return RouteDecision(
                route="complex",
                reasoning=(
                    "Query requires deep analysis, multi-step reasoning, or comparison. "
                    "Full AGLA pipeline engaged."
                ),
                confidence=0.85,
                entities=entities,
            )
        if any(hint in lowered for hint in GRAPH_HINTS):
            return RouteDecision(
                route="graph",
                reasoning=(
                    "Query involves entity relationships or system architecture. "
                    "Graph traversal recommended."
                ),
                confidence=0.88,
                entities=entities,
            )
        return RouteDecision(
            route="fast",
            reasoning="Simple factual query. Hybrid search sufficient.",
            confidence=0.92,
            entities=entities,
        )
