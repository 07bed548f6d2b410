from __future__ import annotations

from agla.agents.router import SemanticRouter, detect_entities


def test_comparison_queries_route_complex() -> None:
    decision = SemanticRouter().route("Compare BM25 and vector retrieval")

    assert decision.route == "complex"
    assert decision.confidence == 0.85
    assert "agla_rerank" in decision.recommended_tools


def test_long_queries_route_complex() -> None:
    decision = SemanticRouter().route("word " * 50)

    assert decision.route == "complex"


def test_architecture_queries_route_graph() -> None:
    decision = SemanticRouter().route("How does the caching layer work?")

    assert decision.route == "graph"
    assert decision.complexity_score == 0.6
    assert "agla_graph_search" in decision.recommended_tools


def test_simple_lookup_routes_fast() -> None:
    decision = SemanticRouter().route("What is the cache TTL?")

    assert decision.route == "fast"
    assert decision.confidence == 0.92
    assert decision.entities == ["cache"]
    assert decision.recommended_tools == [
        "agla_semantic_cache",
        "agla_hybrid_search",
        "agla_grader",
    ]


def test_detect_entities_deduplicates_in_vocabulary_order() -> None:
    entities = detect_entities("Semantic search, Vector SEARCH and LightRAG")

    assert entities == ["rag", "lightrag", "vector", "search", "semantic"]
