from __future__ import annotations

import os
from pathlib import Path

import httpx
import pytest

from agla.app.dependencies import reset_caches
from agla.app.main import app

pytestmark = pytest.mark.anyio


def get_client() -> httpx.AsyncClient:
    reset_caches()
    transport = httpx.ASGITransport(app=app)
    return httpx.AsyncClient(transport=transport, base_url="http://test")


async def test_health_endpoint() -> None:
    async with get_client() as client:
        response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert response.headers["X-Request-ID"]


async def test_hybrid_search_returns_fused_documents() -> None:
    async with get_client() as client:
        response = await client.post(
            "/agla/hybrid_search", json={"query": "semantic cache", "limit": 3}
        )
    assert response.status_code == 200
    payload = response.json()
    assert payload["ok"] is True
    assert len(payload["documents"]) == 3
    fused = [doc["scores"]["fused"] for doc in payload["documents"]]
    assert fused == sorted(fused, reverse=True)
    first = payload["documents"][0]
    assert set(first) == {"id", "content", "metadata", "scores", "ranks"}
    assert first["ranks"]["lexical"] >= 1
    metadata = payload["retrieval_metadata"]
    assert metadata["method"] == "hybrid_bm25_similarity_rrf"
    assert metadata["total_candidates"] == 8
    assert metadata["fusion_k"] == 60
    assert metadata["embedding_dimensions"] == 256


async def test_hybrid_search_accepts_use_bq_alias() -> None:
    async with get_client() as client:
        response = await client.post(
            "/agla/hybrid_search", json={"query": "graph", "use_bq": False}
        )
    assert response.status_code == 200
    metadata = response.json()["retrieval_metadata"]
    assert metadata["compact_mode"] is False
    assert metadata["embedding_dimensions"] == 1024


@pytest.mark.parametrize(
    "body",
    [{}, {"query": None}, {"query": 42}, {"query": ["cache"]}, {"query": {"a": 1}}],
)
async def test_hybrid_search_missing_or_malformed_query_scores_zero(body: dict) -> None:
    async with get_client() as client:
        response = await client.post("/agla/hybrid_search", json=body)
    assert response.status_code == 200
    documents = response.json()["documents"]
    assert len(documents) == 8
    assert all(doc["scores"]["lexical"] == 0.0 for doc in documents)
    assert all(doc["scores"]["similarity"] == 0.0 for doc in documents)


async def test_semantic_router_treats_non_text_query_as_empty() -> None:
    async with get_client() as client:
        response = await client.post("/agla/semantic_router", json={"query": 7})
    assert response.status_code == 200
    payload = response.json()
    assert payload["route"] == "fast"
    assert payload["query_analysis"]["original_query"] == ""


@pytest.mark.parametrize(
    ("body", "field"),
    [
        ({"query": "cache", "limit": 0}, "limit"),
        ({"query": "cache", "limit": "many"}, "limit"),
        ({"query": "cache", "use_compact_mode": "sometimes"}, "use_compact_mode"),
    ],
)
async def test_hybrid_search_rejects_malformed_body(body: dict, field: str) -> None:
    async with get_client() as client:
        response = await client.post("/agla/hybrid_search", json=body)
    assert response.status_code == 400
    payload = response.json()
    assert payload["ok"] is False
    assert payload["error"].startswith(field)


async def test_hybrid_search_reports_corpus_failure(tmp_path: Path) -> None:
    corpus_path = tmp_path / "corpus.json"
    corpus_path.write_text('[{"id": "a"}, {"id": "a"}]', encoding="utf-8")
    os.environ["AGLA_CORPUS_PATH"] = str(corpus_path)
    try:
        async with get_client() as client:
            response = await client.post("/agla/hybrid_search", json={"query": "a"})
    finally:
        os.environ.pop("AGLA_CORPUS_PATH", None)
        reset_caches()
    assert response.status_code == 500
    payload = response.json()
    assert payload["ok"] is False
    assert payload["error"].startswith("CorpusError")

    async with get_client() as client:
        metrics = await client.get("/metrics")
    assert 'agla_tool_failures_total{tool="hybrid_search"}' in metrics.text


async def test_graph_search_returns_micro_and_macro_views() -> None:
    async with get_client() as client:
        response = await client.post(
            "/agla/graph_search", json={"query": "lightrag", "depth": 1}
        )
    assert response.status_code == 200
    payload = response.json()
    micro = payload["graph_results"]["micro"]
    assert micro["entity_count"] == len(micro["entities"]) >= 1
    assert payload["graph_results"]["macro"]["themes"][0] == "LightRAG"
    assert payload["graph_metadata"]["depth_requested"] == 1
    assert payload["graph_metadata"]["graph_coverage"].endswith("%")
    assert len(payload["relationships"]) == payload["graph_metadata"]["edges_traversed"]


async def test_rerank_orders_documents() -> None:
    async with get_client() as client:
        response = await client.post(
            "/agla/rerank",
            json={
                "query": "graph search",
                "documents": ["weather report", {"content": "graph search results"}],
                "mode": "complex",
            },
        )
    assert response.status_code == 200
    payload = response.json()
    assert payload["reranked"][0]["content"] == "graph search results"
    assert payload["reranked"][0]["original_rank"] == 2
    assert payload["reranked"][0]["confidence"] == "high"
    assert payload["rerank_metadata"]["model"] == "synonym-position-overlap"


@pytest.mark.parametrize(
    ("body", "message"),
    [
        ({"query": "q", "documents": []}, "No documents"),
        ({"query": "q", "documents": ["doc"], "mode": "neural"}, "Unknown rerank mode"),
    ],
)
async def test_rerank_rejects_bad_requests(body: dict, message: str) -> None:
    async with get_client() as client:
        response = await client.post("/agla/rerank", json=body)
    assert response.status_code == 400
    assert message in response.json()["error"]


async def test_grader_recommends_retry() -> None:
    async with get_client() as client:
        response = await client.post(
            "/agla/grader",
            json={"type": "retrieval", "query": "what is agla", "context": "short"},
        )
    assert response.status_code == 200
    payload = response.json()
    assert payload["grade"] == "fail"
    assert payload["retry_metadata"] == {
        "current_retry": 0,
        "max_retries": 2,
        "should_retry": True,
        "retry_strategy": "expand_query",
    }


async def test_grader_stops_retrying_at_limit() -> None:
    async with get_client() as client:
        response = await client.post(
            "/agla/grader",
            json={
                "type": "retrieval",
                "query": "what is agla",
                "context": "short",
                "retry_count": 2,
            },
        )
    assert response.status_code == 200
    assert response.json()["retry_metadata"]["should_retry"] is False


async def test_grader_rejects_unknown_type() -> None:
    async with get_client() as client:
        response = await client.post("/agla/grader", json={"type": "style", "query": "q"})
    assert response.status_code == 400
    assert response.json()["error"].startswith("Unknown grading type")


async def test_semantic_router_analysis() -> None:
    async with get_client() as client:
        response = await client.post(
            "/agla/semantic_router", json={"query": "How does the graph index work?"}
        )
    assert response.status_code == 200
    payload = response.json()
    assert payload["route"] == "graph"
    analysis = payload["query_analysis"]
    assert analysis["token_count"] == 6
    assert analysis["entities_detected"] == ["graph"]


async def test_semantic_cache_set_then_get() -> None:
    async with get_client() as client:
        miss = await client.post(
            "/agla/semantic_cache", json={"operation": "get", "query": "What is AGLA?"}
        )
        stored = await client.post(
            "/agla/semantic_cache",
            json={"operation": "set", "query": "What is AGLA?", "response": "A retrieval system."},
        )
        hit = await client.post(
            "/agla/semantic_cache", json={"operation": "get", "query": "agla is what"}
        )
    assert miss.json()["hit"] is False
    assert stored.status_code == 200
    assert stored.json()["metadata"]["cache_key"] == "agla_is_what"
    payload = hit.json()
    assert payload["hit"] is True
    assert payload["cached_response"] == "A retrieval system."
    assert payload["metadata"]["hit_count"] == 1


@pytest.mark.parametrize(
    ("body", "message"),
    [
        ({"operation": "delete", "query": "q"}, "Unknown operation"),
        ({"operation": "set", "query": "q"}, "No response"),
        ({"operation": "get", "query": ""}, "No query"),
    ],
)
async def test_semantic_cache_rejects_bad_requests(body: dict, message: str) -> None:
    async with get_client() as client:
        response = await client.post("/agla/semantic_cache", json=body)
    assert response.status_code == 400
    assert message in response.json()["error"]


async def test_stats_endpoint() -> None:
    async with get_client() as client:
        response = await client.get("/stats")
    assert response.status_code == 200
    assert response.json() == {
        "corpus_documents": 8,
        "similarity_backend": "overlap",
        "fusion_k": 60,
        "graph_nodes": 12,
        "graph_edges": 14,
        "cache_entries": 0,
    }


async def test_metrics_endpoint() -> None:
    async with get_client() as client:
        await client.get("/health")
        response = await client.get("/metrics")
    assert response.status_code == 200
    assert 'http_requests_total{method="GET",path="/health",status="200"}' in response.text
