from __future__ import annotations

"""FastAPI application entrypoint for the AGLA retrieval tools."""

import hashlib
import logging
import time
import uuid
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from agla.app.dependencies import (
    get_corpus,
    get_graph,
    get_hybrid_searcher,
    get_router,
    get_semantic_cache,
)
from agla.app.metrics import (
    metrics_middleware,
    metrics_response,
    record_cache_lookup,
    record_tool_failure,
)
from agla.app.schemas import (
    CacheRequest,
    CacheResponse,
    ErrorResponse,
    GradeRequest,
    GradeResponse,
    GraphEntity,
    GraphRelationship,
    GraphSearchRequest,
    GraphSearchResponse,
    HybridDocument,
    HybridSearchRequest,
    HybridSearchResponse,
    QueryAnalysis,
    RerankedItem,
    RerankRequest,
    RerankResponse,
    RetryMetadata,
    RouterRequest,
    RouterResponse,
    StatsResponse,
)
from agla.app.security import AuthContext, require_api_key
from agla.app.settings import settings
from agla.cache.semantic import CacheError
from agla.rag.grader import GradingError, grade
from agla.rag.rerank import SCORER_NAMES, RerankError, rerank

logger = logging.getLogger(__name__)

app = FastAPI(title="AGLA Retrieval Service", version="0.1.0")


def _configure_logging() -> None:
    """Configure root logging using environment settings."""
    level_name = settings.log_level.strip().upper()
    level = getattr(logging, level_name, logging.INFO)
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        logging.basicConfig(
            level=level,
            format="%(asctime)s %(levelname)s %(name)s %(message)s",
        )
    logger.setLevel(level)


_configure_logging()


def _error_response(status_code: int, message: str) -> JSONResponse:
    """Serialize an ``{ok: false, error}`` payload."""
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=message).model_dump())


def _internal_error(tool: str, request_id: str, exc: Exception) -> JSONResponse:
    """Log an unexpected tool failure and report it to the caller."""
    logger.exception(
        "tool_failed",
        extra={"request_id": request_id, "tool": tool, "detail": type(exc).__name__},
    )
    record_tool_failure(tool)
    return _error_response(500, f"{type(exc).__name__}: {exc}")


def _request_id(http_request: Request) -> str:
    return getattr(http_request.state, "request_id", None) or str(uuid.uuid4())


def _query_hash(query: str) -> str:
    return hashlib.sha256(query.encode("utf-8")).hexdigest()


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 3)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed request bodies as client errors."""
    errors = exc.errors()
    if not errors:
        return _error_response(400, "Malformed request body")
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = str(first.get("msg", "Malformed request body"))
    return _error_response(400, f"{location}: {message}" if location else message)


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Attach or create a request ID for traceability."""
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


@app.middleware("http")
async def record_metrics(request: Request, call_next):
    """Capture request metrics before returning the response."""
    return await metrics_middleware(request, call_next)


@app.get("/metrics")
async def metrics():
    """Expose Prometheus-style metrics."""
    return metrics_response()


@app.get("/health")
async def health() -> dict[str, str]:
    """Simple health probe for uptime checks."""
    return {"status": "ok"}


@app.get("/stats", response_model=StatsResponse)
async def stats(auth: AuthContext = Depends(require_api_key)) -> StatsResponse:
    """Return corpus, graph and cache sizes."""
    graph_stats = get_graph().stats()
    searcher = get_hybrid_searcher()
    return StatsResponse(
        corpus_documents=len(get_corpus()),
        similarity_backend=searcher.similarity.name,
        fusion_k=searcher.fusion_k,
        graph_nodes=graph_stats["nodes"],
        graph_edges=graph_stats["edges"],
        cache_entries=len(get_semantic_cache()),
    )


@app.post("/agla/hybrid_search", response_model=HybridSearchResponse)
async def hybrid_search(
    request: HybridSearchRequest,
    http_request: Request,
    auth: AuthContext = Depends(require_api_key),
) -> HybridSearchResponse | JSONResponse:
    """Rank the corpus with BM25 and similarity scores fused by RRF."""
    request_id = _request_id(http_request)
    query = request.query
    logger.info(
        "hybrid_search_received",
        extra={
            "request_id": request_id,
            "query_length": len(query),
            "query_hash": _query_hash(query),
            "limit": request.limit,
            "compact_mode": request.use_compact_mode,
            "actor": auth.actor,
        },
    )
    try:
        result = get_hybrid_searcher().search(
            query, limit=request.limit, use_compact_mode=request.use_compact_mode
        )
    except Exception as exc:
        return _internal_error("hybrid_search", request_id, exc)
    documents = [
        HybridDocument(
            id=item.document_id,
            content=item.document.content,
            metadata=dict(item.document.metadata),
            scores={
                "lexical": round(item.lexical_score, 3),
                "similarity": round(item.similarity_score, 3),
                "fused": round(item.fused_score, 4),
            },
            ranks={"lexical": item.lexical_rank, "similarity": item.similarity_rank},
        )
        for item in result.documents
    ]
    return HybridSearchResponse(documents=documents, retrieval_metadata=result.metadata)


@app.post("/agla/graph_search", response_model=GraphSearchResponse)
async def graph_search(
    request: GraphSearchRequest,
    http_request: Request,
    auth: AuthContext = Depends(require_api_key),
) -> GraphSearchResponse | JSONResponse:
    """Entity-level traversal plus theme-level synthesis over the knowledge graph."""
    request_id = _request_id(http_request)
    query = request.query
    depth = settings.graph_depth if request.depth is None else request.depth
    start = time.perf_counter()
    try:
        graph = get_graph()
        micro = graph.micro_retrieval(query, depth)
        macro = graph.macro_synthesis(micro.entities, micro.edges)
    except Exception as exc:
        return _internal_error("graph_search", request_id, exc)
    relationships = []
    for edge in micro.edges:
        source = graph.get(edge.source)
        target = graph.get(edge.target)
        relationships.append(
            GraphRelationship(
                entity=source.name if source else edge.source,
                relationship=edge.relationship,
                target=target.name if target else edge.target,
                confidence=edge.weight,
            )
        )
    coverage = round(len(micro.entities) / len(graph.nodes) * 100) if graph.nodes else 0
    logger.info(
        "graph_search_complete",
        extra={
            "request_id": request_id,
            "query_length": len(query),
            "depth": depth,
            "entities": len(micro.entities),
            "edges": len(micro.edges),
        },
    )
    return GraphSearchResponse(
        graph_results={
            "micro": {
                "entities": [
                    GraphEntity(
                        name=node.name, type=node.node_type, description=node.description
                    ).model_dump()
                    for node in micro.entities
                ],
                "entity_count": len(micro.entities),
            },
            "macro": {
                "themes": macro.themes,
                "synthesis": macro.synthesis,
                "theme_count": len(macro.themes),
            },
        },
        relationships=relationships,
        graph_metadata={
            "depth_requested": depth,
            "nodes_visited": len(micro.entities),
            "edges_traversed": len(micro.edges),
            "graph_coverage": f"{coverage}%",
            "execution_time_ms": _elapsed_ms(start),
        },
    )


@app.post("/agla/rerank", response_model=RerankResponse)
async def rerank_documents(
    request: RerankRequest,
    http_request: Request,
    auth: AuthContext = Depends(require_api_key),
) -> RerankResponse | JSONResponse:
    """Rerank caller-supplied documents for a query."""
    request_id = _request_id(http_request)
    query = request.query
    start = time.perf_counter()
    try:
        reranked = rerank(query, request.documents, mode=request.mode)
    except RerankError as exc:
        return _error_response(400, str(exc))
    except Exception as exc:
        return _internal_error("rerank", request_id, exc)
    elapsed = _elapsed_ms(start)
    confidence = "high" if request.mode == "complex" else "medium"
    items = [
        RerankedItem(
            content=item.content,
            relevance_score=item.relevance_score,
            original_rank=item.original_rank,
            new_rank=item.new_rank,
            confidence=confidence,
        )
        for item in reranked
    ]
    scores = [item.relevance_score for item in items]
    logger.info(
        "rerank_complete",
        extra={"request_id": request_id, "mode": request.mode, "documents": len(items)},
    )
    return RerankResponse(
        reranked=items,
        rerank_metadata={
            "mode": request.mode,
            "model": SCORER_NAMES[request.mode],
            "documents_processed": len(items),
            "execution_time_ms": elapsed,
            "top_score": scores[0],
            "score_stats": {
                "mean": round(sum(scores) / len(scores), 3),
                "max": max(scores),
                "min": min(scores),
            },
        },
    )


@app.post("/agla/grader", response_model=GradeResponse)
async def grader(
    request: GradeRequest,
    http_request: Request,
    auth: AuthContext = Depends(require_api_key),
) -> GradeResponse | JSONResponse:
    """Grade retrieval relevance, response grounding or answer quality."""
    request_id = _request_id(http_request)
    grade_type = request.type or ""
    try:
        result = grade(
            grade_type,
            query=request.query,
            context=request.context or "",
            response=request.response or "",
        )
    except GradingError as exc:
        return _error_response(400, str(exc))
    except Exception as exc:
        return _internal_error("grader", request_id, exc)
    max_retries = settings.grader_max_retries
    should_retry = result.retry_recommended and request.retry_count < max_retries
    logger.info(
        "grade_complete",
        extra={
            "request_id": request_id,
            "type": grade_type,
            "grade": result.grade,
            "retry_count": request.retry_count,
            "should_retry": should_retry,
        },
    )
    return GradeResponse(
        type=grade_type,
        grade=result.grade,
        score=result.score,
        feedback=result.feedback,
        details=result.details,
        retry_recommended=result.retry_recommended,
        retry_strategy=result.retry_strategy,
        retry_metadata=RetryMetadata(
            current_retry=request.retry_count,
            max_retries=max_retries,
            should_retry=should_retry,
            retry_strategy=result.retry_strategy if should_retry else None,
        ),
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


@app.post("/agla/semantic_router", response_model=RouterResponse)
async def semantic_router(
    request: RouterRequest,
    http_request: Request,
    auth: AuthContext = Depends(require_api_key),
) -> RouterResponse | JSONResponse:
    """Classify a query into the fast, graph or complex tool path."""
    request_id = _request_id(http_request)
    query = request.query
    try:
        decision = get_router().route(query)
    except Exception as exc:
        return _internal_error("semantic_router", request_id, exc)
    logger.info(
        "route_decided",
        extra={"request_id": request_id, "route": decision.route, "query_length": len(query)},
    )
    return RouterResponse(
        route=decision.route,
        reasoning=decision.reasoning,
        confidence=decision.confidence,
        query_analysis=QueryAnalysis(
            original_query=query,
            token_count=len(query.split(" ")),
            complexity_score=decision.complexity_score,
            entities_detected=decision.entities,
            recommended_tools=decision.recommended_tools,
        ),
    )


@app.post(
    "/agla/semantic_cache",
    response_model=CacheResponse,
    response_model_exclude_none=True,
)
async def semantic_cache(
    request: CacheRequest,
    http_request: Request,
    auth: AuthContext = Depends(require_api_key),
) -> CacheResponse | JSONResponse:
    """Look up or store a response under a normalized query key."""
    request_id = _request_id(http_request)
    query = request.query
    cache = get_semantic_cache()
    try:
        if request.operation == "get":
            lookup = cache.get(query)
            record_cache_lookup(lookup.hit)
            logger.info(
                "semantic_cache_lookup",
                extra={"request_id": request_id, "hit": lookup.hit, "cache_size": len(cache)},
            )
            if lookup.entry is not None:
                return CacheResponse(
                    hit=True,
                    cached_response=lookup.entry.response,
                    metadata={
                        "cache_key": lookup.key,
                        "age_seconds": int(lookup.age_seconds),
                        "hit_count": lookup.entry.hits,
                    },
                )
            return CacheResponse(
                hit=False,
                message="No semantically similar query found in cache.",
                metadata={
                    "cache_key": lookup.key,
                    "cache_size": len(cache),
                    "recommendation": "Proceed with full AGLA pipeline and cache the result.",
                },
            )
        if request.operation == "set":
            key = cache.set(query, request.response)
            logger.info(
                "semantic_cache_store",
                extra={"request_id": request_id, "cache_size": len(cache)},
            )
            return CacheResponse(
                message="Response successfully cached for future semantic matches.",
                metadata={
                    "cache_key": key,
                    "ttl_seconds": int(cache.ttl_seconds),
                    "cache_size": len(cache),
                },
            )
    except CacheError as exc:
        return _error_response(400, str(exc))
    except Exception as exc:
        return _internal_error("semantic_cache", request_id, exc)
    return _error_response(
        400, f"Unknown operation: {request.operation}. Use 'get' or 'set'."
    )
