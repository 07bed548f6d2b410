from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, Field, field_validator


class ErrorResponse(BaseModel):
    ok: bool = False
    error: str


class QueryRequest(BaseModel):
    """Tool request whose query degrades to an empty string when absent or not text."""
    query: str = ""

    @field_validator("query", mode="before")
    @classmethod
    def coerce_query(cls, value: Any) -> str:
        return value if isinstance(value, str) else ""


class HybridSearchRequest(QueryRequest):
    limit: int = Field(default=10, ge=1, le=100)
    use_compact_mode: bool = Field(
        default=True,
        validation_alias=AliasChoices("use_compact_mode", "use_bq"),
    )


class DocumentScores(BaseModel):
    lexical: float
    similarity: float
    fused: float


class DocumentRanks(BaseModel):
    lexical: int
    similarity: int


class HybridDocument(BaseModel):
    id: str
    content: str
    metadata: dict[str, str]
    scores: DocumentScores
    ranks: DocumentRanks


class HybridSearchResponse(BaseModel):
    ok: bool = True
    documents: list[HybridDocument]
    retrieval_metadata: dict[str, Any]


class GraphSearchRequest(QueryRequest):
    depth: int | None = Field(default=None, ge=0, le=5)


class GraphEntity(BaseModel):
    name: str
    type: str
    description: str


class GraphRelationship(BaseModel):
    entity: str
    relationship: str
    target: str
    confidence: float


class GraphSearchResponse(BaseModel):
    ok: bool = True
    graph_results: dict[str, Any]
    relationships: list[GraphRelationship]
    graph_metadata: dict[str, Any]


class RerankRequest(QueryRequest):
    documents: list[str | dict[str, Any]] | None = None
    mode: str = "fast"


class RerankedItem(BaseModel):
    content: str
    relevance_score: float
    original_rank: int
    new_rank: int
    confidence: str


class RerankResponse(BaseModel):
    ok: bool = True
    reranked: list[RerankedItem]
    rerank_metadata: dict[str, Any]


class GradeRequest(QueryRequest):
    type: str | None = None
    context: str | None = None
    response: str | None = None
    retry_count: int = Field(default=0, ge=0)


class RetryMetadata(BaseModel):
    current_retry: int
    max_retries: int
    should_retry: bool
    retry_strategy: str | None = None


class GradeResponse(BaseModel):
    ok: bool = True
    type: str
    grade: str
    score: float
    feedback: str
    details: dict[str, Any]
    retry_recommended: bool
    retry_strategy: str | None = None
    retry_metadata: RetryMetadata
    timestamp: str


class RouterRequest(QueryRequest):
    pass


class QueryAnalysis(BaseModel):
    original_query: str
    token_count: int
    complexity_score: float
    entities_detected: list[str]
    recommended_tools: list[str]


class RouterResponse(BaseModel):
    ok: bool = True
    route: str
    reasoning: str
    confidence: float
    query_analysis: QueryAnalysis


class CacheRequest(QueryRequest):
    operation: str | None = None
    response: str | None = None


class CacheResponse(BaseModel):
    ok: bool = True
    hit: bool | None = None
    cached_response: str | None = None
    message: str | None = None
    metadata: dict[str, Any]


class StatsResponse(BaseModel):
    corpus_documents: int
    similarity_backend: str
    fusion_k: int
    graph_nodes: int
    graph_edges: int
    cache_entries: int
