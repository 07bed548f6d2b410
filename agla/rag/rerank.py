from __future__ import annotations

"""Heuristic rerankers: a fast token/bigram scorer and a synonym-aware one."""

from dataclasses import dataclass
from typing import Any, Callable, Sequence

from agla.rag.lexical import tokenize

RERANK_MODES = ("fast", "complex")
SCORER_NAMES = {
    "fast": "token-bigram-overlap",
    "complex": "synonym-position-overlap",
}
SYNONYMS: dict[str, tuple[str, ...]] = {
    "rag": ("retrieval", "search", "fetch"),
    "architecture": ("system", "design", "structure"),
    "search": ("query", "find", "lookup", "retrieval"),
    "cache": ("store", "memory", "buffer"),
    "graph": ("network", "relationships", "connections"),
}
POSITION_WINDOW = 50
SCORE_PRECISION = 3


class RerankError(ValueError):
    """Raised when a rerank request cannot be served."""
    pass


@dataclass
class RerankedDocument:
    content: str
    relevance_score: float
    original_rank: int
    new_rank: int = 0


def fast_score(query: str, content: str) -> float:
    """Exact-token and bigram overlap with a small length prior."""
    query_terms = tokenize(query)
    doc_terms = tokenize(content)
    if not query_terms:
        return 0.0
    doc_term_set = set(doc_terms)
    exact_matches = sum(1 for term in query_terms if term in doc_term_set)
    query_bigrams = {f"{a} {b}" for a, b in zip(query_terms, query_terms[1:])}
    bigram_matches = sum(
        1 for a, b in zip(doc_terms, doc_terms[1:]) if f"{a} {b}" in query_bigrams
    )
    length_prior = min(len(doc_terms) / 100, 1.0)
    exact_score = exact_matches / len(query_terms)
    bigram_score = bigram_matches / max(len(query_bigrams), 1)
    return min((exact_score * 0.6 + bigram_score * 0.3 + length_prior * 0.1) * 1.5, 1.0)


def complex_score(query: str, content: str) -> float:
    """Exact or synonym hits per query term plus an early-position bonus."""
    query_terms = list(dict.fromkeys(tokenize(query)))
    doc_terms = tokenize(content)
    if not query_terms:
        return 0.0
    doc_term_set = set(doc_terms)
    semantic_score = 0.0
    for term in query_terms:
        if term in doc_term_set:
            semantic_score += 1.0
        elif any(synonym in doc_term_set for synonym in SYNONYMS.get(term, ())):
            semantic_score += 0.7
    first_seen: dict[str, int] = {}
    for position, term in enumerate(doc_terms):
        first_seen.setdefault(term, position)
    position_bonus = 0.0
    for term in query_terms:
        idx = first_seen.get(term)
        if idx is not None and idx < POSITION_WINDOW:
            position_bonus += (POSITION_WINDOW - idx) / POSITION_WINDOW * 0.1
    return min((semantic_score / len(query_terms) + position_bonus) * 1.2, 1.0)


_SCORERS: dict[str, Callable[[str, str], float]] = {
    "fast": fast_score,
    "complex": complex_score,
}


def _document_content(item: Any, index: int) -> str:
    if isinstance(item, str):
        return item
    if isinstance(item, dict) and isinstance(item.get("content"), str):
        return item["content"]
    raise RerankError(f"Document {index + 1} must be a string or an object with content")


def rerank(query: str, documents: Sequence[Any] | None, mode: str = "fast") -> list[RerankedDocument]:
    """Score documents and return them best first with old and new ranks."""
    if not documents:
        raise RerankError("No documents provided for reranking.")
    scorer = _SCORERS.get(mode)
    if scorer is None:
        raise RerankError(f"Unknown rerank mode: {mode}. Use 'fast' or 'complex'.")
    reranked: list[RerankedDocument] = []
    for index, item in enumerate(documents):
        content = _document_content(item, index)
        reranked.append(
            RerankedDocument(
                content=content,
                relevance_score=round(scorer(query, content), SCORE_PRECISION),
                original_rank=index + 1,
            )
        )
    reranked.sort(key=lambda item: item.relevance_score, reverse=True)
    for position, item in enumerate(reranked, start=1):
        item.new_rank = position
    return reranked
