from __future__ import annotations

"""Similarity scorers standing in for dense vector retrieval.

Both scorers share one contract: the score is symmetric in query and content,
bounded in ``[0, 1]`` before weighting, and scaled by the document's
``embedding_norm``. Rank fusion only depends on that contract.
"""

from dataclasses import dataclass, field
from typing import Protocol

from agla.rag.embeddings import EmbeddingProvider, HashEmbedder, cosine_similarity
from agla.rag.lexical import tokenize
from agla.rag.types import Document


class SimilarityScorer(Protocol):
    """Protocol for query/document similarity scorers."""
    name: str

    def score(self, query: str, document: Document) -> float:
        """Return a weighted similarity in ``[0, document.embedding_norm]``."""
        raise NotImplementedError


@dataclass(frozen=True)
class OverlapSimilarityScorer:
    """Jaccard overlap of lower-cased whitespace token sets."""
    name: str = "overlap"

    def score(self, query: str, document: Document) -> float:
        query_terms = set(tokenize(query))
        content_terms = set(tokenize(document.content))
        union = query_terms | content_terms
        if not union:
            return 0.0
        overlap = len(query_terms & content_terms) / len(union)
        return overlap * document.embedding_norm


@dataclass
class EmbeddingSimilarityScorer:
    """Cosine similarity between embedded query and document content."""
    embedder: EmbeddingProvider = field(default_factory=HashEmbedder)
    name: str = "embedding"
    _vectors: dict[str, list[float]] = field(default_factory=dict, repr=False)

    def score(self, query: str, document: Document) -> float:
        query_vector = self.embedder.embed(query)
        vector = self._vectors.get(document.doc_id)
        if vector is None:
            vector = self.embedder.embed(document.content)
            self._vectors[document.doc_id] = vector
        similarity = min(max(cosine_similarity(query_vector, vector), 0.0), 1.0)
        return similarity * document.embedding_norm


def build_similarity_scorer(backend: str, dimension: int = 256) -> SimilarityScorer:
    """Return the scorer for a configured backend name."""
    normalized = backend.lower().strip()
    if normalized in {"", "overlap"}:
        return OverlapSimilarityScorer()
    if normalized == "embedding":
        return EmbeddingSimilarityScorer(embedder=HashEmbedder(dimension=dimension))
    raise ValueError(f"Unsupported similarity backend: {backend}")
