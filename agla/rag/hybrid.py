from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Sequence

from agla.rag.fusion import DEFAULT_FUSION_K, rank_map, reciprocal_rank_fusion
from agla.rag.lexical import LexicalScorer
from agla.rag.similarity import OverlapSimilarityScorer, SimilarityScorer
from agla.rag.types import Document, HybridSearchResult, ScoredDocument

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10
COMPACT_DIMENSIONS = 256
FULL_DIMENSIONS = 1024
SEARCH_METHOD = "hybrid_bm25_similarity_rrf"


@dataclass
class HybridSearcher:
    documents: Sequence[Document]
    lexical: LexicalScorer | None = None
    similarity: SimilarityScorer = field(default_factory=OverlapSimilarityScorer)
    fusion_k: int = DEFAULT_FUSION_K

    def __post_init__(self) -> None:
        self.documents = tuple(self.documents)
        if self.lexical is None:
            self.lexical = LexicalScorer(corpus_size=len(self.documents))

    def score(self, query: str) -> list[ScoredDocument]:
        """Score, rank and fuse every document, best first."""
        lexical_scores = [
            (doc.doc_id, self.lexical.score(query, doc)) for doc in self.documents
        ]
        similarity_scores = [
            (doc.doc_id, self.similarity.score(query, doc)) for doc in self.documents
        ]
        lexical_ranks = rank_map(lexical_scores)
        similarity_ranks = rank_map(similarity_scores)
        fused = reciprocal_rank_fusion(lexical_ranks, similarity_ranks, k=self.fusion_k)
        scored = [
            ScoredDocument(
                document=doc,
                lexical_score=lexical,
                similarity_score=similarity,
                fused_score=fused[doc.doc_id],
                lexical_rank=lexical_ranks[doc.doc_id],
                similarity_rank=similarity_ranks[doc.doc_id],
            )
            for doc, (_, lexical), (_, similarity) in zip(
                self.documents, lexical_scores, similarity_scores
            )
        ]
        scored.sort(key=lambda item: item.fused_score, reverse=True)
        return scored

    def search(
        self,
        query: str,
        limit: int = DEFAULT_LIMIT,
        use_compact_mode: bool = True,
    ) -> HybridSearchResult:
        start = time.perf_counter()
        ranked = self.score(query)[: max(limit, 0)]
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "hybrid_search_complete",
            extra={
                "results": len(ranked),
                "candidates": len(self.documents),
                "query_length": len(query),
            },
        )
        metadata = {
            "method": SEARCH_METHOD,
            "total_candidates": len(self.documents),
            "fusion_k": self.fusion_k,
            "lexical_weight": 0.5,
            "similarity_weight": 0.5,
            "similarity_backend": self.similarity.name,
            "compact_mode": use_compact_mode,
            "binary_quantization": use_compact_mode,
            "embedding_dimensions": COMPACT_DIMENSIONS if use_compact_mode else FULL_DIMENSIONS,
            "execution_time_ms": round(elapsed_ms, 3),
        }
        return HybridSearchResult(documents=ranked, metadata=metadata)


def assemble(
    documents: Sequence[Document],
    query: str,
    limit: int = DEFAULT_LIMIT,
    use_compact_mode: bool = True,
) -> list[ScoredDocument]:
    """Rank a corpus for a query with the default scorers."""
    searcher = HybridSearcher(documents=documents)
    return searcher.search(query, limit=limit, use_compact_mode=use_compact_mode).documents
