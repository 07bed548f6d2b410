from __future__ import annotations

"""Ranking properties of the hybrid searcher."""

from itertools import combinations

from agla.loaders.corpus import default_corpus
from agla.rag.hybrid import HybridSearcher, assemble
from agla.rag.types import Document


def small_corpus() -> list[Document]:
    return [
        Document(doc_id="A", content="cache lru eviction policy", keywords=("cache", "lru")),
        Document(doc_id="B", content="graph entity traversal", keywords=("graph", "entity")),
        Document(doc_id="C", content="vector bm25 fusion", keywords=("vector", "bm25")),
    ]


def test_cache_lru_scenario_ranks_cache_document_first() -> None:
    results = assemble(small_corpus(), "cache lru")
    by_id = {item.document_id: item for item in results}

    assert by_id["A"].lexical_score > by_id["B"].lexical_score
    assert by_id["A"].lexical_score > by_id["C"].lexical_score
    assert results[0].document_id == "A"


def test_ties_keep_corpus_order() -> None:
    results = assemble(small_corpus(), "cache lru")
    by_id = {item.document_id: item for item in results}

    assert by_id["A"].lexical_rank == 1
    assert by_id["B"].lexical_rank == 2
    assert by_id["C"].lexical_rank == 3


def test_repeated_searches_are_identical() -> None:
    searcher = HybridSearcher(documents=default_corpus())

    first = searcher.score("hybrid search with rrf fusion")
    second = searcher.score("hybrid search with rrf fusion")

    assert [item.document_id for item in first] == [item.document_id for item in second]
    assert [item.fused_score for item in first] == [item.fused_score for item in second]


def test_highest_lexical_score_gets_rank_one() -> None:
    results = HybridSearcher(documents=default_corpus()).score("semantic cache ttl")
    best = max(results, key=lambda item: item.lexical_score)

    assert best.lexical_rank == 1


def test_fusion_is_monotonic_in_both_ranks() -> None:
    results = HybridSearcher(documents=default_corpus()).score("graph entity relationships")

    for first, second in combinations(results, 2):
        if (
            first.lexical_rank < second.lexical_rank
            and first.similarity_rank < second.similarity_rank
        ):
            assert first.fused_score >= second.fused_score
        if (
            second.lexical_rank < first.lexical_rank
            and second.similarity_rank < first.similarity_rank
        ):
            assert second.fused_score >= first.fused_score


def test_scores_within_bounds() -> None:
    corpus = default_corpus()
    max_norm = max(doc.embedding_norm for doc in corpus)

    for item in HybridSearcher(documents=corpus).score("AGLA binary quantization cost"):
        assert item.lexical_score >= 0.0
        assert 0.0 <= item.similarity_score <= max_norm


def test_empty_query_returns_corpus_order_with_zero_scores() -> None:
    corpus = default_corpus()
    results = HybridSearcher(documents=corpus).score("")

    assert [item.document_id for item in results] == [doc.doc_id for doc in corpus]
    assert all(item.lexical_score == 0.0 for item in results)
    assert all(item.similarity_score == 0.0 for item in results)
    assert results[0].lexical_rank == 1
    assert results[0].similarity_rank == 1


def test_limit_truncates_to_best_fused_scores() -> None:
    searcher = HybridSearcher(documents=default_corpus())
    full = searcher.score("rerank precision accuracy")

    limited = searcher.search("rerank precision accuracy", limit=2).documents

    assert len(full) == 8
    assert [item.document_id for item in limited] == [item.document_id for item in full[:2]]
    assert limited[0].fused_score >= limited[1].fused_score
    assert all(item.fused_score <= limited[1].fused_score for item in full[2:])


def test_compact_mode_only_changes_metadata() -> None:
    searcher = HybridSearcher(documents=default_corpus())

    compact = searcher.search("semantic routing", use_compact_mode=True)
    full = searcher.search("semantic routing", use_compact_mode=False)

    assert compact.documents == full.documents
    assert compact.metadata["embedding_dimensions"] == 256
    assert full.metadata["embedding_dimensions"] == 1024
    assert compact.metadata["binary_quantization"] is True
    assert full.metadata["binary_quantization"] is False


def test_empty_corpus_returns_no_results() -> None:
    result = HybridSearcher(documents=[]).search("anything")

    assert result.documents == []
    assert result.metadata["total_candidates"] == 0
