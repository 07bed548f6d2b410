from __future__ import annotations

"""Reciprocal Rank Fusion over per-scorer rank maps."""

from typing import Iterable, Mapping

DEFAULT_FUSION_K = 60
MISSING_RANK = 1000


def rank_map(scored: Iterable[tuple[str, float]]) -> dict[str, int]:
    """Return 1-indexed ranks from (doc_id, score) pairs.

    The sort is stable, so equal scores keep their input order.
    """
    ordered = sorted(scored, key=lambda item: item[1], reverse=True)
    return {doc_id: rank for rank, (doc_id, _) in enumerate(ordered, start=1)}


def reciprocal_rank_fusion(
    lexical_ranks: Mapping[str, int],
    similarity_ranks: Mapping[str, int],
    k: int = DEFAULT_FUSION_K,
) -> dict[str, float]:
    """Fuse two rank maps into ``1/(k+rank_a) + 1/(k+rank_b)`` scores.

    A document missing from one side is treated as ranked ``MISSING_RANK``
    there rather than being dropped.
    """
    fused: dict[str, float] = {}
    doc_ids = list(lexical_ranks)
    doc_ids.extend(doc_id for doc_id in similarity_ranks if doc_id not in lexical_ranks)
    for doc_id in doc_ids:
        lexical_rank = lexical_ranks.get(doc_id, MISSING_RANK)
        similarity_rank = similarity_ranks.get(doc_id, MISSING_RANK)
        fused[doc_id] = 1.0 / (k + lexical_rank) + 1.0 / (k + similarity_rank)
    return fused
