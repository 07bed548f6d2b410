from __future__ import annotations

from functools import lru_cache

from agla.agents.router import SemanticRouter
from agla.app.settings import settings
from agla.cache.semantic import SemanticCache
from agla.graph.knowledge import KnowledgeGraph, default_graph, load_graph_file
from agla.loaders.corpus import default_corpus, load_corpus_file
from agla.rag.hybrid import HybridSearcher
from agla.rag.lexical import LexicalScorer
from agla.rag.similarity import build_similarity_scorer
from agla.rag.types import Document


@lru_cache
def get_corpus() -> tuple[Document, ...]:
    path = settings.corpus_path
    if path is None:
        return tuple(default_corpus())
    return tuple(load_corpus_file(path))


@lru_cache
def get_hybrid_searcher() -> HybridSearcher:
    documents = get_corpus()
    lexical = LexicalScorer(
        corpus_size=len(documents),
        k1=settings.bm25_k1,
        b=settings.bm25_b,
        avgdl=settings.bm25_avgdl,
    )
    return HybridSearcher(
        documents=documents,
        lexical=lexical,
        similarity=build_similarity_scorer(
            settings.similarity_backend, dimension=settings.embedding_dimension
        ),
        fusion_k=settings.fusion_k,
    )


@lru_cache
def get_graph() -> KnowledgeGraph:
    path = settings.graph_path
    if path is None:
        return default_graph()
    return load_graph_file(path)


@lru_cache
def get_semantic_cache() -> SemanticCache:
    return SemanticCache(
        ttl_seconds=settings.cache_ttl_seconds,
        max_entries=settings.cache_max_entries,
    )


@lru_cache
def get_router() -> SemanticRouter:
    return SemanticRouter()


def reset_caches() -> None:
    get_corpus.cache_clear()
    get_hybrid_searcher.cache_clear()
    get_graph.cache_clear()
    get_semantic_cache.cache_clear()
    get_router.cache_clear()
