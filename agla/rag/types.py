from __future__ import annotations

"""Core data types for documents and hybrid retrieval."""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping


@dataclass(frozen=True)
class Document:
    """Corpus document with lexical keywords and a similarity weight.

    Metadata is held in a read-only mapping and left out of the hash, so
    documents can be used as set members and dict keys.
    """
    doc_id: str
    content: str
    keywords: tuple[str, ...] = ()
    metadata: Mapping[str, str] = field(default_factory=dict, hash=False)
    embedding_norm: float = 1.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "keywords", tuple(self.keywords))
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))


@dataclass(frozen=True)
class ScoredDocument:
    """Per-query scores and ranks for a single document."""
    document: Document
    lexical_score: float
    similarity_score: float
    fused_score: float
    lexical_rank: int
    similarity_rank: int

    @property
    def document_id(self) -> str:
        return self.document.doc_id


@dataclass(frozen=True)
class HybridSearchResult:
    """Ranked documents plus the metadata echoed to callers."""
    documents: list[ScoredDocument]
    metadata: dict[str, Any]
