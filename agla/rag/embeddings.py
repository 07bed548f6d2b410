from __future__ import annotations

"""Hashed bag-of-words vectors backing the embedding similarity backend."""

import hashlib
import math
import re
from collections import Counter
from dataclasses import dataclass
from typing import Protocol, Sequence

_WORD_RE = re.compile(r"[a-z0-9]+")


class EmbeddingError(RuntimeError):
    """Raised when a vector cannot be produced or compared."""
    pass


class EmbeddingProvider(Protocol):
    """Anything that turns text into a fixed-size vector."""
    dimension: int

    def embed(self, text: str) -> list[float]:
        raise NotImplementedError


def cosine_similarity(left: Sequence[float], right: Sequence[float]) -> float:
    """Cosine of the angle between two equal-length vectors, 0 for zero vectors."""
    if len(left) != len(right):
        raise EmbeddingError(f"Vector length mismatch: {len(left)} != {len(right)}")
    left_norm = math.hypot(*left)
    right_norm = math.hypot(*right)
    if not left_norm or not right_norm:
        return 0.0
    return math.fsum(a * b for a, b in zip(left, right)) / (left_norm * right_norm)


def _bucket(word: str, dimension: int) -> int:
    digest = hashlib.sha256(word.encode("utf-8")).digest()
    return int.from_bytes(digest[:4], "big") % dimension


@dataclass(frozen=True)
class HashEmbedder:
    """Deterministic embedder: word counts folded into hashed buckets, unit length."""
    dimension: int = 256

    def __post_init__(self) -> None:
        if self.dimension <= 0:
            raise EmbeddingError("EMBEDDING_DIMENSION must be positive")

    def embed(self, text: str) -> list[float]:
        vector = [0.0] * self.dimension
        for word, count in Counter(_WORD_RE.findall(text.lower())).items():
            vector[_bucket(word, self.dimension)] += count
        length = math.hypot(*vector)
        if not length:
            return vector
        return [value / length for value in vector]
