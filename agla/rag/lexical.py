from __future__ import annotations

"""BM25-style lexical scoring over document keyword lists."""

import math
from dataclasses import dataclass

from agla.rag.types import Document


def tokenize(text: str) -> list[str]:
    """Lower-case whitespace tokenization shared by the scorers."""
    return text.lower().split()


def _keyword_matches(term: str, keyword: str) -> bool:
    return term in keyword or keyword in term


@dataclass(frozen=True)
class LexicalScorer:
    """Score a query against a document's keywords with BM25 weighting.

    Keyword matching is a loose, bidirectional substring test: a query term
    hits a keyword when either contains the other. ``tf`` is the number of
    keywords hit by a term and ``corpus_size`` feeds the idf term.
    """
    corpus_size: int
    k1: float = 1.2
    b: float = 0.75
    avgdl: float = 100.0

    def score(self, query: str, document: Document) -> float:
        """Return the summed BM25 contribution of every query term."""
        terms = tokenize(query)
        if not terms or not document.keywords:
            return 0.0
        keywords = [keyword.lower() for keyword in document.keywords]
        dl = len(document.content.split())
        norm = self.k1 * (1 - self.b + self.b * (dl / self.avgdl))
        total = 0.0
        for term in terms:
            tf = sum(1 for keyword in keywords if _keyword_matches(term, keyword))
            if tf == 0:
                continue
            total += self._idf(tf) * ((tf * (self.k1 + 1)) / (tf + norm))
        return total

    def _idf(self, tf: int) -> float:
        # Floored at zero: a term hitting more keywords than the corpus has
        # documents would otherwise subtract from the score.
        idf = math.log(1 + (self.corpus_size - tf + 0.5) / (tf + 0.5))
        return max(idf, 0.0)
