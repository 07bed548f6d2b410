from __future__ import annotations

"""Retrieval, hallucination and answer graders with retry advice."""

import re
from dataclasses import dataclass, field
from typing import Any

GRADE_TYPES = ("retrieval", "hallucination", "answer")

_CAPITALIZED_RE = re.compile(r"\b[A-Z][a-z]+(?:\s+[A-Z][a-z]+)*\b")
_ACRONYM_RE = re.compile(r"\b[A-Z]{2,}\b")
_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")


class GradingError(ValueError):
    """Raised for unknown grading types."""
    pass


@dataclass(frozen=True)
class GradeResult:
    grade: str
    score: float
    feedback: str
    details: dict[str, Any] = field(default_factory=dict)
    retry_recommended: bool = False
    retry_strategy: str | None = None


def extract_entities(text: str) -> list[str]:
    """Capitalized phrases and acronyms, lower-cased, first occurrence order."""
    found = _CAPITALIZED_RE.findall(text) + _ACRONYM_RE.findall(text)
    return list(dict.fromkeys(entity.lower() for entity in found))


def _content_terms(text: str, min_length: int) -> list[str]:
    return [term for term in text.lower().split() if len(term) > min_length]


def grade_retrieval(query: str, context: str) -> GradeResult:
    if len(context) < 20:
        return GradeResult(
            grade="fail",
            score=0.1,
            feedback="Insufficient context retrieved. Documents appear irrelevant or empty.",
            details={"reason": "empty_context", "context_length": len(context)},
            retry_recommended=True,
            retry_strategy="expand_query",
        )
    query_terms = set(_content_terms(query, 2))
    context_terms = set(context.lower().split())
    term_overlap = len(query_terms & context_terms) / len(query_terms) if query_terms else 0.0
    context_coverage = min(len(context) / 500, 1.0)

    query_entities = extract_entities(query)
    context_entities = extract_entities(context)
    overlapping = [
        entity
        for entity in query_entities
        if any(other in entity or entity in other for other in context_entities)
    ]
    entity_score = len(overlapping) / len(query_entities) if query_entities else 0.5
    score = term_overlap * 0.4 + context_coverage * 0.2 + entity_score * 0.4

    if score >= 0.7:
        grade, strategy = "pass", None
        feedback = "Retrieved documents are highly relevant. Proceeding with generation."
    elif score >= 0.5:
        grade, strategy = "warn", "augment_search"
        feedback = "Retrieved documents have moderate relevance. May need additional context."
    elif score >= 0.3:
        grade, strategy = "ambiguous", "reformulate_query"
        feedback = "Retrieval quality is uncertain. Consider reformulating query."
    else:
        grade, strategy = "fail", "web_fallback"
        feedback = "Retrieved documents are not relevant. Retry with different approach."

    return GradeResult(
        grade=grade,
        score=round(score, 3),
        feedback=feedback,
        details={
            "term_overlap": round(term_overlap, 2),
            "context_coverage": round(context_coverage, 2),
            "entity_score": round(entity_score, 2),
            "query_entities": query_entities,
            "matched_entities": [
                entity
                for entity in query_entities
                if any(entity in other for other in context_entities)
            ],
        },
        retry_recommended=strategy is not None,
        retry_strategy=strategy,
    )


def grade_hallucination(response: str, context: str) -> GradeResult:
    if not response:
        return GradeResult(
            grade="fail",
            score=0.0,
            feedback="No response provided to check.",
            retry_recommended=True,
            retry_strategy="regenerate",
        )
    claims = [
        claim.strip()
        for claim in _SENTENCE_SPLIT_RE.split(response)
        if len(claim.strip()) > 10
    ]
    context_lower = context.lower()
    analysis: list[dict[str, Any]] = []
    supported_count = 0
    for claim in claims:
        terms = _content_terms(claim, 3)
        hits = sum(1 for term in terms if term in context_lower)
        supported = bool(terms) and hits / len(terms) > 0.4
        supported_count += int(supported)
        analysis.append({"claim": claim, "supported": supported})
    unsupported_count = len(claims) - supported_count
    score = supported_count / len(claims) if claims else 0.5

    if score >= 0.85:
        grade = "pass"
        feedback = "Response is well-grounded in evidence. No hallucination detected."
    elif score >= 0.65:
        grade = "warn"
        feedback = (
            f"{unsupported_count} claim(s) may not be fully supported. Review flagged sections."
        )
    else:
        grade = "fail"
        feedback = "Significant hallucination risk detected. Response contains unsupported claims."
    retry = score < 0.65

    return GradeResult(
        grade=grade,
        score=round(score, 3),
        feedback=feedback,
        details={
            "total_claims": len(claims),
            "supported_claims": supported_count,
            "unsupported_claims": unsupported_count,
            "grounding_ratio": f"{round(score * 100)}%",
            "claim_analysis": analysis[:5],
        },
        retry_recommended=retry,
        retry_strategy="regenerate_with_stricter_grounding" if retry else None,
    )


def grade_answer(response: str, query: str) -> GradeResult:
    if len(response) < 10:
        return GradeResult(
            grade="fail",
            score=0.1,
            feedback="Response is too short or empty.",
            details={"reason": "insufficient_length"},
            retry_recommended=True,
            retry_strategy="regenerate",
        )
    query_terms = set(_content_terms(query, 2))
    response_terms = set(response.lower().split())
    relevance = len(query_terms & response_terms) / len(query_terms) if query_terms else 0.0
    completeness = min(len(response) / 200, 1.0)
    sentences = [part for part in _SENTENCE_SPLIT_RE.split(response) if part.strip()]
    avg_sentence_length = len(response) / max(len(sentences), 1)
    clarity = 0.9 if 20 < avg_sentence_length < 150 else 0.6
    score = relevance * 0.4 + completeness * 0.35 + clarity * 0.25

    if score >= 0.75:
        grade = "pass"
        feedback = "Answer is complete, relevant, and well-structured."
    elif score >= 0.55:
        grade = "warn"
        feedback = "Answer is acceptable but could be improved in clarity or completeness."
    else:
        grade = "fail"
        feedback = "Answer quality is insufficient. Consider regeneration or clarification."
    retry = score < 0.55

    return GradeResult(
        grade=grade,
        score=round(score, 3),
        feedback=feedback,
        details={
            "relevance": round(relevance, 2),
            "completeness": round(completeness, 2),
            "clarity": round(clarity, 2),
            "sentence_count": len(sentences),
            "response_length": len(response),
        },
        retry_recommended=retry,
        retry_strategy="regenerate_with_specificity" if retry else None,
    )


def grade(grade_type: str, query: str = "", context: str = "", response: str = "") -> GradeResult:
    """Dispatch to the grader for ``grade_type``."""
    if grade_type == "retrieval":
        return grade_retrieval(query, context)
    if grade_type == "hallucination":
        return grade_hallucination(response, context)
    if grade_type == "answer":
        return grade_answer(response, query)
    raise GradingError(
        f"Unknown grading type: {grade_type}. Use 'retrieval', 'hallucination', or 'answer'."
    )
