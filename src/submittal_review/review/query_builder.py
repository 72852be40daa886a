"""Deterministic retrieval query list for a review."""

from __future__ import annotations

import re

from submittal_review.config.constants import BASELINE_QUERIES
from submittal_review.models.analysis import DocumentAnalysis


def normalize_query(query: str) -> str:
    return re.sub(r"\s+", " ", query.strip().lower())


def build_queries(
    analysis: DocumentAnalysis | None,
    max_queries: int = 8,
    baseline: list[str] = BASELINE_QUERIES,
) -> list[str]:
    """Analysis-suggested queries first, then the fixed baseline.

    Blank queries are dropped and duplicates (ignoring case and whitespace)
    keep their first occurrence.
    """
    suggested = analysis.suggested_queries if analysis else []
    queries: list[str] = []
    seen: set[str] = set()
    for query in [*suggested, *baseline]:
        if not query or not query.strip():
            continue
        key = normalize_query(query)
        if key in seen:
            continue
        seen.add(key)
        queries.append(query.strip())
        if len(queries) >= max_queries:
            break
    return queries
