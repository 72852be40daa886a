"""Deduplicate and select the capped evidence set handed to generation."""

from __future__ import annotations

from submittal_review.models.domain import EvidenceReference


def _prefer(candidate: EvidenceReference, existing: EvidenceReference) -> bool:
    if existing.is_graph != candidate.is_graph:
        return existing.is_graph
    return candidate.score > existing.score


def rank_and_select(
    rows: list[EvidenceReference], max_total: int = 6, max_graph: int = 4
) -> list[EvidenceReference]:
    """One row per (section, part, clause), vector-origin first, then by score.

    A clause found by both sources keeps its vector hit. At most ``max_total``
    rows are returned, of which at most ``max_graph`` are graph-origin.
    """
    by_clause: dict[tuple[str, str, str], EvidenceReference] = {}
    for row in rows:
        key = row.chunk.clause_key
        existing = by_clause.get(key)
        if existing is None or _prefer(row, existing):
            by_clause[key] = row

    ordered = sorted(by_clause.values(), key=lambda r: (r.is_graph, -r.score))

    selected: list[EvidenceReference] = []
    graph_count = 0
    for row in ordered:
        if len(selected) >= max_total:
            break
        if row.is_graph:
            if graph_count >= max_graph:
                continue
            graph_count += 1
        selected.append(row)
    return selected
