"""Quality filters applied to raw retrieval results before ranking."""

from __future__ import annotations

import re

from submittal_review.config.constants import GENERIC_SECTION_TITLES
from submittal_review.models.domain import EvidenceReference

TOC_TITLE = re.compile(r"\.{3,}\s*\d+\s*$")

BOILERPLATE_TITLE = re.compile(
    r"(company name|inspection date|plant location|plant no/s|plant manufacturer"
    r"|plant id no|approval certificate no|contact a plant|yes\s*☐\s*no\s*☐)",
    re.IGNORECASE,
)


def rejection_reason(ref: EvidenceReference, min_content_chars: int = 80) -> str | None:
    """Why ``ref`` would be filtered out, or None when it is kept."""
    chunk = ref.chunk
    if not chunk.clause_number or not chunk.clause_number.strip():
        return "no_clause"
    if not chunk.content or len(chunk.content.strip()) < min_content_chars:
        return "short_content"
    if TOC_TITLE.search(chunk.clause_title):
        return "toc_entry"
    if ref.is_graph and chunk.clause_title.strip().lower() in GENERIC_SECTION_TITLES:
        return "generic_graph_title"
    if BOILERPLATE_TITLE.search(chunk.clause_title):
        return "form_boilerplate"
    return None


def filter_results(
    results: list[EvidenceReference], min_content_chars: int = 80
) -> list[EvidenceReference]:
    return [r for r in results if rejection_reason(r, min_content_chars) is None]
