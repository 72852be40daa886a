"""Fixed constants that are not meant to be tuned per deployment."""

from __future__ import annotations

CORPUS_LABEL = "QCS 2024"

EVIDENCE_EXCERPT_CHARS = 420

REVIEW_STAGE_LABELS = {
    "uploaded": "Upload received",
    "extracting": "Extracting document content...",
    "analyzing": "Analyzing submittal structure...",
    "scope_gate": "Checking document scope...",
    "retrieving": "Retrieving relevant specification sections...",
    "drafting": "Drafting compliance review...",
}

# Always searched, after the analysis-suggested queries.
BASELINE_QUERIES = [
    "method statement submittal requirements qcs 2024",
    "qcs 2024 fire life safety product approval qcd qcdd requirements",
    "qcs 2024 concrete mix design and submittal requirements",
    "qcs 2024 earthworks compaction and field density testing",
    "qcs 2024 masonry block work and mortar requirements",
    "qcs 2024 quality assurance inspection testing requirements",
]

GENERIC_SECTION_TITLES = frozenset({"scope", "introduction", "references"})

REPORT_SECTIONS = [
    "VERDICT",
    "DOCUMENT OVERVIEW",
    "SUMMARY",
    "DETAILED ANALYSIS",
    "RECOMMENDATIONS",
]
