"""Core domain objects used throughout the system."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from submittal_review.config.constants import CORPUS_LABEL, EVIDENCE_EXCERPT_CHARS

_TOC_LEADER = re.compile(r"\s*\.{3,}\s*\d+\s*$")


def clean_clause_title(title: str) -> str:
    """Strip table-of-contents dot leaders and page numbers from a title."""
    return _TOC_LEADER.sub("", title).strip()


@dataclass
class Chunk:
    chunk_id: str
    section_number: str
    section_title: str
    part_number: str
    part_title: str
    clause_number: str
    clause_title: str
    content: str
    page_start: int = 0
    page_end: int = 0
    token_estimate: int = 0

    @property
    def clause_key(self) -> tuple[str, str, str]:
        return (self.section_number, self.part_number, self.clause_number)

    def reference(self, corpus_label: str = CORPUS_LABEL) -> str:
        return (
            f"{corpus_label} Section {self.section_number}: {self.section_title}, "
            f"Part {self.part_number}: {self.part_title}, "
            f"Clause {self.clause_number}: {clean_clause_title(self.clause_title)} "
            f"(Pages {self.page_start}-{self.page_end})"
        )


@dataclass
class ChunkWindow:
    chunk_ids: list[str]
    content: str
    section_number: str
    section_title: str
    part_number: str
    part_title: str
    token_estimate: int


@dataclass
class EvidenceReference:
    chunk: Chunk
    score: float
    origin: str  # "vector", "graph"
    corpus_label: str = CORPUS_LABEL

    @property
    def is_graph(self) -> bool:
        return self.origin == "graph"

    @property
    def reference(self) -> str:
        return self.chunk.reference(self.corpus_label)

    @property
    def content(self) -> str:
        return self.chunk.content

    def excerpt(self, max_chars: int = EVIDENCE_EXCERPT_CHARS) -> str:
        return re.sub(r"\s+", " ", self.chunk.content).strip()[:max_chars]


@dataclass
class GraphEntity:
    entity_id: str
    type: str
    name: str
    description: str | None = None


@dataclass
class GraphRelationship:
    relationship_id: str
    type: str
    source_id: str
    target_id: str
    chunk_ids: list[str] = field(default_factory=list)


@dataclass
class ExtractedPage:
    page_number: int
    text: str


@dataclass
class ExtractionResult:
    raw_text: str
    pages: list[ExtractedPage]
    total_pages: int
    filename: str | None = None
    is_scanned: bool = False


@dataclass
class UploadedDocument:
    filename: str
    content_type: str
    data: bytes


@dataclass
class QueryOutcome:
    """Per-query result slot captured before fan-in."""

    query: str
    results: list[EvidenceReference]
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None


@dataclass
class ScopeAssessment:
    is_out_of_scope: bool
    out_score: float
    in_score: float
    matched_signals: list[str]
    has_structural_evidence: bool
    reason: str = ""


class Verdict(str, Enum):
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    NEEDS_REVISION = "NEEDS REVISION"


class ReviewStage(str, Enum):
    UPLOADED = "uploaded"
    EXTRACTING = "extracting"
    ANALYZING = "analyzing"
    SCOPE_GATE = "scope_gate"
    RETRIEVING = "retrieving"
    DRAFTING = "drafting"


@dataclass
class ReviewSession:
    trace_id: str
    stage: ReviewStage = ReviewStage.UPLOADED
    verdict: Verdict | None = None
    evidence: list[EvidenceReference] = field(default_factory=list)
    critical_reasons: list[str] = field(default_factory=list)
    scope: ScopeAssessment | None = None
    failed_queries: int = 0
    document: str = ""


@dataclass
class ReviewTrace:
    trace_id: str
    filename: str
    timestamp: datetime
    latency_ms: float
    verdict: str
    evidence_count: int
    graph_evidence_count: int
    critical_reasons: list[str]
    spans: list[dict]
