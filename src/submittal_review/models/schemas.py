"""Pydantic models for API request/response serialization."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class CitationEntry(BaseModel):
    reference: str
    origin: Literal["vector", "graph"]
    score: float


class StageEvent(BaseModel):
    id: str
    label: str
    timestamp: float


class ScopeInfo(BaseModel):
    is_out_of_scope: bool
    out_score: float
    in_score: float
    matched_signals: list[str] = Field(default_factory=list)
    reason: str = ""


class ReviewResponse(BaseModel):
    verdict: Literal["APPROVED", "REJECTED", "NEEDS REVISION"]
    document: str
    citations: list[CitationEntry]
    critical_reasons: list[str] = Field(default_factory=list)
    scope: ScopeInfo | None = None
    stages: list[StageEvent] = Field(default_factory=list)
    trace_id: str
    latency_ms: float = 0.0


class SearchRequest(BaseModel):
    query: str
    mode: Literal["vector", "graph"] | None = None
    top_k: int = Field(default=8, ge=1, le=50)


class SearchHit(BaseModel):
    reference: str
    content: str
    score: float
    origin: Literal["vector", "graph"]


class SearchResponse(BaseModel):
    query: str
    mode: Literal["vector", "graph"]
    raw_count: int
    hits: list[SearchHit]


class HealthResponse(BaseModel):
    status: str
    chunk_count: int
    index_size: int
    graph_status: Literal["ok", "unavailable"]
    graph_entities: int = 0
    graph_relationships: int = 0
