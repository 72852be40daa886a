"""Metric recording helpers for reviews and graph builds."""

from __future__ import annotations

from submittal_review.observability.logger import get_logger

logger = get_logger("metrics")


def log_retrieval_metrics(
    trace_id: str,
    queries: int,
    failed_queries: int,
    raw_results: int,
    filtered: int,
    selected: int,
    graph_selected: int,
) -> None:
    logger.info(
        "retrieval_metrics",
        trace_id=trace_id,
        queries=queries,
        failed_queries=failed_queries,
        raw_results=raw_results,
        filtered=filtered,
        selected=selected,
        graph_selected=graph_selected,
    )


def log_review_metrics(
    trace_id: str,
    verdict: str,
    evidence_count: int,
    critical_reasons: int,
    out_of_scope: bool,
    latency_ms: float,
) -> None:
    logger.info(
        "review_metrics",
        trace_id=trace_id,
        verdict=verdict,
        evidence_count=evidence_count,
        critical_reasons=critical_reasons,
        out_of_scope=out_of_scope,
        latency_ms=round(latency_ms, 2),
    )


def log_graph_build_progress(
    wave: int,
    total_waves: int,
    processed: int,
    total_windows: int,
    entities: int,
    relationships: int,
    errors: int,
    elapsed_s: float,
) -> None:
    pct = (processed / total_windows * 100) if total_windows else 100.0
    logger.info(
        "graph_build_progress",
        wave=f"{wave}/{total_waves}",
        processed=processed,
        pct=round(pct, 1),
        entities=entities,
        relationships=relationships,
        errors=errors,
        elapsed_s=round(elapsed_s, 1),
    )

