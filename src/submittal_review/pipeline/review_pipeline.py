"""Deterministic, fail-closed submittal review pipeline."""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncGenerator

from submittal_review.config.settings import Settings
from submittal_review.exceptions import (
    AnalysisFailure,
    EmptyEvidence,
    ExtractionFailure,
    GenerationFailure,
)
from submittal_review.generation.prompt_templates import (
    EXTRACTION_FAILED_REPORT,
    GENERATION_FALLBACK_REPORT,
    INTERNAL_ERROR_REPORT,
    NO_DOCUMENT_REPORT,
    format_no_evidence_report,
    format_out_of_scope_report,
)
from submittal_review.generation.report_generator import ReportGenerator
from submittal_review.models.analysis import DocumentAnalysis
from submittal_review.models.domain import (
    EvidenceReference,
    ExtractionResult,
    ReviewSession,
    ReviewStage,
    UploadedDocument,
    Verdict,
)
from submittal_review.models.schemas import CitationEntry, ReviewResponse, ScopeInfo, StageEvent
from submittal_review.observability.logger import get_logger
from submittal_review.observability.metrics import log_retrieval_metrics, log_review_metrics
from submittal_review.observability.tracing import TraceContext
from submittal_review.protocols.extraction import DocumentAnalyzer, DocumentExtractor
from submittal_review.retrieval.fanout import flatten, run_queries
from submittal_review.retrieval.filters import filter_results
from submittal_review.retrieval.hybrid_search import HybridSearcher
from submittal_review.retrieval.ranking import rank_and_select
from submittal_review.review.citations import (
    format_citation_section,
    is_scope_rejection,
    parse_verdict,
    rewrite_verdict,
    strip_generated_citation_section,
)
from submittal_review.review.critical_reasons import detect_critical_reasons
from submittal_review.review.query_builder import build_queries
from submittal_review.review.scope_gate import ScopeGate
from submittal_review.storage.sqlite_trace_store import SQLiteTraceStore

logger = get_logger("review_pipeline")


def slice_text(text: str, size: int) -> list[str]:
    size = max(1, size)
    return [text[i : i + size] for i in range(0, len(text), size)]


class ReviewPipeline:
    def __init__(
        self,
        extractor: DocumentExtractor,
        analyzer: DocumentAnalyzer,
        scope_gate: ScopeGate,
        searcher: HybridSearcher,
        report_generator: ReportGenerator,
        trace_store: SQLiteTraceStore | None,
        settings: Settings,
    ) -> None:
        self._extractor = extractor
        self._analyzer = analyzer
        self._scope_gate = scope_gate
        self._searcher = searcher
        self._generator = report_generator
        self._trace_store = trace_store
        self._settings = settings
        self._pending: set[asyncio.Task] = set()

    async def execute(self, document: UploadedDocument | None) -> ReviewResponse:
        response = None
        async for event in self.execute_stream(document):
            if event["event"] == "result":
                response = ReviewResponse.model_validate_json(event["data"])
        return response

    async def execute_stream(
        self, document: UploadedDocument | None
    ) -> AsyncGenerator[dict, None]:
        """Run a review, yielding SSE-shaped dicts:
        - {"event": "stage", "data": "<json {id, label, timestamp}>"}
        - {"event": "source", "data": "<json {id, reference, origin}>"}
        - {"event": "token", "data": "<text chunk>"}
        - {"event": "result", "data": "<json ReviewResponse>"}
        - {"event": "done", "data": ""}
        """
        trace = TraceContext()
        session = ReviewSession(trace_id=trace.trace_id)
        filename = document.filename if document else ""

        try:
            async for event in self._review(document, session, trace):
                yield event
        except Exception as e:
            logger.exception("review_failed", trace_id=trace.trace_id, error=str(e))
            session.evidence = []
            if session.stage is not ReviewStage.DRAFTING:
                yield self._stage_event(session, trace, ReviewStage.DRAFTING)
            async for event in self._emit_static(session, INTERNAL_ERROR_REPORT, Verdict.NEEDS_REVISION):
                yield event

        response = self._build_response(session, trace)
        log_review_metrics(
            trace.trace_id,
            response.verdict,
            len(response.citations),
            len(session.critical_reasons),
            bool(session.scope and session.scope.is_out_of_scope),
            trace.elapsed_ms,
        )
        self._save_trace(session, trace, filename)

        yield {"event": "result", "data": response.model_dump_json()}
        yield {"event": "done", "data": ""}

    async def _review(
        self,
        document: UploadedDocument | None,
        session: ReviewSession,
        trace: TraceContext,
    ) -> AsyncGenerator[dict, None]:
        yield self._stage_event(session, trace, ReviewStage.UPLOADED)
        if document is None:
            yield self._stage_event(session, trace, ReviewStage.DRAFTING)
            async for event in self._emit_static(session, NO_DOCUMENT_REPORT, Verdict.NEEDS_REVISION):
                yield event
            return

        # Extraction failure is terminal
        yield self._stage_event(session, trace, ReviewStage.EXTRACTING)
        extraction: ExtractionResult | None = None
        with trace.span("extraction", filename=document.filename):
            try:
                extraction = await self._extractor.extract(document)
            except ExtractionFailure as e:
                logger.warning("extraction_failed", trace_id=trace.trace_id, error=str(e))
        if extraction is None:
            yield self._stage_event(session, trace, ReviewStage.DRAFTING)
            async for event in self._emit_static(session, EXTRACTION_FAILED_REPORT, Verdict.NEEDS_REVISION):
                yield event
            return

        # Analysis failure is not
        yield self._stage_event(session, trace, ReviewStage.ANALYZING)
        analysis: DocumentAnalysis | None = None
        with trace.span("analysis"):
            try:
                analysis = await self._analyzer.analyze(extraction)
            except AnalysisFailure as e:
                logger.warning("analysis_failed", trace_id=trace.trace_id, error=str(e))

        yield self._stage_event(session, trace, ReviewStage.SCOPE_GATE)
        with trace.span("scope_gate"):
            session.scope = self._scope_gate.assess(analysis, extraction.raw_text)
        if session.scope.is_out_of_scope:
            logger.info(
                "out_of_scope",
                trace_id=trace.trace_id,
                out_score=session.scope.out_score,
                in_score=session.scope.in_score,
                signals=session.scope.matched_signals,
            )
            yield self._stage_event(session, trace, ReviewStage.DRAFTING)
            report = format_out_of_scope_report(
                analysis.title if analysis else None, session.scope.reason
            )
            async for event in self._emit_static(session, report, Verdict.REJECTED):
                yield event
            return

        yield self._stage_event(session, trace, ReviewStage.RETRIEVING)
        evidence: list[EvidenceReference] = []
        with trace.span("retrieval") as span:
            try:
                evidence = await self._retrieve(analysis, session, trace)
            except EmptyEvidence as e:
                logger.warning("no_evidence", trace_id=trace.trace_id, error=str(e))
            span.metadata["evidence"] = len(evidence)

        yield self._stage_event(session, trace, ReviewStage.DRAFTING)
        session.critical_reasons = detect_critical_reasons(analysis)
        if not evidence:
            report = format_no_evidence_report(session.critical_reasons)
            async for event in self._emit_static(session, report, Verdict.NEEDS_REVISION):
                yield event
            return

        with trace.span("generation", critical_reasons=len(session.critical_reasons)):
            async for event in self._draft(analysis, evidence, session):
                yield event

    async def _retrieve(
        self,
        analysis: DocumentAnalysis | None,
        session: ReviewSession,
        trace: TraceContext,
    ) -> list[EvidenceReference]:
        s = self._settings
        queries = build_queries(analysis, max_queries=s.max_queries)
        outcomes = await run_queries(queries, self._searcher.search, s.retrieval_concurrency)
        session.failed_queries = sum(1 for o in outcomes if o.failed)

        raw = flatten(outcomes)
        filtered = filter_results(raw, s.min_content_chars)
        evidence = rank_and_select(filtered, s.max_total_refs, s.max_total_graph_refs)

        log_retrieval_metrics(
            trace.trace_id,
            queries=len(queries),
            failed_queries=session.failed_queries,
            raw_results=len(raw),
            filtered=len(filtered),
            selected=len(evidence),
            graph_selected=sum(1 for e in evidence if e.is_graph),
        )
        if not evidence:
            raise EmptyEvidence(
                f"No validated references from {len(queries)} queries "
                f"({session.failed_queries} failed)"
            )
        return evidence

    async def _draft(
        self,
        analysis: DocumentAnalysis | None,
        evidence: list[EvidenceReference],
        session: ReviewSession,
    ) -> AsyncGenerator[dict, None]:
        for event in self._source_events(evidence):
            yield event

        # With a forced verdict the text is buffered so the verdict can be
        # enforced before anything reaches the caller.
        stream_live = not session.critical_reasons
        deltas: list[str] = []
        try:
            async for delta in self._generator.generate_stream(
                analysis, evidence, session.critical_reasons
            ):
                deltas.append(delta)
                if stream_live:
                    yield {"event": "token", "data": delta}
        except GenerationFailure as e:
            logger.warning("generation_failed", trace_id=session.trace_id, error=str(e))
            prefix = "\n\n" if stream_live and deltas else ""
            session.evidence = []
            async for event in self._emit_static(
                session, GENERATION_FALLBACK_REPORT, Verdict.NEEDS_REVISION, prefix=prefix
            ):
                yield event
            return

        body = strip_generated_citation_section("".join(deltas))
        verdict = parse_verdict(body)
        if session.critical_reasons:
            if verdict is not Verdict.NEEDS_REVISION:
                logger.info(
                    "verdict_overridden",
                    trace_id=session.trace_id,
                    generated=verdict.value,
                    reasons=len(session.critical_reasons),
                )
            body = rewrite_verdict(body, Verdict.NEEDS_REVISION)
            verdict = Verdict.NEEDS_REVISION

        if not stream_live:
            for piece in slice_text(body, self._settings.response_chunk_size):
                yield {"event": "token", "data": piece}

        citations = ""
        if not is_scope_rejection(body, verdict):
            citations = format_citation_section([e.reference for e in evidence])
        if citations:
            session.evidence = evidence
            yield {"event": "token", "data": f"\n\n{citations}"}
            body = f"{body}\n\n{citations}"

        session.verdict = verdict
        session.document = body

    async def _emit_static(
        self,
        session: ReviewSession,
        text: str,
        verdict: Verdict,
        prefix: str = "",
    ) -> AsyncGenerator[dict, None]:
        """Stream a fixed report in slices and record it as the outcome."""
        for piece in slice_text(prefix + text, self._settings.response_chunk_size):
            yield {"event": "token", "data": piece}
        session.verdict = verdict
        session.document = text

    @staticmethod
    def _source_events(evidence: list[EvidenceReference]) -> list[dict]:
        return [
            {
                "event": "source",
                "data": json.dumps(
                    {"id": f"{ref.origin}-{i}", "reference": ref.reference, "origin": ref.origin}
                ),
            }
            for i, ref in enumerate(evidence, 1)
        ]

    @staticmethod
    def _stage_event(session: ReviewSession, trace: TraceContext, stage: ReviewStage) -> dict:
        session.stage = stage
        return {"event": "stage", "data": json.dumps(trace.mark_stage(stage))}

    def _build_response(self, session: ReviewSession, trace: TraceContext) -> ReviewResponse:
        scope = None
        if session.scope is not None:
            scope = ScopeInfo(
                is_out_of_scope=session.scope.is_out_of_scope,
                out_score=session.scope.out_score,
                in_score=session.scope.in_score,
                matched_signals=session.scope.matched_signals,
                reason=session.scope.reason,
            )
        return ReviewResponse(
            verdict=(session.verdict or Verdict.NEEDS_REVISION).value,
            document=session.document,
            citations=[
                CitationEntry(reference=e.reference, origin=e.origin, score=round(e.score, 4))
                for e in session.evidence
            ],
            critical_reasons=session.critical_reasons,
            scope=scope,
            stages=[StageEvent(**s) for s in trace.stages],
            trace_id=trace.trace_id,
            latency_ms=round(trace.elapsed_ms, 2),
        )

    def _save_trace(self, session: ReviewSession, trace: TraceContext, filename: str) -> None:
        if self._trace_store is None:
            return
        trace_obj = trace.to_trace(
            filename=filename,
            verdict=(session.verdict or Verdict.NEEDS_REVISION).value,
            evidence_count=len(session.evidence),
            graph_evidence_count=sum(1 for e in session.evidence if e.is_graph),
            critical_reasons=session.critical_reasons,
        )
        # Fire and forget
        task = asyncio.create_task(self._trace_store.save_trace(trace_obj))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
