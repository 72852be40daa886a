"""Structured analysis of an extracted submittal via schema-constrained generation."""

from __future__ import annotations

from submittal_review.exceptions import AnalysisFailure, GenerationError
from submittal_review.generation.prompt_templates import (
    DOCUMENT_ANALYSIS_PROMPT,
    DOCUMENT_ANALYSIS_SYSTEM,
)
from submittal_review.models.analysis import DocumentAnalysis
from submittal_review.models.domain import ExtractionResult
from submittal_review.observability.logger import get_logger
from submittal_review.protocols.llm import LLMProvider

logger = get_logger("document_analyzer")

MAX_ANALYSIS_CHARS = 50_000


class LLMDocumentAnalyzer:
    def __init__(self, llm: LLMProvider, max_chars: int = MAX_ANALYSIS_CHARS) -> None:
        self._llm = llm
        self._max_chars = max_chars

    async def analyze(self, extraction: ExtractionResult) -> DocumentAnalysis:
        raw_text = extraction.raw_text
        if len(raw_text) > self._max_chars:
            raw_text = raw_text[: self._max_chars] + "\n\n[... text truncated due to length ...]"

        prompt = DOCUMENT_ANALYSIS_PROMPT.format(
            filename=extraction.filename or "submittal.pdf",
            total_pages=extraction.total_pages,
            scanned_note=", scanned/image-based" if extraction.is_scanned else "",
            raw_text=raw_text,
        )
        try:
            analysis = await self._llm.generate_structured(
                prompt, DocumentAnalysis, system=DOCUMENT_ANALYSIS_SYSTEM
            )
        except GenerationError as e:
            raise AnalysisFailure(f"Document analysis failed: {e}") from e

        if not analysis.page_count:
            analysis.page_count = extraction.total_pages
        logger.info(
            "document_analyzed",
            document_type=analysis.document_type,
            materials=len(analysis.materials),
            standards=len(analysis.standards_cited),
            suggested_queries=len(analysis.suggested_queries),
        )
        return analysis
