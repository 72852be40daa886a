"""Compliance report generation constrained to the selected evidence."""

from __future__ import annotations

from collections.abc import AsyncIterator

from submittal_review.exceptions import GenerationError, GenerationFailure
from submittal_review.generation.prompt_templates import (
    REPORT_PROMPT,
    format_analysis_snapshot,
    format_evidence_block,
    format_section_list,
    format_verdict_block,
)
from submittal_review.models.analysis import DocumentAnalysis
from submittal_review.models.domain import EvidenceReference
from submittal_review.observability.logger import get_logger
from submittal_review.protocols.llm import LLMProvider

logger = get_logger("generation")


def build_report_prompt(
    analysis: DocumentAnalysis | None,
    evidence: list[EvidenceReference],
    critical_reasons: list[str],
) -> str:
    return REPORT_PROMPT.format(
        verdict_block=format_verdict_block(critical_reasons),
        max_citations=len(evidence),
        section_list=format_section_list(),
        analysis_snapshot=format_analysis_snapshot(analysis.snapshot() if analysis else None),
        evidence_block=format_evidence_block(evidence),
    )


class ReportGenerator:
    def __init__(self, llm: LLMProvider, temperature: float = 0.0) -> None:
        self._llm = llm
        self._temperature = temperature

    async def generate_stream(
        self,
        analysis: DocumentAnalysis | None,
        evidence: list[EvidenceReference],
        critical_reasons: list[str],
    ) -> AsyncIterator[str]:
        """Yield report text deltas as the provider produces them.

        Raises GenerationFailure if the provider fails or returns nothing.
        """
        prompt = build_report_prompt(analysis, evidence, critical_reasons)
        total = 0
        try:
            async for delta in self._llm.generate_stream(prompt, temperature=self._temperature):
                total += len(delta)
                yield delta
        except GenerationError as e:
            raise GenerationFailure(f"Report generation failed after {total} chars: {e}") from e

        if total == 0:
            raise GenerationFailure("Report generation returned no text")

        logger.info(
            "report_generated",
            evidence=len(evidence),
            critical_reasons=len(critical_reasons),
            chars=total,
        )
