"""Protocols for the document extraction and analysis collaborators."""

from __future__ import annotations

from typing import Protocol

from submittal_review.models.analysis import DocumentAnalysis
from submittal_review.models.domain import ExtractionResult, UploadedDocument


class DocumentExtractor(Protocol):
    async def extract(self, document: UploadedDocument) -> ExtractionResult:
        """Raises ExtractionFailure when the document cannot be read."""
        ...


class DocumentAnalyzer(Protocol):
    async def analyze(self, extraction: ExtractionResult) -> DocumentAnalysis:
        """Raises AnalysisFailure when structured analysis fails."""
        ...
