"""PDF text extraction with PyMuPDF."""

from __future__ import annotations

import asyncio

import pymupdf

from submittal_review.exceptions import ExtractionFailure
from submittal_review.models.domain import ExtractedPage, ExtractionResult, UploadedDocument
from submittal_review.observability.logger import get_logger

logger = get_logger("pdf_extractor")

MIN_TEXT_CHARS = 100
MAX_TEXT_CHARS = 50_000


def _extract_pages(data: bytes) -> list[ExtractedPage]:
    with pymupdf.open(stream=data, filetype="pdf") as doc:
        return [
            ExtractedPage(page_number=i + 1, text=page.get_text().strip())
            for i, page in enumerate(doc)
        ]


def build_raw_text(pages: list[ExtractedPage], is_scanned: bool) -> str:
    if is_scanned:
        return (
            f"[This is a scanned/image-based PDF with {len(pages)} pages. "
            "Text extraction returned no content.]"
        )
    raw = "\n\n".join(f"--- PAGE {p.page_number} ---\n{p.text}" for p in pages)
    if len(raw) > MAX_TEXT_CHARS:
        raw = raw[:MAX_TEXT_CHARS] + "\n\n[... text truncated due to length ...]"
    return raw


class PDFExtractor:
    async def extract(self, document: UploadedDocument) -> ExtractionResult:
        if not document.data:
            raise ExtractionFailure(f"Empty upload: {document.filename}")
        try:
            pages = await asyncio.to_thread(_extract_pages, document.data)
        except Exception as e:
            raise ExtractionFailure(f"Could not read {document.filename}: {e}") from e
        if not pages:
            raise ExtractionFailure(f"No pages found in {document.filename}")

        is_scanned = sum(len(p.text) for p in pages) < MIN_TEXT_CHARS
        logger.info(
            "pdf_extracted",
            filename=document.filename,
            pages=len(pages),
            is_scanned=is_scanned,
        )
        return ExtractionResult(
            raw_text=build_raw_text(pages, is_scanned),
            pages=pages,
            total_pages=len(pages),
            filename=document.filename,
            is_scanned=is_scanned,
        )
