"""Loader for the pre-built corpus chunk file produced by offline chunking."""

from __future__ import annotations

import json
from pathlib import Path

from submittal_review.exceptions import ConfigurationError
from submittal_review.models.domain import Chunk


def chunk_from_record(record: dict) -> Chunk:
    """Map one camelCase corpus record onto a Chunk."""
    content = record.get("content") or ""
    return Chunk(
        chunk_id=str(record["id"]),
        section_number=str(record.get("sectionNumber") or ""),
        section_title=record.get("sectionTitle") or "",
        part_number=str(record.get("partNumber") or ""),
        part_title=record.get("partTitle") or "",
        clause_number=str(record.get("clauseNumber") or ""),
        clause_title=record.get("clauseTitle") or "",
        content=content,
        page_start=int(record.get("pageStart") or 0),
        page_end=int(record.get("pageEnd") or 0),
        token_estimate=int(record.get("tokenEstimate") or -(-len(content) // 4)),
    )


def load_corpus_chunks(path: str | Path) -> list[Chunk]:
    path = Path(path)
    if not path.is_file():
        raise ConfigurationError(f"Corpus chunk file not found: {path}")
    try:
        records = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Corpus chunk file is not valid JSON: {path}: {e}") from e
    return [chunk_from_record(r) for r in records]
