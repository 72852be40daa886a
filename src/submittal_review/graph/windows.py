"""Group adjacent corpus chunks into token-bounded extraction windows."""

from __future__ import annotations

import math
import re

from submittal_review.models.domain import Chunk, ChunkWindow

_SENTENCE = re.compile(r"[^.!?]+[.!?]+")
_DIGITS = re.compile(r"(\d+)")

MIN_OVERLAP_CHARS = 20


def natural_key(text: str) -> list[tuple[int, int, str]]:
    """Sort key that orders embedded numbers numerically ("5_2_10" after "5_2_9")."""
    parts = []
    for token in _DIGITS.split(text):
        if not token:
            continue
        if token.isdigit():
            parts.append((0, int(token), ""))
        else:
            parts.append((1, 0, token.lower()))
    return parts


def sort_chunks(chunks: list[Chunk]) -> list[Chunk]:
    return sorted(
        chunks,
        key=lambda c: natural_key(f"{c.section_number}_{c.part_number}_{c.clause_number}"),
    )


def last_sentences(text: str, n: int) -> str:
    if n <= 0:
        return ""
    sentences = _SENTENCE.findall(text) or [text]
    return " ".join(s.strip() for s in sentences[-n:]).strip()


def chunk_header(chunk: Chunk) -> str:
    if chunk.clause_number:
        return f"[Clause {chunk.clause_number}: {chunk.clause_title}]"
    return f"[Section {chunk.section_number}, Part {chunk.part_number}]"


def estimate_tokens(text: str) -> int:
    return math.ceil(len(text) / 4)


def build_window(
    chunks: list[Chunk], previous_content: str = "", overlap_sentences: int = 2
) -> ChunkWindow:
    parts: list[str] = []
    if previous_content and overlap_sentences > 0:
        overlap = last_sentences(previous_content, overlap_sentences)
        if len(overlap) > MIN_OVERLAP_CHARS:
            parts.append(f"[context overlap] {overlap}")

    for chunk in chunks:
        parts.append(f"{chunk_header(chunk)}\n{chunk.content}")

    content = "\n\n".join(parts)
    first = chunks[0]
    return ChunkWindow(
        chunk_ids=[c.chunk_id for c in chunks],
        content=content,
        section_number=first.section_number,
        section_title=first.section_title,
        part_number=first.part_number,
        part_title=first.part_title,
        token_estimate=estimate_tokens(content),
    )


def group_chunks(
    chunks: list[Chunk], max_tokens: int = 2000, overlap_sentences: int = 2
) -> list[ChunkWindow]:
    """Merge same section/part chunks into windows of at most ``max_tokens``.

    A chunk that alone exceeds the budget still gets a window of its own.
    The overlap carried into the next window resets when section or part
    changes.
    """
    windows: list[ChunkWindow] = []
    current: list[Chunk] = []
    current_tokens = 0
    previous_content = ""

    for chunk in sort_chunks(chunks):
        same_context = not current or (
            chunk.section_number == current[0].section_number
            and chunk.part_number == current[0].part_number
        )
        if same_context and current_tokens + chunk.token_estimate <= max_tokens:
            current.append(chunk)
            current_tokens += chunk.token_estimate
            continue

        if current:
            windows.append(build_window(current, previous_content, overlap_sentences))
            previous_content = current[-1].content
        if not same_context:
            previous_content = ""
        current = [chunk]
        current_tokens = chunk.token_estimate

    if current:
        windows.append(build_window(current, previous_content, overlap_sentences))
    return windows
