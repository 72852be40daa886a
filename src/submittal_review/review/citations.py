"""Citation section assembly and verdict parsing for generated reports."""

from __future__ import annotations

import re

from submittal_review.models.domain import Verdict

CITATIONS_HEADING = "### CITATIONS"

_CITATIONS_SPLIT = re.compile(r"(?:^|\n)###\s*CITATIONS\b", re.IGNORECASE)
_USED_SECTIONS_ECHO = re.compile(
    r"^Used \d+ (?:\w+ )*sections[^\n]*\n(?:[^\n]*Section [^\n]*\n|graph\s*\n)*",
    re.IGNORECASE,
)
_HEADING = re.compile(r"^#{1,6}\s*(.+?)\s*$")
_VERDICT_HEADING = re.compile(r"^(#{1,6}\s*VERDICT)\b[\s*_`:\-]*(.*)$", re.IGNORECASE)
_VERDICT_WORDS = ("APPROVED", "REJECTED", "NEEDS REVISION")


def format_citation_section(references: list[str]) -> str:
    if not references:
        return ""
    lines = "\n".join(f"- {ref}" for ref in references)
    return f"{CITATIONS_HEADING}\n{lines}"


def parse_citation_section(text: str) -> list[str]:
    references: list[str] = []
    in_section = False
    for line in text.splitlines():
        heading = _HEADING.match(line)
        if heading:
            if in_section:
                break
            in_section = heading.group(1).upper() == "CITATIONS"
            continue
        if in_section and line.startswith("- "):
            references.append(line[2:].strip())
    return references


def strip_generated_citation_section(text: str) -> str:
    """Drop any model-written CITATIONS block and "Used N sections" echoes."""
    body = _CITATIONS_SPLIT.split(text, maxsplit=1)[0]
    return _USED_SECTIONS_ECHO.sub("", body).strip()


def _clean(value: str) -> str:
    return re.sub(r"\s+", " ", re.sub(r"[*_`#:]", "", value)).strip().upper()


def _verdict_location(lines: list[str]) -> tuple[int, str, str | None] | None:
    """(line index, verdict text, heading) of the stated verdict.

    ``heading`` is set when the verdict shares the line with its heading,
    as in ``### VERDICT: APPROVED``.
    """
    for i, line in enumerate(lines):
        match = _VERDICT_HEADING.match(line.strip())
        if not match:
            continue
        if _clean(match.group(2)).startswith(_VERDICT_WORDS):
            return i, match.group(2), match.group(1)
        for j in range(i + 1, len(lines)):
            if _HEADING.match(lines[j].strip()):
                return None
            if lines[j].strip():
                return j, lines[j], None
        return None
    return None


def parse_verdict(text: str) -> Verdict:
    """Read the verdict under (or beside) VERDICT. Anything unrecognised is NEEDS REVISION."""
    location = _verdict_location(text.splitlines())
    if location is None:
        return Verdict.NEEDS_REVISION
    value = _clean(location[1])
    if value.startswith("APPROVED"):
        return Verdict.APPROVED
    if value.startswith("REJECTED"):
        return Verdict.REJECTED
    return Verdict.NEEDS_REVISION


def rewrite_verdict(text: str, verdict: Verdict) -> str:
    """Force the stated verdict to ``verdict``."""
    lines = text.splitlines()
    location = _verdict_location(lines)
    if location is not None:
        index, _, heading = location
        lines[index] = f"{heading}: {verdict.value}" if heading else verdict.value
        return "\n".join(lines)
    for i, line in enumerate(lines):
        if _VERDICT_HEADING.match(line.strip()):
            lines.insert(i + 1, verdict.value)
            return "\n".join(lines)
    return f"### VERDICT\n{verdict.value}\n\n{text}"


_SCOPE_REJECTION = re.compile(
    r"out of scope|outside (?:the )?scope|not a construction submittal", re.IGNORECASE
)


def is_scope_rejection(text: str, verdict: Verdict) -> bool:
    """A REJECTED report whose reasoning is that the document is out of scope."""
    return verdict is Verdict.REJECTED and bool(_SCOPE_REJECTION.search(text))
