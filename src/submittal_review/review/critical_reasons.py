"""Deterministic rules that force a NEEDS REVISION verdict."""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass

from submittal_review.models.analysis import DocumentAnalysis

CURRENT_QCS_YEAR = 2024
QCS_EDITION = re.compile(r"\bq\.?\s*c\.?\s*s\.?\s*[-\s]?((?:19|20)\d{2})\b", re.IGNORECASE)
FIRE_SCOPE = re.compile(
    r"fire|life safety|qcdd|qcd|alarm|firefighting|passive fire", re.IGNORECASE
)
CIVIL_DEFENCE_APPROVAL = re.compile(r"qcd|qcdd|civil defence", re.IGNORECASE)


@dataclass(frozen=True)
class CriticalRule:
    """``check`` returns the reason when the rule fires, else None."""

    name: str
    check: Callable[[DocumentAnalysis], str | None]


def qcs_editions(text: str) -> set[int]:
    return {int(year) for year in QCS_EDITION.findall(text)}


def superseded_spec_reason(analysis: DocumentAnalysis) -> str | None:
    standards = " ".join(analysis.standards_cited)
    findings = " ".join(analysis.key_findings)
    old = sorted(
        year
        for year in qcs_editions(f"{standards} {findings} {analysis.title}")
        if year < CURRENT_QCS_YEAR
    )
    if not old or CURRENT_QCS_YEAR in qcs_editions(f"{standards} {findings}"):
        return None
    cited = ", ".join(f"QCS {year}" for year in old)
    return (
        f"The submittal references {cited} and does not explicitly confirm "
        f"full compliance with QCS {CURRENT_QCS_YEAR}."
    )


def fire_approval_reason(analysis: DocumentAnalysis) -> str | None:
    scope_text = " ".join(
        [analysis.title, analysis.project or ""] + [m.name for m in analysis.materials]
    )
    if not FIRE_SCOPE.search(scope_text):
        return None
    if any(
        CIVIL_DEFENCE_APPROVAL.search(f"{c.type} {c.issuer or ''} {c.reference or ''}")
        for c in analysis.certificates
    ):
        return None
    return (
        "Fire life safety scope is present, but explicit QCD/QCDD approval "
        "evidence for products/systems is not provided in this submittal."
    )


CRITICAL_RULES: tuple[CriticalRule, ...] = (
    CriticalRule(name="superseded_specification", check=superseded_spec_reason),
    CriticalRule(name="fire_safety_approval_missing", check=fire_approval_reason),
)


def detect_critical_reasons(
    analysis: DocumentAnalysis | None,
    rules: tuple[CriticalRule, ...] = CRITICAL_RULES,
) -> list[str]:
    if analysis is None:
        return []
    reasons = (rule.check(analysis) for rule in rules)
    return [reason for reason in reasons if reason]
