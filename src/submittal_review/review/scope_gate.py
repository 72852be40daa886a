"""Scope gate: is an uploaded document something we can review at all?

Scoring is driven entirely by the signal tables below. Each signal counts
once, no matter how often its pattern occurs.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from submittal_review.config.settings import Settings
from submittal_review.models.analysis import DocumentAnalysis
from submittal_review.models.domain import ScopeAssessment


@dataclass(frozen=True)
class Signal:
    label: str
    pattern: re.Pattern
    weight: float

    def matches(self, text: str) -> bool:
        return bool(self.pattern.search(text))


def _signal(label: str, regex: str, weight: float = 1.0) -> Signal:
    return Signal(label, re.compile(regex, re.IGNORECASE), weight)


OUT_OF_SCOPE_SIGNALS: tuple[Signal, ...] = (
    _signal("employment", r"\b(employment|employee|employer|probation period|job offer)\b", 2.0),
    _signal("confidentiality", r"\b(confidentiality|non-disclosure|nda)\b", 2.0),
    _signal("hr_admin", r"\b(payroll|salary|annual leave|leave request|resignation|curriculum vitae|resume)\b", 1.5),
    _signal("finance", r"\b(invoice|bank statement|tax return|credit card|account balance)\b", 1.5),
    _signal("legal_personal", r"\b(tenancy|lease agreement|power of attorney|last will|privacy policy|terms of service)\b", 1.5),
    _signal("medical", r"\b(patient|diagnosis|prescription|medical record)\b", 2.0),
    _signal("academic", r"\b(syllabus|transcript of records|thesis|dissertation|coursework)\b", 1.5),
    _signal("travel", r"\b(boarding pass|itinerary|hotel reservation|visa application)\b", 1.5),
    _signal("marketing", r"\b(newsletter|press release|marketing plan|brochure)\b", 1.0),
)

IN_SCOPE_SIGNALS: tuple[Signal, ...] = (
    _signal("submittal", r"\b(submittal|material approval|method statement|shop drawing|prequalification)\b", 2.0),
    _signal("specification", r"\bq\.?c\.?s\b|qatar construction specification", 2.0),
    _signal("standard_body", r"\b(astm|bs\s*en|bs\s*\d|iso\s*\d|nfpa|aci\s*\d|en\s*\d{3})", 1.5),
    _signal("testing", r"\b(compressive strength|slump|test report|mill certificate|field density|compaction|fire resistance test)\b", 1.5),
    _signal("material", r"\b(concrete|cement|aggregate|rebar|reinforcement|masonry|blockwork|mortar|asphalt|waterproofing|insulation|glazing|sealant)\b", 1.0),
    _signal("authority", r"\b(ashghal|qcdd|civil defence|kahramaa|consultant|main contractor|subcontractor)\b", 1.0),
    _signal("fire_systems", r"\b(fire rated|fire rating|fire alarm|sprinkler|fire door|firestop)\b", 1.0),
    _signal("review_sheet", r"\b(document review sheet|action code|approved as noted|revise (and|&) resubmit)\b", 1.0),
)

NON_DOMAIN_TITLE_PATTERNS: tuple[Signal, ...] = (
    _signal("title_agreement", r"\b(confidentiality|non-disclosure|employment|tenancy|lease)\s+agreement\b", 2.0),
    _signal("title_hr", r"\b(offer letter|employment contract|payslip|curriculum vitae|resume|leave application)\b", 2.0),
    _signal("title_finance", r"\b(invoice|receipt|bank statement|tax return)\b", 2.0),
    _signal("title_personal", r"\b(passport|boarding pass|itinerary|medical report|transcript)\b", 2.0),
    _signal("title_policy", r"\b(privacy policy|terms of service|code of conduct|employee handbook)\b", 2.0),
)


def score_signals(text: str, signals: tuple[Signal, ...]) -> tuple[float, list[str]]:
    score = 0.0
    matched: list[str] = []
    for signal in signals:
        if signal.matches(text):
            score += signal.weight
            matched.append(signal.label)
    return score, matched


def has_structural_evidence(analysis: DocumentAnalysis | None) -> bool:
    if analysis is None:
        return False
    return bool(
        analysis.materials
        or analysis.test_results
        or analysis.certificates
        or analysis.standards_cited
        or analysis.drs_items
        or analysis.document_type != "other"
    )


def analysis_text(analysis: DocumentAnalysis | None) -> str:
    if analysis is None:
        return ""
    parts = [analysis.title]
    parts += [m.name for m in analysis.materials]
    parts += [m.standard for m in analysis.materials if m.standard]
    parts += analysis.standards_cited
    parts += [" ".join(filter(None, (c.type, c.issuer, c.reference))) for c in analysis.certificates]
    parts += [f"{t.test} {t.result}" for t in analysis.test_results]
    return "\n".join(p for p in parts if p)


class ScopeGate:
    def __init__(
        self,
        out_threshold: float = 3.0,
        margin: float = 2.0,
        text_prefix_chars: int = 4000,
    ) -> None:
        self._out_threshold = out_threshold
        self._margin = margin
        self._prefix = text_prefix_chars

    @classmethod
    def from_settings(cls, settings: Settings) -> ScopeGate:
        return cls(
            out_threshold=settings.scope_out_threshold,
            margin=settings.scope_margin,
            text_prefix_chars=settings.scope_text_prefix_chars,
        )

    def assess(self, analysis: DocumentAnalysis | None, raw_text: str = "") -> ScopeAssessment:
        text = f"{analysis_text(analysis)}\n{raw_text[: self._prefix]}"
        title = analysis.title if analysis else ""

        out_score, out_matched = score_signals(text, OUT_OF_SCOPE_SIGNALS)
        in_score, in_matched = score_signals(text, IN_SCOPE_SIGNALS)
        title_score, title_matched = score_signals(title, NON_DOMAIN_TITLE_PATTERNS)
        out_score += title_score
        structural = has_structural_evidence(analysis)

        reason = ""
        if title_matched and not structural:
            reason = (
                f'The document title "{title}" does not describe a construction submittal '
                "and no materials, tests, certificates or standards were found."
            )
        elif out_score > self._out_threshold and out_score - in_score > self._margin:
            reason = (
                "The document content matches non-construction topics "
                f"({', '.join(out_matched + title_matched)}) far more strongly than "
                "construction submittal content."
            )

        return ScopeAssessment(
            is_out_of_scope=bool(reason),
            out_score=out_score,
            in_score=in_score,
            matched_signals=title_matched + out_matched + in_matched,
            has_structural_evidence=structural,
            reason=reason,
        )
