"""Tests for the document scope gate."""

from submittal_review.models.analysis import DocumentAnalysis, Material
from submittal_review.review.scope_gate import (
    IN_SCOPE_SIGNALS,
    OUT_OF_SCOPE_SIGNALS,
    ScopeGate,
    has_structural_evidence,
    score_signals,
)

CONCRETE_SUBMITTAL = DocumentAnalysis(
    document_type="material_submittal",
    title="Material Submittal - Ready Mix Concrete C40",
    materials=[Material(name="Ready mix concrete", standard="BS EN 206")],
    standards_cited=["QCS 2024 Section 5", "ASTM C39"],
)

HR_TEXT = (
    "This employment contract between the employer and the employee sets the salary, "
    "annual leave and probation period. Confidentiality obligations survive termination. "
    "Reimbursement requires an invoice."
)


def test_confidentiality_agreement_title_is_out_of_scope():
    analysis = DocumentAnalysis(title="Employee Confidentiality Agreement")
    result = ScopeGate().assess(analysis, "")
    assert result.is_out_of_scope
    assert "title_agreement" in result.matched_signals
    assert "Employee Confidentiality Agreement" in result.reason


def test_construction_submittal_is_in_scope():
    raw = "MATERIAL SUBMITTAL. Compressive strength test report per QCS 2024, Ashghal project."
    result = ScopeGate().assess(CONCRETE_SUBMITTAL, raw)
    assert not result.is_out_of_scope
    assert result.has_structural_evidence
    assert result.in_score > result.out_score
    assert result.reason == ""


def test_non_construction_body_is_out_of_scope_without_analysis():
    result = ScopeGate().assess(None, HR_TEXT)
    assert result.is_out_of_scope
    assert result.out_score > 3.0
    assert "employment" in result.reason


def test_incidental_mention_does_not_reject():
    raw = "Method statement for concrete works per QCS 2024. Each employee shall wear PPE."
    result = ScopeGate().assess(None, raw)
    assert not result.is_out_of_scope


def test_structural_evidence_blocks_title_rejection():
    analysis = CONCRETE_SUBMITTAL.model_copy(
        update={"title": "Confidentiality Agreement for Concrete Supplier"}
    )
    result = ScopeGate().assess(analysis, "")
    assert "title_agreement" in result.matched_signals
    assert not result.is_out_of_scope


def test_margin_is_configurable():
    raw = HR_TEXT + " Concrete blockwork by the main contractor per ASTM C90."
    assert ScopeGate(margin=2.0).assess(None, raw).is_out_of_scope
    assert not ScopeGate(margin=10.0).assess(None, raw).is_out_of_scope


def test_only_text_prefix_is_scanned():
    raw = "x" * 5000 + HR_TEXT
    assert not ScopeGate(text_prefix_chars=4000).assess(None, raw).is_out_of_scope


def test_empty_document_is_not_rejected():
    result = ScopeGate().assess(None, "")
    assert not result.is_out_of_scope
    assert result.out_score == result.in_score == 0.0


def test_each_signal_counts_once():
    score, matched = score_signals("invoice invoice invoice", OUT_OF_SCOPE_SIGNALS)
    assert matched == ["finance"]
    assert score == 1.5


def test_in_scope_signals_match_standards():
    _, matched = score_signals("Tested to BS EN 12390 and ASTM C39", IN_SCOPE_SIGNALS)
    assert matched == ["standard_body"]


def test_structural_evidence():
    assert not has_structural_evidence(None)
    assert not has_structural_evidence(DocumentAnalysis(title="Something"))
    assert has_structural_evidence(DocumentAnalysis(standards_cited=["BS 476"]))
    assert has_structural_evidence(DocumentAnalysis(document_type="test_report"))
