"""All prompt templates and fixed report templates for the review engine."""

from __future__ import annotations

import json

from submittal_review.config.constants import EVIDENCE_EXCERPT_CHARS, REPORT_SECTIONS
from submittal_review.models.domain import ChunkWindow, EvidenceReference
from submittal_review.models.graph_schema import JSON_SHAPE_EXAMPLE

# ---------------------------------------------------------------------------
# Knowledge graph extraction
# ---------------------------------------------------------------------------

GRAPH_EXTRACTION_SYSTEM = """You are a construction specifications knowledge graph extractor.
Given text windows from the Qatar Construction Specifications (QCS 2024), extract:

1. ENTITIES - Named things mentioned in the text:
   - MATERIAL: Physical materials (e.g., "Portland Cement Type I", "Gabbro aggregate")
   - STANDARD: Referenced standards (e.g., "ASTM C150", "BS EN 197-1", "QCS 2024 Section 5")
   - TEST_METHOD: Testing procedures (e.g., "Compressive strength test at 28 days", "Slump test")
   - PROPERTY: Measurable properties with thresholds (e.g., "Water/cement ratio maximum 0.45")
   - COMPONENT: Construction components (e.g., "Foundation", "Retaining wall")
   - ORGANIZATION: Bodies/companies (e.g., "Ashghal", "ASTM International")
   - CLAUSE: Specific clause references (e.g., "Clause 5.3.2", "Section 5 Part 3")

2. RELATIONSHIPS between those entities:
   - MUST_COMPLY_WITH: Material/component must meet a standard
   - TESTED_BY: Material/property verified by a test method
   - HAS_PROPERTY: Material/component has a measurable property
   - REFERENCES: One standard/clause references another
   - SUPERSEDES: One standard replaces another
   - USED_IN: Material is used in a component
   - REQUIRES: Component/process requires a material/property
   - APPROVED_BY: Material/method approved by an organization
   - MINIMUM_VALUE: Property has a minimum threshold
   - ALTERNATIVE_TO: One material/method can substitute another

Rules:
- Use canonical, full names for entities (not abbreviations), e.g. "Ordinary Portland Cement" not "OPC"
- Only extract entities and relationships explicitly stated in the text
- Each window is independent; report results per window using the group_index provided
- Relationship source and target must exactly match an entity name extracted for the same window
- Keep entity names consistent across windows when referring to the same thing
- Preserve numeric thresholds exactly (don't round)
- If a window has no entities or relationships, return empty arrays for it"""

GRAPH_EXTRACTION_JSON_INSTRUCTIONS = (
    "\n\nYou MUST respond with valid JSON matching this structure: "
    + json.dumps(JSON_SHAPE_EXAMPLE)
)


def format_window_batch(windows: list[ChunkWindow]) -> str:
    blocks = []
    for i, window in enumerate(windows):
        blocks.append(
            f"--- GROUP {i} (Section {window.section_number}: {window.section_title}, "
            f"Part {window.part_number}: {window.part_title}) ---\n"
            f"Chunks: {', '.join(window.chunk_ids)}\n\n"
            f"{window.content}"
        )
    return "\n\n".join(blocks)


# ---------------------------------------------------------------------------
# Document analysis
# ---------------------------------------------------------------------------

DOCUMENT_ANALYSIS_SYSTEM = """You are a construction document analyst specializing in Qatar construction projects. Analyze the provided submittal document and extract structured information.

## Document Types You May Encounter
- Material Submittal Approval (MAR): cover sheet with material details, manufacturer, supplier
- Document Review Sheet (DRS): reviewer comments, contractor responses, compliance status
- Pre-Qualification Documents: contractor/supplier qualification forms
- Test Certificates: lab test results, mill certificates, fire resistance reports
- Third-Party Certifications: Intertek, UL, QCDD (Qatar Civil Defence) certificates
- Technical Data Sheets: product specifications from manufacturers

## What to Extract
- ALL materials, products and systems mentioned
- ALL standards referenced (ASTM, BS, EN, ISO, NFPA, QCS, etc.)
- Existing approval stamps and action codes (A=Approved, B=Approved as Noted, C=Revise & Resubmit, D=Rejected)
- Test results with their values and pass/fail status
- Certificates with issuers, reference numbers and validity dates
- DRS item statuses (Complied, Not Complied, Excluded, Noted)
- Whether the document contains Arabic text or tables

If the document is not a construction submittal, say so in key_findings and set document_type to "other".

## Suggested Queries
Suggest specific search queries that would retrieve the most relevant QCS 2024 sections.
Be specific, e.g. "fire rated steel doors BS 476 requirements" rather than "steel doors".
Provide at least 3 suggested queries when the document is a construction submittal."""

DOCUMENT_ANALYSIS_PROMPT = """DOCUMENT: "{filename}" ({total_pages} pages{scanned_note})

EXTRACTED TEXT:
{raw_text}"""


# ---------------------------------------------------------------------------
# Compliance report
# ---------------------------------------------------------------------------

FORCED_VERDICT_BLOCK = """Mandatory verdict: NEEDS REVISION
Reasons:
{reasons}"""

OPEN_VERDICT_BLOCK = (
    "Use the evidence to determine verdict. APPROVED is allowed only when explicit "
    "evidence for all critical requirements is present."
)

REPORT_PROMPT = """You are preparing a grounded construction compliance review.

{verdict_block}

Rules:
- Use ONLY the evidence provided below.
- Do NOT fabricate clauses or page numbers.
- Do NOT include a CITATIONS section (it is appended separately).
- Keep output concise and structured.
- Use at most {max_citations} citations total. Do not cite unrelated sections.
- Sections required exactly in this order:
{section_list}
- The first line under ### VERDICT must be exactly one of: APPROVED, REJECTED, NEEDS REVISION.
- For DETAILED ANALYSIS, include 4-6 numbered checks and cite evidence inline like [C1], [C3].

Submittal analysis snapshot:
{analysis_snapshot}

Validated QCS evidence:
{evidence_block}"""


def format_verdict_block(critical_reasons: list[str]) -> str:
    if not critical_reasons:
        return OPEN_VERDICT_BLOCK
    return FORCED_VERDICT_BLOCK.format(
        reasons="\n".join(f"- {r}" for r in critical_reasons)
    )


def format_section_list() -> str:
    return "\n".join(f"  {i}) ### {name}" for i, name in enumerate(REPORT_SECTIONS, 1))


def format_evidence_block(evidence: list[EvidenceReference]) -> str:
    return "\n\n".join(
        f"[C{i}] {ref.reference}\nExcerpt: {ref.excerpt(EVIDENCE_EXCERPT_CHARS)}"
        for i, ref in enumerate(evidence, 1)
    )


def format_analysis_snapshot(snapshot: dict | None) -> str:
    if snapshot is None:
        return '{ "note": "analysis unavailable" }'
    return json.dumps(snapshot, indent=2, ensure_ascii=False)


# ---------------------------------------------------------------------------
# Fail-closed reports
# ---------------------------------------------------------------------------

NO_DOCUMENT_REPORT = """### VERDICT
NEEDS REVISION

### DOCUMENT OVERVIEW
No submittal document was received.

### SUMMARY
This response is fail-closed: a compliance verdict requires an uploaded document to review.

### DETAILED ANALYSIS
- The request did not include a readable source document.

### RECOMMENDATIONS
- Attach the submittal document and retry the review."""

EXTRACTION_FAILED_REPORT = """### VERDICT
NEEDS REVISION

### DOCUMENT OVERVIEW
The document could not be processed for grounded review.

### SUMMARY
This response is fail-closed: a compliance verdict cannot be approved without grounded evidence from the uploaded document and specification retrieval.

### DETAILED ANALYSIS
- Document extraction failed, so document evidence could not be reliably analyzed.
- A grounded compliance decision requires extracted submittal evidence and retrieved specification clauses.

### RECOMMENDATIONS
- Re-upload the document and retry the review.
- Ensure the document is readable and not corrupted.
- If the issue persists, provide a text-based export alongside the document."""

OUT_OF_SCOPE_REPORT = """### VERDICT
REJECTED

### DOCUMENT OVERVIEW
{overview}

### SUMMARY
The uploaded document is outside the scope of construction submittal review against QCS 2024, so no compliance assessment was performed.

### DETAILED ANALYSIS
- {reason}
- No specification clauses were retrieved or cited for this document.

### RECOMMENDATIONS
- Upload a construction submittal (material submittal, method statement, test report, shop drawing or certificate package).
- If this document was uploaded by mistake, no further action is required."""

NO_EVIDENCE_REPORT = """### VERDICT
NEEDS REVISION

### DOCUMENT OVERVIEW
The submittal could not be grounded to valid QCS references after deterministic retrieval.

### SUMMARY
This is a fail-closed result: because no validated references were retrieved, the system cannot issue an evidence-backed approval.

### DETAILED ANALYSIS
- Retrieval produced zero validated QCS references after quality filters.
- Without grounded citations, any detailed compliance conclusion would risk fabrication.
{critical_block}
### RECOMMENDATIONS
- Re-run with a clearer PDF/OCR source if available.
- Provide explicit QCS 2024 alignment statements in the submittal.
- Provide required fire-life-safety approvals/certifications where applicable."""

GENERATION_FALLBACK_REPORT = """### VERDICT
NEEDS REVISION

### DOCUMENT OVERVIEW
This submittal requires evidence-backed alignment with QCS 2024.

### SUMMARY
The review could not complete full narrative generation, so the submittal cannot be approved on the evidence available.

### DETAILED ANALYSIS
1. The submittal must be aligned to QCS 2024 requirements.
2. Fire life safety scope requires explicit approval evidence for relevant products/systems.
3. Claims should be tied to measurable QA/QC criteria and cited clauses.
4. Existing historical approval stamps do not replace current-cycle compliance review.

### RECOMMENDATIONS
- Update all legacy references to QCS 2024.
- Provide explicit product approvals/certifications where required.
- Re-submit with clear clause-level compliance statements."""

INTERNAL_ERROR_REPORT = """### VERDICT
NEEDS REVISION

### DOCUMENT OVERVIEW
The review pipeline encountered an internal error.

### SUMMARY
This response is fail-closed to avoid ungrounded approvals.

### DETAILED ANALYSIS
- The review pipeline failed before completing a grounded comparison.
- A reliable verdict requires successful extraction, retrieval, and evidence-based generation.

### RECOMMENDATIONS
- Retry the same document once.
- If failure persists, upload a text-based export alongside the document."""


def format_no_evidence_report(critical_reasons: list[str]) -> str:
    critical_block = ""
    if critical_reasons:
        lines = "\n".join(f"  - {r}" for r in critical_reasons)
        critical_block = f"- Critical gap(s) detected:\n{lines}\n"
    return NO_EVIDENCE_REPORT.format(critical_block=critical_block)


def format_out_of_scope_report(title: str | None, reason: str) -> str:
    overview = (
        f'The uploaded document ("{title}") is not a construction submittal.'
        if title
        else "The uploaded document is not a construction submittal."
    )
    return OUT_OF_SCOPE_REPORT.format(overview=overview, reason=reason)
