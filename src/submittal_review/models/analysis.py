"""Structured analysis schema for an uploaded submittal document.

Every field is required but nullable where the source may omit it, so the
schema can be handed to schema-constrained generation as-is.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

DocumentType = Literal[
    "material_submittal",
    "mix_design",
    "method_statement",
    "test_report",
    "shop_drawing",
    "certificate",
    "prequalification",
    "drs_form",
    "combined_package",
    "other",
]


class MaterialProperty(BaseModel):
    key: str
    value: str


class Material(BaseModel):
    name: str
    manufacturer: str | None = None
    supplier: str | None = None
    standard: str | None = Field(
        default=None, description="Referenced standard (e.g., BS 476, ASTM C150)"
    )
    properties: list[MaterialProperty] = Field(default_factory=list)


class ExistingApproval(BaseModel):
    action_code: str = Field(
        description="A=Approved, B=Approved as Noted, C=Revise & Resubmit, D=Rejected"
    )
    authority: str | None = None
    date: str | None = None
    notes: str | None = None


class DRSItem(BaseModel):
    item_number: int
    reviewer_comment: str
    contractor_response: str
    status: Literal["complied", "not_complied", "excluded", "noted", "unknown"]


class Certificate(BaseModel):
    type: str = Field(description="Certificate type (fire test, mill cert, QCDD, etc.)")
    issuer: str | None = None
    reference: str | None = None
    valid_until: str | None = None


class LabTestResult(BaseModel):
    test: str
    result: str
    requirement: str | None = None
    passed: bool | None = None


class DocumentAnalysis(BaseModel):
    document_type: DocumentType = "other"
    title: str = ""
    contractor: str | None = None
    project: str | None = None
    submittal_number: str | None = None
    revision: str | None = None
    materials: list[Material] = Field(default_factory=list)
    standards_cited: list[str] = Field(default_factory=list)
    existing_approvals: list[ExistingApproval] = Field(default_factory=list)
    drs_items: list[DRSItem] = Field(default_factory=list)
    certificates: list[Certificate] = Field(default_factory=list)
    test_results: list[LabTestResult] = Field(default_factory=list)
    key_findings: list[str] = Field(default_factory=list)
    suggested_queries: list[str] = Field(
        default_factory=list,
        description="Specific search queries for retrieving relevant specification sections",
    )
    page_count: int = 0
    has_arabic_text: bool = False
    has_tables: bool = False

    def snapshot(self) -> dict:
        """The subset of fields handed to report generation."""
        return self.model_dump(
            include={
                "document_type",
                "title",
                "project",
                "contractor",
                "standards_cited",
                "key_findings",
            }
        )
