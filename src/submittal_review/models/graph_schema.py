"""Schema for knowledge-graph extraction over corpus windows."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

EntityType = Literal[
    "MATERIAL",
    "STANDARD",
    "TEST_METHOD",
    "PROPERTY",
    "COMPONENT",
    "ORGANIZATION",
    "CLAUSE",
]

RelationshipType = Literal[
    "MUST_COMPLY_WITH",
    "TESTED_BY",
    "HAS_PROPERTY",
    "REFERENCES",
    "SUPERSEDES",
    "USED_IN",
    "REQUIRES",
    "APPROVED_BY",
    "MINIMUM_VALUE",
    "ALTERNATIVE_TO",
]


class ExtractedEntity(BaseModel):
    name: str = Field(description="Canonical full name of the entity")
    type: EntityType
    description: str | None = None


class ExtractedRelationship(BaseModel):
    source: str = Field(description="Source entity name (must match an entity name above)")
    target: str = Field(description="Target entity name (must match an entity name above)")
    type: RelationshipType


class WindowExtraction(BaseModel):
    group_index: int
    entities: list[ExtractedEntity] = Field(default_factory=list)
    relationships: list[ExtractedRelationship] = Field(default_factory=list)


class GraphExtraction(BaseModel):
    groups: list[WindowExtraction] = Field(default_factory=list)


JSON_SHAPE_EXAMPLE = {
    "groups": [
        {
            "group_index": 0,
            "entities": [
                {"name": "string", "type": "MATERIAL", "description": "string or null"}
            ],
            "relationships": [
                {"source": "string", "target": "string", "type": "MUST_COMPLY_WITH"}
            ],
        }
    ]
}
