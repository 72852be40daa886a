"""Protocol for the knowledge graph store."""

from __future__ import annotations

from typing import Protocol

from submittal_review.models.domain import ChunkWindow, GraphEntity, GraphRelationship


class KnowledgeGraphStore(Protocol):
    async def upsert_entities(self, batch: list[GraphEntity]) -> int: ...

    async def upsert_relationships(self, batch: list[GraphRelationship]) -> int: ...

    async def write_window(
        self,
        window: ChunkWindow,
        entities: list[GraphEntity],
        relationships: list[GraphRelationship],
    ) -> None: ...

    async def entities_for_chunks(self, chunk_ids: list[str]) -> set[str]:
        """Raises GraphUnavailable if the store cannot be reached."""
        ...

    async def traverse(
        self, entity_ids: list[str] | set[str], max_hops: int, max_chunks: int
    ) -> list[str]:
        """Raises GraphUnavailable if the store cannot be reached."""
        ...

    async def count_entities(self) -> int: ...

    async def count_relationships(self) -> int: ...

    async def write_meta(self, stats: dict) -> None: ...

    async def read_meta(self) -> dict[str, str]: ...
