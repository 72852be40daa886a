"""Protocol for the corpus retrieval index."""

from __future__ import annotations

from typing import Protocol

from submittal_review.models.domain import Chunk


class RetrievalIndex(Protocol):
    async def query(self, vector: list[float], top_k: int) -> list[tuple[Chunk, float]]:
        """Similarity search. Returns (chunk, similarity) pairs, best first."""
        ...

    async def fetch(self, chunk_ids: list[str]) -> list[Chunk]:
        """Fetch chunks by id. Unknown ids are omitted."""
        ...

    @property
    def size(self) -> int: ...
