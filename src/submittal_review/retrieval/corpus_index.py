"""Retrieval index over the corpus: FAISS for similarity, SQLite for chunk content."""

from __future__ import annotations

import asyncio

import numpy as np

from submittal_review.exceptions import RetrievalIndexError
from submittal_review.models.domain import Chunk
from submittal_review.observability.logger import get_logger
from submittal_review.storage.sqlite_chunk_store import SQLiteChunkStore
from submittal_review.vectorstore.faiss_store import FAISSVectorStore

logger = get_logger("corpus_index")


class CorpusIndex:
    def __init__(self, vector_store: FAISSVectorStore, chunk_store: SQLiteChunkStore) -> None:
        self._vector_store = vector_store
        self._chunk_store = chunk_store

    @property
    def size(self) -> int:
        return self._vector_store.size

    async def query(self, vector: list[float], top_k: int) -> list[tuple[Chunk, float]]:
        try:
            hits = await asyncio.to_thread(
                self._vector_store.search, np.array(vector, dtype=np.float32), top_k
            )
            chunks = await self._chunk_store.get_chunks_by_ids([cid for cid, _ in hits])
        except Exception as e:
            raise RetrievalIndexError(f"Index query failed: {e}") from e

        results = [(chunks[cid], score) for cid, score in hits if cid in chunks]
        if len(results) < len(hits):
            logger.warning("index_hits_without_metadata", missing=len(hits) - len(results))
        return results

    async def fetch(self, chunk_ids: list[str]) -> list[Chunk]:
        try:
            chunks = await self._chunk_store.get_chunks_by_ids(chunk_ids)
        except Exception as e:
            raise RetrievalIndexError(f"Index fetch failed: {e}") from e
        return [chunks[cid] for cid in chunk_ids if cid in chunks]

    async def upsert(self, chunks: list[Chunk], embeddings: list[list[float]]) -> None:
        """Offline load path: store chunk content and vectors together."""
        await self._chunk_store.save_chunks(chunks)
        await self._vector_store.add_safe(
            [c.chunk_id for c in chunks], np.array(embeddings, dtype=np.float32)
        )
