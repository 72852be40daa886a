"""FAISS cosine-similarity index over corpus chunk embeddings.

Vectors are keyed by chunk id, so reloading the corpus replaces vectors in
place. The index and its id map are persisted side by side in one
directory; an index built for a different embedding size is refused on load.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import faiss
import numpy as np

from submittal_review.exceptions import RetrievalIndexError
from submittal_review.observability.logger import get_logger

logger = get_logger("faiss_store")

INDEX_FILE = "index.faiss"
IDS_FILE = "id_mapping.json"


class FAISSVectorStore:
    def __init__(self, dimensions: int, index_path: str | None = None) -> None:
        self._dimensions = dimensions
        self._index_path = Path(index_path) if index_path else None
        self._index = faiss.IndexIDMap(faiss.IndexFlatIP(dimensions))
        self._int_ids: dict[str, int] = {}
        self._chunk_ids: dict[int, str] = {}
        self._write_lock = asyncio.Lock()

        if self._index_path is not None:
            self.load(self._index_path)

    @property
    def size(self) -> int:
        return self._index.ntotal

    def load(self, path: str | Path) -> bool:
        path = Path(path)
        index_file, ids_file = path / INDEX_FILE, path / IDS_FILE
        if not (index_file.exists() and ids_file.exists()):
            return False

        index = faiss.read_index(str(index_file))
        if index.d != self._dimensions:
            raise RetrievalIndexError(
                f"Index at {path} has {index.d} dimensions, expected {self._dimensions}"
            )
        mapping = json.loads(ids_file.read_text(encoding="utf-8"))
        self._index = index
        self._int_ids = {cid: int(i) for cid, i in mapping["ids"].items()}
        self._chunk_ids = {i: cid for cid, i in self._int_ids.items()}
        logger.info("faiss_loaded", size=self.size, path=str(path))
        return True

    def add(self, chunk_ids: list[str], embeddings: np.ndarray) -> None:
        """Upsert vectors. A chunk id already present has its vector replaced."""
        if not chunk_ids:
            return
        vectors = np.ascontiguousarray(embeddings, dtype=np.float32)
        if vectors.shape != (len(chunk_ids), self._dimensions):
            raise RetrievalIndexError(
                f"Expected {len(chunk_ids)}x{self._dimensions} embeddings, got {vectors.shape}"
            )
        faiss.normalize_L2(vectors)

        replaced = [self._int_ids[c] for c in chunk_ids if c in self._int_ids]
        if replaced:
            self._index.remove_ids(np.array(replaced, dtype=np.int64))
        ids = np.array([self._int_id(c) for c in chunk_ids], dtype=np.int64)
        self._index.add_with_ids(vectors, ids)
        logger.info("faiss_upserted", count=len(chunk_ids), replaced=len(replaced), total=self.size)

    async def add_safe(self, chunk_ids: list[str], embeddings: np.ndarray) -> None:
        async with self._write_lock:
            await asyncio.to_thread(self.add, chunk_ids, embeddings)

    def search(self, query_embedding: np.ndarray, top_k: int) -> list[tuple[str, float]]:
        """(chunk_id, cosine similarity) pairs, best first."""
        k = min(top_k, self.size)
        if k <= 0:
            return []
        query = np.ascontiguousarray(query_embedding, dtype=np.float32).reshape(1, -1)
        faiss.normalize_L2(query)
        scores, ids = self._index.search(query, k)
        return [
            (self._chunk_ids[int(i)], float(score))
            for i, score in zip(ids[0], scores[0])
            if int(i) in self._chunk_ids
        ]

    def save(self, path: str | Path | None = None) -> None:
        path = Path(path) if path else self._index_path
        if path is None:
            return
        path.mkdir(parents=True, exist_ok=True)
        faiss.write_index(self._index, str(path / INDEX_FILE))
        (path / IDS_FILE).write_text(
            json.dumps({"dimensions": self._dimensions, "ids": self._int_ids}), encoding="utf-8"
        )
        logger.info("faiss_saved", path=str(path), size=self.size)

    def _int_id(self, chunk_id: str) -> int:
        # Ids are never released, so the map size is the next free id
        if chunk_id not in self._int_ids:
            new_id = len(self._int_ids)
            self._int_ids[chunk_id] = new_id
            self._chunk_ids[new_id] = chunk_id
        return self._int_ids[chunk_id]
