"""SQLite-backed embedding cache keyed by model and text.

Baseline review queries repeat on every review, so query embeddings are
served from here after the first request.
"""

from __future__ import annotations

import hashlib
import json

import aiosqlite

CREATE_CACHE_TABLE = """
CREATE TABLE IF NOT EXISTS embedding_cache (
    text_hash TEXT PRIMARY KEY,
    model TEXT NOT NULL,
    embedding TEXT NOT NULL
)
"""


class EmbeddingCache:
    def __init__(self, db_path: str, model: str = "") -> None:
        self._db_path = db_path
        self._model = model

    async def initialize(self) -> None:
        async with aiosqlite.connect(self._db_path) as db:
            await db.execute(CREATE_CACHE_TABLE)
            await db.commit()

    async def get(self, text: str) -> list[float] | None:
        async with aiosqlite.connect(self._db_path) as db:
            async with db.execute(
                "SELECT embedding FROM embedding_cache WHERE text_hash = ?",
                (self._hash(text),),
            ) as cursor:
                row = await cursor.fetchone()
                return json.loads(row[0]) if row else None

    async def get_batch(self, texts: list[str]) -> dict[int, list[float]]:
        """Return {index: embedding} for texts that are cached."""
        if not texts:
            return {}
        hash_to_indices: dict[str, list[int]] = {}
        for i, t in enumerate(texts):
            hash_to_indices.setdefault(self._hash(t), []).append(i)
        placeholders = ",".join("?" for _ in hash_to_indices)

        result: dict[int, list[float]] = {}
        async with aiosqlite.connect(self._db_path) as db:
            async with db.execute(
                f"SELECT text_hash, embedding FROM embedding_cache WHERE text_hash IN ({placeholders})",
                list(hash_to_indices),
            ) as cursor:
                async for row in cursor:
                    embedding = json.loads(row[1])
                    for idx in hash_to_indices.get(row[0], []):
                        result[idx] = embedding
        return result

    async def put(self, text: str, embedding: list[float]) -> None:
        await self.put_batch([text], [embedding])

    async def put_batch(self, texts: list[str], embeddings: list[list[float]]) -> None:
        if not texts:
            return
        rows = [(self._hash(t), self._model, json.dumps(e)) for t, e in zip(texts, embeddings)]
        async with aiosqlite.connect(self._db_path) as db:
            await db.executemany(
                "INSERT OR REPLACE INTO embedding_cache (text_hash, model, embedding) VALUES (?, ?, ?)",
                rows,
            )
            await db.commit()

    def _hash(self, text: str) -> str:
        return hashlib.sha256(f"{self._model}\n{text}".encode("utf-8")).hexdigest()
