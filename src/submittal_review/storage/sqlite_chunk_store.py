"""SQLite-backed store for corpus chunk content and provenance metadata."""

from __future__ import annotations

import aiosqlite

from submittal_review.models.domain import Chunk
from submittal_review.storage.migrations import initialize_chunk_db

_COLUMNS = (
    "chunk_id, section_number, section_title, part_number, part_title, "
    "clause_number, clause_title, content, page_start, page_end, token_estimate"
)


class SQLiteChunkStore:
    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    async def initialize(self) -> None:
        await initialize_chunk_db(self._db_path)

    async def save_chunks(self, chunks: list[Chunk]) -> None:
        async with aiosqlite.connect(self._db_path) as db:
            await db.executemany(
                f"INSERT OR REPLACE INTO chunks ({_COLUMNS}) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                [
                    (
                        c.chunk_id,
                        c.section_number,
                        c.section_title,
                        c.part_number,
                        c.part_title,
                        c.clause_number,
                        c.clause_title,
                        c.content,
                        c.page_start,
                        c.page_end,
                        c.token_estimate,
                    )
                    for c in chunks
                ],
            )
            await db.commit()

    async def get_chunk(self, chunk_id: str) -> Chunk | None:
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(
                f"SELECT {_COLUMNS} FROM chunks WHERE chunk_id = ?", (chunk_id,)
            ) as cursor:
                row = await cursor.fetchone()
                if row is None:
                    return None
                return self._row_to_chunk(row)

    async def get_chunks_by_ids(self, chunk_ids: list[str]) -> dict[str, Chunk]:
        if not chunk_ids:
            return {}
        placeholders = ",".join("?" for _ in chunk_ids)
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(
                f"SELECT {_COLUMNS} FROM chunks WHERE chunk_id IN ({placeholders})",
                chunk_ids,
            ) as cursor:
                rows = await cursor.fetchall()
                return {row["chunk_id"]: self._row_to_chunk(row) for row in rows}

    async def count_chunks(self) -> int:
        async with aiosqlite.connect(self._db_path) as db:
            async with db.execute("SELECT COUNT(*) FROM chunks") as cursor:
                row = await cursor.fetchone()
                return row[0] if row else 0

    @staticmethod
    def _row_to_chunk(row: aiosqlite.Row) -> Chunk:
        return Chunk(
            chunk_id=row["chunk_id"],
            section_number=row["section_number"],
            section_title=row["section_title"],
            part_number=row["part_number"],
            part_title=row["part_title"],
            clause_number=row["clause_number"],
            clause_title=row["clause_title"],
            content=row["content"],
            page_start=row["page_start"],
            page_end=row["page_end"],
            token_estimate=row["token_estimate"],
        )
