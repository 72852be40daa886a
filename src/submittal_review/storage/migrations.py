"""Idempotent database schema creation."""

from __future__ import annotations

import aiosqlite

CHUNKS_TABLE = """
CREATE TABLE IF NOT EXISTS chunks (
    chunk_id TEXT PRIMARY KEY,
    section_number TEXT NOT NULL,
    section_title TEXT NOT NULL DEFAULT '',
    part_number TEXT NOT NULL,
    part_title TEXT NOT NULL DEFAULT '',
    clause_number TEXT NOT NULL DEFAULT '',
    clause_title TEXT NOT NULL DEFAULT '',
    content TEXT NOT NULL,
    page_start INTEGER NOT NULL DEFAULT 0,
    page_end INTEGER NOT NULL DEFAULT 0,
    token_estimate INTEGER NOT NULL DEFAULT 0
)
"""

CHUNKS_CLAUSE_INDEX = """
CREATE INDEX IF NOT EXISTS idx_chunks_clause
ON chunks(section_number, part_number, clause_number)
"""

TRACES_TABLE = """
CREATE TABLE IF NOT EXISTS review_traces (
    trace_id TEXT PRIMARY KEY,
    filename TEXT NOT NULL,
    timestamp TEXT NOT NULL,
    latency_ms REAL NOT NULL,
    verdict TEXT NOT NULL,
    evidence_count INTEGER NOT NULL,
    graph_evidence_count INTEGER NOT NULL,
    critical_reasons TEXT NOT NULL DEFAULT '[]',
    spans TEXT NOT NULL DEFAULT '[]'
)
"""

TRACES_TIMESTAMP_INDEX = """
CREATE INDEX IF NOT EXISTS idx_review_traces_timestamp ON review_traces(timestamp)
"""


async def initialize_chunk_db(db_path: str) -> None:
    async with aiosqlite.connect(db_path) as db:
        await db.execute(CHUNKS_TABLE)
        await db.execute(CHUNKS_CLAUSE_INDEX)
        await db.commit()


async def initialize_trace_db(db_path: str) -> None:
    async with aiosqlite.connect(db_path) as db:
        await db.execute(TRACES_TABLE)
        await db.execute(TRACES_TIMESTAMP_INDEX)
        await db.commit()
