"""SQLite-backed review trace store for observability."""

from __future__ import annotations

import json
from datetime import datetime, timezone

import aiosqlite

from submittal_review.models.domain import ReviewTrace
from submittal_review.storage.migrations import initialize_trace_db


class SQLiteTraceStore:
    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    async def initialize(self) -> None:
        await initialize_trace_db(self._db_path)

    async def save_trace(self, trace: ReviewTrace) -> None:
        async with aiosqlite.connect(self._db_path) as db:
            await db.execute(
                "INSERT OR REPLACE INTO review_traces "
                "(trace_id, filename, timestamp, latency_ms, verdict, evidence_count, "
                "graph_evidence_count, critical_reasons, spans) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    trace.trace_id,
                    trace.filename,
                    trace.timestamp.isoformat(),
                    trace.latency_ms,
                    trace.verdict,
                    trace.evidence_count,
                    trace.graph_evidence_count,
                    json.dumps(trace.critical_reasons),
                    json.dumps(trace.spans),
                ),
            )
            await db.commit()

    async def get_trace(self, trace_id: str) -> ReviewTrace | None:
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(
                "SELECT * FROM review_traces WHERE trace_id = ?", (trace_id,)
            ) as cursor:
                row = await cursor.fetchone()
                if row is None:
                    return None
                return self._row_to_trace(row)

    async def get_recent_traces(self, limit: int = 100) -> list[ReviewTrace]:
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(
                "SELECT * FROM review_traces ORDER BY timestamp DESC LIMIT ?", (limit,)
            ) as cursor:
                rows = await cursor.fetchall()
                return [self._row_to_trace(row) for row in rows]

    @staticmethod
    def _row_to_trace(row: aiosqlite.Row) -> ReviewTrace:
        timestamp = datetime.fromisoformat(row["timestamp"])
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        return ReviewTrace(
            trace_id=row["trace_id"],
            filename=row["filename"],
            timestamp=timestamp,
            latency_ms=row["latency_ms"],
            verdict=row["verdict"],
            evidence_count=row["evidence_count"],
            graph_evidence_count=row["graph_evidence_count"],
            critical_reasons=json.loads(row["critical_reasons"]),
            spans=json.loads(row["spans"]),
        )
