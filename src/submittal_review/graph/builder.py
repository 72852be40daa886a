"""Offline knowledge graph construction over the corpus.

Chunks are grouped into windows, windows are sent to the extractor in small
batches, and batches run in waves of bounded concurrency. Each window's
canonicalized entities and relationships are written in one pipeline. Keys
are deterministic so a rerun, or a resume from ``start_from``, overwrites
rather than duplicates.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, Field

from submittal_review.config.settings import Settings
from submittal_review.exceptions import GraphUnavailable, StructuredOutputParseFailure
from submittal_review.graph.extractor import GraphExtractor
from submittal_review.graph.keys import entity_id, relationship_id
from submittal_review.graph.windows import group_chunks
from submittal_review.models.domain import Chunk, ChunkWindow, GraphEntity, GraphRelationship
from submittal_review.models.graph_schema import GraphExtraction, WindowExtraction
from submittal_review.observability.logger import get_logger
from submittal_review.observability.metrics import log_graph_build_progress
from submittal_review.protocols.graph_store import KnowledgeGraphStore

logger = get_logger("graph_builder")


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


class GraphBuildCheckpoint(BaseModel):
    last_processed_window: int = 0
    total_windows: int = 0
    total_entities: int = 0
    total_relationships: int = 0
    errors: int = 0
    completed: bool = False
    timestamp: str = Field(default_factory=_utcnow)

    def save(self, path: str | Path) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.model_dump_json(indent=2), encoding="utf-8")

    @classmethod
    def load(cls, path: str | Path) -> GraphBuildCheckpoint | None:
        path = Path(path)
        if not path.exists():
            return None
        return cls.model_validate_json(path.read_text(encoding="utf-8"))


@dataclass
class BatchOutcome:
    ok: bool
    windows: int
    entities: int = 0
    relationships: int = 0


def resolve_window(
    extraction: WindowExtraction, window: ChunkWindow
) -> tuple[list[GraphEntity], list[GraphRelationship]]:
    """Canonicalize one window's extraction into graph records.

    Relationship endpoints are resolved by exact name against the entities
    of the same window; relationships naming anything else are dropped.
    """
    entities: dict[str, GraphEntity] = {}
    type_by_name: dict[str, str] = {}
    for ent in extraction.entities:
        eid = entity_id(ent.type, ent.name)
        if not eid.split(":", 1)[1]:
            continue
        entities.setdefault(
            eid,
            GraphEntity(entity_id=eid, type=ent.type, name=ent.name, description=ent.description),
        )
        type_by_name.setdefault(ent.name, ent.type)

    relationships: dict[str, GraphRelationship] = {}
    dropped = 0
    for rel in extraction.relationships:
        source_type = type_by_name.get(rel.source)
        target_type = type_by_name.get(rel.target)
        if source_type is None or target_type is None:
            dropped += 1
            continue
        source_id = entity_id(source_type, rel.source)
        target_id = entity_id(target_type, rel.target)
        rid = relationship_id(source_id, rel.type, target_id)
        relationships.setdefault(
            rid,
            GraphRelationship(
                relationship_id=rid,
                type=rel.type,
                source_id=source_id,
                target_id=target_id,
                chunk_ids=list(window.chunk_ids),
            ),
        )

    if dropped:
        logger.debug("relationships_dropped", count=dropped, chunks=window.chunk_ids[:3])
    return list(entities.values()), list(relationships.values())


class GraphBuildPipeline:
    def __init__(
        self,
        extractor: GraphExtractor,
        store: KnowledgeGraphStore,
        settings: Settings,
    ) -> None:
        self._extractor = extractor
        self._store = store
        self._settings = settings

    def build_windows(self, chunks: list[Chunk]) -> list[ChunkWindow]:
        return group_chunks(
            chunks,
            max_tokens=self._settings.max_window_tokens,
            overlap_sentences=self._settings.overlap_sentences,
        )

    async def run(
        self,
        chunks: list[Chunk],
        start_from: int = 0,
        checkpoint_path: str | Path | None = None,
        previous: GraphBuildCheckpoint | None = None,
    ) -> GraphBuildCheckpoint:
        """Build the graph from window ``start_from`` onward.

        Totals carry over from ``previous`` so a resumed build reports the
        whole graph, not just the resumed part.
        """
        s = self._settings
        checkpoint_path = checkpoint_path or s.checkpoint_path
        start = time.monotonic()

        windows = self.build_windows(chunks)
        per_call = max(1, s.windows_per_call)
        concurrency = max(1, s.build_concurrency)

        batches = [
            (i // per_call, windows[i : i + per_call])
            for i in range(max(0, start_from), len(windows), per_call)
        ]
        total_waves = (len(batches) + concurrency - 1) // concurrency

        logger.info(
            "graph_build_started",
            chunks=len(chunks),
            windows=len(windows),
            batches=len(batches),
            start_from=start_from,
        )

        checkpoint = GraphBuildCheckpoint(
            last_processed_window=max(0, start_from), total_windows=len(windows)
        )
        if previous is not None:
            checkpoint.total_entities = previous.total_entities
            checkpoint.total_relationships = previous.total_relationships
            checkpoint.errors = previous.errors

        for wave_number, w in enumerate(range(0, len(batches), concurrency), 1):
            wave = batches[w : w + concurrency]
            results = await asyncio.gather(
                *(self._process_batch(batch, index) for index, batch in wave),
                return_exceptions=True,
            )

            wave_entities = 0
            wave_relationships = 0
            for (_, batch), result in zip(wave, results):
                checkpoint.last_processed_window += len(batch)
                if isinstance(result, BaseException):
                    checkpoint.errors += 1
                    logger.error("graph_batch_crashed", error=str(result))
                elif not result.ok:
                    checkpoint.errors += 1
                else:
                    wave_entities += result.entities
                    wave_relationships += result.relationships
            checkpoint.total_entities += wave_entities
            checkpoint.total_relationships += wave_relationships

            log_graph_build_progress(
                wave=wave_number,
                total_waves=total_waves,
                processed=checkpoint.last_processed_window,
                total_windows=len(windows),
                entities=checkpoint.total_entities,
                relationships=checkpoint.total_relationships,
                errors=checkpoint.errors,
                elapsed_s=time.monotonic() - start,
            )

            is_last = w + concurrency >= len(batches)
            if wave_number % max(1, s.checkpoint_every_waves) == 0 or is_last:
                checkpoint.timestamp = _utcnow()
                checkpoint.save(checkpoint_path)
            if not is_last:
                await asyncio.sleep(s.wave_delay_s)

        await self._store.write_meta(
            {
                "total_entities": checkpoint.total_entities,
                "total_relationships": checkpoint.total_relationships,
                "built_at": _utcnow(),
                "source_chunks": len(chunks),
                "windows": len(windows),
            }
        )

        checkpoint.completed = True
        checkpoint.timestamp = _utcnow()
        checkpoint.save(checkpoint_path)

        logger.info(
            "graph_build_complete",
            elapsed_s=round(time.monotonic() - start, 1),
            processed=checkpoint.last_processed_window,
            entities=checkpoint.total_entities,
            relationships=checkpoint.total_relationships,
            errors=checkpoint.errors,
        )
        return checkpoint

    async def _process_batch(self, batch: list[ChunkWindow], batch_index: int) -> BatchOutcome:
        extraction = await self._extract_with_retry(batch, batch_index)
        if extraction is None:
            return BatchOutcome(ok=False, windows=len(batch))

        entity_count = 0
        relationship_count = 0
        for group in extraction.groups:
            if not 0 <= group.group_index < len(batch):
                continue
            window = batch[group.group_index]
            entities, relationships = resolve_window(group, window)
            await self._write_with_retry(window, entities, relationships)
            entity_count += len(entities)
            relationship_count += len(relationships)

        return BatchOutcome(
            ok=True,
            windows=len(batch),
            entities=entity_count,
            relationships=relationship_count,
        )

    async def _write_with_retry(
        self,
        window: ChunkWindow,
        entities: list[GraphEntity],
        relationships: list[GraphRelationship],
    ) -> None:
        try:
            await self._store.write_window(window, entities, relationships)
            return
        except GraphUnavailable as e:
            logger.warning("graph_write_retry", chunks=window.chunk_ids[:3], error=str(e))
            await asyncio.sleep(self._settings.retry_delay_s)
        await self._store.write_window(window, entities, relationships)

    async def _extract_with_retry(
        self, batch: list[ChunkWindow], batch_index: int
    ) -> GraphExtraction | None:
        try:
            return await self._extractor.extract(batch, batch_index)
        except StructuredOutputParseFailure:
            await asyncio.sleep(self._settings.retry_delay_s)
        try:
            return await self._extractor.extract(batch, batch_index)
        except StructuredOutputParseFailure as e:
            logger.error("graph_batch_skipped", batch=batch_index, error=str(e))
            return None
