"""Tests for offline knowledge graph construction."""

import copy
from pathlib import Path

import pytest

from conftest import FakeRedis, make_chunk
from submittal_review.exceptions import GraphUnavailable, StructuredOutputParseFailure
from submittal_review.graph.builder import GraphBuildCheckpoint, GraphBuildPipeline, resolve_window
from submittal_review.graph.keys import entity_id, relationship_id
from submittal_review.graph.redis_store import RedisGraphStore
from submittal_review.graph.windows import build_window
from submittal_review.models.graph_schema import GraphExtraction, WindowExtraction

CEMENT_GROUP = {
    "entities": [
        {"name": "Portland Cement", "type": "MATERIAL"},
        {"name": "BS EN 197-1", "type": "STANDARD"},
    ],
    "relationships": [
        {"source": "Portland Cement", "target": "BS EN 197-1", "type": "MUST_COMPLY_WITH"}
    ],
}


class StubExtractor:
    """Returns the same extraction for every window; batches in ``fail_batches`` always fail."""

    def __init__(self, fail_batches: set[int] | None = None) -> None:
        self.fail_batches = fail_batches or set()
        self.calls: list[int] = []

    async def extract(self, windows, batch_index=0):
        self.calls.append(batch_index)
        if batch_index in self.fail_batches:
            raise StructuredOutputParseFailure(f"batch {batch_index} unparseable")
        return GraphExtraction.model_validate(
            {"groups": [{"group_index": i, **CEMENT_GROUP} for i in range(len(windows))]}
        )


@pytest.fixture
def part_chunks():
    """Four chunks in four parts, so four windows."""
    return [make_chunk(f"p{i}", part=str(i)) for i in range(1, 5)]


def _pipeline(settings, extractor=None, redis=None):
    store = RedisGraphStore(redis or FakeRedis())
    return GraphBuildPipeline(extractor or StubExtractor(), store, settings), store


async def test_build_writes_entities_relationships_and_checkpoint(settings, part_chunks):
    pipeline, store = _pipeline(settings)
    checkpoint = await pipeline.run(part_chunks)

    assert checkpoint.completed
    assert checkpoint.total_windows == 4
    assert checkpoint.last_processed_window == 4
    assert checkpoint.errors == 0
    assert await store.count_entities() == 2
    assert await store.count_relationships() == 1

    rid = relationship_id(
        entity_id("MATERIAL", "Portland Cement"),
        "MUST_COMPLY_WITH",
        entity_id("STANDARD", "BS EN 197-1"),
    )
    rel = await store.get_relationship(rid)
    assert rel.chunk_ids == ["p1", "p2", "p3", "p4"]

    saved = GraphBuildCheckpoint.load(settings.checkpoint_path)
    assert saved.completed
    assert saved.last_processed_window == 4


async def test_meta_summarises_build(settings, part_chunks):
    pipeline, store = _pipeline(settings)
    await pipeline.run(part_chunks)
    meta = await store.read_meta()
    assert meta["windows"] == "4"
    assert meta["source_chunks"] == "4"
    assert "built_at" in meta


async def test_rerun_does_not_duplicate(settings, part_chunks):
    redis = FakeRedis()
    pipeline, store = _pipeline(settings, redis=redis)
    await pipeline.run(part_chunks)
    snapshot = copy.deepcopy({k: v for k, v in redis.data.items() if k != "g:meta"})
    await pipeline.run(part_chunks)
    assert {k: v for k, v in redis.data.items() if k != "g:meta"} == snapshot


async def test_failed_batch_is_retried_then_counted(settings, part_chunks):
    extractor = StubExtractor(fail_batches={0})
    pipeline, store = _pipeline(settings, extractor=extractor)
    checkpoint = await pipeline.run(part_chunks)

    assert extractor.calls.count(0) == 2
    assert extractor.calls.count(1) == 1
    assert checkpoint.errors == 1
    assert checkpoint.last_processed_window == 4
    assert checkpoint.completed
    assert await store.entities_for_chunks(["p1", "p2", "p3"]) == set()
    assert await store.entities_for_chunks(["p4"])


async def test_resume_skips_processed_windows(settings, part_chunks):
    extractor = StubExtractor()
    pipeline, store = _pipeline(settings, extractor=extractor)
    checkpoint = await pipeline.run(part_chunks, start_from=3)
    assert extractor.calls == [1]
    assert checkpoint.last_processed_window == 4
    assert await store.entities_for_chunks(["p1"]) == set()
    assert await store.entities_for_chunks(["p4"])


async def test_custom_checkpoint_path(settings, part_chunks, tmp_path):
    pipeline, _ = _pipeline(settings)
    path = tmp_path / "nested" / "progress.json"
    await pipeline.run(part_chunks, checkpoint_path=path)
    assert path.exists()
    assert not Path(settings.checkpoint_path).exists()


def test_checkpoint_load_missing_file(tmp_path):
    assert GraphBuildCheckpoint.load(tmp_path / "absent.json") is None


def test_resolve_window_drops_unknown_endpoints():
    window = build_window([make_chunk("c1"), make_chunk("c2", clause="1.2")])
    extraction = WindowExtraction.model_validate(
        {
            "group_index": 0,
            "entities": [
                {"name": "Portland Cement", "type": "MATERIAL"},
                {"name": "Portland Cement", "type": "MATERIAL"},
                {"name": "BS EN 197-1", "type": "STANDARD"},
            ],
            "relationships": [
                {"source": "Portland Cement", "target": "BS EN 197-1", "type": "MUST_COMPLY_WITH"},
                {"source": "Portland Cement", "target": "ASTM C150", "type": "MUST_COMPLY_WITH"},
                {"source": "portland cement", "target": "BS EN 197-1", "type": "REFERENCES"},
            ],
        }
    )
    entities, relationships = resolve_window(extraction, window)
    assert [e.entity_id for e in entities] == ["MATERIAL:portland_cement", "STANDARD:bs_en_197_1"]
    assert len(relationships) == 1
    assert relationships[0].chunk_ids == ["c1", "c2"]
    assert relationships[0].source_id == "MATERIAL:portland_cement"


def test_resolve_window_skips_nameless_entities():
    window = build_window([make_chunk("c1")])
    extraction = WindowExtraction.model_validate(
        {"group_index": 0, "entities": [{"name": "---", "type": "MATERIAL"}]}
    )
    entities, relationships = resolve_window(extraction, window)
    assert entities == []
    assert relationships == []


class FlakyStore:
    """Graph store whose window writes fail a set number of times per first chunk id."""

    def __init__(self, store: RedisGraphStore, failures: dict[str, int]) -> None:
        self._store = store
        self.failures = failures

    async def write_window(self, window, entities, relationships):
        first = window.chunk_ids[0]
        if self.failures.get(first, 0) > 0:
            self.failures[first] -= 1
            raise GraphUnavailable("connection reset by peer")
        await self._store.write_window(window, entities, relationships)

    def __getattr__(self, name):
        return getattr(self._store, name)


async def test_window_write_is_retried_once(settings, part_chunks):
    store = RedisGraphStore(FakeRedis())
    flaky = FlakyStore(store, {"p1": 1})
    checkpoint = await GraphBuildPipeline(StubExtractor(), flaky, settings).run(part_chunks)

    assert flaky.failures["p1"] == 0
    assert checkpoint.errors == 0
    assert await store.entities_for_chunks(["p1"])


async def test_repeated_write_failure_counts_the_batch(settings, part_chunks):
    store = RedisGraphStore(FakeRedis())
    flaky = FlakyStore(store, {"p1": 2})
    checkpoint = await GraphBuildPipeline(StubExtractor(), flaky, settings).run(part_chunks)

    assert checkpoint.errors == 1
    assert checkpoint.completed
    assert await store.entities_for_chunks(["p1"]) == set()
    assert await store.entities_for_chunks(["p4"])


async def test_resume_carries_previous_totals(settings, part_chunks):
    previous = GraphBuildCheckpoint(
        last_processed_window=2,
        total_windows=4,
        total_entities=4,
        total_relationships=2,
        errors=1,
    )
    pipeline, store = _pipeline(settings)
    checkpoint = await pipeline.run(part_chunks, start_from=2, previous=previous)

    assert checkpoint.total_entities == 8
    assert checkpoint.total_relationships == 4
    assert checkpoint.errors == 1
    meta = await store.read_meta()
    assert meta["total_entities"] == "8"
    assert GraphBuildCheckpoint.load(settings.checkpoint_path).total_entities == 8
