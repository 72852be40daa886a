"""Tests for RedisGraphStore against an in-memory Redis double."""

import pytest

from submittal_review.exceptions import GraphUnavailable
from submittal_review.graph import keys
from submittal_review.graph.redis_store import RedisGraphStore
from submittal_review.models.domain import ChunkWindow, GraphEntity, GraphRelationship


def _window(*chunk_ids: str) -> ChunkWindow:
    return ChunkWindow(
        chunk_ids=list(chunk_ids),
        content="",
        section_number="5",
        section_title="Concrete",
        part_number="1",
        part_title="General",
        token_estimate=0,
    )


def _entity(kind: str, name: str) -> GraphEntity:
    return GraphEntity(entity_id=keys.entity_id(kind, name), type=kind, name=name)


def _rel(source: GraphEntity, kind: str, target: GraphEntity, *chunk_ids: str) -> GraphRelationship:
    return GraphRelationship(
        relationship_id=keys.relationship_id(source.entity_id, kind, target.entity_id),
        type=kind,
        source_id=source.entity_id,
        target_id=target.entity_id,
        chunk_ids=list(chunk_ids),
    )


CEMENT = _entity("MATERIAL", "Portland Cement")
BS_EN = _entity("STANDARD", "BS EN 197-1")
SLUMP = _entity("TEST_METHOD", "Slump test")
ASHGHAL = _entity("ORGANIZATION", "Ashghal")


@pytest.fixture
def store(fake_redis):
    return RedisGraphStore(fake_redis)


async def _chain(store: RedisGraphStore) -> None:
    """CEMENT -c1-> BS_EN -c2-> SLUMP -c3-> ASHGHAL"""
    await store.write_window(_window("c1"), [CEMENT, BS_EN], [_rel(CEMENT, "MUST_COMPLY_WITH", BS_EN, "c1")])
    await store.write_window(_window("c2"), [BS_EN, SLUMP], [_rel(BS_EN, "REFERENCES", SLUMP, "c2")])
    await store.write_window(_window("c3"), [SLUMP, ASHGHAL], [_rel(SLUMP, "APPROVED_BY", ASHGHAL, "c3")])


async def test_write_window_indexes_chunk_to_entities(store):
    await _chain(store)
    assert await store.entities_for_chunks(["c1"]) == {CEMENT.entity_id, BS_EN.entity_id}
    assert await store.entities_for_chunks(["c1", "c3"]) == {
        CEMENT.entity_id,
        BS_EN.entity_id,
        SLUMP.entity_id,
        ASHGHAL.entity_id,
    }
    assert await store.entities_for_chunks([]) == set()


async def test_empty_window_issues_no_writes(store, fake_redis):
    await store.write_window(_window("c9"), [], [])
    assert fake_redis.pipelines_executed == 0
    assert fake_redis.data == {}


async def test_rewrite_is_idempotent(store):
    await _chain(store)
    await _chain(store)
    assert await store.count_entities() == 4
    assert await store.count_relationships() == 3
    rel = await store.get_relationship(_rel(CEMENT, "MUST_COMPLY_WITH", BS_EN).relationship_id)
    assert rel.chunk_ids == ["c1"]


async def test_relationship_provenance_merges_across_windows(store):
    rel = _rel(CEMENT, "MUST_COMPLY_WITH", BS_EN, "c1")
    await store.write_window(_window("c1"), [CEMENT, BS_EN], [rel])
    again = _rel(CEMENT, "MUST_COMPLY_WITH", BS_EN, "c7", "c1")
    await store.write_window(_window("c7", "c1"), [CEMENT, BS_EN], [again])
    stored = await store.get_relationship(rel.relationship_id)
    assert stored.chunk_ids == ["c1", "c7"]


async def test_traverse_one_hop(store):
    await _chain(store)
    assert await store.traverse([CEMENT.entity_id], max_hops=1, max_chunks=10) == ["c1"]


async def test_traverse_two_hops_follows_neighbours(store):
    await _chain(store)
    assert await store.traverse([CEMENT.entity_id], max_hops=2, max_chunks=10) == ["c1", "c2"]


async def test_traverse_respects_chunk_budget(store):
    await _chain(store)
    result = await store.traverse([BS_EN.entity_id], max_hops=3, max_chunks=2)
    assert len(result) == 2
    assert set(result) <= {"c1", "c2", "c3"}


async def test_traverse_zero_hops_is_empty(store):
    await _chain(store)
    assert await store.traverse([CEMENT.entity_id], max_hops=0, max_chunks=10) == []
    assert await store.traverse([], max_hops=2, max_chunks=10) == []


async def test_traverse_skips_missing_relationship_records(store, fake_redis):
    await _chain(store)
    del fake_redis.data[keys.relationship_key(_rel(CEMENT, "MUST_COMPLY_WITH", BS_EN).relationship_id)]
    assert await store.traverse([CEMENT.entity_id], max_hops=2, max_chunks=10) == []


async def test_upsert_entities_and_lookup(store):
    assert await store.upsert_entities([CEMENT, BS_EN]) == 2
    entity = await store.get_entity(CEMENT.entity_id)
    assert entity.name == "Portland Cement"
    assert entity.type == "MATERIAL"
    assert await store.get_entity("MATERIAL:unknown") is None


async def test_upsert_relationships_links_both_endpoints(store, fake_redis):
    rel = _rel(CEMENT, "MUST_COMPLY_WITH", BS_EN, "c1")
    assert await store.upsert_relationships([rel]) == 1
    assert rel.relationship_id in fake_redis.data[keys.entity_relationships_key(CEMENT.entity_id)]
    assert rel.relationship_id in fake_redis.data[keys.entity_relationships_key(BS_EN.entity_id)]


async def test_meta_round_trip(store):
    await store.write_meta({"total_entities": 4, "windows": 3})
    assert await store.read_meta() == {"total_entities": "4", "windows": "3"}


async def test_unreachable_redis_raises_graph_unavailable(failing_redis):
    store = RedisGraphStore(failing_redis)
    with pytest.raises(GraphUnavailable):
        await store.entities_for_chunks(["c1"])
    with pytest.raises(GraphUnavailable):
        await store.traverse(["MATERIAL:cement"], max_hops=1, max_chunks=5)
    with pytest.raises(GraphUnavailable):
        await store.count_entities()
    with pytest.raises(GraphUnavailable):
        await store.write_meta({"windows": 1})
