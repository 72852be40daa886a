"""Redis-backed knowledge graph store with pipelined batch reads and writes."""

from __future__ import annotations

from collections.abc import Callable, Iterable

from redis.asyncio import Redis
from redis.exceptions import RedisError

from submittal_review.exceptions import GraphUnavailable
from submittal_review.graph import keys
from submittal_review.models.domain import ChunkWindow, GraphEntity, GraphRelationship
from submittal_review.observability.logger import get_logger

logger = get_logger("graph_store")


class RedisGraphStore:
    def __init__(self, client: Redis) -> None:
        self._client = client

    @classmethod
    def from_url(cls, url: str, socket_timeout: float = 5.0) -> RedisGraphStore:
        client = Redis.from_url(
            url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )
        return cls(client)

    async def close(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def upsert_entities(self, batch: list[GraphEntity]) -> int:
        if not batch:
            return 0
        await self._pipelined(lambda pipe: self._queue_entities(pipe, batch))
        return len(batch)

    async def upsert_relationships(self, batch: list[GraphRelationship]) -> int:
        if not batch:
            return 0
        existing = await self._existing_provenance(batch)
        await self._pipelined(lambda pipe: self._queue_relationships(pipe, batch, existing))
        return len(batch)

    async def write_window(
        self,
        window: ChunkWindow,
        entities: list[GraphEntity],
        relationships: list[GraphRelationship],
    ) -> None:
        """Persist one window's extraction in a single pipeline.

        Windows that yielded nothing issue no writes.
        """
        if not entities and not relationships:
            return
        existing = await self._existing_provenance(relationships)

        def queue(pipe) -> None:
            self._queue_entities(pipe, entities)
            for chunk_id in window.chunk_ids:
                for entity in entities:
                    pipe.sadd(keys.chunk_entities_key(chunk_id), entity.entity_id)
            self._queue_relationships(pipe, relationships, existing)

        await self._pipelined(queue)

    async def write_meta(self, stats: dict) -> None:
        try:
            await self._client.hset(
                keys.META_KEY, mapping={k: str(v) for k, v in stats.items()}
            )
        except RedisError as e:
            raise GraphUnavailable(f"Graph store unavailable: {e}") from e

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def entities_for_chunks(self, chunk_ids: list[str]) -> set[str]:
        if not chunk_ids:
            return set()
        results = await self._pipelined(
            lambda pipe: [pipe.smembers(keys.chunk_entities_key(c)) for c in chunk_ids]
        )
        entity_ids: set[str] = set()
        for members in results:
            if members:
                entity_ids.update(members)
        return entity_ids

    async def traverse(
        self, entity_ids: Iterable[str], max_hops: int, max_chunks: int
    ) -> list[str]:
        """Breadth-first expansion from ``entity_ids`` collecting provenance chunk ids.

        Returns at most ``max_chunks`` ids in discovery order. Relationship
        records that are missing (partial or late writes) are skipped.
        """
        frontier = list(dict.fromkeys(entity_ids))
        if not frontier or max_hops <= 0 or max_chunks <= 0:
            return []

        visited_entities = set(frontier)
        visited_relationships: set[str] = set()
        collected: dict[str, None] = {}

        for hop in range(max_hops):
            adjacency = await self._pipelined(
                lambda pipe: [
                    pipe.smembers(keys.entity_relationships_key(e)) for e in frontier
                ]
            )
            rel_ids: list[str] = []
            for members in adjacency:
                for rid in sorted(members or ()):
                    if rid not in visited_relationships:
                        visited_relationships.add(rid)
                        rel_ids.append(rid)
            if not rel_ids:
                break

            records = await self._pipelined(
                lambda pipe: [pipe.hgetall(keys.relationship_key(r)) for r in rel_ids]
            )

            next_frontier: list[str] = []
            for record in records:
                if not record:
                    continue
                for chunk_id in keys.split_chunk_ids(record.get("chunkIds")):
                    if len(collected) >= max_chunks:
                        break
                    collected.setdefault(chunk_id)
                if len(collected) >= max_chunks:
                    break
                for field in ("sourceEntity", "targetEntity"):
                    eid = record.get(field)
                    if eid and eid not in visited_entities:
                        visited_entities.add(eid)
                        next_frontier.append(eid)

            logger.debug(
                "graph_hop",
                hop=hop + 1,
                relationships=len(rel_ids),
                chunks=len(collected),
                next_entities=len(next_frontier),
            )
            if len(collected) >= max_chunks or not next_frontier:
                break
            frontier = next_frontier

        return list(collected)[:max_chunks]

    async def get_entity(self, eid: str) -> GraphEntity | None:
        try:
            record = await self._client.hgetall(keys.entity_key(eid))
        except RedisError as e:
            raise GraphUnavailable(f"Graph store unavailable: {e}") from e
        if not record:
            return None
        return GraphEntity(
            entity_id=eid,
            type=record.get("type", ""),
            name=record.get("name", ""),
            description=record.get("description"),
        )

    async def get_relationship(self, rid: str) -> GraphRelationship | None:
        try:
            record = await self._client.hgetall(keys.relationship_key(rid))
        except RedisError as e:
            raise GraphUnavailable(f"Graph store unavailable: {e}") from e
        if not record:
            return None
        return GraphRelationship(
            relationship_id=rid,
            type=record.get("type", ""),
            source_id=record.get("sourceEntity", ""),
            target_id=record.get("targetEntity", ""),
            chunk_ids=keys.split_chunk_ids(record.get("chunkIds")),
        )

    async def count_entities(self) -> int:
        return await self._scard(keys.ALL_ENTITIES_KEY)

    async def count_relationships(self) -> int:
        return await self._scard(keys.ALL_RELATIONSHIPS_KEY)

    async def read_meta(self) -> dict[str, str]:
        try:
            return await self._client.hgetall(keys.META_KEY) or {}
        except RedisError as e:
            raise GraphUnavailable(f"Graph store unavailable: {e}") from e

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _pipelined(self, queue: Callable) -> list:
        try:
            async with self._client.pipeline(transaction=False) as pipe:
                queue(pipe)
                return await pipe.execute()
        except RedisError as e:
            raise GraphUnavailable(f"Graph store unavailable: {e}") from e

    async def _scard(self, key: str) -> int:
        try:
            return int(await self._client.scard(key))
        except RedisError as e:
            raise GraphUnavailable(f"Graph store unavailable: {e}") from e

    async def _existing_provenance(
        self, relationships: list[GraphRelationship]
    ) -> dict[str, list[str]]:
        if not relationships:
            return {}
        raw = await self._pipelined(
            lambda pipe: [
                pipe.hget(keys.relationship_key(r.relationship_id), "chunkIds")
                for r in relationships
            ]
        )
        return {
            r.relationship_id: keys.split_chunk_ids(value)
            for r, value in zip(relationships, raw)
        }

    @staticmethod
    def _queue_entities(pipe, entities: list[GraphEntity]) -> None:
        for entity in entities:
            mapping = {"name": entity.name, "type": entity.type}
            if entity.description:
                mapping["description"] = entity.description
            pipe.hset(keys.entity_key(entity.entity_id), mapping=mapping)
            pipe.set(keys.entity_name_index_key(entity.name), entity.entity_id)
            pipe.sadd(keys.ALL_ENTITIES_KEY, entity.entity_id)

    @staticmethod
    def _queue_relationships(
        pipe, relationships: list[GraphRelationship], existing: dict[str, list[str]]
    ) -> None:
        for rel in relationships:
            chunk_ids = existing.get(rel.relationship_id, []) + rel.chunk_ids
            pipe.hset(
                keys.relationship_key(rel.relationship_id),
                mapping={
                    "type": rel.type,
                    "sourceEntity": rel.source_id,
                    "targetEntity": rel.target_id,
                    "chunkIds": keys.join_chunk_ids(chunk_ids),
                },
            )
            pipe.sadd(keys.entity_relationships_key(rel.source_id), rel.relationship_id)
            pipe.sadd(keys.entity_relationships_key(rel.target_id), rel.relationship_id)
            pipe.sadd(keys.ALL_RELATIONSHIPS_KEY, rel.relationship_id)
