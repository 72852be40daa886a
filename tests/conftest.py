"""Shared test fixtures and in-memory fakes for the external collaborators."""

from __future__ import annotations

import tempfile
from pathlib import Path

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from submittal_review.config.settings import Settings
from submittal_review.exceptions import GenerationError
from submittal_review.models.domain import Chunk, EvidenceReference


@pytest.fixture
def settings():
    """Test settings with temp paths and no inter-wave delays."""
    tmp = tempfile.mkdtemp()
    return Settings(
        openai_api_key="test-key",
        google_api_key="test-key",
        sqlite_chunk_db_path=str(Path(tmp) / "corpus.db"),
        sqlite_trace_db_path=str(Path(tmp) / "traces.db"),
        embedding_cache_db_path=str(Path(tmp) / "cache.db"),
        faiss_index_path=str(Path(tmp) / "faiss_index"),
        checkpoint_path=str(Path(tmp) / "graph-progress.json"),
        wave_delay_s=0.0,
        retry_delay_s=0.0,
    )


def make_chunk(
    chunk_id: str,
    section: str = "5",
    part: str = "1",
    clause: str = "1.1",
    title: str = "Materials",
    content: str | None = None,
    tokens: int = 100,
) -> Chunk:
    content = content or (
        f"Clause {clause} requires that all materials used in the works comply with the "
        "referenced standards and are approved by the Engineer before use on site."
    )
    return Chunk(
        chunk_id=chunk_id,
        section_number=section,
        section_title="Concrete",
        part_number=part,
        part_title="General",
        clause_number=clause,
        clause_title=title,
        content=content,
        page_start=10,
        page_end=11,
        token_estimate=tokens,
    )


def make_ref(chunk_id: str, score: float, origin: str = "vector", **chunk_kwargs) -> EvidenceReference:
    return EvidenceReference(chunk=make_chunk(chunk_id, **chunk_kwargs), score=score, origin=origin)


@pytest.fixture
def sample_chunks():
    return [make_chunk(f"c{i}", clause=f"1.{i}") for i in range(1, 6)]


# ---------------------------------------------------------------------------
# Redis
# ---------------------------------------------------------------------------


class FakePipeline:
    """Buffers commands and applies them on execute, like a non-transactional pipeline."""

    def __init__(self, redis: FakeRedis) -> None:
        self._redis = redis
        self._commands: list[tuple[str, tuple, dict]] = []

    async def __aenter__(self) -> FakePipeline:
        return self

    async def __aexit__(self, *exc) -> None:
        self._commands.clear()

    def __getattr__(self, name: str):
        if name not in FakeRedis.COMMANDS:
            raise AttributeError(name)

        def queue(*args, **kwargs):
            self._commands.append((name, args, kwargs))
            return self

        return queue

    async def execute(self) -> list:
        if self._redis.fail:
            raise RedisConnectionError("connection refused")
        self._redis.pipelines_executed += 1
        results = [self._redis.apply(name, *a, **kw) for name, a, kw in self._commands]
        self._commands.clear()
        return results


class FakeRedis:
    COMMANDS = {"hset", "hget", "hgetall", "set", "get", "sadd", "smembers", "scard"}

    def __init__(self, fail: bool = False) -> None:
        self.data: dict[str, object] = {}
        self.fail = fail
        self.pipelines_executed = 0

    def pipeline(self, transaction: bool = True) -> FakePipeline:
        return FakePipeline(self)

    def apply(self, name: str, *args, **kwargs):
        return getattr(self, f"_{name}")(*args, **kwargs)

    def _hset(self, key: str, mapping: dict) -> int:
        record = self.data.setdefault(key, {})
        added = sum(1 for k in mapping if k not in record)
        record.update({k: str(v) for k, v in mapping.items()})
        return added

    def _hget(self, key: str, field: str):
        return self.data.get(key, {}).get(field)

    def _hgetall(self, key: str) -> dict:
        return dict(self.data.get(key, {}))

    def _set(self, key: str, value: str) -> bool:
        self.data[key] = value
        return True

    def _get(self, key: str):
        return self.data.get(key)

    def _sadd(self, key: str, *values: str) -> int:
        members = self.data.setdefault(key, set())
        before = len(members)
        members.update(values)
        return len(members) - before

    def _smembers(self, key: str) -> set:
        return set(self.data.get(key, set()))

    def _scard(self, key: str) -> int:
        return len(self.data.get(key, set()))

    async def _call(self, name: str, *args, **kwargs):
        if self.fail:
            raise RedisConnectionError("connection refused")
        return self.apply(name, *args, **kwargs)

    async def hset(self, key, mapping):
        return await self._call("hset", key, mapping=mapping)

    async def hgetall(self, key):
        return await self._call("hgetall", key)

    async def scard(self, key):
        return await self._call("scard", key)

    async def aclose(self) -> None:
        pass


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def failing_redis():
    return FakeRedis(fail=True)


# ---------------------------------------------------------------------------
# Embedding, index, LLM
# ---------------------------------------------------------------------------


class FakeEmbedder:
    def __init__(self, fail_on: set[str] | None = None) -> None:
        self.fail_on = fail_on or set()
        self.queries: list[str] = []

    @property
    def dimensions(self) -> int:
        return 3

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        return [[1.0, 0.0, 0.0] for _ in texts]

    async def embed_query(self, query: str) -> list[float]:
        self.queries.append(query)
        if query in self.fail_on or "*" in self.fail_on:
            raise RuntimeError(f"embedding failed for {query!r}")
        return [1.0, 0.0, 0.0]


class FakeIndex:
    """Returns the same scored hits for every query; fetch looks chunks up by id."""

    def __init__(self, hits: list[tuple[Chunk, float]], extra: list[Chunk] | None = None) -> None:
        self.hits = hits
        self.chunks = {c.chunk_id: c for c, _ in hits}
        for chunk in extra or []:
            self.chunks[chunk.chunk_id] = chunk
        self.fetched: list[list[str]] = []

    @property
    def size(self) -> int:
        return len(self.chunks)

    async def query(self, vector: list[float], top_k: int) -> list[tuple[Chunk, float]]:
        return self.hits[:top_k]

    async def fetch(self, chunk_ids: list[str]) -> list[Chunk]:
        self.fetched.append(list(chunk_ids))
        return [self.chunks[c] for c in chunk_ids if c in self.chunks]


class ScriptedLLM:
    """LLM fake driven by scripted replies.

    ``structured`` entries are returned (or raised, if exceptions) in order by
    generate_structured; ``texts`` likewise for generate; ``stream`` is the
    list of deltas for generate_stream, or an exception to raise.
    """

    def __init__(self, structured=None, texts=None, stream=None) -> None:
        self.structured = list(structured or [])
        self.texts = list(texts or [])
        self.stream = stream if stream is not None else []
        self.prompts: list[str] = []

    async def generate(self, prompt, system=None, temperature=0.0, max_tokens=8192) -> str:
        self.prompts.append(prompt)
        reply = self.texts.pop(0) if self.texts else ""
        if isinstance(reply, Exception):
            raise reply
        return reply

    async def generate_structured(self, prompt, response_schema, system=None):
        self.prompts.append(prompt)
        if not self.structured:
            raise GenerationError("no structured reply scripted")
        reply = self.structured.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, dict):
            return response_schema.model_validate(reply)
        return reply

    async def generate_stream(self, prompt, system=None, temperature=0.0):
        self.prompts.append(prompt)
        if isinstance(self.stream, Exception):
            raise self.stream
        for delta in self.stream:
            yield delta
