"""Health check endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from submittal_review.api.dependencies import get_chunk_store, get_graph_store, get_vector_store
from submittal_review.exceptions import GraphUnavailable
from submittal_review.graph.redis_store import RedisGraphStore
from submittal_review.models.schemas import HealthResponse
from submittal_review.storage.sqlite_chunk_store import SQLiteChunkStore
from submittal_review.vectorstore.faiss_store import FAISSVectorStore

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health(
    chunk_store: SQLiteChunkStore = Depends(get_chunk_store),
    vector_store: FAISSVectorStore = Depends(get_vector_store),
    graph_store: RedisGraphStore = Depends(get_graph_store),
) -> HealthResponse:
    graph_status = "ok"
    entities = relationships = 0
    try:
        entities = await graph_store.count_entities()
        relationships = await graph_store.count_relationships()
    except GraphUnavailable:
        graph_status = "unavailable"

    return HealthResponse(
        status="ok",
        chunk_count=await chunk_store.count_chunks(),
        index_size=vector_store.size,
        graph_status=graph_status,
        graph_entities=entities,
        graph_relationships=relationships,
    )
