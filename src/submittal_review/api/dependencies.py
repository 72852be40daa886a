"""FastAPI dependency injection helpers."""

from __future__ import annotations

from fastapi import Request

from submittal_review.config.settings import Settings
from submittal_review.graph.redis_store import RedisGraphStore
from submittal_review.pipeline.review_pipeline import ReviewPipeline
from submittal_review.retrieval.hybrid_search import HybridSearcher
from submittal_review.storage.sqlite_chunk_store import SQLiteChunkStore
from submittal_review.vectorstore.faiss_store import FAISSVectorStore


def get_review_pipeline(request: Request) -> ReviewPipeline:
    return request.app.state.review_pipeline


def get_searcher(request: Request) -> HybridSearcher:
    return request.app.state.searcher


def get_chunk_store(request: Request) -> SQLiteChunkStore:
    return request.app.state.chunk_store


def get_vector_store(request: Request) -> FAISSVectorStore:
    return request.app.state.vector_store


def get_graph_store(request: Request) -> RedisGraphStore:
    return request.app.state.graph_store


def get_settings(request: Request) -> Settings:
    return request.app.state.settings
