"""FastAPI application factory with lifespan management."""

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI

from submittal_review.analysis.document_analyzer import LLMDocumentAnalyzer
from submittal_review.api.middleware import RequestTimingMiddleware
from submittal_review.api.routes_health import router as health_router
from submittal_review.api.routes_review import router as review_router
from submittal_review.api.routes_search import router as search_router
from submittal_review.config.settings import Settings
from submittal_review.embeddings.cache import EmbeddingCache
from submittal_review.embeddings.cached_embedder import CachedEmbedder
from submittal_review.embeddings.openai_embedder import OpenAIEmbedder
from submittal_review.exceptions import GraphUnavailable
from submittal_review.extraction.pdf_extractor import PDFExtractor
from submittal_review.generation.gemini_provider import GeminiProvider
from submittal_review.generation.report_generator import ReportGenerator
from submittal_review.graph.redis_store import RedisGraphStore
from submittal_review.observability.logger import get_logger, setup_logging
from submittal_review.pipeline.review_pipeline import ReviewPipeline
from submittal_review.retrieval.corpus_index import CorpusIndex
from submittal_review.retrieval.hybrid_search import HybridSearcher
from submittal_review.review.scope_gate import ScopeGate
from submittal_review.storage.sqlite_chunk_store import SQLiteChunkStore
from submittal_review.storage.sqlite_trace_store import SQLiteTraceStore
from submittal_review.vectorstore.faiss_store import FAISSVectorStore

logger = get_logger("app")


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = Settings()
    setup_logging(settings.log_level, settings.json_logs)

    # Ensure data directories exist
    for path in [
        settings.sqlite_chunk_db_path,
        settings.sqlite_trace_db_path,
        settings.embedding_cache_db_path,
    ]:
        Path(path).parent.mkdir(parents=True, exist_ok=True)

    # Storage
    chunk_store = SQLiteChunkStore(settings.sqlite_chunk_db_path)
    await chunk_store.initialize()
    trace_store = SQLiteTraceStore(settings.sqlite_trace_db_path)
    await trace_store.initialize()

    # Embedding (with cache)
    raw_embedder = OpenAIEmbedder(
        api_key=settings.openai_api_key,
        model=settings.embedding_model,
        batch_size=settings.embedding_batch_size,
        dimensions=settings.embedding_dimensions,
    )
    embedding_cache = EmbeddingCache(settings.embedding_cache_db_path, model=settings.embedding_model)
    await embedding_cache.initialize()
    embedder = CachedEmbedder(delegate=raw_embedder, cache=embedding_cache)

    # Retrieval index and knowledge graph
    vector_store = FAISSVectorStore(
        dimensions=settings.embedding_dimensions,
        index_path=settings.faiss_index_path,
    )
    index = CorpusIndex(vector_store=vector_store, chunk_store=chunk_store)
    graph_store = RedisGraphStore.from_url(settings.redis_url, settings.redis_socket_timeout_s)
    searcher = HybridSearcher(
        embedder=embedder,
        index=index,
        graph_store=graph_store,
        settings=settings,
    )

    # LLMs
    report_llm = GeminiProvider(
        api_key=settings.google_api_key,
        model=settings.gemini_model,
        max_tokens=settings.gemini_max_tokens,
    )
    analysis_llm = report_llm.with_model(settings.gemini_analysis_model)

    # Review pipeline
    review_pipeline = ReviewPipeline(
        extractor=PDFExtractor(),
        analyzer=LLMDocumentAnalyzer(llm=analysis_llm),
        scope_gate=ScopeGate.from_settings(settings),
        searcher=searcher,
        report_generator=ReportGenerator(llm=report_llm, temperature=settings.gemini_temperature),
        trace_store=trace_store,
        settings=settings,
    )

    # Attach to app state
    app.state.review_pipeline = review_pipeline
    app.state.searcher = searcher
    app.state.chunk_store = chunk_store
    app.state.vector_store = vector_store
    app.state.graph_store = graph_store
    app.state.settings = settings

    try:
        graph_entities = await graph_store.count_entities()
    except GraphUnavailable as e:
        logger.warning("graph_store_unreachable", error=str(e))
        graph_entities = None

    logger.info(
        "startup_complete",
        chunks=await chunk_store.count_chunks(),
        index_size=vector_store.size,
        graph_entities=graph_entities,
        rag_mode=settings.rag_mode,
    )

    yield

    await graph_store.close()
    logger.info("shutdown_complete")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Submittal Review Engine",
        version="1.0.0",
        description="Evidence-grounded, fail-closed compliance review of construction submittals",
        lifespan=lifespan,
    )
    app.add_middleware(RequestTimingMiddleware)
    app.include_router(health_router, tags=["health"])
    app.include_router(review_router, tags=["review"])
    app.include_router(search_router, tags=["search"])
    return app
