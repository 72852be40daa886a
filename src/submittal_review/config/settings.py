"""Central configuration via Pydantic Settings. All values driven by env vars."""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # API Keys
    openai_api_key: str = ""
    google_api_key: str = ""

    # Embedding
    embedding_model: str = "text-embedding-3-small"
    embedding_dimensions: int = 1536
    embedding_batch_size: int = 100

    # LLM / Gemini
    gemini_model: str = "gemini-2.5-flash"
    gemini_analysis_model: str = "gemini-2.5-flash"
    gemini_extraction_model: str = "gemini-2.0-flash"
    gemini_temperature: float = 0.0
    gemini_max_tokens: int = 8192

    # Knowledge graph store
    redis_url: str = "redis://localhost:6379/0"
    redis_socket_timeout_s: float = 5.0

    # Retrieval
    corpus_label: str = "QCS 2024"
    rag_mode: Literal["vector", "graph"] = "graph"
    vector_top_k: int = 8
    graph_hops: int = 2
    max_graph_chunks: int = 12
    graph_synthetic_score: float = 0.5
    min_content_chars: int = 80
    max_total_refs: int = 6
    max_total_graph_refs: int = 4
    max_queries: int = 8
    retrieval_concurrency: int = 4

    # Scope gate
    scope_out_threshold: float = 3.0
    scope_margin: float = 2.0
    scope_text_prefix_chars: int = 4000

    # Graph construction
    corpus_chunks_path: str = "data/corpus-chunks.json"
    checkpoint_path: str = "data/graph-progress.json"
    max_window_tokens: int = 2000
    overlap_sentences: int = 2
    windows_per_call: int = 3
    build_concurrency: int = 5
    wave_delay_s: float = 0.1
    retry_delay_s: float = 2.0
    checkpoint_every_waves: int = 5

    # Streaming
    response_chunk_size: int = 140

    # Storage paths
    sqlite_chunk_db_path: str = "data/corpus.db"
    sqlite_trace_db_path: str = "data/traces.db"
    embedding_cache_db_path: str = "data/embedding_cache.db"
    faiss_index_path: str = "data/faiss_index"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"
    json_logs: bool = False

    model_config = {"env_file": ".env", "env_prefix": "SUBMITTAL_"}
