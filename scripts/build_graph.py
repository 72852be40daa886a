"""Build the knowledge graph from the corpus chunk file.

Usage:
    python scripts/build_graph.py [--chunks PATH] [--start-from N] [--resume]

--start-from skips the first N windows; --resume reads the offset and the
running totals from the last checkpoint instead.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from submittal_review.config.settings import Settings
from submittal_review.exceptions import ConfigurationError
from submittal_review.generation.gemini_provider import GeminiProvider
from submittal_review.graph.builder import GraphBuildCheckpoint, GraphBuildPipeline
from submittal_review.graph.extractor import GraphExtractor
from submittal_review.graph.redis_store import RedisGraphStore
from submittal_review.observability.logger import setup_logging
from submittal_review.storage.corpus import load_corpus_chunks


async def main(chunks_path: str, start_from: int, resume: bool) -> None:
    settings = Settings()
    setup_logging(settings.log_level, settings.json_logs)

    if not settings.google_api_key:
        print("ERROR: SUBMITTAL_GOOGLE_API_KEY not set.")
        sys.exit(1)

    previous = None
    if resume:
        checkpoint = GraphBuildCheckpoint.load(settings.checkpoint_path)
        if checkpoint and not checkpoint.completed:
            previous = checkpoint
            start_from = checkpoint.last_processed_window
            print(f"Resuming from window {start_from}")

    try:
        chunks = load_corpus_chunks(chunks_path)
    except ConfigurationError as e:
        print(f"ERROR: {e}")
        sys.exit(1)
    print(f"Loaded {len(chunks)} chunks")

    llm = GeminiProvider(
        api_key=settings.google_api_key,
        model=settings.gemini_extraction_model,
        max_tokens=settings.gemini_max_tokens,
    )
    store = RedisGraphStore.from_url(settings.redis_url, settings.redis_socket_timeout_s)
    pipeline = GraphBuildPipeline(GraphExtractor(llm), store, settings)

    try:
        result = await pipeline.run(chunks, start_from=start_from, previous=previous)
    finally:
        await store.close()

    print(f"Windows processed: {result.last_processed_window}/{result.total_windows}")
    print(f"Entities written:  {result.total_entities}")
    print(f"Relationships:     {result.total_relationships}")
    print(f"Errors:            {result.errors}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Build the corpus knowledge graph")
    parser.add_argument("--chunks", default=None, help="Path to the corpus chunk JSON file")
    parser.add_argument("--start-from", type=int, default=0, help="Window offset to resume from")
    parser.add_argument("--resume", action="store_true", help="Resume from the saved checkpoint")
    args = parser.parse_args()
    asyncio.run(main(args.chunks or Settings().corpus_chunks_path, args.start_from, args.resume))
