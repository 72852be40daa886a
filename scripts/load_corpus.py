"""Load the pre-chunked corpus into the SQLite chunk store and FAISS index.

Usage:
    python scripts/load_corpus.py [--chunks PATH] [--batch-size N]
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from submittal_review.config.settings import Settings
from submittal_review.embeddings.cache import EmbeddingCache
from submittal_review.embeddings.cached_embedder import CachedEmbedder
from submittal_review.embeddings.openai_embedder import OpenAIEmbedder, prepare_text
from submittal_review.exceptions import ConfigurationError
from submittal_review.observability.logger import setup_logging
from submittal_review.retrieval.corpus_index import CorpusIndex
from submittal_review.storage.corpus import load_corpus_chunks
from submittal_review.storage.sqlite_chunk_store import SQLiteChunkStore
from submittal_review.vectorstore.faiss_store import FAISSVectorStore


def embedding_text(chunk) -> str:
    return prepare_text(
        f"Section {chunk.section_number}: {chunk.section_title}. "
        f"Part {chunk.part_number}: {chunk.part_title}. "
        f"Clause {chunk.clause_number}: {chunk.clause_title}. {chunk.content}"
    )


async def main(chunks_path: str, batch_size: int) -> None:
    settings = Settings()
    setup_logging(settings.log_level, settings.json_logs)

    if not settings.openai_api_key:
        print("ERROR: SUBMITTAL_OPENAI_API_KEY not set.")
        sys.exit(1)

    try:
        chunks = load_corpus_chunks(chunks_path)
    except ConfigurationError as e:
        print(f"ERROR: {e}")
        sys.exit(1)
    print(f"Loaded {len(chunks)} chunks from {chunks_path}")
    if not chunks:
        print("Nothing to load.")
        return

    for path in [settings.sqlite_chunk_db_path, settings.embedding_cache_db_path, settings.faiss_index_path]:
        Path(path).parent.mkdir(parents=True, exist_ok=True)

    chunk_store = SQLiteChunkStore(settings.sqlite_chunk_db_path)
    await chunk_store.initialize()
    cache = EmbeddingCache(settings.embedding_cache_db_path, model=settings.embedding_model)
    await cache.initialize()
    embedder = CachedEmbedder(
        delegate=OpenAIEmbedder(
            api_key=settings.openai_api_key,
            model=settings.embedding_model,
            batch_size=settings.embedding_batch_size,
            dimensions=settings.embedding_dimensions,
        ),
        cache=cache,
    )
    vector_store = FAISSVectorStore(
        dimensions=settings.embedding_dimensions,
        index_path=settings.faiss_index_path,
    )
    index = CorpusIndex(vector_store=vector_store, chunk_store=chunk_store)

    for start in range(0, len(chunks), batch_size):
        batch = chunks[start : start + batch_size]
        embeddings = await embedder.embed_texts([embedding_text(c) for c in batch])
        await index.upsert(batch, embeddings)
        print(f"  {min(start + batch_size, len(chunks))}/{len(chunks)} chunks indexed")

    vector_store.save()
    print(f"Chunk store: {await chunk_store.count_chunks()} chunks")
    print(f"FAISS index: {vector_store.size} vectors")
    print("Done!")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Load corpus chunks into the retrieval index")
    parser.add_argument("--chunks", default=None, help="Path to the corpus chunk JSON file")
    parser.add_argument("--batch-size", type=int, default=500, help="Chunks embedded per batch")
    args = parser.parse_args()
    asyncio.run(main(args.chunks or Settings().corpus_chunks_path, args.batch_size))
