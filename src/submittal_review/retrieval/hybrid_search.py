"""Vector search over the corpus, optionally expanded through the knowledge graph."""

from __future__ import annotations

from submittal_review.config.settings import Settings
from submittal_review.exceptions import (
    EmbeddingError,
    GraphUnavailable,
    RetrievalIndexError,
    RetrievalQueryFailure,
)
from submittal_review.models.domain import EvidenceReference
from submittal_review.observability.logger import get_logger
from submittal_review.protocols.embedder import Embedder
from submittal_review.protocols.graph_store import KnowledgeGraphStore
from submittal_review.protocols.retrieval_index import RetrievalIndex

logger = get_logger("hybrid_search")


class HybridSearcher:
    def __init__(
        self,
        embedder: Embedder,
        index: RetrievalIndex,
        graph_store: KnowledgeGraphStore | None,
        settings: Settings,
    ) -> None:
        self._embedder = embedder
        self._index = index
        self._graph = graph_store
        self._settings = settings

    async def search(self, query: str, mode: str | None = None) -> list[EvidenceReference]:
        """Search in the configured mode.

        Raises RetrievalQueryFailure when embedding or the index fails.
        """
        s = self._settings
        try:
            if (mode or s.rag_mode) == "graph":
                return await self.hybrid_search(
                    query, s.vector_top_k, s.graph_hops, s.max_graph_chunks
                )
            return await self.search_vector(query, s.vector_top_k)
        except (EmbeddingError, RetrievalIndexError) as e:
            raise RetrievalQueryFailure(f"Query failed: {e}") from e

    async def search_vector(self, query: str, top_k: int) -> list[EvidenceReference]:
        vector = await self._embedder.embed_query(query)
        hits = await self._index.query(vector, top_k)
        return [
            EvidenceReference(
                chunk=chunk,
                score=score,
                origin="vector",
                corpus_label=self._settings.corpus_label,
            )
            for chunk, score in hits
        ]

    async def hybrid_search(
        self, query: str, top_k: int, max_hops: int, max_graph_chunks: int
    ) -> list[EvidenceReference]:
        """Vector hits followed by graph-neighbourhood chunks.

        Any graph store failure degrades to the vector hits alone.
        """
        vector_results = await self.search_vector(query, top_k)
        if self._graph is None or not vector_results:
            return vector_results

        seen = {r.chunk.chunk_id for r in vector_results}
        try:
            entity_ids = await self._graph.entities_for_chunks(list(seen))
            if not entity_ids:
                return vector_results
            related = await self._graph.traverse(sorted(entity_ids), max_hops, max_graph_chunks)
        except GraphUnavailable as e:
            logger.warning("graph_degraded", query=query[:80], error=str(e))
            return vector_results

        new_ids = [cid for cid in related if cid not in seen]
        if not new_ids:
            return vector_results

        graph_results = [
            EvidenceReference(
                chunk=chunk,
                score=self._settings.graph_synthetic_score,
                origin="graph",
                corpus_label=self._settings.corpus_label,
            )
            for chunk in await self._index.fetch(new_ids)
        ]
        logger.debug(
            "hybrid_results",
            vector=len(vector_results),
            entities=len(entity_ids),
            graph=len(graph_results),
        )
        return vector_results + graph_results
