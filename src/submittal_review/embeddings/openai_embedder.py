"""OpenAI embedding provider for corpus chunks and review queries."""

from __future__ import annotations

import re

from openai import AsyncOpenAI

from submittal_review.exceptions import EmbeddingError
from submittal_review.observability.logger import get_logger

logger = get_logger("embeddings")


def prepare_text(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


class OpenAIEmbedder:
    def __init__(
        self,
        api_key: str,
        model: str = "text-embedding-3-small",
        batch_size: int = 100,
        dimensions: int = 1536,
    ) -> None:
        self._client = AsyncOpenAI(api_key=api_key)
        self._model = model
        self._batch_size = batch_size
        self._dimensions = dimensions

    @property
    def dimensions(self) -> int:
        return self._dimensions

    @property
    def model(self) -> str:
        return self._model

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        all_embeddings: list[list[float]] = []
        try:
            for i in range(0, len(texts), self._batch_size):
                batch = [prepare_text(t) for t in texts[i : i + self._batch_size]]
                response = await self._client.embeddings.create(
                    input=batch, model=self._model, dimensions=self._dimensions
                )
                all_embeddings.extend(item.embedding for item in response.data)
                logger.debug("embedded_batch", offset=i, size=len(batch))
        except Exception as e:
            raise EmbeddingError(f"Failed to embed {len(texts)} texts: {e}") from e
        logger.info("embedded_texts", count=len(texts), model=self._model)
        return all_embeddings

    async def embed_query(self, query: str) -> list[float]:
        try:
            response = await self._client.embeddings.create(
                input=[prepare_text(query)], model=self._model, dimensions=self._dimensions
            )
            return response.data[0].embedding
        except Exception as e:
            raise EmbeddingError(f"Failed to embed query: {e}") from e
