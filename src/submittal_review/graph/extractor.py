"""Two-strategy structured extraction of entities and relationships.

The primary strategy asks the provider for schema-constrained output. When
that fails the free-text strategy runs with explicit JSON-shape instructions
and the first ``{...}`` block of the reply is validated against the same
schema. Only when both fail does the caller see an error.
"""

from __future__ import annotations

import json
import re

from pydantic import ValidationError

from submittal_review.exceptions import GenerationError, StructuredOutputParseFailure
from submittal_review.generation.prompt_templates import (
    GRAPH_EXTRACTION_JSON_INSTRUCTIONS,
    GRAPH_EXTRACTION_SYSTEM,
    format_window_batch,
)
from submittal_review.models.domain import ChunkWindow
from submittal_review.models.graph_schema import GraphExtraction
from submittal_review.observability.logger import get_logger
from submittal_review.protocols.llm import LLMProvider

logger = get_logger("graph_extractor")

_JSON_BLOCK = re.compile(r"\{[\s\S]*\}")


def parse_json_block(text: str) -> dict:
    """Pull the outermost JSON object out of a reply, tolerating markdown fences."""
    match = _JSON_BLOCK.search(text)
    if not match:
        raise ValueError("no JSON object found in response")
    return json.loads(match.group(0))


class GraphExtractor:
    def __init__(self, llm: LLMProvider) -> None:
        self._llm = llm

    async def extract(self, windows: list[ChunkWindow], batch_index: int = 0) -> GraphExtraction:
        prompt = format_window_batch(windows)

        try:
            return await self._llm.generate_structured(
                prompt, GraphExtraction, system=GRAPH_EXTRACTION_SYSTEM
            )
        except GenerationError as e:
            logger.warning("structured_extraction_failed", batch=batch_index, error=str(e))

        try:
            text = await self._llm.generate(
                prompt,
                system=GRAPH_EXTRACTION_SYSTEM + GRAPH_EXTRACTION_JSON_INSTRUCTIONS,
                temperature=0.0,
            )
            return GraphExtraction.model_validate(parse_json_block(text))
        except (GenerationError, ValueError, ValidationError) as e:
            logger.error("fallback_extraction_failed", batch=batch_index, error=str(e))
            raise StructuredOutputParseFailure(
                f"Extraction failed for batch {batch_index}: {e}"
            ) from e
