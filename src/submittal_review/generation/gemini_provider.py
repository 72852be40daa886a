"""Google Gemini LLM provider using the google-genai SDK."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator
from typing import TypeVar

from google import genai
from google.genai import types
from pydantic import BaseModel

from submittal_review.exceptions import GenerationError
from submittal_review.observability.logger import get_logger

logger = get_logger("gemini")

T = TypeVar("T", bound=BaseModel)


class GeminiProvider:
    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.5-flash",
        max_tokens: int = 8192,
        client: genai.Client | None = None,
    ) -> None:
        self._client = client or genai.Client(api_key=api_key)
        self._model = model
        self._max_tokens = max_tokens

    @property
    def model(self) -> str:
        return self._model

    def with_model(self, model: str) -> GeminiProvider:
        """A provider sharing this client but targeting another model."""
        return GeminiProvider(
            api_key="", model=model, max_tokens=self._max_tokens, client=self._client
        )

    def _config(self, system: str | None, temperature: float, max_tokens: int | None = None, **extra):
        config = types.GenerateContentConfig(
            temperature=temperature,
            max_output_tokens=max_tokens or self._max_tokens,
            **extra,
        )
        if system:
            config.system_instruction = system
        return config

    async def generate(
        self,
        prompt: str,
        system: str | None = None,
        temperature: float = 0.0,
        max_tokens: int = 8192,
    ) -> str:
        try:
            response = await self._client.aio.models.generate_content(
                model=self._model,
                contents=prompt,
                config=self._config(system, temperature, max_tokens),
            )
            return response.text or ""
        except Exception as e:
            raise GenerationError(f"Gemini generation failed: {e}") from e

    async def generate_structured(
        self,
        prompt: str,
        response_schema: type[T],
        system: str | None = None,
    ) -> T:
        try:
            response = await self._client.aio.models.generate_content(
                model=self._model,
                contents=prompt,
                config=self._config(
                    system,
                    0.0,
                    response_mime_type="application/json",
                    response_schema=response_schema,
                ),
            )
            if isinstance(response.parsed, response_schema):
                return response.parsed
            data = json.loads(response.text or "")
            return response_schema.model_validate(data)
        except Exception as e:
            raise GenerationError(f"Gemini structured generation failed: {e}") from e

    async def generate_stream(
        self,
        prompt: str,
        system: str | None = None,
        temperature: float = 0.0,
    ) -> AsyncIterator[str]:
        try:
            stream = await self._client.aio.models.generate_content_stream(
                model=self._model,
                contents=prompt,
                config=self._config(system, temperature),
            )
            async for chunk in stream:
                if chunk.text:
                    yield chunk.text
        except Exception as e:
            raise GenerationError(f"Gemini streaming failed: {e}") from e
