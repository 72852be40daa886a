"""Protocol for LLM providers."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Protocol, TypeVar

from pydantic import BaseModel

T = TypeVar("T", bound=BaseModel)


class LLMProvider(Protocol):
    async def generate(
        self,
        prompt: str,
        system: str | None = None,
        temperature: float = 0.0,
        max_tokens: int = 8192,
    ) -> str: ...

    async def generate_structured(
        self,
        prompt: str,
        response_schema: type[T],
        system: str | None = None,
    ) -> T: ...

    def generate_stream(
        self,
        prompt: str,
        system: str | None = None,
        temperature: float = 0.0,
    ) -> AsyncIterator[str]: ...
