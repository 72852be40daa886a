"""Bounded-concurrency fan-out of retrieval queries with per-query result slots."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

from submittal_review.models.domain import EvidenceReference, QueryOutcome
from submittal_review.observability.logger import get_logger

logger = get_logger("fanout")

SearchFn = Callable[[str], Awaitable[list[EvidenceReference]]]


async def run_queries(
    queries: list[str], search: SearchFn, concurrency: int = 4
) -> list[QueryOutcome]:
    """Run every query, at most ``concurrency`` at a time.

    Each query fills its own slot; a failing query yields an empty slot with
    the error recorded and never affects its siblings. Slots come back in
    query order.
    """
    semaphore = asyncio.Semaphore(max(1, concurrency))

    async def run_one(query: str) -> QueryOutcome:
        async with semaphore:
            try:
                return QueryOutcome(query=query, results=await search(query))
            except Exception as e:
                logger.warning("query_failed", query=query[:80], error=str(e))
                return QueryOutcome(query=query, results=[], error=f"{type(e).__name__}: {e}")

    return list(await asyncio.gather(*(run_one(q) for q in queries)))


def flatten(outcomes: list[QueryOutcome]) -> list[EvidenceReference]:
    return [ref for outcome in outcomes for ref in outcome.results]
