"""Retrieval debug endpoint: the evidence a query would contribute to a review."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from submittal_review.api.dependencies import get_searcher, get_settings
from submittal_review.config.settings import Settings
from submittal_review.exceptions import SubmittalReviewError
from submittal_review.models.schemas import SearchHit, SearchRequest, SearchResponse
from submittal_review.retrieval.filters import filter_results
from submittal_review.retrieval.hybrid_search import HybridSearcher
from submittal_review.retrieval.ranking import rank_and_select

router = APIRouter()


@router.post("/search", response_model=SearchResponse)
async def search(
    request: SearchRequest,
    searcher: HybridSearcher = Depends(get_searcher),
    settings: Settings = Depends(get_settings),
) -> SearchResponse:
    mode = request.mode or settings.rag_mode
    try:
        if mode == "graph":
            raw = await searcher.hybrid_search(
                request.query, request.top_k, settings.graph_hops, settings.max_graph_chunks
            )
        else:
            raw = await searcher.search_vector(request.query, request.top_k)
    except SubmittalReviewError as e:
        raise HTTPException(status_code=500, detail=str(e))

    selected = rank_and_select(
        filter_results(raw, settings.min_content_chars),
        max_total=request.top_k,
        max_graph=settings.max_total_graph_refs,
    )
    return SearchResponse(
        query=request.query,
        mode=mode,
        raw_count=len(raw),
        hits=[
            SearchHit(
                reference=ref.reference,
                content=ref.content,
                score=round(ref.score, 4),
                origin=ref.origin,
            )
            for ref in selected
        ],
    )
