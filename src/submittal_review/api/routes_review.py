"""Submittal review endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import StreamingResponse

from submittal_review.api.dependencies import get_review_pipeline
from submittal_review.models.domain import UploadedDocument
from submittal_review.models.schemas import ReviewResponse
from submittal_review.pipeline.review_pipeline import ReviewPipeline

router = APIRouter()


def format_sse(event: str, data: str) -> str:
    lines = data.split("\n") or [""]
    body = "".join(f"data: {line}\n" for line in lines)
    return f"event: {event}\n{body}\n"


async def _first_document(files: list[UploadFile]) -> UploadedDocument | None:
    if not files:
        return None
    upload = files[0]
    return UploadedDocument(
        filename=upload.filename or "submittal.pdf",
        content_type=upload.content_type or "application/pdf",
        data=await upload.read(),
    )


@router.post("/review")
async def review_stream(
    files: list[UploadFile] = File(default=[]),
    pipeline: ReviewPipeline = Depends(get_review_pipeline),
):
    """Stream a review via Server-Sent Events. Only the first file is reviewed."""
    document = await _first_document(files)

    async def event_generator():
        async for event in pipeline.execute_stream(document):
            yield format_sse(event["event"], event["data"])

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@router.post("/review/sync", response_model=ReviewResponse)
async def review_sync(
    files: list[UploadFile] = File(default=[]),
    pipeline: ReviewPipeline = Depends(get_review_pipeline),
) -> ReviewResponse:
    return await pipeline.execute(await _first_document(files))
