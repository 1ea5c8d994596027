"""
Summarization API routes.

Server side of the summarizer contract used by the context trimmer:
``{text, language}`` in, ``{summary}`` or ``{keyPoints}`` out.
"""

from __future__ import annotations

from fastapi import APIRouter

from siyaq.api.dependencies import Summarizer
from siyaq.models.api_models import KeyPointsResponse, SummarizeRequest, SummarizeResponse

router = APIRouter(prefix="/ai")


@router.post(
    "/summarize",
    response_model=SummarizeResponse,
    summary="Summarize conversation",
    description="Compress conversation text into one short paragraph.",
)
async def summarize(request: SummarizeRequest, service: Summarizer) -> SummarizeResponse:
    """Summarize conversation text."""
    summary = await service.summarize(request.text, request.language)
    return SummarizeResponse(summary=summary)


@router.post(
    "/extract-points",
    response_model=KeyPointsResponse,
    summary="Extract key points",
    description="Extract salient facts from assistant messages, one string per point.",
)
async def extract_points(request: SummarizeRequest, service: Summarizer) -> KeyPointsResponse:
    """Extract key points from assistant text."""
    points = await service.extract_key_points(request.text, request.language)
    return KeyPointsResponse(key_points=points)
