"""
Context window API routes.

Token estimation and context optimization for a conversation that is
about to receive a new user message.
"""

from __future__ import annotations

from fastapi import APIRouter

from siyaq.api.dependencies import Tokens
from siyaq.models.api_models import (
    EstimateRequest,
    EstimateResponse,
    OptimizeContextRequest,
    OptimizeContextResponse,
)

router = APIRouter(prefix="/context")


@router.post(
    "/estimate",
    response_model=EstimateResponse,
    summary="Estimate tokens",
    description="Estimate the token count of a text with the configured counting strategy.",
)
async def estimate(request: EstimateRequest, tokens: Tokens) -> EstimateResponse:
    """Estimate tokens for a block of text."""
    return EstimateResponse(tokens=tokens.estimate_tokens(request.text))


@router.post(
    "/optimize",
    response_model=OptimizeContextResponse,
    summary="Optimize context",
    description=(
        "Fit a conversation into the context window for a new message: trim and "
        "summarize older turns when over budget, then assemble the model prompt."
    ),
)
async def optimize(request: OptimizeContextRequest, tokens: Tokens) -> OptimizeContextResponse:
    """Trim the history if needed and build the prompt for ``newMessage``."""
    context = request.to_context()
    optimized = await tokens.optimize_context(context, request.new_message)
    estimated = tokens.estimate_context_tokens(optimized) + tokens.estimate_tokens(request.new_message)

    return OptimizeContextResponse(
        context=optimized,
        prompt=tokens.optimize_prompt(request.new_message, optimized),
        estimated_tokens=estimated,
        trimmed=optimized is not context,
        approaching_limit=tokens.should_summarize(estimated),
    )
