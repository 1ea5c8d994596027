"""
Chat completion route (v1).

Runs one user message through the context window manager and the model
workflow for its request type.
"""

from __future__ import annotations

from fastapi import APIRouter

from siyaq.api.dependencies import Chat
from siyaq.models.api_models import ChatRequest, ChatResponse, StageResultModel

router = APIRouter(prefix="/chat")


@router.post(
    "/completions",
    response_model=ChatResponse,
    summary="Chat completion",
    description=(
        "Fit the conversation into the context window, classify the message and "
        "run it through the matching multi-model workflow."
    ),
)
async def chat_completion(request: ChatRequest, chat: Chat) -> ChatResponse:
    """Answer one user message."""
    outcome = await chat.respond(request.to_context(), request.message, request.preferences)
    result = outcome.result

    return ChatResponse(
        content=result.content,
        model=result.model,
        request_type=result.request_type.value,
        usage=result.usage,
        partial=result.partial,
        failed_stage=result.failed_stage,
        stages=[
            StageResultModel(
                stage=stage.stage,
                model=stage.model,
                content=stage.content,
                duration_ms=stage.duration_ms,
            )
            for stage in result.stages
        ],
        response_time_ms=result.response_time_ms,
        context=outcome.context,
        prompt_tokens_estimate=outcome.prompt_tokens_estimate,
    )
