"""
Request and response schemas for the Siyaq HTTP API.

Field names follow the camelCase wire format used by the chat frontend
(``keyPoints``, ``promptTokens``); Python attributes stay snake_case.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from siyaq.models.context_models import ConversationContext, ConversationTurn, TokenUsage


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# =============================================================================
# Context
# =============================================================================


class EstimateRequest(BaseModel):
    """Text whose token count should be estimated."""

    text: str = Field(default="", max_length=1_000_000)


class EstimateResponse(BaseModel):
    tokens: int = Field(..., ge=0, description="Estimated token count")


class OptimizeContextRequest(_CamelModel):
    """History plus incoming message to fit into the context window."""

    messages: list[ConversationTurn] = Field(default_factory=list, description="Full history, oldest first")
    summary: str | None = None
    key_points: list[str] | None = Field(default=None, alias="keyPoints")
    new_message: str = Field(..., min_length=1, alias="newMessage")

    def to_context(self) -> ConversationContext:
        return ConversationContext(messages=self.messages, summary=self.summary, key_points=self.key_points)


class OptimizeContextResponse(_CamelModel):
    context: ConversationContext
    prompt: str = Field(..., description="Assembled prompt handed to the model layer")
    estimated_tokens: int = Field(..., alias="estimatedTokens", description="Tokens of context plus new message")
    trimmed: bool = Field(..., description="Whether the history was trimmed")
    approaching_limit: bool = Field(..., alias="approachingLimit")


# =============================================================================
# Summarizer service
# =============================================================================


class SummarizeRequest(BaseModel):
    """Payload accepted by the summarize and extract-points endpoints."""

    text: str = Field(..., min_length=1, max_length=500_000)
    language: str = Field(default="ar", min_length=2, max_length=8)


class SummarizeResponse(BaseModel):
    summary: str


class KeyPointsResponse(_CamelModel):
    key_points: list[str] = Field(default_factory=list, alias="keyPoints")


# =============================================================================
# Chat
# =============================================================================


class ChatRequest(_CamelModel):
    """One inbound chat message with the conversation it belongs to."""

    messages: list[ConversationTurn] = Field(default_factory=list)
    summary: str | None = None
    key_points: list[str] | None = Field(default=None, alias="keyPoints")
    message: str = Field(..., min_length=1, max_length=100_000)
    preferences: dict[str, Any] | None = Field(default=None, description="User preference flags, passed through")

    def to_context(self) -> ConversationContext:
        return ConversationContext(messages=self.messages, summary=self.summary, key_points=self.key_points)


class StageResultModel(_CamelModel):
    stage: str
    model: str
    content: str
    duration_ms: float = Field(..., alias="durationMs")


class ChatResponse(_CamelModel):
    content: str
    model: str
    request_type: str = Field(..., alias="requestType")
    usage: TokenUsage
    partial: bool = False
    failed_stage: str | None = Field(default=None, alias="failedStage")
    stages: list[StageResultModel] = Field(default_factory=list)
    response_time_ms: float = Field(..., alias="responseTimeMs")
    context: ConversationContext
    prompt_tokens_estimate: int = Field(..., alias="promptTokensEstimate")


# =============================================================================
# Health
# =============================================================================


class LivenessResponse(BaseModel):
    alive: bool = True


class HealthResponse(BaseModel):
    status: str = Field(default="healthy")
    version: str
    environment: str
    token_counting: str
    summary_cache: dict[str, Any] = Field(default_factory=dict)
