"""
Models Module - Data Models and Type Definitions
=================================================

Pydantic v2 models for the context layer, the HTTP API and error envelopes.

Modules:
    context_models: ConversationTurn, ConversationContext, TokenBudget,
        TokenUsage and ModelResponse value objects
    api_models: Request/response schemas for the v1 routes
    error_models: ErrorCode enum and the {"error": {...}} response envelope
"""

from siyaq.models.context_models import (
    ConversationContext,
    ConversationTurn,
    ModelResponse,
    TokenBudget,
    TokenUsage,
)

__all__ = [
    "ConversationContext",
    "ConversationTurn",
    "ModelResponse",
    "TokenBudget",
    "TokenUsage",
]
