"""
Conversation context models for the context window manager.

These are value objects: a ConversationContext is rebuilt from durable
storage on every inbound message and trimming returns new instances
instead of mutating the input.
"""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

from siyaq.core.constants import (
    DEFAULT_EMERGENCY_TRIM_TOKENS,
    DEFAULT_MAX_CONTEXT_TOKENS,
    DEFAULT_SUMMARY_THRESHOLD,
)


class ConversationTurn(BaseModel):
    """A single persisted chat message."""

    role: str = Field(..., min_length=1, description="Message author role: user, assistant, system")
    content: str = Field(default="", description="Message text")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC), description="When the message was sent")


class ConversationContext(BaseModel):
    """Ordered conversation history plus optional compressed memory.

    ``messages`` is ordered oldest to newest. ``summary`` only ever covers
    messages that were removed from the visible window.
    """

    model_config = ConfigDict(populate_by_name=True)

    messages: list[ConversationTurn] = Field(default_factory=list)
    summary: str | None = Field(default=None, description="Summary of trimmed-away turns")
    key_points: list[str] | None = Field(
        default=None,
        alias="keyPoints",
        description="Salient facts preserved across trims",
    )


class TokenBudget(BaseModel):
    """Token thresholds for a model's context window.

    Invariant: emergency_trim_tokens < summary_threshold < max_context_tokens.
    """

    model_config = ConfigDict(frozen=True)

    max_context_tokens: int = Field(default=DEFAULT_MAX_CONTEXT_TOKENS, gt=0)
    summary_threshold: int = Field(default=DEFAULT_SUMMARY_THRESHOLD, gt=0)
    emergency_trim_tokens: int = Field(default=DEFAULT_EMERGENCY_TRIM_TOKENS, gt=0)

    @model_validator(mode="after")
    def validate_order(self) -> TokenBudget:
        if not self.emergency_trim_tokens < self.summary_threshold < self.max_context_tokens:
            raise ValueError(
                "token budget must satisfy emergency_trim_tokens < summary_threshold < max_context_tokens"
            )
        return self


class TokenUsage(BaseModel):
    """Token usage reported by a model invocation."""

    model_config = ConfigDict(populate_by_name=True)

    prompt_tokens: int = Field(default=0, ge=0, alias="promptTokens")
    completion_tokens: int = Field(default=0, ge=0, alias="completionTokens")

    @computed_field(alias="totalTokens")  # type: ignore[prop-decorator]
    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens

    def __add__(self, other: TokenUsage) -> TokenUsage:
        return TokenUsage(
            prompt_tokens=self.prompt_tokens + other.prompt_tokens,
            completion_tokens=self.completion_tokens + other.completion_tokens,
        )


class ModelResponse(BaseModel):
    """Text returned by one hosted model call."""

    content: str
    model: str = Field(..., description="Display name of the model that produced the content")
    usage: TokenUsage = Field(default_factory=TokenUsage)
