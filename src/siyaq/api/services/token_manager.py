"""
Context window management.

Decides when a conversation no longer fits the model's context window and
shrinks it: older turns are replaced by a summary, the recent tail is kept
verbatim, and an emergency trim cuts the tail further when even that is too
large. Contexts are never mutated; trimming returns a new instance.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from siyaq.core.constants import EMERGENCY_MESSAGES_KEPT, RECENT_MESSAGES_KEPT, Settings
from siyaq.core.prompts import FALLBACK_SUMMARY_TEMPLATE
from siyaq.models.context_models import ConversationContext, ConversationTurn, TokenBudget
from siyaq.utils.logger import logger
from siyaq.utils.metrics import context_optimizations_total, context_tokens, summarizer_requests_total
from siyaq.utils.token_utils import (
    TokenCounter,
    estimate_context_tokens,
    estimate_tokens,
    get_token_counter,
)

from .prompt_assembler import assemble_prompt
from .summarizer_gateway import SummarizationError

FALLBACK_DATE_FORMAT = "%Y-%m-%d"


class Summarizer(Protocol):
    """What the trimmer needs from a summarization backend."""

    async def summarize(self, messages: Sequence[ConversationTurn]) -> str: ...

    async def extract_key_points(self, messages: Sequence[ConversationTurn]) -> list[str]: ...


def fallback_summary(messages: Sequence[ConversationTurn]) -> str:
    """Deterministic summary used when the summarizer is unavailable."""
    return FALLBACK_SUMMARY_TEMPLATE.format(
        count=len(messages),
        first=messages[0].timestamp.strftime(FALLBACK_DATE_FORMAT),
        last=messages[-1].timestamp.strftime(FALLBACK_DATE_FORMAT),
    )


class TokenManager:
    """Fits conversation contexts into a token budget."""

    def __init__(
        self,
        summarizer: Summarizer,
        budget: TokenBudget | None = None,
        counter: TokenCounter = estimate_tokens,
    ):
        self.summarizer = summarizer
        self.budget = budget or TokenBudget()
        self.counter = counter

    @classmethod
    def from_settings(cls, summarizer: Summarizer, settings: Settings) -> TokenManager:
        """Build a manager with the configured budget and counting strategy."""
        budget = TokenBudget(
            max_context_tokens=settings.max_context_tokens,
            summary_threshold=settings.summary_threshold,
            emergency_trim_tokens=settings.emergency_trim_tokens,
        )
        counter = get_token_counter(settings.token_counting, settings.token_model)
        return cls(summarizer, budget=budget, counter=counter)

    def estimate_tokens(self, text: str) -> int:
        return self.counter(text)

    def estimate_context_tokens(self, context: ConversationContext) -> int:
        """Tokens of all messages plus the summary."""
        return estimate_context_tokens(context, self.counter)

    def should_summarize(self, tokens: int) -> bool:
        """True once ``tokens`` passes the summary trigger threshold."""
        if tokens > self.budget.summary_threshold:
            logger.info(
                f"Context approaching limit: {tokens}/{self.budget.max_context_tokens} tokens",
                tokens=tokens,
                threshold=self.budget.summary_threshold,
            )
            return True
        return False

    async def optimize_context(self, context: ConversationContext, new_message: str) -> ConversationContext:
        """Return a context that fits the budget together with ``new_message``.

        Contexts that already fit (ties included) are returned as the same
        object. Otherwise the trimmed copy from ``trim_context``.
        """
        current_tokens = self.estimate_context_tokens(context)
        new_message_tokens = self.counter(new_message)
        total = current_tokens + new_message_tokens
        context_tokens.observe(total)

        if total > self.budget.max_context_tokens:
            logger.info(
                f"Context over budget ({total}/{self.budget.max_context_tokens}), trimming",
                tokens=total,
                messages_count=len(context.messages),
            )
            return await self.trim_context(context)

        context_optimizations_total.labels(outcome="unchanged").inc()
        return context

    async def trim_context(self, context: ConversationContext) -> ConversationContext:
        """Keep the recent tail, summarize older turns, emergency-trim if still large.

        An existing summary is reused as is. Key points pass through untouched.
        """
        recent = context.messages[-RECENT_MESSAGES_KEPT:]
        older = context.messages[:-RECENT_MESSAGES_KEPT]

        summary = context.summary
        if older and not summary:
            summary = await self._create_summary(older)

        trimmed = ConversationContext(
            messages=list(recent),
            summary=summary,
            key_points=context.key_points,
        )

        trimmed_tokens = self.estimate_context_tokens(trimmed)
        if trimmed_tokens > self.budget.emergency_trim_tokens:
            logger.warning(
                f"Emergency trim: {trimmed_tokens} tokens above floor {self.budget.emergency_trim_tokens}",
                tokens=trimmed_tokens,
            )
            trimmed = trimmed.model_copy(update={"messages": recent[-EMERGENCY_MESSAGES_KEPT:]})
            context_optimizations_total.labels(outcome="emergency").inc()
        else:
            context_optimizations_total.labels(outcome="trimmed").inc()

        return trimmed

    async def _create_summary(self, messages: Sequence[ConversationTurn]) -> str:
        """Summary from the summarizer, or the templated fallback on failure."""
        try:
            return await self.summarizer.summarize(messages)
        except SummarizationError as e:
            logger.error(f"Error creating summary: {e}", messages_count=len(messages))
            summarizer_requests_total.labels(status="fallback").inc()
            return fallback_summary(messages)

    async def extract_key_points(self, messages: Sequence[ConversationTurn]) -> list[str]:
        """Key points from the assistant's turns; empty on failure."""
        return await self.summarizer.extract_key_points(messages)

    def optimize_prompt(self, user_message: str, context: ConversationContext) -> str:
        """Assemble the model prompt for ``user_message`` on top of ``context``."""
        return assemble_prompt(context, user_message)
