"""
Chat pipeline: context window management followed by model orchestration.

One call per inbound user message:
estimate -> optimize context -> assemble prompt -> run workflow.
"""

from __future__ import annotations

import time

from dataclasses import dataclass
from typing import Any

from siyaq.api.middleware.request_context import update_request_context
from siyaq.models.context_models import ConversationContext
from siyaq.utils.logger import logger

from .orchestrator import WorkflowOrchestrator, WorkflowResult
from .token_manager import TokenManager


@dataclass(slots=True)
class ChatOutcome:
    """Workflow result together with the context it was produced from."""

    result: WorkflowResult
    context: ConversationContext
    prompt_tokens_estimate: int


class ChatService:
    """Answer a user message within the conversation's context budget."""

    def __init__(self, token_manager: TokenManager, orchestrator: WorkflowOrchestrator):
        self.token_manager = token_manager
        self.orchestrator = orchestrator

    async def respond(
        self,
        context: ConversationContext,
        message: str,
        preferences: dict[str, Any] | None = None,
    ) -> ChatOutcome:
        """Fit ``context`` to the budget, build the prompt and run the workflow."""
        start = time.perf_counter()

        optimized = await self.token_manager.optimize_context(context, message)
        update_request_context(history_messages=len(context.messages), context_trimmed=optimized is not context)
        prompt = self.token_manager.optimize_prompt(message, optimized)
        prompt_tokens = self.token_manager.estimate_tokens(prompt)

        result = await self.orchestrator.process_request(prompt, message, preferences)

        logger.log_chat_turn(
            user_input=message,
            response=result.content,
            request_type=result.request_type.value,
            duration_ms=(time.perf_counter() - start) * 1000,
            tokens_used=result.usage.total_tokens,
            partial=result.partial,
        )

        return ChatOutcome(result=result, context=optimized, prompt_tokens_estimate=prompt_tokens)
