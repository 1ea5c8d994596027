"""
Summarization service backing the ``/ai/summarize`` and ``/ai/extract-points`` endpoints.

Compresses conversation text into a short paragraph, or a list of key
points, with a hosted chat model.
"""

from __future__ import annotations

import re

from typing import TYPE_CHECKING

from siyaq.core.constants import MAX_KEY_POINTS, SUMMARY_MAX_COMPLETION_TOKENS
from siyaq.core.prompts import CONVERSATION_SUMMARIZATION_INSTRUCTIONS, KEY_POINTS_EXTRACTION_INSTRUCTIONS
from siyaq.utils.logger import logger

if TYPE_CHECKING:
    from openai import AsyncOpenAI

# Leading list markers: "-", "*", "•", "1.", "2)", "١."
_BULLET_PATTERN = re.compile(r"^\s*(?:[-*•]|[0-9٠-٩]+[.)])\s*")


def parse_key_points(text: str, limit: int = MAX_KEY_POINTS) -> list[str]:
    """Split model output into at most ``limit`` points, one per non-empty line."""
    points = []
    for line in text.splitlines():
        point = _BULLET_PATTERN.sub("", line).strip()
        if point:
            points.append(point)
        if len(points) >= limit:
            break
    return points


class SummarizationService:
    """Generate conversation summaries and key points.

    Summaries capture:
    - Main user requests and goals
    - Important answers, decisions and facts
    - Open questions or pending next steps
    """

    def __init__(self, client: AsyncOpenAI, model: str) -> None:
        """Initialize summarization service.

        Args:
            client: AsyncOpenAI client for the summary model's provider
            model: Chat model used for summaries
        """
        self._client = client
        self.model = model

    async def summarize(self, text: str, language: str = "ar") -> str:
        """Summarize conversation text.

        Errors from the provider propagate as ``openai.APIError``.
        """
        response = await self._client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": CONVERSATION_SUMMARIZATION_INSTRUCTIONS},
                {"role": "user", "content": f"Language: {language}\n\nSummarize this conversation:\n\n{text}"},
            ],
            max_tokens=SUMMARY_MAX_COMPLETION_TOKENS,
            temperature=0.3,  # Lower temperature for consistent summaries
        )

        summary = (response.choices[0].message.content or "").strip()
        logger.info("Generated conversation summary", summary_length=len(summary), language=language)
        return summary

    async def extract_key_points(self, text: str, language: str = "ar") -> list[str]:
        """Extract up to MAX_KEY_POINTS key points from assistant text."""
        response = await self._client.chat.completions.create(
            model=self.model,
            messages=[
                {
                    "role": "system",
                    "content": KEY_POINTS_EXTRACTION_INSTRUCTIONS.format(max_points=MAX_KEY_POINTS),
                },
                {"role": "user", "content": f"Language: {language}\n\n{text}"},
            ],
            max_tokens=SUMMARY_MAX_COMPLETION_TOKENS,
            temperature=0.3,
        )

        points = parse_key_points(response.choices[0].message.content or "")
        logger.info(f"Extracted {len(points)} key points", language=language)
        return points
