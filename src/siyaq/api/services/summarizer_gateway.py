"""
Client for the external summarization service.

Compresses trimmed-away conversation turns into a short paragraph and
extracts key points from assistant replies. The service is best-effort:
``summarize`` signals failure with SummarizationError and leaves the
fallback to the caller, ``extract_key_points`` degrades to an empty list.
"""

from __future__ import annotations

import asyncio
import time

from collections.abc import Sequence
from typing import Any

import httpx

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from siyaq.models.context_models import ConversationTurn
from siyaq.utils.cache import TTLCache
from siyaq.utils.logger import logger
from siyaq.utils.metrics import summarizer_duration_seconds, summarizer_requests_total
from siyaq.utils.token_utils import hash_text

# Upstream statuses worth one more attempt. 503 means the summarizer is not
# configured and fails fast.
RETRYABLE_STATUS_CODES = frozenset({500, 502, 504})


class SummarizationError(Exception):
    """The summarization service could not produce a summary."""


class _SummaryPayload(BaseModel):
    summary: str = Field(..., min_length=1)


class _KeyPointsPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    key_points: list[str] = Field(default_factory=list, alias="keyPoints")


def format_conversation(messages: Sequence[ConversationTurn]) -> str:
    """Render turns as ``role: content`` lines."""
    return "\n".join(f"{message.role}: {message.content}" for message in messages)


class SummarizerGateway:
    """HTTP gateway to the summarize / extract-points endpoints.

    Request: ``{"text": str, "language": str}``.
    Responses: ``{"summary": str}`` and ``{"keyPoints": [str, ...]}``.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        language: str = "ar",
        timeout: float = 15.0,
        retries: int = 1,
        cache: TTLCache | None = None,
    ) -> None:
        """Initialize the gateway.

        Args:
            client: Shared httpx client owned by the application lifespan
            base_url: URL exposing ``/summarize`` and ``/extract-points``
            language: Language hint sent with every request
            timeout: Per-attempt timeout in seconds
            retries: Extra attempts after a transport error, timeout or retryable 5xx
            cache: Optional summary cache keyed by conversation text hash
        """
        self._client = client
        self._base_url = base_url.rstrip("/")
        self._language = language
        self._timeout = timeout
        self._retries = retries
        self._cache = cache

    async def summarize(self, messages: Sequence[ConversationTurn]) -> str:
        """Summarize ``messages`` into a short paragraph.

        Raises:
            SummarizationError: On non-2xx, timeout, transport error or malformed response
        """
        text = format_conversation(messages)
        cache_key = f"summary:{self._language}:{hash_text(text)}"

        if self._cache is not None:
            cached_summary = await self._cache.get(cache_key)
            if cached_summary is not None:
                summarizer_requests_total.labels(status="cache_hit").inc()
                logger.debug(f"Summary cache hit for {len(messages)} messages")
                return str(cached_summary)

        start = time.monotonic()
        try:
            data = await self._post("/summarize", text)
            payload = _SummaryPayload.model_validate(data)
        except ValidationError as e:
            summarizer_requests_total.labels(status="error").inc()
            raise SummarizationError(f"Malformed summarizer response: {e.error_count()} errors") from e
        except SummarizationError:
            summarizer_requests_total.labels(status="error").inc()
            raise
        finally:
            summarizer_duration_seconds.observe(time.monotonic() - start)

        summarizer_requests_total.labels(status="success").inc()
        logger.info(
            f"Summarized {len(messages)} messages",
            summary_length=len(payload.summary),
        )

        if self._cache is not None:
            await self._cache.set(cache_key, payload.summary)
        return payload.summary

    async def extract_key_points(self, messages: Sequence[ConversationTurn]) -> list[str]:
        """Extract key points from the assistant side of ``messages``.

        Returns an empty list when there is nothing to extract or the
        service fails.
        """
        text = "\n".join(m.content for m in messages if m.role == "assistant" and m.content)
        if not text:
            return []

        try:
            data = await self._post("/extract-points", text)
            payload = _KeyPointsPayload.model_validate(data)
        except (SummarizationError, ValidationError) as e:
            logger.error(f"Error extracting key points: {e}")
            return []

        return [point.strip() for point in payload.key_points if point.strip()]

    async def _post(self, path: str, text: str) -> Any:
        """POST ``{text, language}`` and return the decoded JSON body.

        Retries once (by default) on timeouts, transport errors and 500, 502 or 504.
        """
        url = f"{self._base_url}{path}"
        body = {"text": text, "language": self._language}
        attempts = self._retries + 1
        last_error: Exception | None = None

        for attempt in range(1, attempts + 1):
            try:
                response = await asyncio.wait_for(self._client.post(url, json=body), timeout=self._timeout)
            except (TimeoutError, httpx.TimeoutException) as e:
                last_error = e
                logger.warning(f"Summarizer timeout on {path} (attempt {attempt}/{attempts})")
                continue
            except httpx.HTTPError as e:
                last_error = e
                logger.warning(f"Summarizer transport error on {path} (attempt {attempt}/{attempts}): {e}")
                continue

            if response.status_code in RETRYABLE_STATUS_CODES and attempt < attempts:
                logger.warning(f"Summarizer returned {response.status_code} on {path} (attempt {attempt}/{attempts})")
                last_error = SummarizationError(f"HTTP {response.status_code}")
                continue

            if not response.is_success:
                raise SummarizationError(f"Summarizer returned HTTP {response.status_code} for {path}")

            try:
                return response.json()
            except ValueError as e:
                raise SummarizationError(f"Summarizer returned invalid JSON for {path}") from e

        raise SummarizationError(f"Summarizer unavailable after {attempts} attempts: {last_error}") from last_error
