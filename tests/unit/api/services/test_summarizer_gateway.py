"""Tests for the summarizer HTTP gateway.

HTTP is served by httpx.MockTransport so request bodies, retries and
failure handling are exercised end to end.
"""

from __future__ import annotations

import asyncio
import json

from collections.abc import Callable
from typing import Any

import httpx
import pytest

from siyaq.api.services.summarizer_gateway import (
    SummarizationError,
    SummarizerGateway,
    format_conversation,
)
from siyaq.models.context_models import ConversationTurn
from siyaq.utils.cache import TTLCache

BASE_URL = "http://summarizer.test/api/v1/ai/"

Handler = Callable[[httpx.Request], httpx.Response]


class RecordingTransport:
    """Collects requests and answers them with a queue of handlers."""

    def __init__(self, *handlers: Handler) -> None:
        self.handlers = list(handlers)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.handlers.pop(0) if len(self.handlers) > 1 else self.handlers[0]
        return handler(request)

    def body(self, index: int = 0) -> dict[str, Any]:
        return json.loads(self.requests[index].content)


def _json(status: int, payload: Any) -> Handler:
    return lambda _request: httpx.Response(status, json=payload)


@pytest.fixture
def turns(make_turn: Callable[..., ConversationTurn]) -> list[ConversationTurn]:
    return [
        make_turn("ما هي الخطة؟", role="user", index=0),
        make_turn("الخطة من ثلاث مراحل", role="assistant", index=1),
        make_turn("ابدأ بالأولى", role="user", index=2),
    ]


@pytest.fixture
def make_gateway() -> Callable[..., SummarizerGateway]:
    def _make(transport: RecordingTransport, **kwargs: Any) -> SummarizerGateway:
        client = httpx.AsyncClient(transport=httpx.MockTransport(transport))
        return SummarizerGateway(client, base_url=BASE_URL, **kwargs)

    return _make


def test_format_conversation(turns: list[ConversationTurn]) -> None:
    assert format_conversation(turns) == (
        "user: ما هي الخطة؟\nassistant: الخطة من ثلاث مراحل\nuser: ابدأ بالأولى"
    )


class TestSummarize:
    """Tests for SummarizerGateway.summarize."""

    @pytest.mark.asyncio
    async def test_posts_text_and_language(
        self, make_gateway: Callable[..., SummarizerGateway], turns: list[ConversationTurn]
    ) -> None:
        transport = RecordingTransport(_json(200, {"summary": "خطة من ثلاث مراحل"}))
        gateway = make_gateway(transport)

        summary = await gateway.summarize(turns)

        assert summary == "خطة من ثلاث مراحل"
        assert str(transport.requests[0].url) == "http://summarizer.test/api/v1/ai/summarize"
        assert transport.requests[0].method == "POST"
        assert transport.body() == {"text": format_conversation(turns), "language": "ar"}

    @pytest.mark.asyncio
    async def test_language_is_configurable(
        self, make_gateway: Callable[..., SummarizerGateway], turns: list[ConversationTurn]
    ) -> None:
        transport = RecordingTransport(_json(200, {"summary": "plan"}))

        await make_gateway(transport, language="en").summarize(turns)

        assert transport.body()["language"] == "en"

    @pytest.mark.asyncio
    async def test_retries_once_after_5xx(
        self, make_gateway: Callable[..., SummarizerGateway], turns: list[ConversationTurn]
    ) -> None:
        transport = RecordingTransport(_json(502, {}), _json(200, {"summary": "ok"}))

        summary = await make_gateway(transport).summarize(turns)

        assert summary == "ok"
        assert len(transport.requests) == 2

    @pytest.mark.asyncio
    async def test_persistent_5xx_raises(
        self, make_gateway: Callable[..., SummarizerGateway], turns: list[ConversationTurn]
    ) -> None:
        transport = RecordingTransport(_json(500, {"error": "down"}))

        with pytest.raises(SummarizationError, match="HTTP 500"):
            await make_gateway(transport).summarize(turns)
        assert len(transport.requests) == 2

    @pytest.mark.asyncio
    async def test_503_is_not_retried(
        self, make_gateway: Callable[..., SummarizerGateway], turns: list[ConversationTurn]
    ) -> None:
        transport = RecordingTransport(_json(503, {"error": {"code": "EXT_7004"}}), _json(200, {"summary": "late"}))

        with pytest.raises(SummarizationError, match="HTTP 503"):
            await make_gateway(transport).summarize(turns)
        assert len(transport.requests) == 1

    @pytest.mark.asyncio
    async def test_4xx_is_not_retried(
        self, make_gateway: Callable[..., SummarizerGateway], turns: list[ConversationTurn]
    ) -> None:
        transport = RecordingTransport(_json(422, {"detail": "bad"}))

        with pytest.raises(SummarizationError, match="HTTP 422"):
            await make_gateway(transport).summarize(turns)
        assert len(transport.requests) == 1

    @pytest.mark.asyncio
    async def test_retries_disabled(
        self, make_gateway: Callable[..., SummarizerGateway], turns: list[ConversationTurn]
    ) -> None:
        transport = RecordingTransport(_json(500, {}))

        with pytest.raises(SummarizationError):
            await make_gateway(transport, retries=0).summarize(turns)
        assert len(transport.requests) == 1

    @pytest.mark.asyncio
    async def test_transport_error_raises(
        self, make_gateway: Callable[..., SummarizerGateway], turns: list[ConversationTurn]
    ) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        transport = RecordingTransport(refuse)

        with pytest.raises(SummarizationError, match="unavailable after 2 attempts"):
            await make_gateway(transport).summarize(turns)
        assert len(transport.requests) == 2

    @pytest.mark.asyncio
    async def test_timeout_raises(self, turns: list[ConversationTurn]) -> None:
        async def slow_post(*_args: Any, **_kwargs: Any) -> httpx.Response:
            await asyncio.sleep(1)
            return httpx.Response(200, json={"summary": "late"})

        client = httpx.AsyncClient()
        client.post = slow_post  # type: ignore[method-assign]
        gateway = SummarizerGateway(client, base_url=BASE_URL, timeout=0.01, retries=0)

        try:
            with pytest.raises(SummarizationError):
                await gateway.summarize(turns)
        finally:
            await client.aclose()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [{}, {"summary": ""}, {"summary": None}, {"text": "wrong key"}, ["not", "an", "object"]],
    )
    async def test_malformed_body_raises(
        self, make_gateway: Callable[..., SummarizerGateway], turns: list[ConversationTurn], payload: Any
    ) -> None:
        transport = RecordingTransport(_json(200, payload))

        with pytest.raises(SummarizationError, match="Malformed"):
            await make_gateway(transport).summarize(turns)

    @pytest.mark.asyncio
    async def test_invalid_json_raises(
        self, make_gateway: Callable[..., SummarizerGateway], turns: list[ConversationTurn]
    ) -> None:
        transport = RecordingTransport(lambda _request: httpx.Response(200, text="<html>oops</html>"))

        with pytest.raises(SummarizationError, match="invalid JSON"):
            await make_gateway(transport).summarize(turns)

    @pytest.mark.asyncio
    async def test_cache_hit_skips_http(
        self, make_gateway: Callable[..., SummarizerGateway], turns: list[ConversationTurn]
    ) -> None:
        transport = RecordingTransport(_json(200, {"summary": "cached once"}))
        gateway = make_gateway(transport, cache=TTLCache(max_size=10, default_ttl=60))

        first = await gateway.summarize(turns)
        second = await gateway.summarize(turns)

        assert first == second == "cached once"
        assert len(transport.requests) == 1

    @pytest.mark.asyncio
    async def test_failures_are_not_cached(
        self, make_gateway: Callable[..., SummarizerGateway], turns: list[ConversationTurn]
    ) -> None:
        transport = RecordingTransport(_json(500, {}), _json(500, {}), _json(200, {"summary": "recovered"}))
        cache = TTLCache(max_size=10, default_ttl=60)
        gateway = make_gateway(transport, cache=cache)

        with pytest.raises(SummarizationError):
            await gateway.summarize(turns)
        assert len(cache) == 0

        assert await gateway.summarize(turns) == "recovered"


class TestExtractKeyPoints:
    """Tests for SummarizerGateway.extract_key_points."""

    @pytest.mark.asyncio
    async def test_sends_assistant_text_only(
        self, make_gateway: Callable[..., SummarizerGateway], turns: list[ConversationTurn]
    ) -> None:
        transport = RecordingTransport(_json(200, {"keyPoints": ["ثلاث مراحل", " "]}))

        points = await make_gateway(transport).extract_key_points(turns)

        assert points == ["ثلاث مراحل"]
        assert str(transport.requests[0].url).endswith("/extract-points")
        assert transport.body() == {"text": "الخطة من ثلاث مراحل", "language": "ar"}

    @pytest.mark.asyncio
    async def test_no_assistant_turns(
        self, make_gateway: Callable[..., SummarizerGateway], make_turn: Callable[..., ConversationTurn]
    ) -> None:
        transport = RecordingTransport(_json(200, {"keyPoints": ["x"]}))

        points = await make_gateway(transport).extract_key_points([make_turn("hi", role="user")])

        assert points == []
        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_failure_returns_empty_list(
        self, make_gateway: Callable[..., SummarizerGateway], turns: list[ConversationTurn]
    ) -> None:
        transport = RecordingTransport(_json(500, {}))

        assert await make_gateway(transport).extract_key_points(turns) == []

    @pytest.mark.asyncio
    async def test_malformed_body_returns_empty_list(
        self, make_gateway: Callable[..., SummarizerGateway], turns: list[ConversationTurn]
    ) -> None:
        transport = RecordingTransport(_json(200, {"keyPoints": "not a list"}))

        assert await make_gateway(transport).extract_key_points(turns) == []
