from collections.abc import Callable
from unittest.mock import Mock

import httpx
import pytest

from fastapi import FastAPI
from fastapi.testclient import TestClient

from siyaq.api.middleware.exception_handlers import register_exception_handlers
from siyaq.api.routes.v1.ai import router
from siyaq.api.services.summarization_service import SummarizationService
from siyaq.api.services.summarizer_gateway import SummarizationError, SummarizerGateway
from siyaq.models.context_models import ConversationTurn


@pytest.fixture
def app(mock_openai_client: Mock) -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app)
    app.include_router(router, prefix="/api/v1")
    app.state.summarization_service = SummarizationService(mock_openai_client, model="gpt-4o-mini")
    return app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app, raise_server_exceptions=False)


def test_summarize(client: TestClient, mock_openai_client: Mock, make_completion: Callable[..., Mock]) -> None:
    mock_openai_client.chat.completions.create.return_value = make_completion("ناقش المستخدم الميزانية")

    response = client.post("/api/v1/ai/summarize", json={"text": "user: الميزانية؟", "language": "ar"})

    assert response.status_code == 200
    assert response.json() == {"summary": "ناقش المستخدم الميزانية"}


def test_extract_points(client: TestClient, mock_openai_client: Mock, make_completion: Callable[..., Mock]) -> None:
    mock_openai_client.chat.completions.create.return_value = make_completion("- أولاً\n- ثانياً")

    response = client.post("/api/v1/ai/extract-points", json={"text": "assistant text"})

    assert response.status_code == 200
    assert response.json() == {"keyPoints": ["أولاً", "ثانياً"]}
    user_content = mock_openai_client.chat.completions.create.call_args.kwargs["messages"][1]["content"]
    assert user_content.startswith("Language: ar")


def test_empty_text_is_rejected(client: TestClient) -> None:
    response = client.post("/api/v1/ai/summarize", json={"text": ""})

    assert response.status_code == 422


def test_unconfigured_service(app: FastAPI, client: TestClient) -> None:
    app.state.summarization_service = None

    response = client.post("/api/v1/ai/summarize", json={"text": "hello"})

    assert response.status_code == 503
    error = response.json()["error"]
    assert error["code"] == "EXT_7004"
    assert error["details"] == [
        {"field": "service", "message": "summarization"},
        {"field": "setting", "message": "OPENAI_API_KEY"},
    ]


@pytest.mark.asyncio
async def test_gateway_does_not_retry_unconfigured_service(app: FastAPI) -> None:
    app.state.summarization_service = None
    calls = 0
    transport = httpx.ASGITransport(app=app)

    async def counting_handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return await transport.handle_async_request(request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(counting_handler)) as http_client:
        gateway = SummarizerGateway(http_client, base_url="http://siyaq.test/api/v1/ai", retries=1)

        with pytest.raises(SummarizationError, match="HTTP 503"):
            await gateway.summarize([ConversationTurn(role="user", content="مرحبا")])

    assert calls == 1
