from fastapi.testclient import TestClient

from siyaq.api.main import app
from siyaq.api.services.chat_service import ChatService
from siyaq.api.services.summarizer_gateway import SummarizerGateway
from siyaq.api.services.token_manager import TokenManager


def test_lifespan_builds_and_tears_down_services() -> None:
    with TestClient(app) as client:
        assert isinstance(app.state.token_manager, TokenManager)
        assert isinstance(app.state.token_manager.summarizer, SummarizerGateway)
        assert isinstance(app.state.chat_service, ChatService)
        cache = app.state.summary_cache

        response = client.get("/api/v1/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.headers["X-Request-ID"].startswith("req_")

    assert not cache.running
    assert app.state.http_client.is_closed


def test_openapi_is_versioned() -> None:
    with TestClient(app) as client:
        response = client.get("/api/v1/openapi.json")

    paths = response.json()["paths"]
    assert "/api/v1/context/optimize" in paths
    assert "/api/v1/chat/completions" in paths
    assert "/api/v1/metrics" in paths
