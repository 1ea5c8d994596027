import pytest

from fastapi import FastAPI
from fastapi.testclient import TestClient

from siyaq.api.routes.v1.health import router
from siyaq.utils.cache import TTLCache
from siyaq.utils.metrics import context_optimizations_total


@pytest.fixture
def app() -> FastAPI:
    app = FastAPI()
    app.include_router(router, prefix="")  # router has paths starting with /health
    return app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


def test_liveness_check(client: TestClient) -> None:
    response = client.get("/health/live")
    assert response.status_code == 200
    assert response.json()["alive"] is True


def test_health_without_cache(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["environment"] == "test"
    assert data["token_counting"] == "heuristic"
    assert data["summary_cache"] == {}


def test_health_reports_stopped_cache_as_degraded(app: FastAPI, client: TestClient) -> None:
    app.state.summary_cache = TTLCache(max_size=10)

    response = client.get("/health")

    data = response.json()
    assert data["status"] == "degraded"
    assert data["summary_cache"]["max_size"] == 10
    assert data["summary_cache"]["sweeping"] is False


def test_metrics_endpoint(client: TestClient) -> None:
    context_optimizations_total.labels(outcome="unchanged").inc()

    response = client.get("/metrics")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert "siyaq_context_optimizations_total" in response.text
