"""
Health check and metrics endpoints (v1).
"""

from __future__ import annotations

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from siyaq.api.dependencies import AppSettings, SummaryCache
from siyaq.models.api_models import HealthResponse, LivenessResponse

router = APIRouter()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Service status with configuration and summary cache statistics.",
    responses={
        200: {
            "description": "System health status",
            "content": {
                "application/json": {
                    "example": {
                        "status": "healthy",
                        "version": "1.0.0",
                        "environment": "production",
                        "token_counting": "heuristic",
                        "summary_cache": {
                            "size": 12,
                            "max_size": 1000,
                            "hits": 30,
                            "misses": 12,
                            "hit_rate": "71.4%",
                            "sweeping": True,
                        },
                    }
                }
            },
        }
    },
)
async def health_check(settings: AppSettings, cache: SummaryCache) -> HealthResponse:
    """Health check endpoint."""
    cache_stats = cache.stats() if cache is not None else {}
    status = "healthy" if cache is None or cache.running else "degraded"

    return HealthResponse(
        status=status,
        version=settings.app_version,
        environment=settings.app_env,
        token_counting=settings.token_counting,
        summary_cache=cache_stats,
    )


@router.get(
    "/health/live",
    response_model=LivenessResponse,
    summary="Liveness probe",
    description="Kubernetes-style liveness probe to confirm process is running.",
)
async def liveness_check() -> LivenessResponse:
    """Kubernetes-style liveness probe."""
    return LivenessResponse(alive=True)


@router.get(
    "/metrics",
    summary="Prometheus metrics",
    description="Process and application metrics in Prometheus text format.",
    response_class=Response,
)
async def metrics() -> Response:
    """Expose Prometheus metrics."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
