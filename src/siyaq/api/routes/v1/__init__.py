"""
API v1 Router - Aggregates all v1 endpoints.

Usage in main.py:
    from siyaq.api.routes.v1 import router as v1_router
    app.include_router(v1_router, prefix="/api/v1")
"""

from fastapi import APIRouter

from siyaq.api.routes.v1 import ai, chat, context, health

# Create the v1 API router
router = APIRouter()

# Health and metrics endpoints
router.include_router(
    health.router,
    tags=["Health"],
)

# Token estimation and context optimization
router.include_router(
    context.router,
    tags=["Context"],
)

# Summarization service
router.include_router(
    ai.router,
    tags=["Summarization"],
)

# Orchestrated chat
router.include_router(
    chat.router,
    tags=["Chat"],
)

__all__ = ["router"]
