from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from siyaq.api.middleware.exception_handlers import register_exception_handlers
from siyaq.api.middleware.request_context import RequestContextMiddleware
from siyaq.api.routes.v1 import router as v1_router
from siyaq.api.services.chat_service import ChatService
from siyaq.api.services.model_invoker import OpenAIModelInvoker
from siyaq.api.services.orchestrator import WorkflowOrchestrator
from siyaq.api.services.summarization_service import SummarizationService
from siyaq.api.services.summarizer_gateway import SummarizerGateway
from siyaq.api.services.token_manager import TokenManager
from siyaq.core.constants import Settings, get_settings
from siyaq.utils.cache import TTLCache
from siyaq.utils.client_factory import create_http_client, create_openai_client
from siyaq.utils.logger import configure_uvicorn_logging, logger

# Settings are loaded via Pydantic Settings with environment-specific file support
# (.env, .env.{APP_ENV}, .env.local)
settings = get_settings()

if settings.debug:
    from siyaq.core.constants import _get_env_files

    logger.info(f"Env files: {[f.name for f in _get_env_files()]}")
    logger.info(
        f"Settings: app_env={settings.app_env}, token_counting={settings.token_counting}, "
        f"budget=[{settings.emergency_trim_tokens},{settings.summary_threshold},{settings.max_context_tokens}]"
    )

# Configure uvicorn logging at module level to ensure workers use it
configure_uvicorn_logging()


def _create_summarization_service(settings: Settings, app: FastAPI) -> SummarizationService | None:
    """Summarize endpoint backend; None when no OpenAI key is configured."""
    if not settings.openai_api_key:
        logger.warning("OPENAI_API_KEY not set; /ai/summarize and /ai/extract-points are disabled")
        return None

    client = create_openai_client(
        settings.openai_api_key,
        base_url=settings.openai_base_url,
        http_client=app.state.model_http_client,
    )
    return SummarizationService(client, model=settings.summary_model)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: build the service graph, tear it down on shutdown."""
    # One client for the summarizer gateway, one for model providers (longer reads)
    app.state.http_client = create_http_client(read_timeout=settings.summarizer_timeout)
    app.state.model_http_client = create_http_client(read_timeout=settings.http_read_timeout)

    summary_cache = TTLCache(
        max_size=settings.summary_cache_size,
        default_ttl=settings.summary_cache_ttl,
        sweep_interval=settings.cache_sweep_interval,
    )
    await summary_cache.start()
    app.state.summary_cache = summary_cache

    gateway = SummarizerGateway(
        app.state.http_client,
        base_url=settings.summarizer_url_str,
        language=settings.summary_language,
        timeout=settings.summarizer_timeout,
        retries=settings.summarizer_retries,
        cache=summary_cache,
    )
    token_manager = TokenManager.from_settings(gateway, settings)
    app.state.token_manager = token_manager

    invoker = OpenAIModelInvoker(settings, http_client=app.state.model_http_client)
    orchestrator = WorkflowOrchestrator(invoker, stage_timeout=settings.stage_timeout)
    app.state.chat_service = ChatService(token_manager, orchestrator)
    app.state.summarization_service = _create_summarization_service(settings, app)

    logger.info(
        f"Siyaq {settings.app_version} started (env={settings.app_env}, summarizer={settings.summarizer_url_str})"
    )

    try:
        yield
    finally:
        logger.info("Initiating graceful shutdown sequence")

        await summary_cache.stop()
        await app.state.model_http_client.aclose()
        await app.state.http_client.aclose()

        logger.info("Shutdown complete")


app = FastAPI(
    title="Siyaq API",
    description="""
## Siyaq API

Arabic-first context window management for multi-model chat.

### Features
- **Token estimation**: language-aware heuristic or exact tiktoken counts
- **Context optimization**: tiered trimming with summaries of older turns
- **Summarization**: summary and key-point extraction endpoints
- **Chat**: keyword-routed workflows across hosted models with partial-result fallback

### Versioning
API uses URL path versioning: `/api/v1/...`
""",
    version=settings.app_version,
    lifespan=lifespan,
    openapi_tags=[
        {"name": "Health", "description": "Health checks and Prometheus metrics"},
        {"name": "Context", "description": "Token estimation and context window optimization"},
        {"name": "Summarization", "description": "Conversation summaries and key points"},
        {"name": "Chat", "description": "Orchestrated chat completions"},
    ],
    openapi_url="/api/v1/openapi.json",
    docs_url="/api/v1/docs",
    redoc_url="/api/v1/redoc",
)

# Register global exception handlers for consistent error responses
register_exception_handlers(app)

# Request context middleware (adds request ID tracking)
# Note: Middleware is executed in reverse order of registration
app.add_middleware(RequestContextMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routes - API v1
app.include_router(v1_router, prefix="/api/v1")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "siyaq.api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.app_env == "development",
        reload_dirs=["src"],
        log_config=None,
    )
