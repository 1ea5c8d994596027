from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from siyaq.api.middleware.exception_handlers import ServiceUnavailableError
from siyaq.api.services.chat_service import ChatService
from siyaq.api.services.summarization_service import SummarizationService
from siyaq.api.services.token_manager import TokenManager
from siyaq.core.constants import Settings, get_settings
from siyaq.utils.cache import TTLCache


def get_app_settings() -> Settings:
    """Provide application settings via dependency injection.

    Settings are validated on first use and cached for the process lifetime.

    Usage in routes:
        @router.get("/example")
        async def example(settings: AppSettings):
            return {"debug": settings.debug}
    """
    return get_settings()


def get_token_manager(request: Request) -> TokenManager:
    """Get the context window manager from application state."""
    return request.app.state.token_manager


def get_summarization_service(request: Request) -> SummarizationService:
    """Get the summarization service from application state.

    Raises:
        ServiceUnavailableError: If no OpenAI credentials were configured at startup
    """
    service = getattr(request.app.state, "summarization_service", None)
    if service is None:
        raise ServiceUnavailableError(
            "Summarization service is not configured",
            service="summarization",
            setting="OPENAI_API_KEY",
        )
    return service


def get_chat_service(request: Request) -> ChatService:
    """Get the chat pipeline from application state."""
    return request.app.state.chat_service


def get_summary_cache(request: Request) -> TTLCache | None:
    """Get the summary cache from application state, if one was created."""
    return getattr(request.app.state, "summary_cache", None)


# Type aliases for cleaner route signatures
AppSettings = Annotated[Settings, Depends(get_app_settings)]
Tokens = Annotated[TokenManager, Depends(get_token_manager)]
Summarizer = Annotated[SummarizationService, Depends(get_summarization_service)]
Chat = Annotated[ChatService, Depends(get_chat_service)]
SummaryCache = Annotated[TTLCache | None, Depends(get_summary_cache)]
