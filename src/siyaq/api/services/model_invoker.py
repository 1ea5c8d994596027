"""
Hosted model invocation.

Every provider is reached through the ``openai`` SDK: OpenAI directly,
Anthropic and DeepSeek through their OpenAI-compatible endpoints. One
AsyncOpenAI client is created lazily per provider and reused.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from siyaq.api.middleware.exception_handlers import ConfigurationError, ValidationException
from siyaq.core.constants import MODELS_BY_KEY, ModelConfig, Provider, Settings
from siyaq.models.context_models import ModelResponse, TokenUsage
from siyaq.utils.client_factory import create_openai_client
from siyaq.utils.logger import logger
from siyaq.utils.metrics import model_tokens_total

if TYPE_CHECKING:
    import httpx

    from openai import AsyncOpenAI


class ModelInvoker(Protocol):
    """Anything that turns (model key, system prompt, prompt) into a ModelResponse."""

    async def invoke(self, model_key: str, system_prompt: str, prompt: str) -> ModelResponse: ...


class OpenAIModelInvoker:
    """Invoke catalog models over OpenAI-compatible chat completions."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient | None = None) -> None:
        self._settings = settings
        self._http_client = http_client
        self._clients: dict[Provider, AsyncOpenAI] = {}

    def _credentials(self, provider: Provider) -> tuple[str | None, str | None, str]:
        settings = self._settings
        if provider == "openai":
            return settings.openai_api_key, settings.openai_base_url, "OPENAI_API_KEY"
        if provider == "anthropic":
            return settings.anthropic_api_key, settings.anthropic_base_url, "ANTHROPIC_API_KEY"
        return settings.deepseek_api_key, settings.deepseek_base_url, "DEEPSEEK_API_KEY"

    def get_client(self, provider: Provider) -> AsyncOpenAI:
        """Return the cached client for ``provider``, creating it on first use.

        Raises:
            ConfigurationError: If the provider's API key is not configured
        """
        client = self._clients.get(provider)
        if client is not None:
            return client

        api_key, base_url, setting = self._credentials(provider)
        if not api_key:
            raise ConfigurationError(f"{setting} is not configured", setting=setting)

        client = create_openai_client(api_key=api_key, base_url=base_url, http_client=self._http_client)
        self._clients[provider] = client
        logger.info(f"Created model client for provider {provider}")
        return client

    async def invoke(self, model_key: str, system_prompt: str, prompt: str) -> ModelResponse:
        """Run one chat completion for the catalog model ``model_key``."""
        config: ModelConfig | None = MODELS_BY_KEY.get(model_key)
        if config is None:
            raise ValidationException(f"Unknown model: {model_key}", field="model")

        client = self.get_client(config.provider)
        response = await client.chat.completions.create(
            model=config.model_id,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": prompt},
            ],
            temperature=config.temperature,
            max_tokens=config.max_tokens,
        )

        usage = TokenUsage()
        if response.usage is not None:
            usage = TokenUsage(
                prompt_tokens=response.usage.prompt_tokens,
                completion_tokens=response.usage.completion_tokens,
            )
        model_tokens_total.labels(model=config.key, type="prompt").inc(usage.prompt_tokens)
        model_tokens_total.labels(model=config.key, type="completion").inc(usage.completion_tokens)

        content = ""
        if response.choices:
            content = response.choices[0].message.content or ""
        return ModelResponse(content=content, model=config.display_name, usage=usage)
