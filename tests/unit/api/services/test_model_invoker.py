from __future__ import annotations

from collections.abc import Callable
from unittest.mock import Mock, patch

import pytest

from siyaq.api.middleware.exception_handlers import ConfigurationError, ValidationException
from siyaq.api.services.model_invoker import OpenAIModelInvoker
from siyaq.core.constants import Settings


@pytest.fixture
def settings() -> Settings:
    return Settings(
        openai_api_key="sk-openai",
        anthropic_api_key="sk-anthropic",
        deepseek_api_key=None,
    )


@pytest.mark.asyncio
async def test_invoke_uses_model_config(
    settings: Settings, mock_openai_client: Mock, make_completion: Callable[..., Mock]
) -> None:
    mock_openai_client.chat.completions.create.return_value = make_completion("مرحبا", 12, 8)
    invoker = OpenAIModelInvoker(settings)

    with patch("siyaq.api.services.model_invoker.create_openai_client", return_value=mock_openai_client) as factory:
        response = await invoker.invoke("claude_sonnet", "system", "prompt")

    factory.assert_called_once_with(
        api_key="sk-anthropic",
        base_url="https://api.anthropic.com/v1/",
        http_client=None,
    )
    kwargs = mock_openai_client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "claude-3-sonnet-20240229"
    assert kwargs["temperature"] == 0.6
    assert kwargs["max_tokens"] == 2000
    assert kwargs["messages"] == [
        {"role": "system", "content": "system"},
        {"role": "user", "content": "prompt"},
    ]
    assert response.content == "مرحبا"
    assert response.model == "CLAUDE_SONNET"
    assert response.usage.prompt_tokens == 12
    assert response.usage.completion_tokens == 8
    assert response.usage.total_tokens == 20


@pytest.mark.asyncio
async def test_clients_are_cached_per_provider(
    settings: Settings, mock_openai_client: Mock, make_completion: Callable[..., Mock]
) -> None:
    mock_openai_client.chat.completions.create.return_value = make_completion("ok")
    invoker = OpenAIModelInvoker(settings)

    with patch("siyaq.api.services.model_invoker.create_openai_client", return_value=mock_openai_client) as factory:
        await invoker.invoke("gpt4", "s", "p")
        await invoker.invoke("gpt4_turbo", "s", "p")
        await invoker.invoke("claude_opus", "s", "p")

    assert factory.call_count == 2


@pytest.mark.asyncio
async def test_missing_credentials_raise_configuration_error(settings: Settings) -> None:
    invoker = OpenAIModelInvoker(settings)

    with pytest.raises(ConfigurationError, match="DEEPSEEK_API_KEY"):
        await invoker.invoke("deepseek_coder", "s", "p")


@pytest.mark.asyncio
async def test_unknown_model(settings: Settings) -> None:
    invoker = OpenAIModelInvoker(settings)

    with pytest.raises(ValidationException, match="Unknown model"):
        await invoker.invoke("llama", "s", "p")


@pytest.mark.asyncio
async def test_missing_usage_and_content(settings: Settings, mock_openai_client: Mock) -> None:
    response = Mock()
    response.choices = []
    response.usage = None
    mock_openai_client.chat.completions.create.return_value = response
    invoker = OpenAIModelInvoker(settings)

    with patch("siyaq.api.services.model_invoker.create_openai_client", return_value=mock_openai_client):
        result = await invoker.invoke("gpt4", "s", "p")

    assert result.content == ""
    assert result.usage.total_tokens == 0
