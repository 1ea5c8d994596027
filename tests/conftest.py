"""Shared test fixtures for the Siyaq test suite.

This module provides common fixtures used across all test modules,
including conversation builders and mocks for external dependencies.
"""

from __future__ import annotations

import os
import tempfile

from collections.abc import Callable, Generator
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, Mock

import pytest

# ============================================================================
# EARLY INITIALIZATION: Runs before siyaq modules are imported
# ============================================================================

# Log files go to a throwaway directory; settings resolve in test mode
os.environ.setdefault("SIYAQ_LOG_DIR", tempfile.mkdtemp(prefix="siyaq-logs-"))
os.environ["APP_ENV"] = "test"

from siyaq.core import constants  # noqa: E402
from siyaq.models.context_models import ConversationContext, ConversationTurn  # noqa: E402
from siyaq.utils import token_utils  # noqa: E402

# ============================================================================
# Test Isolation
# ============================================================================


@pytest.fixture(autouse=True)
def reset_settings_singleton() -> Generator[None, None, None]:
    """Reset the settings singleton so each test sees fresh settings."""
    constants.clear_settings_cache()
    yield
    constants.clear_settings_cache()


@pytest.fixture(autouse=True)
def clear_token_cache() -> Generator[None, None, None]:
    """Clear token count caches between tests to ensure isolation."""
    token_utils._count_tokens_cached.cache_clear()
    token_utils._encoder_cache.clear()
    yield
    token_utils._count_tokens_cached.cache_clear()
    token_utils._encoder_cache.clear()


# ============================================================================
# Conversation Builders
# ============================================================================

BASE_TIME = datetime(2024, 3, 1, 9, 0, tzinfo=UTC)


@pytest.fixture
def make_turn() -> Callable[..., ConversationTurn]:
    """Build a ConversationTurn; ``index`` spaces timestamps one day apart."""

    def _make(content: str, role: str = "user", index: int = 0) -> ConversationTurn:
        return ConversationTurn(role=role, content=content, timestamp=BASE_TIME + timedelta(days=index))

    return _make


@pytest.fixture
def make_context(make_turn: Callable[..., ConversationTurn]) -> Callable[..., ConversationContext]:
    """Build a context of ``count`` alternating user/assistant turns."""

    def _make(
        count: int,
        content: str = "x" * 30,
        summary: str | None = None,
        key_points: list[str] | None = None,
    ) -> ConversationContext:
        messages = [
            make_turn(content, role="user" if i % 2 == 0 else "assistant", index=i) for i in range(count)
        ]
        return ConversationContext(messages=messages, summary=summary, key_points=key_points)

    return _make


@pytest.fixture
def arabic_text() -> Callable[[int], str]:
    """Arabic text of exactly ``length`` characters."""

    def _make(length: int) -> str:
        return ("مرحبا بكم " * (length // 10 + 1))[:length]

    return _make


# ============================================================================
# Mock External Dependencies
# ============================================================================


@pytest.fixture
def mock_summarizer() -> Mock:
    """Mock summarizer gateway returning a short Arabic summary."""
    summarizer = Mock()
    summarizer.summarize = AsyncMock(return_value="ملخص قصير")
    summarizer.extract_key_points = AsyncMock(return_value=["نقطة"])
    return summarizer


@pytest.fixture
def mock_openai_client() -> Generator[Mock, None, None]:
    """Mock OpenAI client for testing."""
    client = Mock()
    client.chat.completions.create = AsyncMock()
    yield client


@pytest.fixture
def make_completion() -> Callable[..., Mock]:
    """Fake chat completion response in the openai SDK shape."""

    def _make(content: str | None, prompt_tokens: int = 10, completion_tokens: int = 5) -> Mock:
        response = Mock()
        response.choices = [Mock(message=Mock(content=content))]
        response.usage = Mock(prompt_tokens=prompt_tokens, completion_tokens=completion_tokens)
        return response

    return _make


@pytest.fixture
def mock_tiktoken(monkeypatch: pytest.MonkeyPatch) -> Generator[Mock, None, None]:
    """Mock tiktoken for token counting tests."""
    mock_encoding = Mock()
    mock_encoding.encode.return_value = [1, 2, 3, 4, 5]  # 5 tokens

    mock_tiktoken_module = Mock()
    mock_tiktoken_module.encoding_for_model.return_value = mock_encoding
    mock_tiktoken_module.get_encoding.return_value = mock_encoding

    monkeypatch.setattr("tiktoken.encoding_for_model", mock_tiktoken_module.encoding_for_model)
    monkeypatch.setattr("tiktoken.get_encoding", mock_tiktoken_module.get_encoding)

    yield mock_tiktoken_module
