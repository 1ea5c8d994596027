"""
HTTP and OpenAI client factory utilities.
Centralizes httpx/AsyncOpenAI client creation with consistent timeouts.
"""

from __future__ import annotations

from typing import Any

import httpx

from openai import AsyncOpenAI

DEFAULT_CONNECT_TIMEOUT = 10.0  # Time to establish connection
DEFAULT_READ_TIMEOUT = 120.0  # Time to wait for response bytes
DEFAULT_WRITE_TIMEOUT = 30.0  # Time to send request
DEFAULT_POOL_TIMEOUT = 30.0  # Time to acquire connection from pool


def build_timeout(read_timeout: float | None = None) -> httpx.Timeout:
    """Timeout with the default connect/write/pool limits and the given read limit."""
    return httpx.Timeout(
        connect=DEFAULT_CONNECT_TIMEOUT,
        read=read_timeout if read_timeout is not None else DEFAULT_READ_TIMEOUT,
        write=DEFAULT_WRITE_TIMEOUT,
        pool=DEFAULT_POOL_TIMEOUT,
    )


def create_http_client(
    read_timeout: float | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create an HTTP client with explicit timeouts.

    Args:
        read_timeout: Read timeout in seconds (default: 120s)
        transport: Optional transport (e.g. httpx.MockTransport in tests)

    Returns:
        Configured httpx.AsyncClient
    """
    return httpx.AsyncClient(timeout=build_timeout(read_timeout), transport=transport)


def create_openai_client(
    api_key: str,
    base_url: str | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> AsyncOpenAI:
    """Create AsyncOpenAI client with consistent configuration.

    Args:
        api_key: Provider API key
        base_url: Optional base URL for OpenAI-compatible providers
        http_client: Optional shared httpx client

    Returns:
        Configured AsyncOpenAI client
    """
    kwargs: dict[str, Any] = {"api_key": api_key, "http_client": http_client}
    if base_url:
        kwargs["base_url"] = base_url
    return AsyncOpenAI(**kwargs)
