"""
Utility functions for token estimation and counting.

Two strategies are provided:
- ``estimate_tokens``: language-sensitive character heuristic (default). Fast,
  dependency-free at call time, inexact.
- ``count_tokens``: exact counts from a model's tiktoken encoding.
"""

from __future__ import annotations

import math
import re

from collections.abc import Callable
from functools import lru_cache
from hashlib import blake2b
from typing import TYPE_CHECKING, Any

import tiktoken

from siyaq.core.constants import (
    ARABIC_CHARS_PER_TOKEN,
    DEFAULT_CHARS_PER_TOKEN,
    TOKEN_CACHE_SIZE,
)

if TYPE_CHECKING:
    from siyaq.models.context_models import ConversationContext, ConversationTurn

TokenCounter = Callable[[str], int]

_ARABIC_PATTERN = re.compile(r"[\u0600-\u06FF]")

# Cache for tiktoken encoders to avoid recreation
_encoder_cache: dict[str, Any] = {}


def contains_arabic(text: str) -> bool:
    """Return True if any character falls in the Arabic block (U+0600-U+06FF)."""
    return _ARABIC_PATTERN.search(text) is not None


def estimate_tokens(text: str) -> int:
    """Approximate the token count of ``text``.

    Text containing Arabic script is counted at 4 characters per token,
    anything else at 3, rounding up. Empty text is 0 tokens.
    """
    if not text:
        return 0
    ratio = ARABIC_CHARS_PER_TOKEN if contains_arabic(text) else DEFAULT_CHARS_PER_TOKEN
    return math.ceil(len(text) / ratio)


def estimate_messages_tokens(messages: list[ConversationTurn], counter: TokenCounter = estimate_tokens) -> int:
    """Sum token counts over message contents."""
    return sum(counter(message.content) for message in messages)


def estimate_context_tokens(context: ConversationContext, counter: TokenCounter = estimate_tokens) -> int:
    """Token count of a context: every message plus the summary.

    Key points are not counted.
    """
    total = estimate_messages_tokens(context.messages, counter)
    if context.summary:
        total += counter(context.summary)
    return total


def _get_encoder(model: str) -> Any:
    """Get cached encoder for model."""
    if model not in _encoder_cache:
        try:
            _encoder_cache[model] = tiktoken.encoding_for_model(model)
        except KeyError:
            # Unknown model names fall back to cl100k_base
            _encoder_cache[model] = tiktoken.get_encoding("cl100k_base")
    return _encoder_cache[model]


def hash_text(text: str) -> str:
    """Fast hash of text for cache keys (Blake2b for speed)."""
    return blake2b(text.encode("utf-8"), digest_size=16).hexdigest()


@lru_cache(maxsize=TOKEN_CACHE_SIZE)
def _count_tokens_cached(text_hash: str, model: str, text: str) -> int:
    return len(_get_encoder(model).encode(text))


def count_tokens(text: str, model: str = "gpt-4") -> int:
    """Count exact tokens for ``text`` with the tokenizer of ``model``."""
    if not text:
        return 0
    return _count_tokens_cached(hash_text(text), model, text)


def get_token_counter(strategy: str, model: str = "gpt-4") -> TokenCounter:
    """Return the counting function for a configured strategy.

    Args:
        strategy: "heuristic" or "tiktoken"
        model: Tokenizer model for the tiktoken strategy

    Raises:
        ValueError: If the strategy is unknown
    """
    if strategy == "heuristic":
        return estimate_tokens
    if strategy == "tiktoken":
        return lambda text: count_tokens(text, model)
    raise ValueError(f"Unknown token counting strategy: {strategy}")
