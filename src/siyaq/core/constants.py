"""
Constants and configuration for Siyaq.
Centralizes all magic numbers and configuration values.
Includes Pydantic validation for environment variables.
"""

from __future__ import annotations

import os
import threading

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from pydantic import Field, HttpUrl, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic_settings.sources import (
    DotEnvSettingsSource,
    PydanticBaseSettingsSource,
)

# ============================================================================
# Project Paths
# ============================================================================

#: Project root directory (parent of src/)
PROJECT_ROOT = Path(__file__).parent.parent.parent.parent

#: Directory for rotating JSON log files. Override with SIYAQ_LOG_DIR.
LOG_DIR = Path(os.getenv("SIYAQ_LOG_DIR", str(PROJECT_ROOT / "logs")))

# ============================================================================
# Model Configuration - Single Source of Truth
# ============================================================================

Provider = Literal["openai", "anthropic", "deepseek"]


@dataclass(frozen=True, slots=True)
class ModelConfig:
    """Configuration for one hosted model reachable by the orchestrator.

    Attributes:
        key: Internal model key used by workflows (e.g., "claude_sonnet")
        provider: Which hosted vendor serves the model
        model_id: Vendor model name sent on the wire
        display_name: Human-readable name returned to clients
        temperature: Sampling temperature for this model
        max_tokens: Completion token cap for this model
    """

    key: str
    provider: Provider
    model_id: str
    display_name: str
    temperature: float
    max_tokens: int


#: Models available to workflows. Order is irrelevant; lookup is by key.
MODEL_CONFIGS: tuple[ModelConfig, ...] = (
    ModelConfig("gpt4", "openai", "gpt-4", "GPT4", 0.7, 2000),
    ModelConfig("gpt4_turbo", "openai", "gpt-4-turbo", "GPT4_TURBO", 0.7, 3000),
    ModelConfig("claude_opus", "anthropic", "claude-3-opus-20240229", "CLAUDE_OPUS", 0.5, 2500),
    ModelConfig("claude_sonnet", "anthropic", "claude-3-sonnet-20240229", "CLAUDE_SONNET", 0.6, 2000),
    ModelConfig("deepseek_coder", "deepseek", "deepseek-coder", "DEEPSEEK_CODER", 0.3, 3000),
)

#: Model configs indexed by key (derived from MODEL_CONFIGS).
MODELS_BY_KEY: dict[str, ModelConfig] = {m.key: m for m in MODEL_CONFIGS}

#: Model reported when the orchestrator falls back to its apology response.
FALLBACK_MODEL_KEY = "claude_sonnet"

# ============================================================================
# Context Window Configuration
# ============================================================================

#: Hard ceiling on context tokens (history + summary + incoming message).
#: Contexts estimated above this are trimmed before prompt assembly.
DEFAULT_MAX_CONTEXT_TOKENS = 8000

#: Tokens above which a context is reported as approaching its limit.
#: Must sit strictly between the emergency floor and the hard maximum.
DEFAULT_SUMMARY_THRESHOLD = 6000

#: Floor used after the first trim pass. If the trimmed context is still
#: above this, only the last EMERGENCY_MESSAGES_KEPT turns survive.
DEFAULT_EMERGENCY_TRIM_TOKENS = 4000

#: Turns kept verbatim when a context is trimmed; older turns get summarized.
RECENT_MESSAGES_KEPT = 5

#: Turns kept when the emergency trim fires.
EMERGENCY_MESSAGES_KEPT = 3

#: Recent turns rendered into the assembled prompt.
PROMPT_RECENT_TURNS = 3

# ============================================================================
# Token Counting Configuration
# ============================================================================

#: Characters per token for text containing Arabic script (U+0600-U+06FF).
ARABIC_CHARS_PER_TOKEN = 4

#: Characters per token for all other text.
DEFAULT_CHARS_PER_TOKEN = 3

#: LRU cache size for exact (tiktoken) token counting.
TOKEN_CACHE_SIZE = 128

TokenCountingStrategy = Literal["heuristic", "tiktoken"]

# ============================================================================
# Summarization Configuration
# ============================================================================

#: Maximum completion tokens for summaries produced by the summarize endpoint.
SUMMARY_MAX_COMPLETION_TOKENS = 500

#: Maximum key points returned by the extract-points endpoint.
MAX_KEY_POINTS = 10

# ============================================================================
# Logging Configuration
# ============================================================================

#: Maximum size in bytes for log files before rotation (10MB).
LOG_MAX_SIZE = 10 * 1024 * 1024

#: Number of conversation log backups to retain during rotation.
LOG_BACKUP_COUNT_CONVERSATIONS = 5

#: Number of error log backups to retain during rotation.
LOG_BACKUP_COUNT_ERRORS = 3

#: Maximum characters to show in log previews for user input/response.
LOG_PREVIEW_LENGTH = 50

#: Length of the per-process logger component id.
COMPONENT_ID_LENGTH = 8

# ============================================================================
# Environment Configuration with Pydantic Validation
# ============================================================================

#: Valid environment names for configuration loading
Environment = Literal["development", "production", "test"]


def _get_env_files() -> list[Path]:
    """Determine which .env files to load based on APP_ENV.

    Load order (later files override earlier - pydantic-settings last-wins):
    1. .env (base defaults) - lowest priority
    2. .env.{environment} (environment-specific overrides)
    3. .env.local (local developer overrides, gitignored) - highest priority

    Returns:
        List of Path objects for env files that exist.
    """
    env_name = os.getenv("APP_ENV", "development").lower()
    if env_name not in ("development", "production", "test"):
        env_name = "development"

    candidates = [
        PROJECT_ROOT / ".env",
        PROJECT_ROOT / f".env.{env_name}",
        PROJECT_ROOT / ".env.local",
    ]
    return [p for p in candidates if p.exists()]


class Settings(BaseSettings):
    """Environment settings with validation and environment-specific file support.

    Configuration priority (highest to lowest):
    1. Values passed to Settings() constructor
    2. Environment variables
    3. .env.local > .env.{APP_ENV} > .env (dotenv files, last wins)

    Validates at startup to fail fast on configuration errors. Provider
    credentials are optional here; a missing key only fails when a workflow
    actually needs that provider.
    """

    app_env: Environment = Field(default="development", description="Application environment")
    app_version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Enable debug logging")
    enable_content_logging: bool = Field(default=False, description="Log redacted message previews")

    # Context window budget
    max_context_tokens: int = Field(default=DEFAULT_MAX_CONTEXT_TOKENS, gt=0)
    summary_threshold: int = Field(default=DEFAULT_SUMMARY_THRESHOLD, gt=0)
    emergency_trim_tokens: int = Field(default=DEFAULT_EMERGENCY_TRIM_TOKENS, gt=0)

    # Token counting
    token_counting: TokenCountingStrategy = Field(default="heuristic", description="'heuristic' or 'tiktoken'")
    token_model: str = Field(default="gpt-4", description="Model whose tokenizer is used for exact counting")

    # Summarizer service (client side)
    summarizer_url: HttpUrl = Field(
        default="http://localhost:8000/api/v1/ai",  # type: ignore[assignment]
        validate_default=True,
        description="Base URL exposing /summarize and /extract-points",
    )
    summarizer_timeout: float = Field(default=15.0, gt=0, description="Summarizer request timeout (seconds)")
    summarizer_retries: int = Field(default=1, ge=0, le=3, description="Retries after a transient failure")
    summary_language: str = Field(default="ar", description="Language hint sent to the summarizer")
    summary_cache_ttl: float = Field(default=600.0, gt=0, description="Summary cache TTL (seconds)")
    summary_cache_size: int = Field(default=1000, gt=0, description="Maximum cached summaries")
    cache_sweep_interval: float = Field(default=600.0, gt=0, description="Expired-entry sweep interval (seconds)")

    # Summarizer service (server side)
    summary_model: str = Field(default="gpt-4o-mini", description="Model used by the summarize endpoint")

    # Hosted model providers
    openai_api_key: str | None = Field(default=None, description="OpenAI API key")
    openai_base_url: str | None = Field(default=None, description="Optional OpenAI-compatible base URL")
    anthropic_api_key: str | None = Field(default=None, description="Anthropic API key")
    anthropic_base_url: str = Field(default="https://api.anthropic.com/v1/", description="Anthropic OpenAI-compatible URL")
    deepseek_api_key: str | None = Field(default=None, description="DeepSeek API key")
    deepseek_base_url: str = Field(default="https://api.deepseek.com", description="DeepSeek API URL")

    # Workflow execution
    stage_timeout: float = Field(default=30.0, gt=0, description="Per-stage model call timeout (seconds)")
    http_read_timeout: float = Field(default=120.0, gt=0, description="HTTP read timeout for model calls")

    # API server
    api_host: str = Field(default="0.0.0.0", description="FastAPI host")
    api_port: int = Field(default=8000, description="FastAPI port")
    cors_allow_origins: str = Field(default="*", description="Comma-separated CORS origins")

    model_config = SettingsConfigDict(
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Env vars override dotenv files; constructor values override both."""
        dotenv_source = DotEnvSettingsSource(
            settings_cls,
            env_file=_get_env_files(),
            env_file_encoding="utf-8",
        )
        return (init_settings, env_settings, dotenv_source)

    @field_validator("app_env", mode="before")
    @classmethod
    def validate_app_env(cls, v: str | None) -> str:
        """Validate and normalize APP_ENV value."""
        if v is None:
            return "development"
        normalized = str(v).lower()
        if normalized not in ("development", "production", "test"):
            raise ValueError(f"app_env must be 'development', 'production', or 'test', got '{v}'")
        return normalized

    @field_validator("token_counting", mode="before")
    @classmethod
    def normalize_token_counting(cls, v: str) -> str:
        return str(v).lower()

    @model_validator(mode="after")
    def validate_budget_order(self) -> Settings:
        """Budget thresholds must satisfy floor < trigger < max."""
        if not self.emergency_trim_tokens < self.summary_threshold < self.max_context_tokens:
            raise ValueError(
                "Configuration Error: token budget must satisfy "
                "emergency_trim_tokens < summary_threshold < max_context_tokens "
                f"(got {self.emergency_trim_tokens} / {self.summary_threshold} / {self.max_context_tokens})."
            )
        return self

    @property
    def summarizer_url_str(self) -> str:
        """Summarizer base URL without trailing slash."""
        return str(self.summarizer_url).rstrip("/")

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_allow_origins.split(",") if o.strip()]


# ============================================================================
# Settings Management (Thread-safe, loaded once)
# ============================================================================


class _SettingsManager:
    """Thread-safe holder for the process-wide Settings instance."""

    __slots__ = ("_instance", "_lock")

    def __init__(self) -> None:
        self._instance: Settings | None = None
        self._lock = threading.Lock()

    def get(self) -> Settings:
        """Get the settings instance, loading it on first use.

        Raises:
            ValueError: If required configuration is missing or invalid.
        """
        if self._instance is not None:
            return self._instance

        with self._lock:
            if self._instance is not None:
                return self._instance
            self._instance = Settings()
            return self._instance

    def reload(self) -> Settings:
        """Force reload settings from environment files."""
        with self._lock:
            self._instance = Settings()
            return self._instance

    def clear(self) -> None:
        """Clear cached settings instance."""
        with self._lock:
            self._instance = None


# Module-level singleton manager
_settings_manager = _SettingsManager()


def get_settings() -> Settings:
    """Get settings instance.

    This is the primary entry point for accessing application settings.
    Settings are validated at first use and cached.

    Returns:
        Validated Settings instance.

    Raises:
        ValueError: If required configuration is missing or invalid.
    """
    return _settings_manager.get()


def reload_settings() -> Settings:
    """Force reload settings from environment files."""
    return _settings_manager.reload()


def clear_settings_cache() -> None:
    """Clear cached settings instance.

    Primarily useful for testing to ensure fresh settings on each test.
    """
    _settings_manager.clear()
