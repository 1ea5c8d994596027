"""
Logging setup for Siyaq using Python's standard logging
with JSON formatting for structured logs.

Log destinations:
- Console (stderr): Human-readable format for debugging
- logs/conversations.jsonl: JSON format for context and workflow events
- logs/errors.jsonl: JSON format for error tracking
"""

from __future__ import annotations

import logging
import logging.handlers
import os
import re
import sys
import uuid

from typing import Any

from pythonjsonlogger import json as jsonlogger

from siyaq.api.middleware.request_context import get_request_context
from siyaq.core.constants import (
    COMPONENT_ID_LENGTH,
    LOG_BACKUP_COUNT_CONVERSATIONS,
    LOG_BACKUP_COUNT_ERRORS,
    LOG_DIR,
    LOG_MAX_SIZE,
    LOG_PREVIEW_LENGTH,
    get_settings,
)

# PII Redaction patterns
REDACTION_PATTERNS = [
    (r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Z|a-z]{2,}\b", "[EMAIL]"),
    (r"\b(?:\d{4}[- ]?){3}\d{4}\b", "[CARD]"),
    (r"\b(sk-|pk-|api[-_]?key[-_]?)[A-Za-z0-9]{20,}\b", "[API_KEY]"),
    (r"\b(password|secret|token)\s*[:=]\s*\S+", "[REDACTED]"),
]


class ConversationFilter(logging.Filter):
    """Filter to allow all INFO level logs for conversations"""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= logging.INFO


class ErrorFilter(logging.Filter):
    """Filter to only allow ERROR and CRITICAL logs"""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= logging.ERROR


class ColoredConsoleFormatter(logging.Formatter):
    """
    Custom formatter that adds colors to log levels and standardizes format.
    Format: HH:MM:SS [LEVEL] logger_name - message
    """

    GREY = "\x1b[38;20m"
    GREEN = "\x1b[32;20m"
    YELLOW = "\x1b[33;20m"
    RED = "\x1b[31;20m"
    BOLD_RED = "\x1b[31;1m"
    RESET = "\x1b[0m"

    LEVEL_COLORS = {
        logging.DEBUG: GREY,
        logging.INFO: GREEN,
        logging.WARNING: YELLOW,
        logging.ERROR: RED,
        logging.CRITICAL: BOLD_RED,
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno)
        level_fmt = f"[{record.levelname}]"
        if color:
            level_fmt = f"{color}{level_fmt}{self.RESET}"

        record.asctime = self.formatTime(record, "%H:%M:%S")
        message = f"{record.asctime} {level_fmt} {record.name} - {record.getMessage()}"
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        return message


def configure_uvicorn_logging() -> None:
    """Route uvicorn's loggers through the colored console formatter."""
    formatter = ColoredConsoleFormatter()

    for name in ("uvicorn", "uvicorn.access", "uvicorn.error"):
        uv_logger = logging.getLogger(name)
        uv_logger.handlers = []
        uv_logger.setLevel(logging.INFO)
        if name != "uvicorn":
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(formatter)
            uv_logger.addHandler(handler)
            uv_logger.propagate = False


def setup_logging(name: str = "siyaq", debug: bool | None = None) -> logging.Logger:
    """
    Set up logging with console and rotating JSON file handlers.

    Args:
        name: Logger name
        debug: Enable debug logging (overrides DEBUG env var)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)  # Capture all, filter at handler level
    logger.handlers = []

    if debug is None:
        debug = os.getenv("DEBUG", "false").lower() in ("true", "1", "yes")

    # --- Console Handler (Human-readable) ---
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.DEBUG if debug else logging.INFO)
    console_handler.setFormatter(ColoredConsoleFormatter())
    logger.addHandler(console_handler)

    LOG_DIR.mkdir(parents=True, exist_ok=True)

    # --- Conversation Log Handler (JSON) ---
    conv_handler = logging.handlers.RotatingFileHandler(
        LOG_DIR / "conversations.jsonl",
        maxBytes=LOG_MAX_SIZE,
        backupCount=LOG_BACKUP_COUNT_CONVERSATIONS,
        encoding="utf-8",
    )
    conv_handler.setLevel(logging.INFO)
    conv_handler.addFilter(ConversationFilter())
    conv_handler.setFormatter(
        jsonlogger.JsonFormatter(
            "%(timestamp)s %(levelname)s %(message)s %(request_id)s %(tokens)s",
            timestamp=True,
        )
    )
    logger.addHandler(conv_handler)

    # --- Error Log Handler (JSON) ---
    error_handler = logging.handlers.RotatingFileHandler(
        LOG_DIR / "errors.jsonl",
        maxBytes=LOG_MAX_SIZE,
        backupCount=LOG_BACKUP_COUNT_ERRORS,
        encoding="utf-8",
    )
    error_handler.setLevel(logging.ERROR)
    error_handler.addFilter(ErrorFilter())
    error_handler.setFormatter(
        jsonlogger.JsonFormatter(
            "%(timestamp)s %(levelname)s %(name)s %(message)s",
            timestamp=True,
        )
    )
    logger.addHandler(error_handler)

    return logger


class ChatLogger:
    """
    High-level logging interface for Siyaq.
    Wraps standard Python logging with convenience methods; keyword
    arguments become structured fields on the JSON records.
    """

    def __init__(self, name: str = "siyaq"):
        self.logger = setup_logging(name)
        self.component_id = str(uuid.uuid4())[:COMPONENT_ID_LENGTH]

    def _enrich_context(self, kwargs: dict[str, Any]) -> dict[str, Any]:
        """Enrich log arguments with request context and component ID."""
        kwargs.setdefault("component_id", self.component_id)
        if ctx := get_request_context():
            kwargs.update(ctx.to_log_context())
        return kwargs

    def debug(self, message: str, **kwargs: Any) -> None:
        """Debug level logging"""
        self.logger.debug(message, extra=self._enrich_context(kwargs))

    def info(self, message: str, **kwargs: Any) -> None:
        """Info level logging"""
        self.logger.info(message, extra=self._enrich_context(kwargs))

    def warning(self, message: str, **kwargs: Any) -> None:
        """Warning level logging"""
        self.logger.warning(message, extra=self._enrich_context(kwargs))

    def error(self, message: str, exc_info: bool = False, **kwargs: Any) -> None:
        """Error level logging with optional exception info"""
        self.logger.error(message, extra=self._enrich_context(kwargs), exc_info=exc_info)

    def _should_log_content(self) -> bool:
        """Check if content logging is enabled via settings."""
        try:
            return bool(get_settings().enable_content_logging)
        except ValueError:
            # Invalid configuration should not break logging
            return False

    def redact(self, text: str) -> str:
        """Redact PII from text using defined patterns."""
        if not text:
            return text

        redacted = text
        for pattern, replacement in REDACTION_PATTERNS:
            redacted = re.sub(pattern, replacement, redacted)
        return redacted

    def preview(self, text: str) -> str:
        """Short redacted preview of message content, or a placeholder when content logging is off."""
        if not self._should_log_content():
            return "[HIDDEN]"
        snippet = self.redact(text[:LOG_PREVIEW_LENGTH].replace("\n", " "))
        if len(text) > LOG_PREVIEW_LENGTH:
            snippet += "..."
        return snippet

    def log_chat_turn(
        self,
        user_input: str,
        response: str,
        request_type: str,
        duration_ms: float | None = None,
        tokens_used: int | None = None,
        partial: bool = False,
    ) -> None:
        """Log one orchestrated chat turn with optional content previews."""
        msg_parts = [f"User: {self.preview(user_input)} → AI: {self.preview(response)}", f"[{request_type}]"]
        if duration_ms:
            msg_parts.append(f"[{duration_ms:.0f}ms]")
        if tokens_used:
            msg_parts.append(f"[{tokens_used} tokens]")
        if partial:
            msg_parts.append("[partial]")

        extra_data: dict[str, Any] = {
            "chat_turn": True,
            "chars_input": len(user_input),
            "chars_response": len(response),
            "request_type": request_type,
            "content_logging": self._should_log_content(),
        }
        if duration_ms is not None:
            extra_data["ms"] = int(duration_ms)
        if tokens_used is not None:
            extra_data["tokens"] = tokens_used

        self.logger.info(" ".join(msg_parts), extra=self._enrich_context(extra_data))


# Global logger instance
logger = ChatLogger()
