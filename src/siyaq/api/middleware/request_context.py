"""
Per-request state shared by the chat pipeline and the logger.

The middleware opens a ``RequestContext`` for every HTTP request. Services
fill in what they learn along the way (workflow type, history size,
whether the window was trimmed) and every log record emitted while the
request is in flight carries those fields.
"""

from __future__ import annotations

import secrets
import time

from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

_current: ContextVar[RequestContext | None] = ContextVar("siyaq_request_context", default=None)

REQUEST_ID_PREFIX = "req_"
REQUEST_ID_HEADER = "X-Request-ID"
REQUEST_TYPE_HEADER = "X-Request-Type"


@dataclass
class RequestContext:
    """What is known about the request being served."""

    request_id: str
    start_time: float = field(default_factory=time.monotonic)
    path: str = ""
    method: str = ""
    client_ip: str | None = None
    # Filled in by the chat pipeline
    request_type: str | None = None
    history_messages: int | None = None
    context_trimmed: bool | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def elapsed_ms(self) -> float:
        return (time.monotonic() - self.start_time) * 1000

    def to_log_context(self) -> dict[str, Any]:
        """Fields attached to log records; unset chat fields are omitted."""
        fields: dict[str, Any] = {
            "request_id": self.request_id,
            "path": self.path,
            "method": self.method,
            "elapsed_ms": round(self.elapsed_ms, 2),
        }
        optional = {
            "client_ip": self.client_ip,
            "request_type": self.request_type,
            "history_messages": self.history_messages,
            "context_trimmed": self.context_trimmed,
        }
        fields.update({key: value for key, value in optional.items() if value is not None})
        fields.update(self.extra)
        return fields


def generate_request_id(prefix: str = REQUEST_ID_PREFIX) -> str:
    """Return ``prefix`` followed by 16 random hex characters."""
    return f"{prefix}{secrets.token_hex(8)}"


def get_request_context() -> RequestContext | None:
    """The context of the request being served, or None outside one."""
    return _current.get()


def get_request_id() -> str | None:
    ctx = _current.get()
    return ctx.request_id if ctx else None


def set_request_context(context: RequestContext) -> None:
    _current.set(context)


def clear_request_context() -> None:
    _current.set(None)


def update_request_context(**fields: Any) -> None:
    """Record request facts on the current context.

    Known attributes are set directly, anything else lands in ``extra``.
    Outside a request this does nothing.
    """
    ctx = _current.get()
    if ctx is None:
        return
    for name, value in fields.items():
        if name != "extra" and hasattr(ctx, name):
            setattr(ctx, name, value)
        else:
            ctx.extra[name] = value


def _client_ip(request: Request) -> str | None:
    # First hop of X-Forwarded-For is the original caller behind a proxy
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip() or None
    return request.client.host if request.client else None


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Open a RequestContext per request and echo its id and timing.

    Responses carry ``X-Request-ID``, ``X-Response-Time`` and, for chat
    turns, the workflow type chosen by the orchestrator in ``X-Request-Type``.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        context = RequestContext(
            request_id=request.headers.get(REQUEST_ID_HEADER) or generate_request_id(),
            path=request.url.path,
            method=request.method,
            client_ip=_client_ip(request),
        )
        set_request_context(context)

        try:
            response = await call_next(request)
        finally:
            clear_request_context()

        response.headers[REQUEST_ID_HEADER] = context.request_id
        response.headers["X-Response-Time"] = f"{context.elapsed_ms:.2f}ms"
        if context.request_type:
            response.headers[REQUEST_TYPE_HEADER] = context.request_type
        return response


__all__ = [
    "REQUEST_ID_HEADER",
    "REQUEST_ID_PREFIX",
    "REQUEST_TYPE_HEADER",
    "RequestContext",
    "RequestContextMiddleware",
    "clear_request_context",
    "generate_request_id",
    "get_request_context",
    "get_request_id",
    "set_request_context",
    "update_request_context",
]
