"""Request context management using contextvars.

Provides thread-safe, async-safe storage for request-scoped data used in
log records. Starlette copies the context into its threadpool, so values
set by middleware are visible inside synchronous endpoints.

Usage:
    set_request_id("3f2a...")
    request_id = get_request_id()
"""

from contextvars import ContextVar, Token

_request_id: ContextVar[str | None] = ContextVar("request_id", default=None)


def set_request_id(request_id: str | None) -> Token:
    """Set the request ID for the current request; returns a reset token."""
    return _request_id.set(request_id)


def reset_request_id(token: Token) -> None:
    """Restore the request ID that was current before set_request_id."""
    _request_id.reset(token)


def get_request_id() -> str | None:
    """Return the current request ID, or None outside a request."""
    return _request_id.get()
