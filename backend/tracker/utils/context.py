# backend/tracker/utils/context.py
"""
Request-scoped context values.

contextvars propagate through async/await and are isolated per request, so
middleware can set a value once and every log line emitted while handling
that request picks it up.

Values:
    correlation_id  - request trace id (X-Correlation-ID header or generated)
    user_id         - caller id taken from the X-User-Id header
"""

from contextvars import ContextVar

_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)
_user_id: ContextVar[int | None] = ContextVar("user_id", default=None)


# =============================================================================
# CORRELATION ID
# =============================================================================

def get_correlation_id() -> str | None:
    """Correlation id of the request being handled, or None outside a request."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: str) -> None:
    _correlation_id.set(correlation_id)


def clear_correlation_id() -> None:
    _correlation_id.set(None)


# =============================================================================
# USER ID
# =============================================================================

def get_user_id() -> int | None:
    """Id of the user the current request acts for, if known."""
    return _user_id.get()


def set_user_id(user_id: int) -> None:
    _user_id.set(user_id)


def clear_user_id() -> None:
    _user_id.set(None)
