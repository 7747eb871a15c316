# backend/tracker/middleware/__init__.py
"""
ASGI middleware for the Portfolio Tracker.

Usage:
    from tracker.middleware import CorrelationIdMiddleware

    app.add_middleware(CorrelationIdMiddleware)
"""

from tracker.middleware.correlation import CorrelationIdMiddleware

__all__ = ["CorrelationIdMiddleware"]
