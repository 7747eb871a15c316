# backend/tracker/utils/__init__.py
"""
Cross-cutting utilities for the Portfolio Tracker.

- decimal_math: Decimal context, rounding and safe division for money
- fx_conversion: USD/ILS conversion and rate validation
- logging: Logging setup with correlation id support
- context: Request-scoped correlation id and user id

Usage:
    from tracker.utils import setup_logging, get_correlation_id
    from tracker.utils.decimal_math import round_to
    from tracker.utils.fx_conversion import convert_currency
"""

from tracker.utils.context import (
    get_correlation_id,
    set_correlation_id,
    clear_correlation_id,
    get_user_id,
    set_user_id,
    clear_user_id,
)
from tracker.utils.logging import setup_logging

__all__ = [
    "setup_logging",
    "get_correlation_id",
    "set_correlation_id",
    "clear_correlation_id",
    "get_user_id",
    "set_user_id",
    "clear_user_id",
]
