# backend/tracker/schemas/validators.py
"""
Reusable validation functions for Pydantic schemas.

- Symbol validation and normalization
- Portfolio name / account number normalization
- Display currency query parameter validation
"""

import re

from tracker.models import Currency

# 1-20 chars: letters, digits, dots (BRK.B) and dashes (BTC-USD)
SYMBOL_PATTERN = re.compile(r"^[A-Z0-9][A-Z0-9.\-]{0,19}$")
SYMBOL_MAX_LENGTH = 20


def validate_symbol(value: str) -> str:
    """
    Trim, upper-case and validate a ticker symbol.

    Raises:
        ValueError: If the symbol is empty or has an invalid format
    """
    normalized = (value or "").strip().upper()
    if not normalized:
        raise ValueError("Symbol cannot be empty")
    if len(normalized) > SYMBOL_MAX_LENGTH:
        raise ValueError(f"Symbol cannot exceed {SYMBOL_MAX_LENGTH} characters")
    if not SYMBOL_PATTERN.match(normalized):
        raise ValueError(
            f"Invalid symbol format: '{normalized}'. "
            "Use letters, digits, dots or dashes"
        )
    return normalized


def normalize_portfolio_name(value: str) -> str:
    """Trim a portfolio name; a blank name is rejected."""
    name = value.strip()
    if not name:
        raise ValueError("Portfolio name cannot be blank")
    return name


def normalize_account_number(value: str | None) -> str | None:
    """Trim an account number; blank becomes None."""
    if value is None:
        return None
    return value.strip() or None


def validate_currency_query(value: str | None) -> Currency | None:
    """
    Validate a ?currency= query parameter.

    Raises:
        ValueError: For anything other than USD/ILS (case-insensitive)
    """
    if value is None:
        return None
    try:
        return Currency(value.strip().upper())
    except ValueError:
        raise ValueError(f"Unsupported currency '{value}'. Use USD or ILS") from None
