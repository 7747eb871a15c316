# backend/tracker/services/constants.py
"""
Business constants shared across the tracker services.

Money precision lives in tracker.utils.decimal_math and the FX sanity range
in tracker.utils.fx_conversion; this module holds service-level values only.

Usage:
    from tracker.services.constants import USDILS_PAIR, QUOTE_BATCH_SIZE
"""


# =============================================================================
# FX
# =============================================================================

# Only pair the tracker stores. Rate = ILS per 1 USD.
USDILS_PAIR: str = "USDILS"


# =============================================================================
# LEDGER
# =============================================================================

# Scale of every Numeric(18, 8) money/quantity column; finer input would be
# rounded on write
STORED_DECIMAL_PLACES: int = 8


# =============================================================================
# MARKET DATA
# =============================================================================

# Maximum symbols per batch quote request
QUOTE_BATCH_SIZE: int = 120

# Retry policy for quote provider HTTP calls
QUOTE_MAX_RETRIES: int = 3
QUOTE_RETRY_MIN_WAIT_SECONDS: float = 1.0
QUOTE_RETRY_MAX_WAIT_SECONDS: float = 8.0


# =============================================================================
# RESOURCE LIMITS
# =============================================================================

# Upper bound for the transactions list limit parameter
MAX_LIST_LIMIT: int = 1000

# Number of recent transactions shown on the portfolio page
PORTFOLIO_PAGE_TRANSACTIONS: int = 50
