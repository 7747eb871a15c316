# backend/tracker/services/market_data/__init__.py
"""
Quote providers.

Usage:
    from tracker.services.market_data import create_quote_provider

    provider = create_quote_provider()
    prices = provider.fetch_prices({"AAPL", "MSFT"})
    rate = provider.fetch_usdils_rate()

Architecture:
    QuoteProvider (ABC)
    ├── TwelveDataProvider   (live, needs TWELVEDATA_API_KEY)
    └── StaticQuoteProvider  (fixed table, used without an API key)
"""

import logging

from tracker.config import settings
from tracker.services.market_data.base import QuoteProvider, normalize_symbols
from tracker.services.market_data.static import STATIC_PRICES, StaticQuoteProvider
from tracker.services.market_data.twelvedata import TwelveDataProvider

logger = logging.getLogger(__name__)


def create_quote_provider() -> QuoteProvider:
    """TwelveData when an API key is configured, otherwise the static table."""
    if settings.is_quote_api_configured:
        return TwelveDataProvider(
            api_key=settings.twelvedata_api_key,
            base_url=settings.twelvedata_base_url,
            timeout=settings.quote_request_timeout,
        )

    logger.warning("TWELVEDATA_API_KEY not set, using static quote table")
    return StaticQuoteProvider(usdils_rate=settings.default_usdils_rate)


__all__ = [
    "QuoteProvider",
    "TwelveDataProvider",
    "StaticQuoteProvider",
    "STATIC_PRICES",
    "create_quote_provider",
    "normalize_symbols",
]
