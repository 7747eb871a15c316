# backend/tracker/services/market_data/static.py
"""
Offline quote provider.

Used when no TwelveData API key is configured so the tracker still values
common symbols during local development. Symbols not in the table have no
price and are valued at 0 by the aggregation engine.
"""

import logging
from collections.abc import Iterable, Mapping
from decimal import Decimal

from tracker.services.market_data.base import QuoteProvider, normalize_symbols
from tracker.utils.fx_conversion import DEFAULT_USDILS_RATE

logger = logging.getLogger(__name__)

STATIC_PRICES: dict[str, Decimal] = {
    "AAPL": Decimal("178.50"),
    "MSFT": Decimal("378.25"),
    "GOOGL": Decimal("141.80"),
    "AMZN": Decimal("153.40"),
    "TSLA": Decimal("248.90"),
    "NVDA": Decimal("495.60"),
    "META": Decimal("356.20"),
    "BRK.B": Decimal("362.15"),
    "JPM": Decimal("172.80"),
    "V": Decimal("265.30"),
    "SPY": Decimal("472.50"),
    "QQQ": Decimal("398.20"),
    "VOO": Decimal("435.60"),
    "VTI": Decimal("238.40"),
    "BTC": Decimal("43500.00"),
    "ETH": Decimal("2250.00"),
}


class StaticQuoteProvider(QuoteProvider):
    """Serves prices from a fixed table and a fixed USD/ILS rate."""

    def __init__(
            self,
            prices: Mapping[str, Decimal] | None = None,
            usdils_rate: Decimal = DEFAULT_USDILS_RATE,
    ) -> None:
        self._prices = dict(STATIC_PRICES if prices is None else prices)
        self._usdils_rate = usdils_rate

    @property
    def name(self) -> str:
        return "static"

    def fetch_prices(self, symbols: Iterable[str]) -> dict[str, Decimal]:
        prices = {s: self._prices[s] for s in normalize_symbols(symbols) if s in self._prices}
        logger.debug(f"Serving {len(prices)} static prices (no quote API key configured)")
        return prices

    def fetch_usdils_rate(self) -> Decimal | None:
        return self._usdils_rate
