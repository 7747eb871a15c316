# backend/tracker/services/market_data/twelvedata.py
"""
TwelveData quote provider.

Endpoints used:
    GET /price?symbol=AAPL&apikey=...           -> {"price": "178.50"}
    GET /price?symbol=AAPL,MSFT&apikey=...      -> {"AAPL": {"price": "178.50"}, "MSFT": {...}}
    GET /exchange_rate?symbol=USD/ILS&apikey=... -> {"symbol": "USD/ILS", "rate": 3.65, ...}

Errors come back either as an HTTP status or as a 200 body with
{"status": "error", "code": ..., "message": ...}. A per-symbol error inside a
batch response only drops that symbol.
"""

import logging
from collections.abc import Iterable
from decimal import Decimal, InvalidOperation
from typing import Any

import httpx

from tracker.services.exceptions import MarketDataError, ProviderUnavailableError, RateLimitError
from tracker.services.market_data.base import QuoteProvider, normalize_symbols

logger = logging.getLogger(__name__)

USDILS_SYMBOL = "USD/ILS"


def _parse_decimal(value: Any) -> Decimal | None:
    if value is None:
        return None
    try:
        parsed = Decimal(str(value))
    except InvalidOperation:
        return None
    if not parsed.is_finite() or parsed <= 0:
        return None
    return parsed


def _is_error(payload: Any) -> bool:
    return isinstance(payload, dict) and payload.get("status") == "error"


class TwelveDataProvider(QuoteProvider):
    """
    Quote provider backed by the TwelveData REST API.

    Args:
        api_key: TwelveData API key
        base_url: API root (default https://api.twelvedata.com)
        timeout: Per-request timeout in seconds
        client: Optional preconfigured httpx.Client (tests pass one with a
            MockTransport); the provider closes only clients it created
    """

    def __init__(
            self,
            api_key: str,
            base_url: str = "https://api.twelvedata.com",
            timeout: float = 10.0,
            client: httpx.Client | None = None,
    ) -> None:
        self._api_key = api_key
        self._owns_client = client is None
        self._client = client or httpx.Client(base_url=base_url.rstrip("/"), timeout=timeout)

    @property
    def name(self) -> str:
        return "twelvedata"

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    # =========================================================================
    # PRICES
    # =========================================================================

    def fetch_prices(self, symbols: Iterable[str]) -> dict[str, Decimal]:
        wanted = normalize_symbols(symbols)
        prices: dict[str, Decimal] = {}

        for chunk in self._chunk(wanted):
            try:
                payload = self._execute_with_retry(self._get, "/price", symbol=",".join(chunk))
            except MarketDataError as e:
                logger.warning(f"Price batch failed for {len(chunk)} symbols: {e}")
                continue
            prices.update(self._parse_prices(chunk, payload))

        missing = set(wanted) - prices.keys()
        if missing:
            logger.warning(f"No price returned for: {', '.join(sorted(missing))}")
        logger.debug(f"Fetched {len(prices)}/{len(wanted)} prices from {self.name}")
        return prices

    def _parse_prices(self, chunk: list[str], payload: Any) -> dict[str, Decimal]:
        # A single-symbol request is answered with a flat object
        if len(chunk) == 1:
            entries = {chunk[0]: payload}
        elif isinstance(payload, dict):
            entries = {symbol: payload.get(symbol) for symbol in chunk}
        else:
            return {}

        prices: dict[str, Decimal] = {}
        for symbol, entry in entries.items():
            if not isinstance(entry, dict) or _is_error(entry):
                if _is_error(entry):
                    logger.debug(f"{self.name} error for {symbol}: {entry.get('message')}")
                continue
            price = _parse_decimal(entry.get("price"))
            if price is not None:
                prices[symbol] = price
        return prices

    # =========================================================================
    # FX
    # =========================================================================

    def fetch_usdils_rate(self) -> Decimal | None:
        try:
            payload = self._execute_with_retry(self._get, "/exchange_rate", symbol=USDILS_SYMBOL)
        except MarketDataError as e:
            logger.warning(f"USD/ILS rate unavailable: {e}")
            return None

        if not isinstance(payload, dict) or _is_error(payload):
            logger.warning(f"USD/ILS rate rejected by {self.name}: {payload}")
            return None

        rate = _parse_decimal(payload.get("rate"))
        if rate is None:
            logger.warning(f"USD/ILS rate missing from {self.name} response")
        return rate

    # =========================================================================
    # HTTP
    # =========================================================================

    def _get(self, path: str, **params: str) -> Any:
        """
        GET a TwelveData endpoint and return the decoded JSON body.

        Raises:
            RateLimitError: HTTP 429 or an error body with code 429
            ProviderUnavailableError: Network failure, 5xx, or a non-JSON body
        """
        try:
            response = self._client.get(path, params={**params, "apikey": self._api_key})
        except httpx.HTTPError as e:
            raise ProviderUnavailableError(self.name, f"request to {path} failed: {e}") from e

        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            raise RateLimitError(self.name, int(retry_after) if retry_after and retry_after.isdigit() else None)
        if response.status_code >= 500:
            raise ProviderUnavailableError(self.name, f"HTTP {response.status_code} from {path}")
        if response.status_code >= 400:
            raise ProviderUnavailableError(self.name, f"HTTP {response.status_code} from {path}: {response.text[:200]}")

        try:
            payload = response.json()
        except ValueError as e:
            raise ProviderUnavailableError(self.name, f"invalid JSON from {path}") from e

        if _is_error(payload) and payload.get("code") == 429:
            raise RateLimitError(self.name)
        return payload
