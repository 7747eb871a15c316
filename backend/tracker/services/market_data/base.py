# backend/tracker/services/market_data/base.py
"""
Abstract interface for quote providers.

A quote provider supplies the two external inputs of a refresh: the latest
USD price per symbol and the USD/ILS rate. Services only depend on this
interface, so tests plug in a fake and production plugs in TwelveData.

Contract:
    fetch_prices(symbols)  -> {symbol: price}. Partial results are normal.
                              Unknown symbols are simply absent. Never raises
                              for a symbol; may raise MarketDataError when the
                              whole provider is unreachable.
    fetch_usdils_rate()    -> ILS per USD, or None when unavailable.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from decimal import Decimal
from typing import Any, TypeVar

from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from tracker.services.constants import (
    QUOTE_BATCH_SIZE,
    QUOTE_MAX_RETRIES,
    QUOTE_RETRY_MAX_WAIT_SECONDS,
    QUOTE_RETRY_MIN_WAIT_SECONDS,
)
from tracker.services.exceptions import ProviderUnavailableError, RateLimitError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class QuoteProvider(ABC):
    """
    Base class for price/FX providers.

    Retry Behavior:
        _execute_with_retry() retries ProviderUnavailableError and
        RateLimitError with exponential backoff. Subclasses tune it through
        the class attributes below.
    """

    MAX_RETRY_ATTEMPTS: int = QUOTE_MAX_RETRIES
    RETRY_MIN_WAIT: float = QUOTE_RETRY_MIN_WAIT_SECONDS
    RETRY_MAX_WAIT: float = QUOTE_RETRY_MAX_WAIT_SECONDS
    RETRY_MULTIPLIER: float = 1

    MAX_BATCH_SIZE: int = QUOTE_BATCH_SIZE

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider identifier used in logs and errors (e.g. "twelvedata")."""

    @abstractmethod
    def fetch_prices(self, symbols: Iterable[str]) -> dict[str, Decimal]:
        """
        Latest USD price for each symbol the provider knows.

        Raises:
            ProviderUnavailableError: The provider could not be reached at all
        """

    @abstractmethod
    def fetch_usdils_rate(self) -> Decimal | None:
        """ILS per 1 USD, or None when the provider has no usable rate."""

    def is_available(self) -> bool:
        return True

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _execute_with_retry(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """
        Call func, retrying transient provider failures.

        Raises:
            The last exception once all attempts are used up
        """

        @retry(
            stop=stop_after_attempt(self.MAX_RETRY_ATTEMPTS),
            wait=wait_exponential(
                multiplier=self.RETRY_MULTIPLIER,
                min=self.RETRY_MIN_WAIT,
                max=self.RETRY_MAX_WAIT,
            ),
            retry=retry_if_exception_type((ProviderUnavailableError, RateLimitError)),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        def _inner() -> T:
            return func(*args, **kwargs)

        return _inner()

    def _chunk(self, symbols: list[str]) -> list[list[str]]:
        size = self.MAX_BATCH_SIZE
        return [symbols[i:i + size] for i in range(0, len(symbols), size)]


def normalize_symbols(symbols: Iterable[str]) -> list[str]:
    """Trimmed, upper-cased, de-duplicated and sorted; blanks dropped."""
    return sorted({s.strip().upper() for s in symbols if s and s.strip()})
