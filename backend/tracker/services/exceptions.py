# backend/tracker/services/exceptions.py
"""
Service layer exceptions.

Services raise these and know nothing about HTTP. Global handlers in
main.py translate them into ErrorDetail responses.

Exception Hierarchy:
    ServiceError (base)
    ├── ValidationError
    │   └── InsufficientQuantityError
    ├── NotFoundError
    │   └── PortfolioNotFoundError
    ├── BalanceUpdateError
    ├── RefreshError
    └── MarketDataError
        ├── ProviderUnavailableError
        └── RateLimitError

Partial failures inside a refresh (a missing quote, a failed upsert, an FX
fallback) are logged and counted, never raised.
"""

from decimal import Decimal


class ServiceError(Exception):
    """
    Base exception for all service layer errors.

    Attributes:
        message: Human-readable error description
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class ValidationError(ServiceError):
    """
    Raised when a command cannot be executed as given.

    Covers business rules Pydantic cannot see on its own (a blank portfolio
    name after trimming, a transaction missing the fields its type needs).

    Attributes:
        field: The offending field, when there is one
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class InsufficientQuantityError(ValidationError):
    """
    Raised when a SELL asks for more units than the holding has.

    Also raised when there is no holding at all (held = 0).
    """

    def __init__(self, symbol: str, requested: Decimal, held: Decimal) -> None:
        self.symbol = symbol
        self.requested = requested
        self.held = held
        super().__init__(
            f"Insufficient quantity to sell {symbol}: requested {requested}, held {held}",
            field="quantity",
        )


# =============================================================================
# NOT FOUND ERRORS
# =============================================================================


class NotFoundError(ServiceError):
    """
    Base exception for resource not found errors.

    Attributes:
        resource_type: Type of resource (e.g., "Portfolio")
        resource_id: Identifier of the resource
    """

    def __init__(
            self,
            message: str,
            resource_type: str | None = None,
            resource_id: int | str | None = None,
    ) -> None:
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(message)


class PortfolioNotFoundError(NotFoundError):
    """
    Raised when a portfolio does not exist or belongs to another user.

    The two cases are deliberately indistinguishable to the caller.
    """

    def __init__(self, portfolio_id: int) -> None:
        self.portfolio_id = portfolio_id
        super().__init__(
            f"Portfolio {portfolio_id} not found",
            resource_type="Portfolio",
            resource_id=portfolio_id,
        )


# =============================================================================
# CONSISTENCY ERRORS
# =============================================================================


class BalanceUpdateError(ServiceError):
    """
    Raised when a transaction was recorded but its holding/cash effects were not.

    The ledger row is committed before balances are touched, so this error
    means the ledger and the balances disagree until someone fixes it.

    Attributes:
        transaction_id: Id of the ledger row that was saved
        reason: What went wrong while applying the effects
    """

    def __init__(self, transaction_id: int, reason: str) -> None:
        self.transaction_id = transaction_id
        self.reason = reason
        super().__init__(
            f"Transaction {transaction_id} saved but balances not updated: {reason}"
        )


class RefreshError(ServiceError):
    """Raised when the base data (portfolios, holdings, cash) cannot be loaded for a refresh."""

    def __init__(self, user_id: int, reason: str) -> None:
        self.user_id = user_id
        self.reason = reason
        super().__init__(f"Refresh failed for user {user_id}: {reason}")


# =============================================================================
# MARKET DATA PROVIDER ERRORS
# =============================================================================


class MarketDataError(ServiceError):
    """
    Base exception for quote/FX provider failures.

    Attributes:
        provider: Name of the provider that failed
    """

    def __init__(self, message: str, provider: str | None = None) -> None:
        self.provider = provider
        super().__init__(message)


class ProviderUnavailableError(MarketDataError):
    """
    Raised when the provider cannot be reached or answers with an error.

    Network timeouts, 5xx responses and unparseable payloads end up here.
    This is a retryable error.
    """

    def __init__(self, provider: str, reason: str) -> None:
        super().__init__(f"Provider '{provider}' is unavailable: {reason}", provider=provider)
        self.reason = reason


class RateLimitError(MarketDataError):
    """
    Raised when the provider's rate limit has been exceeded.

    Attributes:
        retry_after: Seconds to wait before retrying (if provided by API)
    """

    def __init__(self, provider: str, retry_after: int | None = None) -> None:
        message = f"Rate limit exceeded for provider '{provider}'"
        if retry_after:
            message += f" (retry after {retry_after}s)"
        super().__init__(message, provider=provider)
        self.retry_after = retry_after
