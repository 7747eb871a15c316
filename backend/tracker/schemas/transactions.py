# backend/tracker/schemas/transactions.py
"""
Pydantic schemas for Transaction validation.

The create payload is a discriminated union on ``type``: each variant only
declares the fields its transaction kind uses, so a BUY without a price or a
CONVERT without a rate is rejected with a 422 before reaching the service.

    {"type": "BUY", "symbol": "aapl", "quantity": "10", "price": "100", "currency": "USD"}
    {"type": "DEPOSIT", "amount": "5000", "currency": "ILS"}
    {"type": "CONVERT", "amount": "100", "from_currency": "USD", "to_currency": "ILS", "fx_rate": "3.65"}

IMPORTANT: All financial values use Decimal for precision.
Never use float for money!
"""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from tracker.models import Currency, TransactionType
from tracker.schemas.pagination import PaginationMeta
from tracker.schemas.validators import validate_symbol

PositiveMoney = Annotated[Decimal, Field(gt=0, max_digits=18, decimal_places=8)]


# =============================================================================
# CREATE SCHEMAS
# =============================================================================

class TradeCreate(BaseModel):
    """Fields shared by BUY and SELL."""

    symbol: str = Field(..., examples=["AAPL", "BRK.B"], description="Ticker (upper-cased)")
    quantity: PositiveMoney = Field(..., description="Units traded")
    price: PositiveMoney = Field(..., description="Price per unit in ``currency``")
    currency: Currency = Field(default=Currency.USD, description="Trade currency")
    fee: Decimal | None = Field(
        default=None,
        ge=0,
        max_digits=18,
        decimal_places=8,
        description="Commission; omitted means the portfolio's default fee",
    )

    @field_validator("symbol")
    @classmethod
    def normalize_symbol(cls, v: str) -> str:
        return validate_symbol(v)


class BuyCreate(TradeCreate):
    type: Literal["BUY"]


class SellCreate(TradeCreate):
    type: Literal["SELL"]


class CashCreate(BaseModel):
    """Fields shared by DEPOSIT, WITHDRAW and DIVIDEND."""

    amount: PositiveMoney
    currency: Currency


class DepositCreate(CashCreate):
    type: Literal["DEPOSIT"]


class WithdrawCreate(CashCreate):
    type: Literal["WITHDRAW"]


class DividendCreate(CashCreate):
    type: Literal["DIVIDEND"]


class ConvertCreate(BaseModel):
    """Exchange ``amount`` of from_currency into to_currency at fx_rate (to per from)."""

    type: Literal["CONVERT"]
    amount: PositiveMoney
    from_currency: Currency
    to_currency: Currency
    fx_rate: PositiveMoney = Field(..., examples=["3.65", "0.274"])

    @model_validator(mode="after")
    def check_currencies_differ(self) -> "ConvertCreate":
        if self.from_currency == self.to_currency:
            raise ValueError("from_currency and to_currency must differ")
        return self


TransactionCreate = Annotated[
    Union[BuyCreate, SellCreate, DepositCreate, WithdrawCreate, ConvertCreate, DividendCreate],
    Field(discriminator="type"),
]


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class TransactionResponse(BaseModel):
    """Ledger entry as returned by the API."""

    id: int
    portfolio_id: int
    type: TransactionType
    symbol: str | None = None
    quantity: Decimal | None = None
    price: Decimal | None = None
    amount: Decimal | None = None
    currency: Currency
    fee: Decimal
    fx_rate: Decimal | None = None
    from_currency: Currency | None = None
    to_currency: Currency | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TransactionCreatedResponse(BaseModel):
    """Result of recording a transaction."""

    transaction: TransactionResponse
    refreshed: bool = Field(
        ...,
        description="True when the follow-up refresh ran and succeeded"
    )


class TransactionListResponse(BaseModel):
    items: list[TransactionResponse] = Field(..., description="Newest first")
    pagination: PaginationMeta
