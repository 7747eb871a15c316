# backend/tracker/routers/transactions.py
"""
Transaction endpoints.

Transactions are nested under their portfolio:
- POST /portfolios/{id}/transactions - Record a transaction
- GET  /portfolios/{id}/transactions - Ledger, newest first

Key concepts:
- The ledger is append-only: there is no update or delete
- Recording a transaction updates holdings and cash balances immediately
- A SELL larger than the holding is rejected and nothing is written
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.orm import Session

from tracker.database import get_db
from tracker.dependencies import CurrentUserId, get_transaction_service
from tracker.schemas.pagination import PaginationMeta
from tracker.schemas.transactions import (
    TransactionCreate,
    TransactionCreatedResponse,
    TransactionListResponse,
    TransactionResponse,
)
from tracker.services.constants import MAX_LIST_LIMIT
from tracker.services.transactions.service import TransactionService

logger = logging.getLogger(__name__)

# =============================================================================
# ROUTER SETUP
# =============================================================================

router = APIRouter(
    prefix="/portfolios/{portfolio_id}/transactions",
    tags=["Transactions"],
)


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.post(
    "/",
    response_model=TransactionCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record a transaction",
    response_description="The ledger entry and whether a refresh followed"
)
def create_transaction(
        portfolio_id: int,
        transaction: Annotated[TransactionCreate, Body()],
        user_id: CurrentUserId,
        db: Annotated[Session, Depends(get_db)],
        service: Annotated[TransactionService, Depends(get_transaction_service)],
) -> TransactionCreatedResponse:
    """
    Record a transaction. The body is discriminated on **type**:

    - **BUY / SELL**: symbol, quantity, price, currency (default USD), fee
      (omitted means the portfolio's default fee)
    - **DEPOSIT / WITHDRAW / DIVIDEND**: amount, currency
    - **CONVERT**: amount, from_currency, to_currency, fx_rate (to per from)

    Errors:
    - **404**: portfolio not found
    - **422**: invalid payload, or selling more than you hold
    - **400**: a field the service rejects (e.g. a negative fee)
    - **409**: ledger entry saved but balances could not be updated
      (the response carries the transaction id)
    """
    result = service.create_transaction(db, user_id, portfolio_id, transaction)
    return TransactionCreatedResponse(
        transaction=TransactionResponse.model_validate(result.transaction),
        refreshed=result.refreshed,
    )


@router.get(
    "/",
    response_model=TransactionListResponse,
    summary="List transactions",
    response_description="Ledger entries, newest first"
)
def list_transactions(
        portfolio_id: int,
        user_id: CurrentUserId,
        db: Annotated[Session, Depends(get_db)],
        service: Annotated[TransactionService, Depends(get_transaction_service)],
        skip: int = Query(default=0, ge=0, description="Number of records to skip"),
        limit: int = Query(default=100, ge=1, le=MAX_LIST_LIMIT, description="Maximum records to return"),
) -> TransactionListResponse:
    transactions, total = service.list_transactions(db, user_id, portfolio_id, skip=skip, limit=limit)
    return TransactionListResponse(
        items=[TransactionResponse.model_validate(t) for t in transactions],
        pagination=PaginationMeta.create(total=total, skip=skip, limit=limit),
    )
