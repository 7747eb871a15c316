# backend/tracker/services/portfolio_service.py
"""
Portfolio management.

This service handles:
- Creating portfolios for an existing user
- Listing and fetching the caller's portfolios
- Updating name, default fee and account number
- Deleting a portfolio with its holdings, cash, ledger and snapshots

Ownership is enforced on every read and write: a portfolio that belongs to
someone else behaves exactly like one that does not exist.

Usage:
    service = PortfolioService()
    portfolio = service.create_portfolio(db, user_id=1, data=PortfolioCreate(name="IBI"))
    service.update_portfolio(db, user_id=1, portfolio_id=portfolio.id,
                             data=PortfolioUpdate(fee_amount=Decimal("7.5")))
"""

import logging
from decimal import Decimal

from sqlalchemy.orm import Session

from tracker.models import Portfolio, User
from tracker.schemas.portfolios import PortfolioCreate, PortfolioUpdate
from tracker.services import store
from tracker.services.exceptions import NotFoundError, PortfolioNotFoundError

logger = logging.getLogger(__name__)


class PortfolioService:
    """CRUD for portfolios, scoped to one user per call."""

    def create_portfolio(self, db: Session, user_id: int, data: PortfolioCreate) -> Portfolio:
        """
        Create a portfolio owned by user_id.

        Raises:
            NotFoundError: If the user does not exist
        """
        if db.get(User, user_id) is None:
            raise NotFoundError(f"User {user_id} not found", resource_type="User", resource_id=user_id)

        portfolio = Portfolio(
            user_id=user_id,
            name=data.name,
            fee_amount=data.fee_amount if data.fee_amount is not None else Decimal("0"),
            account_number=data.account_number,
        )
        db.add(portfolio)
        db.commit()
        db.refresh(portfolio)

        logger.info(f"Created portfolio {portfolio.id} for user {user_id}")
        return portfolio

    def list_portfolios(self, db: Session, user_id: int) -> list[Portfolio]:
        return store.list_user_portfolios(db, user_id)

    def get_portfolio(self, db: Session, user_id: int, portfolio_id: int) -> Portfolio:
        """
        Raises:
            PortfolioNotFoundError: Unknown portfolio or owned by someone else
        """
        portfolio = store.get_user_portfolio(db, user_id, portfolio_id)
        if portfolio is None:
            raise PortfolioNotFoundError(portfolio_id)
        return portfolio

    def update_portfolio(
            self,
            db: Session,
            user_id: int,
            portfolio_id: int,
            data: PortfolioUpdate,
    ) -> Portfolio:
        """
        Apply a partial update; only fields present in the request change.

        An explicit null fee_amount resets the default fee to 0. An explicit
        null or blank account_number clears it.
        """
        portfolio = self.get_portfolio(db, user_id, portfolio_id)
        changes = data.model_dump(exclude_unset=True)

        if "name" in changes and changes["name"] is not None:
            portfolio.name = changes["name"]
        if "fee_amount" in changes:
            fee = changes["fee_amount"]
            portfolio.fee_amount = fee if fee is not None else Decimal("0")
        if "account_number" in changes:
            portfolio.account_number = changes["account_number"]

        db.commit()
        db.refresh(portfolio)

        logger.info(f"Updated portfolio {portfolio_id}: {sorted(changes)}")
        return portfolio

    def delete_portfolio(self, db: Session, user_id: int, portfolio_id: int) -> None:
        portfolio = self.get_portfolio(db, user_id, portfolio_id)
        db.delete(portfolio)
        db.commit()
        logger.info(f"Deleted portfolio {portfolio_id} for user {user_id}")
