# backend/tracker/services/valuation/aggregation.py
"""
Aggregation engine: holding -> portfolio -> global summaries.

Every level works in one display currency (USD or ILS) at one USD/ILS rate.
Values are converted from the holding's or cash balance's own currency first
and rounded to 2 dp per holding. Portfolio totals are sums of those rounded
holding values, so a portfolio always equals the sum of the rows it shows.

Percentages at each level are recomputed from the summed amounts:

    portfolio A: P/L 200 on cost 800  (25%)
    portfolio B: P/L -100 on cost 600 (-16.67%)
    global:      P/L 100 on cost 1400 (7.14%, not the average of 25 and -16.67)

The engine never raises for missing data: a holding without a quote is
valued at 0 and flagged via HoldingSummary.price_available.
"""

import logging
from collections.abc import Iterable, Mapping
from decimal import Decimal

from tracker.models import CashBalance, Currency, Holding, Portfolio
from tracker.services.valuation.calculators import (
    calculate_market_value,
    calculate_unrealized_pl,
)
from tracker.services.valuation.types import (
    CashSummary,
    DailyChange,
    GlobalSummary,
    HoldingSummary,
    PortfolioSummary,
)
from tracker.utils.decimal_math import ZERO, money_context, percent_of, round_to, to_decimal
from tracker.utils.fx_conversion import MoneyValue, aggregate_in_currency, convert_to_display_currency

logger = logging.getLogger(__name__)


class PortfolioAggregator:
    """
    Builds valuation summaries from holdings, cash and prices.

    Stateless; one instance can serve every request.
    """

    # =========================================================================
    # HOLDING
    # =========================================================================

    def calculate_holding_summary(
            self,
            holding: Holding,
            current_price: Decimal | None,
            display_currency: Currency,
            usdils_rate: Decimal,
    ) -> HoldingSummary:
        """
        Value one holding in the display currency.

        Cost basis is avg_cost x quantity (fees are already in avg_cost).
        market value, cost basis and P/L are converted and then rounded to
        2 dp; the P/L percent is currency independent and rounded to 2 dp.

        Args:
            holding: Holding row (symbol, quantity, avg_cost, currency)
            current_price: Latest price in the holding's currency, None if unknown
            display_currency: Currency of the returned money values
            usdils_rate: ILS per USD
        """
        price_available = current_price is not None
        price = to_decimal(current_price)
        quantity = to_decimal(holding.quantity)
        avg_cost = to_decimal(holding.avg_cost)
        holding_currency = Currency(holding.currency)

        market_value = calculate_market_value(price, quantity)
        with money_context():
            cost_basis = avg_cost * quantity
        pnl = calculate_unrealized_pl(price, avg_cost, quantity)

        def to_display(amount: Decimal) -> Decimal:
            return round_to(
                convert_to_display_currency(amount, holding_currency, display_currency, usdils_rate)
            )

        return HoldingSummary(
            symbol=holding.symbol,
            quantity=quantity,
            avg_cost=avg_cost,
            current_price=price,
            holding_currency=holding_currency,
            market_value=to_display(market_value),
            cost_basis=to_display(cost_basis),
            unrealized_pl=to_display(pnl.amount),
            unrealized_pl_percent=round_to(pnl.percent),
            currency=display_currency,
            price_available=price_available,
        )

    # =========================================================================
    # PORTFOLIO
    # =========================================================================

    def calculate_portfolio_totals(
            self,
            portfolio: Portfolio,
            holdings: Iterable[Holding],
            cash_balances: Iterable[CashBalance],
            prices: Mapping[str, Decimal],
            display_currency: Currency,
            usdils_rate: Decimal,
    ) -> PortfolioSummary:
        """
        Value one portfolio: its holdings plus its cash.

        Holdings with quantity <= 0 are skipped. A symbol missing from
        ``prices`` is valued at 0 (logged at WARNING).

        Returns:
            PortfolioSummary with every money field rounded to 2 dp
        """
        holding_summaries: list[HoldingSummary] = []
        holdings_value = ZERO
        cost_basis = ZERO
        unrealized_pl = ZERO

        for holding in holdings:
            if to_decimal(holding.quantity) <= 0:
                continue

            summary = self.calculate_holding_summary(
                holding,
                prices.get(holding.symbol),
                display_currency,
                usdils_rate,
            )
            holding_summaries.append(summary)
            holdings_value += summary.market_value
            cost_basis += summary.cost_basis
            unrealized_pl += summary.unrealized_pl

        missing = [s.symbol for s in holding_summaries if not s.price_available]
        if missing:
            logger.warning(
                f"Portfolio {portfolio.id}: no price for {', '.join(sorted(missing))}, valued at 0"
            )

        cash = [
            CashSummary(currency=Currency(cb.currency), amount=to_decimal(cb.amount))
            for cb in cash_balances
        ]
        cash_value = aggregate_in_currency(
            (MoneyValue(amount=c.amount, currency=c.currency) for c in cash),
            display_currency,
            usdils_rate,
        )

        with money_context():
            total_value = holdings_value + cash_value

        return PortfolioSummary(
            portfolio_id=portfolio.id,
            portfolio_name=portfolio.name,
            holdings_value=round_to(holdings_value),
            cash_value=round_to(cash_value),
            total_value=round_to(total_value),
            cost_basis=round_to(cost_basis),
            unrealized_pl=round_to(unrealized_pl),
            unrealized_pl_percent=round_to(percent_of(unrealized_pl, cost_basis)),
            currency=display_currency,
            holdings=holding_summaries,
            cash_balances=cash,
        )

    # =========================================================================
    # GLOBAL
    # =========================================================================

    def calculate_global_totals(
            self,
            summaries: Iterable[PortfolioSummary],
            display_currency: Currency,
            usdils_rate: Decimal,
    ) -> GlobalSummary:
        """
        Combine portfolio summaries into one global summary.

        All summaries must already be in ``display_currency``.
        """
        summaries = list(summaries)
        total_value = ZERO
        total_cash = ZERO
        total_holdings = ZERO
        total_cost_basis = ZERO
        total_pl = ZERO

        with money_context():
            for summary in summaries:
                total_value += summary.total_value
                total_cash += summary.cash_value
                total_holdings += summary.holdings_value
                total_cost_basis += summary.cost_basis
                total_pl += summary.unrealized_pl

        return GlobalSummary(
            total_value=round_to(total_value),
            total_cash=round_to(total_cash),
            total_holdings=round_to(total_holdings),
            total_cost_basis=round_to(total_cost_basis),
            total_unrealized_pl=round_to(total_pl),
            total_unrealized_pl_percent=round_to(percent_of(total_pl, total_cost_basis)),
            currency=display_currency,
            usdils_rate=usdils_rate,
            portfolio_summaries=summaries,
        )

    # =========================================================================
    # DAILY CHANGE
    # =========================================================================

    def calculate_daily_change(
            self,
            today_value: Decimal,
            yesterday_value: Decimal | None,
    ) -> DailyChange:
        """
        Change since yesterday's snapshot.

        Both amount and percent are 0 when there is no snapshot for yesterday
        or yesterday's value was 0.
        """
        if yesterday_value is None or yesterday_value == 0:
            return DailyChange.zero()

        with money_context():
            amount = today_value - yesterday_value

        return DailyChange(
            amount=round_to(amount),
            percent=round_to(percent_of(amount, yesterday_value)),
        )
