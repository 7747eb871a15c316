"""Initial schema baseline

This migration creates the complete database schema for the portfolio tracker.

Tables:
    - users: Portfolio owners (authenticated upstream)
    - portfolios: Named portfolios with a default trade fee
    - holdings: Current position per (portfolio, symbol)
    - cash_balances: Cash per (portfolio, currency)
    - transactions: Append-only ledger
    - snapshots: Daily valuations per portfolio plus one global row per user
    - prices: Last fetched price per symbol
    - fx_rates: Last fetched rate per currency pair (USDILS)

Revision ID: 001
Revises: None
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

MONEY = sa.Numeric(18, 8)


def upgrade() -> None:
    # ==========================================================================
    # USERS
    # ==========================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        sa.Column('email', sa.String(), nullable=False, unique=True, index=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )

    # ==========================================================================
    # PORTFOLIOS
    # ==========================================================================
    op.create_table(
        'portfolios',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('fee_amount', MONEY, nullable=True, server_default='0'),
        sa.Column('account_number', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )

    # ==========================================================================
    # HOLDINGS & CASH
    # ==========================================================================
    op.create_table(
        'holdings',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('portfolio_id', sa.Integer(), sa.ForeignKey('portfolios.id'), nullable=False, index=True),
        sa.Column('symbol', sa.String(), nullable=False, index=True),
        sa.Column('quantity', MONEY, nullable=False),
        sa.Column('avg_cost', MONEY, nullable=False),
        sa.Column('currency', sa.String(), nullable=False, server_default='USD'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('portfolio_id', 'symbol', name='uq_holding_portfolio_symbol'),
    )

    op.create_table(
        'cash_balances',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('portfolio_id', sa.Integer(), sa.ForeignKey('portfolios.id'), nullable=False, index=True),
        sa.Column('currency', sa.String(), nullable=False),
        sa.Column('amount', MONEY, nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('portfolio_id', 'currency', name='uq_cash_portfolio_currency'),
    )

    # ==========================================================================
    # TRANSACTIONS
    # ==========================================================================
    op.create_table(
        'transactions',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('portfolio_id', sa.Integer(), sa.ForeignKey('portfolios.id'), nullable=False, index=True),
        sa.Column('type', sa.Enum('BUY', 'SELL', 'DEPOSIT', 'WITHDRAW', 'CONVERT', 'DIVIDEND', name='transactiontype'), nullable=False),
        sa.Column('symbol', sa.String(), nullable=True),
        sa.Column('quantity', MONEY, nullable=True),
        sa.Column('price', MONEY, nullable=True),
        sa.Column('amount', MONEY, nullable=True),
        sa.Column('currency', sa.String(), nullable=False),
        sa.Column('fee', MONEY, nullable=False, server_default='0'),
        sa.Column('fx_rate', MONEY, nullable=True),
        sa.Column('from_currency', sa.String(), nullable=True),
        sa.Column('to_currency', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_transaction_portfolio_created', 'transactions', ['portfolio_id', 'created_at'])

    # ==========================================================================
    # SNAPSHOTS
    # ==========================================================================
    # portfolio_id NULL is the user's global row; NULLs never collide in the
    # unique constraint, so the application upsert keeps that row unique.
    op.create_table(
        'snapshots',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('portfolio_id', sa.Integer(), sa.ForeignKey('portfolios.id'), nullable=True, index=True),
        sa.Column('date', sa.Date(), nullable=False, index=True),
        sa.Column('total_value', MONEY, nullable=False),
        sa.Column('cash_value', MONEY, nullable=False),
        sa.Column('holdings_value', MONEY, nullable=False),
        sa.Column('currency', sa.String(), nullable=False),
        sa.Column('usdils_rate', MONEY, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('user_id', 'portfolio_id', 'date', name='uq_snapshot_user_portfolio_date'),
    )
    op.create_index('ix_snapshot_user_date', 'snapshots', ['user_id', 'date'])

    # ==========================================================================
    # QUOTE CACHE
    # ==========================================================================
    op.create_table(
        'prices',
        sa.Column('symbol', sa.String(), primary_key=True),
        sa.Column('price', MONEY, nullable=False),
        sa.Column('currency', sa.String(), nullable=False, server_default='USD'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        'fx_rates',
        sa.Column('pair', sa.String(), primary_key=True),
        sa.Column('rate', MONEY, nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )


def downgrade() -> None:
    op.drop_table('fx_rates')
    op.drop_table('prices')
    op.drop_index('ix_snapshot_user_date', table_name='snapshots')
    op.drop_table('snapshots')
    op.drop_index('ix_transaction_portfolio_created', table_name='transactions')
    op.drop_table('transactions')
    op.drop_table('cash_balances')
    op.drop_table('holdings')
    op.drop_table('portfolios')
    op.drop_table('users')

    # Drop enums
    op.execute('DROP TYPE IF EXISTS transactiontype')
