"""Reporting services joining cost basis with valuation and returns."""

from __future__ import annotations

import logging
from collections.abc import Collection
from datetime import date

from opentelemetry import trace
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.config import get_settings
from app.models import Security
from app.schemas import CostBasisSchema, HoldingSchema, HoldingsReport, PerformanceReport
from app.services.feed import (
    load_price_series,
    load_reference_account_id,
    load_security_currencies,
    load_transactions,
)
from app.services.fx import DbCurrencyConverter
from app.services.lot_store import SqlLotStore
from fifo_ledger.cost_basis import CostBasisResult, cost_basis, cost_basis_converted
from fifo_ledger.fifo import signed_share_sum
from fifo_ledger.fx import CurrencyConverter, normalize_quote
from fifo_ledger.performance import calculate_portfolio_performance
from fifo_ledger.units import cents_to_float, market_value, shares_to_float
from fifo_ledger.valuation import PriceHistory, holdings_at

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


def get_cost_basis(
    session: Session,
    security_id: int,
    *,
    portfolio_id: int | None = None,
    target_currency: str | None = None,
    converter: CurrencyConverter | None = None,
) -> CostBasisResult:
    """Cost basis from persisted lots, optionally converted at purchase dates."""

    lots = SqlLotStore(session).load_lots(security_id=security_id, portfolio_id=portfolio_id)
    if target_currency is None:
        return cost_basis(lots, security_id, portfolio_id)
    return cost_basis_converted(
        lots,
        security_id,
        target_currency,
        converter or DbCurrencyConverter(session),
        portfolio_id,
    )


def cost_basis_schema(session: Session, security_id: int, *, target_currency: str | None = None) -> CostBasisSchema:
    """Cost basis labelled with the currency its amount is actually in.

    Without ``target_currency`` the lots' own currency is used; lots booked in
    several currencies are converted to the security's currency.
    """

    if target_currency is None:
        lots = SqlLotStore(session).load_lots(security_id=security_id)
        currencies = {lot.currency for lot in lots if lot.is_open}
        if len(currencies) == 1:
            (currency,) = currencies
        else:
            target_currency = (
                session.scalar(select(Security.currency).where(Security.id == security_id))
                or get_settings().base_currency
            )
            currency = target_currency
    else:
        currency = target_currency
    result = get_cost_basis(session, security_id, target_currency=target_currency)
    return CostBasisSchema(
        security_id=security_id,
        remaining_shares=shares_to_float(result.remaining_shares),
        cost_basis=cents_to_float(result.cost_basis),
        currency=currency,
    )


def calculate_performance(
    session: Session,
    *,
    portfolio_id: int | None = None,
    start: date | None = None,
    end: date | None = None,
    account_ids: Collection[int] | None = None,
    base_currency: str | None = None,
) -> PerformanceReport:
    """TTWROR and IRR for a portfolio (or all portfolios) from stored data.

    A single portfolio only sees the cash flows of its reference account
    unless ``account_ids`` is given explicitly.
    """

    base_currency = base_currency or get_settings().base_currency
    with tracer.start_as_current_span("performance.calculate") as span:
        if portfolio_id is not None:
            span.set_attribute("performance.portfolio_id", portfolio_id)
            if account_ids is None:
                reference_account = load_reference_account_id(session, portfolio_id)
                if reference_account is None:
                    logger.warning(
                        "Portfolio %s has no reference account, ignoring external cash flows",
                        portfolio_id,
                    )
                    account_ids = set()
                else:
                    account_ids = {reference_account}
        transactions = load_transactions(session)
        result = calculate_portfolio_performance(
            transactions,
            load_price_series(session),
            portfolio_id=portfolio_id,
            start=start,
            end=end,
            account_ids=account_ids,
            security_currencies=load_security_currencies(session),
            converter=DbCurrencyConverter(session),
            base_currency=base_currency,
        )
        span.set_attribute("performance.irr_converged", result.irr.converged)
    return PerformanceReport.from_result(result, portfolio_id)


def build_holdings_report(
    session: Session,
    *,
    as_of: date | None = None,
    portfolio_id: int | None = None,
    base_currency: str | None = None,
) -> HoldingsReport:
    """Open positions with cost basis, market value and unrealized gain."""

    as_of = as_of or date.today()
    base_currency = base_currency or get_settings().base_currency
    converter = DbCurrencyConverter(session)
    lots = SqlLotStore(session).load_lots(portfolio_id=portfolio_id)
    transactions = load_transactions(session)
    prices = load_price_series(session)
    securities = {row.id: row for row in session.scalars(select(Security))}

    holdings: list[HoldingSchema] = []
    warnings: list[str] = []
    total_cost = 0
    total_value = 0
    total_gain = 0
    candidates = {lot.security_id for lot in lots if lot.remaining_shares > 0}
    candidates.update(holdings_at(transactions, as_of, portfolio_id))
    for security_id in sorted(candidates):
        basis = cost_basis_converted(lots, security_id, base_currency, converter, portfolio_id)
        expected = signed_share_sum(transactions, security_id, portfolio_id)
        if expected != basis.remaining_shares:
            message = (
                f"Security {security_id}: lots hold {basis.remaining_shares} shares, "
                f"transactions imply {expected}"
            )
            logger.warning(message)
            warnings.append(message)
        if basis.remaining_shares == 0:
            continue

        security = securities.get(security_id)
        quote = PriceHistory(prices.get(security_id, [])).at_or_before(as_of)
        value: int | None = None
        if quote is None:
            warnings.append(f"Security {security_id}: no price on or before {as_of.isoformat()}")
        else:
            quote, currency = normalize_quote(quote, security.currency if security else None)
            value = market_value(basis.remaining_shares, quote)
            if currency:
                value = converter.convert(value, currency, base_currency, as_of)
            total_value += value
        total_cost += basis.cost_basis

        gain = value - basis.cost_basis if value is not None else None
        if gain is not None:
            total_gain += gain
        holdings.append(
            HoldingSchema(
                security_id=security_id,
                name=security.name if security else None,
                shares=shares_to_float(basis.remaining_shares),
                cost_basis=cents_to_float(basis.cost_basis),
                market_value=cents_to_float(value) if value is not None else None,
                unrealized_gain=cents_to_float(gain) if gain is not None else None,
                unrealized_gain_pct=(gain / basis.cost_basis) if gain is not None and basis.cost_basis > 0 else None,
            )
        )

    return HoldingsReport(
        base_currency=base_currency,
        as_of=as_of,
        holdings=holdings,
        total_cost_basis=cents_to_float(total_cost),
        total_market_value=cents_to_float(total_value),
        total_unrealized_gain=cents_to_float(total_gain),
        warnings=warnings,
    )


__all__ = [
    "get_cost_basis",
    "cost_basis_schema",
    "calculate_performance",
    "build_holdings_report",
]
