"""Combine valuation, cash flows, TTWROR and IRR for one portfolio scope."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Collection, Iterable, List, Mapping, Optional, Sequence, Tuple

from .cashflows import external_cash_flows
from .fx import CurrencyConverter
from .irr import IrrResult, calculate_irr
from .models import PortfolioValuation, PricePoint, Transaction
from .ttwror import TtwrorResult, calculate_ttwror
from .valuation import build_valuation_series

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PerformanceResult:
    start: date
    end: date
    ttwror: TtwrorResult
    irr: IrrResult
    terminal_value: int
    valuations: List[PortfolioValuation]


def transaction_date_range(
    transactions: Iterable[Transaction],
    portfolio_id: int | None = None,
) -> Optional[Tuple[date, date]]:
    dates = [
        tx.date
        for tx in transactions
        if tx.is_portfolio and (portfolio_id is None or tx.owner_id == portfolio_id)
    ]
    if not dates:
        return None
    return min(dates), max(dates)


def terminal_value_at(valuations: Sequence[PortfolioValuation], end: date) -> int:
    eligible = [v for v in valuations if v.date <= end]
    return eligible[-1].value if eligible else 0


def calculate_portfolio_performance(
    transactions: Sequence[Transaction],
    prices: Mapping[int, Iterable[PricePoint]],
    *,
    portfolio_id: int | None = None,
    start: date | None = None,
    end: date | None = None,
    account_ids: Collection[int] | None = None,
    security_currencies: Mapping[int, str] | None = None,
    converter: CurrencyConverter | None = None,
    base_currency: str | None = None,
) -> PerformanceResult:
    """TTWROR and IRR over ``[start, end]`` (defaults to the transaction range)."""

    if start is None or end is None:
        bounds = transaction_date_range(transactions, portfolio_id)
        if bounds is None:
            today = date.today()
            bounds = (today, today)
        start = start or bounds[0]
        end = end or bounds[1]

    valuations = build_valuation_series(
        transactions,
        prices,
        start,
        end,
        portfolio_id=portfolio_id,
        security_currencies=security_currencies,
        converter=converter,
        base_currency=base_currency,
    )
    flows = external_cash_flows(
        transactions,
        start,
        end,
        account_ids=account_ids,
        converter=converter,
        base_currency=base_currency,
    )
    terminal = terminal_value_at(valuations, end)

    ttwror = calculate_ttwror(valuations, flows, start, end)
    irr = calculate_irr(flows, terminal, end)
    if not irr.converged:
        logger.warning("IRR did not converge for portfolio %s (%s..%s)", portfolio_id, start, end)

    return PerformanceResult(
        start=start,
        end=end,
        ttwror=ttwror,
        irr=irr,
        terminal_value=terminal,
        valuations=valuations,
    )


__all__ = [
    "PerformanceResult",
    "calculate_portfolio_performance",
    "terminal_value_at",
    "transaction_date_range",
]
