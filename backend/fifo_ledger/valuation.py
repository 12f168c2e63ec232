"""Portfolio valuation series built from transaction share counts and prices.

Valuation uses the signed sum of transaction shares, not FIFO lots. The two
methods must agree on total shares held but are otherwise independent.
"""
from __future__ import annotations

import logging
from bisect import bisect_right
from datetime import date
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from .fx import CurrencyConverter, normalize_quote
from .models import INBOUND_TYPES, OUTBOUND_TYPES, PortfolioValuation, PricePoint, Transaction
from .units import Cents, PriceValue, Shares, market_value

logger = logging.getLogger(__name__)


class PriceHistory:
    """Ascending price observations for one security."""

    def __init__(self, points: Iterable[PricePoint]):
        ordered = sorted(points, key=lambda p: p.date)
        self._dates = [p.date for p in ordered]
        self._values = [p.value for p in ordered]

    @property
    def dates(self) -> List[date]:
        return list(self._dates)

    def at_or_before(self, day: date) -> Optional[PriceValue]:
        index = bisect_right(self._dates, day)
        if index == 0:
            return None
        return self._values[index - 1]


def holdings_at(
    transactions: Iterable[Transaction],
    as_of: date,
    portfolio_id: int | None = None,
) -> Dict[int, Shares]:
    """Net shares per security as of ``as_of``; zero positions are dropped."""

    totals: Dict[int, int] = {}
    for tx in transactions:
        if not tx.is_portfolio or tx.shares is None or tx.security_id is None:
            continue
        if portfolio_id is not None and tx.owner_id != portfolio_id:
            continue
        if tx.date > as_of:
            continue
        if tx.type in INBOUND_TYPES:
            totals[tx.security_id] = totals.get(tx.security_id, 0) + abs(tx.shares)
        elif tx.type in OUTBOUND_TYPES:
            totals[tx.security_id] = totals.get(tx.security_id, 0) - abs(tx.shares)
    return {security_id: Shares(qty) for security_id, qty in totals.items() if qty != 0}


def build_valuation_series(
    transactions: Sequence[Transaction],
    prices: Mapping[int, Iterable[PricePoint]],
    start: date,
    end: date,
    *,
    portfolio_id: int | None = None,
    security_currencies: Mapping[int, str] | None = None,
    converter: CurrencyConverter | None = None,
    base_currency: str | None = None,
) -> List[PortfolioValuation]:
    """Value the portfolio on every date in ``[start, end]`` with a new price.

    A security without a price on or before a date contributes nothing on
    that date. Only positive totals are emitted.
    """

    histories = {security_id: PriceHistory(points) for security_id, points in prices.items()}
    valuation_dates = sorted(
        {d for history in histories.values() for d in history.dates if start <= d <= end}
    )
    currencies = security_currencies or {}

    series: List[PortfolioValuation] = []
    for day in valuation_dates:
        holdings = holdings_at(transactions, day, portfolio_id)
        if not holdings:
            continue
        total = 0
        for security_id, quantity in holdings.items():
            history = histories.get(security_id)
            quote = history.at_or_before(day) if history else None
            if quote is None:
                logger.debug("No price for security %s on or before %s", security_id, day)
                continue
            quote, currency = normalize_quote(quote, currencies.get(security_id))
            value = market_value(quantity, quote)
            if converter is not None and base_currency and currency:
                value = converter.convert(value, currency, base_currency, day)
            total += value
        if total > 0:
            series.append(PortfolioValuation(date=day, value=Cents(total)))
    return series


__all__ = ["PriceHistory", "holdings_at", "build_valuation_series"]
