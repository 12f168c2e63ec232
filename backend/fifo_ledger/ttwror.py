"""True time-weighted rate of return.

Sub-period returns are chained between consecutive valuation points::

    r_i = (V_i - CF_i) / V_{i-1}
    TTWROR = prod(r_i) - 1
    annualized = (1 + TTWROR) ** (365 / days) - 1

Cash flows are treated as arriving at the end of the day they are recorded
on, so a deposit on ``d_i`` is removed from ``V_i`` before comparing it with
``V_{i-1}``. Sub-periods that start from a non-positive value are skipped.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Sequence

from .models import CashFlow, PortfolioValuation

logger = logging.getLogger(__name__)

DAYS_PER_YEAR = 365


@dataclass(frozen=True)
class PeriodReturn:
    start_date: date
    end_date: date
    start_value: int
    end_value: int
    cash_flow: int
    # Gross factor (V_i - CF_i) / V_{i-1}; 1.0 means flat.
    return_rate: float


@dataclass(frozen=True)
class TtwrorResult:
    total_return: float
    annualized_return: float
    days: int
    periods: List[PeriodReturn] = field(default_factory=list)


def annualize(total_return: float, days: int) -> float:
    if days <= 0:
        return 0.0
    if total_return <= -1.0:
        return -1.0
    return (1.0 + total_return) ** (DAYS_PER_YEAR / days) - 1.0


def _flows_by_date(cash_flows: Iterable[CashFlow]) -> Dict[date, int]:
    by_date: Dict[date, int] = {}
    for flow in cash_flows:
        by_date[flow.date] = by_date.get(flow.date, 0) + flow.amount
    return by_date


def calculate_ttwror(
    valuations: Sequence[PortfolioValuation],
    cash_flows: Iterable[CashFlow],
    start: date,
    end: date,
) -> TtwrorResult:
    days = max((end - start).days, 0)
    points = sorted(valuations, key=lambda v: v.date)
    if len(points) < 2:
        return TtwrorResult(total_return=0.0, annualized_return=0.0, days=days)

    flows = _flows_by_date(cash_flows)
    matched = {p.date for p in points[1:]}
    unmatched = [d for d in flows if d not in matched and start <= d <= end and d != points[0].date]
    if unmatched:
        logger.warning(
            "TTWROR: %d cash flow date(s) have no valuation point and are ignored: %s",
            len(unmatched),
            ", ".join(d.isoformat() for d in sorted(unmatched)),
        )

    growth = 1.0
    periods: List[PeriodReturn] = []
    for previous, current in zip(points, points[1:]):
        if previous.value <= 0:
            logger.debug("TTWROR: skipping period starting %s with value %s", previous.date, previous.value)
            continue
        flow = flows.get(current.date, 0)
        factor = (current.value - flow) / previous.value
        growth *= factor
        periods.append(
            PeriodReturn(
                start_date=previous.date,
                end_date=current.date,
                start_value=previous.value,
                end_value=current.value,
                cash_flow=flow,
                return_rate=factor,
            )
        )

    total_return = growth - 1.0
    annualized = annualize(total_return, days)
    logger.info(
        "TTWROR result: total=%.2f%%, annualized=%.2f%% over %d periods",
        total_return * 100,
        annualized * 100,
        len(periods),
    )
    return TtwrorResult(
        total_return=total_return,
        annualized_return=annualized,
        days=days,
        periods=periods,
    )


__all__ = ["PeriodReturn", "TtwrorResult", "annualize", "calculate_ttwror"]
