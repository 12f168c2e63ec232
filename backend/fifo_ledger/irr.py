"""Money-weighted return via Newton-Raphson.

Stored cash flows are positive when the investor contributes. The NPV
equation needs the opposite sign (money leaving the investor is negative), so
each flow is negated and the terminal value is added as a final inflow::

    NPV(r)  = sum(cf_i / (1 + r) ** t_i)
    NPV'(r) = -sum(t_i * cf_i / (1 + r) ** (t_i + 1))

with ``t_i`` in years (days / 365) from the first flow.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import List, Sequence, Tuple

from .models import CashFlow

logger = logging.getLogger(__name__)

INITIAL_GUESS = 0.10
TOLERANCE = 1e-10
MAX_ITERATIONS = 100
MIN_RATE = -0.99
MAX_RATE = 10.0


@dataclass(frozen=True)
class IrrResult:
    irr: float
    converged: bool
    iterations: int


def _npv_and_derivative(series: Sequence[Tuple[float, float]], rate: float) -> Tuple[float, float]:
    npv = 0.0
    dnpv = 0.0
    for amount, years in series:
        discount = (1.0 + rate) ** years
        npv += amount / discount
        if discount > 0.0:
            dnpv -= years * amount / (discount * (1.0 + rate))
    return npv, dnpv


def _clamp(rate: float) -> float:
    return min(max(rate, MIN_RATE), MAX_RATE)


def calculate_irr(
    cash_flows: Sequence[CashFlow],
    terminal_value: float,
    terminal_date: date,
) -> IrrResult:
    """Solve for the annual rate that zeroes the NPV of the flows.

    Callers must check ``converged`` before trusting ``irr``.
    """

    if not cash_flows:
        return IrrResult(irr=0.0, converged=True, iterations=0)

    ordered = sorted(cash_flows, key=lambda cf: cf.date)
    first_date = ordered[0].date
    series: List[Tuple[float, float]] = [
        (-float(cf.amount), (cf.date - first_date).days / 365.0) for cf in ordered
    ]
    series.append((float(terminal_value), (terminal_date - first_date).days / 365.0))

    rate = INITIAL_GUESS
    for iteration in range(MAX_ITERATIONS):
        npv, dnpv = _npv_and_derivative(series, rate)
        if abs(dnpv) < TOLERANCE:
            logger.debug("IRR: flat derivative at iteration %d (rate=%s)", iteration, rate)
            return IrrResult(irr=rate, converged=False, iterations=iteration)

        new_rate = rate - npv / dnpv
        if abs(new_rate - rate) < TOLERANCE:
            return IrrResult(irr=new_rate, converged=True, iterations=iteration)
        rate = _clamp(new_rate)

    logger.warning("IRR: no convergence after %d iterations (last rate=%s)", MAX_ITERATIONS, rate)
    return IrrResult(irr=rate, converged=False, iterations=MAX_ITERATIONS)


__all__ = ["IrrResult", "calculate_irr"]
