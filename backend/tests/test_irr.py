from __future__ import annotations

from datetime import date

import pytest

from fifo_ledger.irr import MAX_RATE, calculate_irr
from fifo_ledger.models import CashFlow
from fifo_ledger.units import Cents


def flow(day: date, amount: int) -> CashFlow:
    return CashFlow(date=day, amount=Cents(amount))


def test_single_deposit_growing_ten_percent_in_a_year():
    result = calculate_irr([flow(date(2023, 1, 1), 100_000)], 110_000, date(2024, 1, 1))
    assert result.converged
    assert result.irr == pytest.approx(0.10, abs=1e-8)


def test_two_deposits_with_gain_give_positive_rate():
    flows = [flow(date(2023, 1, 1), 100_000), flow(date(2023, 7, 2), 50_000)]
    result = calculate_irr(flows, 170_000, date(2024, 1, 1))
    assert result.converged
    assert result.irr > 0
    # 200 gain on 1500, the second half only invested for six months.
    assert 0.13 < result.irr < 0.18


def test_loss_gives_negative_rate():
    result = calculate_irr([flow(date(2023, 1, 1), 100_000)], 50_000, date(2024, 1, 1))
    assert result.converged
    assert result.irr == pytest.approx(-0.5, abs=1e-8)


def test_removal_reduces_invested_capital():
    flows = [flow(date(2023, 1, 1), 100_000), flow(date(2023, 7, 2), -100_000)]
    result = calculate_irr(flows, 0, date(2024, 1, 1))
    assert result.converged
    assert result.irr == pytest.approx(0.0, abs=1e-8)


def test_flows_are_sorted_before_solving():
    ordered = [flow(date(2023, 1, 1), 100_000), flow(date(2023, 7, 2), 50_000)]
    shuffled = list(reversed(ordered))
    assert calculate_irr(ordered, 170_000, date(2024, 1, 1)) == calculate_irr(
        shuffled, 170_000, date(2024, 1, 1)
    )


def test_no_cash_flows_is_trivially_converged():
    result = calculate_irr([], 0, date(2024, 1, 1))
    assert (result.irr, result.converged, result.iterations) == (0.0, True, 0)


def test_flat_derivative_returns_current_estimate_unconverged():
    # Everything happens on one day, so no term depends on the rate.
    result = calculate_irr([flow(date(2024, 1, 1), 100_000)], 110_000, date(2024, 1, 1))
    assert not result.converged
    assert result.irr == pytest.approx(0.10)
    assert result.iterations == 0


def test_runaway_growth_is_clamped_and_reported_unconverged():
    result = calculate_irr([flow(date(2023, 1, 1), 100_000)], 100_000_000_000, date(2024, 1, 1))
    assert not result.converged
    assert result.irr <= MAX_RATE
    assert result.iterations == 100
