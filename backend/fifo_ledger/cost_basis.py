"""Cost basis aggregation over FIFO lots."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from .fx import CurrencyConverter
from .models import Consumption, ConsumptionKind, Lot
from .units import Cents, Shares, proportional


@dataclass(frozen=True)
class CostBasisResult:
    remaining_shares: Shares
    cost_basis: Cents


def remaining_cost(lot: Lot) -> Cents:
    """Gross cost attributable to the shares still held in ``lot``."""

    return Cents(proportional(lot.gross_amount, lot.remaining_shares, lot.original_shares))


def remaining_net_cost(lot: Lot) -> Cents:
    return Cents(proportional(lot.net_amount, lot.remaining_shares, lot.original_shares))


def _open_lots(lots: Iterable[Lot], security_id: int | None, portfolio_id: int | None) -> Iterable[Lot]:
    for lot in lots:
        if lot.remaining_shares <= 0:
            continue
        if security_id is not None and lot.security_id != security_id:
            continue
        if portfolio_id is not None and lot.portfolio_id != portfolio_id:
            continue
        yield lot


def cost_basis(
    lots: Iterable[Lot],
    security_id: int,
    portfolio_id: int | None = None,
) -> CostBasisResult:
    """Sum remaining shares and their gross cost across open lots."""

    shares_total = 0
    cost_total = 0
    for lot in _open_lots(lots, security_id, portfolio_id):
        shares_total += lot.remaining_shares
        cost_total += remaining_cost(lot)
    return CostBasisResult(remaining_shares=Shares(shares_total), cost_basis=Cents(cost_total))


def cost_basis_converted(
    lots: Iterable[Lot],
    security_id: int,
    target_currency: str,
    converter: CurrencyConverter,
    portfolio_id: int | None = None,
) -> CostBasisResult:
    """Cost basis in ``target_currency``, converting each lot at its purchase date."""

    shares_total = 0
    cost_total = 0
    for lot in _open_lots(lots, security_id, portfolio_id):
        shares_total += lot.remaining_shares
        cost_total += converter.convert(
            remaining_cost(lot), lot.currency, target_currency, lot.purchase_date
        )
    return CostBasisResult(remaining_shares=Shares(shares_total), cost_basis=Cents(cost_total))


def total_cost_basis_converted(
    lots: Iterable[Lot],
    target_currency: str,
    converter: CurrencyConverter,
    portfolio_id: int | None = None,
) -> Cents:
    """Cost basis of every open lot, across securities, in ``target_currency``."""

    return Cents(
        sum(
            converter.convert(remaining_cost(lot), lot.currency, target_currency, lot.purchase_date)
            for lot in _open_lots(lots, None, portfolio_id)
        )
    )


def realized_cost(consumptions: Iterable[Consumption], transaction_id: int | None = None) -> Cents:
    """Gross cost released by sales, optionally for a single sale transaction."""

    return Cents(
        sum(
            c.gross_amount
            for c in consumptions
            if c.kind == ConsumptionKind.SALE
            and (transaction_id is None or c.transaction_id == transaction_id)
        )
    )


__all__ = [
    "CostBasisResult",
    "remaining_cost",
    "remaining_net_cost",
    "cost_basis",
    "cost_basis_converted",
    "total_cost_basis_converted",
    "realized_cost",
]
