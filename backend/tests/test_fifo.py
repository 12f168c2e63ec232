from __future__ import annotations

import logging
import random
from datetime import date, timedelta

import pytest

from fifo_ledger.cost_basis import cost_basis, realized_cost, remaining_cost
from fifo_ledger.cross_entry import MappingCrossEntryResolver
from fifo_ledger.errors import DataIntegrityError, IssueKind
from fifo_ledger.fifo import compute_lots, processing_order, signed_share_sum
from fifo_ledger.models import ConsumptionKind, OwnerKind, Transaction, TransactionType
from fifo_ledger.units import SHARES_SCALE, Cents, Shares

S = SHARES_SCALE
SECURITY = 7


def tx(
    id: int,
    type: str,
    day: date,
    shares: int | None = None,
    amount: int = 0,
    *,
    owner: int = 1,
    fees: int = 0,
    taxes: int = 0,
    cross: int | None = None,
    security: int | None = SECURITY,
    kind: OwnerKind = OwnerKind.PORTFOLIO,
    currency: str = "EUR",
) -> Transaction:
    return Transaction(
        id=id,
        owner_kind=kind,
        owner_id=owner,
        type=TransactionType(type),
        date=day,
        amount=Cents(amount),
        currency=currency,
        security_id=security,
        shares=Shares(shares) if shares is not None else None,
        fees=Cents(fees),
        taxes=Cents(taxes),
        cross_entry_id=cross,
    )


def transfer_history() -> list[Transaction]:
    return [
        tx(1, "BUY", date(2023, 1, 2), 100 * S, 100_000, fees=500),
        tx(2, "BUY", date(2023, 2, 1), 50 * S, 60_000, taxes=100),
        tx(3, "TRANSFER_OUT", date(2023, 3, 1), 80 * S, cross=9),
        tx(4, "TRANSFER_IN", date(2023, 3, 1), 80 * S, owner=2, cross=9),
        tx(5, "SELL", date(2023, 4, 1), 40 * S, 50_000),
        tx(6, "SELL", date(2023, 5, 1), 30 * S, 39_000, owner=2),
        tx(7, "BUY", date(2023, 5, 1), 10 * S, 12_000, owner=2),
    ]


def compute(transactions, **kwargs):
    return compute_lots(transactions, MappingCrossEntryResolver.from_transactions(transactions), **kwargs)


def test_buy_creates_lot_with_gross_and_net_amounts():
    result = compute([tx(1, "BUY", date(2024, 3, 1), 100 * S, 100_000, fees=500, taxes=200)])
    (lot,) = result.lots
    assert lot.original_shares == lot.remaining_shares == 100 * S
    assert lot.gross_amount == 100_700
    assert lot.net_amount == 100_000
    assert lot.purchase_date == date(2024, 3, 1)
    assert lot.originating_transaction_id == 1
    assert result.consumptions == []


def test_sell_consumes_oldest_lot_first():
    result = compute(
        [
            tx(1, "BUY", date(2024, 1, 2), 100 * S, 100_000),
            tx(2, "BUY", date(2024, 2, 1), 50 * S, 60_000),
            tx(3, "SELL", date(2024, 3, 1), 120 * S, 150_000),
        ]
    )
    lot_a, lot_b = result.lots
    first, second = result.consumptions
    assert (first.lot_id, first.shares_consumed, first.gross_amount) == (lot_a.id, 100 * S, 100_000)
    assert (second.lot_id, second.shares_consumed, second.gross_amount) == (lot_b.id, 20 * S, 24_000)
    assert lot_a.remaining_shares == 0
    assert lot_b.remaining_shares == 30 * S
    assert all(c.kind == ConsumptionKind.SALE and c.transaction_id == 3 for c in result.consumptions)


def test_fully_consumed_lots_are_kept():
    result = compute(
        [
            tx(1, "BUY", date(2024, 1, 2), 10 * S, 1_000),
            tx(2, "SELL", date(2024, 1, 3), 10 * S, 1_200),
        ]
    )
    assert len(result.lots) == 1
    assert result.lots[0].remaining_shares == 0
    assert cost_basis(result.lots, SECURITY).remaining_shares == 0


def test_oversell_logs_warning_and_leaves_shortfall(caplog):
    transactions = [
        tx(1, "BUY", date(2024, 1, 2), 10 * S, 1_000),
        tx(2, "SELL", date(2024, 1, 3), 15 * S, 1_800),
    ]
    with caplog.at_level(logging.WARNING, logger="fifo_ledger.fifo"):
        result = compute(transactions)

    assert [c.shares_consumed for c in result.consumptions] == [10 * S]
    assert result.lots[0].remaining_shares == 0
    assert all(lot.remaining_shares >= 0 for lot in result.lots)
    (issue,) = result.warnings
    assert issue.kind == IssueKind.OVERSELL
    assert issue.shortfall_shares == 5 * S
    assert "could not consume all shares" in caplog.text


def test_oversell_raises_in_strict_mode():
    transactions = [
        tx(1, "BUY", date(2024, 1, 2), 10 * S, 1_000),
        tx(2, "SELL", date(2024, 1, 3), 15 * S, 1_800),
    ]
    with pytest.raises(DataIntegrityError) as excinfo:
        compute(transactions, strict=True)
    assert excinfo.value.issue.kind == IssueKind.OVERSELL


def test_same_day_inbound_is_applied_before_outbound():
    transactions = [
        tx(1, "SELL", date(2024, 5, 1), 5 * S, 600),
        tx(2, "BUY", date(2024, 5, 1), 5 * S, 500),
    ]
    result = compute(transactions)
    assert result.warnings == []
    assert result.lots[0].remaining_shares == 0
    assert sorted(transactions, key=processing_order)[0].id == 2


def test_transfer_moves_lots_preserving_purchase_date_and_cost():
    result = compute(transfer_history())

    moved = result.lots_for(SECURITY, portfolio_id=2)[0]
    assert moved.purchase_date == date(2023, 1, 2)
    assert moved.originating_transaction_id == 1
    assert moved.original_shares == 80 * S
    assert moved.gross_amount == 80_400
    assert moved.net_amount == 80_000

    transfer = [c for c in result.consumptions if c.kind == ConsumptionKind.TRANSFER]
    assert len(transfer) == 1
    assert transfer[0].transaction_id == 4
    assert transfer[0].gross_amount == moved.gross_amount


def test_transfer_history_cost_basis_per_portfolio():
    result = compute(transfer_history())

    assert cost_basis(result.lots, SECURITY, portfolio_id=1).remaining_shares == 30 * S
    assert cost_basis(result.lots, SECURITY, portfolio_id=1).cost_basis == 36_060
    pf2 = cost_basis(result.lots, SECURITY, portfolio_id=2)
    assert pf2.remaining_shares == 60 * S
    assert pf2.cost_basis == 50_250 + 12_000
    assert realized_cost(result.consumptions) == 20_100 + 24_040 + 30_150
    assert realized_cost(result.consumptions, transaction_id=6) == 30_150


def test_unresolved_transfer_creates_zero_cost_lot(caplog):
    transactions = [tx(1, "TRANSFER_IN", date(2024, 1, 5), 12 * S, 5_000, owner=3, cross=None)]
    with caplog.at_level(logging.WARNING):
        result = compute(transactions)

    (lot,) = result.lots
    assert lot.portfolio_id == 3
    assert lot.remaining_shares == 12 * S
    assert lot.gross_amount == 0 and lot.net_amount == 0
    assert lot.originating_transaction_id == 1
    assert result.warnings[0].kind == IssueKind.UNRESOLVED_TRANSFER
    assert "zero-cost" in caplog.text


def test_unknown_cross_entry_is_treated_as_unresolved():
    transactions = [tx(1, "TRANSFER_IN", date(2024, 1, 5), 12 * S, owner=3, cross=404)]
    result = compute_lots(transactions, MappingCrossEntryResolver({}))
    assert result.warnings[0].kind == IssueKind.UNRESOLVED_TRANSFER
    with pytest.raises(DataIntegrityError):
        compute_lots(transactions, MappingCrossEntryResolver({}), strict=True)


def test_transfer_shortfall_creates_zero_cost_remainder():
    transactions = [
        tx(1, "BUY", date(2024, 1, 2), 10 * S, 1_000),
        tx(2, "TRANSFER_OUT", date(2024, 2, 1), 15 * S, cross=5),
        tx(3, "TRANSFER_IN", date(2024, 2, 1), 15 * S, owner=2, cross=5),
    ]
    result = compute(transactions)
    moved, remainder = result.lots_for(SECURITY, portfolio_id=2)
    assert (moved.original_shares, moved.gross_amount) == (10 * S, 1_000)
    assert (remainder.original_shares, remainder.gross_amount) == (5 * S, 0)
    assert remainder.purchase_date == date(2024, 2, 1)
    assert result.warnings[0].kind == IssueKind.TRANSFER_SHORTFALL


def test_non_portfolio_and_shareless_transactions_are_ignored(caplog):
    transactions = [
        tx(1, "BUY", date(2024, 1, 2), 10 * S, 1_000),
        tx(2, "BUY", date(2024, 1, 2), None, 1_000, kind=OwnerKind.ACCOUNT),
        tx(3, "DEPOSIT", date(2024, 1, 2), None, 5_000, kind=OwnerKind.ACCOUNT, security=None),
        tx(4, "DIVIDENDS", date(2024, 6, 1), 10 * S, 300),
    ]
    with caplog.at_level(logging.WARNING):
        result = compute(transactions)
    assert len(result.lots) == 1
    assert [w.kind for w in result.warnings] == [IssueKind.UNSUPPORTED_TYPE]
    # Unsupported types are reported but never fatal.
    assert len(compute(transactions, strict=True).lots) == 1


def test_proportional_cost_rounds_half_away_from_zero():
    transactions = [
        tx(1, "BUY", date(2024, 1, 2), 3 * S, 1_000),
        tx(2, "SELL", date(2024, 1, 3), 1 * S, 400),
        tx(3, "SELL", date(2024, 1, 4), 1 * S, 400),
    ]
    result = compute(transactions)
    assert [c.gross_amount for c in result.consumptions] == [333, 333]
    assert remaining_cost(result.lots[0]) == 333


def test_securities_are_kept_apart():
    transactions = [
        tx(1, "BUY", date(2024, 1, 2), 10 * S, 1_000, security=1),
        tx(2, "BUY", date(2024, 1, 2), 10 * S, 2_000, security=2),
        tx(3, "SELL", date(2024, 1, 3), 5 * S, 900, security=2),
    ]
    result = compute(transactions)
    assert cost_basis(result.lots, 1).cost_basis == 1_000
    assert cost_basis(result.lots, 2).cost_basis == 1_000


def test_rebuild_is_idempotent_and_order_independent():
    history = transfer_history()
    first = compute(history)
    second = compute(history)
    shuffled = list(reversed(history))
    third = compute(shuffled)
    assert first.lots == second.lots == third.lots
    assert first.consumptions == second.consumptions == third.consumptions


def _random_history(seed: int) -> list[Transaction]:
    rng = random.Random(seed)
    held = {1: 0, 2: 0}
    transactions: list[Transaction] = []
    day = date(2022, 1, 3)
    next_id = 1
    cross = 100
    for _ in range(60):
        day += timedelta(days=rng.randint(0, 3))
        portfolio = rng.choice([1, 2])
        roll = rng.random()
        if roll < 0.45 or held[portfolio] == 0:
            qty = rng.randint(1, 500) * (S // 100)
            transactions.append(
                tx(
                    next_id,
                    rng.choice(["BUY", "DELIVERY_INBOUND"]),
                    day,
                    qty,
                    rng.randint(1_000, 500_000),
                    owner=portfolio,
                    fees=rng.randint(0, 999),
                    taxes=rng.randint(0, 99),
                )
            )
            held[portfolio] += qty
            next_id += 1
        elif roll < 0.8:
            qty = rng.randint(1, held[portfolio])
            transactions.append(
                tx(next_id, rng.choice(["SELL", "DELIVERY_OUTBOUND"]), day, qty, 1_000, owner=portfolio)
            )
            held[portfolio] -= qty
            next_id += 1
        else:
            other = 3 - portfolio
            qty = rng.randint(1, held[portfolio])
            transactions.append(tx(next_id, "TRANSFER_OUT", day, qty, owner=portfolio, cross=cross))
            transactions.append(tx(next_id + 1, "TRANSFER_IN", day, qty, owner=other, cross=cross))
            held[portfolio] -= qty
            held[other] += qty
            next_id += 2
            cross += 1
    return transactions


@pytest.mark.parametrize("seed", range(12))
def test_remaining_shares_match_transaction_sums(seed):
    history = _random_history(seed)
    result = compute(history)
    assert result.warnings == []
    for portfolio in (1, 2):
        lots = result.lots_for(SECURITY, portfolio)
        assert sum(lot.remaining_shares for lot in lots) == signed_share_sum(history, SECURITY, portfolio)
    assert sum(lot.remaining_shares for lot in result.lots) == signed_share_sum(history, SECURITY)


@pytest.mark.parametrize("seed", range(12))
def test_consumptions_account_for_every_lot(seed):
    result = compute(_random_history(seed))
    for lot in result.lots:
        consumed = sum(c.shares_consumed for c in result.consumptions_for_lot(lot.id))
        assert 0 <= lot.remaining_shares <= lot.original_shares
        assert consumed + lot.remaining_shares == lot.original_shares


@pytest.mark.parametrize("seed", range(12))
def test_remaining_cost_reconciles_with_purchases_and_sales(seed):
    history = _random_history(seed)
    result = compute(history)

    for lot in result.lots:
        released = result.consumptions_for_lot(lot.id)
        drift = remaining_cost(lot) + sum(c.gross_amount for c in released) - lot.gross_amount
        assert abs(drift) <= max(1, len(released))

    purchased = sum(
        t.amount + t.fees + t.taxes
        for t in history
        if t.type in (TransactionType.BUY, TransactionType.DELIVERY_INBOUND)
    )
    remaining = sum(remaining_cost(lot) for lot in result.lots)
    tolerance = len(result.lots) + len(result.consumptions)
    assert abs(remaining - (purchased - realized_cost(result.consumptions))) <= tolerance
