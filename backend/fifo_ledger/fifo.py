"""FIFO lot accounting.

``compute_lots`` turns the portfolio-side transactions of one or more
securities into lots and consumption records. It performs no I/O; persisting
the result is the job of a lot store.

Processing order is ``(date, type priority, transaction id)`` so that on any
given day acquisitions land before transfers, and transfers before disposals.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .cross_entry import CrossEntryResolver
from .errors import DataIntegrityError, IntegrityIssue, IssueKind
from .models import (
    INBOUND_TYPES,
    OUTBOUND_TYPES,
    Consumption,
    ConsumptionKind,
    Lot,
    Transaction,
    TransactionType,
)
from .units import Cents, Shares, proportional

logger = logging.getLogger(__name__)

TYPE_PRIORITY: Dict[TransactionType, int] = {
    TransactionType.BUY: 1,
    TransactionType.DELIVERY_INBOUND: 1,
    TransactionType.TRANSFER_IN: 2,
    TransactionType.TRANSFER_OUT: 3,
    TransactionType.SELL: 4,
    TransactionType.DELIVERY_OUTBOUND: 4,
}
_DEFAULT_PRIORITY = 5

_ACQUISITIONS = (TransactionType.BUY, TransactionType.DELIVERY_INBOUND)
_DISPOSALS = (TransactionType.SELL, TransactionType.DELIVERY_OUTBOUND)

_BookKey = Tuple[int, int]


def processing_order(tx: Transaction) -> tuple[date, int, int]:
    return (tx.date, TYPE_PRIORITY.get(tx.type, _DEFAULT_PRIORITY), tx.id)


@dataclass
class LotComputation:
    """Result of a FIFO run: every lot ever opened plus how it was consumed."""

    lots: List[Lot] = field(default_factory=list)
    consumptions: List[Consumption] = field(default_factory=list)
    warnings: List[IntegrityIssue] = field(default_factory=list)

    def lots_for(self, security_id: int, portfolio_id: int | None = None) -> List[Lot]:
        return [
            lot
            for lot in self.lots
            if lot.security_id == security_id
            and (portfolio_id is None or lot.portfolio_id == portfolio_id)
        ]

    def consumptions_for_lot(self, lot_id: int) -> List[Consumption]:
        return [c for c in self.consumptions if c.lot_id == lot_id]


class _LotBook:
    """Mutable state for a single FIFO run."""

    def __init__(self, resolver: CrossEntryResolver, strict: bool):
        self._resolver = resolver
        self._strict = strict
        self._books: Dict[_BookKey, List[Lot]] = {}
        self._next_lot_id = 1
        self.result = LotComputation()

    def apply(self, tx: Transaction) -> None:
        if tx.type in _ACQUISITIONS:
            self._acquire(tx)
        elif tx.type in _DISPOSALS:
            self._dispose(tx)
        elif tx.type == TransactionType.TRANSFER_IN:
            self._transfer_in(tx)
        elif tx.type == TransactionType.TRANSFER_OUT:
            # Moved by the paired TRANSFER_IN.
            pass
        else:
            self._report(
                IntegrityIssue(
                    kind=IssueKind.UNSUPPORTED_TYPE,
                    transaction_id=tx.id,
                    security_id=tx.security_id,
                    portfolio_id=tx.owner_id,
                    message=f"FIFO: ignoring transaction {tx.id} of type {tx.type.value} carrying shares",
                ),
                fatal=False,
            )

    # Transaction handlers

    def _acquire(self, tx: Transaction) -> None:
        quantity = Shares(abs(tx.shares or 0))
        if quantity == 0:
            logger.debug("FIFO: skipping zero-share acquisition %s", tx.id)
            return
        self._open_lot(
            security_id=tx.security_id,
            portfolio_id=tx.owner_id,
            originating_transaction_id=tx.id,
            purchase_date=tx.date,
            quantity=quantity,
            gross_amount=Cents(tx.amount + tx.fees + tx.taxes),
            net_amount=tx.amount,
            currency=tx.currency,
        )

    def _dispose(self, tx: Transaction) -> None:
        lots = self._book(tx.security_id, tx.owner_id)
        needed = Shares(abs(tx.shares or 0))
        for lot, taken, gross, net in self._take(lots, needed):
            self.result.consumptions.append(
                Consumption(
                    lot_id=lot.id,
                    transaction_id=tx.id,
                    shares_consumed=taken,
                    gross_amount=gross,
                    net_amount=net,
                    kind=ConsumptionKind.SALE,
                )
            )
            needed = Shares(needed - taken)
        if needed > 0:
            self._report(
                IntegrityIssue(
                    kind=IssueKind.OVERSELL,
                    transaction_id=tx.id,
                    security_id=tx.security_id,
                    portfolio_id=tx.owner_id,
                    shortfall_shares=needed,
                    message=(
                        f"FIFO: could not consume all shares for txn {tx.id}: "
                        f"{needed} remaining"
                    ),
                )
            )

    def _transfer_in(self, tx: Transaction) -> None:
        quantity = Shares(abs(tx.shares or 0))
        source_portfolio: Optional[int] = None
        if tx.cross_entry_id is not None:
            source_portfolio = self._resolver.resolve(tx.cross_entry_id)
        if source_portfolio is None:
            self._report(
                IntegrityIssue(
                    kind=IssueKind.UNRESOLVED_TRANSFER,
                    transaction_id=tx.id,
                    security_id=tx.security_id,
                    portfolio_id=tx.owner_id,
                    shortfall_shares=quantity,
                    message=(
                        f"TRANSFER_IN {tx.id} has no resolvable cross entry "
                        f"({tx.cross_entry_id}), creating zero-cost lot"
                    ),
                )
            )
            self._open_zero_cost_lot(tx, quantity)
            return

        source_lots = self._book(tx.security_id, source_portfolio)
        needed = quantity
        moved: List[Tuple[Lot, Shares, Cents, Cents]] = []
        for lot, taken, gross, net in self._take(source_lots, needed):
            self.result.consumptions.append(
                Consumption(
                    lot_id=lot.id,
                    transaction_id=tx.id,
                    shares_consumed=taken,
                    gross_amount=gross,
                    net_amount=net,
                    kind=ConsumptionKind.TRANSFER,
                )
            )
            moved.append((lot, taken, gross, net))
            needed = Shares(needed - taken)

        for source, taken, gross, net in moved:
            self._open_lot(
                security_id=tx.security_id,
                portfolio_id=tx.owner_id,
                originating_transaction_id=source.originating_transaction_id,
                purchase_date=source.purchase_date,
                quantity=taken,
                gross_amount=gross,
                net_amount=net,
                currency=source.currency,
            )

        if needed > 0:
            self._report(
                IntegrityIssue(
                    kind=IssueKind.TRANSFER_SHORTFALL,
                    transaction_id=tx.id,
                    security_id=tx.security_id,
                    portfolio_id=tx.owner_id,
                    shortfall_shares=needed,
                    message=(
                        f"TRANSFER_IN {tx.id}: could not find enough lots in portfolio "
                        f"{source_portfolio} to transfer {quantity} shares, {needed} remaining"
                    ),
                )
            )
            self._open_zero_cost_lot(tx, needed)

    # Helpers

    def _take(self, lots: Sequence[Lot], needed: Shares) -> Iterable[Tuple[Lot, Shares, Cents, Cents]]:
        """Consume up to ``needed`` shares from ``lots`` oldest first."""

        for lot in lots:
            if needed <= 0:
                break
            if lot.remaining_shares <= 0:
                continue
            taken = Shares(min(lot.remaining_shares, needed))
            gross = Cents(proportional(lot.gross_amount, taken, lot.original_shares))
            net = Cents(proportional(lot.net_amount, taken, lot.original_shares))
            lot.remaining_shares = Shares(lot.remaining_shares - taken)
            needed = Shares(needed - taken)
            yield lot, taken, gross, net

    def _open_zero_cost_lot(self, tx: Transaction, quantity: Shares) -> None:
        if quantity <= 0:
            return
        self._open_lot(
            security_id=tx.security_id,
            portfolio_id=tx.owner_id,
            originating_transaction_id=tx.id,
            purchase_date=tx.date,
            quantity=quantity,
            gross_amount=Cents(0),
            net_amount=Cents(0),
            currency=tx.currency,
        )

    def _open_lot(
        self,
        *,
        security_id: int,
        portfolio_id: int,
        originating_transaction_id: int,
        purchase_date: date,
        quantity: Shares,
        gross_amount: Cents,
        net_amount: Cents,
        currency: str,
    ) -> Lot:
        lot = Lot(
            id=self._next_lot_id,
            security_id=security_id,
            portfolio_id=portfolio_id,
            originating_transaction_id=originating_transaction_id,
            purchase_date=purchase_date,
            original_shares=quantity,
            remaining_shares=quantity,
            gross_amount=gross_amount,
            net_amount=net_amount,
            currency=currency,
        )
        self._next_lot_id += 1
        self._book(security_id, portfolio_id).append(lot)
        self.result.lots.append(lot)
        return lot

    def _book(self, security_id: int, portfolio_id: int) -> List[Lot]:
        return self._books.setdefault((security_id, portfolio_id), [])

    def _report(self, issue: IntegrityIssue, *, fatal: bool = True) -> None:
        logger.warning(issue.message)
        self.result.warnings.append(issue)
        if fatal and self._strict:
            raise DataIntegrityError(issue)


def compute_lots(
    transactions: Iterable[Transaction],
    resolver: CrossEntryResolver,
    *,
    strict: bool = False,
) -> LotComputation:
    """Rebuild lots and consumptions from scratch for the given transactions.

    Only portfolio-side transactions that carry shares take part. Data
    problems are logged and recorded in ``warnings``; with ``strict`` they
    raise :class:`DataIntegrityError` instead.
    """

    relevant = [
        tx
        for tx in transactions
        if tx.is_portfolio and tx.shares is not None and tx.security_id is not None
    ]
    book = _LotBook(resolver, strict)
    for tx in sorted(relevant, key=processing_order):
        book.apply(tx)
    return book.result


def signed_share_sum(
    transactions: Iterable[Transaction],
    security_id: int,
    portfolio_id: int | None = None,
    *,
    as_of: date | None = None,
) -> Shares:
    """Net shares held according to the raw transactions, ignoring lots."""

    total = 0
    for tx in transactions:
        if not tx.is_portfolio or tx.shares is None or tx.security_id != security_id:
            continue
        if portfolio_id is not None and tx.owner_id != portfolio_id:
            continue
        if as_of is not None and tx.date > as_of:
            continue
        if tx.type in INBOUND_TYPES:
            total += abs(tx.shares)
        elif tx.type in OUTBOUND_TYPES:
            total -= abs(tx.shares)
    return Shares(total)


__all__ = [
    "TYPE_PRIORITY",
    "LotComputation",
    "compute_lots",
    "processing_order",
    "signed_share_sum",
]
