"""Lot persistence adapters.

A store replaces all lots of one security at a time. ``SqlLotStore`` does the
delete and re-insert inside a single database transaction so readers never
observe a half-rebuilt security.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Protocol

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models import FifoConsumption, FifoLot
from fifo_ledger.fifo import LotComputation
from fifo_ledger.models import Consumption, Lot
from fifo_ledger.units import Cents, Shares

logger = logging.getLogger(__name__)


class LotStore(Protocol):
    def replace_security(self, security_id: int, computation: LotComputation) -> None:
        ...

    def load_lots(self, security_id: int | None = None, portfolio_id: int | None = None) -> list[Lot]:
        ...

    def load_consumptions(self, security_id: int) -> list[Consumption]:
        ...


class InMemoryLotStore:
    """Minimal in-memory lot repository."""

    def __init__(self) -> None:
        self._lots: dict[int, list[Lot]] = {}
        self._consumptions: dict[int, list[Consumption]] = {}

    def replace_security(self, security_id: int, computation: LotComputation) -> None:
        lots = [replace(lot) for lot in computation.lots_for(security_id)]
        lot_ids = {lot.id for lot in lots}
        self._lots[security_id] = lots
        self._consumptions[security_id] = [c for c in computation.consumptions if c.lot_id in lot_ids]

    def load_lots(self, security_id: int | None = None, portfolio_id: int | None = None) -> list[Lot]:
        selected = []
        for sec_id, lots in sorted(self._lots.items()):
            if security_id is not None and sec_id != security_id:
                continue
            selected.extend(
                replace(lot) for lot in lots if portfolio_id is None or lot.portfolio_id == portfolio_id
            )
        return selected

    def load_consumptions(self, security_id: int) -> list[Consumption]:
        return list(self._consumptions.get(security_id, []))


class SqlLotStore:
    """Lot repository backed by the ``fifo_lot`` and ``fifo_consumption`` tables."""

    def __init__(self, session: Session):
        self._session = session

    def replace_security(self, security_id: int, computation: LotComputation) -> None:
        session = self._session
        try:
            existing = select(FifoLot.id).where(FifoLot.security_id == security_id)
            session.execute(delete(FifoConsumption).where(FifoConsumption.lot_id.in_(existing)))
            session.execute(delete(FifoLot).where(FifoLot.security_id == security_id))

            security_lots = computation.lots_for(security_id)
            security_lot_ids = {lot.id for lot in security_lots}
            inserted: list[tuple[int, FifoLot]] = []
            for lot in security_lots:
                if lot.original_shares <= 0:
                    continue
                row = FifoLot(
                    security_id=lot.security_id,
                    portfolio_id=lot.portfolio_id,
                    purchase_transaction_id=lot.originating_transaction_id,
                    purchase_date=lot.purchase_date,
                    original_shares=lot.original_shares,
                    remaining_shares=lot.remaining_shares,
                    gross_amount=lot.gross_amount,
                    net_amount=lot.net_amount,
                    currency=lot.currency,
                )
                session.add(row)
                inserted.append((lot.id, row))
            session.flush()
            id_map = {lot_id: row.id for lot_id, row in inserted}

            for consumption in computation.consumptions:
                if consumption.lot_id not in security_lot_ids:
                    continue
                db_lot_id = id_map.get(consumption.lot_id)
                if db_lot_id is None:
                    logger.warning(
                        "FIFO: consumption references unknown lot_id %s for txn %s",
                        consumption.lot_id,
                        consumption.transaction_id,
                    )
                    continue
                session.add(
                    FifoConsumption(
                        lot_id=db_lot_id,
                        transaction_id=consumption.transaction_id,
                        shares_consumed=consumption.shares_consumed,
                        gross_amount=consumption.gross_amount,
                        net_amount=consumption.net_amount,
                        kind=consumption.kind,
                    )
                )
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            raise
        logger.info("Stored %d lots for security %s", len(inserted), security_id)

    def load_lots(self, security_id: int | None = None, portfolio_id: int | None = None) -> list[Lot]:
        stmt = select(FifoLot).order_by(FifoLot.id)
        if security_id is not None:
            stmt = stmt.where(FifoLot.security_id == security_id)
        if portfolio_id is not None:
            stmt = stmt.where(FifoLot.portfolio_id == portfolio_id)
        return [_lot_from_row(row) for row in self._session.scalars(stmt)]

    def load_consumptions(self, security_id: int) -> list[Consumption]:
        stmt = (
            select(FifoConsumption)
            .join(FifoLot, FifoLot.id == FifoConsumption.lot_id)
            .where(FifoLot.security_id == security_id)
            .order_by(FifoConsumption.id)
        )
        return [
            Consumption(
                lot_id=row.lot_id,
                transaction_id=row.transaction_id,
                shares_consumed=Shares(row.shares_consumed),
                gross_amount=Cents(row.gross_amount),
                net_amount=Cents(row.net_amount),
                kind=row.kind,
            )
            for row in self._session.scalars(stmt)
        ]


def _lot_from_row(row: FifoLot) -> Lot:
    return Lot(
        id=row.id,
        security_id=row.security_id,
        portfolio_id=row.portfolio_id,
        originating_transaction_id=row.purchase_transaction_id,
        purchase_date=row.purchase_date,
        original_shares=Shares(row.original_shares),
        remaining_shares=Shares(row.remaining_shares),
        gross_amount=Cents(row.gross_amount),
        net_amount=Cents(row.net_amount),
        currency=row.currency,
    )


__all__ = ["LotStore", "InMemoryLotStore", "SqlLotStore"]
