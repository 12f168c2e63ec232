"""Read-side adapter turning stored ledger rows into domain objects."""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models import CrossEntry, LedgerTransaction, Portfolio, Security, SecurityPrice
from fifo_ledger.cross_entry import MappingCrossEntryResolver
from fifo_ledger.models import OwnerKind, PricePoint, Transaction
from fifo_ledger.units import Cents, PriceValue, Shares


def to_domain(row: LedgerTransaction) -> Transaction:
    return Transaction(
        id=row.id,
        uuid=row.uuid,
        owner_kind=row.owner_kind,
        owner_id=row.owner_id,
        type=row.type,
        date=row.date,
        security_id=row.security_id,
        shares=Shares(row.shares) if row.shares is not None else None,
        amount=Cents(row.amount or 0),
        currency=row.currency,
        fees=Cents(row.fees or 0),
        taxes=Cents(row.taxes or 0),
        cross_entry_id=row.cross_entry_id,
    )


def load_security_transactions(session: Session, security_id: int) -> list[Transaction]:
    """Portfolio-side transactions carrying shares for one security."""

    stmt = (
        select(LedgerTransaction)
        .where(
            LedgerTransaction.security_id == security_id,
            LedgerTransaction.owner_kind == OwnerKind.PORTFOLIO,
            LedgerTransaction.shares.is_not(None),
        )
        .order_by(LedgerTransaction.date, LedgerTransaction.id)
    )
    return [to_domain(row) for row in session.scalars(stmt)]


def load_transactions(session: Session, *, owner_ids: Iterable[int] | None = None) -> list[Transaction]:
    stmt = select(LedgerTransaction).order_by(LedgerTransaction.date, LedgerTransaction.id)
    if owner_ids is not None:
        stmt = stmt.where(LedgerTransaction.owner_id.in_(list(owner_ids)))
    return [to_domain(row) for row in session.scalars(stmt)]


def load_cross_entry_resolver(session: Session) -> MappingCrossEntryResolver:
    """Map each portfolio-transfer cross entry to the portfolio of its sending side."""

    stmt = (
        select(CrossEntry.id, LedgerTransaction.owner_id)
        .join(LedgerTransaction, LedgerTransaction.id == CrossEntry.from_transaction_id)
        .where(CrossEntry.entry_type == "PORTFOLIO_TRANSFER")
    )
    return MappingCrossEntryResolver({entry_id: owner_id for entry_id, owner_id in session.execute(stmt)})


def load_price_series(
    session: Session, security_ids: Iterable[int] | None = None
) -> dict[int, list[PricePoint]]:
    stmt = select(SecurityPrice).order_by(SecurityPrice.security_id, SecurityPrice.date)
    if security_ids is not None:
        stmt = stmt.where(SecurityPrice.security_id.in_(list(security_ids)))
    series: dict[int, list[PricePoint]] = {}
    for row in session.scalars(stmt):
        series.setdefault(row.security_id, []).append(
            PricePoint(date=row.date, value=PriceValue(row.value))
        )
    return series


def load_security_currencies(session: Session) -> dict[int, str]:
    rows = session.execute(select(Security.id, Security.currency).where(Security.currency.is_not(None)))
    return {security_id: currency for security_id, currency in rows}


def load_reference_account_id(session: Session, portfolio_id: int) -> int | None:
    """Account whose deposits and removals fund ``portfolio_id``."""

    return session.scalar(select(Portfolio.reference_account_id).where(Portfolio.id == portfolio_id))


def list_security_ids(session: Session) -> list[int]:
    return list(session.scalars(select(Security.id).order_by(Security.id)))


__all__ = [
    "to_domain",
    "load_security_transactions",
    "load_transactions",
    "load_cross_entry_resolver",
    "load_price_series",
    "load_security_currencies",
    "load_reference_account_id",
    "list_security_ids",
]
