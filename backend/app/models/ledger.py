"""Securities, ledger transactions, cross entries, prices and FX rates."""

from __future__ import annotations

from datetime import date

from sqlalchemy import Date, Enum, Float, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from fifo_ledger.models import OwnerKind, TransactionType

CROSS_ENTRY_TYPES = ("PORTFOLIO_TRANSFER", "BUY_SELL", "ACCOUNT_TRANSFER")


class Security(Base):
    __tablename__ = "security"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(128))
    currency: Mapped[str | None] = mapped_column(String(3), nullable=True)
    isin: Mapped[str | None] = mapped_column(String(12), nullable=True)


class Portfolio(Base):
    """A securities depot; deposits and removals are booked on its reference account."""

    __tablename__ = "portfolio"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(128))
    reference_account_id: Mapped[int | None] = mapped_column(nullable=True, index=True)


class LedgerTransaction(Base):
    __tablename__ = "ledger_transaction"
    __table_args__ = (
        Index("ix_ledger_transaction_security_date", "security_id", "date"),
        Index("ix_ledger_transaction_owner", "owner_kind", "owner_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    uuid: Mapped[str | None] = mapped_column(String(36), nullable=True, unique=True)
    owner_kind: Mapped[OwnerKind] = mapped_column(
        Enum(OwnerKind, name="owner_kind", native_enum=False, values_callable=lambda e: [m.value for m in e])
    )
    owner_id: Mapped[int]
    type: Mapped[TransactionType] = mapped_column(
        Enum(TransactionType, name="transaction_type", native_enum=False)
    )
    date: Mapped[date] = mapped_column(Date)
    security_id: Mapped[int | None] = mapped_column(ForeignKey("security.id"), nullable=True)
    shares: Mapped[int | None] = mapped_column(nullable=True)
    amount: Mapped[int] = mapped_column(default=0)
    currency: Mapped[str] = mapped_column(String(3), default="EUR")
    fees: Mapped[int] = mapped_column(default=0)
    taxes: Mapped[int] = mapped_column(default=0)
    cross_entry_id: Mapped[int | None] = mapped_column(ForeignKey("cross_entry.id"), nullable=True)


class CrossEntry(Base):
    __tablename__ = "cross_entry"

    id: Mapped[int] = mapped_column(primary_key=True)
    entry_type: Mapped[str] = mapped_column(
        Enum(*CROSS_ENTRY_TYPES, name="cross_entry_type", native_enum=False)
    )
    from_transaction_id: Mapped[int | None] = mapped_column(nullable=True)
    to_transaction_id: Mapped[int | None] = mapped_column(nullable=True)


class SecurityPrice(Base):
    __tablename__ = "price"
    __table_args__ = (UniqueConstraint("security_id", "date", name="uq_price_security_date"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    security_id: Mapped[int] = mapped_column(ForeignKey("security.id", ondelete="CASCADE"), index=True)
    date: Mapped[date] = mapped_column(Date)
    value: Mapped[int]


class ExchangeRate(Base):
    __tablename__ = "exchange_rate"
    __table_args__ = (
        UniqueConstraint("base_currency", "term_currency", "date", name="uq_exchange_rate_pair_date"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    base_currency: Mapped[str] = mapped_column(String(3))
    term_currency: Mapped[str] = mapped_column(String(3))
    date: Mapped[date] = mapped_column(Date)
    rate: Mapped[float] = mapped_column(Float)


__all__ = [
    "CROSS_ENTRY_TYPES",
    "Portfolio",
    "Security",
    "LedgerTransaction",
    "CrossEntry",
    "SecurityPrice",
    "ExchangeRate",
]
