"""Persisted FIFO lots and their consumptions."""

from __future__ import annotations

from datetime import date

from sqlalchemy import Date, Enum, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from fifo_ledger.models import ConsumptionKind


class FifoLot(Base):
    __tablename__ = "fifo_lot"
    __table_args__ = (
        Index("ix_fifo_lot_security_portfolio", "security_id", "portfolio_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    security_id: Mapped[int] = mapped_column(ForeignKey("security.id", ondelete="CASCADE"))
    portfolio_id: Mapped[int]
    purchase_transaction_id: Mapped[int]
    purchase_date: Mapped[date] = mapped_column(Date)
    original_shares: Mapped[int]
    remaining_shares: Mapped[int]
    gross_amount: Mapped[int]
    net_amount: Mapped[int]
    currency: Mapped[str] = mapped_column(String(3))

    consumptions: Mapped[list["FifoConsumption"]] = relationship(
        back_populates="lot", cascade="all, delete-orphan", passive_deletes=True
    )


class FifoConsumption(Base):
    __tablename__ = "fifo_consumption"

    id: Mapped[int] = mapped_column(primary_key=True)
    lot_id: Mapped[int] = mapped_column(ForeignKey("fifo_lot.id", ondelete="CASCADE"), index=True)
    transaction_id: Mapped[int] = mapped_column(index=True)
    shares_consumed: Mapped[int]
    gross_amount: Mapped[int]
    net_amount: Mapped[int]
    kind: Mapped[ConsumptionKind] = mapped_column(
        Enum(ConsumptionKind, name="consumption_kind", native_enum=False),
        default=ConsumptionKind.SALE,
    )

    lot: Mapped[FifoLot] = relationship(back_populates="consumptions")


__all__ = ["FifoLot", "FifoConsumption"]
