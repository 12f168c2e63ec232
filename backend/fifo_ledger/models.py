"""Domain models used by the FIFO ledger."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional

from .units import Cents, PriceValue, Shares


class OwnerKind(str, Enum):
    ACCOUNT = "account"
    PORTFOLIO = "portfolio"


class TransactionType(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    TRANSFER_IN = "TRANSFER_IN"
    TRANSFER_OUT = "TRANSFER_OUT"
    DELIVERY_INBOUND = "DELIVERY_INBOUND"
    DELIVERY_OUTBOUND = "DELIVERY_OUTBOUND"
    DIVIDENDS = "DIVIDENDS"
    DEPOSIT = "DEPOSIT"
    REMOVAL = "REMOVAL"
    INTEREST = "INTEREST"
    FEES = "FEES"
    TAXES = "TAXES"


INBOUND_TYPES = frozenset(
    {TransactionType.BUY, TransactionType.TRANSFER_IN, TransactionType.DELIVERY_INBOUND}
)
OUTBOUND_TYPES = frozenset(
    {TransactionType.SELL, TransactionType.TRANSFER_OUT, TransactionType.DELIVERY_OUTBOUND}
)


class ConsumptionKind(str, Enum):
    SALE = "SALE"
    TRANSFER = "TRANSFER"


@dataclass(frozen=True)
class Transaction:
    """An imported ledger entry. Never modified once created."""

    id: int
    owner_kind: OwnerKind
    owner_id: int
    type: TransactionType
    date: date
    amount: Cents
    currency: str
    security_id: Optional[int] = None
    shares: Optional[Shares] = None
    fees: Cents = Cents(0)
    taxes: Cents = Cents(0)
    cross_entry_id: Optional[int] = None
    uuid: Optional[str] = None

    @property
    def is_portfolio(self) -> bool:
        return self.owner_kind == OwnerKind.PORTFOLIO


@dataclass
class Lot:
    """A tranche of shares acquired together.

    ``gross_amount`` and ``net_amount`` always describe ``original_shares``;
    the value of the remainder is derived on demand.
    """

    id: int
    security_id: int
    portfolio_id: int
    originating_transaction_id: int
    purchase_date: date
    original_shares: Shares
    remaining_shares: Shares
    gross_amount: Cents
    net_amount: Cents
    currency: str

    @property
    def is_open(self) -> bool:
        return self.remaining_shares > 0


@dataclass(frozen=True)
class Consumption:
    """Shares taken out of a lot by a sale or a transfer."""

    lot_id: int
    transaction_id: int
    shares_consumed: Shares
    gross_amount: Cents
    net_amount: Cents
    kind: ConsumptionKind = ConsumptionKind.SALE


@dataclass(frozen=True)
class CashFlow:
    """External capital movement; positive when the investor contributes."""

    date: date
    amount: Cents


@dataclass(frozen=True)
class PortfolioValuation:
    date: date
    value: Cents


@dataclass(frozen=True)
class PricePoint:
    date: date
    value: PriceValue


__all__ = [
    "OwnerKind",
    "TransactionType",
    "ConsumptionKind",
    "INBOUND_TYPES",
    "OUTBOUND_TYPES",
    "Transaction",
    "Lot",
    "Consumption",
    "CashFlow",
    "PortfolioValuation",
    "PricePoint",
]
