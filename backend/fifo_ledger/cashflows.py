"""External cash flows (deposits and removals) feeding the return calculations.

Buys, sells, transfers and deliveries move value inside the portfolio and are
not external flows.
"""
from __future__ import annotations

from datetime import date
from typing import Collection, Iterable, List

from .fx import CurrencyConverter
from .models import CashFlow, OwnerKind, Transaction, TransactionType
from .units import Cents


def external_cash_flows(
    transactions: Iterable[Transaction],
    start: date,
    end: date,
    *,
    account_ids: Collection[int] | None = None,
    converter: CurrencyConverter | None = None,
    base_currency: str | None = None,
) -> List[CashFlow]:
    """Signed account flows in ``[start, end]``.

    With a converter and base currency each flow is converted on its own
    date, matching how valuations are converted.
    """

    flows: List[CashFlow] = []
    for tx in transactions:
        if tx.owner_kind != OwnerKind.ACCOUNT:
            continue
        if account_ids is not None and tx.owner_id not in account_ids:
            continue
        if not start <= tx.date <= end:
            continue
        if tx.type == TransactionType.DEPOSIT:
            amount = abs(tx.amount)
        elif tx.type == TransactionType.REMOVAL:
            amount = -abs(tx.amount)
        else:
            continue
        if converter is not None and base_currency and tx.currency:
            amount = converter.convert(amount, tx.currency, base_currency, tx.date)
        if amount:
            flows.append(CashFlow(date=tx.date, amount=Cents(amount)))
    flows.sort(key=lambda flow: flow.date)
    return flows


__all__ = ["external_cash_flows"]
