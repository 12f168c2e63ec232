"""Resolution of the source portfolio for paired transfers."""
from __future__ import annotations

from typing import Iterable, Mapping, Optional, Protocol

from .models import Transaction, TransactionType


class CrossEntryResolver(Protocol):
    """Look up the portfolio that sent the shares of a transfer pair."""

    def resolve(self, cross_entry_id: int) -> Optional[int]:
        ...


class MappingCrossEntryResolver:
    """Resolver backed by a ``cross_entry_id -> source portfolio`` mapping."""

    def __init__(self, mapping: Mapping[int, int] | None = None):
        self._mapping: dict[int, int] = dict(mapping or {})

    def resolve(self, cross_entry_id: int) -> Optional[int]:
        return self._mapping.get(cross_entry_id)

    def __len__(self) -> int:
        return len(self._mapping)

    @classmethod
    def from_transactions(cls, transactions: Iterable[Transaction]) -> "MappingCrossEntryResolver":
        """Pair each TRANSFER_OUT with its cross entry to find transfer sources."""

        mapping: dict[int, int] = {}
        for tx in transactions:
            if tx.type == TransactionType.TRANSFER_OUT and tx.cross_entry_id is not None and tx.is_portfolio:
                mapping[tx.cross_entry_id] = tx.owner_id
        return cls(mapping)


__all__ = ["CrossEntryResolver", "MappingCrossEntryResolver"]
