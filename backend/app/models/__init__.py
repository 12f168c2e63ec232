"""Database model exports."""

from .ledger import (
    CROSS_ENTRY_TYPES,
    CrossEntry,
    ExchangeRate,
    LedgerTransaction,
    Portfolio,
    Security,
    SecurityPrice,
)
from .lots import FifoConsumption, FifoLot

__all__ = [
    "CROSS_ENTRY_TYPES",
    "CrossEntry",
    "ExchangeRate",
    "FifoConsumption",
    "FifoLot",
    "LedgerTransaction",
    "Portfolio",
    "Security",
    "SecurityPrice",
]
