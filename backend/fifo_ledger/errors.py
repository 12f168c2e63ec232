"""Errors and integrity diagnostics raised or reported by the ledger core."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class LedgerError(Exception):
    """Base class for ledger errors."""


class DataIntegrityError(LedgerError):
    """Raised in strict mode when the transaction history is inconsistent."""

    def __init__(self, issue: "IntegrityIssue"):
        super().__init__(issue.message)
        self.issue = issue


class IssueKind(str, Enum):
    OVERSELL = "OVERSELL"
    UNRESOLVED_TRANSFER = "UNRESOLVED_TRANSFER"
    TRANSFER_SHORTFALL = "TRANSFER_SHORTFALL"
    UNSUPPORTED_TYPE = "UNSUPPORTED_TYPE"


@dataclass(frozen=True)
class IntegrityIssue:
    """A degraded computation the caller may want to surface."""

    kind: IssueKind
    transaction_id: int
    security_id: Optional[int]
    portfolio_id: Optional[int]
    message: str
    shortfall_shares: int = 0


__all__ = [
    "LedgerError",
    "DataIntegrityError",
    "IssueKind",
    "IntegrityIssue",
]
