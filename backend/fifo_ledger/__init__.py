"""Core package for FIFO cost basis and portfolio performance."""

from .cost_basis import CostBasisResult, cost_basis, cost_basis_converted
from .cross_entry import CrossEntryResolver, MappingCrossEntryResolver
from .errors import DataIntegrityError, IntegrityIssue
from .fifo import LotComputation, compute_lots, signed_share_sum
from .irr import IrrResult, calculate_irr
from .models import (
    CashFlow,
    Consumption,
    ConsumptionKind,
    Lot,
    OwnerKind,
    PortfolioValuation,
    PricePoint,
    Transaction,
    TransactionType,
)
from .performance import PerformanceResult, calculate_portfolio_performance
from .ttwror import TtwrorResult, calculate_ttwror
from .valuation import build_valuation_series

__all__ = [
    "CashFlow",
    "Consumption",
    "ConsumptionKind",
    "CostBasisResult",
    "CrossEntryResolver",
    "DataIntegrityError",
    "IntegrityIssue",
    "IrrResult",
    "Lot",
    "LotComputation",
    "MappingCrossEntryResolver",
    "OwnerKind",
    "PerformanceResult",
    "PortfolioValuation",
    "PricePoint",
    "Transaction",
    "TransactionType",
    "TtwrorResult",
    "build_valuation_series",
    "calculate_irr",
    "calculate_portfolio_performance",
    "calculate_ttwror",
    "compute_lots",
    "cost_basis",
    "cost_basis_converted",
    "signed_share_sum",
]
