"""Pydantic schemas exposed by the reporting services."""

from .performance import (
    CostBasisSchema,
    HoldingSchema,
    HoldingsReport,
    IrrSchema,
    PerformanceReport,
    PeriodReturnSchema,
    TtwrorSchema,
)

__all__ = [
    "CostBasisSchema",
    "HoldingSchema",
    "HoldingsReport",
    "IrrSchema",
    "PerformanceReport",
    "PeriodReturnSchema",
    "TtwrorSchema",
]
