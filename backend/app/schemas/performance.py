"""Pydantic schemas for cost basis, holdings and performance reports."""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel, Field

from fifo_ledger.performance import PerformanceResult
from fifo_ledger.units import cents_to_float


class CostBasisSchema(BaseModel):
    security_id: int
    remaining_shares: float
    cost_basis: float
    currency: str


class HoldingSchema(BaseModel):
    security_id: int
    name: str | None = None
    shares: float
    cost_basis: float
    market_value: float | None = Field(default=None, description="None when no price is available")
    unrealized_gain: float | None = None
    unrealized_gain_pct: float | None = None


class HoldingsReport(BaseModel):
    base_currency: str
    as_of: date
    holdings: list[HoldingSchema]
    total_cost_basis: float
    total_market_value: float
    total_unrealized_gain: float
    warnings: list[str] = Field(default_factory=list)


class PeriodReturnSchema(BaseModel):
    start_date: date
    end_date: date
    start_value: float
    end_value: float
    cash_flow: float
    return_rate: float

    class Config:
        from_attributes = True


class TtwrorSchema(BaseModel):
    total_return: float
    annualized_return: float
    days: int
    periods: list[PeriodReturnSchema]


class IrrSchema(BaseModel):
    irr: float
    converged: bool
    iterations: int

    class Config:
        from_attributes = True


class PerformanceReport(BaseModel):
    portfolio_id: int | None = None
    start: date
    end: date
    terminal_value: float
    ttwror: TtwrorSchema
    irr: IrrSchema

    class Config:
        json_schema_extra = {
            "example": {
                "portfolio_id": 1,
                "start": "2023-01-02",
                "end": "2023-12-29",
                "terminal_value": 11250.0,
                "ttwror": {"total_return": 0.12, "annualized_return": 0.1215, "days": 361, "periods": []},
                "irr": {"irr": 0.118, "converged": True, "iterations": 4},
            }
        }

    @classmethod
    def from_result(cls, result: PerformanceResult, portfolio_id: int | None = None) -> "PerformanceReport":
        return cls(
            portfolio_id=portfolio_id,
            start=result.start,
            end=result.end,
            terminal_value=cents_to_float(result.terminal_value),
            ttwror=TtwrorSchema(
                total_return=result.ttwror.total_return,
                annualized_return=result.ttwror.annualized_return,
                days=result.ttwror.days,
                periods=[
                    PeriodReturnSchema(
                        start_date=p.start_date,
                        end_date=p.end_date,
                        start_value=cents_to_float(p.start_value),
                        end_value=cents_to_float(p.end_value),
                        cash_flow=cents_to_float(p.cash_flow),
                        return_rate=p.return_rate,
                    )
                    for p in result.ttwror.periods
                ],
            ),
            irr=IrrSchema.model_validate(result.irr),
        )


__all__ = [
    "CostBasisSchema",
    "HoldingSchema",
    "HoldingsReport",
    "PeriodReturnSchema",
    "TtwrorSchema",
    "IrrSchema",
    "PerformanceReport",
]
