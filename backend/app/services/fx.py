"""Exchange-rate lookups against the ``exchange_rate`` table."""

from __future__ import annotations

from datetime import date

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models import ExchangeRate
from fifo_ledger.fx import RateLookupConverter


class DbCurrencyConverter(RateLookupConverter):
    """Forward-filled rates read from the database, cached per instance."""

    def __init__(self, session: Session):
        self._session = session
        self._cache: dict[tuple[str, str, date], float | None] = {}

    def _lookup_rate(self, base: str, term: str, as_of: date) -> float | None:
        key = (base, term, as_of)
        if key not in self._cache:
            stmt = (
                select(ExchangeRate.rate)
                .where(
                    ExchangeRate.base_currency == base,
                    ExchangeRate.term_currency == term,
                    ExchangeRate.date <= as_of,
                )
                .order_by(ExchangeRate.date.desc())
                .limit(1)
            )
            self._cache[key] = self._session.scalar(stmt)
        return self._cache[key]


def store_rate(session: Session, base: str, term: str, day: date, rate: float) -> ExchangeRate:
    """Insert or replace the rate for a currency pair on ``day``."""

    existing = session.scalar(
        select(ExchangeRate).where(
            ExchangeRate.base_currency == base.upper(),
            ExchangeRate.term_currency == term.upper(),
            ExchangeRate.date == day,
        )
    )
    if existing is None:
        existing = ExchangeRate(base_currency=base.upper(), term_currency=term.upper(), date=day, rate=rate)
        session.add(existing)
    else:
        existing.rate = rate
    session.flush()
    return existing


__all__ = ["DbCurrencyConverter", "store_rate"]
