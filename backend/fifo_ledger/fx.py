"""FX conversion helpers."""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from bisect import bisect_right
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, Mapping, Optional, Protocol, Tuple

from .units import Cents, PriceValue, round_div

logger = logging.getLogger(__name__)

TRIANGULATION_CURRENCY = "EUR"
_PENCE_CURRENCIES = {"GBX": "GBP", "GBp": "GBP"}


class CurrencyConverter(Protocol):
    """Convert a cent amount between currencies as of a given date."""

    def convert(self, amount: int, from_currency: str, to_currency: str, as_of: date) -> Cents:
        ...


class RateLookupConverter(ABC):
    """Shared rate resolution: direct, inverse, then via EUR.

    Subclasses supply ``_lookup_rate`` returning the most recent rate on or
    before the requested date. When no route exists the amount is returned
    unchanged and a warning is logged.
    """

    @abstractmethod
    def _lookup_rate(self, base: str, term: str, as_of: date) -> Optional[float]:
        """Most recent ``base``/``term`` rate on or before ``as_of``."""

    def rate(self, as_of: date, from_currency: str, to_currency: str) -> Optional[float]:
        """Return the conversion rate from ``from_currency`` to ``to_currency``."""

        base, term = from_currency.upper(), to_currency.upper()
        if base == term:
            return 1.0
        direct = self._lookup_rate(base, term, as_of)
        if direct is not None:
            return direct
        inverse = self._lookup_rate(term, base, as_of)
        if inverse:
            return 1.0 / inverse
        if TRIANGULATION_CURRENCY not in (base, term):
            to_eur = self.rate(as_of, base, TRIANGULATION_CURRENCY)
            from_eur = self.rate(as_of, TRIANGULATION_CURRENCY, term)
            if to_eur is not None and from_eur is not None:
                return to_eur * from_eur
        return None

    def convert(self, amount: int, from_currency: str, to_currency: str, as_of: date) -> Cents:
        if not from_currency or not to_currency or from_currency.upper() == to_currency.upper():
            return Cents(amount)
        rate = self.rate(as_of, from_currency, to_currency)
        if rate is None:
            logger.warning(
                "No exchange rate for %s/%s on or before %s, using identity",
                from_currency,
                to_currency,
                as_of.isoformat(),
            )
            return Cents(amount)
        converted = (Decimal(amount) * Decimal(str(rate))).quantize(Decimal(1), rounding=ROUND_HALF_UP)
        return Cents(int(converted))


class RateTableConverter(RateLookupConverter):
    """In-memory rates keyed by ``(date, base, term)``."""

    def __init__(self, rates: Mapping[Tuple[date, str, str], float] | None = None):
        self._series: Dict[Tuple[str, str], List[Tuple[date, float]]] = {}
        for (day, base, term), value in (rates or {}).items():
            self.add_rate(day, base, term, value)

    def add_rate(self, day: date, base: str, term: str, value: float) -> None:
        series = self._series.setdefault((base.upper(), term.upper()), [])
        series.append((day, float(value)))
        series.sort(key=lambda item: item[0])

    def _lookup_rate(self, base: str, term: str, as_of: date) -> Optional[float]:
        series = self._series.get((base, term))
        if not series:
            return None
        index = bisect_right([day for day, _ in series], as_of)
        if index == 0:
            return None
        return series[index - 1][1]


def normalize_quote(value: PriceValue, currency: str | None) -> Tuple[PriceValue, str | None]:
    """Translate pence quotes (GBX/GBp) into pounds."""

    if currency in _PENCE_CURRENCIES:
        return PriceValue(round_div(value, 100)), _PENCE_CURRENCIES[currency]
    return value, currency


__all__ = [
    "CurrencyConverter",
    "RateLookupConverter",
    "RateTableConverter",
    "TRIANGULATION_CURRENCY",
    "normalize_quote",
]
