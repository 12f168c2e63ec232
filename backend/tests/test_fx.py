from __future__ import annotations

import logging
from datetime import date

import pytest

from fifo_ledger.fx import RateLookupConverter, RateTableConverter, normalize_quote
from fifo_ledger.units import price


def build_converter() -> RateTableConverter:
    return RateTableConverter(
        {
            (date(2024, 1, 2), "USD", "EUR"): 0.90,
            (date(2024, 6, 3), "USD", "EUR"): 0.80,
            (date(2024, 1, 2), "EUR", "GBP"): 0.85,
        }
    )


def test_identity_rate():
    assert build_converter().rate(date(2024, 1, 2), "eur", "EUR") == 1.0


def test_direct_rate_is_forward_filled():
    converter = build_converter()
    assert converter.rate(date(2024, 3, 15), "USD", "EUR") == pytest.approx(0.90)
    assert converter.rate(date(2024, 6, 3), "USD", "EUR") == pytest.approx(0.80)
    assert converter.rate(date(2025, 1, 1), "USD", "EUR") == pytest.approx(0.80)


def test_inverse_rate():
    assert build_converter().rate(date(2024, 2, 1), "EUR", "USD") == pytest.approx(1 / 0.90)


def test_triangulates_through_euro():
    converter = build_converter()
    assert converter.rate(date(2024, 2, 1), "USD", "GBP") == pytest.approx(0.90 * 0.85)
    assert converter.rate(date(2024, 2, 1), "GBP", "USD") == pytest.approx(1 / (0.90 * 0.85))


def test_rate_before_first_observation_is_missing():
    assert build_converter().rate(date(2023, 12, 29), "USD", "EUR") is None


def test_convert_rounds_to_cents():
    converter = RateTableConverter({(date(2024, 1, 2), "USD", "EUR"): 0.9255})
    assert converter.convert(10_001, "USD", "EUR", date(2024, 1, 2)) == 9_256


def test_convert_without_rate_falls_back_to_identity(caplog):
    with caplog.at_level(logging.WARNING, logger="fifo_ledger.fx"):
        converted = build_converter().convert(12_345, "CHF", "JPY", date(2024, 2, 1))
    assert converted == 12_345
    assert "No exchange rate for CHF/JPY" in caplog.text


def test_pence_quotes_are_converted_to_pounds():
    assert normalize_quote(price("1234"), "GBX") == (price("12.34"), "GBP")
    assert normalize_quote(price("1234"), "GBp") == (price("12.34"), "GBP")
    assert normalize_quote(price("12.34"), "USD") == (price("12.34"), "USD")


def test_rate_lookup_converter_requires_a_lookup():
    class NoLookup(RateLookupConverter):
        pass

    with pytest.raises(TypeError):
        NoLookup()
