from __future__ import annotations

from datetime import date

import pytest

from app.domain.entities.listing import Listing
from app.infrastructure.external.airtable_sync.listing_calculator import ListingCalculator


@pytest.fixture
def calculator() -> ListingCalculator:
    return ListingCalculator(today=date(2026, 10, 19))


def test_price_per_sqft(calculator) -> None:
    listing = Listing(title="Casa", fields={"price": 300000, "square_footage": 1400})
    assert calculator.calculate(listing)["price_per_sqft"] == 214.29


def test_price_per_sqft_requires_both_values(calculator) -> None:
    assert "price_per_sqft" not in calculator.calculate(Listing(fields={"price": 300000, "square_footage": 0}))
    assert "price_per_sqft" not in calculator.calculate(Listing(fields={"square_footage": 1400}))


def test_days_on_market(calculator) -> None:
    assert calculator.calculate(Listing(fields={"listing_date": "2026-10-01"}))["days_on_market"] == 18


def test_future_or_invalid_listing_date_is_ignored(calculator) -> None:
    assert "days_on_market" not in calculator.calculate(Listing(fields={"listing_date": "2026-12-01"}))
    assert "days_on_market" not in calculator.calculate(Listing(fields={"listing_date": "soon"}))


def test_lot_size_from_acres_only_when_missing(calculator) -> None:
    assert calculator.calculate(Listing(fields={"lot_size_acres": 0.5}))["lot_size_sqft"] == 21780.0
    assert "lot_size_sqft" not in calculator.calculate(Listing(fields={"lot_size_acres": 0.5, "lot_size_sqft": 20000}))


def test_apply_merges_into_fields(calculator) -> None:
    listing = Listing(fields={"price": 200000, "square_footage": 1000, "city": "Lima"})

    calculator.apply(listing)

    assert listing.fields == {"price": 200000, "square_footage": 1000, "city": "Lima", "price_per_sqft": 200.0}
