"""
Campos calculados del listing.

La base local es la fuente de verdad de estos valores: se recalculan antes
de cada push y viajan a Airtable como fields PUSH_ONLY.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Optional

from dateutil import parser as date_parser

from app.domain.entities.listing import Listing


SQFT_PER_ACRE = 43_560


def _as_float(value: Any) -> Optional[float]:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class ListingCalculator:
    def __init__(self, today: Optional[date] = None):
        # Inyectable para tests
        self._today = today

    @property
    def today(self) -> date:
        return self._today or date.today()

    def calculate(self, listing: Listing) -> dict[str, Any]:
        """Retorna solo los campos calculables con los datos actuales."""
        values: dict[str, Any] = {}
        fields = listing.fields

        price = _as_float(fields.get("price"))
        sqft = _as_float(fields.get("square_footage"))
        if price and sqft:
            values["price_per_sqft"] = round(price / sqft, 2)

        listing_date = fields.get("listing_date")
        if listing_date:
            try:
                listed = date_parser.parse(str(listing_date)).date()
            except (ValueError, OverflowError):
                listed = None
            if listed and listed <= self.today:
                values["days_on_market"] = (self.today - listed).days

        acres = _as_float(fields.get("lot_size_acres"))
        if acres and not _as_float(fields.get("lot_size_sqft")):
            values["lot_size_sqft"] = round(acres * SQFT_PER_ACRE, 2)

        return values

    def apply(self, listing: Listing) -> Listing:
        """Actualiza listing.fields en memoria con los valores calculados."""
        listing.fields = {**listing.fields, **self.calculate(listing)}
        return listing
