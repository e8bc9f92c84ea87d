from __future__ import annotations

import pytest

from app.infrastructure.external.airtable_sync.field_mappings import DEFAULT_FIELD_SYNONYMS
from app.infrastructure.external.airtable_sync.field_resolver import (
    get_field_variations,
    resolve_field_name,
    resolve_field_names,
    resolve_mapping,
)
from app.infrastructure.external.airtable_sync.types import FieldMapping
from app.shared.constants.sync_constants import FieldType


def test_exact_match_wins_over_synonym() -> None:
    assert resolve_field_name("List Price", ["Price", "List Price"], DEFAULT_FIELD_SYNONYMS) == "List Price"


def test_case_insensitive_match() -> None:
    assert resolve_field_name("Bedrooms", ["bedrooms", "City"]) == "bedrooms"


def test_listing_price_resolves_to_list_price_via_synonym() -> None:
    assert resolve_field_name("List Price", ["Listing Price", "City"], DEFAULT_FIELD_SYNONYMS) == "Listing Price"


def test_separator_variants() -> None:
    assert resolve_field_name("Square Footage", ["square_footage"]) == "square_footage"
    assert resolve_field_name("ZIP Code", ["zip-code"]) == "zip-code"


def test_synonym_with_normalized_separators() -> None:
    assert resolve_field_name("Bathrooms", ["Bath-Count"], DEFAULT_FIELD_SYNONYMS) == "Bath-Count"


def test_substring_containment_either_direction() -> None:
    assert resolve_field_name("ZIP Code", ["Property ZIP Code"]) == "Property ZIP Code"
    assert resolve_field_name("Virtual Tour URL", ["Virtual Tour"]) == "Virtual Tour"


@pytest.mark.parametrize("available", [[], ["Owner"], ["", "Town"]])
def test_returns_none_when_nothing_matches(available: list[str]) -> None:
    assert resolve_field_name("Year Built", available, DEFAULT_FIELD_SYNONYMS) is None


def test_variations_include_synonyms_and_case_forms() -> None:
    variations = get_field_variations("List Price", DEFAULT_FIELD_SYNONYMS)
    assert variations[0] == "Price"
    assert "list price" in variations
    assert "LIST PRICE" in variations
    assert "List_Price" in variations
    assert len(variations) == len(set(variations))


def test_resolve_mapping_reports_missing_required(mappings) -> None:
    report = resolve_mapping(mappings, ["Listing Price", "Beds"], DEFAULT_FIELD_SYNONYMS)

    assert report.resolved["price"] == "Listing Price"
    assert report.resolved["bedrooms"] == "Beds"
    assert "title" in report.unresolved
    assert report.missing_required == ["title"]
    assert report.ok is False


def test_resolve_mapping_skips_push_only_fields(mappings) -> None:
    report = resolve_mapping(mappings, ["Property Name", "Price Per SqFt"], DEFAULT_FIELD_SYNONYMS)

    assert report.ok is True
    assert "price_per_sqft" not in report.resolved
    assert "price_per_sqft" not in report.unresolved


def test_remote_name_is_assigned_to_a_single_key(mappings) -> None:
    names = resolve_field_names(mappings, ["Description"], DEFAULT_FIELD_SYNONYMS)

    assert names == {"description": "Description"}


def test_close_match_claims_name_before_substring() -> None:
    zip_only = FieldMapping("zip", "ZIP", FieldType.STRING)
    zip_code = FieldMapping("zip_code", "ZIP Code", FieldType.STRING)

    assert resolve_field_names([zip_only, zip_code], ["ZIP Code"]) == {"zip_code": "ZIP Code"}
    assert resolve_field_names([zip_only, zip_code], ["ZIP Code", "ZIP"]) == {"zip": "ZIP", "zip_code": "ZIP Code"}


def test_resolve_mapping_does_not_share_columns(mappings) -> None:
    report = resolve_mapping(mappings, ["Property Name", "Description"], DEFAULT_FIELD_SYNONYMS)

    assert report.resolved["description"] == "Description"
    assert "short_description" in report.unresolved
