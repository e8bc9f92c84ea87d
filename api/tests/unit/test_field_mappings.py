from __future__ import annotations

import json

import pytest

from app.infrastructure.external.airtable_sync.field_mappings import (
    DEFAULT_FIELD_SYNONYMS,
    LISTING_FIELD_MAPPINGS,
    build_field_mapping_table,
    build_table_template,
    get_listing_field_mappings,
    load_field_synonyms,
)
from app.infrastructure.external.airtable_sync.types import FieldMapping
from app.shared.constants.sync_constants import FieldType, SyncDirection


def test_default_table_has_unique_keys() -> None:
    keys = [m.key for m in get_listing_field_mappings()]
    assert len(keys) == len(set(keys))
    assert len(keys) == len(LISTING_FIELD_MAPPINGS)


def test_only_title_is_required() -> None:
    required = [m.key for m in get_listing_field_mappings() if m.required]
    assert required == ["title"]


def test_calculated_fields_are_push_only() -> None:
    by_key = {m.key: m for m in get_listing_field_mappings()}
    for key in ("price_per_sqft", "days_on_market"):
        assert by_key[key].direction == SyncDirection.PUSH_ONLY
        assert by_key[key].pushes and not by_key[key].pulls


def test_duplicate_mappings_keep_first_definition() -> None:
    first = FieldMapping("price", "List Price", FieldType.DECIMAL)
    second = FieldMapping("price", "Sale Price", FieldType.DECIMAL)
    other = FieldMapping("city", "City", FieldType.STRING)

    table = build_field_mapping_table([first, other, second])

    assert table == [first, other]


def test_synonyms_default_copy_is_independent() -> None:
    synonyms = load_field_synonyms()
    synonyms["List Price"].append("Asking")
    assert "Asking" not in DEFAULT_FIELD_SYNONYMS["List Price"]


def test_status_synonyms_do_not_shadow_state_field() -> None:
    assert "State" not in DEFAULT_FIELD_SYNONYMS["Listing Status"]


def test_synonyms_file_replaces_and_extends(tmp_path) -> None:
    path = tmp_path / "synonyms.json"
    path.write_text(json.dumps({"List Price": ["Asking Price"], "MLS Number": ["MLS #"]}), encoding="utf-8")

    synonyms = load_field_synonyms(str(path))

    assert synonyms["List Price"] == ["Asking Price"]
    assert synonyms["MLS Number"] == ["MLS #"]
    assert synonyms["Bedrooms"] == DEFAULT_FIELD_SYNONYMS["Bedrooms"]


def test_synonyms_file_must_be_object(tmp_path) -> None:
    path = tmp_path / "synonyms.json"
    path.write_text("[]", encoding="utf-8")
    with pytest.raises(ValueError):
        load_field_synonyms(str(path))


def test_table_template_describes_every_field() -> None:
    mappings = get_listing_field_mappings()
    template = build_table_template(iter(mappings), "Real Estate Listings")

    assert template["table_name"] == "Real Estate Listings"
    assert len(template["fields"]) == len(mappings)
    assert "Required fields: Property Name" in template["compatibility_notes"]

    by_name = {f["name"]: f for f in template["fields"]}
    assert by_name["Property Name"]["required"] is True
    assert by_name["Listing Status"]["type"] == "singleSelect"
    assert by_name["Listing Status"]["options"]["choices"] == ["active", "pending", "sold", "withdrawn", "expired"]
    assert by_name["List Price"]["options"]["symbol"] == "$"
    assert by_name["Bedrooms"]["options"]["precision"] == 0
    assert by_name["Days on Market"]["direction"] == "push_only"
    assert by_name["Main Photo"]["type"] == "multipleAttachments"
