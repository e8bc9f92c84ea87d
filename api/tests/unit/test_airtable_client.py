from __future__ import annotations

import pytest
import requests

from app.infrastructure.external.airtable_sync.airtable_client import (
    MAX_RECORDS_PER_REQUEST,
    AirtableClient,
    AirtableCredentials,
)
from app.shared.exceptions.sync import ConnectivityError
from conftest import FakeAirtableSession, FakeResponse


def _client(session, table_name: str = "Listings", **kwargs) -> AirtableClient:
    kwargs.setdefault("sleep", lambda _s: None)
    return AirtableClient(AirtableCredentials(token="patTEST", base_id="appTEST"), table_name, session=session, **kwargs)


def test_iter_records_drains_all_pages(fake_airtable, airtable_client) -> None:
    for i in range(5):
        fake_airtable.add_record({"Property Name": f"Casa {i}"})

    records = list(airtable_client.iter_records(page_size=2))

    assert [r.fields["Property Name"] for r in records] == [f"Casa {i}" for i in range(5)]
    assert len([c for c in fake_airtable.calls if c[0] == "GET"]) == 3
    assert records[0].created_time.year == 2026


def test_requests_carry_bearer_token(fake_airtable, airtable_client) -> None:
    list(airtable_client.iter_records())

    assert fake_airtable.last_headers["Authorization"] == "Bearer patTEST"


def test_table_name_is_url_encoded() -> None:
    session = FakeAirtableSession(["Property Name"], table_name="Real Estate Listings")
    session.add_record({"Property Name": "Casa"})

    sample = _client(session, "Real Estate Listings").fetch_sample()

    assert sample.fields == {"Property Name": "Casa"}
    assert "Real%20Estate%20Listings" in session.calls[0][1]


def test_fetch_sample_of_empty_table(airtable_client) -> None:
    assert airtable_client.fetch_sample() is None


def test_client_error_exposes_remote_message(fake_airtable, airtable_client) -> None:
    fake_airtable.queued.append(
        FakeResponse(401, {"error": {"type": "AUTHENTICATION_REQUIRED", "message": "Authentication required"}})
    )

    with pytest.raises(ConnectivityError) as exc:
        airtable_client.fetch_sample()

    assert exc.value.http_status == 401
    assert exc.value.remote_message == "Authentication required"
    assert exc.value.status_code == 502


def test_rate_limit_is_retried_honoring_retry_after(fake_airtable) -> None:
    sleeps: list[float] = []
    fake_airtable.add_record({"Property Name": "Casa"})
    fake_airtable.queued.append(FakeResponse(429, {"errors": [{"error": "RATE_LIMIT_REACHED"}]}, headers={"Retry-After": "2"}))

    records = list(_client(fake_airtable, sleep=sleeps.append).iter_records())

    assert len(records) == 1
    assert sleeps == [2.0]


def test_server_errors_exhaust_retries(fake_airtable) -> None:
    sleeps: list[float] = []
    fake_airtable.queued.extend(FakeResponse(503, content=b"Service Unavailable") for _ in range(3))

    with pytest.raises(ConnectivityError) as exc:
        _client(fake_airtable, max_retries=2, sleep=sleeps.append).fetch_sample()

    assert exc.value.http_status == 503
    assert exc.value.remote_message == "Service Unavailable"
    assert len(sleeps) == 2
    assert sleeps[1] > sleeps[0]


def test_network_error_becomes_connectivity_error() -> None:
    class BrokenSession:
        def request(self, **kwargs):
            raise requests.ConnectionError("connection refused")

    with pytest.raises(ConnectivityError) as exc:
        _client(BrokenSession()).fetch_sample()

    assert exc.value.http_status is None
    assert "connection refused" in exc.value.message


def test_create_records_batches_by_ten(fake_airtable, airtable_client) -> None:
    created = airtable_client.create_records([{"Property Name": f"Casa {i}"} for i in range(23)])

    posts = [c for c in fake_airtable.calls if c[0] == "POST"]
    assert [len(body["records"]) for _, _, body in posts] == [MAX_RECORDS_PER_REQUEST, MAX_RECORDS_PER_REQUEST, 3]
    assert all(body["typecast"] is True for _, _, body in posts)
    assert len(created) == 23
    assert len({r.record_id for r in created}) == 23


def test_update_record_patches_by_id(fake_airtable, airtable_client) -> None:
    record_id = fake_airtable.add_record({"Property Name": "Casa", "Bedrooms": 2})

    updated = airtable_client.update_record(record_id, {"Bedrooms": 3})

    method, url, body = fake_airtable.calls[-1]
    assert method == "PATCH"
    assert url.endswith(f"/Listings/{record_id}")
    assert body == {"fields": {"Bedrooms": 3}, "typecast": True}
    assert updated.fields == {"Property Name": "Casa", "Bedrooms": 3}


def test_update_unknown_record_raises_404(airtable_client) -> None:
    with pytest.raises(ConnectivityError) as exc:
        airtable_client.update_record("recMISSING", {"Bedrooms": 3})
    assert exc.value.http_status == 404


def test_table_metadata(fake_airtable, airtable_client) -> None:
    tables = airtable_client.list_tables()

    assert [t["name"] for t in tables] == ["Listings", "Agents"]
    assert airtable_client.get_table_field_names() == fake_airtable.field_names


def test_table_metadata_for_unknown_table(fake_airtable) -> None:
    assert _client(fake_airtable, "Houses").get_table_field_names() is None
