"""
Tests unitarios para los endpoints de sincronización de listings.

Verifica el contrato HTTP:
- pull/push devuelven el SyncResult serializado.
- Errores del motor se traducen a JSON con error_code (409 / 502).
- Errores inesperados terminan en 500.
"""
from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

from app.api.v1.dependencies.use_case_deps import get_listing_sync_use_cases
from app.application.dto.sync_dto import (
    ConnectionTestDTO,
    MediaCleanupDTO,
    SyncIssueDTO,
    SyncResultDTO,
    SyncRunDTO,
)
from app.shared.exceptions.sync import ConnectivityError, SchemaResolutionError


def _result(direction: str = "pull") -> SyncResultDTO:
    return SyncResultDTO(
        direction=direction,
        success=True,
        message="Procesados 2 registros: 1 creados, 1 actualizados, 0 omitidos, 0 con error",
        created=1,
        updated=1,
        total_records=2,
        errors={"rec1": [SyncIssueDTO(kind="field_validation", message="'abc' no es numérico", record_id="rec1", field="bedrooms")]},
    )


@pytest.fixture
def mock_use_cases() -> MagicMock:
    uc = MagicMock()
    uc.run_pull.return_value = _result("pull")
    uc.run_push.return_value = _result("push")
    return uc


@pytest.fixture
def app_with_mock(mock_use_cases: MagicMock):
    """Crea la app FastAPI con el use case mockeado via dependency_overrides."""
    from main import create_application
    app = create_application()
    app.dependency_overrides[get_listing_sync_use_cases] = lambda: mock_use_cases
    yield app
    app.dependency_overrides.clear()


async def _request(app, method: str, url: str, **kwargs):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        return await client.request(method, url, **kwargs)


@pytest.mark.asyncio
async def test_pull_returns_result(app_with_mock, mock_use_cases: MagicMock) -> None:
    response = await _request(app_with_mock, "POST", "/api/v1/sync/pull")

    assert response.status_code == 200
    data = response.json()
    assert data["direction"] == "pull"
    assert data["created"] == 1
    assert data["errors"]["rec1"][0]["field"] == "bedrooms"
    mock_use_cases.run_pull.assert_called_once_with()


@pytest.mark.asyncio
async def test_push_returns_result(app_with_mock, mock_use_cases: MagicMock) -> None:
    response = await _request(app_with_mock, "POST", "/api/v1/sync/push")

    assert response.status_code == 200
    assert response.json()["direction"] == "push"


@pytest.mark.asyncio
async def test_pull_schema_resolution_error_is_409(app_with_mock, mock_use_cases: MagicMock) -> None:
    mock_use_cases.run_pull.side_effect = SchemaResolutionError(["title"], {"resolved": {}, "unresolved": ["title"]})

    response = await _request(app_with_mock, "POST", "/api/v1/sync/pull")

    assert response.status_code == 409
    data = response.json()
    assert data["error"] == "SCHEMA_RESOLUTION_ERROR"
    assert data["details"]["unresolved"] == ["title"]


@pytest.mark.asyncio
async def test_push_connectivity_error_is_502(app_with_mock, mock_use_cases: MagicMock) -> None:
    mock_use_cases.run_push.side_effect = ConnectivityError(
        "Airtable request falló 401: Authentication required",
        http_status=401,
        remote_message="Authentication required",
    )

    response = await _request(app_with_mock, "POST", "/api/v1/sync/push")

    assert response.status_code == 502
    data = response.json()
    assert data["error"] == "CONNECTIVITY_ERROR"
    assert data["details"] == {"http_status": 401, "remote_message": "Authentication required"}


@pytest.mark.asyncio
async def test_unexpected_error_is_500(app_with_mock, mock_use_cases: MagicMock) -> None:
    mock_use_cases.run_pull.side_effect = RuntimeError("boom")

    response = await _request(app_with_mock, "POST", "/api/v1/sync/pull")

    assert response.status_code == 500
    assert "boom" in response.json()["detail"]


@pytest.mark.asyncio
async def test_connection_endpoint(app_with_mock, mock_use_cases: MagicMock) -> None:
    mock_use_cases.test_connection.return_value = ConnectionTestDTO(
        success=True, message="Conexión exitosa. 1 tablas encontradas.", base_id="appTEST",
        table_name="Listings", tables_found=1, table_exists=True, available_tables=["Listings"],
    )

    response = await _request(app_with_mock, "GET", "/api/v1/sync/test-connection")

    assert response.status_code == 200
    assert response.json()["table_exists"] is True


@pytest.mark.asyncio
async def test_template_endpoint(app_with_mock, mock_use_cases: MagicMock) -> None:
    mock_use_cases.get_table_template.return_value = {"table_name": "Listings", "fields": []}

    response = await _request(app_with_mock, "GET", "/api/v1/sync/template")

    assert response.status_code == 200
    assert response.json()["table_name"] == "Listings"


@pytest.mark.asyncio
async def test_history_passes_limit(app_with_mock, mock_use_cases: MagicMock) -> None:
    mock_use_cases.list_history.return_value = [
        SyncRunDTO(id=1, direction="pull", status="success", created=2, updated=0, skipped=0, errored=0,
                   message="ok", duration_s=0.4, started_at=datetime(2026, 1, 15, tzinfo=timezone.utc)),
    ]

    response = await _request(app_with_mock, "GET", "/api/v1/sync/history", params={"limit": 5})

    assert response.status_code == 200
    assert response.json()[0]["status"] == "success"
    mock_use_cases.list_history.assert_called_once_with(5)


@pytest.mark.asyncio
async def test_history_rejects_invalid_limit(app_with_mock) -> None:
    response = await _request(app_with_mock, "GET", "/api/v1/sync/history", params={"limit": 0})

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_media_cleanup_endpoint(app_with_mock, mock_use_cases: MagicMock) -> None:
    mock_use_cases.cleanup_media.return_value = MediaCleanupDTO(removed=2, message="2 adjunto(s) huérfano(s) eliminado(s)")

    response = await _request(app_with_mock, "POST", "/api/v1/sync/media/cleanup")

    assert response.status_code == 200
    assert response.json()["removed"] == 2


@pytest.mark.asyncio
async def test_health_reports_airtable_table(app_with_mock) -> None:
    from app.core.config import settings

    response = await _request(app_with_mock, "GET", "/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["airtable_table"] == settings.AIRTABLE_TABLE_NAME
    assert isinstance(body["airtable_configured"], bool)
