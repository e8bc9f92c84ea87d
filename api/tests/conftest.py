"""
Configuración de fixtures para pytest.

- db_session: SQLite en memoria (sincrona) con todas las tablas.
- fake_airtable: doble de requests.Session que simula el REST API de
  Airtable (list con offset, create, PATCH, metadata y descargas).
"""
from __future__ import annotations

import json
from io import BytesIO
from typing import Any, Generator, Optional
from urllib.parse import unquote, urlsplit

import pytest
from PIL import Image
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.infrastructure.database.session import Base
from app.infrastructure.database import models  # noqa: F401
from app.infrastructure.external.airtable_sync.airtable_client import AirtableClient, AirtableCredentials
from app.infrastructure.external.airtable_sync.field_mappings import (
    get_listing_field_mappings,
    load_field_synonyms,
)
from app.infrastructure.external.airtable_sync.media_importer import MediaImporter
from app.infrastructure.external.airtable_sync.sync_service import ListingSyncService, attachment_field_types
from app.infrastructure.repositories.listing_repository import ListingRepository


# URL de base de datos de prueba
TEST_DATABASE_URL = "sqlite://"

TABLE_NAME = "Listings"
BASE_ID = "appTEST"


def png_bytes(size: tuple[int, int] = (400, 300)) -> bytes:
    buf = BytesIO()
    Image.new("RGB", size, color=(200, 30, 30)).save(buf, format="PNG")
    return buf.getvalue()


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, content: bytes = b"", headers: Optional[dict] = None):
        self.status_code = status_code
        self._payload = payload
        self.content = content if content else (json.dumps(payload).encode() if payload is not None else b"")
        self.headers = headers or {}

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("no JSON")
        return self._payload


class FakeAirtableSession:
    """
    Simula una tabla Airtable en memoria.

    - records: {record_id: fields}
    - field_names: columnas declaradas en la tabla (Metadata API)
    - files: URL -> (bytes, content_type) para descargas de adjuntos
    - queued: respuestas forzadas (se consumen antes de simular)
    """

    def __init__(self, field_names: list[str], table_name: str = TABLE_NAME):
        self.table_name = table_name
        self.field_names = list(field_names)
        self.records: dict[str, dict[str, Any]] = {}
        self.files: dict[str, tuple[bytes, str]] = {}
        self.queued: list[FakeResponse] = []
        self.calls: list[tuple[str, str, Any]] = []
        self.downloads: list[str] = []
        self.meta_status = 200
        self.last_headers: dict[str, str] = {}
        self._next_id = 1

    def add_record(self, fields: dict[str, Any], record_id: Optional[str] = None) -> str:
        record_id = record_id or self._new_id()
        self.records[record_id] = dict(fields)
        return record_id

    def _new_id(self) -> str:
        record_id = f"rec{self._next_id:05d}"
        self._next_id += 1
        return record_id

    def _record(self, record_id: str) -> dict[str, Any]:
        # Airtable omite los fields vacíos
        fields = {k: v for k, v in self.records[record_id].items() if not (v is None or v == "" or v == [] or v is False)}
        return {"id": record_id, "createdTime": "2026-01-15T10:00:00.000Z", "fields": fields}

    # --- requests.Session API -------------------------------------------

    def request(self, method, url, params=None, json=None, headers=None, timeout=None):
        self.calls.append((method, url, json))
        self.last_headers = dict(headers or {})
        if self.queued:
            return self.queued.pop(0)

        segments = [unquote(s) for s in urlsplit(url).path.split("/") if s][1:]  # sin "v0"
        query = dict(params or [])

        if segments[:2] == ["meta", "bases"]:
            if self.meta_status != 200:
                return FakeResponse(self.meta_status, {"error": {"type": "FORBIDDEN", "message": "Not authorized"}})
            return FakeResponse(200, {"tables": [
                {"id": "tblLISTINGS", "name": self.table_name,
                 "fields": [{"name": n, "type": "singleLineText"} for n in self.field_names]},
                {"id": "tblAGENTS", "name": "Agents", "fields": []},
            ]})

        if segments[1] != self.table_name:
            return FakeResponse(404, {"error": {"type": "TABLE_NOT_FOUND", "message": f"Could not find table {segments[1]}"}})

        if method == "GET":
            ids = sorted(self.records)
            if "maxRecords" in query:
                ids = ids[: int(query["maxRecords"])]
                return FakeResponse(200, {"records": [self._record(i) for i in ids]})
            size = int(query.get("pageSize", 100))
            start = int(query.get("offset", 0))
            page = ids[start:start + size]
            payload: dict[str, Any] = {"records": [self._record(i) for i in page]}
            if start + size < len(ids):
                payload["offset"] = str(start + size)
            return FakeResponse(200, payload)

        if method == "POST":
            created = []
            for item in json["records"]:
                unknown = [k for k in item["fields"] if k not in self.field_names]
                if unknown:
                    return FakeResponse(422, {"error": {"type": "UNKNOWN_FIELD_NAME", "message": f'Unknown field name: "{unknown[0]}"'}})
                created.append(self.add_record(item["fields"]))
            return FakeResponse(200, {"records": [self._record(i) for i in created]})

        if method == "PATCH":
            record_id = segments[2]
            if record_id not in self.records:
                return FakeResponse(404, {"error": {"type": "MODEL_ID_NOT_FOUND", "message": "Record not found"}})
            self.records[record_id].update(json["fields"])
            return FakeResponse(200, self._record(record_id))

        return FakeResponse(405, {"error": "METHOD_NOT_ALLOWED"})

    def get(self, url, timeout=None, **kwargs):
        self.downloads.append(url)
        if url not in self.files:
            return FakeResponse(404, content=b"not found")
        content, content_type = self.files[url]
        return FakeResponse(200, content=content, headers={"Content-Type": content_type})


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """
    Fixture que proporciona una sesión de base de datos para tests.
    Crea una base de datos en memoria para cada test.
    """
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session_factory = sessionmaker(bind=engine, class_=Session, expire_on_commit=False)

    session = session_factory()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def mappings():
    return get_listing_field_mappings()


@pytest.fixture
def store(db_session: Session, mappings) -> ListingRepository:
    return ListingRepository(db_session, attachment_field_types(mappings))


@pytest.fixture
def fake_airtable(mappings) -> FakeAirtableSession:
    return FakeAirtableSession([m.airtable_field for m in mappings])


@pytest.fixture
def airtable_client(fake_airtable: FakeAirtableSession) -> AirtableClient:
    return AirtableClient(
        AirtableCredentials(token="patTEST", base_id=BASE_ID),
        TABLE_NAME,
        session=fake_airtable,
        sleep=lambda _s: None,
    )


@pytest.fixture
def media_importer(store: ListingRepository, fake_airtable: FakeAirtableSession, tmp_path) -> MediaImporter:
    return MediaImporter(
        store,
        str(tmp_path / "media"),
        session=fake_airtable,
        max_workers=2,
        thumbnail_sizes=(50, 150),
    )


@pytest.fixture
def sync_service(store, airtable_client, mappings, media_importer) -> ListingSyncService:
    return ListingSyncService(
        store=store,
        airtable=airtable_client,
        mappings=mappings,
        synonyms=load_field_synonyms(),
        media_importer=media_importer,
        page_size=2,
    )


@pytest.fixture
def png_image() -> bytes:
    return png_bytes()
