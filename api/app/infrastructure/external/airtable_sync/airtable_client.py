"""
Cliente mínimo de Airtable REST API (sin SDKs externos).

Requisitos cubiertos:
- requests
- paginación por offset
- rate-limit/backoff (429, 5xx)
- create en lotes de 10, update por id
- metadata de tablas (test de conexión / validación de estructura)
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Iterable, Optional
from urllib.parse import quote

import requests
from loguru import logger

from app.shared.exceptions.sync import ConnectivityError

from .types import AirtableRecord, ensure_utc


# Límite de Airtable por request de create/update
MAX_RECORDS_PER_REQUEST = 10


@dataclass(frozen=True)
class AirtableCredentials:
    token: str
    base_id: str


def _parse_created_time(raw: Any) -> Optional[datetime]:
    if not raw:
        return None
    try:
        # Airtable devuelve string ISO8601, e.g. "2025-12-16T10:15:00.000Z"
        return ensure_utc(datetime.fromisoformat(str(raw).replace("Z", "+00:00")))
    except ValueError:
        return None


def _remote_error_message(resp: requests.Response) -> str:
    """Extrae error.message del payload de Airtable; si no hay JSON usa el texto."""
    try:
        payload = resp.json()
    except ValueError:
        return (resp.text or "").strip()[:500]
    error = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error, dict):
        return str(error.get("message") or error.get("type") or "")
    if error:
        return str(error)
    return ""


def _to_record(rec: dict[str, Any]) -> AirtableRecord:
    rec_id = rec.get("id")
    if not rec_id:
        # Caso raro; preferimos fallar temprano y visible.
        raise ConnectivityError("Airtable devolvió un record sin 'id'")
    return AirtableRecord(
        record_id=rec_id,
        fields=rec.get("fields") or {},
        created_time=_parse_created_time(rec.get("createdTime")),
    )


class AirtableClient:
    """
    Cliente HTTP de Airtable acotado a una tabla.

    Importante:
    - No hace cast de tipos de campos: eso lo decide el value_sanitizer.
    - Todo error no recuperable se traduce a ConnectivityError.
    """

    def __init__(
        self,
        credentials: AirtableCredentials,
        table_name: str,
        *,
        session: Optional[requests.Session] = None,
        base_url: str = "https://api.airtable.com/v0",
        timeout_s: int = 30,
        max_retries: int = 5,
        min_backoff_s: float = 0.8,
        max_backoff_s: float = 20.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._creds = credentials
        self.table_name = table_name
        self._base_url = base_url.rstrip("/")
        self._timeout_s = timeout_s
        self._max_retries = max_retries
        self._min_backoff_s = min_backoff_s
        self._max_backoff_s = max_backoff_s
        self._session = session or requests.Session()
        self._sleep = sleep

    @property
    def base_id(self) -> str:
        return self._creds.base_id

    @property
    def _table_url(self) -> str:
        return f"{self._base_url}/{self._creds.base_id}/{quote(self.table_name, safe='')}"

    # ------------------------------------------------------------------
    # Lectura
    # ------------------------------------------------------------------

    def iter_records(self, *, page_size: int = 100) -> Iterable[AirtableRecord]:
        """
        Itera todos los registros de la tabla, drenando la paginación por 'offset'.
        """
        offset: Optional[str] = None
        page = 0
        while True:
            query: list[tuple[str, Any]] = [("pageSize", page_size)]
            if offset:
                query.append(("offset", offset))

            payload = self._request_json("GET", self._table_url, query=query)
            page += 1
            records = payload.get("records") or []
            logger.debug(f"Airtable página {page}: {len(records)} registros")

            for rec in records:
                yield _to_record(rec)

            offset = payload.get("offset")
            if not offset:
                break

    def fetch_sample(self) -> Optional[AirtableRecord]:
        """Primer registro de la tabla (maxRecords=1) o None si está vacía."""
        payload = self._request_json("GET", self._table_url, query=[("maxRecords", 1)])
        records = payload.get("records") or []
        return _to_record(records[0]) if records else None

    def list_tables(self) -> list[dict[str, Any]]:
        """Tablas de la base (Metadata API): [{id, name, fields: [{name, type}]}]."""
        url = f"{self._base_url}/meta/bases/{self._creds.base_id}/tables"
        payload = self._request_json("GET", url)
        return payload.get("tables") or []

    def get_table_field_names(self) -> Optional[list[str]]:
        """
        Nombres de fields de la tabla según la Metadata API.
        None si la tabla no aparece (p.ej. el token no tiene schema.bases:read).
        """
        for table in self.list_tables():
            if table.get("name") == self.table_name or table.get("id") == self.table_name:
                return [f.get("name") for f in table.get("fields") or [] if f.get("name")]
        return None

    # ------------------------------------------------------------------
    # Escritura
    # ------------------------------------------------------------------

    def create_records(self, records_fields: list[dict[str, Any]], *, typecast: bool = True) -> list[AirtableRecord]:
        """Crea registros en lotes de 10. Retorna los registros creados en el mismo orden."""
        created: list[AirtableRecord] = []
        for i in range(0, len(records_fields), MAX_RECORDS_PER_REQUEST):
            batch = records_fields[i:i + MAX_RECORDS_PER_REQUEST]
            payload = self._request_json(
                "POST",
                self._table_url,
                body={"records": [{"fields": f} for f in batch], "typecast": typecast},
            )
            created.extend(_to_record(rec) for rec in payload.get("records") or [])
        return created

    def create_record(self, fields: dict[str, Any], *, typecast: bool = True) -> AirtableRecord:
        created = self.create_records([fields], typecast=typecast)
        if not created:
            raise ConnectivityError("Airtable no devolvió el registro creado")
        return created[0]

    def update_record(self, record_id: str, fields: dict[str, Any], *, typecast: bool = True) -> AirtableRecord:
        payload = self._request_json(
            "PATCH",
            f"{self._table_url}/{record_id}",
            body={"fields": fields, "typecast": typecast},
        )
        return _to_record(payload)

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    def _request_json(
        self,
        method: str,
        url: str,
        *,
        query: Optional[list[tuple[str, Any]]] = None,
        body: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        """
        Request HTTP con backoff para 429/5xx.

        Estrategia:
        - 429: respeta Retry-After si existe, si no exponencial con jitter simple.
        - 5xx: exponencial con jitter.
        - 4xx (no 429): error inmediato (config/auth mal).
        """
        headers = {
            "Authorization": f"Bearer {self._creds.token}",
            "Content-Type": "application/json",
        }

        for attempt in range(self._max_retries + 1):
            try:
                resp = self._session.request(
                    method=method,
                    url=url,
                    params=query,
                    json=body,
                    headers=headers,
                    timeout=self._timeout_s,
                )
            except requests.RequestException as e:
                raise ConnectivityError(f"No se pudo conectar con Airtable: {e}") from e

            if 200 <= resp.status_code < 300:
                return resp.json()

            # Errores recuperables
            if resp.status_code == 429 or 500 <= resp.status_code < 600:
                if attempt >= self._max_retries:
                    raise ConnectivityError(
                        f"Airtable error {resp.status_code} tras {attempt} reintentos",
                        http_status=resp.status_code,
                        remote_message=_remote_error_message(resp),
                    )

                retry_after = resp.headers.get("Retry-After")
                if retry_after:
                    try:
                        sleep_s = float(retry_after)
                    except ValueError:
                        sleep_s = self._min_backoff_s
                else:
                    # Exponencial simple + jitter proporcional
                    base = min(self._max_backoff_s, self._min_backoff_s * (2**attempt))
                    sleep_s = base + (0.15 * base)

                logger.warning(f"Airtable {resp.status_code}; reintento {attempt + 1} en {sleep_s:.1f}s")
                self._sleep(sleep_s)
                continue

            # Errores no recuperables
            remote_message = _remote_error_message(resp)
            raise ConnectivityError(
                f"Airtable request falló {resp.status_code}: {remote_message}",
                http_status=resp.status_code,
                remote_message=remote_message,
            )

        raise ConnectivityError("Airtable: reintentos agotados")
