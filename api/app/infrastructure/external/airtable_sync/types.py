"""
Tipos y utilidades puras para el sync de listings <-> Airtable.

Se mantienen libres de I/O para poder testearlos fácilmente.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from app.shared.constants.sync_constants import FieldType, SyncDirection


def utc_now() -> datetime:
    """Retorna la hora actual en UTC, como datetime aware."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """
    Normaliza datetime a UTC (aware).

    Airtable suele devolver ISO8601 con zona; aun así, normalizamos para
    comparar/almacenar de forma consistente.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


@dataclass(frozen=True)
class AirtableRecord:
    """Registro Airtable tal como llega del API (fields sin tipar)."""

    record_id: str
    fields: dict[str, Any]
    created_time: Optional[datetime] = None

    @property
    def field_names(self) -> list[str]:
        return list(self.fields.keys())


@dataclass(frozen=True)
class AttachmentDescriptor:
    """
    Metadatos de un adjunto Airtable antes de importarlo.

    Airtable entrega: [{id, url, filename, size, type, thumbnails}]
    """

    remote_id: str
    url: str
    filename: str = ""
    mime_type: str = ""
    size: int = 0

    @classmethod
    def from_api(cls, raw: Any) -> Optional["AttachmentDescriptor"]:
        """Construye el descriptor desde el dict del API; None si no hay URL."""
        if not isinstance(raw, dict) or not raw.get("url"):
            return None
        return cls(
            remote_id=str(raw.get("id") or ""),
            url=str(raw["url"]),
            filename=str(raw.get("filename") or ""),
            mime_type=str(raw.get("type") or ""),
            size=int(raw.get("size") or 0),
        )


@dataclass(frozen=True)
class FieldConstraints:
    """Restricciones aplicadas despues de coercionar el valor."""

    min: Optional[float] = None
    max: Optional[float] = None
    max_length: Optional[int] = None
    pattern: Optional[str] = None
    allowed_values: tuple[str, ...] = ()


@dataclass(frozen=True)
class FieldMapping:
    """
    Define el mapeo de una clave canonica a un field de Airtable.

    - key: clave canonica (estable, independiente del nombre remoto)
    - airtable_field: nombre esperado del field en Airtable
    - field_type: variante cerrada que decide la coercion
    - required: si True, el pre-flight aborta el pull cuando no se resuelve
    - direction: PUSH_ONLY para campos calculados en la base local
    - remote_type: tipo de columna Airtable (solo para el template de tabla)
    """

    key: str
    airtable_field: str
    field_type: FieldType
    required: bool = False
    constraints: FieldConstraints = field(default_factory=FieldConstraints)
    direction: SyncDirection = SyncDirection.BIDIRECTIONAL
    description: str = ""
    remote_type: str = ""

    @property
    def pulls(self) -> bool:
        return self.direction != SyncDirection.PUSH_ONLY

    @property
    def pushes(self) -> bool:
        return self.direction != SyncDirection.PULL_ONLY

    @property
    def is_attachment(self) -> bool:
        return self.field_type in (FieldType.ATTACHMENT, FieldType.ATTACHMENT_LIST)
