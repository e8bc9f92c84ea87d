"""
Entidades de dominio: Listing y MediaAttachment.

Representan el lado local del sync. El vinculo con Airtable
(remote_record_id / remote_attachment_id) es el unico estado durable que
produce una pasada de sincronizacion.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from app.shared.constants.sync_constants import ListingStatus


@dataclass
class Listing:
    """
    Listing inmobiliario en la base local.

    - title/body/status son los campos "core" de la entidad.
    - fields contiene los valores tipados por clave canonica.
    - remote_record_id, una vez asignado, es estable y unico.
    """

    id: Optional[int] = None
    title: str = ""
    body: str = ""
    status: str = ListingStatus.PUBLISH.value
    fields: Dict[str, Any] = field(default_factory=dict)
    remote_record_id: Optional[str] = None
    last_synced_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_linked(self) -> bool:
        """Indica si el listing ya tiene un registro Airtable asociado."""
        return bool(self.remote_record_id)

    def get_value(self, key: str) -> Any:
        """Lee un valor por clave canonica, incluyendo los campos core."""
        if key == "title":
            return self.title
        if key == "description":
            return self.body
        return self.fields.get(key)


@dataclass
class MediaAttachment:
    """Adjunto importado desde Airtable (clave de dedup: remote_attachment_id)."""

    id: Optional[int] = None
    remote_attachment_id: Optional[str] = None
    remote_record_id: Optional[str] = None
    source_url: str = ""
    filename: str = ""
    mime_type: str = ""
    file_path: str = ""
    size: int = 0
    thumbnails: Dict[str, str] = field(default_factory=dict)
    imported_at: Optional[datetime] = None
