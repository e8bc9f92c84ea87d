"""
Excepciones del motor de sincronizacion de listings.

Solo ConnectivityError y SchemaResolutionError escapan de una pasada de
sync. AttachmentImportError y RecordSkippedError se lanzan dentro de un
registro y se capturan en su frontera; los errores de validacion de
campos nunca se lanzan (se acumulan como SyncIssue en el SyncResult).
"""
from typing import Any, Dict, Optional

from app.shared.exceptions.base import AppException


class SyncException(AppException):
    """Excepcion base para errores de sincronizacion."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: str = "SYNC_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=status_code,
            error_code=error_code,
            details=details,
        )


class ConnectivityError(SyncException):
    """
    Fallo de red, autenticacion o HTTP contra Airtable.
    Aborta la pasada completa.
    """

    def __init__(self, message: str, http_status: Optional[int] = None, remote_message: Optional[str] = None):
        super().__init__(
            message=message,
            status_code=502,
            error_code="CONNECTIVITY_ERROR",
            details={"http_status": http_status, "remote_message": remote_message},
        )
        self.http_status = http_status
        self.remote_message = remote_message


class SchemaResolutionError(SyncException):
    """
    Un campo requerido no se pudo resolver contra el registro de muestra.
    El pull se aborta antes de escribir nada.
    """

    def __init__(self, unresolved: list[str], report: Dict[str, Any]):
        super().__init__(
            message=f"Campos requeridos no encontrados en Airtable: {', '.join(unresolved)}",
            status_code=409,
            error_code="SCHEMA_RESOLUTION_ERROR",
            details={"unresolved": unresolved, "fields": report},
        )
        self.unresolved = unresolved
        self.report = report


class AttachmentImportError(SyncException):
    """Fallo al descargar o persistir un adjunto individual."""

    def __init__(self, message: str, remote_attachment_id: Optional[str] = None, url: Optional[str] = None):
        super().__init__(
            message=message,
            error_code="ATTACHMENT_IMPORT_ERROR",
            details={"remote_attachment_id": remote_attachment_id, "url": url},
        )
        self.remote_attachment_id = remote_attachment_id
        self.url = url


class RecordSkippedError(SyncException):
    """El registro no tiene identidad sintetizable (sin titulo ni fallback)."""

    def __init__(self, record_id: str, reason: str):
        super().__init__(
            message=f"Registro {record_id} omitido: {reason}",
            status_code=422,
            error_code="RECORD_SKIPPED",
            details={"record_id": record_id},
        )
        self.record_id = record_id
        self.reason = reason


class SyncConfigError(SyncException):
    """Falta configuracion obligatoria para construir el servicio de sync."""

    def __init__(self, message: str):
        super().__init__(message=message, status_code=500, error_code="SYNC_CONFIG_ERROR")
