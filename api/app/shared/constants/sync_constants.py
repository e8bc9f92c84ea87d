"""
Constantes del motor de sincronizacion de listings.
"""
from enum import Enum


class FieldType(str, Enum):
    """Tipos de valor soportados por el mapeo de campos (variante cerrada)."""
    INTEGER = "integer"
    DECIMAL = "decimal"
    STRING = "string"
    TEXT = "text"
    BOOLEAN = "boolean"
    DATE = "date"
    URL = "url"
    ENUM = "enum"
    ATTACHMENT = "attachment"
    ATTACHMENT_LIST = "attachment_list"


class SyncDirection(str, Enum):
    """Direccion en la que un campo participa del sync."""
    BIDIRECTIONAL = "bidirectional"
    PULL_ONLY = "pull_only"
    PUSH_ONLY = "push_only"


class SyncErrorKind(str, Enum):
    """Taxonomia de errores de sincronizacion."""
    CONNECTIVITY = "connectivity"
    SCHEMA_RESOLUTION = "schema_resolution"
    FIELD_VALIDATION = "field_validation"
    RECORD_SKIPPED = "record_skipped"
    ATTACHMENT_IMPORT = "attachment_import"
    RECORD_FAILED = "record_failed"


class PassDirection(str, Enum):
    """Pasadas de sync expuestas por el servicio."""
    PULL = "pull"
    PUSH = "push"


class SyncRunStatus(str, Enum):
    """Estado final de una pasada registrada en el historial."""
    RUNNING = "running"
    SUCCESS = "success"
    ERROR = "error"
    ABORTED = "aborted"


class ListingStatus(str, Enum):
    """Estado de publicacion del listing en la base local."""
    PUBLISH = "publish"
    DRAFT = "draft"


# Tipos MIME aceptados al importar adjuntos -> extension por defecto
SUPPORTED_MIME_TYPES = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
    "application/pdf": "pdf",
}

# Claves canonicas que se guardan como columnas propias del listing (titulo y cuerpo)
CORE_FIELD_KEYS = ("title", "description")
