"""
DTOs para la sincronización de listings con Airtable.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from app.domain.entities.sync_result import SyncResult, SyncRun


class SyncIssueDTO(BaseModel):
    """Error estructurado de un registro/campo."""

    kind: str
    message: str
    record_id: str = ""
    field: Optional[str] = None


class SyncResultDTO(BaseModel):
    """Resultado de una pasada pull o push."""

    direction: str
    success: bool
    message: str
    created: int = 0
    updated: int = 0
    skipped: int = 0
    errored: int = 0
    total_records: int = 0
    media_imported: int = 0
    errors: Dict[str, List[SyncIssueDTO]] = Field(
        default_factory=dict,
        description="Errores por id de registro (Airtable en pull, local en push)",
    )
    warnings: List[str] = Field(default_factory=list)
    field_report: Dict[str, Any] = Field(default_factory=dict)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    duration_s: float = 0.0

    @classmethod
    def from_result(cls, result: SyncResult) -> "SyncResultDTO":
        return cls(
            direction=result.direction.value,
            success=result.success,
            message=result.message,
            created=result.created,
            updated=result.updated,
            skipped=result.skipped,
            errored=result.errored,
            total_records=result.total_records,
            media_imported=result.media_imported,
            errors={
                record_id: [SyncIssueDTO(**issue.to_dict()) for issue in issues]
                for record_id, issues in result.errors.items()
            },
            warnings=result.warnings,
            field_report=result.field_report,
            started_at=result.started_at,
            finished_at=result.finished_at,
            duration_s=result.duration_s,
        )


class ConnectionTestDTO(BaseModel):
    """Diagnóstico de conexión con Airtable."""

    success: bool
    message: str
    base_id: Optional[str] = None
    table_name: Optional[str] = None
    tables_found: int = 0
    table_exists: bool = False
    available_tables: List[str] = Field(default_factory=list)
    http_status: Optional[int] = None
    remote_message: Optional[str] = None


class TableValidationDTO(BaseModel):
    """Comparación de la tabla Airtable contra el mapeo de fields."""

    valid: bool
    source: str
    table_name: str
    resolved: Dict[str, str] = Field(default_factory=dict)
    missing_fields: List[str] = Field(default_factory=list)
    required_missing: List[str] = Field(default_factory=list)
    extra_fields: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)


class SyncRunDTO(BaseModel):
    """Pasada registrada en el historial."""

    id: int
    direction: str
    status: str
    created: int
    updated: int
    skipped: int
    errored: int
    message: str
    error: Optional[str] = None
    duration_s: float
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @classmethod
    def from_run(cls, run: SyncRun) -> "SyncRunDTO":
        return cls(
            id=run.id,
            direction=run.direction,
            status=run.status,
            created=run.created,
            updated=run.updated,
            skipped=run.skipped,
            errored=run.errored,
            message=run.message,
            error=run.error,
            duration_s=run.duration_s,
            started_at=run.started_at,
            finished_at=run.finished_at,
        )


class MediaStatsDTO(BaseModel):
    total_attachments: int = 0
    total_size_bytes: int = 0
    by_mime_type: Dict[str, int] = Field(default_factory=dict)
    orphaned: int = 0
    last_import: Optional[str] = None


class MediaCleanupDTO(BaseModel):
    removed: int
    message: str
