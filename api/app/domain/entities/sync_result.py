"""
Entidades de dominio para resultados de sincronizacion.

SyncIssue es el error estructurado (tipo + mensaje + contexto de campo)
que se acumula durante una pasada en lugar de solo loguearse.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from app.shared.constants.sync_constants import PassDirection, SyncErrorKind


@dataclass(frozen=True)
class SyncIssue:
    """Error de un registro/campo recolectado durante la pasada."""

    kind: SyncErrorKind
    message: str
    record_id: str = ""
    field: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "record_id": self.record_id,
            "field": self.field,
        }


@dataclass
class SyncResult:
    """
    Resultado agregado de una pasada (pull o push).

    errors agrupa los SyncIssue por id de registro (id Airtable en pull,
    id local en push). Un registro puede terminar como creado/actualizado y
    aun asi tener errores de validacion asociados.
    """

    direction: PassDirection
    created: int = 0
    updated: int = 0
    skipped: int = 0
    errored: int = 0
    total_records: int = 0
    media_imported: int = 0
    errors: Dict[str, List[SyncIssue]] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)
    field_report: Dict[str, Any] = field(default_factory=dict)
    linked_ids: Dict[str, int] = field(default_factory=dict)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    success: bool = True
    message: str = ""

    def add_issue(self, issue: SyncIssue) -> None:
        self.errors.setdefault(issue.record_id, []).append(issue)

    def extend_issues(self, issues: List[SyncIssue]) -> None:
        for issue in issues:
            self.add_issue(issue)

    def issues_for(self, record_id: str) -> List[SyncIssue]:
        return list(self.errors.get(record_id, []))

    @property
    def duration_s(self) -> float:
        if not self.started_at or not self.finished_at:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()

    def summary(self) -> str:
        return (
            f"Procesados {self.total_records} registros: {self.created} creados, "
            f"{self.updated} actualizados, {self.skipped} omitidos, {self.errored} con error"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "direction": self.direction.value,
            "success": self.success,
            "message": self.message,
            "created": self.created,
            "updated": self.updated,
            "skipped": self.skipped,
            "errored": self.errored,
            "total_records": self.total_records,
            "media_imported": self.media_imported,
            "errors": {
                record_id: [issue.to_dict() for issue in issues]
                for record_id, issues in self.errors.items()
            },
            "warnings": list(self.warnings),
            "field_report": dict(self.field_report),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }


@dataclass
class SyncRun:
    """Registro historico de una pasada ejecutada."""

    direction: str
    status: str
    id: Optional[int] = None
    created: int = 0
    updated: int = 0
    skipped: int = 0
    errored: int = 0
    message: str = ""
    error: Optional[str] = None
    duration_s: float = 0.0
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
