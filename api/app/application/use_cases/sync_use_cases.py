"""
Casos de uso para sincronización de listings con Airtable.

Métodos síncronos (requests + ORM): el API los ejecuta con
asyncio.to_thread y el CLI los llama directo. Cada pasada queda
registrada en el historial (sync_runs), también cuando falla.
"""
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from loguru import logger

from app.application.dto.sync_dto import (
    ConnectionTestDTO,
    MediaCleanupDTO,
    MediaStatsDTO,
    SyncResultDTO,
    SyncRunDTO,
    TableValidationDTO,
)
from app.domain.entities.sync_result import SyncResult, SyncRun
from app.domain.repositories.listing_store import IListingStore
from app.infrastructure.external.airtable_sync.sync_service import ListingSyncService
from app.infrastructure.external.airtable_sync.types import utc_now
from app.shared.constants.sync_constants import PassDirection, SyncRunStatus
from app.shared.exceptions.sync import SchemaResolutionError


class ListingSyncUseCases:
    """Casos de uso de sincronización (pull, push y diagnóstico)."""

    def __init__(self, service: ListingSyncService, store: IListingStore):
        self.service = service
        self.store = store

    def run_pull(self) -> SyncResultDTO:
        return self._run(PassDirection.PULL, self.service.pull)

    def run_push(self) -> SyncResultDTO:
        return self._run(PassDirection.PUSH, self.service.push)

    def _run(self, direction: PassDirection, run: Callable[[], SyncResult]) -> SyncResultDTO:
        started_at = utc_now()
        try:
            result = run()
        except SchemaResolutionError as e:
            self._record(direction, SyncRunStatus.ABORTED, started_at, error=e.message)
            raise
        except Exception as e:
            self._record(direction, SyncRunStatus.ERROR, started_at, error=str(e))
            raise

        self._record(direction, SyncRunStatus.SUCCESS, started_at, result=result)
        return SyncResultDTO.from_result(result)

    def _record(
        self,
        direction: PassDirection,
        status: SyncRunStatus,
        started_at: datetime,
        result: Optional[SyncResult] = None,
        error: Optional[str] = None,
    ) -> None:
        finished_at = utc_now()
        run = SyncRun(
            direction=direction.value,
            status=status.value,
            message=result.message if result else "",
            error=error[:2000] if error else None,
            duration_s=(finished_at - started_at).total_seconds(),
            started_at=started_at,
            finished_at=finished_at,
        )
        if result:
            run.created = result.created
            run.updated = result.updated
            run.skipped = result.skipped
            run.errored = result.errored
        try:
            self.store.record_sync_run(run)
        except Exception as e:
            # El historial no debe ocultar el resultado real de la pasada
            logger.error(f"No se pudo registrar la pasada en el historial: {e}")

    def test_connection(self) -> ConnectionTestDTO:
        return ConnectionTestDTO(**self.service.test_connection())

    def validate_table(self) -> TableValidationDTO:
        return TableValidationDTO(**self.service.validate_table_structure())

    def get_table_template(self) -> Dict[str, Any]:
        return self.service.table_template()

    def list_history(self, limit: int = 20) -> List[SyncRunDTO]:
        return [SyncRunDTO.from_run(run) for run in self.store.list_sync_runs(limit)]

    def media_statistics(self) -> MediaStatsDTO:
        return MediaStatsDTO(**self.service.media_statistics())

    def cleanup_media(self) -> MediaCleanupDTO:
        removed = self.service.cleanup_media()
        return MediaCleanupDTO(removed=removed, message=f"{removed} adjunto(s) huérfano(s) eliminado(s)")
