"""
Endpoints para sincronizacion de listings con Airtable.
Permite lanzar pull/push y diagnosticar la tabla desde la UI o un scheduler.
"""
import asyncio
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from loguru import logger

from app.api.v1.dependencies.use_case_deps import get_listing_sync_use_cases
from app.application.dto.sync_dto import (
    ConnectionTestDTO,
    MediaCleanupDTO,
    MediaStatsDTO,
    SyncResultDTO,
    SyncRunDTO,
    TableValidationDTO,
)
from app.application.use_cases.sync_use_cases import ListingSyncUseCases
from app.shared.exceptions.base import AppException


router = APIRouter(prefix="/sync", tags=["Sync"])


async def _run_blocking(func, *args):
    """
    Ejecuta un caso de uso sincrono en un thread separado.
    Las AppException se propagan al handler global (JSON con error_code).
    """
    try:
        return await asyncio.to_thread(func, *args)
    except AppException:
        raise
    except Exception as e:
        logger.error(f"Error en sincronizacion Airtable: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error al sincronizar: {str(e)}"
        )


@router.post(
    "/pull",
    response_model=SyncResultDTO,
    status_code=status.HTTP_200_OK,
    summary="Sincronizar Airtable -> base local"
)
async def pull_listings(
    use_cases: ListingSyncUseCases = Depends(get_listing_sync_use_cases)
) -> SyncResultDTO:
    """
    Trae todos los registros de Airtable y crea/actualiza los listings locales.

    - Pre-flight: si un field requerido no se encuentra en Airtable la
      pasada se aborta sin escribir nada (409 SCHEMA_RESOLUTION_ERROR).
    - Errores de validacion por campo se devuelven en `errors`.
    """
    logger.info("Iniciando pull Airtable -> base local desde API")
    return await _run_blocking(use_cases.run_pull)


@router.post(
    "/push",
    response_model=SyncResultDTO,
    status_code=status.HTTP_200_OK,
    summary="Sincronizar base local -> Airtable"
)
async def push_listings(
    use_cases: ListingSyncUseCases = Depends(get_listing_sync_use_cases)
) -> SyncResultDTO:
    """Envia a Airtable los listings con titulo (create o update por id vinculado)."""
    logger.info("Iniciando push base local -> Airtable desde API")
    return await _run_blocking(use_cases.run_push)


@router.get(
    "/test-connection",
    response_model=ConnectionTestDTO,
    summary="Probar conexion con Airtable"
)
async def check_connection(
    use_cases: ListingSyncUseCases = Depends(get_listing_sync_use_cases)
) -> ConnectionTestDTO:
    return await _run_blocking(use_cases.test_connection)


@router.get(
    "/template",
    summary="Estructura de tabla Airtable esperada"
)
async def table_template(
    use_cases: ListingSyncUseCases = Depends(get_listing_sync_use_cases)
) -> Dict[str, Any]:
    return use_cases.get_table_template()


@router.get(
    "/validate",
    response_model=TableValidationDTO,
    summary="Validar la tabla Airtable contra el mapeo"
)
async def validate_table(
    use_cases: ListingSyncUseCases = Depends(get_listing_sync_use_cases)
) -> TableValidationDTO:
    return await _run_blocking(use_cases.validate_table)


@router.get(
    "/history",
    response_model=List[SyncRunDTO],
    summary="Historial de pasadas de sincronizacion"
)
async def sync_history(
    limit: int = Query(default=20, ge=1, le=200),
    use_cases: ListingSyncUseCases = Depends(get_listing_sync_use_cases)
) -> List[SyncRunDTO]:
    return await _run_blocking(use_cases.list_history, limit)


@router.get(
    "/media/stats",
    response_model=MediaStatsDTO,
    summary="Estadisticas de adjuntos importados"
)
async def media_stats(
    use_cases: ListingSyncUseCases = Depends(get_listing_sync_use_cases)
) -> MediaStatsDTO:
    return await _run_blocking(use_cases.media_statistics)


@router.post(
    "/media/cleanup",
    response_model=MediaCleanupDTO,
    summary="Eliminar adjuntos huerfanos"
)
async def media_cleanup(
    use_cases: ListingSyncUseCases = Depends(get_listing_sync_use_cases)
) -> MediaCleanupDTO:
    return await _run_blocking(use_cases.cleanup_media)
