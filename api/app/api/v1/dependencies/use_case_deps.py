"""
Dependencias para inyeccion de casos de uso.
"""
from fastapi import Depends
from sqlalchemy.orm import Session

from app.application.use_cases.sync_use_cases import ListingSyncUseCases
from app.core.config import settings
from app.infrastructure.database.session import get_db
from app.infrastructure.external.airtable_sync.sync_service import build_from_settings


def get_listing_sync_use_cases(
    db: Session = Depends(get_db)
) -> ListingSyncUseCases:
    """
    Dependencia para obtener los casos de uso de sincronizacion.

    Args:
        db: Sesion de base de datos

    Returns:
        ListingSyncUseCases: Casos de uso con el servicio ya construido
    """
    service = build_from_settings(db, settings)
    return ListingSyncUseCases(service, service.store)
