"""
Data Transfer Objects (DTOs) para la capa de aplicacion.
"""
from .sync_dto import (
    ConnectionTestDTO,
    MediaCleanupDTO,
    MediaStatsDTO,
    SyncIssueDTO,
    SyncResultDTO,
    SyncRunDTO,
    TableValidationDTO,
)

__all__ = [
    "ConnectionTestDTO",
    "MediaCleanupDTO",
    "MediaStatsDTO",
    "SyncIssueDTO",
    "SyncResultDTO",
    "SyncRunDTO",
    "TableValidationDTO",
]
