"""
Entidades del dominio.
"""
from app.domain.entities.listing import Listing, MediaAttachment
from app.domain.entities.sync_result import SyncIssue, SyncResult, SyncRun

__all__ = [
    "Listing",
    "MediaAttachment",
    "SyncIssue",
    "SyncResult",
    "SyncRun",
]
