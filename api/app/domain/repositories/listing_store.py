"""
Interfaz del almacen local de listings.
Define el contrato que el motor de sync necesita del lado local.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, List, Optional

from app.domain.entities.listing import Listing, MediaAttachment
from app.domain.entities.sync_result import SyncRun


class IListingStore(ABC):
    """
    Contrato del colaborador local.
    Cada operacion de escritura queda persistida al retornar, para que el
    vinculo con Airtable sobreviva aunque la pasada se interrumpa.
    """

    @abstractmethod
    def create_listing(self, listing: Listing) -> Listing:
        """
        Crea un listing (campos core + campos tipados en una sola unidad).

        Returns:
            Listing: Listing creado con ID asignado
        """

    @abstractmethod
    def update_listing(self, listing: Listing) -> Listing:
        """Actualiza un listing existente (campos core + campos tipados)."""

    @abstractmethod
    def get_listing(self, listing_id: int) -> Optional[Listing]:
        """Obtiene un listing por su ID local."""

    @abstractmethod
    def find_by_remote_id(self, remote_record_id: str) -> Optional[Listing]:
        """Busqueda inversa: listing vinculado a un registro Airtable."""

    @abstractmethod
    def mark_synced(self, listing_id: int, remote_record_id: str, synced_at: datetime) -> None:
        """
        Estampa el id remoto y la hora de sync.

        Raises:
            ValueError: si el listing ya esta vinculado a otro registro
                remoto o si otro listing ya reclama ese id.
        """

    @abstractmethod
    def get_field(self, listing_id: int, key: str) -> Any:
        """Lee un campo tipado por clave canonica."""

    @abstractmethod
    def set_field(self, listing_id: int, key: str, value: Any) -> None:
        """Escribe un campo tipado por clave canonica."""

    @abstractmethod
    def list_pushable_listings(self) -> List[Listing]:
        """Listings candidatos a enviarse a Airtable."""

    @abstractmethod
    def get_attachment(self, attachment_id: int) -> Optional[MediaAttachment]:
        """Obtiene un adjunto por su ID local."""

    @abstractmethod
    def save_attachment(self, attachment: MediaAttachment) -> MediaAttachment:
        """Persiste un adjunto importado."""

    @abstractmethod
    def find_attachment_by_remote_id(self, remote_attachment_id: str) -> Optional[MediaAttachment]:
        """Busqueda inversa: adjunto local importado desde un adjunto Airtable."""

    @abstractmethod
    def list_attachments(self) -> List[MediaAttachment]:
        """Todos los adjuntos importados."""

    @abstractmethod
    def delete_attachment(self, attachment_id: int) -> None:
        """Elimina el registro de un adjunto."""

    @abstractmethod
    def referenced_attachment_ids(self) -> set[int]:
        """IDs de adjuntos referenciados por algun listing."""

    @abstractmethod
    def record_sync_run(self, run: SyncRun) -> SyncRun:
        """Guarda una pasada en el historial."""

    @abstractmethod
    def list_sync_runs(self, limit: int = 20) -> List[SyncRun]:
        """Historial de pasadas, mas reciente primero."""
