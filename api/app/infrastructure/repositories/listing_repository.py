"""
Repositorio SQLAlchemy del almacen local de listings.
Implementa IListingStore sobre una sesion sincrona.
"""
from datetime import datetime
from typing import Any, List, Optional

from loguru import logger
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.domain.entities.listing import Listing, MediaAttachment
from app.domain.entities.sync_result import SyncRun
from app.domain.repositories.listing_store import IListingStore
from app.infrastructure.database.models import ListingModel, MediaAttachmentModel, SyncRunModel
from app.shared.constants.sync_constants import FieldType


class ListingRepository(IListingStore):
    """
    Gestiona las tablas listings, media_attachments y sync_runs.
    Cada escritura hace commit: el progreso de una pasada queda persistido
    registro a registro.
    """

    def __init__(self, db: Session, attachment_field_types: Optional[dict[str, FieldType]] = None):
        self.db = db
        # Claves canonicas que guardan ids de adjuntos (para detectar huerfanos)
        self._attachment_fields = attachment_field_types or {}

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    def create_listing(self, listing: Listing) -> Listing:
        model = ListingModel(
            title=listing.title,
            body=listing.body or "",
            status=listing.status,
            fields=dict(listing.fields),
            remote_record_id=listing.remote_record_id,
            last_synced_at=listing.last_synced_at,
        )
        self.db.add(model)
        self._commit()
        self.db.refresh(model)
        return self._to_entity(model)

    def update_listing(self, listing: Listing) -> Listing:
        model = self._get_model(listing.id)
        model.title = listing.title
        model.body = listing.body or ""
        model.status = listing.status
        # Reasignar el dict para que SQLAlchemy detecte el cambio del JSON
        model.fields = dict(listing.fields)
        self._commit()
        self.db.refresh(model)
        return self._to_entity(model)

    def get_listing(self, listing_id: int) -> Optional[Listing]:
        model = self.db.get(ListingModel, listing_id)
        return self._to_entity(model) if model else None

    def find_by_remote_id(self, remote_record_id: str) -> Optional[Listing]:
        query = select(ListingModel).where(ListingModel.remote_record_id == remote_record_id)
        model = self.db.execute(query).scalar_one_or_none()
        return self._to_entity(model) if model else None

    def mark_synced(self, listing_id: int, remote_record_id: str, synced_at: datetime) -> None:
        model = self._get_model(listing_id)
        if model.remote_record_id and model.remote_record_id != remote_record_id:
            raise ValueError(
                f"Listing {listing_id} ya esta vinculado a {model.remote_record_id}; "
                f"no se puede re-vincular a {remote_record_id}"
            )
        owner = self.find_by_remote_id(remote_record_id)
        if owner and owner.id != listing_id:
            raise ValueError(f"El registro remoto {remote_record_id} ya pertenece al listing {owner.id}")

        model.remote_record_id = remote_record_id
        model.last_synced_at = synced_at
        self._commit()

    def get_field(self, listing_id: int, key: str) -> Any:
        model = self._get_model(listing_id)
        return self._to_entity(model).get_value(key)

    def set_field(self, listing_id: int, key: str, value: Any) -> None:
        model = self._get_model(listing_id)
        if key == "title":
            model.title = value or ""
        elif key == "description":
            model.body = value or ""
        else:
            fields = dict(model.fields or {})
            fields[key] = value
            model.fields = fields
        self._commit()

    def list_pushable_listings(self) -> List[Listing]:
        query = select(ListingModel).where(ListingModel.title != "").order_by(ListingModel.id)
        return [self._to_entity(m) for m in self.db.execute(query).scalars().all()]

    # ------------------------------------------------------------------
    # Adjuntos
    # ------------------------------------------------------------------

    def get_attachment(self, attachment_id: int) -> Optional[MediaAttachment]:
        model = self.db.get(MediaAttachmentModel, attachment_id)
        return self._attachment_to_entity(model) if model else None

    def save_attachment(self, attachment: MediaAttachment) -> MediaAttachment:
        model = MediaAttachmentModel(
            remote_attachment_id=attachment.remote_attachment_id,
            remote_record_id=attachment.remote_record_id,
            source_url=attachment.source_url,
            filename=attachment.filename,
            mime_type=attachment.mime_type,
            file_path=attachment.file_path,
            size=attachment.size,
            thumbnails=dict(attachment.thumbnails),
        )
        if attachment.imported_at:
            model.imported_at = attachment.imported_at
        self.db.add(model)
        self._commit()
        self.db.refresh(model)
        return self._attachment_to_entity(model)

    def find_attachment_by_remote_id(self, remote_attachment_id: str) -> Optional[MediaAttachment]:
        query = select(MediaAttachmentModel).where(
            MediaAttachmentModel.remote_attachment_id == remote_attachment_id
        )
        model = self.db.execute(query).scalar_one_or_none()
        return self._attachment_to_entity(model) if model else None

    def list_attachments(self) -> List[MediaAttachment]:
        query = select(MediaAttachmentModel).order_by(MediaAttachmentModel.id)
        return [self._attachment_to_entity(m) for m in self.db.execute(query).scalars().all()]

    def delete_attachment(self, attachment_id: int) -> None:
        model = self.db.get(MediaAttachmentModel, attachment_id)
        if model:
            self.db.delete(model)
            self._commit()

    def referenced_attachment_ids(self) -> set[int]:
        referenced: set[int] = set()
        for (fields,) in self.db.execute(select(ListingModel.fields)).all():
            for key, field_type in self._attachment_fields.items():
                value = (fields or {}).get(key)
                if field_type == FieldType.ATTACHMENT and isinstance(value, int):
                    referenced.add(value)
                elif field_type == FieldType.ATTACHMENT_LIST and isinstance(value, list):
                    referenced.update(v for v in value if isinstance(v, int))
        return referenced

    # ------------------------------------------------------------------
    # Historial
    # ------------------------------------------------------------------

    def record_sync_run(self, run: SyncRun) -> SyncRun:
        model = SyncRunModel(
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
        self.db.add(model)
        self._commit()
        self.db.refresh(model)
        run.id = model.id
        return run

    def list_sync_runs(self, limit: int = 20) -> List[SyncRun]:
        query = select(SyncRunModel).order_by(SyncRunModel.id.desc()).limit(limit)
        return [
            SyncRun(
                id=m.id,
                direction=m.direction,
                status=m.status,
                created=m.created,
                updated=m.updated,
                skipped=m.skipped,
                errored=m.errored,
                message=m.message,
                error=m.error,
                duration_s=m.duration_s,
                started_at=m.started_at,
                finished_at=m.finished_at,
            )
            for m in self.db.execute(query).scalars().all()
        ]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _commit(self) -> None:
        try:
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error persistiendo en la base local: {e}")
            raise

    def _get_model(self, listing_id: Optional[int]) -> ListingModel:
        model = self.db.get(ListingModel, listing_id) if listing_id is not None else None
        if model is None:
            raise LookupError(f"Listing {listing_id} no existe")
        return model

    @staticmethod
    def _to_entity(model: ListingModel) -> Listing:
        return Listing(
            id=model.id,
            title=model.title or "",
            body=model.body or "",
            status=model.status,
            fields=dict(model.fields or {}),
            remote_record_id=model.remote_record_id,
            last_synced_at=model.last_synced_at,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    @staticmethod
    def _attachment_to_entity(model: MediaAttachmentModel) -> MediaAttachment:
        return MediaAttachment(
            id=model.id,
            remote_attachment_id=model.remote_attachment_id,
            remote_record_id=model.remote_record_id,
            source_url=model.source_url,
            filename=model.filename,
            mime_type=model.mime_type,
            file_path=model.file_path,
            size=model.size,
            thumbnails=dict(model.thumbnails or {}),
            imported_at=model.imported_at,
        )
