"""
Modelos de base de datos (ORM).
"""
from sqlalchemy import Column, String, Integer, DateTime, Text, JSON, Float
from sqlalchemy.sql import func

from app.infrastructure.database.session import Base
from app.shared.constants.sync_constants import ListingStatus


class ListingModel(Base):
    """
    Modelo de base de datos para listings.

    remote_record_id es UNIQUE: dos listings nunca reclaman el mismo
    registro de Airtable.
    """

    __tablename__ = "listings"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    body = Column(Text, nullable=False, default="")
    status = Column(String(20), nullable=False, default=ListingStatus.PUBLISH.value)
    fields = Column(JSON, nullable=False, default=dict)  # clave canonica -> valor tipado
    remote_record_id = Column(String(64), nullable=True, unique=True, index=True)
    last_synced_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<Listing(id={self.id}, title={self.title}, remote={self.remote_record_id})>"


class MediaAttachmentModel(Base):
    """
    Modelo de base de datos para adjuntos importados desde Airtable.
    remote_attachment_id es la clave de dedup (UNIQUE).
    """

    __tablename__ = "media_attachments"

    id = Column(Integer, primary_key=True, index=True)
    remote_attachment_id = Column(String(64), nullable=True, unique=True, index=True)
    remote_record_id = Column(String(64), nullable=True, index=True)
    source_url = Column(Text, nullable=False, default="")
    filename = Column(String(255), nullable=False, default="")
    mime_type = Column(String(100), nullable=False, default="")
    file_path = Column(Text, nullable=False, default="")
    size = Column(Integer, nullable=False, default=0)
    thumbnails = Column(JSON, nullable=False, default=dict)  # "300" -> ruta
    imported_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<MediaAttachment(id={self.id}, remote={self.remote_attachment_id}, file={self.filename})>"


class SyncRunModel(Base):
    """Historial de pasadas de sincronizacion."""

    __tablename__ = "sync_runs"

    id = Column(Integer, primary_key=True, index=True)
    direction = Column(String(10), nullable=False, index=True)
    status = Column(String(20), nullable=False)
    created = Column(Integer, nullable=False, default=0)
    updated = Column(Integer, nullable=False, default=0)
    skipped = Column(Integer, nullable=False, default=0)
    errored = Column(Integer, nullable=False, default=0)
    message = Column(Text, nullable=False, default="")
    error = Column(Text, nullable=True)
    duration_s = Column(Float, nullable=False, default=0.0)
    started_at = Column(DateTime(timezone=True), nullable=True)
    finished_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<SyncRun(id={self.id}, direction={self.direction}, status={self.status})>"
