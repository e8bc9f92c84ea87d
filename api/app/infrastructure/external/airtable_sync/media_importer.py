"""
Importación idempotente de adjuntos Airtable al almacenamiento local.

- Dedup por id de adjunto Airtable (índice inverso en la base local): un
  mismo asset nunca se descarga dos veces, ni entre registros ni entre
  pasadas.
- Las descargas independientes corren en un pool acotado; la persistencia
  (archivos + filas) queda en el hilo que llama.
- Un fallo afecta solo a ese adjunto.
"""

from __future__ import annotations

import hashlib
import mimetypes
import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from io import BytesIO
from pathlib import Path
from typing import Optional, Sequence

import requests
from loguru import logger
from PIL import Image, UnidentifiedImageError

from app.domain.entities.listing import MediaAttachment
from app.domain.entities.sync_result import SyncIssue
from app.domain.repositories.listing_store import IListingStore
from app.shared.constants.sync_constants import SUPPORTED_MIME_TYPES, SyncErrorKind
from app.shared.exceptions.sync import AttachmentImportError

from .types import AttachmentDescriptor, utc_now


_UNSAFE_FILENAME_RE = re.compile(r"[^A-Za-z0-9._-]+")


@dataclass
class ImportOutcome:
    """ids locales en el orden de los descriptores + issues de los fallidos."""

    attachment_ids: list[int] = field(default_factory=list)
    issues: list[SyncIssue] = field(default_factory=list)
    downloaded: int = 0


class MediaImporter:
    def __init__(
        self,
        store: IListingStore,
        media_root: str,
        *,
        session: Optional[requests.Session] = None,
        timeout_s: int = 30,
        max_workers: int = 4,
        max_file_size: int = 10 * 1024 * 1024,
        thumbnail_sizes: Sequence[int] = (150, 300, 1024),
    ):
        self.store = store
        self.media_root = Path(media_root)
        self.http = session or requests.Session()
        self.timeout_s = timeout_s
        self.max_workers = max(1, max_workers)
        self.max_file_size = max_file_size
        self.thumbnail_sizes = tuple(thumbnail_sizes)

    # ------------------------------------------------------------------
    # Import
    # ------------------------------------------------------------------

    def import_attachments(
        self,
        descriptors: Sequence[AttachmentDescriptor],
        remote_record_id: str,
    ) -> ImportOutcome:
        outcome = ImportOutcome()
        resolved: dict[str, int] = {}
        pending: list[AttachmentDescriptor] = []

        for desc in descriptors:
            key = desc.remote_id or desc.url
            if key in resolved or any((p.remote_id or p.url) == key for p in pending):
                continue
            existing = self.store.find_attachment_by_remote_id(desc.remote_id) if desc.remote_id else None
            if existing and existing.id is not None:
                logger.debug(f"Adjunto {desc.remote_id} ya importado (id local {existing.id})")
                resolved[key] = existing.id
                continue
            try:
                self._validate(desc)
            except AttachmentImportError as e:
                outcome.issues.append(self._issue(e, remote_record_id))
                continue
            pending.append(desc)

        for desc, content, content_type, error in self._download_all(pending):
            key = desc.remote_id or desc.url
            if error is not None:
                outcome.issues.append(self._issue(error, remote_record_id))
                continue
            try:
                attachment = self._persist(desc, content, content_type, remote_record_id)
            except AttachmentImportError as e:
                outcome.issues.append(self._issue(e, remote_record_id))
                continue
            resolved[key] = attachment.id
            outcome.downloaded += 1

        for desc in descriptors:
            local_id = resolved.get(desc.remote_id or desc.url)
            if local_id is not None and local_id not in outcome.attachment_ids:
                outcome.attachment_ids.append(local_id)
        return outcome

    def _validate(self, desc: AttachmentDescriptor) -> None:
        mime_type = desc.mime_type or (mimetypes.guess_type(desc.filename)[0] or "")
        if mime_type and mime_type not in SUPPORTED_MIME_TYPES:
            raise AttachmentImportError(
                f"Tipo de archivo no soportado: {mime_type}",
                remote_attachment_id=desc.remote_id,
                url=desc.url,
            )
        if desc.size and desc.size > self.max_file_size:
            raise AttachmentImportError(
                f"Archivo demasiado grande ({desc.size} bytes, máximo {self.max_file_size})",
                remote_attachment_id=desc.remote_id,
                url=desc.url,
            )

    def _download_all(self, pending: list[AttachmentDescriptor]):
        if not pending:
            return []
        if len(pending) == 1 or self.max_workers == 1:
            return [self._download(desc) for desc in pending]
        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(pending))) as pool:
            return list(pool.map(self._download, pending))

    def _download(self, desc: AttachmentDescriptor):
        """Retorna (desc, bytes, content_type, error) sin lanzar."""
        try:
            resp = self.http.get(desc.url, timeout=self.timeout_s)
        except requests.RequestException as e:
            logger.error(f"Error descargando adjunto {desc.remote_id}: {e}")
            return desc, b"", "", AttachmentImportError(
                f"Error de red descargando adjunto: {e}", remote_attachment_id=desc.remote_id, url=desc.url
            )

        if not (200 <= resp.status_code < 300):
            logger.error(f"Descarga de adjunto {desc.remote_id} fallo: HTTP {resp.status_code}")
            return desc, b"", "", AttachmentImportError(
                f"HTTP {resp.status_code} descargando adjunto",
                remote_attachment_id=desc.remote_id,
                url=desc.url,
            )

        content = resp.content or b""
        content_type = (resp.headers.get("Content-Type") or "").split(";")[0].strip()
        if len(content) > self.max_file_size:
            return desc, b"", "", AttachmentImportError(
                f"Archivo demasiado grande ({len(content)} bytes, máximo {self.max_file_size})",
                remote_attachment_id=desc.remote_id,
                url=desc.url,
            )
        return desc, content, content_type, None

    def _persist(
        self,
        desc: AttachmentDescriptor,
        content: bytes,
        content_type: str,
        remote_record_id: str,
    ) -> MediaAttachment:
        mime_type = desc.mime_type or content_type or (mimetypes.guess_type(desc.filename)[0] or "")
        if mime_type not in SUPPORTED_MIME_TYPES:
            raise AttachmentImportError(
                f"Tipo de archivo no soportado: {mime_type or 'desconocido'}",
                remote_attachment_id=desc.remote_id,
                url=desc.url,
            )

        target_dir = self.media_root / (remote_record_id or "unlinked")
        file_path = target_dir / self._safe_filename(desc, mime_type)
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            file_path.write_bytes(content)
        except OSError as e:
            raise AttachmentImportError(
                f"No se pudo guardar el adjunto: {e}", remote_attachment_id=desc.remote_id, url=desc.url
            ) from e

        thumbnails = self._make_thumbnails(file_path, content) if mime_type.startswith("image/") else {}

        attachment = self.store.save_attachment(
            MediaAttachment(
                remote_attachment_id=desc.remote_id or None,
                remote_record_id=remote_record_id,
                source_url=desc.url,
                filename=desc.filename or file_path.name,
                mime_type=mime_type,
                file_path=str(file_path),
                size=len(content),
                thumbnails=thumbnails,
                imported_at=utc_now(),
            )
        )
        logger.info(f"Adjunto importado: {attachment.filename} (id local {attachment.id})")
        return attachment

    def _make_thumbnails(self, file_path: Path, content: bytes) -> dict[str, str]:
        thumbnails: dict[str, str] = {}
        try:
            with Image.open(BytesIO(content)) as img:
                img_format = img.format or "PNG"
                for size in self.thumbnail_sizes:
                    if img.width <= size and img.height <= size:
                        continue
                    thumb = img.copy()
                    thumb.thumbnail((size, size))
                    if img_format == "JPEG" and thumb.mode not in ("RGB", "L"):
                        thumb = thumb.convert("RGB")
                    thumb_path = file_path.with_name(f"{file_path.stem}-{size}{file_path.suffix}")
                    thumb.save(thumb_path, format=img_format)
                    thumbnails[str(size)] = str(thumb_path)
        except (UnidentifiedImageError, OSError, ValueError) as e:
            logger.warning(f"No se pudieron generar miniaturas para {file_path.name}: {e}")
        return thumbnails

    @staticmethod
    def _safe_filename(desc: AttachmentDescriptor, mime_type: str) -> str:
        name = _UNSAFE_FILENAME_RE.sub("_", Path(desc.filename).name).strip("._")
        if not name:
            name = f"attachment.{SUPPORTED_MIME_TYPES[mime_type]}"
        elif "." not in name:
            name = f"{name}.{SUPPORTED_MIME_TYPES[mime_type]}"
        prefix = desc.remote_id or hashlib.sha1(desc.url.encode("utf-8")).hexdigest()[:12]
        return f"{prefix}_{name}"

    @staticmethod
    def _issue(error: AttachmentImportError, remote_record_id: str) -> SyncIssue:
        return SyncIssue(
            kind=SyncErrorKind.ATTACHMENT_IMPORT,
            message=error.message,
            record_id=remote_record_id,
            field=error.remote_attachment_id,
        )

    # ------------------------------------------------------------------
    # Mantenimiento
    # ------------------------------------------------------------------

    def cleanup_orphaned_media(self) -> int:
        """Borra adjuntos importados que ningún listing referencia. Retorna cuántos."""
        referenced = self.store.referenced_attachment_ids()
        removed = 0
        for attachment in self.store.list_attachments():
            if attachment.id in referenced or not attachment.remote_attachment_id:
                continue
            for path in [attachment.file_path, *attachment.thumbnails.values()]:
                if path:
                    Path(path).unlink(missing_ok=True)
            self.store.delete_attachment(attachment.id)
            removed += 1
        if removed:
            logger.info(f"Adjuntos huérfanos eliminados: {removed}")
        return removed

    def statistics(self) -> dict:
        attachments = self.store.list_attachments()
        referenced = self.store.referenced_attachment_ids()
        by_type: dict[str, int] = {}
        for a in attachments:
            by_type[a.mime_type or "unknown"] = by_type.get(a.mime_type or "unknown", 0) + 1
        last_import = max((a.imported_at for a in attachments if a.imported_at), default=None)
        return {
            "total_attachments": len(attachments),
            "total_size_bytes": sum(a.size for a in attachments),
            "by_mime_type": by_type,
            "orphaned": sum(1 for a in attachments if a.id not in referenced),
            "last_import": last_import.isoformat() if last_import else None,
        }
