"""
Servicio de sincronización listings base local <-> Airtable.

Diseño (resumen):
- pull: pre-flight contra un registro de muestra, luego drena todas las
  páginas de Airtable pasando cada registro por traductor -> upsert.
- push: listings elegibles (con título) -> writer (create o PATCH).
- Los errores por registro se acumulan en el SyncResult; solo
  ConnectivityError o el pre-flight abortan la pasada.

Estrategia de idempotencia:
- Identidad por remote_record_id (único en la base local).
- Adjuntos deduplicados por id de adjunto Airtable.
- El vínculo se persiste al terminar cada registro, no al final de la pasada.
"""

from __future__ import annotations

from typing import Any, Optional

from loguru import logger
from sqlalchemy.orm import Session

from app.core.config import Settings, get_thumbnail_sizes
from app.domain.entities.sync_result import SyncIssue, SyncResult
from app.domain.repositories.listing_store import IListingStore
from app.shared.constants.sync_constants import FieldType, PassDirection, SyncErrorKind
from app.shared.exceptions.sync import ConnectivityError, SchemaResolutionError, SyncConfigError

from .airtable_client import AirtableClient, AirtableCredentials
from .field_mappings import build_table_template, get_listing_field_mappings, load_field_synonyms
from .field_resolver import FieldResolutionReport, resolve_field_names, resolve_mapping
from .listing_calculator import ListingCalculator
from .media_importer import MediaImporter
from .record_translator import RecordTranslator
from .remote_writer import AirtableRemoteWriter
from .types import FieldMapping, utc_now
from .upsert_engine import ListingUpsertEngine


# Metadata API sin permiso / tabla inexistente: se usan los nombres declarados
_SCHEMA_OPTIONAL_STATUSES = frozenset({403, 404})


class ListingSyncService:
    """
    Orquestador de pasadas pull/push.

    Se construye con sus colaboradores explícitos (store, cliente Airtable,
    tabla de mapeo); no depende de estado global.
    """

    def __init__(
        self,
        *,
        store: IListingStore,
        airtable: AirtableClient,
        mappings: list[FieldMapping],
        synonyms: Optional[dict[str, list[str]]] = None,
        media_importer: Optional[MediaImporter] = None,
        calculator: Optional[ListingCalculator] = None,
        page_size: int = 100,
    ) -> None:
        self.store = store
        self.airtable = airtable
        self.mappings = mappings
        self.synonyms = synonyms or {}
        self.media_importer = media_importer
        self.page_size = page_size
        self.translator = RecordTranslator(mappings, self.synonyms, media_importer)
        self.upsert_engine = ListingUpsertEngine(store)
        self.writer = AirtableRemoteWriter(airtable, store, self.translator, calculator)

    # ------------------------------------------------------------------
    # Pull
    # ------------------------------------------------------------------

    def preflight(self) -> Optional[FieldResolutionReport]:
        """
        Resuelve el mapeo contra un registro de muestra.

        Retorna None si la tabla está vacía. Lanza SchemaResolutionError si
        algún field requerido no se resuelve.
        """
        sample = self.airtable.fetch_sample()
        if sample is None:
            return None

        report = resolve_mapping(self.mappings, sample.field_names, self.synonyms)
        logger.info(
            f"Pre-flight sobre {sample.record_id}: {len(report.resolved)} resueltos, "
            f"{len(report.unresolved)} sin resolver"
        )
        if not report.ok:
            logger.error(f"Pre-flight fallido, campos requeridos sin resolver: {report.missing_required}")
            raise SchemaResolutionError(report.missing_required, report.to_dict())
        return report

    def pull(self) -> SyncResult:
        result = SyncResult(direction=PassDirection.PULL, started_at=utc_now())
        logger.info(f"Pull: Airtable '{self.airtable.table_name}' -> base local")

        report = self.preflight()
        if report is None:
            result.warnings.append("La tabla de Airtable no tiene registros")
        else:
            result.field_report = report.to_dict()
            if report.unresolved:
                result.warnings.append(f"Campos opcionales sin resolver: {', '.join(report.unresolved)}")

        for record in self.airtable.iter_records(page_size=self.page_size):
            result.total_records += 1
            try:
                translated = self.translator.to_canonical(record)
                self.upsert_engine.upsert(translated, record, result)
            except ConnectivityError:
                raise
            except Exception as e:
                logger.error(f"Error procesando registro {record.record_id}: {e}")
                result.errored += 1
                result.add_issue(SyncIssue(kind=SyncErrorKind.RECORD_FAILED, message=str(e), record_id=record.record_id))

        return self._finish(result)

    # ------------------------------------------------------------------
    # Push
    # ------------------------------------------------------------------

    def push(self) -> SyncResult:
        result = SyncResult(direction=PassDirection.PUSH, started_at=utc_now())
        logger.info(f"Push: base local -> Airtable '{self.airtable.table_name}'")

        remote_names = self._remote_field_names(result)
        for listing in self.store.list_pushable_listings():
            result.total_records += 1
            try:
                self.writer.push_listing(listing, result, remote_names)
            except ConnectivityError:
                raise
            except Exception as e:
                logger.error(f"Error enviando listing {listing.id}: {e}")
                result.errored += 1
                result.add_issue(SyncIssue(kind=SyncErrorKind.RECORD_FAILED, message=str(e), record_id=str(listing.id)))

        return self._finish(result)

    def _remote_field_names(self, result: SyncResult) -> Optional[dict[str, str]]:
        """
        clave canonica -> nombre real en la tabla, según la Metadata API.
        None si el esquema no está disponible (se usan los nombres declarados).
        """
        try:
            table_fields = self.airtable.get_table_field_names()
        except ConnectivityError as e:
            if e.http_status not in _SCHEMA_OPTIONAL_STATUSES:
                raise
            table_fields = None
        if table_fields is None:
            result.warnings.append("Esquema de Airtable no disponible; se usan los nombres de field declarados")
            return None

        # Cada columna queda asignada a una sola clave
        names = resolve_field_names([m for m in self.mappings if m.pushes], table_fields, self.synonyms)
        missing = [m.key for m in self.mappings if m.pushes and m.key not in names]
        if missing:
            result.warnings.append(f"Campos sin columna en Airtable (no se envían): {', '.join(missing)}")
        return names

    def _finish(self, result: SyncResult) -> SyncResult:
        result.finished_at = utc_now()
        result.success = True
        result.message = result.summary()
        logger.success(f"{result.direction.value.capitalize()} completado. {result.message}")
        return result

    # ------------------------------------------------------------------
    # Diagnóstico
    # ------------------------------------------------------------------

    def test_connection(self) -> dict[str, Any]:
        """Verifica credenciales y que la tabla exista. Nunca lanza."""
        try:
            tables = self.airtable.list_tables()
        except ConnectivityError as e:
            logger.error(f"Test de conexión fallido: {e.message}")
            return {
                "success": False,
                "message": e.message,
                "http_status": e.http_status,
                "remote_message": e.remote_message,
            }

        names = [t.get("name") for t in tables if t.get("name")]
        table_exists = self.airtable.table_name in names
        message = f"Conexión exitosa. {len(names)} tablas encontradas."
        if not table_exists:
            message += f" La tabla '{self.airtable.table_name}' no existe."
        return {
            "success": True,
            "message": message,
            "base_id": self.airtable.base_id,
            "table_name": self.airtable.table_name,
            "tables_found": len(names),
            "table_exists": table_exists,
            "available_tables": names,
        }

    def validate_table_structure(self) -> dict[str, Any]:
        """
        Compara la tabla Airtable con el mapeo: fields faltantes, extra,
        requeridos faltantes y recomendaciones. Usa la Metadata API y, si
        no está disponible, un registro de muestra.
        """
        source = "metadata"
        try:
            available = self.airtable.get_table_field_names()
        except ConnectivityError as e:
            if e.http_status not in _SCHEMA_OPTIONAL_STATUSES:
                raise
            available = None
        if available is None:
            sample = self.airtable.fetch_sample()
            source = "sample_record" if sample else "empty"
            available = sample.field_names if sample else []

        resolved = resolve_field_names(self.mappings, available, self.synonyms)
        missing: list[str] = []
        required_missing: list[str] = []
        for m in self.mappings:
            if m.key not in resolved:
                missing.append(m.airtable_field)
                if m.required:
                    required_missing.append(m.airtable_field)

        matched = set(resolved.values())
        extra = [name for name in available if name not in matched]

        recommendations: list[str] = []
        if required_missing:
            recommendations.append(f"Agregar los fields requeridos: {', '.join(required_missing)}")
        if missing:
            recommendations.append(f"Agregar {len(missing)} fields opcionales para una sincronización completa")
        renamed = [f"{name} -> {m.airtable_field}" for m in self.mappings
                   if (name := resolved.get(m.key)) and name != m.airtable_field]
        if renamed:
            recommendations.append(f"Fields resueltos por similitud (considerar renombrar): {', '.join(renamed)}")
        if extra:
            recommendations.append(f"{len(extra)} fields de Airtable no se sincronizan")
        if source != "metadata":
            recommendations.append("Dar permiso schema.bases:read al token para una validación exacta")

        return {
            "valid": not required_missing,
            "source": source,
            "table_name": self.airtable.table_name,
            "resolved": resolved,
            "missing_fields": missing,
            "required_missing": required_missing,
            "extra_fields": extra,
            "recommendations": recommendations,
        }

    def table_template(self) -> dict[str, Any]:
        return build_table_template(self.mappings, self.airtable.table_name)

    # ------------------------------------------------------------------
    # Media
    # ------------------------------------------------------------------

    def media_statistics(self) -> dict[str, Any]:
        if self.media_importer is None:
            return {}
        return self.media_importer.statistics()

    def cleanup_media(self) -> int:
        if self.media_importer is None:
            return 0
        return self.media_importer.cleanup_orphaned_media()


def attachment_field_types(mappings: list[FieldMapping]) -> dict[str, FieldType]:
    return {m.key: m.field_type for m in mappings if m.is_attachment}


def build_from_settings(db: Session, settings: Settings) -> ListingSyncService:
    """
    Constructor "oficial" del servicio a partir de Settings y una sesión.

    Requiere AIRTABLE_TOKEN y AIRTABLE_BASE_ID.
    """
    # Import local para no acoplar el paquete de sync a la capa de repositorios
    from app.infrastructure.repositories.listing_repository import ListingRepository

    if not settings.AIRTABLE_TOKEN:
        raise SyncConfigError("Falta variable de entorno obligatoria: AIRTABLE_TOKEN")
    if not settings.AIRTABLE_BASE_ID:
        raise SyncConfigError("Falta variable de entorno obligatoria: AIRTABLE_BASE_ID")

    mappings = get_listing_field_mappings()
    synonyms = load_field_synonyms(settings.FIELD_SYNONYMS_FILE or None)
    store = ListingRepository(db, attachment_field_types(mappings))

    airtable = AirtableClient(
        AirtableCredentials(token=settings.AIRTABLE_TOKEN, base_id=settings.AIRTABLE_BASE_ID),
        settings.AIRTABLE_TABLE_NAME,
        base_url=settings.AIRTABLE_API_URL,
        timeout_s=settings.AIRTABLE_TIMEOUT_S,
        max_retries=settings.AIRTABLE_MAX_RETRIES,
    )
    importer = MediaImporter(
        store,
        settings.MEDIA_ROOT,
        timeout_s=settings.MEDIA_DOWNLOAD_TIMEOUT_S,
        max_workers=settings.MEDIA_DOWNLOAD_WORKERS,
        max_file_size=settings.MEDIA_MAX_FILE_SIZE,
        thumbnail_sizes=get_thumbnail_sizes(settings.THUMBNAIL_SIZES),
    )
    return ListingSyncService(
        store=store,
        airtable=airtable,
        mappings=mappings,
        synonyms=synonyms,
        media_importer=importer,
        page_size=settings.AIRTABLE_PAGE_SIZE,
    )
