"""
Upsert idempotente Airtable -> base local.

Identidad: listing cuyo remote_record_id coincide con el id Airtable.
- existe  -> update
- no existe -> create (ya vinculado en el mismo commit)

Re-ejecutar una pasada con los mismos datos no crea listings nuevos.
"""

from __future__ import annotations

from typing import Any, Optional

from loguru import logger

from app.domain.entities.listing import Listing
from app.domain.entities.sync_result import SyncIssue, SyncResult
from app.domain.repositories.listing_store import IListingStore
from app.shared.constants.sync_constants import CORE_FIELD_KEYS, ListingStatus, SyncErrorKind
from app.shared.exceptions.sync import RecordSkippedError

from .record_translator import TranslatedRecord
from .types import AirtableRecord, utc_now
from .value_sanitizer import sanitize_text


PLACEHOLDER_TITLE_PREFIX = "Property Listing"
TITLE_MAX_LENGTH = 200


def _fmt_count(value: Any) -> str:
    if isinstance(value, float):
        return f"{value:g}"
    return "" if value is None else str(value)


def synthesize_title(values: dict[str, Any], record: AirtableRecord) -> str:
    """
    Titulo de respaldo cuando Airtable no trae "Property Name".

    Orden: direccion + ciudad, tipo + dormitorios/baños, primer texto
    suficientemente largo del registro crudo, placeholder con fecha.
    Lanza RecordSkippedError si el registro no trae ningún dato.
    """
    parts = [str(values[k]) for k in ("address", "city") if values.get(k)]
    if parts:
        return ", ".join(parts)[:TITLE_MAX_LENGTH]

    property_type = values.get("property_type")
    if property_type:
        bedrooms = values.get("bedrooms")
        bathrooms = values.get("bathrooms")
        if bedrooms or bathrooms:
            return f"{property_type} ({_fmt_count(bedrooms)}BR/{_fmt_count(bathrooms)}BA)"[:TITLE_MAX_LENGTH]
        return str(property_type)[:TITLE_MAX_LENGTH]

    for raw in record.fields.values():
        if isinstance(raw, str) and len(raw.strip()) > 3:
            return sanitize_text(raw[:100])

    if not record.fields:
        raise RecordSkippedError(record.record_id, "sin titulo ni datos para generarlo")

    stamp = record.created_time or utc_now()
    return f"{PLACEHOLDER_TITLE_PREFIX} {stamp.strftime('%Y-%m-%d %H:%M:%S')}"


class ListingUpsertEngine:
    def __init__(self, store: IListingStore):
        self.store = store

    def upsert(self, translated: TranslatedRecord, record: AirtableRecord, result: SyncResult) -> Optional[Listing]:
        """
        Aplica un registro traducido sobre la base local y actualiza result.
        Los issues de validación se adjuntan al resultado aun si el upsert
        termina bien.
        """
        result.extend_issues(translated.issues)
        result.media_imported += translated.media_downloaded

        values = dict(translated.values)
        existing = self.store.find_by_remote_id(record.record_id)

        title = values.get("title") or ""
        if not title:
            try:
                title = synthesize_title(values, record)
            except RecordSkippedError as e:
                logger.warning(e.message)
                result.skipped += 1
                result.add_issue(
                    SyncIssue(kind=SyncErrorKind.RECORD_SKIPPED, message=e.reason, record_id=record.record_id, field="title")
                )
                return None
            if existing and existing.title and title.startswith(PLACEHOLDER_TITLE_PREFIX):
                title = existing.title

        typed = {k: v for k, v in values.items() if k not in CORE_FIELD_KEYS}
        now = utc_now()

        if existing is None:
            listing = self.store.create_listing(
                Listing(
                    title=title,
                    body=values.get("description", ""),
                    status=ListingStatus.PUBLISH.value,
                    fields=typed,
                    remote_record_id=record.record_id,
                    last_synced_at=now,
                )
            )
            result.created += 1
            logger.debug(f"Listing {listing.id} creado desde {record.record_id}")
        else:
            existing.title = title
            if "description" in values:
                existing.body = values["description"]
            existing.status = ListingStatus.PUBLISH.value
            existing.fields = {**existing.fields, **typed}
            listing = self.store.update_listing(existing)
            self.store.mark_synced(listing.id, record.record_id, now)
            result.updated += 1
            logger.debug(f"Listing {listing.id} actualizado desde {record.record_id}")

        result.linked_ids[record.record_id] = listing.id
        return listing
