"""
Escritura base local -> Airtable.

- Listing sin remote_record_id: create y se persiste el id devuelto en el acto.
- Listing vinculado: PATCH por el id guardado (nunca un segundo create).
"""

from __future__ import annotations

from typing import Mapping, Optional

from loguru import logger

from app.domain.entities.listing import Listing
from app.domain.entities.sync_result import SyncIssue, SyncResult
from app.domain.repositories.listing_store import IListingStore
from app.shared.constants.sync_constants import SyncErrorKind
from app.shared.exceptions.sync import ConnectivityError

from .airtable_client import AirtableClient
from .listing_calculator import ListingCalculator
from .record_translator import RecordTranslator
from .types import utc_now


# Respuestas Airtable que invalidan solo el registro enviado, no la pasada
RECORD_LEVEL_HTTP_STATUSES = frozenset({400, 404, 422})


class AirtableRemoteWriter:
    def __init__(
        self,
        client: AirtableClient,
        store: IListingStore,
        translator: RecordTranslator,
        calculator: Optional[ListingCalculator] = None,
    ):
        self.client = client
        self.store = store
        self.translator = translator
        self.calculator = calculator or ListingCalculator()

    def push_listing(
        self,
        listing: Listing,
        result: SyncResult,
        remote_names: Optional[Mapping[str, str]] = None,
    ) -> Optional[str]:
        """Envía un listing y retorna el id Airtable vinculado (None si se omitió)."""
        record_key = str(listing.id)
        if not (listing.title or "").strip():
            result.skipped += 1
            result.add_issue(
                SyncIssue(kind=SyncErrorKind.RECORD_SKIPPED, message="listing sin titulo", record_id=record_key, field="title")
            )
            return None

        self._refresh_calculated(listing)
        fields = self.translator.to_remote(listing, remote_names, attachment_url=self._attachment_url)
        if not fields:
            result.skipped += 1
            return None

        try:
            if listing.is_linked:
                remote = self.client.update_record(listing.remote_record_id, fields)
                result.updated += 1
            else:
                remote = self.client.create_record(fields)
                result.created += 1
        except ConnectivityError as e:
            if e.http_status not in RECORD_LEVEL_HTTP_STATUSES:
                raise
            logger.error(f"Airtable rechazó el listing {listing.id}: {e.message}")
            result.errored += 1
            result.add_issue(SyncIssue(kind=SyncErrorKind.RECORD_FAILED, message=e.message, record_id=record_key))
            return None

        self.store.mark_synced(listing.id, remote.record_id, utc_now())
        result.linked_ids[remote.record_id] = listing.id
        logger.debug(f"Listing {listing.id} -> Airtable {remote.record_id}")
        return remote.record_id

    def _refresh_calculated(self, listing: Listing) -> None:
        for key, value in self.calculator.calculate(listing).items():
            if listing.fields.get(key) != value:
                self.store.set_field(listing.id, key, value)
        self.calculator.apply(listing)

    def _attachment_url(self, attachment_id: int) -> Optional[str]:
        attachment = self.store.get_attachment(attachment_id)
        return attachment.source_url if attachment and attachment.source_url else None
