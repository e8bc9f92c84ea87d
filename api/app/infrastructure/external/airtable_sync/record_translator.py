"""
Traducción registro Airtable <-> valores canonicos del listing.

Pull: resuelve nombres, sanea cada valor y delega los adjuntos al importer.
Push: arma el payload de fields Airtable desde un Listing local.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional, Sequence

from loguru import logger

from app.domain.entities.listing import Listing
from app.domain.entities.sync_result import SyncIssue
from app.shared.constants.sync_constants import FieldType, SyncErrorKind

from .field_resolver import FieldResolutionReport, resolve_mapping
from .media_importer import MediaImporter
from .types import AirtableRecord, AttachmentDescriptor, FieldMapping
from .value_sanitizer import default_for, format_for_remote, is_empty, sanitize_value


@dataclass
class TranslatedRecord:
    """
    Registro canonico listo para el upsert.

    Airtable omite los fields vacíos y los checkbox desmarcados, asi que todo
    field de pull ausente del registro llega con el valor por defecto de su tipo.
    """

    record_id: str
    values: dict[str, Any] = field(default_factory=dict)
    issues: list[SyncIssue] = field(default_factory=list)
    report: FieldResolutionReport = field(default_factory=FieldResolutionReport)
    media_downloaded: int = 0


class RecordTranslator:
    def __init__(
        self,
        mappings: Sequence[FieldMapping],
        synonyms: Optional[Mapping[str, Sequence[str]]] = None,
        media_importer: Optional[MediaImporter] = None,
    ):
        self.mappings = list(mappings)
        self.synonyms = synonyms or {}
        self.media_importer = media_importer

    def to_canonical(self, record: AirtableRecord) -> TranslatedRecord:
        translated = TranslatedRecord(record_id=record.record_id)
        translated.report = resolve_mapping(self.mappings, record.field_names, self.synonyms)

        for mapping in self.mappings:
            name = translated.report.resolved.get(mapping.key)
            if name is None:
                if mapping.pulls:
                    translated.values[mapping.key] = default_for(mapping.field_type)
                continue
            raw = record.fields.get(name)

            if mapping.is_attachment:
                value = self._import_attachments(mapping, raw, translated)
                if value is not None:
                    translated.values[mapping.key] = value
                continue

            sanitized = sanitize_value(raw, mapping)
            if not sanitized.ok:
                logger.warning(f"[{record.record_id}] {mapping.key} ({name}): {sanitized.error}")
                translated.issues.append(
                    SyncIssue(
                        kind=SyncErrorKind.FIELD_VALIDATION,
                        message=sanitized.error,
                        record_id=record.record_id,
                        field=mapping.key,
                    )
                )
            translated.values[mapping.key] = sanitized.value

        return translated

    def _import_attachments(self, mapping: FieldMapping, raw: Any, translated: TranslatedRecord) -> Any:
        if self.media_importer is None:
            return None
        items = raw if isinstance(raw, list) else [raw]
        descriptors = [d for d in (AttachmentDescriptor.from_api(item) for item in items) if d is not None]
        if mapping.field_type == FieldType.ATTACHMENT:
            descriptors = descriptors[:1]
        if not descriptors:
            return None if mapping.field_type == FieldType.ATTACHMENT else []

        outcome = self.media_importer.import_attachments(descriptors, translated.record_id)
        translated.issues.extend(outcome.issues)
        translated.media_downloaded += outcome.downloaded

        if mapping.field_type == FieldType.ATTACHMENT:
            return outcome.attachment_ids[0] if outcome.attachment_ids else None
        return outcome.attachment_ids

    def to_remote(
        self,
        listing: Listing,
        remote_names: Optional[Mapping[str, str]] = None,
        attachment_url: Optional[Callable[[int], Optional[str]]] = None,
    ) -> dict[str, Any]:
        """
        Payload Airtable con los fields no vacíos del listing.

        - remote_names: clave canonica -> nombre real del field en la tabla.
          Si se pasa, los mapeos sin nombre resuelto se omiten.
        - attachment_url: id local de adjunto -> URL pública (para re-subirlo).
        """
        payload: dict[str, Any] = {}
        for mapping in self.mappings:
            if not mapping.pushes:
                continue
            if remote_names is not None and mapping.key not in remote_names:
                continue
            name = remote_names[mapping.key] if remote_names is not None else mapping.airtable_field

            value = listing.get_value(mapping.key)
            if is_empty(value):
                continue

            if mapping.is_attachment:
                formatted = self._attachment_payload(value, attachment_url)
            else:
                formatted = format_for_remote(value, mapping)
            if formatted is None:
                continue
            payload[name] = formatted
        return payload

    @staticmethod
    def _attachment_payload(value: Any, attachment_url: Optional[Callable[[int], Optional[str]]]):
        if attachment_url is None:
            return None
        ids = value if isinstance(value, list) else [value]
        urls = [attachment_url(i) for i in ids if isinstance(i, int)]
        items = [{"url": u} for u in urls if u]
        return items or None
