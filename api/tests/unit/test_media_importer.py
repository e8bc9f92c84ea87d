from __future__ import annotations

from io import BytesIO
from pathlib import Path

from PIL import Image

from app.domain.entities.listing import Listing
from app.infrastructure.external.airtable_sync.types import AttachmentDescriptor
from app.shared.constants.sync_constants import SyncErrorKind


HOUSE_URL = "https://dl.airtable.com/.attachments/house.png"


def _png(size: tuple[int, int]) -> bytes:
    buf = BytesIO()
    Image.new("RGB", size, color=(10, 120, 200)).save(buf, format="PNG")
    return buf.getvalue()


def _descriptor(remote_id: str = "attHOUSE", url: str = HOUSE_URL, **kwargs) -> AttachmentDescriptor:
    kwargs.setdefault("filename", "front house.png")
    kwargs.setdefault("mime_type", "image/png")
    return AttachmentDescriptor(remote_id=remote_id, url=url, **kwargs)


def test_import_stores_file_and_thumbnails(media_importer, fake_airtable, store, png_image) -> None:
    fake_airtable.files[HOUSE_URL] = (png_image, "image/png")

    outcome = media_importer.import_attachments([_descriptor()], "recA")

    assert outcome.issues == []
    assert outcome.downloaded == 1
    [attachment] = store.list_attachments()
    assert outcome.attachment_ids == [attachment.id]
    assert attachment.remote_attachment_id == "attHOUSE"
    assert attachment.filename == "front house.png"
    assert Path(attachment.file_path).name == "attHOUSE_front_house.png"
    assert Path(attachment.file_path).read_bytes() == png_image
    assert set(attachment.thumbnails) == {"50", "150"}
    assert all(Path(p).exists() for p in attachment.thumbnails.values())


def test_thumbnails_skip_sizes_larger_than_image(media_importer, fake_airtable, store) -> None:
    fake_airtable.files[HOUSE_URL] = (_png((100, 80)), "image/png")

    media_importer.import_attachments([_descriptor()], "recA")

    assert set(store.list_attachments()[0].thumbnails) == {"50"}


def test_same_attachment_is_downloaded_once_across_records(media_importer, fake_airtable, store, png_image) -> None:
    fake_airtable.files[HOUSE_URL] = (png_image, "image/png")

    first = media_importer.import_attachments([_descriptor()], "recA")
    second = media_importer.import_attachments([_descriptor()], "recB")

    assert first.attachment_ids == second.attachment_ids
    assert second.downloaded == 0
    assert fake_airtable.downloads == [HOUSE_URL]
    assert len(store.list_attachments()) == 1


def test_duplicate_descriptors_in_one_batch(media_importer, fake_airtable, store, png_image) -> None:
    fake_airtable.files[HOUSE_URL] = (png_image, "image/png")

    outcome = media_importer.import_attachments([_descriptor(), _descriptor()], "recA")

    assert len(outcome.attachment_ids) == 1
    assert fake_airtable.downloads == [HOUSE_URL]


def test_failed_download_does_not_block_siblings(media_importer, fake_airtable, store, png_image) -> None:
    fake_airtable.files[HOUSE_URL] = (png_image, "image/png")
    missing = _descriptor("attGONE", "https://dl.airtable.com/.attachments/gone.png", filename="gone.png")

    outcome = media_importer.import_attachments([missing, _descriptor()], "recA")

    assert len(outcome.attachment_ids) == 1
    assert store.get_attachment(outcome.attachment_ids[0]).remote_attachment_id == "attHOUSE"
    [issue] = outcome.issues
    assert issue.kind == SyncErrorKind.ATTACHMENT_IMPORT
    assert issue.record_id == "recA"
    assert issue.field == "attGONE"
    assert "404" in issue.message


def test_unsupported_type_is_rejected_before_download(media_importer, fake_airtable, store) -> None:
    video = _descriptor("attVIDEO", "https://dl.airtable.com/.attachments/tour.mp4", filename="tour.mp4", mime_type="video/mp4")

    outcome = media_importer.import_attachments([video], "recA")

    assert outcome.attachment_ids == []
    assert fake_airtable.downloads == []
    assert "video/mp4" in outcome.issues[0].message


def test_oversized_attachment_is_rejected(media_importer, fake_airtable) -> None:
    big = _descriptor(size=50 * 1024 * 1024)

    outcome = media_importer.import_attachments([big], "recA")

    assert outcome.attachment_ids == []
    assert fake_airtable.downloads == []
    assert len(outcome.issues) == 1


def test_mime_type_falls_back_to_response_header(media_importer, fake_airtable, store, png_image) -> None:
    fake_airtable.files[HOUSE_URL] = (png_image, "image/png; charset=binary")

    outcome = media_importer.import_attachments([_descriptor(filename="photo", mime_type="")], "recA")

    [attachment] = store.list_attachments()
    assert outcome.issues == []
    assert attachment.mime_type == "image/png"
    assert Path(attachment.file_path).name == "attHOUSE_photo.png"


def test_cleanup_removes_only_unreferenced_media(media_importer, fake_airtable, store, png_image) -> None:
    other_url = "https://dl.airtable.com/.attachments/plan.png"
    fake_airtable.files[HOUSE_URL] = (png_image, "image/png")
    fake_airtable.files[other_url] = (png_image, "image/png")

    kept = media_importer.import_attachments([_descriptor()], "recA").attachment_ids[0]
    orphan = media_importer.import_attachments([_descriptor("attPLAN", other_url, filename="plan.png")], "recA").attachment_ids[0]
    store.create_listing(Listing(title="Casa", fields={"main_photo": kept}))
    orphan_path = Path(store.get_attachment(orphan).file_path)

    assert media_importer.cleanup_orphaned_media() == 1

    assert store.get_attachment(kept) is not None
    assert store.get_attachment(orphan) is None
    assert not orphan_path.exists()


def test_statistics(media_importer, fake_airtable, store, png_image) -> None:
    fake_airtable.files[HOUSE_URL] = (png_image, "image/png")
    media_importer.import_attachments([_descriptor()], "recA")

    stats = media_importer.statistics()

    assert stats["total_attachments"] == 1
    assert stats["total_size_bytes"] == len(png_image)
    assert stats["by_mime_type"] == {"image/png": 1}
    assert stats["orphaned"] == 1
    assert stats["last_import"] is not None
