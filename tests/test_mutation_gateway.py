import threading
import time
from datetime import timedelta

import pytest

from alumni_api.core.exceptions import (
    AttachmentTooLargeError,
    ConflictError,
    InvalidAttachmentTypeError,
    NotFoundError,
    StorageUnavailableError,
    UnauthorizedError,
    ValidationError,
)
from alumni_api.models.common import AttachmentUpload, ContentKind
from alumni_api.models.event import EventStatus
from alumni_api.services.attachment_store import InMemoryAttachmentStore
from alumni_api.services.attachment_validator import AttachmentPolicy, AttachmentPolicyTable
from alumni_api.services.container import assemble
from alumni_api.services.content_store import InMemoryContentBackend


class SlowBackend(InMemoryContentBackend):
    def __init__(self, delay):
        super().__init__()
        self.delay = delay

    def insert(self, kind, row):
        time.sleep(self.delay)
        return super().insert(kind, row)


class BrokenBackend(InMemoryContentBackend):
    def insert(self, kind, row):
        raise ConnectionError("connection reset by peer")


class BrokenAttachmentStore(InMemoryAttachmentStore):
    def store(self, content, declared_mime_type, owner_entity_id):
        raise OSError("bucket offline")


class FailingDeleteAttachmentStore(InMemoryAttachmentStore):
    def delete(self, attachment_id):
        raise OSError("bucket offline")


class InterleavingAttachmentStore(InMemoryAttachmentStore):
    """Runs ``before_store`` once, just before the next upload is stored."""

    def __init__(self):
        super().__init__()
        self.before_store = None

    def store(self, content, declared_mime_type, owner_entity_id):
        hook, self.before_store = self.before_store, None
        if hook is not None:
            hook()
        return super().store(content, declared_mime_type, owner_entity_id)


class TestAuthorization:
    def test_every_mutation_requires_admin(self, services, public_ctx, event_fields):
        gateway = services.gateway
        with pytest.raises(UnauthorizedError):
            gateway.create(public_ctx, ContentKind.EVENT, event_fields())
        with pytest.raises(UnauthorizedError):
            gateway.update(public_ctx, ContentKind.EVENT, "any", {"title": "x"})
        with pytest.raises(UnauthorizedError):
            gateway.toggle(public_ctx, ContentKind.EVENT, "any", "is_published")
        with pytest.raises(UnauthorizedError):
            gateway.set_event_status(public_ctx, "any", "ongoing")
        with pytest.raises(UnauthorizedError):
            gateway.delete(public_ctx, ContentKind.EVENT, "any")
        assert services.content_store.query(ContentKind.EVENT).total_count == 0


class TestCreate:
    def test_create_returns_persisted_record(self, services, admin_ctx, event_fields):
        record = services.gateway.create(admin_ctx, ContentKind.EVENT, event_fields())
        assert record.title == "Class of 2010 Reunion"
        assert record.is_published is True
        assert record.event_status is EventStatus.UPCOMING
        assert services.content_store.get(ContentKind.EVENT, record.id) == record

    def test_announcements_start_unpublished(self, services, admin_ctx):
        record = services.gateway.create(admin_ctx, ContentKind.ANNOUNCEMENT, {"title": "Draft"})
        assert record.is_published is False
        assert record.start_date is not None

    def test_create_with_attachment(self, services, admin_ctx, event_fields, png_upload, attachment_store):
        record = services.gateway.create(admin_ctx, ContentKind.EVENT, event_fields(), png_upload)
        assert record.attachment.owner_entity_id == record.id
        assert record.attachment.byte_size == png_upload.byte_size
        assert attachment_store.read(record.attachment.id) == png_upload.content

    def test_first_field_violation_is_reported(self, services, admin_ctx, event_fields):
        with pytest.raises(ValidationError) as exc_info:
            services.gateway.create(admin_ctx, ContentKind.EVENT, event_fields(title="   "))
        assert exc_info.value.field == "title"

    def test_missing_required_field(self, services, admin_ctx, event_fields):
        fields = event_fields()
        del fields["start_date"]
        with pytest.raises(ValidationError) as exc_info:
            services.gateway.create(admin_ctx, ContentKind.EVENT, fields)
        assert exc_info.value.field == "start_date"

    def test_unknown_fields_are_rejected(self, services, admin_ctx, event_fields):
        with pytest.raises(ValidationError) as exc_info:
            services.gateway.create(admin_ctx, ContentKind.EVENT, event_fields(id="chosen-by-client"))
        assert exc_info.value.field == "id"

    def test_graduation_year_bounds(self, services, admin_ctx, class_group_fields):
        with pytest.raises(ValidationError) as exc_info:
            services.gateway.create(admin_ctx, ContentKind.CLASS_GROUP, class_group_fields(graduation_year=1999))
        assert exc_info.value.field == "graduation_year"

    def test_class_group_name_unique_per_year(self, services, admin_ctx, class_group_fields):
        services.gateway.create(admin_ctx, ContentKind.CLASS_GROUP, class_group_fields())
        with pytest.raises(ConflictError):
            services.gateway.create(admin_ctx, ContentKind.CLASS_GROUP, class_group_fields(name="class OF 2015"))
        # Same name in another year is fine
        services.gateway.create(admin_ctx, ContentKind.CLASS_GROUP, class_group_fields(graduation_year=2016))


class TestAttachmentRejection:
    def test_rejected_type_writes_nothing(self, services, admin_ctx, event_fields, attachment_store):
        pdf = AttachmentUpload(content=b"%PDF-1.7", mime_type="application/pdf", filename="flyer.pdf")
        with pytest.raises(InvalidAttachmentTypeError):
            services.gateway.create(admin_ctx, ContentKind.EVENT, event_fields(), pdf)
        assert services.content_store.query(ContentKind.EVENT).total_count == 0
        assert len(attachment_store) == 0

    def test_oversized_update_leaves_record_unchanged(self, backend, attachment_store, admin_ctx, event_fields, png_upload):
        policies = AttachmentPolicyTable(policies={ContentKind.EVENT: AttachmentPolicy(max_bytes=64)})
        services = assemble(backend, attachment_store, policies, timeout_seconds=2.0)
        original = services.gateway.create(admin_ctx, ContentKind.EVENT, event_fields())

        with pytest.raises(AttachmentTooLargeError):
            services.gateway.update(admin_ctx, ContentKind.EVENT, original.id, {"title": "Renamed"}, png_upload)

        assert services.content_store.get(ContentKind.EVENT, original.id) == original
        assert len(attachment_store) == 0


class TestUpdate:
    def test_partial_update(self, services, admin_ctx, event_fields):
        created = services.gateway.create(admin_ctx, ContentKind.EVENT, event_fields())
        updated = services.gateway.update(admin_ctx, ContentKind.EVENT, created.id, {"location": "Library"})
        assert updated.location == "Library"
        assert updated.title == created.title
        assert updated.updated_at >= created.updated_at

    def test_empty_update_is_rejected(self, services, admin_ctx, event_fields):
        created = services.gateway.create(admin_ctx, ContentKind.EVENT, event_fields())
        with pytest.raises(ValidationError):
            services.gateway.update(admin_ctx, ContentKind.EVENT, created.id, {})

    def test_merged_dates_must_be_ordered(self, services, admin_ctx, event_fields):
        created = services.gateway.create(admin_ctx, ContentKind.EVENT, event_fields())
        with pytest.raises(ValidationError) as exc_info:
            services.gateway.update(
                admin_ctx, ContentKind.EVENT, created.id,
                {"end_date": created.start_date - timedelta(days=1)},
            )
        assert exc_info.value.field == "end_date"
        assert services.content_store.get(ContentKind.EVENT, created.id).end_date == created.end_date

    def test_update_missing_record(self, services, admin_ctx):
        with pytest.raises(NotFoundError):
            services.gateway.update(admin_ctx, ContentKind.EVENT, "missing", {"title": "x"})

    def test_replacing_attachment_deletes_old_one(self, services, admin_ctx, event_fields, png_upload, attachment_store):
        created = services.gateway.create(admin_ctx, ContentKind.EVENT, event_fields(), png_upload)
        replacement = AttachmentUpload(content=b"\xff\xd8\xff" + b"\x00" * 32, mime_type="image/jpeg")

        updated = services.gateway.update(admin_ctx, ContentKind.EVENT, created.id, {}, replacement)

        assert updated.attachment.id != created.attachment.id
        assert attachment_store.exists(updated.attachment.id)
        assert not attachment_store.exists(created.attachment.id)

    def test_rename_class_group_into_existing_name(self, services, admin_ctx, class_group_fields):
        services.gateway.create(admin_ctx, ContentKind.CLASS_GROUP, class_group_fields(name="Falcons"))
        other = services.gateway.create(admin_ctx, ContentKind.CLASS_GROUP, class_group_fields(name="Hawks"))
        with pytest.raises(ConflictError):
            services.gateway.update(admin_ctx, ContentKind.CLASS_GROUP, other.id, {"name": "FALCONS"})
        # Keeping its own name is not a conflict
        services.gateway.update(admin_ctx, ContentKind.CLASS_GROUP, other.id, {"name": "hawks"})


class TestToggle:
    def test_toggle_flips_one_flag(self, services, admin_ctx, event_fields):
        created = services.gateway.create(admin_ctx, ContentKind.EVENT, event_fields())
        toggled = services.gateway.toggle(admin_ctx, ContentKind.EVENT, created.id, "is_published")
        assert toggled.is_published is False
        assert toggled.is_featured_on_homepage == created.is_featured_on_homepage
        again = services.gateway.toggle(admin_ctx, ContentKind.EVENT, created.id, "is_published")
        assert again.is_published is True

    def test_featuring_stamps_order(self, services, admin_ctx, event_fields):
        created = services.gateway.create(admin_ctx, ContentKind.EVENT, event_fields())
        featured = services.gateway.toggle(admin_ctx, ContentKind.EVENT, created.id, "is_featured_on_homepage")
        assert featured.is_featured_on_homepage is True
        assert featured.featured_order > 0

    def test_unknown_flag(self, services, admin_ctx, class_group_fields):
        created = services.gateway.create(admin_ctx, ContentKind.CLASS_GROUP, class_group_fields())
        with pytest.raises(ValidationError) as exc_info:
            services.gateway.toggle(admin_ctx, ContentKind.CLASS_GROUP, created.id, "is_published")
        assert exc_info.value.error_code == "INVALID_FLAG"

    def test_pin_announcement(self, services, admin_ctx, announcement_fields):
        created = services.gateway.create(admin_ctx, ContentKind.ANNOUNCEMENT, announcement_fields())
        pinned = services.gateway.toggle(admin_ctx, ContentKind.ANNOUNCEMENT, created.id, "is_pinned")
        assert pinned.is_pinned is True


class TestEventStatus:
    def test_set_status(self, services, admin_ctx, event_fields):
        created = services.gateway.create(admin_ctx, ContentKind.EVENT, event_fields())
        updated = services.gateway.set_event_status(admin_ctx, created.id, "cancelled")
        assert updated.event_status is EventStatus.CANCELLED

    def test_invalid_status(self, services, admin_ctx, event_fields):
        created = services.gateway.create(admin_ctx, ContentKind.EVENT, event_fields())
        with pytest.raises(ValidationError) as exc_info:
            services.gateway.set_event_status(admin_ctx, created.id, "postponed")
        assert exc_info.value.field == "status"


class TestDelete:
    def test_delete_cascades_to_attachment(self, services, admin_ctx, event_fields, png_upload, attachment_store):
        created = services.gateway.create(admin_ctx, ContentKind.EVENT, event_fields(), png_upload)
        services.gateway.delete(admin_ctx, ContentKind.EVENT, created.id)
        with pytest.raises(NotFoundError):
            services.content_store.get(ContentKind.EVENT, created.id)
        assert not attachment_store.exists(created.attachment.id)

    def test_delete_missing(self, services, admin_ctx):
        with pytest.raises(NotFoundError):
            services.gateway.delete(admin_ctx, ContentKind.ANNOUNCEMENT, "missing")


class TestStorageFailures:
    def test_timeout_surfaces_as_storage_unavailable(self, attachment_store, admin_ctx, event_fields):
        services = assemble(SlowBackend(delay=0.5), attachment_store, timeout_seconds=0.05)
        with pytest.raises(StorageUnavailableError) as exc_info:
            services.gateway.create(admin_ctx, ContentKind.EVENT, event_fields())
        assert exc_info.value.error_code == "STORAGE_TIMEOUT"

    def test_per_call_timeout_override(self, attachment_store, admin_ctx, event_fields):
        services = assemble(SlowBackend(delay=0.2), attachment_store, timeout_seconds=0.01)
        record = services.gateway.create(admin_ctx, ContentKind.EVENT, event_fields(), timeout=5.0)
        assert record.id

    def test_backend_failure(self, attachment_store, admin_ctx, event_fields):
        services = assemble(BrokenBackend(), attachment_store, timeout_seconds=2.0)
        with pytest.raises(StorageUnavailableError) as exc_info:
            services.gateway.create(admin_ctx, ContentKind.EVENT, event_fields())
        assert exc_info.value.error_code == "STORAGE_UNAVAILABLE"

    def test_attachment_store_failure_writes_no_record(self, backend, admin_ctx, event_fields, png_upload):
        services = assemble(backend, BrokenAttachmentStore(), timeout_seconds=2.0)
        with pytest.raises(StorageUnavailableError):
            services.gateway.create(admin_ctx, ContentKind.EVENT, event_fields(), png_upload)
        assert services.content_store.query(ContentKind.EVENT).total_count == 0

    def test_delete_survives_attachment_cleanup_failure(self, backend, admin_ctx, event_fields, png_upload, caplog):
        store = FailingDeleteAttachmentStore()
        services = assemble(backend, store, timeout_seconds=2.0)
        created = services.gateway.create(admin_ctx, ContentKind.EVENT, event_fields(), png_upload)

        services.gateway.delete(admin_ctx, ContentKind.EVENT, created.id)

        with pytest.raises(NotFoundError):
            services.admin.get_all(admin_ctx, ContentKind.EVENT, created.id)
        assert store.exists(created.attachment.id)
        assert f"Deleted attachment {created.attachment.id} could not be deleted and is orphaned" in caplog.text

    def test_replacing_attachment_survives_cleanup_failure(self, backend, admin_ctx, event_fields, png_upload):
        store = FailingDeleteAttachmentStore()
        services = assemble(backend, store, timeout_seconds=2.0)
        created = services.gateway.create(admin_ctx, ContentKind.EVENT, event_fields(), png_upload)

        updated = services.gateway.update(admin_ctx, ContentKind.EVENT, created.id, {}, png_upload)

        assert updated.attachment.id != created.attachment.id
        assert services.content_store.get(ContentKind.EVENT, created.id).attachment == updated.attachment


class TestConcurrentWrites:
    def test_replaced_attachment_is_the_one_the_row_held(self, backend, admin_ctx, event_fields, png_upload):
        store = InterleavingAttachmentStore()
        services = assemble(backend, store, timeout_seconds=2.0)
        created = services.gateway.create(admin_ctx, ContentKind.EVENT, event_fields(), png_upload)
        interim = []

        def swap_in_interim_image():
            # Another admin's image lands between our read and our write
            attachment = store.store(b"GIF89a" + b"\x00" * 16, "image/gif", created.id)
            services.content_store.replace(ContentKind.EVENT, created.id, {"attachment": attachment})
            interim.append(attachment)

        store.before_store = swap_in_interim_image
        updated = services.gateway.update(admin_ctx, ContentKind.EVENT, created.id, {}, png_upload)

        assert store.exists(updated.attachment.id)
        assert not store.exists(interim[0].id)

    def test_racing_updates_apply_whole_patches(self, services, admin_ctx, event_fields):
        created = services.gateway.create(admin_ctx, ContentKind.EVENT, event_fields())
        writers = 8
        barrier = threading.Barrier(writers)
        errors = []

        def write(n):
            barrier.wait()
            try:
                services.gateway.update(
                    admin_ctx, ContentKind.EVENT, created.id,
                    {"title": f"Title {n}", "location": f"Hall {n}"},
                )
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=write, args=(n,)) for n in range(writers)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        final = services.content_store.get(ContentKind.EVENT, created.id)
        winner = final.title.split()[-1]
        assert final.location == f"Hall {winner}"
        assert final.description == created.description
        assert final.created_at == created.created_at
        assert final.updated_at >= created.updated_at

    def test_racing_toggles_leave_a_valid_record(self, services, admin_ctx, event_fields):
        created = services.gateway.create(admin_ctx, ContentKind.EVENT, event_fields())
        barrier = threading.Barrier(2)
        results = {}

        def toggle(flag):
            barrier.wait()
            results[flag] = services.gateway.toggle(admin_ctx, ContentKind.EVENT, created.id, flag)

        threads = [
            threading.Thread(target=toggle, args=(flag,))
            for flag in ("is_published", "is_featured_on_homepage")
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        final = services.content_store.get(ContentKind.EVENT, created.id)
        # Last write wins: the stored row is exactly one writer's result
        assert final in results.values()


class TestAdminTimeouts:
    def test_admin_mutations_forward_timeout(self, attachment_store, admin_ctx, event_fields):
        services = assemble(SlowBackend(delay=0.2), attachment_store, timeout_seconds=0.01)
        with pytest.raises(StorageUnavailableError):
            services.admin.create(admin_ctx, ContentKind.EVENT, event_fields())
        record = services.admin.create(admin_ctx, ContentKind.EVENT, event_fields(), timeout=5.0)
        assert record.id
