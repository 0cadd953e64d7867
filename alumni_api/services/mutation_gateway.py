"""The only write path for content records.

Each operation validates everything it can before touching storage. A rejected
field or attachment aborts the whole operation with nothing written. When an
update replaces an image, the old blob is deleted only after the record points at
the new one, so a failure part-way never leaves a record without its image.
"""
from typing import Any, Callable, Mapping, Optional

from alumni_api.core.exceptions import ConflictError, ContentServiceException, StorageUnavailableError, ValidationError
from alumni_api.core.logging_config import get_logger
from alumni_api.core.security import RequestContext, ensure_admin
from alumni_api.core.storage_calls import call_storage
from alumni_api.models.common import Attachment, AttachmentUpload, ContentKind, new_entity_id, utc_now
from alumni_api.models.content import (
    TOGGLE_FLAGS,
    ContentRecord,
    validate_create_fields,
    validate_model,
    validate_update_fields,
)
from alumni_api.models.event import EventRecord, EventStatusUpdate
from alumni_api.services.attachment_store import AttachmentStore
from alumni_api.services.attachment_validator import (
    AttachmentMeta,
    AttachmentPolicyTable,
    validate_attachment,
)
from alumni_api.services.content_store import ContentStore
from alumni_api.services.predicates import Predicate

logger = get_logger(__name__)


class MutationGateway:
    def __init__(
        self,
        content_store: ContentStore,
        attachment_store: AttachmentStore,
        policies: Optional[AttachmentPolicyTable] = None,
        timeout_seconds: float = 10.0,
    ):
        self.content_store = content_store
        self.attachment_store = attachment_store
        self.policies = policies or AttachmentPolicyTable()
        self.timeout_seconds = timeout_seconds

    def _call(self, operation: str, fn: Callable, *args: Any, timeout: Optional[float] = None):
        return call_storage(
            operation, fn, *args,
            timeout=timeout if timeout is not None else self.timeout_seconds,
        )

    def _check_attachment(self, kind: ContentKind, upload: AttachmentUpload) -> None:
        verdict = validate_attachment(
            AttachmentMeta(mime_type=upload.mime_type, byte_size=upload.byte_size),
            self.policies.for_kind(kind),
        )
        if not verdict.accepted:
            logger.info(f"Rejected {kind.value} attachment ({upload.mime_type}, {upload.byte_size} bytes): {verdict.reason.value}")
        verdict.raise_for_rejection()

    def _store_attachment(
        self, kind: ContentKind, upload: AttachmentUpload, entity_id: str, timeout: Optional[float]
    ) -> Attachment:
        return self._call(
            f"store {kind.value} attachment",
            self.attachment_store.store, upload.content, upload.mime_type, entity_id,
            timeout=timeout,
        )

    def _discard_attachment(self, attachment: Attachment, reason: str, timeout: Optional[float]) -> None:
        """Best-effort cleanup after the record change is already committed."""
        try:
            self._call(f"delete {reason} attachment", self.attachment_store.delete, attachment.id, timeout=timeout)
        except StorageUnavailableError:
            logger.warning(f"{reason.capitalize()} attachment {attachment.id} could not be deleted and is orphaned")

    def _ensure_unique_class_name(
        self, name: str, graduation_year: int, exclude_id: Optional[str], timeout: Optional[float]
    ) -> None:
        result = self._call(
            "check class group name",
            self.content_store.query, ContentKind.CLASS_GROUP, Predicate().eq("graduation_year", graduation_year),
            timeout=timeout,
        )
        wanted = name.casefold()
        for group in result.items:
            if group.id != exclude_id and group.name.casefold() == wanted:
                raise ConflictError(
                    "A group with this name already exists for this graduation year",
                    error_code="DUPLICATE_CLASS_GROUP",
                    details={"name": name, "graduation_year": graduation_year}
                )

    def create(
        self,
        ctx: RequestContext,
        kind: ContentKind,
        fields: Mapping[str, Any],
        attachment_upload: Optional[AttachmentUpload] = None,
        timeout: Optional[float] = None,
    ) -> ContentRecord:
        ensure_admin(ctx)
        data = validate_create_fields(kind, fields)
        if kind is ContentKind.CLASS_GROUP:
            self._ensure_unique_class_name(data["name"], data["graduation_year"], None, timeout)

        entity_id = new_entity_id()
        attachment = None
        if attachment_upload is not None:
            self._check_attachment(kind, attachment_upload)
            attachment = self._store_attachment(kind, attachment_upload, entity_id, timeout)
            data["attachment"] = attachment
        data["id"] = entity_id

        try:
            record = self._call(f"create {kind.value}", self.content_store.create, kind, data, timeout=timeout)
        except ContentServiceException:
            if attachment is not None:
                logger.warning(f"Attachment {attachment.id} is orphaned: creating {kind.value} {entity_id} failed")
            raise

        logger.info(f"Created {kind.value} {record.id}" + (f" with attachment {attachment.id}" if attachment else ""))
        return record

    def update(
        self,
        ctx: RequestContext,
        kind: ContentKind,
        entity_id: str,
        fields: Mapping[str, Any],
        attachment_upload: Optional[AttachmentUpload] = None,
        timeout: Optional[float] = None,
    ) -> ContentRecord:
        ensure_admin(ctx)
        patch = validate_update_fields(kind, fields)
        if not patch and attachment_upload is None:
            raise ValidationError(None, "No update data provided", error_code="EMPTY_UPDATE")

        existing = self._call(f"get {kind.value}", self.content_store.get, kind, entity_id, timeout=timeout)
        # Cross-field invariants (date ordering) on the merged result, before any write
        self.content_store.validate_record(kind, {**existing.model_dump(), **patch})
        if kind is ContentKind.CLASS_GROUP and ("name" in patch or "graduation_year" in patch):
            self._ensure_unique_class_name(
                patch.get("name", existing.name),
                patch.get("graduation_year", existing.graduation_year),
                entity_id,
                timeout,
            )

        new_attachment = None
        if attachment_upload is not None:
            self._check_attachment(kind, attachment_upload)
            new_attachment = self._store_attachment(kind, attachment_upload, entity_id, timeout)
            patch["attachment"] = new_attachment

        try:
            previous, record = self._call(
                f"update {kind.value}",
                self.content_store.replace_with_previous, kind, entity_id, patch,
                timeout=timeout,
            )
        except ContentServiceException:
            if new_attachment is not None:
                logger.warning(f"Attachment {new_attachment.id} is orphaned: updating {kind.value} {entity_id} failed")
            raise

        # The row that was actually replaced, which may differ from ``existing``
        if new_attachment is not None and previous.attachment is not None:
            self._discard_attachment(previous.attachment, "replaced", timeout)

        logger.info(f"Updated {kind.value} {entity_id}: {', '.join(sorted(patch))}")
        return record

    def toggle(
        self,
        ctx: RequestContext,
        kind: ContentKind,
        entity_id: str,
        flag_name: str,
        timeout: Optional[float] = None,
    ) -> ContentRecord:
        ensure_admin(ctx)
        flags = TOGGLE_FLAGS[kind]
        if flag_name not in flags:
            raise ValidationError(
                flag_name,
                f"is not a toggleable flag for {kind.label.lower()}s (expected one of: {', '.join(flags)})",
                error_code="INVALID_FLAG",
            )

        existing = self._call(f"get {kind.value}", self.content_store.get, kind, entity_id, timeout=timeout)
        new_value = not getattr(existing, flag_name)
        patch = {flag_name: new_value}
        if (
            isinstance(existing, EventRecord)
            and flag_name == "is_featured_on_homepage"
            and new_value
            and not existing.featured_order
        ):
            # Newly featured events go to the end of the homepage order
            patch["featured_order"] = int(utc_now().timestamp() * 1000)

        record = self._call(f"toggle {kind.value}", self.content_store.replace, kind, entity_id, patch, timeout=timeout)
        logger.info(f"Toggled {flag_name} on {kind.value} {entity_id} to {new_value}")
        return record

    def set_event_status(
        self,
        ctx: RequestContext,
        entity_id: str,
        status: Any,
        timeout: Optional[float] = None,
    ) -> ContentRecord:
        ensure_admin(ctx)
        update = validate_model(EventStatusUpdate, {"status": status})
        record = self._call(
            "set event status",
            self.content_store.replace, ContentKind.EVENT, entity_id, {"event_status": update.status},
            timeout=timeout,
        )
        logger.info(f"Set status of event {entity_id} to {update.status.value}")
        return record

    def delete(
        self,
        ctx: RequestContext,
        kind: ContentKind,
        entity_id: str,
        timeout: Optional[float] = None,
    ) -> None:
        ensure_admin(ctx)
        removed = self._call(f"delete {kind.value}", self.content_store.remove, kind, entity_id, timeout=timeout)
        if removed.attachment is not None:
            self._discard_attachment(removed.attachment, "deleted", timeout)
        logger.info(f"Deleted {kind.value} {entity_id}")
