"""Admin read and management path.

Admins see every record regardless of publish flags or date windows. Writes are
delegated to the mutation gateway so there is still a single write path.
"""
from typing import Any, Mapping, Optional

from alumni_api.core.logging_config import get_logger
from alumni_api.core.security import RequestContext, ensure_admin
from alumni_api.core.storage_calls import call_storage
from alumni_api.models.common import (
    AttachmentUpload,
    ContentFilters,
    ContentKind,
    Page,
    Pagination,
    utc_now,
)
from alumni_api.models.content import ContentRecord
from alumni_api.services.content_store import ContentStore
from alumni_api.services.listing import build_listing
from alumni_api.services.mutation_gateway import MutationGateway

logger = get_logger(__name__)


class AdminContentService:
    def __init__(self, content_store: ContentStore, gateway: MutationGateway, timeout_seconds: float = 10.0):
        self.content_store = content_store
        self.gateway = gateway
        self.timeout_seconds = timeout_seconds

    def _timeout(self, timeout: Optional[float]) -> float:
        return timeout if timeout is not None else self.timeout_seconds

    def list_all(
        self,
        ctx: RequestContext,
        kind: ContentKind,
        filters: Optional[ContentFilters] = None,
        pagination: Optional[Pagination] = None,
        timeout: Optional[float] = None,
    ) -> Page:
        ensure_admin(ctx)
        filters = filters or ContentFilters()
        pagination = pagination or Pagination()
        predicate, sort = build_listing(kind, filters, utc_now(), allow_published=True)
        result = call_storage(
            f"admin list {kind.value}",
            self.content_store.query, kind, predicate, sort, pagination.offset, pagination.limit,
            timeout=self._timeout(timeout),
        )
        return Page.build(result.items, result.total_count, pagination)

    def get_all(
        self,
        ctx: RequestContext,
        kind: ContentKind,
        entity_id: str,
        timeout: Optional[float] = None,
    ) -> ContentRecord:
        ensure_admin(ctx)
        return call_storage(
            f"admin get {kind.value}",
            self.content_store.get, kind, entity_id,
            timeout=self._timeout(timeout),
        )

    def create(
        self,
        ctx: RequestContext,
        kind: ContentKind,
        fields: Mapping[str, Any],
        attachment_upload: Optional[AttachmentUpload] = None,
        timeout: Optional[float] = None,
    ) -> ContentRecord:
        return self.gateway.create(ctx, kind, fields, attachment_upload, timeout=self._timeout(timeout))

    def update(
        self,
        ctx: RequestContext,
        kind: ContentKind,
        entity_id: str,
        fields: Mapping[str, Any],
        attachment_upload: Optional[AttachmentUpload] = None,
        timeout: Optional[float] = None,
    ) -> ContentRecord:
        return self.gateway.update(ctx, kind, entity_id, fields, attachment_upload, timeout=self._timeout(timeout))

    def toggle(
        self, ctx: RequestContext, kind: ContentKind, entity_id: str, flag_name: str, timeout: Optional[float] = None
    ) -> ContentRecord:
        return self.gateway.toggle(ctx, kind, entity_id, flag_name, timeout=self._timeout(timeout))

    def set_event_status(
        self, ctx: RequestContext, entity_id: str, status: Any, timeout: Optional[float] = None
    ) -> ContentRecord:
        return self.gateway.set_event_status(ctx, entity_id, status, timeout=self._timeout(timeout))

    def delete(self, ctx: RequestContext, kind: ContentKind, entity_id: str, timeout: Optional[float] = None) -> None:
        self.gateway.delete(ctx, kind, entity_id, timeout=self._timeout(timeout))
