"""Read path for public (non-admin) callers.

Listings narrow the store query to exactly the visible rows, so counting and
paging happen in the store. Every returned record is still checked by the
visibility resolver, and hidden records are reported exactly like missing ones.
"""
from datetime import datetime
from typing import List, Optional

from alumni_api.core.logging_config import get_logger
from alumni_api.core.storage_calls import call_storage
from alumni_api.models.common import ContentFilters, ContentKind, Page, Pagination, ensure_utc, utc_now
from alumni_api.models.content import ContentRecord
from alumni_api.models.event import EventRecord
from alumni_api.services.content_store import ContentStore, not_found
from alumni_api.services.listing import build_listing
from alumni_api.services.predicates import Predicate, SortKey
from alumni_api.services.visibility import is_visible, restrict_to_visible

logger = get_logger(__name__)


class PublicQueryService:
    def __init__(self, content_store: ContentStore, timeout_seconds: float = 10.0):
        self.content_store = content_store
        self.timeout_seconds = timeout_seconds

    def _timeout(self, timeout: Optional[float]) -> float:
        return timeout if timeout is not None else self.timeout_seconds

    def list(
        self,
        kind: ContentKind,
        filters: Optional[ContentFilters] = None,
        pagination: Optional[Pagination] = None,
        as_of: Optional[datetime] = None,
        timeout: Optional[float] = None,
    ) -> Page:
        filters = filters or ContentFilters()
        pagination = pagination or Pagination()
        as_of = ensure_utc(as_of) if as_of else utc_now()

        predicate, sort = build_listing(kind, filters, as_of)
        restrict_to_visible(kind, predicate, as_of)

        result = call_storage(
            f"list {kind.value}",
            self.content_store.query, kind, predicate, sort, pagination.offset, pagination.limit,
            timeout=self._timeout(timeout),
        )
        visible = [record for record in result.items if is_visible(record, as_of)]
        if len(visible) != len(result.items):
            logger.warning(f"Store returned {len(result.items) - len(visible)} hidden {kind.value} rows")
        return Page.build(visible, result.total_count, pagination)

    def get(
        self,
        kind: ContentKind,
        entity_id: str,
        as_of: Optional[datetime] = None,
        timeout: Optional[float] = None,
    ) -> ContentRecord:
        as_of = ensure_utc(as_of) if as_of else utc_now()
        record = call_storage(
            f"get {kind.value}",
            self.content_store.get, kind, entity_id,
            timeout=self._timeout(timeout),
        )
        if not is_visible(record, as_of):
            raise not_found(kind)
        return record

    def list_featured_events(
        self,
        limit: int = 3,
        as_of: Optional[datetime] = None,
        timeout: Optional[float] = None,
    ) -> List[EventRecord]:
        """Upcoming published events flagged for the homepage."""
        as_of = ensure_utc(as_of) if as_of else utc_now()
        predicate = (
            restrict_to_visible(ContentKind.EVENT, Predicate(), as_of)
            .eq("is_featured_on_homepage", True)
            .gte("start_date", as_of)
        )
        sort = [SortKey("featured_order"), SortKey("start_date"), SortKey("id")]
        result = call_storage(
            "list featured events",
            self.content_store.query, ContentKind.EVENT, predicate, sort, 0, limit,
            timeout=self._timeout(timeout),
        )
        return [record for record in result.items if is_visible(record, as_of)]
