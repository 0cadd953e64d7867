"""Keyed record storage for events, announcements and class groups.

The store is the single source of truth for both the admin and the public read
paths. Every create/replace is one backend write of the whole validated record, so
readers never see a half-applied mutation. Nothing here caches.
"""
import copy
import re
from dataclasses import dataclass
from threading import Lock
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple

from fastapi.encoders import jsonable_encoder
from postgrest.exceptions import APIError

from alumni_api.core.exceptions import ConflictError, NotFoundError
from alumni_api.core.logging_config import get_logger
from alumni_api.models.common import ContentKind, new_entity_id, utc_now
from alumni_api.models.content import TABLE_NAMES, ContentRecord, validate_record
from alumni_api.services.attachment_store import AttachmentStore
from alumni_api.services.predicates import Condition, Operator, Predicate, SortKey, sort_rows

logger = get_logger(__name__)

Row = Dict[str, Any]

# Fields the store owns; patches cannot set them
PROTECTED_FIELDS = ("id", "kind", "created_at", "updated_at")


@dataclass
class QueryResult:
    items: List[ContentRecord]
    total_count: int


class ContentBackend(Protocol):
    """Persistence primitives. Each method is a single atomic operation."""

    def insert(self, kind: ContentKind, row: Row) -> Row:
        ...

    def fetch(self, kind: ContentKind, entity_id: str) -> Optional[Row]:
        ...

    def update(self, kind: ContentKind, entity_id: str, row: Row) -> Optional[Row]:
        ...

    def remove(self, kind: ContentKind, entity_id: str) -> Optional[Row]:
        ...

    def select(
        self,
        kind: ContentKind,
        predicate: Predicate,
        sort: Sequence[SortKey],
        offset: int,
        limit: Optional[int],
    ) -> Tuple[List[Row], int]:
        ...

    def ping(self) -> None:
        ...


class InMemoryContentBackend:
    """Lock-guarded in-process tables. Rows are copied on the way in and out."""

    def __init__(self):
        self._tables: Dict[ContentKind, Dict[str, Row]] = {kind: {} for kind in ContentKind}
        self._lock = Lock()

    def insert(self, kind: ContentKind, row: Row) -> Row:
        with self._lock:
            table = self._tables[kind]
            if row["id"] in table:
                raise ConflictError(
                    f"{kind.label} with id {row['id']} already exists",
                    error_code="DUPLICATE_ID"
                )
            table[row["id"]] = copy.deepcopy(row)
            return copy.deepcopy(table[row["id"]])

    def fetch(self, kind: ContentKind, entity_id: str) -> Optional[Row]:
        with self._lock:
            row = self._tables[kind].get(entity_id)
            return copy.deepcopy(row) if row is not None else None

    def update(self, kind: ContentKind, entity_id: str, row: Row) -> Optional[Row]:
        with self._lock:
            table = self._tables[kind]
            if entity_id not in table:
                return None
            table[entity_id] = copy.deepcopy(row)
            return copy.deepcopy(row)

    def remove(self, kind: ContentKind, entity_id: str) -> Optional[Row]:
        with self._lock:
            return self._tables[kind].pop(entity_id, None)

    def select(self, kind, predicate, sort, offset, limit):
        with self._lock:
            matches = [copy.deepcopy(row) for row in self._tables[kind].values() if predicate.matches(row)]
        matches = sort_rows(matches, sort)
        end = None if limit is None else offset + limit
        return matches[offset:end], len(matches)

    def ping(self) -> None:
        return None


_SEARCH_UNSAFE = re.compile(r"[,()*%\\]")
# Upper bound for an open-ended PostgREST range
_MAX_RANGE_END = 2 ** 31 - 1


def _literal(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        # Quoted so timestamps and punctuation survive the logic-tree parser
        return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'
    return str(value)


class SupabaseContentBackend:
    """PostgREST tables accessed through the Supabase service client."""

    def __init__(self, client):
        self.client = client

    def _table(self, kind: ContentKind):
        return self.client.table(TABLE_NAMES[kind])

    @staticmethod
    def _encode(row: Row) -> Row:
        # The table already implies the kind
        return jsonable_encoder({k: v for k, v in row.items() if k != "kind"})

    def insert(self, kind: ContentKind, row: Row) -> Row:
        try:
            response = self._table(kind).insert(self._encode(row)).execute()
        except APIError as e:
            if e.code == "23505":
                raise ConflictError(
                    f"{kind.label} with id {row['id']} already exists",
                    error_code="DUPLICATE_ID"
                )
            raise
        return response.data[0]

    def fetch(self, kind: ContentKind, entity_id: str) -> Optional[Row]:
        response = self._table(kind).select("*").eq("id", entity_id).limit(1).execute()
        return response.data[0] if response.data else None

    def update(self, kind: ContentKind, entity_id: str, row: Row) -> Optional[Row]:
        payload = self._encode({k: v for k, v in row.items() if k != "id"})
        response = self._table(kind).update(payload).eq("id", entity_id).execute()
        return response.data[0] if response.data else None

    def remove(self, kind: ContentKind, entity_id: str) -> Optional[Row]:
        response = self._table(kind).delete().eq("id", entity_id).execute()
        return response.data[0] if response.data else None

    @staticmethod
    def _apply_condition(query, condition: Condition):
        value = jsonable_encoder(condition.value)
        if condition.op is Operator.EQ and value is None:
            return query.is_(condition.field, "null")
        if condition.op is Operator.IN:
            return query.in_(condition.field, list(value))
        return getattr(query, condition.op.value)(condition.field, value)

    @staticmethod
    def _filter_text(condition: Condition) -> str:
        """Render a condition in PostgREST's ``or=(...)`` syntax."""
        value = jsonable_encoder(condition.value)
        if condition.op is Operator.EQ and value is None:
            return f"{condition.field}.is.null"
        if condition.op is Operator.IN:
            return f"{condition.field}.in.({','.join(_literal(v) for v in value)})"
        return f"{condition.field}.{condition.op.value}.{_literal(value)}"

    def select(self, kind, predicate, sort, offset, limit):
        query = self._table(kind).select("*", count="exact")
        for condition in predicate.conditions:
            query = self._apply_condition(query, condition)
        for group in predicate.alternatives:
            query = query.or_(",".join(self._filter_text(c) for c in group.conditions))
        if predicate.search is not None:
            term = _SEARCH_UNSAFE.sub(" ", predicate.search.term).strip()
            if term:
                query = query.or_(",".join(f"{name}.ilike.*{term}*" for name in predicate.search.fields))
        for key in sort:
            query = query.order(key.field, desc=key.descending)
        if limit is not None:
            query = query.range(offset, offset + limit - 1)
        elif offset:
            query = query.range(offset, _MAX_RANGE_END)
        response = query.execute()
        rows = response.data or []
        total = response.count if response.count is not None else len(rows)
        return rows, total

    def ping(self) -> None:
        self._table(ContentKind.EVENT).select("id").limit(1).execute()


def not_found(kind: ContentKind) -> NotFoundError:
    return NotFoundError(f"{kind.label} not found", error_code=f"{kind.name}_NOT_FOUND")


class ContentStore:
    def __init__(self, backend: ContentBackend, attachment_store: AttachmentStore):
        self.backend = backend
        self.attachment_store = attachment_store

    def validate_record(self, kind: ContentKind, row: Mapping[str, Any]) -> ContentRecord:
        """Check a full record against the kind's invariants without writing it."""
        return validate_record(kind, row)

    def create(self, kind: ContentKind, row: Mapping[str, Any]) -> ContentRecord:
        now = utc_now()
        data = dict(row)
        if not data.get("id"):
            data["id"] = new_entity_id()
        data["created_at"] = now
        data["updated_at"] = now
        record = validate_record(kind, data)
        stored = self.backend.insert(kind, record.model_dump())
        return validate_record(kind, stored)

    def get(self, kind: ContentKind, entity_id: str) -> ContentRecord:
        row = self.backend.fetch(kind, entity_id)
        if row is None:
            raise not_found(kind)
        return validate_record(kind, row)

    def replace(self, kind: ContentKind, entity_id: str, patch: Mapping[str, Any]) -> ContentRecord:
        return self.replace_with_previous(kind, entity_id, patch)[1]

    def replace_with_previous(
        self, kind: ContentKind, entity_id: str, patch: Mapping[str, Any]
    ) -> Tuple[ContentRecord, ContentRecord]:
        """Like ``replace``, but also return the record the patch was merged onto."""
        existing = self.backend.fetch(kind, entity_id)
        if existing is None:
            raise not_found(kind)
        previous = validate_record(kind, existing)
        merged = dict(existing)
        merged.update({k: v for k, v in patch.items() if k not in PROTECTED_FIELDS})
        merged["id"] = entity_id
        merged["updated_at"] = utc_now()
        record = validate_record(kind, merged)
        stored = self.backend.update(kind, entity_id, record.model_dump())
        if stored is None:
            # Deleted between the read and the write
            raise not_found(kind)
        return previous, validate_record(kind, stored)

    def remove(self, kind: ContentKind, entity_id: str) -> ContentRecord:
        """Remove the row only and return it. Its attachment is left to the caller."""
        removed = self.backend.remove(kind, entity_id)
        if removed is None:
            raise not_found(kind)
        return validate_record(kind, removed)

    def delete(self, kind: ContentKind, entity_id: str) -> None:
        record = self.remove(kind, entity_id)
        if record.attachment is not None:
            self.attachment_store.delete(record.attachment.id)
            logger.info(f"Deleted attachment {record.attachment.id} of {kind.value} {entity_id}")

    def query(
        self,
        kind: ContentKind,
        predicate: Optional[Predicate] = None,
        sort: Sequence[SortKey] = (),
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> QueryResult:
        rows, total = self.backend.select(kind, predicate or Predicate(), sort, offset, limit)
        return QueryResult(items=[validate_record(kind, row) for row in rows], total_count=total)

    def ping(self) -> None:
        self.backend.ping()
