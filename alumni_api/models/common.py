"""
Shared content models: kinds, attachments, pagination and filters
"""

import math
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, List, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator


class ContentKind(str, Enum):
    EVENT = "event"
    ANNOUNCEMENT = "announcement"
    CLASS_GROUP = "class_group"

    @property
    def label(self) -> str:
        return _KIND_LABELS[self]


_KIND_LABELS = {
    ContentKind.EVENT: "Event",
    ContentKind.ANNOUNCEMENT: "Announcement",
    ContentKind.CLASS_GROUP: "Class group",
}


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Naive datetimes are taken to be UTC; aware ones are converted to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(ensure_utc)]


def new_entity_id() -> str:
    return uuid.uuid4().hex


def clean_required_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    if not value:
        raise ValueError("must not be blank")
    return value


def clean_tags(value: Optional[List[str]]) -> Optional[List[str]]:
    if value is None:
        return None
    seen = []
    for tag in value:
        tag = tag.strip()
        if tag and tag not in seen:
            seen.append(tag)
    return seen


class Attachment(BaseModel):
    """A stored image bound to exactly one content entity."""
    id: str
    uri: str
    declared_mime_type: str
    byte_size: int = Field(..., ge=0)
    owner_entity_id: str


class AttachmentUpload(BaseModel):
    """Bytes submitted by an admin alongside a create/update."""
    content: bytes
    mime_type: str
    filename: Optional[str] = None

    @property
    def byte_size(self) -> int:
        return len(self.content)


class ContentRecordBase(BaseModel):
    """Fields every persisted content record carries."""
    id: str = Field(..., min_length=1)
    kind: ContentKind
    created_at: UtcDatetime
    updated_at: UtcDatetime
    attachment: Optional[Attachment] = None

    model_config = ConfigDict(extra="ignore")

    @field_validator("attachment")
    @classmethod
    def attachment_belongs_to_record(cls, v: Optional[Attachment], info) -> Optional[Attachment]:
        entity_id = info.data.get("id")
        if v is not None and entity_id is not None and v.owner_entity_id != entity_id:
            raise ValueError("attachment must belong to this entity")
        return v


# Hard ceiling for any page, whatever the configured sizes
MAX_PAGE_LIMIT = 100


class Pagination(BaseModel):
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=MAX_PAGE_LIMIT)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class Page(BaseModel):
    items: List[Any]
    total_count: int
    page: int
    limit: int
    total_pages: int

    @classmethod
    def build(cls, items: List[Any], total_count: int, pagination: Pagination) -> "Page":
        return cls(
            items=items,
            total_count=total_count,
            page=pagination.page,
            limit=pagination.limit,
            total_pages=math.ceil(total_count / pagination.limit) if total_count else 0,
        )


class ContentFilters(BaseModel):
    """Listing filters. Each kind accepts only the filters that apply to it."""
    search: Optional[str] = Field(None, max_length=200)
    # announcements
    category: Optional[str] = None
    pinned: Optional[bool] = None
    # events
    event_type: Optional[str] = None
    event_status: Optional[str] = None
    upcoming: bool = False
    past: bool = False
    featured: Optional[bool] = None
    date_from: Optional[UtcDatetime] = None
    date_to: Optional[UtcDatetime] = None
    # class groups
    graduation_year: Optional[int] = None
    # admin listings only
    published: Optional[bool] = None

    @field_validator("search")
    @classmethod
    def blank_search_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None


def check_end_after_start(end: Optional[datetime], start: Optional[datetime]) -> Optional[datetime]:
    if end is not None and start is not None and end < start:
        raise ValueError("end_date must not be before start_date")
    return end


RequiredText = Annotated[str, AfterValidator(clean_required_text)]
