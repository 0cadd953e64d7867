from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Literal, Optional
from enum import Enum

from alumni_api.models.common import (
    ContentKind,
    ContentRecordBase,
    RequiredText,
    UtcDatetime,
    check_end_after_start,
)


class EventStatus(str, Enum):
    UPCOMING = "upcoming"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class EventType(str, Enum):
    REUNION = "reunion"
    CAREER = "career"
    WORKSHOP = "workshop"
    SPORTS = "sports"
    NETWORKING = "networking"
    OTHER = "other"


class EventBase(BaseModel):
    title: RequiredText = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    location: Optional[str] = Field(None, max_length=300)
    event_type: EventType = EventType.OTHER
    start_date: UtcDatetime
    end_date: UtcDatetime
    is_published: bool = True
    event_status: EventStatus = EventStatus.UPCOMING
    is_featured_on_homepage: bool = False
    featured_order: int = 0

    @field_validator("end_date")
    @classmethod
    def end_after_start(cls, v, info):
        return check_end_after_start(v, info.data.get("start_date"))


class EventCreate(EventBase):
    """Schema for creating a new event"""
    model_config = ConfigDict(extra="forbid")


class EventUpdate(BaseModel):
    """Schema for updating an event - all fields optional"""
    title: Optional[RequiredText] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    location: Optional[str] = Field(None, max_length=300)
    event_type: Optional[EventType] = None
    start_date: Optional[UtcDatetime] = None
    end_date: Optional[UtcDatetime] = None
    is_published: Optional[bool] = None
    event_status: Optional[EventStatus] = None
    is_featured_on_homepage: Optional[bool] = None
    featured_order: Optional[int] = None

    model_config = ConfigDict(extra="forbid")

    @field_validator("end_date")
    @classmethod
    def end_after_start(cls, v, info):
        return check_end_after_start(v, info.data.get("start_date"))


class EventRecord(ContentRecordBase, EventBase):
    """Persisted event"""
    kind: Literal[ContentKind.EVENT] = ContentKind.EVENT


class EventStatusUpdate(BaseModel):
    status: EventStatus
