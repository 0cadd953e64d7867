"""
Announcement Models
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Literal, Optional
from enum import Enum

from alumni_api.models.common import (
    ContentKind,
    ContentRecordBase,
    RequiredText,
    UtcDatetime,
    check_end_after_start,
    clean_tags,
    utc_now,
)


class AnnouncementCategory(str, Enum):
    UPDATES = "updates"
    ACHIEVEMENTS = "achievements"
    EVENTS = "events"


class AnnouncementBase(BaseModel):
    title: RequiredText = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=500)
    category: AnnouncementCategory = AnnouncementCategory.UPDATES
    tags: List[str] = Field(default_factory=list, max_length=20)
    is_published: bool = False
    is_pinned: bool = False
    start_date: UtcDatetime = Field(default_factory=utc_now)
    end_date: Optional[UtcDatetime] = None

    @field_validator("tags")
    @classmethod
    def normalize_tags(cls, v):
        return clean_tags(v)

    @field_validator("end_date")
    @classmethod
    def end_after_start(cls, v, info):
        return check_end_after_start(v, info.data.get("start_date"))


class AnnouncementCreate(AnnouncementBase):
    model_config = ConfigDict(extra="forbid")


class AnnouncementUpdate(BaseModel):
    title: Optional[RequiredText] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=500)
    category: Optional[AnnouncementCategory] = None
    tags: Optional[List[str]] = Field(None, max_length=20)
    is_published: Optional[bool] = None
    is_pinned: Optional[bool] = None
    start_date: Optional[UtcDatetime] = None
    end_date: Optional[UtcDatetime] = None

    model_config = ConfigDict(extra="forbid")

    @field_validator("tags")
    @classmethod
    def normalize_tags(cls, v):
        return clean_tags(v)

    @field_validator("end_date")
    @classmethod
    def end_after_start(cls, v, info):
        return check_end_after_start(v, info.data.get("start_date"))


class AnnouncementRecord(ContentRecordBase, AnnouncementBase):
    kind: Literal[ContentKind.ANNOUNCEMENT] = ContentKind.ANNOUNCEMENT
