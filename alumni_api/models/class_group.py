from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Literal, Optional

from alumni_api.models.common import ContentKind, ContentRecordBase, RequiredText, clean_tags

GRADUATION_YEAR_MIN = 2000
GRADUATION_YEAR_MAX = 2100


class ClassGroupBase(BaseModel):
    name: RequiredText = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    motto: Optional[str] = Field(None, max_length=200)
    graduation_year: int = Field(..., ge=GRADUATION_YEAR_MIN, le=GRADUATION_YEAR_MAX)
    is_public: bool = True
    tags: List[str] = Field(default_factory=list, max_length=20)

    @field_validator("tags")
    @classmethod
    def normalize_tags(cls, v):
        return clean_tags(v)


class ClassGroupCreate(ClassGroupBase):
    model_config = ConfigDict(extra="forbid")


class ClassGroupUpdate(BaseModel):
    name: Optional[RequiredText] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    motto: Optional[str] = Field(None, max_length=200)
    graduation_year: Optional[int] = Field(None, ge=GRADUATION_YEAR_MIN, le=GRADUATION_YEAR_MAX)
    is_public: Optional[bool] = None
    tags: Optional[List[str]] = Field(None, max_length=20)

    model_config = ConfigDict(extra="forbid")

    @field_validator("tags")
    @classmethod
    def normalize_tags(cls, v):
        return clean_tags(v)


class ClassGroupRecord(ContentRecordBase, ClassGroupBase):
    kind: Literal[ContentKind.CLASS_GROUP] = ContentKind.CLASS_GROUP
