"""Per-kind lookup tables and field validation shared by the services."""
from typing import Any, Dict, Mapping, Tuple, Type, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from alumni_api.core.exceptions import ValidationError
from alumni_api.models.announcement import AnnouncementCreate, AnnouncementRecord, AnnouncementUpdate
from alumni_api.models.class_group import ClassGroupCreate, ClassGroupRecord, ClassGroupUpdate
from alumni_api.models.common import ContentKind
from alumni_api.models.event import EventCreate, EventRecord, EventUpdate

ContentRecord = Union[EventRecord, AnnouncementRecord, ClassGroupRecord]

CREATE_MODELS: Dict[ContentKind, Type[BaseModel]] = {
    ContentKind.EVENT: EventCreate,
    ContentKind.ANNOUNCEMENT: AnnouncementCreate,
    ContentKind.CLASS_GROUP: ClassGroupCreate,
}

UPDATE_MODELS: Dict[ContentKind, Type[BaseModel]] = {
    ContentKind.EVENT: EventUpdate,
    ContentKind.ANNOUNCEMENT: AnnouncementUpdate,
    ContentKind.CLASS_GROUP: ClassGroupUpdate,
}

RECORD_MODELS: Dict[ContentKind, Type[BaseModel]] = {
    ContentKind.EVENT: EventRecord,
    ContentKind.ANNOUNCEMENT: AnnouncementRecord,
    ContentKind.CLASS_GROUP: ClassGroupRecord,
}

# Boolean flag that gates public visibility
PUBLISH_FLAGS: Dict[ContentKind, str] = {
    ContentKind.EVENT: "is_published",
    ContentKind.ANNOUNCEMENT: "is_published",
    ContentKind.CLASS_GROUP: "is_public",
}

TOGGLE_FLAGS: Dict[ContentKind, Tuple[str, ...]] = {
    ContentKind.EVENT: ("is_published", "is_featured_on_homepage"),
    ContentKind.ANNOUNCEMENT: ("is_published", "is_pinned"),
    ContentKind.CLASS_GROUP: ("is_public",),
}

SEARCH_FIELDS: Dict[ContentKind, Tuple[str, ...]] = {
    ContentKind.EVENT: ("title", "description", "location"),
    ContentKind.ANNOUNCEMENT: ("title", "description"),
    ContentKind.CLASS_GROUP: ("name", "description", "motto"),
}

TABLE_NAMES: Dict[ContentKind, str] = {
    ContentKind.EVENT: "events",
    ContentKind.ANNOUNCEMENT: "announcements",
    ContentKind.CLASS_GROUP: "class_groups",
}


def first_validation_error(exc: PydanticValidationError) -> ValidationError:
    """Report only the first violation, with its field path."""
    error = exc.errors()[0]
    field = ".".join(str(part) for part in error.get("loc", ())) or None
    reason = error.get("msg", "Invalid value")
    # "Value error, end_date must not be..." -> "end_date must not be..."
    if reason.startswith("Value error, "):
        reason = reason[len("Value error, "):]
    return ValidationError(field, reason, details={"type": error.get("type")})


def validate_model(model: Type[BaseModel], data: Mapping[str, Any]) -> BaseModel:
    try:
        return model.model_validate(dict(data))
    except PydanticValidationError as e:
        raise first_validation_error(e) from None


def validate_create_fields(kind: ContentKind, fields: Mapping[str, Any]) -> Dict[str, Any]:
    """Validate admin-submitted fields for a new record. Returns python-mode values."""
    return validate_model(CREATE_MODELS[kind], fields).model_dump()


def validate_update_fields(kind: ContentKind, fields: Mapping[str, Any]) -> Dict[str, Any]:
    """Validate a partial update. Only the fields the caller sent are returned."""
    return validate_model(UPDATE_MODELS[kind], fields).model_dump(exclude_unset=True)


def validate_record(kind: ContentKind, row: Mapping[str, Any]) -> ContentRecord:
    data = dict(row)
    data["kind"] = kind
    return validate_model(RECORD_MODELS[kind], data)
