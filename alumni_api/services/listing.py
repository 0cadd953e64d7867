"""Translate listing filters into a store predicate and sort order.

Shared by the public and admin query services so both paths list, filter and
order records identically; they differ only in visibility handling.
"""
from datetime import datetime
from enum import Enum
from typing import Dict, FrozenSet, List, Tuple, Type

from alumni_api.core.exceptions import ValidationError
from alumni_api.models.announcement import AnnouncementCategory
from alumni_api.models.common import ContentFilters, ContentKind
from alumni_api.models.content import PUBLISH_FLAGS, SEARCH_FIELDS
from alumni_api.models.event import EventStatus, EventType
from alumni_api.services.predicates import Predicate, SortKey

FILTERS_BY_KIND: Dict[ContentKind, FrozenSet[str]] = {
    ContentKind.EVENT: frozenset({
        "search", "event_type", "event_status", "upcoming", "past",
        "featured", "date_from", "date_to", "published",
    }),
    ContentKind.ANNOUNCEMENT: frozenset({"search", "category", "pinned", "published"}),
    ContentKind.CLASS_GROUP: frozenset({"search", "graduation_year", "published"}),
}

TIE_BREAKER = SortKey("id")


def _parse_enum(enum_cls: Type[Enum], field: str, value: str):
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(field, f"must be one of: {allowed}")


def _check_applicable(kind: ContentKind, filters: ContentFilters, allow_published: bool) -> None:
    allowed = FILTERS_BY_KIND[kind]
    for name in filters.model_dump(exclude_defaults=True):
        if name not in allowed or (name == "published" and not allow_published):
            raise ValidationError(name, f"is not a filter for {kind.label.lower()} listings")
    if filters.upcoming and filters.past:
        raise ValidationError("past", "cannot be combined with upcoming")


def sort_order(kind: ContentKind, filters: ContentFilters) -> List[SortKey]:
    if kind is ContentKind.ANNOUNCEMENT:
        keys = [SortKey("is_pinned", descending=True), SortKey("start_date", descending=True)]
    elif kind is ContentKind.EVENT:
        keys = [SortKey("start_date", descending=filters.past)]
    else:
        keys = [SortKey("graduation_year", descending=True)]
    return keys + [TIE_BREAKER]


def build_listing(
    kind: ContentKind,
    filters: ContentFilters,
    as_of: datetime,
    allow_published: bool = False,
) -> Tuple[Predicate, List[SortKey]]:
    """
    Build the store predicate and sort keys for a listing.

    Raises:
        ValidationError: for filters that do not apply to the kind or bad values
    """
    _check_applicable(kind, filters, allow_published)
    predicate = Predicate()

    if filters.search:
        predicate.text(filters.search, SEARCH_FIELDS[kind])
    if filters.published is not None:
        predicate.eq(PUBLISH_FLAGS[kind], filters.published)

    if kind is ContentKind.ANNOUNCEMENT:
        if filters.category:
            predicate.eq("category", _parse_enum(AnnouncementCategory, "category", filters.category))
        if filters.pinned is not None:
            predicate.eq("is_pinned", filters.pinned)

    elif kind is ContentKind.EVENT:
        if filters.event_type:
            predicate.eq("event_type", _parse_enum(EventType, "event_type", filters.event_type))
        if filters.event_status:
            predicate.eq("event_status", _parse_enum(EventStatus, "event_status", filters.event_status))
        if filters.featured is not None:
            predicate.eq("is_featured_on_homepage", filters.featured)
        if filters.upcoming:
            predicate.gte("start_date", as_of)
        if filters.past:
            predicate.lt("end_date", as_of)
        if filters.date_from:
            predicate.gte("start_date", filters.date_from)
        if filters.date_to:
            predicate.lte("start_date", filters.date_to)

    elif filters.graduation_year is not None:
        predicate.eq("graduation_year", filters.graduation_year)

    return predicate, sort_order(kind, filters)
