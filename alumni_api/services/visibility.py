"""Public visibility rules.

Only the publish flag gates events; their status and dates are listing filters,
not visibility rules. Announcements are additionally bounded by their date window.
"""
from datetime import datetime
from typing import Callable, Dict

from alumni_api.models.announcement import AnnouncementRecord
from alumni_api.models.class_group import ClassGroupRecord
from alumni_api.models.common import ContentKind, ensure_utc
from alumni_api.models.content import PUBLISH_FLAGS, ContentRecord
from alumni_api.models.event import EventRecord
from alumni_api.services.predicates import Condition, Operator, Predicate


def event_is_visible(record: EventRecord, as_of: datetime) -> bool:
    return record.is_published


def announcement_is_visible(record: AnnouncementRecord, as_of: datetime) -> bool:
    if not record.is_published:
        return False
    if record.start_date > as_of:
        return False
    return record.end_date is None or record.end_date >= as_of


def class_group_is_visible(record: ClassGroupRecord, as_of: datetime) -> bool:
    return record.is_public


_RULES: Dict[ContentKind, Callable[..., bool]] = {
    ContentKind.EVENT: event_is_visible,
    ContentKind.ANNOUNCEMENT: announcement_is_visible,
    ContentKind.CLASS_GROUP: class_group_is_visible,
}


def is_visible(record: ContentRecord, as_of: datetime) -> bool:
    return _RULES[record.kind](record, ensure_utc(as_of))


def restrict_to_visible(kind: ContentKind, predicate: Predicate, as_of: datetime) -> Predicate:
    """
    Add the store-side form of the kind's rule to ``predicate``.

    The result matches exactly the rows ``is_visible`` accepts, so the store can
    count and page public listings itself.
    """
    predicate.eq(PUBLISH_FLAGS[kind], True)
    if kind is ContentKind.ANNOUNCEMENT:
        as_of = ensure_utc(as_of)
        predicate.lte("start_date", as_of)
        predicate.any_of(
            Condition("end_date", Operator.EQ, None),
            Condition("end_date", Operator.GTE, as_of),
        )
    return predicate
