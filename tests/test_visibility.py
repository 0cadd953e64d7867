from datetime import datetime, timedelta, timezone

from alumni_api.models.content import validate_record
from alumni_api.models.common import ContentKind
from alumni_api.services.visibility import is_visible

AS_OF = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def make(kind, **fields):
    row = {
        "id": "rec-1",
        "created_at": AS_OF - timedelta(days=10),
        "updated_at": AS_OF - timedelta(days=10),
    }
    row.update(fields)
    return validate_record(kind, row)


def event(**fields):
    defaults = {
        "title": "Reunion",
        "start_date": AS_OF + timedelta(days=5),
        "end_date": AS_OF + timedelta(days=6),
    }
    defaults.update(fields)
    return make(ContentKind.EVENT, **defaults)


def announcement(**fields):
    defaults = {"title": "Portal launch", "is_published": True, "start_date": AS_OF - timedelta(days=1)}
    defaults.update(fields)
    return make(ContentKind.ANNOUNCEMENT, **defaults)


class TestEventVisibility:
    def test_published_event_is_visible(self):
        assert is_visible(event(), AS_OF)

    def test_unpublished_event_is_hidden(self):
        assert not is_visible(event(is_published=False), AS_OF)

    def test_status_and_dates_do_not_gate_events(self):
        past_cancelled = event(
            event_status="cancelled",
            start_date=AS_OF - timedelta(days=30),
            end_date=AS_OF - timedelta(days=29),
        )
        assert is_visible(past_cancelled, AS_OF)


class TestAnnouncementVisibility:
    def test_active_published_announcement_is_visible(self):
        assert is_visible(announcement(), AS_OF)

    def test_unpublished_is_hidden(self):
        assert not is_visible(announcement(is_published=False), AS_OF)

    def test_future_start_is_hidden(self):
        assert not is_visible(announcement(start_date=AS_OF + timedelta(seconds=1)), AS_OF)

    def test_window_bounds_are_inclusive(self):
        assert is_visible(announcement(start_date=AS_OF, end_date=AS_OF), AS_OF)

    def test_expired_is_hidden(self):
        expired = announcement(start_date=AS_OF - timedelta(days=3), end_date=AS_OF - timedelta(seconds=1))
        assert not is_visible(expired, AS_OF)

    def test_naive_as_of_is_treated_as_utc(self):
        assert is_visible(announcement(start_date=AS_OF), AS_OF.replace(tzinfo=None))


class TestClassGroupVisibility:
    def test_public_flag_gates_visibility(self):
        assert is_visible(make(ContentKind.CLASS_GROUP, name="Class of 2012", graduation_year=2012), AS_OF)
        hidden = make(ContentKind.CLASS_GROUP, name="Class of 2012", graduation_year=2012, is_public=False)
        assert not is_visible(hidden, AS_OF)
