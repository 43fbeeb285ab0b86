# ==============================================================================
# Tests for Sessionizer
# ==============================================================================
"""
Tests for grouping events into (session_id, user_id) sessions, session
boundaries, derived calendar fields and data-quality counts.
"""

from datetime import datetime

from clickfunnel.core.models import Session
from clickfunnel.core.sessionizer import Sessionizer


def _by_key(result):
    return {(s.session_id, s.user_id): s for s in result.sessions}


# ==============================================================================
# Grouping and boundaries
# ==============================================================================


class TestGrouping:
    """Tests for session keys and start/end boundaries."""

    def test_one_session_per_session_and_user(self, make_event):
        events = [
            make_event("s1", 1, minute=0),
            make_event("s1", 1, minute=5),
            make_event("s1", 2, minute=3),
            make_event("s2", 1, minute=1),
        ]
        result = Sessionizer().sessionize(events)
        assert set(_by_key(result)) == {("s1", 1), ("s1", 2), ("s2", 1)}

    def test_start_and_end_are_min_and_max(self, make_event):
        events = [
            make_event("s1", 1, minute=7),
            make_event("s1", 1, minute=2),
            make_event("s1", 1, minute=12),
        ]
        session = Sessionizer().sessionize(events).sessions[0]
        assert session.session_start == datetime(2019, 10, 1, 10, 2)
        assert session.session_end == datetime(2019, 10, 1, 10, 12)
        assert session.duration_minutes == 10
        assert session.event_count == 3

    def test_single_event_has_zero_duration(self, make_event):
        session = Sessionizer().sessionize([make_event("s1", 1)]).sessions[0]
        assert session.session_start == session.session_end
        assert session.duration_minutes == 0

    def test_sessions_sorted_by_key(self, make_event):
        events = [make_event("b", 2), make_event("a", 9), make_event("b", 1)]
        keys = [(s.session_id, s.user_id) for s in Sessionizer().sessionize(events).sessions]
        assert keys == [("a", 9), ("b", 1), ("b", 2)]

    def test_input_order_does_not_matter(self, make_event):
        events = [make_event("s1", 1, minute=m) for m in (4, 1, 9, 3)]
        forward = Sessionizer().sessionize(events).sessions
        backward = Sessionizer().sessionize(list(reversed(events))).sessions
        assert forward == backward

    def test_empty_input(self):
        result = Sessionizer().sessionize([])
        assert result.sessions == ()
        assert not result.report.has_issues


# ==============================================================================
# Data quality
# ==============================================================================


class TestDataQuality:
    """Tests for events that cannot be attributed or timed."""

    def test_missing_session_id_dropped_and_counted(self, make_event):
        events = [make_event(None, 1), make_event("", 1), make_event("s1", 1)]
        result = Sessionizer().sessionize(events)
        assert len(result.sessions) == 1
        assert result.report.missing_session_id == 2

    def test_missing_user_id_dropped_and_counted(self, make_event):
        result = Sessionizer().sessionize([make_event("s1", None), make_event("s1", 1)])
        assert [(s.session_id, s.user_id) for s in result.sessions] == [("s1", 1)]
        assert result.report.missing_user_id == 1

    def test_missing_timestamp_does_not_move_bounds(self, make_event):
        events = [
            make_event("s1", 1, minute=5),
            make_event("s1", 1, event_time=None),
            make_event("s1", 1, minute=8),
        ]
        result = Sessionizer().sessionize(events)
        session = result.sessions[0]
        assert session.duration_minutes == 3
        assert session.event_count == 3
        assert result.report.missing_timestamp == 1

    def test_group_without_any_timestamp_is_unresolved(self, make_event):
        events = [make_event("s1", 1, event_time=None), make_event("s2", 1)]
        result = Sessionizer().sessionize(events)
        assert [s.session_id for s in result.sessions] == ["s2"]
        assert result.report.unresolved_sessions == 1
        assert result.report.has_issues


# ==============================================================================
# Derived fields
# ==============================================================================


class TestDerivedFields:
    """Tests for calendar fields taken from the session start."""

    def _session(self, start, end):
        return Session(session_id="s", user_id=1, session_start=start, session_end=end)

    def test_duration_truncates_partial_minutes(self):
        session = self._session(datetime(2019, 10, 1, 10, 0, 0), datetime(2019, 10, 1, 10, 2, 59))
        assert session.duration_minutes == 2

    def test_weekday_monday_is_zero(self):
        # 2019-10-07 was a Monday
        session = self._session(datetime(2019, 10, 7, 9), datetime(2019, 10, 7, 9))
        assert session.weekday == 0

    def test_week_counts_from_first_sunday(self):
        # 2019-01-05 is a Saturday before the year's first Sunday
        assert self._session(datetime(2019, 1, 5), datetime(2019, 1, 5)).week == 0
        assert self._session(datetime(2019, 1, 6), datetime(2019, 1, 6)).week == 1

    def test_db_record_fields(self):
        session = self._session(datetime(2019, 11, 15, 23, 30), datetime(2019, 11, 16, 0, 45))
        record = session.to_db_record()
        assert record["duration_minutes"] == 75
        assert record["month"] == 11
        assert record["session_hour"] == 23
        assert record["weekday"] == 4
        assert record["week"] == int(datetime(2019, 11, 15).strftime("%U"))
