"""
Unit tests for the admin calendar maps and their reconciliation.
"""
from datetime import date

import pytest

from lodge.admin_calendar import CalendarMonth, CalendarReconciler, parse_calendar_form
from lodge.engine import AvailabilityEngine
from lodge.errors import InsertError, ValidationError
from lodge.repository.memory import InMemoryStore
from lodge.schemas import RestrictionType, Room, RoomRestriction


def d(day: int) -> date:
    return date(2031, 3, day)


class TestParseCalendarForm:

    def test_both_prefixes_mean_blocked(self):
        form = {
            "add_block_1_2031-03-05": "1",
            "remove_block_1_2031-03-07": "1",
            "add_block_2_2031-03-05": "1",
            "csrf_token": "abc",
        }
        assert parse_calendar_form(form) == {1: {d(5), d(7)}, 2: {d(5)}}

    def test_empty_form(self):
        assert parse_calendar_form({}) == {}

    @pytest.mark.parametrize("key", [
        "add_block_x_2031-03-05",
        "add_block_1_05-03-2031",
        "remove_block_1",
    ])
    def test_malformed_keys(self, key):
        with pytest.raises(ValidationError) as exc_info:
            parse_calendar_form({key: "1"})
        assert key in exc_info.value.errors


class TestBuildMonth:
    """Tests for the per-room occupancy maps."""

    def test_maps_cover_every_day_of_the_month(self, reconciler, session):
        cal = reconciler.build_month(session, 1, 2031, 2)
        assert len(cal.block_map) == 28
        assert set(cal.reservation_map) == set(cal.block_map)
        assert not any(cal.block_map.values())

    def test_blocks_and_reservations_are_separated(self, reconciler, engine, session, reserve):
        engine.block_day(1, d(3))
        reserve(1, d(10), d(13))

        cal = reconciler.build_month(session, 1, 2031, 3)
        assert cal.blocked_days() == {d(3)}
        assert [day for day, n in cal.reservation_map.items() if n] == [d(10), d(11), d(12)]
        assert session.calendars[1] is cal

    def test_restrictions_spanning_months_are_clipped(self, reconciler, engine, session):
        engine.create_room_restriction(RoomRestriction(
            start_date=date(2031, 2, 27),
            end_date=d(3),
            room_id=1,
            restriction_type=RestrictionType.OWNER_BLOCK,
        ))
        cal = reconciler.build_month(session, 1, 2031, 3)
        assert cal.blocked_days() == {d(1), d(2)}

    def test_rebuild_is_idempotent(self, reconciler, engine, session):
        engine.block_day(2, d(20))
        first = reconciler.build_all(session, 2031, 3)
        second = reconciler.build_all(session, 2031, 3)
        assert [c.block_map for c in first] == [c.block_map for c in second]
        assert [c.room_id for c in second] == [1, 2]


class TestReconcile:
    """Tests for applying a submitted calendar."""

    def test_adds_new_blocks(self, reconciler, engine, session):
        reconciler.build_all(session, 2031, 3)
        changes = reconciler.reconcile(session, 2031, 3, {1: {d(5), d(6)}})

        assert changes.added == {1: [d(5), d(6)]}
        assert changes.removed == {}
        assert engine.check_room_available(1, d(5), d(6)) is False
        assert engine.check_room_available(1, d(6), d(7)) is False
        assert session.flash == "Changes saved"
        assert session.calendars == {}

    def test_removes_unticked_blocks(self, reconciler, engine, session):
        engine.block_day(1, d(5))
        engine.block_day(1, d(6))
        reconciler.build_all(session, 2031, 3)

        changes = reconciler.reconcile(session, 2031, 3, {1: {d(6)}})
        assert changes.removed == {1: [d(5)]}
        assert engine.check_room_available(1, d(5), d(6)) is True
        assert engine.check_room_available(1, d(6), d(7)) is False

    def test_unchanged_form_changes_nothing(self, reconciler, engine, session):
        engine.block_day(1, d(5))
        reconciler.build_all(session, 2031, 3)
        changes = reconciler.reconcile(session, 2031, 3, {1: {d(5)}})
        assert changes.is_empty

    def test_toggle_on_and_off_nets_zero(self, reconciler, engine, session):
        reconciler.build_all(session, 2031, 3)
        reconciler.reconcile(session, 2031, 3, {1: {d(9)}})
        reconciler.build_all(session, 2031, 3)
        reconciler.reconcile(session, 2031, 3, {})

        assert engine.restrictions_for_room(1, d(1), d(31)) == []

    def test_room_missing_from_form_loses_its_blocks(self, reconciler, engine, session):
        engine.block_day(2, d(14))
        reconciler.build_all(session, 2031, 3)
        changes = reconciler.reconcile(session, 2031, 3, {})
        assert changes.removed == {2: [d(14)]}

    def test_reservations_are_never_touched(self, reconciler, engine, session, reserve):
        reserve(1, d(10), d(12))
        reconciler.build_all(session, 2031, 3)
        changes = reconciler.reconcile(session, 2031, 3, {})

        assert changes.is_empty
        assert engine.check_room_available(1, d(10), d(12)) is False

    def test_blocking_a_reserved_day_is_rejected(self, reconciler, engine, session, reserve):
        reserve(1, d(10), d(12))
        reconciler.build_all(session, 2031, 3)
        changes = reconciler.reconcile(session, 2031, 3, {1: {d(10), d(15)}})

        assert changes.added == {1: [d(15)]}
        assert [(r, day) for r, day, _ in changes.rejected] == [(1, d(10))]

    def test_multi_day_block_is_reported_not_removed(self, reconciler, engine, session):
        engine.create_room_restriction(RoomRestriction(
            start_date=d(20),
            end_date=d(22),
            room_id=1,
            restriction_type=RestrictionType.OWNER_BLOCK,
        ))
        reconciler.build_all(session, 2031, 3)
        changes = reconciler.reconcile(session, 2031, 3, {1: {d(21)}})

        assert changes.removed == {}
        assert changes.rejected == [(1, d(20), "Part of a multi-day block")]
        assert engine.check_room_available(1, d(20), d(21)) is False

    def test_missing_cache_is_rebuilt_from_store(self, reconciler, engine, session):
        engine.block_day(1, d(5))
        changes = reconciler.reconcile(session, 2031, 3, {1: {d(5)}})
        assert changes.is_empty

    def test_stale_cache_for_other_month_is_ignored(self, reconciler, engine, session):
        engine.block_day(1, d(5))
        session.calendars[1] = CalendarMonth(1, 2031, 4, {}, {})
        changes = reconciler.reconcile(session, 2031, 3, {1: {d(5)}})
        assert changes.is_empty

    def test_days_outside_month_are_ignored(self, reconciler, engine, session):
        reconciler.build_all(session, 2031, 3)
        changes = reconciler.reconcile(session, 2031, 3, {1: {date(2031, 4, 2)}})
        assert changes.is_empty
        assert engine.check_room_available(1, date(2031, 4, 2), date(2031, 4, 3)) is True


class FailingDayStore(InMemoryStore):
    """Refuses any restriction starting on ``failing_day``."""

    def __init__(self, failing_day):
        super().__init__(rooms=[Room(id=1, name="General's Quarters")])
        self.failing_day = failing_day

    def insert_room_restriction(self, restriction):
        if restriction.start_date == self.failing_day:
            raise InsertError("disk full")
        return super().insert_room_restriction(restriction)


class TestReconcileFailures:
    """Tests for store failures in the middle of a calendar save."""

    @pytest.fixture
    def failing_store(self):
        return FailingDayStore(d(6))

    @pytest.fixture
    def failing_reconciler(self, failing_store):
        return CalendarReconciler(AvailabilityEngine(failing_store))

    def test_failed_write_drops_the_cache(self, failing_reconciler, session):
        failing_reconciler.build_all(session, 2031, 3)
        with pytest.raises(InsertError):
            failing_reconciler.reconcile(session, 2031, 3, {1: {d(5), d(6)}})
        assert session.calendars == {}

    def test_block_written_before_failure_can_be_unticked(
        self, failing_reconciler, failing_store, session
    ):
        failing_reconciler.build_all(session, 2031, 3)
        with pytest.raises(InsertError):
            failing_reconciler.reconcile(session, 2031, 3, {1: {d(5), d(6)}})
        assert [r.start_date for r in failing_store.get_restrictions_for_room_by_date(1, d(1), d(31))] == [d(5)]

        changes = failing_reconciler.reconcile(session, 2031, 3, {})
        assert changes.removed == {1: [d(5)]}
        assert failing_store.get_restrictions_for_room_by_date(1, d(1), d(31)) == []
