"""
Per-room, per-month occupancy maps for the admin calendar.

``build_month`` derives the maps from the room's restrictions and caches
them in the session. ``reconcile`` diffs a submitted calendar form against
that cache and adds or removes single-day owner blocks accordingly.
Reservation restrictions are never touched here.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Mapping, Set, Tuple

from .dates import days, month_bounds, parse_date
from .engine import AvailabilityEngine
from .errors import RestrictionConflict, ValidationError
from .schemas import RestrictionType
from .sessions import Session

logger = logging.getLogger(__name__)

ADD_BLOCK_PREFIX = "add_block_"
REMOVE_BLOCK_PREFIX = "remove_block_"


@dataclass
class CalendarMonth:
    room_id: int
    year: int
    month: int
    block_map: Dict[date, int]
    reservation_map: Dict[date, int]

    def covers(self, year: int, month: int) -> bool:
        return (self.year, self.month) == (year, month)

    def blocked_days(self) -> Set[date]:
        return {day for day, count in self.block_map.items() if count > 0}


@dataclass
class CalendarChanges:
    added: Dict[int, List[date]] = field(default_factory=dict)
    removed: Dict[int, List[date]] = field(default_factory=dict)
    # (room id, day, reason) for requested changes the store refused
    rejected: List[Tuple[int, date, str]] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.removed or self.rejected)


def parse_calendar_form(form: Mapping[str, Any]) -> Dict[int, Set[date]]:
    """
    Decode calendar checkboxes into ``{room_id: {ticked days}}``.

    ``remove_block_<room>_<date>`` marks an existing block that is still
    ticked, ``add_block_<room>_<date>`` a newly ticked day. Both mean the
    day should end up blocked.
    """
    checked: Dict[int, Set[date]] = {}
    for key in form:
        if key.startswith(ADD_BLOCK_PREFIX):
            rest = key[len(ADD_BLOCK_PREFIX):]
        elif key.startswith(REMOVE_BLOCK_PREFIX):
            rest = key[len(REMOVE_BLOCK_PREFIX):]
        else:
            continue

        room_part, _, day_part = rest.partition("_")
        try:
            room_id = int(room_part)
        except ValueError:
            raise ValidationError.for_field(key, "Invalid room id")
        checked.setdefault(room_id, set()).add(parse_date(day_part, key))
    return checked


class CalendarReconciler:
    def __init__(self, engine: AvailabilityEngine):
        self.engine = engine

    def build_month(self, session: Session, room_id: int, year: int, month: int) -> CalendarMonth:
        first, next_first = month_bounds(year, month)
        block_map = {day: 0 for day in days(first, next_first)}
        reservation_map = dict(block_map)

        for r in self.engine.restrictions_for_room(room_id, first, next_first):
            target = block_map if r.restriction_type == RestrictionType.OWNER_BLOCK else reservation_map
            for day in days(max(r.start_date, first), min(r.end_date, next_first)):
                target[day] += 1

        cal = CalendarMonth(room_id, year, month, block_map, reservation_map)
        session.calendars[room_id] = cal
        return cal

    def build_all(self, session: Session, year: int, month: int) -> List[CalendarMonth]:
        session.calendars.clear()
        return [self.build_month(session, room.id, year, month) for room in self.engine.all_rooms()]

    def _cached(self, session: Session, room_id: int, year: int, month: int) -> CalendarMonth:
        cal = session.calendars.get(room_id)
        if cal is None or not cal.covers(year, month):
            logger.debug("No cached calendar for room %s %d-%02d, rebuilding", room_id, year, month)
            cal = self.build_month(session, room_id, year, month)
        return cal

    def reconcile(
        self,
        session: Session,
        year: int,
        month: int,
        checked: Mapping[int, Set[date]],
    ) -> CalendarChanges:
        """
        Apply the difference between ``checked`` and the cached block maps.

        Every room is reconciled: a room absent from ``checked`` has all of
        its single-day blocks for the month removed.
        """
        first, next_first = month_bounds(year, month)
        changes = CalendarChanges()

        try:
            for room in self.engine.all_rooms():
                cal = self._cached(session, room.id, year, month)
                previous = cal.blocked_days()
                wanted = {d for d in checked.get(room.id, ()) if first <= d < next_first}

                for day in sorted(wanted - previous):
                    try:
                        self.engine.block_day(room.id, day)
                    except RestrictionConflict as exc:
                        changes.rejected.append((room.id, day, str(exc)))
                        continue
                    changes.added.setdefault(room.id, []).append(day)

                for day in sorted(previous - wanted):
                    if self.engine.remove_room_restriction_by_date(room.id, day):
                        changes.removed.setdefault(room.id, []).append(day)
                    else:
                        changes.rejected.append((room.id, day, "Part of a multi-day block"))
        finally:
            # the cached maps no longer match the store, even after a failed write
            session.calendars.clear()

        session.flash = "Changes saved"
        logger.info(
            "Calendar %d-%02d reconciled: %d added, %d removed, %d rejected",
            year,
            month,
            sum(len(v) for v in changes.added.values()),
            sum(len(v) for v in changes.removed.values()),
            len(changes.rejected),
        )
        return changes
