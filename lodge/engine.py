"""
Availability engine: answers "is this room free?" and writes reservations
and the restrictions they impose on a room's calendar.
"""
import logging
import threading
from collections import defaultdict
from datetime import date, timedelta
from typing import List, Optional

from pybreaker import CircuitBreaker, CircuitBreakerError

from .circuit_breaker import make_store_breaker
from .errors import InsertError, LodgeError, RoomUnavailable, ValidationError
from .repository.base import ReservationStore
from .schemas import Reservation, RestrictionType, Room, RoomRestriction

logger = logging.getLogger(__name__)


class AvailabilityEngine:
    def __init__(self, store: ReservationStore, breaker: Optional[CircuitBreaker] = None):
        self.store = store
        self.breaker = breaker or make_store_breaker()
        self._room_locks = defaultdict(threading.Lock)
        self._locks_guard = threading.Lock()

    def _room_lock(self, room_id: int) -> threading.Lock:
        with self._locks_guard:
            return self._room_locks[room_id]

    def guarded_write(self, func, *args):
        """Run a store write through the circuit breaker."""
        try:
            return self.breaker.call(func, *args)
        except CircuitBreakerError as exc:
            logger.error("reservation store circuit open: %s", exc)
            raise InsertError(
                "Booking service temporarily unavailable. Please try again later."
            ) from exc

    # ----- reads -----
    def check_room_available(self, room_id: int, start: date, end: date) -> bool:
        """
        True if no restriction for ``room_id`` overlaps ``[start, end)``.

        Date order is the caller's responsibility.
        """
        return self.store.search_availability_by_dates_by_room_id(start, end, room_id)

    def search_all_rooms_available(self, start: date, end: date) -> List[Room]:
        rooms = self.store.search_availability_for_all_rooms(start, end)
        return sorted(rooms, key=lambda r: r.id)

    def get_room(self, room_id: int) -> Room:
        return self.store.get_room_by_id(room_id)

    def all_rooms(self) -> List[Room]:
        return self.store.all_rooms()

    def restrictions_for_room(self, room_id: int, start: date, end: date) -> List[RoomRestriction]:
        return self.store.get_restrictions_for_room_by_date(room_id, start, end)

    # ----- writes -----
    def create_reservation(self, draft: Reservation) -> int:
        """Persist ``draft`` without re-checking availability; returns the new id."""
        new_id = self.guarded_write(self.store.insert_reservation, draft)
        logger.info("Reservation %s created for room %s", new_id, draft.room_id)
        return new_id

    def create_room_restriction(self, restriction: RoomRestriction) -> None:
        self.guarded_write(self.store.insert_room_restriction, restriction)
        logger.info(
            "%s restriction added to room %s from %s to %s",
            RestrictionType(restriction.restriction_type).value,
            restriction.room_id,
            restriction.start_date,
            restriction.end_date,
        )

    def remove_room_restriction(self, restriction_id: int) -> None:
        self.guarded_write(self.store.delete_restriction, restriction_id)
        logger.info("Restriction %s removed", restriction_id)

    def remove_room_restriction_by_date(self, room_id: int, day: date) -> int:
        """Remove the single-day owner block of ``room_id`` on ``day``."""
        removed = self.guarded_write(self.store.delete_block_for_room_by_date, room_id, day)
        if removed:
            logger.info("Owner block removed from room %s on %s", room_id, day)
        else:
            logger.warning("No single-day owner block for room %s on %s", room_id, day)
        return removed

    def block_day(self, room_id: int, day: date) -> None:
        self.create_room_restriction(
            RoomRestriction(
                start_date=day,
                end_date=day + timedelta(days=1),
                room_id=room_id,
                restriction_type=RestrictionType.OWNER_BLOCK,
            )
        )

    def commit_reservation(self, draft: Reservation) -> Reservation:
        """
        Persist a validated draft together with its reservation restriction.

        Availability is re-checked under a per-room lock so two requests
        for the same room cannot both pass the check. If the restriction
        cannot be written the reservation row is removed again.
        """
        if draft.room_id is None:
            raise ValidationError.for_field("room_id", "No room chosen")
        if draft.start_date >= draft.end_date:
            raise ValidationError.for_field("end_date", "End date must be after start date")

        with self._room_lock(draft.room_id):
            if not self.check_room_available(draft.room_id, draft.start_date, draft.end_date):
                raise RoomUnavailable(draft.room_id)

            new_id = self.create_reservation(draft)
            try:
                self.create_room_restriction(
                    RoomRestriction(
                        start_date=draft.start_date,
                        end_date=draft.end_date,
                        room_id=draft.room_id,
                        reservation_id=new_id,
                        restriction_type=RestrictionType.RESERVATION,
                    )
                )
            except InsertError:
                logger.error("Restriction for reservation %s failed, rolling back", new_id)
                try:
                    self.store.delete_reservation(new_id)
                except LodgeError:
                    logger.exception("Could not roll back reservation %s", new_id)
                raise

        return draft.model_copy(update={"id": new_id})
