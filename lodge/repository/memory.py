import itertools
import threading
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, Optional

from ..dates import overlaps
from ..errors import InsertError, RecordNotFound, RestrictionConflict
from ..schemas import (
    ProcessedState,
    Reservation,
    RestrictionType,
    Room,
    RoomRestriction,
    User,
)
from .base import ReservationStore


class InMemoryStore(ReservationStore):
    """Dictionary-backed store, used for tests and for running without a database."""

    def __init__(self, rooms: Iterable[Room] = ()):
        self._lock = threading.RLock()
        self._rooms: Dict[int, Room] = {}
        self._reservations: Dict[int, Reservation] = {}
        self._restrictions: Dict[int, RoomRestriction] = {}
        self._users: Dict[int, User] = {}
        self._reservation_ids = itertools.count(1)
        self._restriction_ids = itertools.count(1)
        self._user_ids = itertools.count(1)
        for room in rooms:
            self._rooms[room.id] = room.model_copy()

    def add_room(self, name: str) -> Room:
        with self._lock:
            room = Room(id=max(self._rooms, default=0) + 1, name=name)
            self._rooms[room.id] = room
            return room.model_copy()

    def _room_taken(self, room_id: int, start: date, end: date) -> Optional[RoomRestriction]:
        for r in self._restrictions.values():
            if r.room_id == room_id and overlaps(start, end, r.start_date, r.end_date):
                return r
        return None

    def _reservation(self, reservation_id: int) -> Reservation:
        res = self._reservations.get(reservation_id)
        if res is None:
            raise RecordNotFound(f"Reservation {reservation_id} not found")
        return res

    def _with_room(self, res: Reservation) -> Reservation:
        out = res.model_copy()
        room = self._rooms.get(res.room_id)
        out.room = room.model_copy() if room else None
        return out

    # ----- availability -----
    def search_availability_by_dates_by_room_id(self, start, end, room_id):
        with self._lock:
            return self._room_taken(room_id, start, end) is None

    def search_availability_for_all_rooms(self, start, end):
        with self._lock:
            return [
                room.model_copy()
                for room_id, room in sorted(self._rooms.items())
                if self._room_taken(room_id, start, end) is None
            ]

    # ----- rooms -----
    def get_room_by_id(self, room_id):
        with self._lock:
            room = self._rooms.get(room_id)
            if room is None:
                raise RecordNotFound(f"Room {room_id} not found")
            return room.model_copy()

    def all_rooms(self):
        with self._lock:
            return [room.model_copy() for _, room in sorted(self._rooms.items())]

    # ----- reservations -----
    def insert_reservation(self, res):
        with self._lock:
            if res.room_id not in self._rooms:
                raise InsertError(f"Room {res.room_id} does not exist")
            now = datetime.utcnow()
            stored = res.model_copy(
                update={
                    "id": next(self._reservation_ids),
                    "room": None,
                    "processed": ProcessedState.NEW,
                    "created_at": now,
                    "updated_at": now,
                }
            )
            self._reservations[stored.id] = stored
            return stored.id

    def all_reservations(self):
        with self._lock:
            rows = sorted(self._reservations.values(), key=lambda r: (r.start_date, r.id))
            return [self._with_room(r) for r in rows]

    def all_new_reservations(self):
        return [r for r in self.all_reservations() if r.processed == ProcessedState.NEW]

    def get_reservation_by_id(self, reservation_id):
        with self._lock:
            return self._with_room(self._reservation(reservation_id))

    def update_reservation(self, res):
        with self._lock:
            stored = self._reservation(res.id)
            stored.first_name = res.first_name
            stored.last_name = res.last_name
            stored.email = res.email
            stored.phone = res.phone
            stored.updated_at = datetime.utcnow()

    def delete_reservation(self, reservation_id):
        with self._lock:
            self._reservation(reservation_id)
            del self._reservations[reservation_id]
            owned = [
                rid for rid, r in self._restrictions.items()
                if r.reservation_id == reservation_id
            ]
            for rid in owned:
                del self._restrictions[rid]

    def update_processed_for_reservation(self, reservation_id, processed):
        with self._lock:
            stored = self._reservation(reservation_id)
            stored.processed = ProcessedState(processed)
            stored.updated_at = datetime.utcnow()

    # ----- restrictions -----
    def insert_room_restriction(self, restriction):
        with self._lock:
            clash = self._room_taken(restriction.room_id, restriction.start_date, restriction.end_date)
            if clash is not None:
                raise RestrictionConflict(
                    f"Room {restriction.room_id} already restricted from "
                    f"{clash.start_date} to {clash.end_date}"
                )
            stored = restriction.model_copy(update={"id": next(self._restriction_ids)})
            self._restrictions[stored.id] = stored
            return stored.id

    def get_restrictions_for_room_by_date(self, room_id, start, end):
        with self._lock:
            rows = [
                r for r in self._restrictions.values()
                if r.room_id == room_id and overlaps(start, end, r.start_date, r.end_date)
            ]
            return [r.model_copy() for r in sorted(rows, key=lambda r: r.start_date)]

    def delete_restriction(self, restriction_id):
        with self._lock:
            if restriction_id not in self._restrictions:
                raise RecordNotFound(f"Restriction {restriction_id} not found")
            del self._restrictions[restriction_id]

    def delete_block_for_room_by_date(self, room_id, day):
        with self._lock:
            matches = [
                rid for rid, r in self._restrictions.items()
                if r.room_id == room_id
                and r.restriction_type == RestrictionType.OWNER_BLOCK
                and r.start_date == day
                and r.end_date == day + timedelta(days=1)
            ]
            for rid in matches:
                del self._restrictions[rid]
            return len(matches)

    # ----- users -----
    def get_user_by_email(self, email):
        with self._lock:
            for user in self._users.values():
                if user.email == email:
                    return user.model_copy()
            return None

    def insert_user(self, user):
        with self._lock:
            if self.get_user_by_email(user.email) is not None:
                raise InsertError(f"User {user.email} already exists")
            now = datetime.utcnow()
            stored = user.model_copy(
                update={"id": next(self._user_ids), "created_at": now, "updated_at": now}
            )
            self._users[stored.id] = stored
            return stored.id
