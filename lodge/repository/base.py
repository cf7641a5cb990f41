from abc import ABC, abstractmethod
from datetime import date
from typing import List, Optional

from ..schemas import Reservation, Room, RoomRestriction, User, ProcessedState


class ReservationStore(ABC):
    """
    Persistence contract consumed by the availability engine.

    Reads raise ``QueryError`` (``RecordNotFound`` for unknown ids) and writes
    raise ``InsertError`` when the backing store fails. Implementations must
    reject a restriction whose ``[start_date, end_date)`` overlaps another
    restriction of the same room.
    """

    # ----- availability -----
    @abstractmethod
    def search_availability_by_dates_by_room_id(self, start: date, end: date, room_id: int) -> bool:
        """True if no restriction for ``room_id`` overlaps ``[start, end)``."""
        raise NotImplementedError

    @abstractmethod
    def search_availability_for_all_rooms(self, start: date, end: date) -> List[Room]:
        """Rooms free for the whole range, ordered by id."""
        raise NotImplementedError

    # ----- rooms -----
    @abstractmethod
    def get_room_by_id(self, room_id: int) -> Room:
        raise NotImplementedError

    @abstractmethod
    def all_rooms(self) -> List[Room]:
        raise NotImplementedError

    # ----- reservations -----
    @abstractmethod
    def insert_reservation(self, res: Reservation) -> int:
        """Store a reservation and return its new id."""
        raise NotImplementedError

    @abstractmethod
    def all_reservations(self) -> List[Reservation]:
        raise NotImplementedError

    @abstractmethod
    def all_new_reservations(self) -> List[Reservation]:
        raise NotImplementedError

    @abstractmethod
    def get_reservation_by_id(self, reservation_id: int) -> Reservation:
        raise NotImplementedError

    @abstractmethod
    def update_reservation(self, res: Reservation) -> None:
        """Update the guest details of an existing reservation."""
        raise NotImplementedError

    @abstractmethod
    def delete_reservation(self, reservation_id: int) -> None:
        """Delete a reservation together with the restriction it owns."""
        raise NotImplementedError

    @abstractmethod
    def update_processed_for_reservation(self, reservation_id: int, processed: ProcessedState) -> None:
        raise NotImplementedError

    # ----- restrictions -----
    @abstractmethod
    def insert_room_restriction(self, restriction: RoomRestriction) -> int:
        raise NotImplementedError

    @abstractmethod
    def get_restrictions_for_room_by_date(self, room_id: int, start: date, end: date) -> List[RoomRestriction]:
        """Restrictions of ``room_id`` intersecting ``[start, end)``, by start date."""
        raise NotImplementedError

    @abstractmethod
    def delete_restriction(self, restriction_id: int) -> None:
        raise NotImplementedError

    @abstractmethod
    def delete_block_for_room_by_date(self, room_id: int, day: date) -> int:
        """
        Delete the single-day owner block of ``room_id`` on ``day``.

        Returns the number of rows removed. Reservation restrictions and
        multi-day blocks are left untouched.
        """
        raise NotImplementedError

    # ----- users -----
    @abstractmethod
    def get_user_by_email(self, email: str) -> Optional[User]:
        raise NotImplementedError

    @abstractmethod
    def insert_user(self, user: User) -> int:
        raise NotImplementedError
