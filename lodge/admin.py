import logging
from typing import Any, List, Mapping

from .booking import parse_guest_details
from .engine import AvailabilityEngine
from .schemas import ProcessedState, Reservation

logger = logging.getLogger(__name__)


class ReservationAdmin:
    """Administrator operations on stored reservations."""

    def __init__(self, engine: AvailabilityEngine):
        self.engine = engine

    @property
    def store(self):
        return self.engine.store

    def all_reservations(self) -> List[Reservation]:
        return self.store.all_reservations()

    def new_reservations(self) -> List[Reservation]:
        return self.store.all_new_reservations()

    def get_reservation(self, reservation_id: int) -> Reservation:
        return self.store.get_reservation_by_id(reservation_id)

    def update_reservation(self, reservation_id: int, form: Mapping[str, Any]) -> Reservation:
        """Replace the guest details of a stored reservation."""
        res = self.get_reservation(reservation_id)
        details = parse_guest_details(form)

        res = res.model_copy(update=details.model_dump())
        self.engine.guarded_write(self.store.update_reservation, res)
        logger.info("Reservation %s updated", reservation_id)
        return res

    def process_reservation(self, reservation_id: int) -> None:
        self.engine.guarded_write(
            self.store.update_processed_for_reservation, reservation_id, ProcessedState.PROCESSED
        )
        logger.info("Reservation %s marked as processed", reservation_id)

    def delete_reservation(self, reservation_id: int) -> None:
        """Delete the reservation; its restriction goes with it."""
        self.engine.guarded_write(self.store.delete_reservation, reservation_id)
        logger.info("Reservation %s deleted", reservation_id)
