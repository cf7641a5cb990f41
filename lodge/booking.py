"""
Multi-step booking flow.

The draft reservation lives in the client's session and advances through
``BookingStep`` one request at a time:

    EMPTY -> DATES_CHOSEN -> ROOM_CHOSEN -> VALIDATED -> (committed, cleared)

Any step that needs a draft raises ``NoActiveReservation`` when there is
none, which the HTTP layer turns into a redirect to the search page.
"""
import logging
from enum import Enum
from typing import Any, Dict, List, Mapping

from pydantic import ValidationError as PydanticValidationError

from .dates import DATE_LAYOUT, parse_range
from .engine import AvailabilityEngine
from .errors import NoActiveReservation, QueryError, ValidationError
from .schemas import AvailabilityResponse, GuestDetails, Reservation, Room
from .sessions import Session

logger = logging.getLogger(__name__)


class BookingStep(str, Enum):
    EMPTY = "empty"
    DATES_CHOSEN = "dates_chosen"
    ROOM_CHOSEN = "room_chosen"
    VALIDATED = "validated"


def booking_step(session: Session) -> BookingStep:
    draft = session.reservation
    if draft is None:
        return BookingStep.EMPTY
    if draft.room_id is None:
        return BookingStep.DATES_CHOSEN
    if not (draft.first_name and draft.last_name and draft.email and draft.phone):
        return BookingStep.ROOM_CHOSEN
    return BookingStep.VALIDATED


def parse_guest_details(form: Mapping[str, Any]) -> GuestDetails:
    """Validate guest details, raising ValidationError with per-field messages."""
    try:
        return GuestDetails(**{k: form.get(k, "") for k in GuestDetails.model_fields})
    except PydanticValidationError as exc:
        errors: Dict[str, List[str]] = {}
        for err in exc.errors():
            field = str(err["loc"][0]) if err["loc"] else "form"
            errors.setdefault(field, []).append(err["msg"])
        raise ValidationError(errors) from exc


class BookingWorkflow:
    def __init__(self, engine: AvailabilityEngine):
        self.engine = engine

    def current_draft(self, session: Session) -> Reservation:
        if session.reservation is None:
            raise NoActiveReservation()
        return session.reservation

    def search(self, session: Session, start: Any, end: Any) -> List[Room]:
        """
        Look for rooms free in ``[start, end)``.

        When at least one room is free the dates are staged as a new draft;
        otherwise the session is left alone and an error message is set.
        """
        start_date, end_date = parse_range(start, end)
        rooms = self.engine.search_all_rooms_available(start_date, end_date)
        if not rooms:
            session.error = "No availability"
            return rooms

        session.reservation = Reservation(start_date=start_date, end_date=end_date)
        logger.info("Dates %s to %s staged, %d room(s) free", start_date, end_date, len(rooms))
        return rooms

    def choose_room(self, session: Session, room_id: int) -> Reservation:
        draft = self.current_draft(session)
        room = self.engine.get_room(room_id)
        draft.room_id = room.id
        draft.room = room
        session.reservation = draft
        return draft

    def book_room(self, session: Session, room_id: int, start: Any, end: Any) -> Reservation:
        """Stage a draft straight from a room page, skipping the search step."""
        start_date, end_date = parse_range(start, end, "s", "e")
        room = self.engine.get_room(room_id)
        draft = Reservation(room_id=room.id, room=room, start_date=start_date, end_date=end_date)
        session.reservation = draft
        return draft

    def submit_guest_details(self, session: Session, form: Mapping[str, Any]) -> Reservation:
        """
        Validate guest details and attach them to the draft.

        On failure the draft keeps its previous state and ValidationError
        carries the per-field messages.
        """
        draft = self.current_draft(session)
        if draft.room_id is None:
            raise NoActiveReservation("Choose a room before entering guest details")

        details = parse_guest_details(form)

        if draft.start_date >= draft.end_date:
            raise ValidationError.for_field("end_date", "End date must be after start date")

        session.reservation = draft.model_copy(update=details.model_dump())
        return session.reservation

    def summary(self, session: Session) -> Reservation:
        draft = self.current_draft(session)
        if booking_step(session) != BookingStep.VALIDATED:
            raise NoActiveReservation("Reservation details have not been submitted")
        return draft

    def confirm(self, session: Session) -> Reservation:
        """Persist the validated draft; the draft stays in session if the store fails."""
        draft = self.summary(session)
        saved = self.engine.commit_reservation(draft)
        session.reservation = None
        session.flash = "Reservation confirmed"
        logger.info("Reservation %s committed", saved.id)
        return saved

    def check_availability_json(self, room_id: int, start: Any, end: Any) -> AvailabilityResponse:
        try:
            start_date, end_date = parse_range(start, end)
        except ValidationError as exc:
            return AvailabilityResponse(ok=False, message=str(exc), room_id=room_id)

        try:
            available = self.engine.check_room_available(room_id, start_date, end_date)
        except QueryError:
            return AvailabilityResponse(ok=False, message="Error connecting to database", room_id=room_id)

        return AvailabilityResponse(
            ok=available,
            room_id=room_id,
            start_date=start_date.strftime(DATE_LAYOUT),
            end_date=end_date.strftime(DATE_LAYOUT),
        )
