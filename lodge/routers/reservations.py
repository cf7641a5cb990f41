from fastapi import APIRouter, Depends

from .. import schemas
from ..booking import BookingWorkflow, booking_step
from ..dates import parse_range
from ..deps import get_session, get_workflow
from ..sessions import Session

router = APIRouter(tags=["reservations"])


@router.get("/search-availability")
def search_availability(session: Session = Depends(get_session)):
    """Where the client stands in the booking flow; the flow starts here."""
    return {"step": booking_step(session).value, **session.pop_messages()}


@router.post("/search-availability", response_model=schemas.SearchResult)
def post_availability(
    dates: schemas.DateRangeIn,
    session: Session = Depends(get_session),
    workflow: BookingWorkflow = Depends(get_workflow),
):
    """
    Search rooms free for the whole range ``[start, end)``.

    When rooms are found the dates are kept in the session as a draft
    reservation; pick one of the rooms with ``/choose-room/{room_id}``.
    """
    start_date, end_date = parse_range(dates.start, dates.end)
    rooms = workflow.search(session, start_date, end_date)
    return schemas.SearchResult(
        start_date=start_date,
        end_date=end_date,
        rooms=rooms,
        message="" if rooms else session.pop_messages()["error"],
    )


@router.post("/search-availability-json", response_model=schemas.AvailabilityResponse)
def availability_json(
    req: schemas.AvailabilityRequest,
    workflow: BookingWorkflow = Depends(get_workflow),
):
    """Check a single room; errors are reported in the body, never as a status code."""
    return workflow.check_availability_json(req.room_id, req.start, req.end)


@router.get("/choose-room/{room_id}", response_model=schemas.ReservationOut)
def choose_room(
    room_id: int,
    session: Session = Depends(get_session),
    workflow: BookingWorkflow = Depends(get_workflow),
):
    draft = workflow.choose_room(session, room_id)
    return schemas.ReservationOut.from_reservation(draft)


@router.get("/book-room", response_model=schemas.ReservationOut)
def book_room(
    id: int,
    s: str,
    e: str,
    session: Session = Depends(get_session),
    workflow: BookingWorkflow = Depends(get_workflow),
):
    """Start a reservation for room ``id`` from ``s`` to ``e`` directly."""
    draft = workflow.book_room(session, id, s, e)
    return schemas.ReservationOut.from_reservation(draft)


@router.get("/make-reservation", response_model=schemas.ReservationOut)
def make_reservation(
    session: Session = Depends(get_session),
    workflow: BookingWorkflow = Depends(get_workflow),
):
    return schemas.ReservationOut.from_reservation(workflow.current_draft(session))


@router.post("/make-reservation", response_model=schemas.ReservationOut)
def post_reservation(
    details: schemas.GuestDetailsIn,
    session: Session = Depends(get_session),
    workflow: BookingWorkflow = Depends(get_workflow),
):
    """
    Attach guest details to the draft.

    Invalid details answer 422 with per-field messages and leave the draft
    as it was.
    """
    draft = workflow.submit_guest_details(session, details.model_dump())
    return schemas.ReservationOut.from_reservation(draft)


@router.get("/reservation-summary", response_model=schemas.ReservationOut)
def reservation_summary(
    session: Session = Depends(get_session),
    workflow: BookingWorkflow = Depends(get_workflow),
):
    return schemas.ReservationOut.from_reservation(workflow.summary(session))


@router.post("/reservation-summary/confirm", response_model=schemas.ReservationOut)
def confirm_reservation(
    session: Session = Depends(get_session),
    workflow: BookingWorkflow = Depends(get_workflow),
):
    """Persist the reservation and its room restriction, then clear the draft."""
    saved = workflow.confirm(session)
    return schemas.ReservationOut.from_reservation(saved)
