from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends

from .. import schemas
from ..admin import ReservationAdmin
from ..admin_calendar import CalendarReconciler, parse_calendar_form
from ..deps import get_admin, get_reconciler, get_session, require_admin
from ..sessions import Session

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
)


def _out(reservations) -> List[schemas.ReservationOut]:
    return [schemas.ReservationOut.from_reservation(r) for r in reservations]


@router.get("/reservations-new", response_model=List[schemas.ReservationOut])
def new_reservations(admin: ReservationAdmin = Depends(get_admin)):
    """Reservations nobody has processed yet."""
    return _out(admin.new_reservations())


@router.get("/reservations-all", response_model=List[schemas.ReservationOut])
def all_reservations(admin: ReservationAdmin = Depends(get_admin)):
    return _out(admin.all_reservations())


@router.get("/reservations/{reservation_id}", response_model=schemas.ReservationOut)
def show_reservation(reservation_id: int, admin: ReservationAdmin = Depends(get_admin)):
    return schemas.ReservationOut.from_reservation(admin.get_reservation(reservation_id))


@router.post("/reservations/{reservation_id}", response_model=schemas.ReservationOut)
def update_reservation(
    reservation_id: int,
    details: schemas.GuestDetailsIn,
    admin: ReservationAdmin = Depends(get_admin),
):
    """Change the guest's name, email or phone."""
    res = admin.update_reservation(reservation_id, details.model_dump())
    return schemas.ReservationOut.from_reservation(res)


@router.post("/process-reservation/{reservation_id}")
def process_reservation(reservation_id: int, admin: ReservationAdmin = Depends(get_admin)):
    admin.process_reservation(reservation_id)
    return {"detail": "Reservation marked as processed"}


@router.post("/delete-reservation/{reservation_id}")
def delete_reservation(reservation_id: int, admin: ReservationAdmin = Depends(get_admin)):
    """Delete a reservation together with the restriction it holds on the room."""
    admin.delete_reservation(reservation_id)
    return {"detail": "Reservation deleted"}


@router.get("/reservations-calendar", response_model=List[schemas.CalendarMonthOut])
def reservations_calendar(
    y: Optional[int] = None,
    m: Optional[int] = None,
    session: Session = Depends(get_session),
    reconciler: CalendarReconciler = Depends(get_reconciler),
):
    """
    Block and reservation counts per day for every room.

    Defaults to the current month. The maps are remembered in the session
    so the following POST can be diffed against them.
    """
    today = date.today()
    year, month = y or today.year, m or today.month
    rooms = {room.id: room.name for room in reconciler.engine.all_rooms()}
    return [
        schemas.CalendarMonthOut(
            room_id=cal.room_id,
            room_name=rooms.get(cal.room_id, ""),
            year=cal.year,
            month=cal.month,
            block_map=cal.block_map,
            reservation_map=cal.reservation_map,
        )
        for cal in reconciler.build_all(session, year, month)
    ]


@router.post("/reservations-calendar", response_model=schemas.CalendarChangesOut)
def post_reservations_calendar(
    form: schemas.CalendarFormIn,
    session: Session = Depends(get_session),
    reconciler: CalendarReconciler = Depends(get_reconciler),
):
    """
    Save the ticked owner blocks of a month.

    ``blocks`` holds the calendar checkboxes (``add_block_<room>_<date>``,
    ``remove_block_<room>_<date>``); days left unticked lose their block.
    """
    checked = parse_calendar_form(form.blocks)
    changes = reconciler.reconcile(session, form.year, form.month, checked)
    return schemas.CalendarChangesOut(
        added=changes.added,
        removed=changes.removed,
        rejected=[
            schemas.RejectedChange(room_id=room_id, day=day, reason=reason)
            for room_id, day, reason in changes.rejected
        ],
    )
