import logging
from datetime import date, timedelta
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload, sessionmaker

from .. import models
from ..errors import InsertError, QueryError, RecordNotFound, RestrictionConflict
from ..schemas import (
    ProcessedState,
    Reservation,
    RestrictionType,
    Room,
    RoomRestriction,
    User,
)
from .base import ReservationStore

logger = logging.getLogger(__name__)


class SQLAlchemyStore(ReservationStore):
    """Store adapter over a SQLAlchemy session factory."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def _overlapping(self, db: Session, room_id: int, start: date, end: date):
        return db.query(models.RoomRestriction).filter(
            models.RoomRestriction.room_id == room_id,
            models.RoomRestriction.start_date < end,
            models.RoomRestriction.end_date > start,
        )

    def _reservation_row(self, db: Session, reservation_id: int) -> models.Reservation:
        row = db.query(models.Reservation).filter(models.Reservation.id == reservation_id).first()
        if not row:
            raise RecordNotFound(f"Reservation {reservation_id} not found")
        return row

    # ----- availability -----
    def search_availability_by_dates_by_room_id(self, start, end, room_id):
        try:
            with self._session_factory() as db:
                return self._overlapping(db, room_id, start, end).count() == 0
        except SQLAlchemyError as exc:
            logger.error("availability query failed for room %s: %s", room_id, exc)
            raise QueryError("Error connecting to database") from exc

    def search_availability_for_all_rooms(self, start, end):
        try:
            with self._session_factory() as db:
                taken = select(models.RoomRestriction.room_id).where(
                    models.RoomRestriction.start_date < end,
                    models.RoomRestriction.end_date > start,
                )
                rows = (
                    db.query(models.Room)
                    .filter(models.Room.id.notin_(taken))
                    .order_by(models.Room.id)
                    .all()
                )
                return [Room.model_validate(r) for r in rows]
        except SQLAlchemyError as exc:
            logger.error("availability query for all rooms failed: %s", exc)
            raise QueryError("Error connecting to database") from exc

    # ----- rooms -----
    def get_room_by_id(self, room_id):
        try:
            with self._session_factory() as db:
                row = db.query(models.Room).filter(models.Room.id == room_id).first()
                if not row:
                    raise RecordNotFound(f"Room {room_id} not found")
                return Room.model_validate(row)
        except SQLAlchemyError as exc:
            raise QueryError("Error connecting to database") from exc

    def all_rooms(self):
        try:
            with self._session_factory() as db:
                rows = db.query(models.Room).order_by(models.Room.id).all()
                return [Room.model_validate(r) for r in rows]
        except SQLAlchemyError as exc:
            raise QueryError("Error connecting to database") from exc

    def add_room(self, name: str) -> Room:
        """Seed helper; rooms are otherwise reference data."""
        try:
            with self._session_factory() as db:
                row = models.Room(name=name)
                db.add(row)
                db.commit()
                db.refresh(row)
                return Room.model_validate(row)
        except SQLAlchemyError as exc:
            raise InsertError(f"Could not add room {name!r}") from exc

    # ----- reservations -----
    def insert_reservation(self, res):
        try:
            with self._session_factory() as db:
                if not db.query(models.Room).filter(models.Room.id == res.room_id).first():
                    raise InsertError(f"Room {res.room_id} does not exist")
                row = models.Reservation(
                    first_name=res.first_name,
                    last_name=res.last_name,
                    email=res.email,
                    phone=res.phone,
                    start_date=res.start_date,
                    end_date=res.end_date,
                    room_id=res.room_id,
                    processed=int(ProcessedState.NEW),
                )
                db.add(row)
                db.commit()
                db.refresh(row)
                return row.id
        except SQLAlchemyError as exc:
            logger.error("insert reservation failed: %s", exc)
            raise InsertError("Can't insert reservation into database") from exc

    def _reservations(self, only_new: bool) -> List[Reservation]:
        try:
            with self._session_factory() as db:
                query = db.query(models.Reservation).options(joinedload(models.Reservation.room))
                if only_new:
                    query = query.filter(models.Reservation.processed == int(ProcessedState.NEW))
                rows = query.order_by(models.Reservation.start_date).all()
                return [Reservation.model_validate(r) for r in rows]
        except SQLAlchemyError as exc:
            raise QueryError("Error connecting to database") from exc

    def all_reservations(self):
        return self._reservations(only_new=False)

    def all_new_reservations(self):
        return self._reservations(only_new=True)

    def get_reservation_by_id(self, reservation_id):
        try:
            with self._session_factory() as db:
                row = self._reservation_row(db, reservation_id)
                return Reservation.model_validate(row)
        except SQLAlchemyError as exc:
            raise QueryError("Error connecting to database") from exc

    def update_reservation(self, res):
        try:
            with self._session_factory() as db:
                row = self._reservation_row(db, res.id)
                row.first_name = res.first_name
                row.last_name = res.last_name
                row.email = res.email
                row.phone = res.phone
                db.commit()
        except SQLAlchemyError as exc:
            raise InsertError(f"Can't update reservation {res.id}") from exc

    def delete_reservation(self, reservation_id):
        try:
            with self._session_factory() as db:
                row = self._reservation_row(db, reservation_id)
                db.delete(row)
                db.commit()
        except SQLAlchemyError as exc:
            raise InsertError(f"Can't delete reservation {reservation_id}") from exc

    def update_processed_for_reservation(self, reservation_id, processed):
        try:
            with self._session_factory() as db:
                row = self._reservation_row(db, reservation_id)
                row.processed = int(processed)
                db.commit()
        except SQLAlchemyError as exc:
            raise InsertError(f"Can't update reservation {reservation_id}") from exc

    # ----- restrictions -----
    def insert_room_restriction(self, restriction):
        try:
            with self._session_factory() as db:
                clash = self._overlapping(
                    db, restriction.room_id, restriction.start_date, restriction.end_date
                ).first()
                if clash:
                    raise RestrictionConflict(
                        f"Room {restriction.room_id} already restricted from "
                        f"{clash.start_date} to {clash.end_date}"
                    )
                row = models.RoomRestriction(
                    start_date=restriction.start_date,
                    end_date=restriction.end_date,
                    room_id=restriction.room_id,
                    reservation_id=restriction.reservation_id,
                    restriction_type=RestrictionType(restriction.restriction_type).value,
                )
                db.add(row)
                db.commit()
                db.refresh(row)
                return row.id
        except SQLAlchemyError as exc:
            logger.error("insert restriction failed: %s", exc)
            raise InsertError("Can't insert room restriction") from exc

    def get_restrictions_for_room_by_date(self, room_id, start, end):
        try:
            with self._session_factory() as db:
                rows = (
                    self._overlapping(db, room_id, start, end)
                    .order_by(models.RoomRestriction.start_date)
                    .all()
                )
                return [RoomRestriction.model_validate(r) for r in rows]
        except SQLAlchemyError as exc:
            raise QueryError("Error connecting to database") from exc

    def delete_restriction(self, restriction_id):
        try:
            with self._session_factory() as db:
                row = db.query(models.RoomRestriction).filter(
                    models.RoomRestriction.id == restriction_id
                ).first()
                if not row:
                    raise RecordNotFound(f"Restriction {restriction_id} not found")
                db.delete(row)
                db.commit()
        except SQLAlchemyError as exc:
            raise InsertError(f"Can't delete restriction {restriction_id}") from exc

    def delete_block_for_room_by_date(self, room_id, day):
        try:
            with self._session_factory() as db:
                removed = db.query(models.RoomRestriction).filter(
                    models.RoomRestriction.room_id == room_id,
                    models.RoomRestriction.restriction_type == RestrictionType.OWNER_BLOCK.value,
                    models.RoomRestriction.start_date == day,
                    models.RoomRestriction.end_date == day + timedelta(days=1),
                ).delete(synchronize_session=False)
                db.commit()
                return removed
        except SQLAlchemyError as exc:
            raise InsertError(f"Can't remove block for room {room_id} on {day}") from exc

    # ----- users -----
    def get_user_by_email(self, email) -> Optional[User]:
        try:
            with self._session_factory() as db:
                row = db.query(models.User).filter(models.User.email == email).first()
                return User.model_validate(row) if row else None
        except SQLAlchemyError as exc:
            raise QueryError("Error connecting to database") from exc

    def insert_user(self, user):
        try:
            with self._session_factory() as db:
                row = models.User(
                    first_name=user.first_name,
                    last_name=user.last_name,
                    email=user.email,
                    password=user.password,
                    access_level=user.access_level,
                )
                db.add(row)
                db.commit()
                db.refresh(row)
                return row.id
        except SQLAlchemyError as exc:
            raise InsertError(f"Can't insert user {user.email}") from exc
