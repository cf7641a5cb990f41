from datetime import datetime

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Date, Index
from sqlalchemy.orm import relationship
from .database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String, nullable=False, default="")
    last_name = Column(String, nullable=False, default="")
    email = Column(String, unique=True, index=True, nullable=False)
    password = Column(String, nullable=False)
    access_level = Column(Integer, nullable=False, default=1)  # 3 = administrator
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class Room(Base):
    __tablename__ = "rooms"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    reservations = relationship("Reservation", back_populates="room")
    restrictions = relationship("RoomRestriction", back_populates="room")


class Reservation(Base):
    __tablename__ = "reservations"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    phone = Column(String, nullable=False, default="")
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    room_id = Column(Integer, ForeignKey("rooms.id"), nullable=False)
    processed = Column(Integer, nullable=False, default=0)  # 0 new, 1 processed
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    room = relationship("Room", back_populates="reservations")
    # deleting a reservation removes the restriction it owns
    restrictions = relationship(
        "RoomRestriction",
        back_populates="reservation",
        cascade="all, delete-orphan",
    )


class RoomRestriction(Base):
    __tablename__ = "room_restrictions"
    __table_args__ = (
        Index("ix_room_restrictions_room_dates", "room_id", "start_date", "end_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    room_id = Column(Integer, ForeignKey("rooms.id"), nullable=False)
    reservation_id = Column(
        Integer, ForeignKey("reservations.id", ondelete="CASCADE"), nullable=True
    )
    restriction_type = Column(String, nullable=False)  # "reservation" or "owner_block"
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    room = relationship("Room", back_populates="restrictions")
    reservation = relationship("Reservation", back_populates="restrictions")
