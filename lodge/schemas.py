from datetime import date, datetime
from enum import Enum, IntEnum
from typing import Dict, List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator


class RestrictionType(str, Enum):
    RESERVATION = "reservation"
    OWNER_BLOCK = "owner_block"


class ProcessedState(IntEnum):
    UNKNOWN = -1
    NEW = 0
    PROCESSED = 1


# ----- Rooms -----
class Room(BaseModel):
    id: int
    name: str = ""

    class Config:
        from_attributes = True


# ----- Reservations -----
class Reservation(BaseModel):
    """
    A reservation, persisted or still a draft.

    Drafts have no ``id`` and may lack a room or guest details; they must be
    validated before they are handed to the store.
    """
    id: Optional[int] = None
    room_id: Optional[int] = None
    room: Optional[Room] = None
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    start_date: date
    end_date: date
    processed: ProcessedState = ProcessedState.NEW
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @field_validator("processed", mode="before")
    @classmethod
    def coerce_processed(cls, value):
        # anything the store hands back that is neither new nor processed
        if isinstance(value, ProcessedState):
            return value
        try:
            return ProcessedState(int(value))
        except (TypeError, ValueError):
            return ProcessedState.UNKNOWN


class GuestDetails(BaseModel):
    first_name: str = Field(min_length=3)
    last_name: str = Field(min_length=1)
    email: EmailStr
    phone: str = Field(min_length=1)

    @field_validator("first_name", "last_name", "phone", mode="before")
    @classmethod
    def strip_whitespace(cls, value):
        if isinstance(value, str):
            return value.strip()
        return value


class ReservationOut(BaseModel):
    id: Optional[int] = None
    room_id: Optional[int] = None
    room_name: Optional[str] = None
    first_name: str
    last_name: str
    email: str
    phone: str
    start_date: date
    end_date: date
    processed: int

    @classmethod
    def from_reservation(cls, res: Reservation) -> "ReservationOut":
        return cls(
            id=res.id,
            room_id=res.room_id,
            room_name=res.room.name if res.room else None,
            first_name=res.first_name,
            last_name=res.last_name,
            email=res.email,
            phone=res.phone,
            start_date=res.start_date,
            end_date=res.end_date,
            processed=int(res.processed),
        )


# ----- Restrictions -----
class RoomRestriction(BaseModel):
    id: Optional[int] = None
    start_date: date
    end_date: date
    room_id: int
    reservation_id: Optional[int] = None
    restriction_type: RestrictionType

    class Config:
        from_attributes = True


# ----- Users -----
class User(BaseModel):
    id: Optional[int] = None
    first_name: str = ""
    last_name: str = ""
    email: str
    password: str
    access_level: int = 1
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ----- Auth -----
class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class TokenData(BaseModel):
    email: Optional[str] = None
    access_level: Optional[int] = None


# ----- Booking flow requests / responses -----
class DateRangeIn(BaseModel):
    start: str
    end: str


class AvailabilityRequest(DateRangeIn):
    room_id: int


class AvailabilityResponse(BaseModel):
    ok: bool
    message: str = ""
    room_id: Optional[int] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None


class SearchResult(BaseModel):
    start_date: date
    end_date: date
    rooms: List[Room]
    message: str = ""


class GuestDetailsIn(BaseModel):
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""


# ----- Admin calendar -----
class CalendarMonthOut(BaseModel):
    room_id: int
    room_name: str = ""
    year: int
    month: int
    block_map: Dict[date, int]
    reservation_map: Dict[date, int]


class CalendarFormIn(BaseModel):
    year: int
    month: int
    # raw checkbox fields, e.g. {"add_block_1_2024-03-05": "1"}
    blocks: Dict[str, str] = {}


class RejectedChange(BaseModel):
    room_id: int
    day: date
    reason: str


class CalendarChangesOut(BaseModel):
    added: Dict[int, List[date]]
    removed: Dict[int, List[date]]
    rejected: List[RejectedChange] = []
