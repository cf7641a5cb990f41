from fastapi import APIRouter, Depends
from typing import List

from .. import schemas
from ..deps import get_engine
from ..engine import AvailabilityEngine

router = APIRouter(prefix="/rooms", tags=["rooms"])


@router.get("/", response_model=List[schemas.Room])
def list_rooms(engine: AvailabilityEngine = Depends(get_engine)):
    """List every room, ordered by id."""
    return engine.all_rooms()


@router.get("/{room_id}", response_model=schemas.Room)
def get_room(room_id: int, engine: AvailabilityEngine = Depends(get_engine)):
    """
    Retrieve a single room by its ID.

    Raises a 404 error if the room does not exist.
    """
    return engine.get_room(room_id)
