"""
Exception types raised by the availability engine and its collaborators.

The core never returns error codes: every failure is one of the classes
below, and the HTTP layer (see ``error_handlers``) decides how to present it.
"""
from typing import Dict, List, Optional


class LodgeError(Exception):
    """Base class for all domain errors."""


class ValidationError(LodgeError):
    """
    Bad input shape: date order, empty required field, malformed id.

    ``errors`` maps a form field name to the messages for that field, so the
    originating form can be re-rendered with field-level annotations.
    """

    def __init__(self, errors: Dict[str, List[str]], message: str = "Invalid form data"):
        super().__init__(message)
        self.errors = errors

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls({field: [message]}, message)


class QueryError(LodgeError):
    """The store could not answer a read."""


class RecordNotFound(QueryError):
    """A room, reservation or restriction id does not exist."""


class InsertError(LodgeError):
    """The store rejected or failed a write."""


class RoomUnavailable(LodgeError):
    """The room was taken between the availability check and the commit."""

    def __init__(self, room_id: int, message: Optional[str] = None):
        super().__init__(message or f"Room {room_id} is no longer available for those dates")
        self.room_id = room_id


class NoActiveReservation(LodgeError):
    """A workflow step was requested without a draft reservation in session."""

    def __init__(self, message: str = "Can't get reservation from session"):
        super().__init__(message)


class AuthenticationError(LodgeError):
    """Invalid login credentials."""


class RestrictionConflict(InsertError):
    """The store refused a restriction overlapping an existing one."""
