"""
Server-side, cookie-identified session storage.

Each client gets a ``Session`` holding typed slots for the values the
booking flow and the admin calendar carry between requests.
"""
import logging
import secrets
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Callable, Dict, Optional

from .schemas import Reservation

if TYPE_CHECKING:
    from .admin_calendar import CalendarMonth

logger = logging.getLogger(__name__)


@dataclass
class Session:
    token: str
    expires_at: datetime
    # draft reservation of the booking flow
    reservation: Optional[Reservation] = None
    # calendar maps of the month last rendered, per room id
    calendars: Dict[int, "CalendarMonth"] = field(default_factory=dict)
    user_id: Optional[int] = None
    flash: str = ""
    warning: str = ""
    error: str = ""

    def pop_messages(self) -> Dict[str, str]:
        messages = {"flash": self.flash, "warning": self.warning, "error": self.error}
        self.flash = self.warning = self.error = ""
        return messages


class SessionStore:
    """Thread-safe in-process session store with a sliding lifetime."""

    def __init__(
        self,
        lifetime: timedelta = timedelta(hours=24),
        clock: Callable[[], datetime] = datetime.utcnow,
        purge_interval: timedelta = timedelta(minutes=10),
    ):
        self.lifetime = lifetime
        self.purge_interval = purge_interval
        self._clock = clock
        self._sessions: Dict[str, Session] = {}
        self._lock = threading.Lock()
        self._next_purge = clock() + purge_interval

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def new(self) -> Session:
        """Start a session; expired ones are swept at most once per purge interval."""
        now = self._clock()
        if now >= self._next_purge:
            self._next_purge = now + self.purge_interval
            purged = self.purge_expired()
            if purged:
                logger.debug("Purged %d expired session(s)", purged)
        session = Session(
            token=secrets.token_urlsafe(32),
            expires_at=now + self.lifetime,
        )
        self.put(session)
        return session

    def get(self, token: Optional[str]) -> Optional[Session]:
        """Return the live session for ``token``, renewing its lifetime."""
        if not token:
            return None
        now = self._clock()
        with self._lock:
            session = self._sessions.get(token)
            if session is None:
                return None
            if session.expires_at <= now:
                del self._sessions[token]
                logger.debug("Session expired")
                return None
            session.expires_at = now + self.lifetime
            return session

    def load(self, token: Optional[str]) -> Session:
        """Existing session for ``token`` or a brand new one."""
        return self.get(token) or self.new()

    def put(self, session: Session) -> None:
        with self._lock:
            self._sessions[session.token] = session

    def remove(self, token: str) -> None:
        with self._lock:
            self._sessions.pop(token, None)

    def destroy(self, session: Session) -> None:
        """Drop all state of ``session`` (logout)."""
        session.reservation = None
        session.calendars.clear()
        session.user_id = None
        self.remove(session.token)

    def purge_expired(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [t for t, s in self._sessions.items() if s.expires_at <= now]
            for token in expired:
                del self._sessions[token]
        return len(expired)
