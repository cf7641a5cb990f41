import logging

from ..config import Settings
from ..schemas import Room
from .base import ReservationStore
from .memory import InMemoryStore
from .sqlalchemy_store import SQLAlchemyStore

logger = logging.getLogger(__name__)

DEFAULT_ROOMS = ("General's Quarters", "Major's Suite")


def build_store(settings: Settings) -> ReservationStore:
    """Pick the store implementation named by ``settings.store``."""
    if settings.store == "memory":
        logger.info("Using in-memory reservation store")
        return InMemoryStore(
            rooms=[Room(id=i, name=name) for i, name in enumerate(DEFAULT_ROOMS, start=1)]
        )
    if settings.store == "sql":
        from ..database import Base, SessionLocal, engine

        Base.metadata.create_all(bind=engine)
        store = SQLAlchemyStore(SessionLocal)
        if not store.all_rooms():
            for name in DEFAULT_ROOMS:
                store.add_room(name)
        logger.info("Using SQL reservation store at %s", engine.url.render_as_string(hide_password=True))
        return store
    raise ValueError(f"Unknown LODGE_STORE {settings.store!r}, expected 'sql' or 'memory'")
