"""
Pytest configuration and shared fixtures for the Lodge reservation tests.
"""
import os

os.environ.setdefault("LODGE_STORE", "memory")

from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from lodge.admin import ReservationAdmin
from lodge.admin_calendar import CalendarReconciler
from lodge.booking import BookingWorkflow
from lodge.database import Base
from lodge.deps import get_engine, get_password_hash, get_session_store
from lodge.engine import AvailabilityEngine
from lodge.errors import InsertError, QueryError, RecordNotFound
from lodge.main import app
from lodge.repository.memory import InMemoryStore
from lodge.repository.sqlalchemy_store import SQLAlchemyStore
from lodge.schemas import Reservation, Room, User
from lodge.sessions import SessionStore


ROOMS = [Room(id=1, name="General's Quarters"), Room(id=2, name="Major's Suite")]


class FixtureStore(InMemoryStore):
    """
    Store double with scripted failures:

    - reservations for room 2 cannot be inserted
    - restrictions for room 1000 cannot be inserted
    - any search starting 2040-01-01 fails
    - searches starting after 2029-12-31 find nothing free
    - rooms above id 2 do not exist
    """

    UNAVAILABLE_AFTER = date(2029, 12, 31)
    FAILING_START = date(2040, 1, 1)

    def __init__(self):
        super().__init__(rooms=ROOMS + [Room(id=1000, name="Broken Room")])

    def insert_reservation(self, res):
        if res.room_id == 2:
            raise InsertError("some error")
        return super().insert_reservation(res)

    def insert_room_restriction(self, restriction):
        if restriction.room_id == 1000:
            raise InsertError("some error")
        return super().insert_room_restriction(restriction)

    def search_availability_by_dates_by_room_id(self, start, end, room_id):
        if start == self.FAILING_START:
            raise QueryError("some error")
        if start > self.UNAVAILABLE_AFTER:
            return False
        return True

    def search_availability_for_all_rooms(self, start, end):
        if start == self.FAILING_START:
            raise QueryError("some error")
        if start > self.UNAVAILABLE_AFTER:
            return []
        return [Room(id=1, name="General's Quarters")]

    def get_room_by_id(self, room_id):
        if room_id > 2:
            raise RecordNotFound("some error")
        return super().get_room_by_id(room_id)


# Use an in-memory SQLite database for the SQL store
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture(scope="function")
def sql_store():
    """
    A SQLAlchemyStore on a fresh in-memory database with two rooms.
    """
    db_engine = create_engine(
        SQLALCHEMY_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=db_engine)
    store = SQLAlchemyStore(sessionmaker(autocommit=False, autoflush=False, bind=db_engine))
    for room in ROOMS:
        store.add_room(room.name)
    try:
        yield store
    finally:
        Base.metadata.drop_all(bind=db_engine)
        db_engine.dispose()


@pytest.fixture
def memory_store():
    return InMemoryStore(rooms=ROOMS)


@pytest.fixture(params=["memory", "sql"])
def store(request):
    """Every test using this fixture runs against both store implementations."""
    return request.getfixturevalue(f"{request.param}_store")


@pytest.fixture
def fixture_store():
    return FixtureStore()


@pytest.fixture
def engine(store):
    return AvailabilityEngine(store)


@pytest.fixture
def fixture_engine(fixture_store):
    return AvailabilityEngine(fixture_store)


@pytest.fixture
def session_store():
    return SessionStore()


@pytest.fixture
def session(session_store):
    return session_store.new()


@pytest.fixture
def workflow(engine):
    return BookingWorkflow(engine)


@pytest.fixture
def reconciler(engine):
    return CalendarReconciler(engine)


@pytest.fixture
def admin(engine):
    return ReservationAdmin(engine)


@pytest.fixture
def guest():
    return {
        "first_name": "Alister",
        "last_name": "Azimuth",
        "email": "alister@example.com",
        "phone": "7777777777",
    }


@pytest.fixture
def reserve(engine, guest):
    """Commit a reservation straight through the engine."""
    def _reserve(room_id, start, end):
        draft = Reservation(room_id=room_id, start_date=start, end_date=end, **guest)
        return engine.commit_reservation(draft)

    return _reserve


@pytest.fixture(scope="function")
def client(engine, session_store):
    """
    Create a test client wired to the test engine and session store.
    """
    app.dependency_overrides[get_engine] = lambda: engine
    app.dependency_overrides[get_session_store] = lambda: session_store
    app.state.limiter.enabled = False
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def admin_user(store):
    """
    Create an administrator account.
    """
    user = User(
        first_name="Admin",
        last_name="User",
        email="admin@example.com",
        password=get_password_hash("adminpass123"),
        access_level=3,
    )
    user.id = store.insert_user(user)
    return user


@pytest.fixture
def regular_user(store):
    user = User(
        first_name="Regular",
        last_name="User",
        email="regular@example.com",
        password=get_password_hash("regularpass123"),
        access_level=1,
    )
    user.id = store.insert_user(user)
    return user


@pytest.fixture
def admin_token(client, admin_user):
    response = client.post(
        "/user/login",
        params={"email": "admin@example.com", "password": "adminpass123"},
    )
    return response.json()["access_token"]


@pytest.fixture
def regular_token(client, regular_user):
    response = client.post(
        "/user/login",
        params={"email": "regular@example.com", "password": "regularpass123"},
    )
    return response.json()["access_token"]


def get_auth_header(token: str) -> dict:
    """
    Helper function to create authorization header.
    """
    return {"Authorization": f"Bearer {token}"}
