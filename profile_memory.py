import os

os.environ.setdefault("LODGE_STORE", "memory")

from memory_profiler import profile
from fastapi.testclient import TestClient

from lodge.main import app


@profile
def run_scenario():
    """
    Walk one guest through the booking flow while tracking memory.
    Used for memory profiling only, nothing is asserted.
    """
    with TestClient(app) as client:
        client.get("/health")
        client.get("/rooms/")
        client.post("/search-availability", json={"start": "2031-05-01", "end": "2031-05-04"})
        client.get("/choose-room/1")
        client.post(
            "/make-reservation",
            json={
                "first_name": "Alister",
                "last_name": "Azimuth",
                "email": "alister@example.com",
                "phone": "7777777777",
            },
        )
        client.post("/reservation-summary/confirm")


if __name__ == "__main__":
    run_scenario()
