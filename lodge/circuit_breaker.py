from pybreaker import CircuitBreaker

from .errors import RecordNotFound, RestrictionConflict


def make_store_breaker(name: str = "reservation_store_breaker") -> CircuitBreaker:
    """
    Circuit breaker guarding writes to the reservation store.

    Overlap rejections and unknown ids are answers from a healthy store,
    so they do not count as failures.
    """
    return CircuitBreaker(
        fail_max=3,
        reset_timeout=60,
        exclude=[RestrictionConflict, RecordNotFound],
        name=name,
    )
