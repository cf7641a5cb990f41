"""Half-open date range helpers shared by the engine, stores and calendar."""
import calendar
from datetime import date, datetime, timedelta
from typing import Iterator, Tuple

from .errors import ValidationError

DATE_LAYOUT = "%Y-%m-%d"


def overlaps(start1: date, end1: date, start2: date, end2: date) -> bool:
    """
    Check if two date ranges overlap.

    Returns True if the range [start1, end1) overlaps with [start2, end2).
    """
    return start1 < end2 and start2 < end1


def parse_date(value, field: str) -> date:
    """Parse a ``YYYY-MM-DD`` form value, raising ValidationError for ``field``."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime((value or "").strip(), DATE_LAYOUT).date()
    except ValueError:
        raise ValidationError.for_field(field, "Invalid date, expected YYYY-MM-DD")


def parse_range(start, end, start_field: str = "start", end_field: str = "end") -> Tuple[date, date]:
    """Parse and order-check a half-open range."""
    errors = {}
    parsed = {}
    for field, value in ((start_field, start), (end_field, end)):
        try:
            parsed[field] = parse_date(value, field)
        except ValidationError as exc:
            errors.update(exc.errors)
    if errors:
        raise ValidationError(errors)

    start_date, end_date = parsed[start_field], parsed[end_field]
    if start_date >= end_date:
        raise ValidationError.for_field(end_field, "End date must be after start date")
    return start_date, end_date


def days(start: date, end: date) -> Iterator[date]:
    """Yield every night in [start, end)."""
    current = start
    while current < end:
        yield current
        current += timedelta(days=1)


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    """First day of the month and first day of the following month."""
    if not 1 <= month <= 12:
        raise ValidationError.for_field("month", "Month must be between 1 and 12")
    first = date(year, month, 1)
    last_day = calendar.monthrange(year, month)[1]
    return first, first + timedelta(days=last_day)
