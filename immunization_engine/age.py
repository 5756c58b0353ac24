"""
Age calculation in whole weeks since birth
"""

import math
from datetime import date, datetime, timedelta, timezone
from typing import Optional, Union

from .schema import DoseDefinition
from .errors import InvalidDateError

DateLike = Union[date, datetime]

WEEK = timedelta(weeks=1)

def as_datetime(value: DateLike) -> datetime:
    """Dates are taken at midnight; aware instants are converted to naive UTC"""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
    return datetime(value.year, value.month, value.day)

def as_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value

def age_in_weeks(birth_date: DateLike, reference: Optional[DateLike] = None) -> int:
    """
    Age in whole weeks, rounded up: ceil((reference - birth_date) / 1 week).

    The reference instant defaults to now; pass it explicitly for
    reproducible results.
    """
    born = as_datetime(birth_date)
    ref = as_datetime(reference) if reference is not None else datetime.now()

    if ref < born:
        raise InvalidDateError(
            f"Reference instant {ref.isoformat()} precedes birth date {born.date().isoformat()}",
            field="reference",
            details={"birth_date": born.date().isoformat(), "reference": ref.isoformat()}
        )

    return math.ceil((ref - born) / WEEK)

def weeks_between(start: DateLike, end: DateLike) -> float:
    """Fractional weeks from start to end (negative if end is earlier)"""
    return (as_datetime(end) - as_datetime(start)) / WEEK

def scheduled_date_for(dose: DoseDefinition, birth_date: DateLike) -> date:
    """Calendar date on which the dose becomes on-schedule"""
    return as_date(birth_date) + timedelta(weeks=dose.target_age_weeks)
