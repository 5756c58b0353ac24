"""
Series interval enforcement between consecutive doses of one vaccine
"""

import math
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional

from .age import weeks_between
from .catalog import Catalog
from .schema import AdministrationRecord, DoseDefinition, RecordStatus

@dataclass(frozen=True)
class SeriesBlock:
    """Whether a dose is held back by its predecessor in the series"""
    blocked: bool
    weeks_remaining: Optional[int] = None  # None when the predecessor is not completed

NOT_BLOCKED = SeriesBlock(blocked=False)

def completed_records_by_dose(records: Iterable[AdministrationRecord]) -> Dict[str, List[AdministrationRecord]]:
    completed: Dict[str, List[AdministrationRecord]] = {}
    for record in records:
        if record.status == RecordStatus.COMPLETED:
            completed.setdefault(record.dose_id, []).append(record)
    return completed

def latest_completion(records: Iterable[AdministrationRecord]) -> Optional[date]:
    dates = [r.completed_date or r.scheduled_date for r in records]
    return max(dates) if dates else None

def series_block(catalog: Catalog,
                 dose: DoseDefinition,
                 completed: Dict[str, List[AdministrationRecord]],
                 reference_date: date) -> SeriesBlock:
    """
    Check dose N against the most recent completion of dose N-1.

    Only completed records anchor the interval: while dose N-1 is skipped or
    not yet given, dose N stays blocked with weeks_remaining None.
    Informational only: the caller decides whether to enforce or override.
    """
    if dose.dose_number <= 1:
        return NOT_BLOCKED

    previous = catalog.previous_in_series(dose)
    if previous is None:
        # predecessor not part of this (possibly personalized) catalog
        return NOT_BLOCKED

    last_given = latest_completion(completed.get(previous.id, []))
    if last_given is None:
        return SeriesBlock(blocked=True)

    if not dose.minimum_interval_weeks:
        return NOT_BLOCKED

    elapsed = weeks_between(last_given, reference_date)
    if elapsed < dose.minimum_interval_weeks:
        return SeriesBlock(
            blocked=True,
            weeks_remaining=math.ceil(dose.minimum_interval_weeks - elapsed)
        )
    return NOT_BLOCKED

def next_due_date(catalog: Catalog, record: AdministrationRecord) -> Optional[date]:
    """
    Earliest date the next dose of the series may be given after a
    completed record; None for the last dose or an incomplete record.
    """
    if record.status != RecordStatus.COMPLETED:
        return None

    dose = catalog.get(record.dose_id)
    following = catalog.next_in_series(dose)
    if following is None:
        return None

    given_on = record.completed_date or record.scheduled_date
    return given_on + timedelta(weeks=following.minimum_interval_weeks or 0)
