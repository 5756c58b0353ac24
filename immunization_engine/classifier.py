"""
Status classification for a single dose
"""

from typing import Iterable, Optional

from .schema import AdministrationRecord, DoseDefinition, DoseStatus, RecordStatus
from .errors import UnknownDoseError

def classify_dose(definition: DoseDefinition,
                  age_in_weeks: int,
                  record: Optional[AdministrationRecord] = None) -> DoseStatus:
    """
    Compute the current status of one dose.

    A completed or skipped record decides the status outright, whatever the
    age. Otherwise the age is placed against the window
    [target_age_weeks, target_age_weeks + max_delay_weeks].
    """
    if record is not None:
        if record.dose_id != definition.id:
            raise UnknownDoseError(record.dose_id)
        if record.status == RecordStatus.COMPLETED:
            return DoseStatus.COMPLETED
        if record.status == RecordStatus.SKIPPED:
            return DoseStatus.SKIPPED

    if age_in_weeks < definition.target_age_weeks:
        return DoseStatus.UPCOMING
    if age_in_weeks <= definition.window_end_weeks:
        return DoseStatus.DUE
    return DoseStatus.OVERDUE

def effective_record(records: Iterable[AdministrationRecord]) -> Optional[AdministrationRecord]:
    """
    Pick the record that governs a dose when several exist.

    The most recent completed record wins; otherwise the most recently
    scheduled one, with later records breaking ties.
    """
    latest_completed = None
    latest_other = None

    for record in records:
        if record.status == RecordStatus.COMPLETED:
            if (latest_completed is None or
                    _completed_on(record) >= _completed_on(latest_completed)):
                latest_completed = record
        elif latest_other is None or record.scheduled_date >= latest_other.scheduled_date:
            latest_other = record

    return latest_completed if latest_completed is not None else latest_other

def _completed_on(record: AdministrationRecord):
    return record.completed_date or record.scheduled_date
