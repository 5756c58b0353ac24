"""
Catch-up and reminder planning across a catalog.

One ordered list serves both views: the catch-up view (overdue doses) and
the reminder view (due and upcoming doses) are filters over it, so they
always agree on relative order.
"""

import logging
from datetime import date, datetime
from typing import Dict, Iterable, List, Union

from .age import age_in_weeks as compute_age_in_weeks, as_date
from .catalog import Catalog
from .classifier import classify_dose, effective_record
from .schema import (AdministrationRecord, DoseDefinition, DoseStatus, PlanEntry,
                     ReminderPriority, Urgency)
from .series import completed_records_by_dose, series_block
from .errors import UnknownDoseError

logger = logging.getLogger(__name__)

DEFAULT_LOOKAHEAD_WEEKS = 8

ACTIONABLE = {DoseStatus.OVERDUE, DoseStatus.DUE, DoseStatus.UPCOMING}

def build_plan(catalog: Catalog,
               age_in_weeks: int,
               records: Iterable[AdministrationRecord],
               reference_date: Union[date, datetime],
               lookahead_weeks: int = DEFAULT_LOOKAHEAD_WEEKS) -> List[PlanEntry]:
    """
    Ordered action list for a child of the given age.

    Args:
        catalog: Catalog to plan against (usually already personalized)
        age_in_weeks: Current (corrected) age in whole weeks
        records: Snapshot of administration records
        reference_date: Date the plan is computed for; anchors series intervals
        lookahead_weeks: How far ahead upcoming doses are included

    Returns:
        PlanEntry list sorted by status priority, urgency, then target age
    """
    reference_date = as_date(reference_date)
    by_dose = _group_records(catalog, records)
    completed = completed_records_by_dose(
        r for dose_records in by_dose.values() for r in dose_records
    )

    entries: List[PlanEntry] = []
    for dose in catalog.doses:
        record = effective_record(by_dose.get(dose.id, []))
        status = classify_dose(dose, age_in_weeks, record)
        if status not in ACTIONABLE:
            continue

        weeks_delta = dose.target_age_weeks - age_in_weeks
        if status == DoseStatus.UPCOMING and weeks_delta > lookahead_weeks:
            continue

        block = series_block(catalog, dose, completed, reference_date)
        entries.append(PlanEntry(
            dose_id=dose.id,
            status=status,
            target_age_weeks=dose.target_age_weeks,
            urgency=dose.urgency,
            blocked_by_series=block.blocked,
            weeks_delta=weeks_delta,
            name=dose.name,
            series_key=dose.series_key,
            dose_number=dose.dose_number,
            category=dose.category,
            weeks_until_unblocked=block.weeks_remaining,
            reminder_priority=reminder_priority(dose, status),
        ))

    # stable sort: remaining ties keep catalog order
    entries.sort(key=PlanEntry.sort_key)

    logger.debug(f"Planned {len(entries)} of {len(catalog)} doses at age {age_in_weeks} weeks")
    return entries

def plan_catch_up_and_reminders(catalog: Catalog,
                                birth_date: Union[date, datetime],
                                records: Iterable[AdministrationRecord],
                                now: Union[date, datetime],
                                lookahead_weeks: int = DEFAULT_LOOKAHEAD_WEEKS) -> List[PlanEntry]:
    """Plan for a child born on birth_date, as of now"""
    age = compute_age_in_weeks(birth_date, now)
    return build_plan(catalog, age, records, now, lookahead_weeks=lookahead_weeks)

def catch_up_view(plan: Iterable[PlanEntry]) -> List[PlanEntry]:
    """Doses already past their due window, in plan order"""
    return [e for e in plan if e.status == DoseStatus.OVERDUE]

def reminder_view(plan: Iterable[PlanEntry]) -> List[PlanEntry]:
    """Doses due now or coming up within the lookahead, in plan order"""
    return [e for e in plan if e.status in (DoseStatus.DUE, DoseStatus.UPCOMING)]

def reminder_priority(dose: DoseDefinition, status: DoseStatus) -> ReminderPriority:
    """Display label for reminders; does not affect plan order"""
    critical = dose.urgency == Urgency.CRITICAL
    if status in (DoseStatus.OVERDUE, DoseStatus.DUE):
        return ReminderPriority.URGENT if critical else ReminderPriority.HIGH
    return ReminderPriority.HIGH if critical else ReminderPriority.MEDIUM

def _group_records(catalog: Catalog,
                   records: Iterable[AdministrationRecord]) -> Dict[str, List[AdministrationRecord]]:
    known = set(catalog.ids)
    grouped: Dict[str, List[AdministrationRecord]] = {}
    for record in records:
        if record.dose_id not in known:
            raise UnknownDoseError(record.dose_id, catalog_version=catalog.version or None)
        grouped.setdefault(record.dose_id, []).append(record)
    return grouped
