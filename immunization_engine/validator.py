"""
Administration record validation.

Records move through a small state machine:

    scheduled -> completed | skipped | delayed
    delayed   -> scheduled | completed | skipped

Completed and skipped are terminal; a new attempt at the same dose is a new
record, never a reopened one.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Union
from pydantic import ValidationError

from .age import as_date
from .catalog import Catalog
from .schema import (AdministrationRecord, DoseCategory, EngineConfig, ReactionSeverity,
                     RecordStatus, ScheduleWarning)
from .errors import (InvalidDateError, InvalidTransitionError, MissingFieldError,
                     ScheduleEngineError)

ALLOWED_TRANSITIONS = {
    RecordStatus.SCHEDULED: {RecordStatus.COMPLETED, RecordStatus.SKIPPED, RecordStatus.DELAYED},
    RecordStatus.DELAYED: {RecordStatus.SCHEDULED, RecordStatus.COMPLETED, RecordStatus.SKIPPED},
    RecordStatus.COMPLETED: set(),
    RecordStatus.SKIPPED: set(),
}

# Fields a caller may change as part of a transition
UPDATABLE_FIELDS = {
    "scheduled_date", "completed_date", "location", "administered_by",
    "batch_number", "reaction", "notes",
}

DATE_FIELDS = {"scheduled_date", "completed_date"}

MANDATORY_NOT_GIVEN = "MANDATORY_DOSE_NOT_GIVEN"

@dataclass
class TransitionResult:
    """Either the updated record (with warnings) or the error that rejected it"""
    record: Optional[AdministrationRecord] = None
    warnings: List[ScheduleWarning] = field(default_factory=list)
    error: Optional[ScheduleEngineError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> AdministrationRecord:
        if self.error is not None:
            raise self.error
        return self.record

def validate_transition(record: AdministrationRecord,
                        requested_status: Union[RecordStatus, str],
                        payload: Optional[Dict[str, Any]] = None,
                        *,
                        now: Union[date, datetime],
                        catalog: Optional[Catalog] = None,
                        config: Optional[EngineConfig] = None) -> TransitionResult:
    """
    Check a requested state change and build the resulting record.

    Args:
        record: Current record
        requested_status: Target status
        payload: Field updates applied together with the transition
        now: Reference instant; completion dates may not be later
        catalog: Active catalog, used to resolve the dose's category
        config: Engine configuration (required fields, early tolerance)

    Returns:
        TransitionResult; the input record is never modified
    """
    try:
        updated, warnings = _apply_transition(record, requested_status, payload or {},
                                              now, catalog, config or EngineConfig())
    except ScheduleEngineError as e:
        return TransitionResult(error=e)
    return TransitionResult(record=updated, warnings=warnings)

def _apply_transition(record, requested_status, payload, now, catalog, config):
    try:
        target = RecordStatus(requested_status)
    except ValueError:
        raise InvalidTransitionError(
            f"Unknown record status '{requested_status}'",
            from_status=record.status.value, to_status=str(requested_status),
            dose_id=record.dose_id
        )

    if target not in ALLOWED_TRANSITIONS[record.status]:
        raise InvalidTransitionError(
            f"Cannot move {record.dose_id} from {record.status.value} to {target.value}",
            from_status=record.status.value, to_status=target.value, dose_id=record.dose_id
        )

    dose = catalog.get(record.dose_id) if catalog is not None else None

    for key in payload:
        if key not in UPDATABLE_FIELDS:
            raise InvalidTransitionError(
                f"Field '{key}' cannot be changed by a transition",
                from_status=record.status.value, to_status=target.value,
                dose_id=record.dose_id, field=key
            )

    data = record.model_dump()
    data.update(payload)
    data["status"] = target
    try:
        updated = AdministrationRecord.model_validate(data)
    except ValidationError as e:
        raise _payload_error(e, record, target) from e

    warnings: List[ScheduleWarning] = []
    if target == RecordStatus.COMPLETED:
        _check_completion(updated, now, config)
    elif target in (RecordStatus.SKIPPED, RecordStatus.DELAYED):
        if dose is not None and dose.category == DoseCategory.MANDATORY:
            warnings.append(ScheduleWarning(
                code=MANDATORY_NOT_GIVEN,
                message=f"{dose.name or dose.id} is mandatory and was marked {target.value}",
                dose_id=dose.id
            ))

    return updated, warnings

def _payload_error(error: ValidationError, record: AdministrationRecord,
                   target: RecordStatus) -> ScheduleEngineError:
    """Map the first pydantic failure onto the engine's typed errors"""
    first = error.errors()[0]
    field_name = ".".join(str(part) for part in first["loc"])

    if first["type"] == "missing" or first.get("input") is None:
        return MissingFieldError(field_name, dose_id=record.dose_id, to_status=target.value)
    if first["loc"] and first["loc"][0] in DATE_FIELDS:
        return InvalidDateError(
            f"Invalid {field_name} for {record.dose_id}: {first['msg']}",
            field=field_name, dose_id=record.dose_id
        )
    return InvalidTransitionError(
        f"Invalid {field_name} for {record.dose_id}: {first['msg']}",
        from_status=record.status.value, to_status=target.value,
        dose_id=record.dose_id, field=field_name
    )

def _check_completion(record: AdministrationRecord, now, config: EngineConfig) -> None:
    for name in config.completed_required_fields:
        value = getattr(record, name)
        if value is None or (isinstance(value, str) and not value.strip()):
            raise MissingFieldError(name, dose_id=record.dose_id,
                                    to_status=RecordStatus.COMPLETED.value)

    if record.completed_date is not None:
        earliest = record.scheduled_date - timedelta(days=config.early_administration_tolerance_days)
        if record.completed_date < earliest:
            raise InvalidDateError(
                f"Completion date {record.completed_date} is more than "
                f"{config.early_administration_tolerance_days} days before the scheduled date "
                f"{record.scheduled_date}",
                field="completed_date", dose_id=record.dose_id
            )
        if record.completed_date > as_date(now):
            raise InvalidDateError(
                f"Completion date {record.completed_date} is in the future",
                field="completed_date", dose_id=record.dose_id
            )

    reaction = record.reaction
    if reaction is not None and reaction.severity == ReactionSeverity.SEVERE:
        if not reaction.notes.strip():
            raise MissingFieldError("reaction.notes", dose_id=record.dose_id,
                                    to_status=RecordStatus.COMPLETED.value)
