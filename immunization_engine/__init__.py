"""
Immunization Schedule Engine
Deterministic dose status, catch-up and reminder planning over an immutable vaccine catalog
"""

from .schema import (DoseDefinition, AdministrationRecord, ChildProfile, Reaction, PlanEntry,
                     EngineConfig, ScheduleWarning, DoseCategory, Urgency, DoseStatus,
                     RecordStatus, ReactionSeverity, ReminderPriority)
from .errors import (ErrorCode, ScheduleEngineError, InvalidDateError, InvalidTransitionError,
                     MissingFieldError, UnknownDoseError, InvalidCatalogError)
from .catalog import Catalog, load_catalog
from .age import age_in_weeks, scheduled_date_for
from .classifier import classify_dose, effective_record
from .personalize import personalize, personalize_for, removed_doses
from .series import next_due_date
from .planner import build_plan, plan_catch_up_and_reminders, catch_up_view, reminder_view
from .validator import validate_transition, TransitionResult

__all__ = [
    # Models
    'DoseDefinition', 'AdministrationRecord', 'ChildProfile', 'Reaction', 'PlanEntry',
    'EngineConfig', 'ScheduleWarning',

    # Enums
    'DoseCategory', 'Urgency', 'DoseStatus', 'RecordStatus', 'ReactionSeverity',
    'ReminderPriority',

    # Errors
    'ErrorCode', 'ScheduleEngineError', 'InvalidDateError', 'InvalidTransitionError',
    'MissingFieldError', 'UnknownDoseError', 'InvalidCatalogError',

    # Engine
    'Catalog', 'load_catalog', 'age_in_weeks', 'scheduled_date_for', 'classify_dose',
    'effective_record', 'personalize', 'personalize_for', 'removed_doses', 'next_due_date',
    'build_plan', 'plan_catch_up_and_reminders', 'catch_up_view', 'reminder_view',
    'validate_transition', 'TransitionResult'
]
