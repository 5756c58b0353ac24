"""
Pydantic schemas for the immunization schedule engine
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import List, Optional, FrozenSet, Tuple
from datetime import date
from enum import Enum

class DoseCategory(str, Enum):
    MANDATORY = "mandatory"
    RECOMMENDED = "recommended"
    OPTIONAL = "optional"
    RISK_BASED = "risk_based"

class Urgency(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

class DoseStatus(str, Enum):
    """Computed status of a dose; derived on every query, never stored"""
    UPCOMING = "upcoming"
    DUE = "due"
    OVERDUE = "overdue"
    COMPLETED = "completed"
    SKIPPED = "skipped"

class RecordStatus(str, Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    SKIPPED = "skipped"
    DELAYED = "delayed"

class ReactionSeverity(str, Enum):
    NONE = "none"
    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"

class ReminderPriority(str, Enum):
    URGENT = "urgent"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

# Sort ranks (lower sorts first)
STATUS_PRIORITY = {
    DoseStatus.OVERDUE: 0,
    DoseStatus.DUE: 1,
    DoseStatus.UPCOMING: 2,
}

URGENCY_RANK = {
    Urgency.CRITICAL: 0,
    Urgency.HIGH: 1,
    Urgency.MEDIUM: 2,
    Urgency.LOW: 3,
}

class DoseDefinition(BaseModel):
    """One dose of a vaccine series in the static catalog"""
    model_config = ConfigDict(frozen=True)

    id: str
    series_key: str
    dose_number: int = Field(ge=1)
    total_doses_in_series: int = Field(ge=1)

    # Age window (weeks since birth)
    target_age_weeks: int = Field(ge=0)
    max_delay_weeks: int = Field(ge=0)
    minimum_interval_weeks: Optional[int] = Field(default=None, ge=0)  # since previous dose in series

    category: DoseCategory
    urgency: Urgency

    # Opaque tags, only ever matched
    contraindication_tags: FrozenSet[str] = frozenset()
    protection_targets: FrozenSet[str] = frozenset()
    tags: FrozenSet[str] = frozenset()  # e.g. live_attenuated, travel_critical

    # Display metadata
    name: str = ""
    abbreviation: str = ""
    description: str = ""
    age_label: str = ""
    side_effects: FrozenSet[str] = frozenset()
    notes: Optional[str] = None
    can_be_delayed: bool = True

    @model_validator(mode="after")
    def _check_dose_position(self) -> "DoseDefinition":
        if self.dose_number > self.total_doses_in_series:
            raise ValueError(
                f"dose_number {self.dose_number} exceeds total_doses_in_series "
                f"{self.total_doses_in_series} for {self.id}"
            )
        return self

    @property
    def window_end_weeks(self) -> int:
        """Last week (inclusive) during which the dose is still due"""
        return self.target_age_weeks + self.max_delay_weeks

class Reaction(BaseModel):
    """Post-administration reaction note"""
    severity: ReactionSeverity = ReactionSeverity.NONE
    symptoms: FrozenSet[str] = frozenset()
    notes: str = ""

class AdministrationRecord(BaseModel):
    """Caller-owned record of a scheduled, given, skipped or delayed dose"""
    dose_id: str
    status: RecordStatus
    scheduled_date: date

    # Meaningful once completed
    completed_date: Optional[date] = None
    location: Optional[str] = None
    administered_by: Optional[str] = None
    batch_number: Optional[str] = None

    reaction: Optional[Reaction] = None
    notes: Optional[str] = None
    record_id: Optional[str] = None

class ChildProfile(BaseModel):
    """Inputs describing the child; not persisted by the engine"""
    birth_date: date
    risk_factors: FrozenSet[str] = frozenset()
    contraindications: FrozenSet[str] = frozenset()
    travel_planned: bool = False

    child_id: Optional[str] = None
    name: Optional[str] = None

class PlanEntry(BaseModel):
    """One actionable dose in a catch-up/reminder plan"""
    dose_id: str
    status: DoseStatus
    target_age_weeks: int
    urgency: Urgency
    blocked_by_series: bool = False
    weeks_delta: int  # target_age_weeks - age; negative once past the target

    name: str = ""
    series_key: str
    dose_number: int
    category: DoseCategory
    weeks_until_unblocked: Optional[int] = None
    reminder_priority: ReminderPriority

    def sort_key(self) -> Tuple[int, int, int]:
        return (
            STATUS_PRIORITY[self.status],
            URGENCY_RANK[self.urgency],
            self.target_age_weeks,
        )

class ScheduleWarning(BaseModel):
    """Caller-visible, non-fatal finding from the validator"""
    code: str
    message: str
    dose_id: Optional[str] = None

class EngineConfig(BaseModel):
    """Configuration for the schedule engine"""

    # Planner
    lookahead_weeks: int = Field(default=8, ge=0)

    # Personalization
    premature_offset_weeks: int = Field(default=2, ge=0)
    premature_risk_factor: str = "premature"
    immunocompromised_risk_factor: str = "immunocompromised"
    live_vaccine_tag: str = "live_attenuated"
    travel_tag: str = "travel_critical"

    # Validator
    early_administration_tolerance_days: int = Field(default=7, ge=0)
    completed_required_fields: List[str] = ["completed_date", "location"]

    @field_validator("completed_required_fields")
    @classmethod
    def _known_record_fields(cls, value: List[str]) -> List[str]:
        unknown = [f for f in value if f not in AdministrationRecord.model_fields]
        if unknown:
            raise ValueError(f"Unknown record fields: {unknown}")
        return value
