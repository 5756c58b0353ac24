#!/usr/bin/env python3
"""
Immunization Schedule Service
Loads the vaccine catalog and engine settings, and turns a child's profile and
administration records into a personalized, ordered vaccination plan
"""

import yaml
import logging
from typing import Dict, List, Optional, Any, Iterable, Union
from pathlib import Path
from datetime import date, datetime

from immunization_engine import (
    AdministrationRecord, Catalog, ChildProfile, EngineConfig, PlanEntry, RecordStatus,
    ScheduleEngineError, TransitionResult, age_in_weeks, build_plan, catch_up_view,
    load_catalog, personalize_for, reminder_view, removed_doses, validate_transition
)

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_FILE = "immunization.yaml"
DEFAULT_CATALOG_FILE = "vaccine_catalog.yaml"

def read_settings(path: Union[str, Path]) -> Dict[str, Any]:
    """Raw settings mapping from YAML; empty when the file is missing"""
    config_file = Path(path)
    if not config_file.exists():
        logger.warning(f"Config file {config_file} not found, using defaults")
        return {}

    with open(config_file, 'r') as f:
        return yaml.safe_load(f) or {}

def load_engine_config(path: Union[str, Path]) -> EngineConfig:
    """Load engine settings from YAML, falling back to defaults"""
    return EngineConfig(**read_settings(path).get('engine', {}))

class ImmunizationScheduleService:
    """Caller-facing facade over the immunization schedule engine"""

    def __init__(self, config_dir: Path = None):
        if config_dir is None:
            config_dir = Path(__file__).parent.parent / "config"

        self.config_dir = Path(config_dir)
        self._load_configurations()

    def _load_configurations(self):
        """Load engine settings and the vaccine catalog"""
        try:
            settings = read_settings(self.config_dir / DEFAULT_SETTINGS_FILE)
            self.config = EngineConfig(**settings.get('engine', {}))

            catalog_file = settings.get('catalog_file', DEFAULT_CATALOG_FILE)
            self.catalog: Catalog = load_catalog(self.config_dir / catalog_file)

            logger.info("Immunization schedule configurations loaded successfully")

        except Exception as e:
            logger.error(f"Failed to load immunization configurations: {e}")
            raise

    def generate_schedule(
        self,
        profile: ChildProfile,
        records: Iterable[AdministrationRecord] = (),
        now: Optional[Union[date, datetime]] = None
    ) -> Dict[str, Any]:
        """
        Generate a personalized vaccination plan

        Args:
            profile: Child's birth date and risk inputs
            records: Snapshot of administration records for this child
            now: Reference instant; defaults to the current time

        Returns:
            JSON-ready plan response, or {"error": ...} for engine errors
        """
        now = now or datetime.now()

        try:
            derived = personalize_for(self.catalog, profile, self.config)
            dropped = removed_doses(self.catalog, derived)
            active_records = self._filter_records(records, derived)

            age = age_in_weeks(profile.birth_date, now)
            plan = build_plan(derived, age, active_records, now,
                              lookahead_weeks=self.config.lookahead_weeks)

        except ScheduleEngineError as e:
            logger.warning(f"Schedule generation failed: {e}")
            return {"error": e.to_dict()}

        catch_up = catch_up_view(plan)
        reminders = reminder_view(plan)

        return {
            "patient": self._format_patient_summary(profile, age),
            "catalog_version": derived.version,
            "age_in_weeks": age,
            "plan": [self._format_entry(e) for e in plan],
            "catch_up": [e.dose_id for e in catch_up],
            "reminders": [e.dose_id for e in reminders],
            "removed_doses": dropped,
            "summary": self._generate_summary(plan, catch_up, reminders)
        }

    def record_transition(
        self,
        record: AdministrationRecord,
        requested_status: Union[RecordStatus, str],
        payload: Optional[Dict[str, Any]] = None,
        now: Optional[Union[date, datetime]] = None
    ) -> TransitionResult:
        """Validate a record state change against the active catalog"""
        result = validate_transition(
            record, requested_status, payload,
            now=now or datetime.now(), catalog=self.catalog, config=self.config
        )

        if not result.ok:
            logger.warning(f"Rejected transition for {record.dose_id}: {result.error}")
        for warning in result.warnings:
            logger.info(f"Transition warning [{warning.code}]: {warning.message}")

        return result

    def _filter_records(self, records: Iterable[AdministrationRecord],
                        derived: Catalog) -> List[AdministrationRecord]:
        """Drop records for doses personalization removed; unknown ids still fail"""
        kept = []
        for record in records:
            if record.dose_id in derived:
                kept.append(record)
            elif record.dose_id in self.catalog:
                logger.debug(f"Ignoring record for {record.dose_id}: dose not in personalized catalog")
            else:
                kept.append(record)  # surfaces UnknownDoseError from the planner
        return kept

    def _format_patient_summary(self, profile: ChildProfile, age: int) -> Dict[str, Any]:
        return {
            "child_id": profile.child_id,
            "name": profile.name,
            "birth_date": profile.birth_date.isoformat(),
            "age_in_weeks": age,
            "risk_factors": sorted(profile.risk_factors),
            "contraindications": sorted(profile.contraindications),
            "travel_planned": profile.travel_planned
        }

    def _format_entry(self, entry: PlanEntry) -> Dict[str, Any]:
        return entry.model_dump(mode="json")

    def _generate_summary(self, plan: List[PlanEntry], catch_up: List[PlanEntry],
                          reminders: List[PlanEntry]) -> Dict[str, Any]:
        return {
            "total_actionable": len(plan),
            "overdue": len(catch_up),
            "due_or_upcoming": len(reminders),
            "blocked_by_series": len([e for e in plan if e.blocked_by_series]),
            "next_action": plan[0].dose_id if plan else None
        }
