"""
Builders for test catalogs and records
"""

from datetime import date
from pathlib import Path
import sys

sys.path.append(str(Path(__file__).parent.parent))

from immunization_engine import AdministrationRecord, Catalog, DoseDefinition

CONFIG_DIR = Path(__file__).parent.parent / "config"

def make_dose(dose_id: str, **overrides) -> DoseDefinition:
    """DoseDefinition with test defaults; series and dose number parsed from 'name-N' ids"""
    series_key, _, number = dose_id.rpartition("-")
    fields = {
        "id": dose_id,
        "series_key": series_key or dose_id,
        "dose_number": int(number) if number.isdigit() else 1,
        "total_doses_in_series": 4,
        "target_age_weeks": 8,
        "max_delay_weeks": 2,
        "category": "mandatory",
        "urgency": "high",
        "name": dose_id.upper(),
    }
    fields.update(overrides)
    return DoseDefinition(**fields)

def make_record(dose_id: str, status: str = "scheduled",
                scheduled: date = date(2024, 10, 10), **overrides) -> AdministrationRecord:
    return AdministrationRecord(dose_id=dose_id, status=status, scheduled_date=scheduled, **overrides)

def completed(dose_id: str, on: date, **overrides) -> AdministrationRecord:
    return make_record(dose_id, "completed", scheduled=on, completed_date=on,
                       location="Clinic", **overrides)

def dtap_catalog() -> Catalog:
    """Small catalog built around the DTaP series"""
    return Catalog(version="test", doses=(
        make_dose("dtap-1", target_age_weeks=8, max_delay_weeks=2, urgency="critical"),
        make_dose("dtap-2", target_age_weeks=16, max_delay_weeks=2, urgency="critical",
                  minimum_interval_weeks=4),
        make_dose("dtap-3", target_age_weeks=24, max_delay_weeks=4, urgency="critical",
                  minimum_interval_weeks=4),
        make_dose("dtap-4", target_age_weeks=65, max_delay_weeks=8, urgency="high",
                  minimum_interval_weeks=24),
    ))
