"""
Error codes for the immunization schedule engine.
Every error carries the offending field and/or dose id so callers can map it
to a user-facing message without parsing text.
"""

from enum import Enum
from typing import Dict, Any, Optional
import json

class ErrorCode(Enum):
    """Specific error codes for schedule engine components"""

    # Age / date errors
    SCHED_INVALID_DATE = "SCHED_001"

    # Record validation errors
    SCHED_INVALID_TRANSITION = "SCHED_002"
    SCHED_MISSING_FIELD = "SCHED_003"

    # Catalog errors
    SCHED_UNKNOWN_DOSE = "SCHED_004"
    SCHED_INVALID_CATALOG = "SCHED_005"

class ScheduleEngineError(Exception):
    """Base exception class for the schedule engine; subclasses set error_code"""

    error_code: ErrorCode

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[ErrorCode] = None
    ):
        if error_code is not None:
            self.error_code = error_code
        self.message = message
        self.details = details or {}

        super().__init__(f"[{self.error_code.value}] {message}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for API responses"""
        return {
            "error_code": self.error_code.value,
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }

    def to_json(self) -> str:
        """Convert error to JSON string"""
        return json.dumps(self.to_dict(), indent=2, default=str)

class InvalidDateError(ScheduleEngineError):
    """A date precedes the date it must follow (or exceeds its upper bound)"""

    error_code = ErrorCode.SCHED_INVALID_DATE

    def __init__(self, message: str, field: str, dose_id: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        self.field = field
        self.dose_id = dose_id
        merged = {"field": field, "dose_id": dose_id}
        merged.update(details or {})
        super().__init__(message, merged)

class InvalidTransitionError(ScheduleEngineError):
    """Requested record state change is not allowed"""

    error_code = ErrorCode.SCHED_INVALID_TRANSITION

    def __init__(self, message: str, from_status: Optional[str] = None,
                 to_status: Optional[str] = None, dose_id: Optional[str] = None,
                 field: Optional[str] = None):
        self.from_status = from_status
        self.to_status = to_status
        self.dose_id = dose_id
        self.field = field
        super().__init__(message, {
            "from_status": from_status,
            "to_status": to_status,
            "dose_id": dose_id,
            "field": field,
        })

class MissingFieldError(ScheduleEngineError):
    """A field required by the target state is absent"""

    error_code = ErrorCode.SCHED_MISSING_FIELD

    def __init__(self, field: str, dose_id: Optional[str] = None,
                 to_status: Optional[str] = None):
        self.field = field
        self.dose_id = dose_id
        self.to_status = to_status
        super().__init__(
            f"Field '{field}' is required to mark {dose_id or 'dose'} as {to_status}",
            {"field": field, "dose_id": dose_id, "to_status": to_status},
        )

class UnknownDoseError(ScheduleEngineError):
    """A record or lookup references a dose id not in the active catalog"""

    error_code = ErrorCode.SCHED_UNKNOWN_DOSE

    def __init__(self, dose_id: str, catalog_version: Optional[str] = None):
        self.dose_id = dose_id
        super().__init__(
            f"Dose '{dose_id}' is not in the active catalog",
            {"dose_id": dose_id, "catalog_version": catalog_version},
        )

class InvalidCatalogError(ScheduleEngineError):
    """Catalog definitions break a structural invariant"""

    error_code = ErrorCode.SCHED_INVALID_CATALOG

    def __init__(self, message: str, dose_id: Optional[str] = None,
                 series_key: Optional[str] = None):
        self.dose_id = dose_id
        self.series_key = series_key
        super().__init__(message, {"dose_id": dose_id, "series_key": series_key})
