"""Upload admission: time windows and per-day uniqueness."""

from mealsnap.domain.admission.controller import (
    AdmissionController,
    AdmissionDecision,
    AdmissionReason,
    DuplicateCheck,
)
from mealsnap.domain.admission.time_slots import (
    TimeWindowCheck,
    allowed_meal_types,
    check_time_window,
    current_meal_type,
    next_allowed_time,
    time_slot_info,
)

__all__ = [
    "AdmissionController",
    "AdmissionDecision",
    "AdmissionReason",
    "DuplicateCheck",
    "TimeWindowCheck",
    "allowed_meal_types",
    "check_time_window",
    "current_meal_type",
    "next_allowed_time",
    "time_slot_info",
]
