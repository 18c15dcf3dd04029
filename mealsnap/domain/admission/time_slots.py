"""Meal time windows.

Pure helpers over a ``TimeSlotConfig``: which categories may be uploaded
at a given local time, and when a closed category opens next. Only the
hour of ``at`` matters; callers pass datetimes already in local time.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from mealsnap.config import TimeSlotConfig
from mealsnap.domain.shared.value_objects import MealType

DEFAULT_TIME_SLOTS = TimeSlotConfig()


class TimeWindowCheck(BaseModel):
    """Outcome of the time-window check for one category."""

    model_config = ConfigDict(frozen=True)

    is_valid: bool
    allowed_meal_types: Tuple[MealType, ...]
    current_meal_type: Optional[MealType] = None
    message: str
    restriction_reason: Optional[str] = None


def allowed_meal_types(
    at: datetime, slots: TimeSlotConfig = DEFAULT_TIME_SLOTS
) -> Tuple[MealType, ...]:
    """Categories open at ``at`` (snack first when unrestricted)."""
    allowed = [MealType.SNACK] if slots.snack_allowed else []
    allowed.extend(meal_type for meal_type, window in slots.restricted() if window.contains(at.hour))
    return tuple(allowed)


def current_meal_type(
    at: datetime, slots: TimeSlotConfig = DEFAULT_TIME_SLOTS
) -> Optional[MealType]:
    """Regular meal whose window contains ``at``; None outside all of them."""
    for meal_type, window in slots.restricted():
        if window.contains(at.hour):
            return meal_type
    return None


def check_time_window(
    meal_type: MealType, at: datetime, slots: TimeSlotConfig = DEFAULT_TIME_SLOTS
) -> TimeWindowCheck:
    """
    Check whether ``meal_type`` may be uploaded at ``at``.

    Args:
        meal_type: Requested category
        at: Local time of the attempt
        slots: Window configuration

    Returns:
        TimeWindowCheck; on rejection the reason names the configured
        window and the categories open right now.

    Example:
        >>> check = check_time_window(MealType.BREAKFAST, datetime(2025, 1, 1, 14))
        >>> assert not check.is_valid
        >>> assert check.allowed_meal_types == (MealType.SNACK, MealType.LUNCH)
    """
    allowed = allowed_meal_types(at, slots)
    current = current_meal_type(at, slots)

    if meal_type in allowed:
        return TimeWindowCheck(
            is_valid=True,
            allowed_meal_types=allowed,
            current_meal_type=current,
            message=f"{meal_type.value} uploads are allowed at this time",
        )

    window = slots.window_for(meal_type)
    if window is not None:
        restriction = f"{meal_type.value} can only be uploaded between {window.label()}."
    else:
        restriction = f"{meal_type.value} uploads are disabled."
    allowed_label = ", ".join(m.value for m in allowed) or "none"

    return TimeWindowCheck(
        is_valid=False,
        allowed_meal_types=allowed,
        current_meal_type=current,
        message=f"{meal_type.value} uploads are not allowed at {at.hour}:00",
        restriction_reason=f"{restriction} Currently allowed: {allowed_label}",
    )


def next_allowed_time(
    meal_type: MealType, at: datetime, slots: TimeSlotConfig = DEFAULT_TIME_SLOTS
) -> Optional[datetime]:
    """
    Earliest moment from ``at`` on when ``meal_type`` is open.

    Returns ``at`` itself when the category is open now, today's window
    start when it is still ahead, otherwise tomorrow's window start.
    None when the category can never be uploaded.
    """
    window = slots.window_for(meal_type)
    if window is None:
        return at if slots.snack_allowed else None
    if window.contains(at.hour):
        return at

    start_today = at.replace(hour=window.start, minute=0, second=0, microsecond=0)
    if at.hour < window.start:
        return start_today
    return start_today + timedelta(days=1)


def time_slot_info(slots: TimeSlotConfig = DEFAULT_TIME_SLOTS) -> Dict[str, str]:
    """Human-readable windows per category."""
    info = {meal_type.value: window.label() for meal_type, window in slots.restricted()}
    info[MealType.SNACK.value] = "any time" if slots.snack_allowed else "disabled"
    return info


__all__ = [
    "TimeWindowCheck",
    "allowed_meal_types",
    "current_meal_type",
    "check_time_window",
    "next_allowed_time",
    "time_slot_info",
]
