"""
Unit tests for meal time window helpers.
"""

from datetime import datetime

import pytest

from mealsnap.config import MealTimeWindow, TimeSlotConfig
from mealsnap.domain.admission.time_slots import (
    allowed_meal_types,
    check_time_window,
    current_meal_type,
    next_allowed_time,
    time_slot_info,
)
from mealsnap.domain.shared.value_objects import MealType


def _at(hour: int, minute: int = 0) -> datetime:
    return datetime(2025, 6, 10, hour, minute)


class TestAllowedMealTypes:
    @pytest.mark.parametrize(
        "hour, expected",
        [
            (4, (MealType.SNACK,)),
            (5, (MealType.SNACK, MealType.BREAKFAST)),
            (10, (MealType.SNACK, MealType.BREAKFAST)),
            (11, (MealType.SNACK, MealType.LUNCH)),
            (16, (MealType.SNACK, MealType.LUNCH)),
            (17, (MealType.SNACK, MealType.DINNER)),
            (22, (MealType.SNACK, MealType.DINNER)),
            (23, (MealType.SNACK,)),
        ],
    )
    def test_half_open_windows(self, hour: int, expected: tuple) -> None:
        assert allowed_meal_types(_at(hour)) == expected

    def test_snack_can_be_disabled(self) -> None:
        slots = TimeSlotConfig(snack_allowed=False)
        assert allowed_meal_types(_at(3), slots) == ()


class TestCurrentMealType:
    def test_inside_window(self) -> None:
        assert current_meal_type(_at(12, 30)) is MealType.LUNCH

    def test_outside_all_windows(self) -> None:
        assert current_meal_type(_at(23, 30)) is None


class TestCheckTimeWindow:
    def test_breakfast_at_14_rejected(self) -> None:
        check = check_time_window(MealType.BREAKFAST, _at(14))

        assert check.is_valid is False
        assert MealType.LUNCH in check.allowed_meal_types
        assert MealType.SNACK in check.allowed_meal_types
        assert MealType.BREAKFAST not in check.allowed_meal_types
        assert "5:00-11:00" in check.restriction_reason
        assert "snack, lunch" in check.restriction_reason

    def test_inside_window_passes(self) -> None:
        check = check_time_window(MealType.DINNER, _at(18))

        assert check.is_valid is True
        assert check.current_meal_type is MealType.DINNER
        assert check.restriction_reason is None

    def test_snack_always_passes(self) -> None:
        assert check_time_window(MealType.SNACK, _at(3)).is_valid is True

    def test_custom_window(self) -> None:
        slots = TimeSlotConfig(breakfast=MealTimeWindow(start=6, end=9))

        assert check_time_window(MealType.BREAKFAST, _at(9), slots).is_valid is False
        assert check_time_window(MealType.BREAKFAST, _at(8), slots).is_valid is True


class TestNextAllowedTime:
    def test_later_today(self) -> None:
        assert next_allowed_time(MealType.DINNER, _at(14, 20)) == datetime(2025, 6, 10, 17, 0)

    def test_tomorrow(self) -> None:
        assert next_allowed_time(MealType.BREAKFAST, _at(14, 20)) == datetime(2025, 6, 11, 5, 0)

    def test_open_now(self) -> None:
        now = _at(12, 5)
        assert next_allowed_time(MealType.LUNCH, now) == now

    def test_snack(self) -> None:
        now = _at(2)
        assert next_allowed_time(MealType.SNACK, now) == now
        assert next_allowed_time(MealType.SNACK, now, TimeSlotConfig(snack_allowed=False)) is None


def test_time_slot_info() -> None:
    assert time_slot_info() == {
        "breakfast": "5:00-11:00",
        "lunch": "11:00-17:00",
        "dinner": "17:00-23:00",
        "snack": "any time",
    }
