"""
Meal record lookup port.

Read-only view on stored meal records, used by upload admission to
detect a second upload for the same user, category and day.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

from mealsnap.domain.shared.value_objects import MealType


class ExistingMealRecord(BaseModel):
    """Minimal projection of a stored meal record."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    created_at: datetime
    meal_name: Optional[str] = None


@runtime_checkable
class IMealRecordLookup(Protocol):
    """
    Port for meal record lookup.

    This is an interface - implementations may query MongoDB, a SQL
    store or an in-memory fixture.
    """

    async def find_existing(
        self, user_id: str, meal_type: MealType, on_date: date
    ) -> Optional[ExistingMealRecord]:
        """
        Find a record for this user, category and local calendar date.

        Args:
            user_id: User identifier
            meal_type: Meal category
            on_date: Local calendar date of the upload

        Returns:
            The first matching record, or None

        Raises:
            InfrastructureError: If the backing store is unavailable
                (``DatabaseError`` for query failures)
        """
        ...
