"""Persistence adapters."""

from mealsnap.infrastructure.persistence.in_memory_meal_records import (
    InMemoryMealRecordLookup,
)

__all__ = ["InMemoryMealRecordLookup"]
