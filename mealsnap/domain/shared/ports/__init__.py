"""Domain ports (Protocols) implemented by infrastructure adapters."""

from mealsnap.domain.shared.ports.derived_image_cache import IDerivedImageCache
from mealsnap.domain.shared.ports.meal_record_lookup import (
    ExistingMealRecord,
    IMealRecordLookup,
)

__all__ = [
    "IDerivedImageCache",
    "IMealRecordLookup",
    "ExistingMealRecord",
]
