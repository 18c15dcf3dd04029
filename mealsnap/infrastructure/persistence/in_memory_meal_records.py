"""In-memory meal record lookup.

Implements the IMealRecordLookup port over a plain dictionary. Meant for
tests and local development; production wires a database-backed adapter.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Dict, List, Optional, Tuple
from uuid import uuid4

import structlog

from mealsnap.domain.shared.errors import DatabaseError
from mealsnap.domain.shared.ports.meal_record_lookup import ExistingMealRecord
from mealsnap.domain.shared.value_objects import MealType

logger = structlog.get_logger(__name__)

_Key = Tuple[str, MealType, date]


class InMemoryMealRecordLookup:
    """
    In-memory implementation of IMealRecordLookup.

    Thread safety: NOT thread-safe (use locks if needed in production)
    Persistence: Data lost on process restart (in-memory only)

    Example:
        >>> lookup = InMemoryMealRecordLookup()
        >>> lookup.add("user_1", MealType.LUNCH, date(2025, 1, 1), meal_name="비빔밥")
        >>> record = await lookup.find_existing("user_1", MealType.LUNCH, date(2025, 1, 1))
    """

    def __init__(self) -> None:
        """Initialize with empty storage."""
        self._records: Dict[_Key, List[ExistingMealRecord]] = {}
        self._outage: Optional[str] = None

    def simulate_outage(self, reason: Optional[str] = "meal store unavailable") -> None:
        """Make lookups raise DatabaseError until called again with None."""
        self._outage = reason

    def add(
        self,
        user_id: str,
        meal_type: MealType,
        on_date: date,
        *,
        record_id: Optional[str] = None,
        created_at: Optional[datetime] = None,
        meal_name: Optional[str] = None,
    ) -> ExistingMealRecord:
        """Store a record under (user, category, local date)."""
        record = ExistingMealRecord(
            id=record_id or str(uuid4()),
            created_at=created_at or datetime.now(timezone.utc),
            meal_name=meal_name,
        )
        self._records.setdefault((user_id, meal_type, on_date), []).append(record)
        logger.debug(
            "Meal record stored",
            user_id=user_id,
            meal_type=meal_type.value,
            on_date=on_date.isoformat(),
            record_id=record.id,
        )
        return record

    async def find_existing(
        self, user_id: str, meal_type: MealType, on_date: date
    ) -> Optional[ExistingMealRecord]:
        """Return the first record stored for this key, or None."""
        if self._outage is not None:
            raise DatabaseError(self._outage)
        records = self._records.get((user_id, meal_type, on_date))
        if not records:
            return None
        return records[0]

    def count(self) -> int:
        return sum(len(records) for records in self._records.values())

    def clear(self) -> None:
        """Clear all records (for testing)."""
        self._records.clear()
