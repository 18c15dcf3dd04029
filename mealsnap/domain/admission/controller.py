"""Upload admission controller.

Decides, before any image work, whether a user may upload a meal of a
given category right now:

1. time-window check (pure, no I/O)
2. duplicate check, only when (1) passed and the category is not snack;
   one lookup round-trip against the meal record store

Lookup failures count as duplicates: double-counting a meal is worse
than asking the user to retry.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Optional, Tuple, Union
from zoneinfo import ZoneInfo

import structlog
from pydantic import BaseModel, ConfigDict

from mealsnap.config import TimeSlotConfig
from mealsnap.domain.admission.time_slots import check_time_window
from mealsnap.domain.shared.errors import InfrastructureError
from mealsnap.domain.shared.ports.meal_record_lookup import (
    ExistingMealRecord,
    IMealRecordLookup,
)
from mealsnap.domain.shared.value_objects import MealType
from mealsnap.metrics import intake as intake_metrics

logger = structlog.get_logger(__name__)


class AdmissionReason(str, Enum):
    """Which check rejected the attempt."""

    TIME_RESTRICTED = "time-restricted"
    DUPLICATE = "duplicate"


class DuplicateCheck(BaseModel):
    """Outcome of the per-day uniqueness check."""

    model_config = ConfigDict(frozen=True)

    is_duplicate: bool
    existing_meal: Optional[ExistingMealRecord] = None
    message: str = ""


class AdmissionDecision(BaseModel):
    """
    Typed admission outcome; rejections are values, not exceptions.

    Attributes:
        allowed: Both checks passed
        reason: Failing check (None when allowed)
        message: Human-readable summary
        allowed_meal_types: Categories open at the attempt time
        current_meal_type: Regular meal whose window is open, if any
        existing_record: Conflicting record for duplicate rejections
        restriction_detail: Window explanation for time rejections
    """

    model_config = ConfigDict(frozen=True)

    allowed: bool
    reason: Optional[AdmissionReason] = None
    message: str
    allowed_meal_types: Tuple[MealType, ...] = ()
    current_meal_type: Optional[MealType] = None
    existing_record: Optional[ExistingMealRecord] = None
    restriction_detail: Optional[str] = None


class AdmissionController:
    """
    Gates upload attempts by time window and per-day uniqueness.

    Holds no per-request state.

    Example:
        >>> controller = AdmissionController(TimeSlotConfig(), lookup)
        >>> decision = await controller.decide("user_1", MealType.LUNCH, now)
        >>> if not decision.allowed:
        ...     print(decision.reason, decision.message)
    """

    def __init__(
        self,
        slots: Optional[TimeSlotConfig],
        lookup: IMealRecordLookup,
        timezone: Optional[str] = None,
    ) -> None:
        """
        Initialize controller.

        Args:
            slots: Per-category windows (defaults when None)
            lookup: Meal record store used for the duplicate check
            timezone: IANA zone for hour/date; aware datetimes are
                converted to it, naive ones are taken as already local
        """
        self.slots = slots or TimeSlotConfig()
        self.lookup = lookup
        self.tz = ZoneInfo(timezone) if timezone else None

    def local_time(self, at: Optional[datetime] = None) -> datetime:
        if at is None:
            return datetime.now(self.tz)
        if self.tz is not None and at.tzinfo is not None:
            return at.astimezone(self.tz)
        return at

    async def check_duplicate(
        self, user_id: str, meal_type: MealType, on_date: date
    ) -> DuplicateCheck:
        """
        Look for an existing record of this category on this date.

        Snack is never a duplicate. Any lookup error is reported as a
        duplicate (fail-closed).
        """
        if meal_type is MealType.SNACK:
            return DuplicateCheck(is_duplicate=False, message="Snacks can be uploaded any number of times")

        try:
            existing = await self.lookup.find_existing(user_id, meal_type, on_date)
        except InfrastructureError as exc:
            logger.error(
                "Duplicate check failed, rejecting upload",
                user_id=user_id,
                meal_type=meal_type.value,
                on_date=on_date.isoformat(),
                error_code=exc.code,
                error=exc.message,
            )
            return self._unverified()
        except Exception as exc:
            logger.exception(
                "Unexpected error in duplicate check, rejecting upload",
                user_id=user_id,
                meal_type=meal_type.value,
                on_date=on_date.isoformat(),
                error=str(exc),
            )
            return self._unverified()

        if existing is None:
            return DuplicateCheck(is_duplicate=False, message="No existing meal for this day")

        return DuplicateCheck(
            is_duplicate=True,
            existing_meal=existing,
            message=(
                f"A {meal_type.value} meal was already uploaded today "
                f"(id={existing.id}, created_at={existing.created_at.isoformat()})"
            ),
        )

    async def decide(
        self,
        user_id: str,
        meal_type: Union[MealType, str],
        at: Optional[datetime] = None,
    ) -> AdmissionDecision:
        """
        Decide whether the upload attempt may proceed.

        Args:
            user_id: Uploading user
            meal_type: Requested category
            at: Attempt time (defaults to now in the configured zone)

        Returns:
            AdmissionDecision; the time-window failure always wins, and
            no lookup happens for attempts outside their window.
        """
        local = self.local_time(at)
        parsed = MealType.parse(meal_type)
        if parsed is None:
            decision = AdmissionDecision(
                allowed=False,
                reason=AdmissionReason.TIME_RESTRICTED,
                message=f"Unknown meal type {meal_type!r}",
                restriction_detail=f"Accepted meal types: {', '.join(MealType.values())}",
            )
            return self._finish(user_id, str(meal_type), decision)

        window = check_time_window(parsed, local, self.slots)
        if not window.is_valid:
            decision = AdmissionDecision(
                allowed=False,
                reason=AdmissionReason.TIME_RESTRICTED,
                message=window.message,
                allowed_meal_types=window.allowed_meal_types,
                current_meal_type=window.current_meal_type,
                restriction_detail=window.restriction_reason,
            )
            return self._finish(user_id, parsed.value, decision)

        duplicate = await self.check_duplicate(user_id, parsed, local.date())
        if duplicate.is_duplicate:
            decision = AdmissionDecision(
                allowed=False,
                reason=AdmissionReason.DUPLICATE,
                message=duplicate.message,
                allowed_meal_types=window.allowed_meal_types,
                current_meal_type=window.current_meal_type,
                existing_record=duplicate.existing_meal,
            )
            return self._finish(user_id, parsed.value, decision)

        decision = AdmissionDecision(
            allowed=True,
            message=window.message,
            allowed_meal_types=window.allowed_meal_types,
            current_meal_type=window.current_meal_type,
        )
        return self._finish(user_id, parsed.value, decision)

    @staticmethod
    def _unverified() -> DuplicateCheck:
        return DuplicateCheck(
            is_duplicate=True,
            message="Could not verify existing meals; please try again later",
        )

    @staticmethod
    def _finish(user_id: str, meal_type: str, decision: AdmissionDecision) -> AdmissionDecision:
        reason = decision.reason.value if decision.reason else None
        intake_metrics.record_admission(decision.allowed, reason)
        logger.info(
            "Upload admission decided",
            user_id=user_id,
            meal_type=meal_type,
            allowed=decision.allowed,
            reason=reason,
        )
        return decision


__all__ = [
    "AdmissionController",
    "AdmissionDecision",
    "AdmissionReason",
    "DuplicateCheck",
]
