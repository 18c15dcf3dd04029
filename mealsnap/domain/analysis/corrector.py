"""AI analysis response corrector.

Treats the analysis service output as untrusted: names are filtered,
numbers coerced and clamped, the total recomputed, the meal type
checked against the enum and the overall confidence computed locally.
Every silent adjustment is recorded as a warning.

The corrector is stateless; one instance can serve all requests.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, List, Optional, Tuple, Union

import structlog

from mealsnap.config import CorrectionConfig
from mealsnap.domain.analysis.models import (
    AnalysisMetadata,
    AnalysisResult,
    FoodItem,
    RawAnalysisResponse,
    ValidationFailure,
    ValidationResult,
)
from mealsnap.domain.analysis.sanitizers import (
    clamp_calories,
    clean_food_name,
    coerce_amount,
    coerce_calories,
    coerce_confidence,
    compute_analysis_confidence,
    estimate_image_quality,
    infer_meal_type,
    round_half_up,
    to_number,
)
from mealsnap.domain.shared.value_objects import MealType
from mealsnap.metrics import intake as intake_metrics

logger = structlog.get_logger(__name__)


@dataclass(slots=True)
class _Survivor:
    item: FoodItem
    reported_calories: float  # coerced, before the ceiling


def _within(a: float, b: float, tolerance: float) -> bool:
    return a == b or abs(a - b) <= tolerance


class AnalysisResponseCorrector:
    """
    Validates and corrects raw analysis payloads.

    Example:
        >>> corrector = AnalysisResponseCorrector()
        >>> result = corrector.validate(
        ...     {"foods": [{"name": "김치찌개", "calories": 5000, "confidence": 0.9}],
        ...      "total_calories": 5000}
        ... )
        >>> assert result.corrected.total_calories == 500
    """

    def __init__(self, config: Optional[CorrectionConfig] = None) -> None:
        self.config = config or CorrectionConfig()

    def validate(
        self,
        raw: Union[RawAnalysisResponse, Any],
        *,
        started_at: Optional[float] = None,
        retry_count: int = 0,
        is_fallback: bool = False,
    ) -> ValidationResult:
        """
        Sanitize and correct an untrusted analysis payload.

        Never raises: every rejection is returned as a result with
        ``is_valid=False``, a failure code and the warnings gathered so far.

        Args:
            raw: Untrusted response (wrapped or bare payload)
            started_at: ``time.perf_counter()`` value when the analysis
                request started; defaults to the start of this call
            retry_count: Attempts made against the analysis service
            is_fallback: Payload comes from a synthetic/fallback path

        Returns:
            ValidationResult with corrected AnalysisResult when valid
        """
        if not isinstance(raw, RawAnalysisResponse):
            raw = RawAnalysisResponse(payload=raw)
        start = started_at if started_at is not None else time.perf_counter()

        try:
            result = self._validate(raw, start, retry_count, is_fallback)
        except Exception as exc:
            logger.exception("Analysis correction crashed", error=str(exc))
            result = ValidationResult(
                is_valid=False,
                errors=[f"Unexpected error while validating response: {exc}"],
                failure=ValidationFailure.STRUCTURAL,
            )

        outcome = "valid" if result.is_valid else result.failure.value  # type: ignore[union-attr]
        intake_metrics.record_validation(outcome, warnings=len(result.warnings))
        return result

    def _validate(
        self,
        raw: RawAnalysisResponse,
        start: float,
        retry_count: int,
        is_fallback: bool,
    ) -> ValidationResult:
        errors: List[str] = []
        warnings: List[str] = []

        # 1. structure
        structural_error = self._structural_error(raw)
        if structural_error:
            errors.append(structural_error)
            logger.warning("Analysis response rejected", failure="STRUCTURAL", reason=structural_error)
            return ValidationResult(
                is_valid=False,
                errors=errors,
                warnings=warnings,
                failure=ValidationFailure.STRUCTURAL,
            )

        # 2. per-item sanitation
        survivors = self._sanitize_items(raw.get("foods"), warnings)

        # 3. nothing left
        if not survivors:
            errors.append("No valid food items remain after sanitation")
            logger.warning(
                "Analysis response rejected",
                failure="EMPTY_AFTER_SANITATION",
                warnings=len(warnings),
            )
            return ValidationResult(
                is_valid=False,
                errors=errors,
                warnings=warnings,
                failure=ValidationFailure.EMPTY_AFTER_SANITATION,
            )

        foods: Tuple[FoodItem, ...] = tuple(s.item for s in survivors)

        # 4. total
        total_calories = sum(food.calories for food in foods)
        reported_total = to_number(raw.get("total_calories"))
        if reported_total is not None:
            # a total matching either the model's own item figures or the
            # clamped ones is not a mismatch; clamps were already reported
            tolerance = self.config.calorie_tolerance
            model_sum = sum(s.reported_calories for s in survivors)
            if not (
                _within(reported_total, model_sum, tolerance)
                or _within(reported_total, total_calories, tolerance)
            ):
                warnings.append(
                    f"Calorie total mismatch: reported {reported_total:g}kcal"
                    f" -> recomputed {total_calories}kcal"
                )

        # 5. meal type
        reported_meal_type = raw.get("meal_type")
        meal_type = MealType.parse(reported_meal_type)
        if meal_type is None:
            meal_type = infer_meal_type(
                total_calories, [food.name for food in foods], self.config
            )
            if reported_meal_type not in (None, ""):
                warnings.append(
                    f'Invalid meal type "{reported_meal_type}" replaced with "{meal_type.value}"'
                )

        # 6. confidence
        confidences = [food.confidence for food in foods]
        analysis_confidence = compute_analysis_confidence(
            confidences, self.config, is_fallback=is_fallback
        )

        # 7. metadata
        metadata = AnalysisMetadata(
            processing_time_ms=max(0, int((time.perf_counter() - start) * 1000)),
            correction_version=self.config.correction_version,
            image_quality_score=estimate_image_quality(confidences),
            detected_objects_count=len(foods),
            retry_count=max(0, retry_count),
            is_fallback=is_fallback,
        )

        corrected = AnalysisResult(
            foods=foods,
            total_calories=total_calories,
            meal_type=meal_type,
            analysis_confidence=analysis_confidence,
            analyzed_at=datetime.now(timezone.utc),
            metadata=metadata,
        )
        logger.info(
            "Analysis response corrected",
            items=len(foods),
            total_calories=total_calories,
            meal_type=meal_type.value,
            analysis_confidence=analysis_confidence,
            warnings=len(warnings),
        )
        return ValidationResult(is_valid=True, errors=errors, warnings=warnings, corrected=corrected)

    @staticmethod
    def _structural_error(raw: RawAnalysisResponse) -> Optional[str]:
        if not raw.is_object():
            return "Response payload is not an object"
        foods = raw.get("foods")
        if not isinstance(foods, list):
            return "Response has no foods list"
        if not foods:
            return "Response foods list is empty"
        return None

    def _sanitize_items(self, raw_foods: List[Any], warnings: List[str]) -> List[_Survivor]:
        cfg = self.config
        survivors: List[_Survivor] = []
        seen: set[str] = set()

        for raw_food in raw_foods:
            if not isinstance(raw_food, dict):
                warnings.append("Skipped food entry with invalid format")
                continue

            name = clean_food_name(raw_food.get("name"), cfg)
            if name is None:
                warnings.append(f"Dropped food with invalid name: {raw_food.get('name')!r}")
                continue

            key = name.lower()
            if key in seen:
                warnings.append(f'Dropped duplicate food "{name}"')
                continue
            seen.add(key)

            reported = coerce_calories(raw_food.get("calories"))
            calories, clamped = clamp_calories(reported, cfg)
            if clamped:
                warnings.append(
                    f'Unrealistic calories for "{name}": {reported:g}kcal'
                    f" -> {calories}kcal"
                )

            confidence = coerce_confidence(raw_food.get("confidence"), cfg)
            if confidence < cfg.confidence_threshold:
                warnings.append(f'Dropped low-confidence food "{name}" ({confidence})')
                continue

            survivors.append(
                _Survivor(
                    item=FoodItem(
                        name=name,
                        calories=calories,
                        amount=coerce_amount(raw_food.get("amount"), cfg),
                        confidence=round_half_up(confidence, 2),
                    ),
                    reported_calories=reported,
                )
            )

        if len(survivors) > cfg.max_items:
            warnings.append(
                f"Kept first {cfg.max_items} of {len(survivors)} food items"
            )
            survivors = survivors[: cfg.max_items]
        return survivors


__all__ = ["AnalysisResponseCorrector"]
