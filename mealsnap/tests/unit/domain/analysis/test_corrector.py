"""
Unit tests for AnalysisResponseCorrector.

Covers the structural gate, per-item sanitation, recomputed totals,
meal type inference and computed confidence.
"""

import json
import time
from datetime import datetime, timezone

import pytest
from freezegun import freeze_time
from pydantic import ValidationError

from mealsnap.config import CorrectionConfig
from mealsnap.domain.analysis.corrector import AnalysisResponseCorrector
from mealsnap.domain.analysis.models import RawAnalysisResponse, ValidationFailure
from mealsnap.domain.shared.value_objects import MealType
from mealsnap.metrics import intake as intake_metrics
from mealsnap.metrics.core import registry


def _food(name: str, calories=300, confidence=0.9, amount="1인분") -> dict:
    return {"name": name, "calories": calories, "confidence": confidence, "amount": amount}


class TestKimchiStewExample:
    """Single unrealistic item gets clamped."""

    @freeze_time("2025-03-01 12:30:00")
    def test_clamped_to_fallback_with_one_warning(self, corrector: AnalysisResponseCorrector) -> None:
        raw = {
            "foods": [{"name": "김치찌개", "calories": 5000, "confidence": 0.9}],
            "total_calories": 5000,
        }

        result = corrector.validate(raw)

        assert result.is_valid is True
        assert result.errors == []
        assert len(result.warnings) == 1
        assert "김치찌개" in result.warnings[0]

        corrected = result.corrected
        assert corrected is not None
        assert corrected.foods[0].calories == 500
        assert corrected.foods[0].amount == "적당량"
        assert corrected.total_calories == 500
        assert corrected.analysis_confidence == 0.73
        assert corrected.meal_type is MealType.LUNCH
        assert corrected.analyzed_at == datetime(2025, 3, 1, 12, 30, tzinfo=timezone.utc)
        assert corrected.metadata.detected_objects_count == 1
        assert corrected.metadata.correction_version == "kr-food-corrector/1.0"
        assert corrected.metadata.is_fallback is False


class TestStructure:
    """Payloads rejected before item sanitation."""

    @pytest.mark.parametrize(
        "payload",
        [None, "foods", [1, 2], {}, {"foods": "김치"}, {"foods": []}],
    )
    def test_structural_failures(self, corrector: AnalysisResponseCorrector, payload) -> None:
        result = corrector.validate(payload)

        assert result.is_valid is False
        assert result.failure is ValidationFailure.STRUCTURAL
        assert result.corrected is None
        assert len(result.errors) == 1

    def test_empty_after_sanitation(self, corrector: AnalysisResponseCorrector) -> None:
        raw = {"foods": [_food("pizza"), _food("burger"), "not-an-object"]}

        result = corrector.validate(raw)

        assert result.is_valid is False
        assert result.failure is ValidationFailure.EMPTY_AFTER_SANITATION
        assert result.corrected is None
        assert len(result.warnings) == 3

    def test_all_low_confidence_is_empty(self, corrector: AnalysisResponseCorrector) -> None:
        result = corrector.validate({"foods": [_food("비빔밥", confidence=0.1)]})

        assert result.is_valid is False
        assert result.failure is ValidationFailure.EMPTY_AFTER_SANITATION

    def test_accepts_wrapped_and_text_payloads(self, corrector: AnalysisResponseCorrector) -> None:
        wrapped = RawAnalysisResponse(payload={"foods": [_food("비빔밥")]})
        text = RawAnalysisResponse.from_text('```json\n{"foods": [{"name": "비빔밥"}]}\n```')

        assert corrector.validate(wrapped).is_valid
        assert corrector.validate(text).is_valid

    def test_unparseable_text_is_structural(self, corrector: AnalysisResponseCorrector) -> None:
        result = corrector.validate(RawAnalysisResponse.from_text("I cannot see any food"))

        assert result.failure is ValidationFailure.STRUCTURAL


class TestItemSanitation:
    """Per-food corrections."""

    def test_duplicates_dropped_case_insensitive(self, corrector: AnalysisResponseCorrector) -> None:
        raw = {"foods": [_food("된장 Soup"), _food("된장 SOUP"), _food("밥")]}

        result = corrector.validate(raw)

        names = [food.name for food in result.corrected.foods]
        assert names == ["된장 Soup", "밥"]
        assert any("duplicate" in warning for warning in result.warnings)

    def test_low_confidence_dropped_with_warning(self, corrector: AnalysisResponseCorrector) -> None:
        raw = {"foods": [_food("밥", confidence=0.39), _food("국", confidence=0.4)]}

        result = corrector.validate(raw)

        assert [food.name for food in result.corrected.foods] == ["국"]
        assert len(result.warnings) == 1
        assert "low-confidence" in result.warnings[0]

    def test_confidence_always_within_bounds(self, corrector: AnalysisResponseCorrector) -> None:
        raw = {"foods": [_food("밥", confidence=7.5), _food("국", confidence="n/a")]}

        result = corrector.validate(raw)

        confidences = [food.confidence for food in result.corrected.foods]
        assert confidences == [1.0, 0.5]
        assert 0.0 <= result.corrected.analysis_confidence <= 1.0

    def test_confidence_rounded_to_two_decimals(self, corrector: AnalysisResponseCorrector) -> None:
        result = corrector.validate({"foods": [_food("밥", confidence=0.876)]})

        assert result.corrected.foods[0].confidence == 0.88

    def test_item_cap(self, corrector: AnalysisResponseCorrector) -> None:
        raw = {"foods": [_food(f"반찬{i}", calories=10) for i in range(12)]}

        result = corrector.validate(raw)

        assert len(result.corrected.foods) == 10
        assert result.corrected.foods[-1].name == "반찬9"
        assert any("10 of 12" in warning for warning in result.warnings)

    def test_names_cleaned(self, corrector: AnalysisResponseCorrector) -> None:
        result = corrector.validate({"foods": [_food("  떡볶이 🌶️ (매운맛)  ")]})

        assert result.corrected.foods[0].name == "떡볶이 (매운맛)"

    def test_hostile_values_never_raise(self, corrector: AnalysisResponseCorrector) -> None:
        raw = {
            "foods": [
                {"name": {"nested": True}},
                {"name": "밥", "calories": [1], "confidence": {}, "amount": 3},
                None,
                {"name": "김치찌개", "calories": 10**400, "confidence": 10**400},
                {"name": "국", "calories": -(10**400), "confidence": 0.9},
            ],
            "total_calories": "many",
            "meal_type": 7,
        }

        result = corrector.validate(raw)

        assert result.is_valid is True
        food = result.corrected.foods[0]
        assert (food.calories, food.confidence, food.amount) == (0, 0.5, "적당량")
        assert [(f.calories, f.confidence) for f in result.corrected.foods[1:]] == [(500, 1.0), (0, 0.9)]

    def test_oversized_json_integer_is_clamped(self, corrector: AnalysisResponseCorrector) -> None:
        huge = "9" * 400
        raw = json.loads(
            '{"foods": [{"name": "김치찌개", "calories": ' + huge + ', "confidence": 0.9}],'
            ' "total_calories": 500}'
        )

        result = corrector.validate(raw)

        assert result.is_valid is True
        assert result.corrected.foods[0].calories == 500
        assert result.corrected.total_calories == 500
        assert len(result.warnings) == 1
        assert result.warnings[0].startswith('Unrealistic calories for "김치찌개": infkcal')


class TestTotalsAndMealType:
    """Recomputed aggregate fields."""

    def test_total_is_exact_sum(self, corrector: AnalysisResponseCorrector) -> None:
        raw = {
            "foods": [_food("밥", 300.4), _food("국", 120.5), _food("김치", 15)],
            "total_calories": 436,
        }

        result = corrector.validate(raw)

        corrected = result.corrected
        assert corrected.total_calories == sum(food.calories for food in corrected.foods)
        assert corrected.total_calories == 300 + 121 + 15
        assert result.warnings == []

    def test_total_mismatch_warns(self, corrector: AnalysisResponseCorrector) -> None:
        raw = {"foods": [_food("밥", 300), _food("국", 200)], "total_calories": 900}

        result = corrector.validate(raw)

        assert result.corrected.total_calories == 500
        assert len(result.warnings) == 1
        assert "mismatch" in result.warnings[0]

    def test_total_within_tolerance(self, corrector: AnalysisResponseCorrector) -> None:
        raw = {"foods": [_food("밥", 300), _food("국", 200)], "total_calories": 550}

        assert corrector.validate(raw).warnings == []

    def test_total_matching_clamped_items_not_a_mismatch(
        self, corrector: AnalysisResponseCorrector
    ) -> None:
        raw = {"foods": [_food("김치찌개", 5000), _food("밥", 300)], "total_calories": 800}

        result = corrector.validate(raw)

        assert result.corrected.total_calories == 800
        assert len(result.warnings) == 1
        assert "Unrealistic" in result.warnings[0]

    def test_valid_meal_type_kept(self, corrector: AnalysisResponseCorrector) -> None:
        raw = {"foods": [_food("밥", 100)], "meal_type": "dinner"}

        assert corrector.validate(raw).corrected.meal_type is MealType.DINNER

    def test_invalid_meal_type_inferred_with_warning(
        self, corrector: AnalysisResponseCorrector
    ) -> None:
        raw = {"foods": [_food("토스트", 700)], "meal_type": "brunch"}

        result = corrector.validate(raw)

        assert result.corrected.meal_type is MealType.BREAKFAST
        assert len(result.warnings) == 1
        assert "brunch" in result.warnings[0]

    def test_missing_meal_type_inferred_silently(
        self, corrector: AnalysisResponseCorrector
    ) -> None:
        result = corrector.validate({"foods": [_food("삼겹살", 900)]})

        assert result.corrected.meal_type is MealType.DINNER
        assert result.warnings == []


class TestMetadataAndProvenance:
    def test_fallback_confidence(self, corrector: AnalysisResponseCorrector) -> None:
        result = corrector.validate({"foods": [_food("밥", confidence=0.45)]}, is_fallback=True)

        assert result.corrected.analysis_confidence == 0.75
        assert result.corrected.metadata.is_fallback is True

    def test_retry_count_and_duration(self, corrector: AnalysisResponseCorrector) -> None:
        started = time.perf_counter() - 0.25

        result = corrector.validate(
            {"foods": [_food("밥")]}, started_at=started, retry_count=2
        )

        metadata = result.corrected.metadata
        assert metadata.retry_count == 2
        assert metadata.processing_time_ms >= 250

    def test_result_is_immutable(self, corrector: AnalysisResponseCorrector) -> None:
        corrected = corrector.validate({"foods": [_food("밥")]}).corrected

        with pytest.raises(ValidationError):
            corrected.total_calories = 1

    def test_custom_config(self) -> None:
        corrector = AnalysisResponseCorrector(
            CorrectionConfig(confidence_threshold=0.8, max_items=1, calorie_ceiling=1000)
        )
        raw = {"foods": [_food("밥", 1500, 0.7), _food("국", 1500, 0.9), _food("김치", 10, 0.95)]}

        result = corrector.validate(raw)

        assert [food.name for food in result.corrected.foods] == ["국"]
        assert result.corrected.total_calories == 500

    def test_outcomes_recorded(self, corrector: AnalysisResponseCorrector) -> None:
        corrector.validate({"foods": [_food("밥")]})
        corrector.validate({"foods": []})

        assert registry.count(intake_metrics.VALIDATIONS, outcome="valid") == 1
        assert registry.count(intake_metrics.VALIDATIONS, outcome="STRUCTURAL") == 1
