"""Field-level sanitation helpers for untrusted analysis payloads.

Pure functions, no state. Each coerces one raw value into the range the
corrected result allows; the corrector decides which adjustments are
worth a warning.
"""

from __future__ import annotations

import math
import re
from typing import Any, Optional, Sequence

from mealsnap.config import CorrectionConfig
from mealsnap.domain.shared.value_objects import MealType

# letters, digits, underscore, whitespace, '-', '(' and ')'
_DISALLOWED_NAME_CHARS = re.compile(r"[^\w\s\-()]")
_WHITESPACE_RUN = re.compile(r"\s+")


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Round with ties away from zero for positives (2.5 → 3, 0.125 → 0.13)."""
    factor = 10**ndigits
    return math.floor(value * factor + 0.5) / factor


def to_number(value: Any) -> Optional[float]:
    """Lenient numeric coercion: numbers and numeric strings, else None.

    NaN is treated as non-numeric; infinities are kept so callers can clamp.
    Integers too large for a float become a signed infinity.
    """
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            number = math.inf if value > 0 else -math.inf
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number):
        return None
    return number


# ---- Names ----


def clean_food_name(raw: Any, config: CorrectionConfig) -> Optional[str]:
    """Filter and validate a food name.

    Returns:
        Cleaned name, or None when it is not text, is empty or too long
        after filtering, or has no letter of the required script.
    """
    if not isinstance(raw, str):
        return None
    cleaned = _DISALLOWED_NAME_CHARS.sub("", raw.strip())
    cleaned = _WHITESPACE_RUN.sub(" ", cleaned).strip()
    if not 1 <= len(cleaned) <= config.name_max_length:
        return None
    if not re.search(config.required_script_pattern, cleaned):
        return None
    return cleaned


# ---- Numbers ----


def coerce_calories(raw: Any) -> float:
    """Non-numeric or negative → 0. No ceiling applied here."""
    number = to_number(raw)
    if number is None or number < 0:
        return 0.0
    return number


def clamp_calories(calories: float, config: CorrectionConfig) -> tuple[int, bool]:
    """Apply the ceiling; returns (kcal, clamped)."""
    if calories > config.calorie_ceiling:
        return config.calorie_fallback, True
    return int(round_half_up(calories)), False


def coerce_amount(raw: Any, config: CorrectionConfig) -> str:
    if not isinstance(raw, str):
        return config.default_amount
    cleaned = raw.strip()
    if not cleaned or len(cleaned) > config.amount_max_length:
        return config.default_amount
    return cleaned


def coerce_confidence(raw: Any, config: CorrectionConfig) -> float:
    """Clamp into [0, 1]; non-numeric → default confidence."""
    number = to_number(raw)
    if number is None:
        return config.default_confidence
    return min(1.0, max(0.0, number))


# ---- Derived values ----


def infer_meal_type(
    total_calories: int, names: Sequence[str], config: CorrectionConfig
) -> MealType:
    """Guess the meal category when the model gave none (or an invalid one).

    Keyword matches win over calorie thresholds:
    breakfast keywords → snack keywords → low total → high total → lunch.
    """
    joined = " ".join(name.lower() for name in names)
    if any(keyword in joined for keyword in config.breakfast_keywords):
        return MealType.BREAKFAST
    if any(keyword in joined for keyword in config.snack_keywords):
        return MealType.SNACK
    if total_calories < config.breakfast_calorie_below:
        return MealType.BREAKFAST
    if total_calories > config.dinner_calorie_above:
        return MealType.DINNER
    return MealType.LUNCH


def compute_analysis_confidence(
    confidences: Sequence[float], config: CorrectionConfig, *, is_fallback: bool = False
) -> float:
    """Mean item confidence, weighted by item count, scaled down, 2 decimals."""
    if is_fallback:
        return config.fallback_confidence
    if not confidences:
        return 0.0

    mean = sum(confidences) / len(confidences)
    count_weight = 1.0
    if len(confidences) < config.few_items_below:
        count_weight = config.few_items_weight
    if len(confidences) > config.many_items_above:
        count_weight = config.many_items_weight

    value = mean * count_weight * config.conservatism_factor
    return round_half_up(min(1.0, max(0.0, value)), 2)


def estimate_image_quality(confidences: Sequence[float]) -> float:
    """0.7 × mean confidence + 0.3 × detection coverage, in [0.2, 1]."""
    if not confidences:
        return 0.3
    mean = sum(confidences) / len(confidences)
    quality = mean * 0.7 + min(len(confidences) / 5, 1.0) * 0.3
    return round_half_up(min(1.0, max(0.2, quality)), 2)


__all__ = [
    "round_half_up",
    "to_number",
    "clean_food_name",
    "coerce_calories",
    "clamp_calories",
    "coerce_amount",
    "coerce_confidence",
    "infer_meal_type",
    "compute_analysis_confidence",
    "estimate_image_quality",
]
