"""
Domain models for AI analysis correction.

The raw payload returned by the analysis service is wrapped in
``RawAnalysisResponse`` and only read by the corrector; everything that
leaves the corrector is a validated, immutable pydantic model.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, List, Optional, Tuple

import structlog
from pydantic import BaseModel, ConfigDict, Field, model_validator

from mealsnap.domain.analysis.parsing import parse_model_output
from mealsnap.domain.shared.errors import AnalysisParseError
from mealsnap.domain.shared.value_objects import MealType

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class RawAnalysisResponse:
    """
    Untrusted analysis payload, exactly as received.

    Nothing about ``payload`` is assumed: it may be a dict, a list,
    None or anything else the service produced.

    Example:
        >>> raw = RawAnalysisResponse.from_text('```json {"foods": []} ```')
        >>> assert raw.payload == {"foods": []}
    """

    payload: Any

    @classmethod
    def from_text(cls, text: Any) -> "RawAnalysisResponse":
        """Lenient constructor: unparseable text yields an empty payload."""
        try:
            return parse_model_output(text)
        except AnalysisParseError as exc:
            logger.warning("Analysis output is not JSON", reason=exc.message)
            return cls(payload=None)

    def is_object(self) -> bool:
        return isinstance(self.payload, dict)

    def get(self, name: str) -> Any:
        """Raw field value, or None when absent or when payload is not an object."""
        if not isinstance(self.payload, dict):
            return None
        return self.payload.get(name)


class FoodItem(BaseModel):
    """
    Sanitized food item.

    Attributes:
        name: Filtered name containing at least one required-script letter
        calories: Integer kcal in [0, ceiling]
        amount: Free-text portion (e.g. "1그릇")
        confidence: Recognition confidence rounded to 2 decimals

    Example:
        >>> item = FoodItem(name="김치찌개", calories=500, amount="1그릇", confidence=0.9)
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    calories: int = Field(..., ge=0)
    amount: str = Field(..., min_length=1)
    confidence: float = Field(..., ge=0.0, le=1.0)


class AnalysisMetadata(BaseModel):
    """Provenance attached to every corrected result."""

    model_config = ConfigDict(frozen=True)

    processing_time_ms: int = Field(..., ge=0)
    correction_version: str
    image_quality_score: float = Field(..., ge=0.0, le=1.0)
    detected_objects_count: int = Field(..., ge=0)
    retry_count: int = Field(0, ge=0)
    is_fallback: bool = False


class AnalysisResult(BaseModel):
    """
    Corrected analysis, immutable once produced.

    ``total_calories`` always equals the sum of item calories.
    """

    model_config = ConfigDict(frozen=True)

    foods: Tuple[FoodItem, ...] = Field(..., min_length=1)
    total_calories: int = Field(..., ge=0)
    meal_type: MealType
    analysis_confidence: float = Field(..., ge=0.0, le=1.0)
    analyzed_at: datetime
    metadata: AnalysisMetadata

    @model_validator(mode="after")
    def total_matches_items(self) -> "AnalysisResult":
        expected = sum(food.calories for food in self.foods)
        if self.total_calories != expected:
            raise ValueError(
                f"total_calories ({self.total_calories}) must equal sum of items ({expected})"
            )
        return self


class ValidationFailure(str, Enum):
    """Fatal outcome of a correction run."""

    STRUCTURAL = "STRUCTURAL"  # not an object / foods missing or empty
    EMPTY_AFTER_SANITATION = "EMPTY_AFTER_SANITATION"  # every item dropped


@dataclass(slots=True)
class ValidationResult:
    """Outcome of ``AnalysisResponseCorrector.validate``.

    Warnings are kept on failures too, so callers can see what was
    dropped before the fatal step.
    """

    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    corrected: Optional[AnalysisResult] = None
    failure: Optional[ValidationFailure] = None


__all__ = [
    "RawAnalysisResponse",
    "FoodItem",
    "AnalysisMetadata",
    "AnalysisResult",
    "ValidationFailure",
    "ValidationResult",
]
