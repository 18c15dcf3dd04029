"""Correction of untrusted AI analysis payloads."""

from mealsnap.domain.analysis.corrector import AnalysisResponseCorrector
from mealsnap.domain.analysis.models import (
    AnalysisMetadata,
    AnalysisResult,
    FoodItem,
    RawAnalysisResponse,
    ValidationFailure,
    ValidationResult,
)
from mealsnap.domain.analysis.parsing import parse_model_output

__all__ = [
    "AnalysisResponseCorrector",
    "AnalysisMetadata",
    "AnalysisResult",
    "FoodItem",
    "RawAnalysisResponse",
    "ValidationFailure",
    "ValidationResult",
    "parse_model_output",
]
